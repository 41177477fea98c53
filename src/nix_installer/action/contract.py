"""Action contract - the shape of every reversible system change.

Lifecycle:
    plan()    -> builds the action in UNCOMPLETED, failing fast on missing
                 prerequisites before anything on the host is touched
    execute() -> applies the change, then COMPLETED (no-op when COMPLETED)
    revert()  -> undoes the change, then UNCOMPLETED (no-op when UNCOMPLETED)

Concrete actions implement the ``_execute``/``_revert`` hooks; the state
bookkeeping lives here so planners can drive any action uniformly.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from nix_installer.errors import InstallerError

logger = logging.getLogger(__name__)


class ActionState(str, Enum):
    """Whether an action's effect is currently applied."""

    UNCOMPLETED = "uncompleted"
    COMPLETED = "completed"
    PROGRESS = "progress"  # only while execute/revert is running


@dataclass
class ActionDescription:
    """Human-readable line for dry-run reports."""

    description: str
    explanation: list[str] = field(default_factory=list)


@dataclass
class ActionContract:
    """Explicit contract for an action."""

    read_only: bool
    requires_backup: bool
    rollback_support: bool
    prerequisites: list[str]


class UnknownActionError(InstallerError):
    """Raised when a serialized action carries a tag nobody registered."""

    class Kind(Enum):
        UNKNOWN_TAG = "UnknownTag"
        MALFORMED = "Malformed"

    def __init__(self, kind: "UnknownActionError.Kind", tag: str, message: str) -> None:
        super().__init__(kind, message)
        self.tag = tag

    def context(self) -> list[str]:
        return [self.tag]


class Action(ABC):
    """Abstract base class for all reversible actions.

    Each concrete action must:
    - provide a ``plan`` classmethod
    - implement _execute(), _revert(), tracing_synopsis(), revert_description()
    - implement to_dict()/_from_dict() and be registered with @register_action
    """

    tag: ClassVar[str]
    CONTRACT: ClassVar[ActionContract]

    def __init__(self) -> None:
        self._action_state = ActionState.UNCOMPLETED

    # ------------------------------------------------------------------
    # Descriptions
    # ------------------------------------------------------------------

    @abstractmethod
    def tracing_synopsis(self) -> str:
        """One-line summary of what execute() will do."""
        ...

    def execute_description(self) -> list[ActionDescription]:
        return [ActionDescription(self.tracing_synopsis())]

    @abstractmethod
    def revert_description(self) -> list[ActionDescription]:
        ...

    def tracing_fields(self) -> dict[str, Any]:
        """Structured context attached to execute/revert log records."""
        return {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    def _execute(self) -> None:
        ...

    @abstractmethod
    def _revert(self) -> None:
        ...

    def execute(self) -> None:
        """Apply the action, skipping it when already completed."""
        if self._action_state == ActionState.COMPLETED:
            logger.debug("Completed: (already done) %s", self.tracing_synopsis())
            return

        previous = self._action_state
        self._action_state = ActionState.PROGRESS
        logger.debug("Executing: %s", self.tracing_synopsis(), extra=self.tracing_fields())
        try:
            self._execute()
        except BaseException:
            self._action_state = previous
            raise
        self._action_state = ActionState.COMPLETED
        logger.debug("Completed: %s", self.tracing_synopsis())

    def revert(self) -> None:
        """Undo the action, skipping it when nothing is applied."""
        if self._action_state == ActionState.UNCOMPLETED:
            logger.debug("Reverted: (already done) %s", self.tracing_synopsis())
            return

        previous = self._action_state
        self._action_state = ActionState.PROGRESS
        logger.debug("Reverting: %s", self.tracing_synopsis(), extra=self.tracing_fields())
        try:
            self._revert()
        except BaseException:
            self._action_state = previous
            raise
        self._action_state = ActionState.UNCOMPLETED
        logger.debug("Reverted: %s", self.tracing_synopsis())

    def action_state(self) -> ActionState:
        return self._action_state

    def set_action_state(self, action_state: ActionState) -> None:
        self._action_state = ActionState(action_state)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Serialize the action's own fields (without tag or state)."""
        ...

    @classmethod
    @abstractmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Action":
        ...

    def serialize(self) -> dict[str, Any]:
        """Tagged form understood by action_from_dict()."""
        return {
            "action": self.tag,
            "state": self._action_state.value,
            **self.to_dict(),
        }


# Registry of all known action kinds, keyed by tag
_action_registry: dict[str, type[Action]] = {}


def register_action(action_class: type[Action]) -> type[Action]:
    """Decorator to register an action class under its tag."""
    if action_class.tag in _action_registry:
        raise ValueError(f"Action tag already registered: {action_class.tag}")
    _action_registry[action_class.tag] = action_class
    return action_class


def get_all_actions() -> dict[str, type[Action]]:
    """Get all registered action classes by tag."""
    return _action_registry.copy()


def action_from_dict(data: dict[str, Any]) -> Action:
    """Rebuild an action from its tagged form, restoring its state."""
    tag = data.get("action")
    action_class = _action_registry.get(tag) if isinstance(tag, str) else None
    if action_class is None:
        raise UnknownActionError(
            UnknownActionError.Kind.UNKNOWN_TAG,
            str(tag),
            f"Unknown action `{tag}`",
        )

    try:
        action = action_class._from_dict(data)
        action.set_action_state(ActionState(data.get("state", ActionState.UNCOMPLETED)))
    except (KeyError, TypeError, ValueError) as e:
        raise UnknownActionError(
            UnknownActionError.Kind.MALFORMED,
            tag,
            f"Malformed `{tag}` action: {e}",
        ) from e
    return action
