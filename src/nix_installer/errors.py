"""Error base class shared by every nix-installer component.

Each component defines its own exception class with a closed ``Kind``
enumeration. Lower-level errors are wrapped with ``raise ... from err`` so the
original stays reachable through ``__cause__``.
"""

from enum import Enum


class InstallerError(Exception):
    """Base error with a compact diagnostic rendering.

    Attributes:
        kind: Member of the owning component's ``Kind`` enumeration.
    """

    def __init__(self, kind: Enum, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    def context(self) -> list[str]:
        """Values identifying the resource involved, used by diagnostic()."""
        return []

    def diagnostic(self) -> str:
        """Render as ``Kind("ctx", ...)`` for structured diagnostic reports."""
        values = ", ".join(f'"{value}"' for value in self.context())
        return f"{self.kind.value}({values})"
