"""nix-installer: reversible installer actions and host self-test."""

__version__ = "0.1.0"
