"""Exceptions raised by the fabric builder."""

from __future__ import annotations


class FabricError(Exception):
    """Base exception for tensegrity fabric errors."""


class ConstructionError(FabricError):
    """The builder broke one of its own structural invariants."""


class PreconditionError(FabricError):
    """An operation was invoked without what it needs to run."""


class TransitionError(FabricError):
    """A lifecycle transition outside the transition table was requested."""

    def __init__(self, source, destination):
        self.source = source
        self.destination = destination
        super().__init__(f"No transition {source.name} to {destination.name}")


class TenscriptError(FabricError):
    """Malformed tenscript text."""

    def __init__(self, message: str, source: str, position: int):
        self.source = source
        self.position = position
        super().__init__(f"{message} at position {position}")

    def __str__(self) -> str:
        caret = " " * self.position + "^"
        return f"{self.args[0]}\n  {self.source}\n  {caret}"


__all__ = [
    "FabricError",
    "ConstructionError",
    "PreconditionError",
    "TransitionError",
    "TenscriptError",
]
