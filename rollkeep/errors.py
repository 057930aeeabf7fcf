"""Exceptions raised inside a roll pipeline.

All of them are caught at the orchestrator boundary and reported through the
returned RollReport; none reaches the host.
"""

from __future__ import annotations


class RollError(Exception):
    """Base class for roll pipeline failures."""


class UserCancelled(RollError):
    """The modifier prompt was dismissed. Nothing was spent or rolled."""


class InsufficientResource(RollError):
    """A resource counter was at zero when a spend was attempted."""

    def __init__(self, resource: str, message: str | None = None) -> None:
        self.resource = resource
        super().__init__(message or f"{resource}: 0")


class NoActorResolved(RollError):
    """A spend or penalty lookup needed an actor and none could be found."""

    def __init__(self, message: str = "No actor available for this roll") -> None:
        super().__init__(message)


class PresentationFailure(RollError):
    """The roll happened but could not be displayed. Spent resources stay spent."""
