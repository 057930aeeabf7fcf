"""Collaborators that show roll results and notices to players."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from rollkeep.target import RollOutcome

logger = logging.getLogger(__name__)


class Presenter(Protocol):
    def present(self, label: str, rendered_dice: str, outcome: RollOutcome) -> None: ...


class Notifier(Protocol):
    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that writes user notices to the log."""

    def warn(self, message: str) -> None:
        logger.warning(message)

    def error(self, message: str) -> None:
        logger.error(message)


@dataclass
class Presented:
    label: str
    rendered_dice: str
    outcome: RollOutcome


@dataclass
class CollectingPresenter:
    """Presenter that keeps every presented roll in memory."""

    presented: list[Presented] = field(default_factory=list)

    def present(self, label: str, rendered_dice: str, outcome: RollOutcome) -> None:
        self.presented.append(Presented(label, rendered_dice, outcome))


@dataclass
class CollectingNotifier:
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


def build_modifier_label(roll_mod: int, keep_mod: int, total_mod: int) -> str:
    """Return the " Mod (2k1+5)" flavor suffix, or "" when nothing was modified."""
    if not (roll_mod or keep_mod or total_mod):
        return ""
    sign = "-" if total_mod < 0 else "+"
    return f" Mod ({roll_mod}k{keep_mod}{sign}{abs(total_mod)})"
