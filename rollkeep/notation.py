"""Compact roll-and-keep notation.

Supports: 6k3, 6d10k3, 6k3x10, 6k3x10+4, 6k3-2, 6k3+4+2.
Flags may appear anywhere: "u" (unskilled, no explosion) and "e" (emphasis,
reroll 1s once). Omitted segments default to keeping every rolled die,
exploding on 10 and no bonus.

The parsed pool goes through the same Ten Dice Rule as every other roll.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rollkeep.dice import SIDES, DiceError, RollFlags
from rollkeep.ten_dice import DicePool, normalize

if TYPE_CHECKING:
    from rollkeep.config import ConfigProvider

_NOTATION_RE = re.compile(
    r"^(?P<roll>\d+)(?:d10)?(?:k(?P<keep>\d+))?(?:x(?P<explode>\d+))?"
    r"(?P<bonus>(?:[+-]-?\d+)*)$"
)
_BONUS_RE = re.compile(r"([+-])(-?\d+)")

_MAX_DICE = 100


class NotationError(DiceError):
    """Raised when compact notation cannot be parsed."""


@dataclass(frozen=True)
class ParsedRoll:
    pool: DicePool
    flags: RollFlags


def parse(notation: str, *, config: ConfigProvider | None = None) -> ParsedRoll:
    """Parse compact notation into a normalized pool and flags.

    Args:
        notation: Notation string, e.g. "6k3x10+4e".
        config: Provider for the Ten Dice Rule house-rule flag.

    Returns:
        ParsedRoll with the pool after the Ten Dice Rule.

    Raises:
        NotationError: If the notation is invalid or out of range.
    """
    text = re.sub(r"\s+", "", notation).lower()
    no_explode = "u" in text
    reroll_low_once = "e" in text
    text = text.replace("u", "").replace("e", "")

    m = _NOTATION_RE.match(text)
    if not m:
        raise NotationError(f"Invalid roll notation: {notation!r}")

    roll_dice = int(m.group("roll"))
    if roll_dice < 1:
        raise NotationError(f"Must roll at least one die: {notation!r}")
    if roll_dice > _MAX_DICE:
        raise NotationError(f"Too many dice: {roll_dice} (max {_MAX_DICE})")

    keep = m.group("keep")
    keep_dice = int(keep) if keep is not None else roll_dice
    if keep_dice > _MAX_DICE:
        raise NotationError(f"Too many kept dice: {keep_dice} (max {_MAX_DICE})")

    explode = m.group("explode")
    threshold = int(explode) if explode is not None else SIDES
    if not 2 <= threshold <= SIDES:
        raise NotationError(f"Explosion threshold out of range: {threshold}")

    bonus = 0
    for sign, value in _BONUS_RE.findall(m.group("bonus")):
        bonus += -int(value) if sign == "-" else int(value)

    flags = RollFlags(
        reroll_low_once=reroll_low_once,
        no_explode=no_explode,
        explode_threshold=threshold,
    )
    return ParsedRoll(pool=normalize(roll_dice, keep_dice, bonus, config=config), flags=flags)
