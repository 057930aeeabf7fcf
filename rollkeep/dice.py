"""Roll formula compiler and executor.

Formulas use roll-and-keep notation on ten-sided dice:

  {roll}d10[r1]k{keep}[x{threshold}]{+|-}{bonus}

Examples: 5d10k3x10+0, 6d10r1k3x10+5, 4d10k2-2 (no explosion).

  r1   any die showing 1 is rerolled once; the reroll stands
  x10  any die at or above the threshold is rolled again and added, repeating
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field

from rollkeep.ten_dice import DicePool

_FORMULA_RE = re.compile(
    r"^(?P<roll>\d+)d(?P<sides>[1-9]\d*)(?P<reroll>r1)?k(?P<keep>\d+)"
    r"(?:x(?P<explode>\d+))?(?P<bonus>[+-]\d+)?$",
    re.IGNORECASE,
)

SIDES = 10
_MAX_DICE = 100
_MAX_EXPLOSIONS = 100


class DiceError(ValueError):
    """Raised when a roll formula is invalid."""


@dataclass(frozen=True)
class RollFlags:
    """Per-roll dice options.

    reroll_low_once is emphasis; no_explode marks an unskilled roll and wins over
    any explosion threshold.
    """

    reroll_low_once: bool = False
    no_explode: bool = False
    explode_threshold: int = SIDES


@dataclass(frozen=True)
class Formula:
    roll_dice: int
    keep_dice: int
    bonus: int
    reroll_low_once: bool
    explode_threshold: int | None


@dataclass
class DieResult:
    """One die of a roll: every face rolled for it, summed into value."""

    faces: list[int]
    rerolled: bool = False
    kept: bool = False

    @property
    def value(self) -> int:
        # A rerolled 1 is replaced, not added.
        return sum(self.faces[1:]) if self.rerolled else sum(self.faces)


@dataclass
class RollResult:
    formula: str
    total: int
    bonus: int
    dice: list[DieResult] = field(default_factory=list)

    @property
    def kept(self) -> list[DieResult]:
        return [d for d in self.dice if d.kept]


def compile_formula(pool: DicePool, flags: RollFlags | None = None) -> str:
    """Build the roll formula for a normalized pool.

    Args:
        pool: The pool to roll, normally already passed through the Ten Dice Rule.
        flags: Emphasis / unskilled options. Defaults to a plain exploding roll.

    Returns:
        A formula string accepted by roll().
    """
    flags = flags or RollFlags()
    reroll = "r1" if flags.reroll_low_once else ""
    explode = "" if flags.no_explode else f"x{flags.explode_threshold}"
    sign = "-" if pool.bonus < 0 else "+"
    return f"{pool.roll_dice}d{SIDES}{reroll}k{pool.keep_dice}{explode}{sign}{abs(pool.bonus)}"


def parse_formula(formula: str) -> Formula:
    """Parse a compiled formula.

    Raises:
        DiceError: If the formula is malformed or out of range.
    """
    m = _FORMULA_RE.match(formula.strip())
    if not m:
        raise DiceError(f"Invalid roll formula: {formula!r}")

    roll_dice = int(m.group("roll"))
    sides = int(m.group("sides"))
    if sides != SIDES:
        raise DiceError(f"Only d{SIDES} pools are supported: {formula!r}")
    if roll_dice > _MAX_DICE:
        raise DiceError(f"Too many dice: {roll_dice} (max {_MAX_DICE})")

    explode = m.group("explode")
    threshold = int(explode) if explode is not None else None
    if threshold is not None and not 2 <= threshold <= SIDES:
        raise DiceError(f"Explosion threshold out of range: {threshold}")

    return Formula(
        roll_dice=roll_dice,
        keep_dice=int(m.group("keep")),
        bonus=int(m.group("bonus") or 0),
        reroll_low_once=bool(m.group("reroll")),
        explode_threshold=threshold,
    )


def _roll_die(reroll_low_once: bool, threshold: int | None) -> DieResult:
    face = random.randint(1, SIDES)
    die = DieResult(faces=[face])
    if reroll_low_once and face == 1:
        face = random.randint(1, SIDES)
        die.faces.append(face)
        die.rerolled = True
    if threshold is None:
        return die
    explosions = 0
    while face >= threshold and explosions < _MAX_EXPLOSIONS:
        face = random.randint(1, SIDES)
        die.faces.append(face)
        explosions += 1
    return die


def roll(formula: str) -> RollResult:
    """Execute a formula and return the dice and total.

    Args:
        formula: Formula string, e.g. "5d10k3x10+0".

    Returns:
        RollResult whose total is the sum of the kept dice plus the bonus.

    Raises:
        DiceError: If the formula is invalid.
    """
    parsed = parse_formula(formula)
    dice = [
        _roll_die(parsed.reroll_low_once, parsed.explode_threshold)
        for _ in range(parsed.roll_dice)
    ]
    ranked = sorted(range(len(dice)), key=lambda i: dice[i].value, reverse=True)
    for i in ranked[: parsed.keep_dice]:
        dice[i].kept = True
    total = sum(d.value for d in dice if d.kept) + parsed.bonus
    return RollResult(formula=formula, total=total, bonus=parsed.bonus, dice=dice)
