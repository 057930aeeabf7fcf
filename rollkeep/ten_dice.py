"""Ten Dice Rule: caps a roll-and-keep pool at 10k10.

Excess dice are converted rather than discarded:

  1. Rolled dice above 10 become "extras"; rolled dice are capped at 10.
  2. Every 3 extras become 2 more kept dice.
  3. Kept dice above 10 are removed two at a time (each pair is a "rise").
  4. With the Lieutenant exception house rule on, a pool keeping fewer than
     10 dice gets +2.
  5. Once 10 dice are kept, each remaining extra is worth +2.

Examples (house rule off):
  6k3    -> 6k3
  12k8   -> 10k8      (two extras are not enough for a conversion)
  13k8   -> 10k10
  14k10  -> 10k10+2   (three extras convert, the fourth is worth +2)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rollkeep.config import ConfigProvider

MAX_DICE = 10


@dataclass(frozen=True)
class DicePool:
    """How many d10 are rolled, how many of the highest are kept, and a flat bonus."""

    roll_dice: int
    keep_dice: int
    bonus: int = 0

    def __str__(self) -> str:
        sign = "-" if self.bonus < 0 else "+"
        return f"{self.roll_dice}k{self.keep_dice}{sign}{abs(self.bonus)}"


def normalize(
    roll_dice: int,
    keep_dice: int,
    bonus: int = 0,
    *,
    config: ConfigProvider | None = None,
) -> DicePool:
    """Apply the Ten Dice Rule to a pool.

    Args:
        roll_dice: Dice to roll before capping. Negative values count as 0.
        keep_dice: Dice to keep before capping. Negative values count as 0.
        bonus: Flat modifier, passed through and increased by conversions.
        config: Provider for the Lieutenant exception flag. The flag is read
            on every call; without a provider the house rule is off.

    Returns:
        A DicePool with roll_dice and keep_dice in [0, 10].
    """
    roll_dice = max(0, roll_dice)
    keep_dice = max(0, keep_dice)

    extras = 0
    if roll_dice > MAX_DICE:
        extras = roll_dice - MAX_DICE
        roll_dice = MAX_DICE

    conversions, extras = divmod(extras, 3)
    keep_dice += 2 * conversions

    # Rises carry no bonus of their own.
    if keep_dice > MAX_DICE:
        keep_dice -= 2 * ((keep_dice - MAX_DICE + 1) // 2)

    house_rule = config.house_rule_enabled() if config is not None else False
    if house_rule and keep_dice < MAX_DICE:
        bonus += 2

    if keep_dice == MAX_DICE:
        bonus += extras * 2

    return DicePool(roll_dice, keep_dice, bonus)
