"""Bonus aggregation for a single roll.

Every additive modifier a roll receives is recorded as one Contribution in an
ordered list, so the pool a roll ends up with can be traced back to its
sources. Order is fixed: bonus tables, stance, situational, ad hoc. Resource
spends append their own contribution later in the pipeline.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rollkeep.actors import ActorData

# Bonus tables consulted per roll kind, in summation order.
BONUS_TABLES: dict[str, tuple[str, ...]] = {
    "skill": ("skill", "trait"),
    "ring": ("ring",),
    "trait": ("trait",),
    "weapon": (),
    "npc": (),
}

STANCE_IDS = frozenset(
    {
        "attackStance",
        "fullAttackStance",
        "defenseStance",
        "fullDefenseStance",
        "centerStance",
    }
)
FULL_ATTACK_STANCE = "fullAttackStance"
MOUNTED = "mounted"


def to_int(value: Any) -> int:
    """Coerce sheet data to int; anything unparseable counts as 0."""
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class BonusSet:
    """Extra rolled dice, extra kept dice and a flat total modifier."""

    roll: int = 0
    keep: int = 0
    total: int = 0

    def __add__(self, other: BonusSet) -> BonusSet:
        return BonusSet(self.roll + other.roll, self.keep + other.keep, self.total + other.total)

    def __bool__(self) -> bool:
        return bool(self.roll or self.keep or self.total)

    @classmethod
    def from_mapping(cls, data: Any) -> BonusSet:
        if not isinstance(data, dict):
            return cls()
        return cls(to_int(data.get("roll")), to_int(data.get("keep")), to_int(data.get("total")))


@dataclass(frozen=True)
class Contribution:
    source: str
    bonus: BonusSet


@dataclass
class Aggregation:
    contributions: list[Contribution] = field(default_factory=list)
    emphasis: bool = False

    def add(self, source: str, bonus: BonusSet) -> None:
        """Record a contribution. Empty bonuses are not recorded."""
        if bonus:
            self.contributions.append(Contribution(source, bonus))

    @property
    def total(self) -> BonusSet:
        result = BonusSet()
        for c in self.contributions:
            result = result + c.bonus
        return result

    def sources(self) -> list[str]:
        return [c.source for c in self.contributions]


def table_bonus(actor: ActorData | None, table: str, key: str | None) -> BonusSet:
    """Return the actor's bonus for one entry of a bonus table."""
    if actor is None or not key:
        return BonusSet()
    return BonusSet.from_mapping(actor.get(f"bonuses.{table}.{key.lower()}"))


def _effect_statuses(effect: dict[str, Any]) -> list[str]:
    ids = list(effect.get("statuses") or [])
    if effect.get("status"):
        ids.append(effect["status"])
    return ids


def _enabled_effects(actor: ActorData | None) -> Iterable[dict[str, Any]]:
    if actor is None:
        return []
    effects = actor.get("effects") or []
    return [e for e in effects if isinstance(e, dict) and not e.get("disabled")]


def active_stance(actor: ActorData | None) -> tuple[str, dict[str, Any]] | None:
    """Return (stance id, effect) for the first active stance marker, or None.

    Only the first marker counts, even when several stances are present.
    """
    for effect in _enabled_effects(actor):
        for status in _effect_statuses(effect):
            if status in STANCE_IDS:
                return status, effect
    return None


def stance_bonus(actor: ActorData | None, purpose: str | None) -> BonusSet:
    """Return the stance-derived bonus for an "attack" or "damage" roll."""
    if purpose is None:
        return BonusSet()
    found = active_stance(actor)
    if found is None:
        return BonusSet()
    stance, effect = found
    if purpose == "attack":
        if stance != FULL_ATTACK_STANCE:
            return BonusSet()
        flag = effect.get("attack_bonus")
        return BonusSet.from_mapping(flag) if isinstance(flag, dict) else BonusSet(2, 1, 0)
    if purpose == "damage":
        return BonusSet.from_mapping(effect.get("damage_bonus"))
    return BonusSet()


def is_mounted(actor: ActorData | None) -> bool:
    return any(MOUNTED in _effect_statuses(e) for e in _enabled_effects(actor))


def mounted_bonus(attacker: ActorData | None, target: ActorData | None) -> BonusSet:
    """+1k0 for a mounted attacker against a target on foot."""
    if target is None or not is_mounted(attacker) or is_mounted(target):
        return BonusSet()
    return BonusSet(roll=1)


def aggregate(
    actor: ActorData | None,
    kind: str,
    subject: str | None = None,
    *,
    trait: str | None = None,
    purpose: str | None = None,
    target: ActorData | None = None,
    ad_hoc: Iterable[tuple[str, BonusSet]] = (),
    emphasis: bool = False,
) -> Aggregation:
    """Collect every bonus that applies to one roll.

    Args:
        actor: Actor whose bonus tables and effects are read. May be None.
        kind: Roll kind key ("skill", "ring", "trait", "weapon", "npc").
        subject: Skill, ring or trait name the roll is for.
        trait: Trait paired with a skill roll; looked up in the trait table.
        purpose: "attack" or "damage" for combat rolls, which enables stance
            and mounted bonuses.
        target: Target of an attack, for the mounted bonus.
        ad_hoc: (source, bonus) pairs declared by the caller or the prompt.
        emphasis: Reroll-1s flag, carried through to the formula.

    Returns:
        Aggregation with contributions in source order.
    """
    result = Aggregation(emphasis=emphasis)
    for table in BONUS_TABLES[kind]:
        key = trait if table == "trait" and trait is not None else subject
        result.add(f"{table}:{key}", table_bonus(actor, table, key))

    result.add("stance", stance_bonus(actor, purpose))
    if purpose == "attack":
        result.add("mounted", mounted_bonus(actor, target))

    for source, bonus in ad_hoc:
        result.add(source, bonus)
    return result
