"""Void point and spell slot spending.

Resources are spent when the roll is declared, before any die is rolled, as at
the table: the player commits before knowing the result. A spend is never
refunded, whether the roll later fails or its result cannot be shown.

The check and the decrement are not atomic. Two rolls racing on the same actor
can both see the last point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rollkeep.bonuses import BonusSet, to_int
from rollkeep.errors import NoActorResolved

if TYPE_CHECKING:
    from rollkeep.actors import ActorData

logger = logging.getLogger(__name__)

PRIMARY = "void"
VOID_SLOT = "void_slot"
ELEMENTS: tuple[str, ...] = ("water", "air", "fire", "earth", "void")

VOID_POINT_BONUS = BonusSet(roll=1, keep=1)

_PRIMARY_PATH = "void_points"


@dataclass(frozen=True)
class ResourcePool:
    primary: int
    elemental: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class SpendResult:
    ok: bool
    bonus: BonusSet = BonusSet()
    tag: str = ""
    remaining: int = 0
    message: str | None = None


def resolve_actor(*candidates: ActorData | None) -> ActorData | None:
    """Return the first actor that is not None."""
    for actor in candidates:
        if actor is not None:
            return actor
    return None


def _slot_path(element: str) -> str:
    return f"spell_slots.{element}"


def resource_pool(actor: ActorData) -> ResourcePool:
    """Snapshot an actor's void points and spell slots."""
    return ResourcePool(
        primary=max(0, to_int(actor.get(_PRIMARY_PATH, 0))),
        elemental={e: max(0, to_int(actor.get(_slot_path(e), 0))) for e in ELEMENTS},
    )


def _resource_path(resource: str) -> tuple[str, str]:
    """Return (data path, display label) for a resource kind."""
    if resource == PRIMARY:
        return _PRIMARY_PATH, "Void Points"
    if resource == VOID_SLOT:
        return _slot_path("void"), "Void Slot"
    if resource in ELEMENTS:
        return _slot_path(resource), f"{resource.title()} Slot"
    raise ValueError(f"Unknown resource: {resource!r}")


def spend(actor: ActorData | None, resource: str) -> SpendResult:
    """Spend one unit of a resource.

    Args:
        actor: Actor whose counter is decremented.
        resource: "void" for a void point, an element name for an elemental
            spell slot, or "void_slot".

    Returns:
        SpendResult. On success the counter has already been decremented by 1;
        a void point carries +1k1, spell slots carry only a label tag. On
        failure nothing was changed.

    Raises:
        NoActorResolved: If actor is None.
        ValueError: If resource is not a known kind.
    """
    path, label = _resource_path(resource)
    if actor is None:
        raise NoActorResolved()

    current = max(0, to_int(actor.get(path, 0)))
    if current <= 0:
        logger.warning("%s has no %s left", actor.name, label)
        return SpendResult(ok=False, message=f"{label}: 0")

    remaining = current - 1
    actor.set(path, remaining)
    logger.debug("%s spent %s, %d left", actor.name, label, remaining)

    if resource == PRIMARY:
        return SpendResult(ok=True, bonus=VOID_POINT_BONUS, remaining=remaining)
    return SpendResult(ok=True, tag=f"[{label}]", remaining=remaining)
