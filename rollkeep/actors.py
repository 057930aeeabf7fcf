"""Actor data access for the roll engine.

The engine reads and writes actor data through dotted paths, e.g.
``bonuses.skill.kenjutsu`` or ``spell_slots.fire``. Expected layout:

    {
        "void_points": 2,
        "spell_slots": {"water": 1, "air": 0, "fire": 2, "earth": 0, "void": 1},
        "wound_penalty": 5,
        "armor_tn": 20,
        "bonuses": {
            "skill": {"kenjutsu": {"roll": 1, "keep": 0, "total": 0}},
            "trait": {"agi": {...}},
            "ring": {"fire": {...}},
        },
        "effects": [{"status": "fullAttackStance", "disabled": False}],
    }
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from rollkeep.models import Actor

_MISSING = object()


class ActorData(Protocol):
    name: str

    def get(self, path: str, default: Any = None) -> Any: ...

    def set(self, path: str, value: int) -> None: ...


def get_path(data: dict[str, Any], path: str, default: Any = None) -> Any:
    """Read a dotted path from nested dicts, returning default when any key is missing."""
    node: Any = data
    for key in path.split("."):
        if not isinstance(node, dict):
            return default
        node = node.get(key, _MISSING)
        if node is _MISSING:
            return default
    return node


def set_path(data: dict[str, Any], path: str, value: Any) -> None:
    """Write a value at a dotted path, creating intermediate dicts."""
    keys = path.split(".")
    node = data
    for key in keys[:-1]:
        node = node.setdefault(key, {})
    node[keys[-1]] = value


class InMemoryActor:
    """Actor backed by a plain dict."""

    def __init__(self, name: str, data: dict[str, Any] | None = None) -> None:
        self.name = name
        self.data: dict[str, Any] = data if data is not None else {}

    def get(self, path: str, default: Any = None) -> Any:
        return get_path(self.data, path, default)

    def set(self, path: str, value: int) -> None:
        set_path(self.data, path, value)

    def __repr__(self) -> str:
        return f"InMemoryActor({self.name!r})"


class RecordActor:
    """Actor backed by an Actor row's JSON data column.

    Writes replace the whole column value so the ORM sees the change; the
    caller's session commit persists it.
    """

    def __init__(self, record: Actor) -> None:
        self.record = record

    @property
    def name(self) -> str:
        return self.record.name

    def get(self, path: str, default: Any = None) -> Any:
        return get_path(self.record.data or {}, path, default)

    def set(self, path: str, value: int) -> None:
        data = copy.deepcopy(self.record.data or {})
        set_path(data, path, value)
        self.record.data = data
