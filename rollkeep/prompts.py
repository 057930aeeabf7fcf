"""Modifier prompt contract.

The engine describes which optional fields a roll can take; whatever shows the
prompt (a dialog, an HTTP request body) answers with a ModifierResult or the
CANCELLED marker.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Final

from pydantic import BaseModel, Field


class PromptDescriptor(BaseModel):
    """Which fields the prompt for one roll should offer."""

    title: str
    kind: str
    penalty_toggle: bool = True
    emphasis_toggle: bool = False
    unskilled_toggle: bool = False
    modifiers: bool = True
    void_toggle: bool = False
    spell_slot_toggles: bool = False
    target_fields: bool = True
    attack_raises: int = 0


class ModifierResult(BaseModel):
    """Answers from the modifier prompt. Fields the prompt did not offer are ignored."""

    apply_penalty: bool = True
    emphasis: bool = False
    unskilled: bool = False
    roll_mod: int = 0
    keep_mod: int = 0
    total_mod: int = 0
    void: bool = False
    spell_slot: bool = False
    void_slot: bool = False
    tn: int = Field(default=0, ge=0)
    raises: int = Field(default=0, ge=0)


class _Cancelled:
    _instance: _Cancelled | None = None

    def __new__(cls) -> _Cancelled:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CANCELLED"


CANCELLED: Final = _Cancelled()

PromptResponse = ModifierResult | _Cancelled
Prompt = Callable[[PromptDescriptor], Awaitable[PromptResponse]]


class StaticPrompt:
    """Prompt that answers with a result submitted ahead of time.

    Pass None to answer with CANCELLED.
    """

    def __init__(self, result: ModifierResult | None) -> None:
        self.result = result
        self.seen: list[PromptDescriptor] = []

    async def __call__(self, descriptor: PromptDescriptor) -> PromptResponse:
        self.seen.append(descriptor)
        return CANCELLED if self.result is None else self.result
