"""Pydantic request and response models for the HTTP API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from rollkeep.models import ActorKind
from rollkeep.prompts import ModifierResult

# Upper bound on ranks and dice counts accepted over HTTP.
MAX_RANK = 100


class ActorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    kind: ActorKind = ActorKind.pc
    data: dict[str, Any] = Field(default_factory=dict)


class ActorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    kind: ActorKind
    data: dict[str, Any]


class RollIn(BaseModel):
    """A roll declared over HTTP.

    modifiers carries the answers to the modifier prompt, for rolls where the
    prompt is shown. cancel answers the prompt with a cancellation.
    """

    kind: Literal["skill", "ring", "trait", "weapon", "npc"]
    subject: str = Field(min_length=1, max_length=100)
    rank: int = Field(default=0, ge=0, le=MAX_RANK)
    trait: str | None = None
    trait_rank: int = Field(default=0, ge=0, le=MAX_RANK)
    dice_roll: int | None = Field(default=None, ge=0, le=MAX_RANK)
    dice_keep: int | None = Field(default=None, ge=0, le=MAX_RANK)
    roll_type: Literal["attack"] | None = None
    target_id: int | None = None
    attack_raises: int = Field(default=0, ge=0, le=MAX_RANK)
    description: str | None = None
    unskilled: bool = False
    penalty: int | None = Field(default=None, ge=0)
    ask_for_options: bool = True
    modifiers: ModifierResult | None = None
    cancel: bool = False


class NotationRollIn(BaseModel):
    notation: str = Field(min_length=1, max_length=50)
    tn: int = Field(default=0, ge=0)
    raises: int = Field(default=0, ge=0)


class OutcomeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    formula: str
    total: int
    effective_tn: int
    raises_achieved: int
    success: bool | None
    result: str | None


class ContributionOut(BaseModel):
    source: str
    roll: int
    keep: int
    total: int


class RollReportOut(BaseModel):
    status: str
    label: str
    outcome: OutcomeOut | None = None
    message: str | None = None
    contributions: list[ContributionOut] = Field(default_factory=list)


class RollMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    label: str
    formula: str
    total: int
    result: str | None
    content: str
