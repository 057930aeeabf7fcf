"""SQLAlchemy ORM models for the roll host."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rollkeep.database import Base

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ActorKind(str, enum.Enum):
    """Player character or NPC."""

    pc = "pc"
    npc = "npc"


# ---------------------------------------------------------------------------
# Timestamp mixin
# ---------------------------------------------------------------------------


class TimestampMixin:
    """Adds created_at and updated_at columns to any model."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Actor(TimestampMixin, Base):
    """A character whose sheet data the roll engine reads and spends from.

    data holds the sheet as JSON: void_points, spell_slots, wound_penalty,
    armor_tn, bonuses and effects.
    """

    __tablename__ = "actors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[ActorKind] = mapped_column(
        Enum(ActorKind, native_enum=False), nullable=False, default=ActorKind.pc
    )
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    messages: Mapped[list[RollMessage]] = relationship(
        back_populates="actor", cascade="all, delete-orphan"
    )


class RollMessage(TimestampMixin, Base):
    """A presented roll, as shown in the roll log."""

    __tablename__ = "roll_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_id: Mapped[int | None] = mapped_column(
        ForeignKey("actors.id", ondelete="CASCADE"), nullable=True
    )
    label: Mapped[str] = mapped_column(String(500), nullable=False)
    formula: Mapped[str] = mapped_column(String(50), nullable=False)
    total: Mapped[int] = mapped_column(Integer, nullable=False)
    result: Mapped[str | None] = mapped_column(String(20), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    actor: Mapped[Actor | None] = relationship(back_populates="messages")
