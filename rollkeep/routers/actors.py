"""Actor creation and lookup routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rollkeep.actors import RecordActor
from rollkeep.database import get_db
from rollkeep.models import Actor, RollMessage
from rollkeep.resources import resource_pool
from rollkeep.schemas import ActorCreate, ActorOut, RollMessageOut

router = APIRouter()


async def load_actor(actor_id: int, db: AsyncSession) -> Actor:
    """Return the actor or raise 404."""
    actor = await db.get(Actor, actor_id)
    if actor is None:
        raise HTTPException(status_code=404, detail="Actor not found")
    return actor


@router.post("/actors", response_model=ActorOut, status_code=201)
async def create_actor(body: ActorCreate, db: AsyncSession = Depends(get_db)) -> Actor:
    actor = Actor(name=body.name, kind=body.kind, data=body.data)
    db.add(actor)
    await db.commit()
    await db.refresh(actor)
    return actor


@router.get("/actors/{actor_id}", response_model=ActorOut)
async def get_actor(actor_id: int, db: AsyncSession = Depends(get_db)) -> Actor:
    return await load_actor(actor_id, db)


@router.get("/actors/{actor_id}/resources")
async def get_resources(actor_id: int, db: AsyncSession = Depends(get_db)) -> dict:
    actor = await load_actor(actor_id, db)
    pool = resource_pool(RecordActor(actor))
    return {"primary": pool.primary, "elemental": pool.elemental}


@router.get("/actors/{actor_id}/rolls", response_model=list[RollMessageOut])
async def list_rolls(actor_id: int, db: AsyncSession = Depends(get_db)) -> list[RollMessage]:
    await load_actor(actor_id, db)
    result = await db.execute(
        select(RollMessage).where(RollMessage.actor_id == actor_id).order_by(RollMessage.id)
    )
    return list(result.scalars().all())
