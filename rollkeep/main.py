from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rollkeep import models as _models  # noqa: F401 - registers models with Base.metadata
from rollkeep.config import settings
from rollkeep.database import Base, engine
from rollkeep.routers import actors, rolls


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


app = FastAPI(title="Rollkeep", lifespan=lifespan)

app.include_router(actors.router)
app.include_router(rolls.router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "environment": settings.environment}
