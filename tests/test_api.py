"""Tests for the HTTP roll host."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from rollkeep.models import Actor, RollMessage
from rollkeep.routers.rolls import RollLogPresenter


@pytest.fixture(autouse=True)
def fixed_dice():
    with patch("rollkeep.dice.random.randint", return_value=5):
        yield


async def _create_actor(client: AsyncClient, name: str = "Hida Kisada", **data) -> int:
    response = await client.post("/actors", json={"name": name, "data": data})
    assert response.status_code == 201
    return response.json()["id"]


def _kenjutsu(**extra) -> dict:
    body = {
        "kind": "skill",
        "subject": "Kenjutsu",
        "rank": 2,
        "trait": "Agility",
        "trait_rank": 3,
    }
    body.update(extra)
    return body


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_create_and_get_actor(client):
    actor_id = await _create_actor(client, void_points=2)
    response = await client.get(f"/actors/{actor_id}")
    assert response.status_code == 200
    assert response.json()["data"] == {"void_points": 2}
    assert response.json()["kind"] == "pc"


async def test_unknown_actor_is_404(client):
    response = await client.get("/actors/999")
    assert response.status_code == 404


async def test_resources(client):
    actor_id = await _create_actor(client, void_points=3, spell_slots={"fire": 2})
    response = await client.get(f"/actors/{actor_id}/resources")
    assert response.json()["primary"] == 3
    assert response.json()["elemental"]["fire"] == 2
    assert response.json()["elemental"]["air"] == 0


# ---------------------------------------------------------------------------
# Actor rolls
# ---------------------------------------------------------------------------


async def test_skill_roll_is_logged(client, session_factory):
    actor_id = await _create_actor(client)
    response = await client.post(f"/actors/{actor_id}/rolls", json=_kenjutsu())
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "presented"
    assert body["outcome"]["formula"] == "5d10k3x10+0"
    assert body["outcome"]["total"] == 15

    async with session_factory() as db:
        messages = (await db.execute(select(RollMessage))).scalars().all()
    assert len(messages) == 1
    assert messages[0].actor_id == actor_id
    assert "roll-card" in messages[0].content

    log = await client.get(f"/actors/{actor_id}/rolls")
    assert [m["formula"] for m in log.json()] == ["5d10k3x10+0"]


async def test_void_spend_is_persisted(client, session_factory):
    actor_id = await _create_actor(client, void_points=2)
    response = await client.post(
        f"/actors/{actor_id}/rolls", json=_kenjutsu(modifiers={"void": True})
    )
    assert response.json()["outcome"]["formula"] == "6d10k4x10+0"

    async with session_factory() as db:
        actor = await db.get(Actor, actor_id)
    assert actor.data["void_points"] == 1


async def test_insufficient_void_reported(client):
    actor_id = await _create_actor(client, void_points=0)
    response = await client.post(
        f"/actors/{actor_id}/rolls", json=_kenjutsu(modifiers={"void": True})
    )
    assert response.status_code == 200
    assert response.json()["status"] == "insufficient_resource"
    assert response.json()["message"] == "Void Points: 0"
    assert response.json()["outcome"] is None


async def test_cancelled_roll_logs_nothing(client):
    actor_id = await _create_actor(client, void_points=2)
    response = await client.post(
        f"/actors/{actor_id}/rolls", json=_kenjutsu(cancel=True, modifiers={"void": True})
    )
    assert response.json()["status"] == "cancelled"

    log = await client.get(f"/actors/{actor_id}/rolls")
    assert log.json() == []
    actor = await client.get(f"/actors/{actor_id}")
    assert actor.json()["data"]["void_points"] == 2


async def test_attack_against_target(client):
    actor_id = await _create_actor(client)
    target_id = await _create_actor(client, "Bayushi Shoju", armor_tn=20)
    response = await client.post(
        f"/actors/{actor_id}/rolls",
        json=_kenjutsu(roll_type="attack", target_id=target_id),
    )
    body = response.json()
    assert body["outcome"]["effective_tn"] == 20
    assert body["outcome"]["result"] == "missed"
    assert "vs Bayushi Shoju" in body["label"]


async def test_weapon_roll(client):
    actor_id = await _create_actor(client)
    response = await client.post(
        f"/actors/{actor_id}/rolls",
        json={"kind": "weapon", "subject": "Katana", "dice_roll": 3, "dice_keep": 2, "attack_raises": 1},
    )
    assert response.json()["outcome"]["formula"] == "4d10k2x10+0"


async def test_npc_roll_from_trait(client):
    actor_id = await _create_actor(client, "Ronin")
    response = await client.post(
        f"/actors/{actor_id}/rolls",
        json={"kind": "npc", "subject": "Ronin", "trait": "Strength", "trait_rank": 3, "unskilled": True},
    )
    assert response.json()["outcome"]["formula"] == "3d10k3+0"


async def test_skill_roll_needs_trait(client):
    actor_id = await _create_actor(client)
    response = await client.post(
        f"/actors/{actor_id}/rolls", json={"kind": "skill", "subject": "Kenjutsu", "rank": 2}
    )
    assert response.status_code == 422


async def test_weapon_roll_needs_dice(client):
    actor_id = await _create_actor(client)
    response = await client.post(
        f"/actors/{actor_id}/rolls", json={"kind": "weapon", "subject": "Katana"}
    )
    assert response.status_code == 422


async def test_huge_rank_rejected(client):
    actor_id = await _create_actor(client)
    response = await client.post(
        f"/actors/{actor_id}/rolls",
        json={"kind": "trait", "subject": "Stamina", "rank": 10**12, "ask_for_options": False},
    )
    assert response.status_code == 422


async def test_ring_roll_with_unknown_ring(client):
    actor_id = await _create_actor(client, void_points=1)
    response = await client.post(
        f"/actors/{actor_id}/rolls",
        json={
            "kind": "ring",
            "subject": "Honor",
            "rank": 2,
            "modifiers": {"void": True, "spell_slot": True},
        },
    )
    assert response.status_code == 200
    assert response.json()["status"] == "presented"
    assert response.json()["outcome"]["formula"] == "3d10k3x10+0"


async def test_spend_survives_failed_log_write(client, session_factory, monkeypatch):
    actor_id = await _create_actor(client, void_points=2)

    def _unwritable(self, label, rendered_dice, outcome):
        # content is NOT NULL, so the insert fails at commit.
        return RollMessage(
            actor_id=self.actor_id,
            label=label,
            formula=outcome.formula,
            total=outcome.total,
            content=None,
        )

    monkeypatch.setattr(RollLogPresenter, "_message", _unwritable)
    response = await client.post(
        f"/actors/{actor_id}/rolls", json=_kenjutsu(modifiers={"void": True})
    )
    assert response.status_code == 200
    assert response.json()["status"] == "presentation_failed"
    assert response.json()["message"] == "The roll could not be displayed"

    async with session_factory() as db:
        actor = await db.get(Actor, actor_id)
        messages = (await db.execute(select(RollMessage))).scalars().all()
    assert actor.data["void_points"] == 1
    assert messages == []


async def test_roll_for_unknown_actor(client):
    response = await client.post("/actors/999/rolls", json=_kenjutsu())
    assert response.status_code == 404


async def test_house_rule_read_per_request(client, config):
    actor_id = await _create_actor(client)
    first = await client.post(f"/actors/{actor_id}/rolls", json=_kenjutsu())
    config.lt_exception = True
    second = await client.post(f"/actors/{actor_id}/rolls", json=_kenjutsu())
    assert first.json()["outcome"]["formula"] == "5d10k3x10+0"
    assert second.json()["outcome"]["formula"] == "5d10k3x10+2"


# ---------------------------------------------------------------------------
# Notation rolls
# ---------------------------------------------------------------------------


async def test_notation_roll(client, session_factory):
    response = await client.post("/rolls", json={"notation": "6k3", "tn": 10})
    assert response.status_code == 200
    body = response.json()
    assert body["label"] == "Roll: 6k3 [TN 10]"
    assert body["outcome"]["formula"] == "6d10k3x10+0"
    assert body["outcome"]["result"] == "success"

    async with session_factory() as db:
        message = (await db.execute(select(RollMessage))).scalar_one()
    assert message.actor_id is None


async def test_bad_notation_is_422(client):
    response = await client.post("/rolls", json={"notation": "six dice"})
    assert response.status_code == 422
    assert "Invalid roll notation" in response.json()["detail"]
