"""Roll routes: actor rolls through the roll pipeline, and free notation rolls."""

from __future__ import annotations

import logging
from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rollkeep import dice
from rollkeep.actors import ActorData, RecordActor
from rollkeep.config import ConfigProvider, SettingsConfigProvider
from rollkeep.database import get_db
from rollkeep.dice import compile_formula
from rollkeep.errors import PresentationFailure
from rollkeep.models import RollMessage
from rollkeep.notation import NotationError, parse
from rollkeep.orchestrator import (
    PRESENTATION_FAILED,
    PRESENTED,
    RollContext,
    RollReport,
    npc_roll,
    ring_roll,
    skill_roll,
    trait_roll,
    weapon_roll,
)
from rollkeep.presentation import LoggingNotifier, Notifier
from rollkeep.prompts import ModifierResult, StaticPrompt
from rollkeep.rendering import render_dice, render_roll_card
from rollkeep.routers.actors import load_actor
from rollkeep.schemas import (
    ContributionOut,
    NotationRollIn,
    OutcomeOut,
    RollIn,
    RollReportOut,
)
from rollkeep.target import RollOutcome, build_tn_label, resolve

logger = logging.getLogger(__name__)

router = APIRouter()


class RollLogPresenter:
    """Presents rolls as RollMessage rows in the roll log.

    present() only renders the card and queues the row. store() writes the
    queued rows in their own transaction, after the caller has committed any
    resource spend, so a failed log write never takes the spend with it.
    """

    def __init__(self, actor_id: int | None) -> None:
        self.actor_id = actor_id
        self.pending: list[RollMessage] = []

    def _message(self, label: str, rendered_dice: str, outcome: RollOutcome) -> RollMessage:
        return RollMessage(
            actor_id=self.actor_id,
            label=label,
            formula=outcome.formula,
            total=outcome.total,
            result=outcome.result,
            content=render_roll_card(label, rendered_dice, outcome),
        )

    def present(self, label: str, rendered_dice: str, outcome: RollOutcome) -> None:
        self.pending.append(self._message(label, rendered_dice, outcome))

    async def store(self, db: AsyncSession) -> None:
        """Commit the queued rows.

        Raises:
            PresentationFailure: If the rows could not be written. The session
                is rolled back; earlier commits are untouched.
        """
        db.add_all(self.pending)
        try:
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Failed to write %d roll log message(s)", len(self.pending))
            raise PresentationFailure("The roll could not be displayed") from exc
        finally:
            self.pending = []


async def _store_log(
    presenter: RollLogPresenter, db: AsyncSession, report: RollReport, notifier: Notifier
) -> RollReport:
    try:
        await presenter.store(db)
    except PresentationFailure as exc:
        notifier.error(str(exc))
        return replace(report, status=PRESENTATION_FAILED, message=str(exc))
    return report


def get_config() -> ConfigProvider:
    return SettingsConfigProvider()


def _report_out(report: RollReport) -> RollReportOut:
    return RollReportOut(
        status=report.status,
        label=report.label,
        outcome=OutcomeOut.model_validate(report.outcome) if report.outcome else None,
        message=report.message,
        contributions=[
            ContributionOut(
                source=c.source, roll=c.bonus.roll, keep=c.bonus.keep, total=c.bonus.total
            )
            for c in report.contributions
        ],
    )


async def _dispatch(
    body: RollIn, context: RollContext, actor: ActorData, target: ActorData | None
) -> RollReport:
    """Call the entry point for the declared roll kind."""
    if body.kind == "skill":
        if not body.trait:
            raise HTTPException(status_code=422, detail="Skill rolls need a trait")
        return await skill_roll(
            context,
            skill=body.subject,
            skill_rank=body.rank,
            trait=body.trait,
            trait_rank=body.trait_rank,
            actor=actor,
            roll_type=body.roll_type,
            target=target,
            ask_for_options=body.ask_for_options,
            penalty=body.penalty,
        )
    if body.kind == "ring":
        return await ring_roll(
            context,
            ring=body.subject,
            ring_rank=body.rank,
            actor=actor,
            ask_for_options=body.ask_for_options,
            penalty=body.penalty,
        )
    if body.kind == "trait":
        return await trait_roll(
            context,
            trait=body.subject,
            trait_rank=body.rank,
            actor=actor,
            unskilled=body.unskilled,
            ask_for_options=body.ask_for_options,
            penalty=body.penalty,
        )
    if body.kind == "weapon":
        if body.dice_roll is None or body.dice_keep is None:
            raise HTTPException(status_code=422, detail="Weapon rolls need dice_roll and dice_keep")
        return await weapon_roll(
            context,
            weapon=body.subject,
            damage_roll=body.dice_roll,
            damage_keep=body.dice_keep,
            actor=actor,
            attack_raises=body.attack_raises,
            description=body.description,
            ask_for_options=body.ask_for_options,
        )
    return await npc_roll(
        context,
        name=body.subject,
        dice_roll=body.dice_roll,
        dice_keep=body.dice_keep,
        trait=body.trait,
        trait_rank=body.trait_rank if body.trait else None,
        ring_rank=None if body.trait else body.rank,
        actor=actor,
        roll_type=body.roll_type,
        target=target,
        untrained=body.unskilled,
        ask_for_options=body.ask_for_options,
        penalty=body.penalty,
    )


@router.post("/actors/{actor_id}/rolls", response_model=RollReportOut)
async def roll_for_actor(
    actor_id: int,
    body: RollIn,
    db: AsyncSession = Depends(get_db),
    config: ConfigProvider = Depends(get_config),
) -> RollReportOut:
    record = await load_actor(actor_id, db)
    target = None
    if body.target_id is not None:
        target = RecordActor(await load_actor(body.target_id, db))

    answer = None if body.cancel else (body.modifiers or ModifierResult())
    presenter = RollLogPresenter(record.id)
    notifier = LoggingNotifier()
    context = RollContext(
        config=config,
        prompt=StaticPrompt(answer),
        presenter=presenter,
        notifier=notifier,
    )
    report = await _dispatch(body, context, RecordActor(record), target)
    # Spends are committed on their own, before the roll log is written.
    await db.commit()
    report = await _store_log(presenter, db, report, notifier)
    logger.debug("Roll for actor %d finished with status %s", actor_id, report.status)
    return _report_out(report)


@router.post("/rolls", response_model=RollReportOut)
async def roll_notation(
    body: NotationRollIn,
    db: AsyncSession = Depends(get_db),
    config: ConfigProvider = Depends(get_config),
) -> RollReportOut:
    try:
        parsed = parse(body.notation, config=config)
    except NotationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    formula = compile_formula(parsed.pool, parsed.flags)
    result = dice.roll(formula)
    outcome = resolve(result.total, body.tn, body.raises, formula=formula)
    label = f"Roll: {body.notation}"
    if outcome.success is not None:
        label += build_tn_label(outcome.effective_tn, body.raises)

    presenter = RollLogPresenter(None)
    presenter.present(label, render_dice(result), outcome)
    report = RollReport(status=PRESENTED, label=label, outcome=outcome)
    report = await _store_log(presenter, db, report, LoggingNotifier())
    return _report_out(report)
