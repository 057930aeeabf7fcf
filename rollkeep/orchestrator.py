"""Roll pipeline shared by every roll kind.

Each roll moves through fixed steps:

  idle -> awaiting_modifiers (optional) -> resource_check -> normalize
       -> compile -> execute -> resolve -> present -> done

The modifier prompt is the only suspension point and is skipped when the
caller's ask_for_options already matches the configured preference for the
kind. Cancelling the prompt ends the roll with nothing spent. Once a resource
has been spent the remaining steps run synchronously to the end and nothing
is refunded, even if the result cannot be presented.

Roll kinds differ only in their RollKind descriptor: which prompt fields they
offer, when the penalty applies, and whether void points are actually spent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rollkeep import dice
from rollkeep.bonuses import Aggregation, BonusSet, Contribution, aggregate, to_int
from rollkeep.dice import RollFlags, RollResult, compile_formula
from rollkeep.errors import (
    InsufficientResource,
    NoActorResolved,
    PresentationFailure,
    UserCancelled,
)
from rollkeep.presentation import LoggingNotifier, build_modifier_label
from rollkeep.prompts import ModifierResult, PromptDescriptor
from rollkeep.rendering import render_dice
from rollkeep.resources import (
    ELEMENTS,
    PRIMARY,
    VOID_POINT_BONUS,
    VOID_SLOT,
    resolve_actor,
    spend,
)
from rollkeep.target import RollOutcome, build_tn_label, present_result, resolve
from rollkeep.ten_dice import DicePool, normalize

if TYPE_CHECKING:
    from rollkeep.actors import ActorData
    from rollkeep.config import ConfigProvider
    from rollkeep.presentation import Notifier, Presenter
    from rollkeep.prompts import Prompt

logger = logging.getLogger(__name__)

# Report statuses
PRESENTED = "presented"
CANCELLED = "cancelled"
INSUFFICIENT_RESOURCE = "insufficient_resource"
NO_ACTOR = "no_actor"
PRESENTATION_FAILED = "presentation_failed"


@dataclass(frozen=True)
class RollKind:
    """What distinguishes one roll kind's pipeline from another's.

    penalty is "always", "attack" (attack rolls only) or "never". stance is the
    stance bonus purpose every roll of this kind uses; attack rolls of any kind
    use "attack".
    """

    key: str
    title: str
    emphasis: bool = False
    unskilled: bool = False
    void: bool = True
    spell_slots: bool = False
    target_fields: bool = True
    penalty: str = "always"
    stance: str | None = None
    spends_primary: bool = True


SKILL = RollKind("skill", "Skill Roll", emphasis=True)
RING = RollKind("ring", "Ring Roll", spell_slots=True)
TRAIT = RollKind("trait", "Trait Roll", unskilled=True)
WEAPON = RollKind(
    "weapon", "Damage Roll", void=False, target_fields=False, penalty="never", stance="damage"
)
NPC = RollKind("npc", "NPC Roll", unskilled=True, penalty="attack", spends_primary=False)


@dataclass
class RollAction:
    """A declared roll, before any modifiers are gathered."""

    kind: RollKind
    subject: str
    base_roll: int
    base_keep: int
    actor: ActorData | None = None
    trait: str | None = None
    roll_type: str | None = None
    target: ActorData | None = None
    ask_for_options: bool = True
    penalty: int | None = None
    preset: BonusSet = field(default_factory=BonusSet)
    attack_raises: int = 0
    unskilled: bool = False
    description: str | None = None


@dataclass
class RollContext:
    config: ConfigProvider
    prompt: Prompt
    presenter: Presenter
    notifier: Notifier = field(default_factory=LoggingNotifier)
    default_actor: ActorData | None = None


@dataclass(frozen=True)
class RollRequest:
    base_roll: int
    base_keep: int
    flags: RollFlags
    target_number: int = 0
    raises: int = 0
    penalty: int = 0


@dataclass
class RollReport:
    status: str
    label: str = ""
    request: RollRequest | None = None
    pool: DicePool | None = None
    outcome: RollOutcome | None = None
    rendered: str = ""
    message: str | None = None
    contributions: list[Contribution] = field(default_factory=list)
    state: str = "idle"

    @property
    def formula(self) -> str | None:
        return self.outcome.formula if self.outcome else None


class RollPipeline:
    """One run of the roll state machine for a single action."""

    def __init__(self, action: RollAction, context: RollContext) -> None:
        self.action = action
        self.context = context
        self.state = "idle"
        self.label = _base_label(action)
        self.actor: ActorData | None = None
        self.modifiers = ModifierResult()
        self.aggregation = Aggregation()
        self.base_tn = 0
        self.penalty = 0
        self.apply_penalty = False
        self.request: RollRequest | None = None
        self.pool: DicePool | None = None
        self.formula: str | None = None
        self.result: RollResult | None = None
        self.outcome: RollOutcome | None = None
        self.rendered = ""

    @property
    def kind(self) -> RollKind:
        return self.action.kind

    async def run(self) -> None:
        self.actor = resolve_actor(self.action.actor, self.context.default_actor)
        await self._await_modifiers()
        self._aggregate()
        self._prepare_target()
        self._check_resources()
        self._normalize()
        self._compile()
        self._execute()
        self._resolve()
        self._present()
        self.state = "done"

    def descriptor(self) -> PromptDescriptor:
        kind = self.kind
        void = kind.void and (kind.spends_primary or self.context.config.allow_npc_void_points())
        return PromptDescriptor(
            title=self.label,
            kind=kind.key,
            penalty_toggle=kind.penalty != "never",
            emphasis_toggle=kind.emphasis,
            unskilled_toggle=kind.unskilled,
            void_toggle=void,
            spell_slot_toggles=kind.spell_slots and self.action.subject.lower() in ELEMENTS,
            target_fields=kind.target_fields,
            attack_raises=self.action.attack_raises,
        )

    async def _await_modifiers(self) -> None:
        preference = self.context.config.show_roll_options(self.kind.key)
        if self.action.ask_for_options == preference:
            return
        self.state = "awaiting_modifiers"
        descriptor = self.descriptor()
        answer = await self.context.prompt(descriptor)
        if not isinstance(answer, ModifierResult):
            raise UserCancelled()
        self.modifiers = _restrict(answer, descriptor)

    def _prepare_target(self) -> None:
        self.state = "resource_check"
        action, mods = self.action, self.modifiers
        self.base_tn = mods.tn
        if action.roll_type == "attack" and action.target is not None:
            self.label += f" vs {action.target.name}"
            if self.base_tn == 0:
                self.base_tn = max(0, to_int(action.target.get("armor_tn", 0)))

        policy = self.kind.penalty
        allowed = policy == "always" or (policy == "attack" and action.roll_type == "attack")
        self.apply_penalty = allowed and mods.apply_penalty and self.base_tn > 0
        if not self.apply_penalty:
            return
        if action.penalty is not None:
            self.penalty = max(0, action.penalty)
            return
        if self.actor is None:
            raise NoActorResolved("No actor to look up the wound penalty for")
        self.penalty = max(0, to_int(self.actor.get("wound_penalty", 0)))

    def _aggregate(self) -> None:
        action, mods = self.action, self.modifiers
        ad_hoc = [("preset", action.preset)]
        if action.attack_raises:
            ad_hoc.append(("attack_raises", BonusSet(roll=action.attack_raises)))
        ad_hoc.append(("modifiers", BonusSet(mods.roll_mod, mods.keep_mod, mods.total_mod)))

        purpose = self.kind.stance or ("attack" if action.roll_type == "attack" else None)
        self.aggregation = aggregate(
            self.actor,
            self.kind.key,
            action.subject,
            trait=action.trait,
            purpose=purpose,
            target=action.target,
            ad_hoc=ad_hoc,
            emphasis=mods.emphasis,
        )

        if mods.emphasis:
            self.label += " (Emphasis)"
        if self.unskilled:
            self.label += " (Unskilled)"
        self.label += build_modifier_label(mods.roll_mod, mods.keep_mod, mods.total_mod)
        if action.attack_raises:
            n = action.attack_raises
            self.label += f" [Raises: {n} (+{n}k0)]"

    @property
    def unskilled(self) -> bool:
        return self.action.unskilled or self.modifiers.unskilled

    def _spend(self, resource: str) -> BonusSet:
        if self.actor is None:
            raise NoActorResolved()
        spent = spend(self.actor, resource)
        if not spent.ok:
            raise InsufficientResource(resource, spent.message)
        if spent.tag:
            self.label += f" {spent.tag}"
        return spent.bonus

    def _check_resources(self) -> None:
        mods = self.modifiers
        if mods.void:
            if self.kind.spends_primary:
                self.aggregation.add("void", self._spend(PRIMARY))
            else:
                self.aggregation.add("void", VOID_POINT_BONUS)
            self.label += " Void!"
        if mods.spell_slot:
            element = self.action.subject.lower()
            self._spend(VOID_SLOT if element == "void" else element)
        if mods.void_slot:
            self._spend(VOID_SLOT)

    def _normalize(self) -> None:
        self.state = "normalize"
        bonus = self.aggregation.total
        self.request = RollRequest(
            base_roll=self.action.base_roll,
            base_keep=self.action.base_keep,
            flags=RollFlags(reroll_low_once=self.aggregation.emphasis, no_explode=self.unskilled),
            target_number=self.base_tn,
            raises=self.modifiers.raises,
            penalty=self.penalty,
        )
        self.pool = normalize(
            self.request.base_roll + bonus.roll,
            self.request.base_keep + bonus.keep,
            bonus.total,
            config=self.context.config,
        )

    def _compile(self) -> None:
        self.state = "compile"
        self.formula = compile_formula(self.pool, self.request.flags)
        logger.debug("%s: %s", self.label, self.formula)

    def _execute(self) -> None:
        self.state = "execute"
        self.result = dice.roll(self.formula)

    def _resolve(self) -> None:
        self.state = "resolve"
        raises = self.modifiers.raises
        outcome = resolve(
            self.result.total,
            self.base_tn,
            raises,
            self.penalty,
            self.apply_penalty,
            formula=self.formula,
        )
        self.outcome = present_result(outcome, self.action.roll_type)
        if outcome.success is not None:
            self.label += build_tn_label(outcome.effective_tn, raises)

    def _present(self) -> None:
        self.state = "present"
        try:
            self.rendered = render_dice(self.result)
            self.context.presenter.present(self.label, self.rendered, self.outcome)
        except Exception as exc:
            logger.exception("Failed to present %s roll: %s", self.kind.key, self.label)
            raise PresentationFailure("The roll could not be displayed") from exc

    def report(self, status: str, message: str | None = None) -> RollReport:
        return RollReport(
            status=status,
            label=self.label,
            request=self.request,
            pool=self.pool,
            outcome=self.outcome,
            rendered=self.rendered,
            message=message,
            contributions=list(self.aggregation.contributions),
            state=self.state,
        )


def _base_label(action: RollAction) -> str:
    label = f"{action.kind.title}: {action.subject}"
    if action.trait:
        label += f" / {action.trait}"
    if action.description:
        label += f" ({action.description})"
    return label


def _restrict(answer: ModifierResult, descriptor: PromptDescriptor) -> ModifierResult:
    """Drop answers for fields the prompt did not offer."""
    update: dict[str, object] = {}
    if not descriptor.penalty_toggle:
        update["apply_penalty"] = False
    if not descriptor.emphasis_toggle:
        update["emphasis"] = False
    if not descriptor.unskilled_toggle:
        update["unskilled"] = False
    if not descriptor.modifiers:
        update.update(roll_mod=0, keep_mod=0, total_mod=0)
    if not descriptor.void_toggle:
        update["void"] = False
    if not descriptor.spell_slot_toggles:
        update.update(spell_slot=False, void_slot=False)
    if not descriptor.target_fields:
        update.update(tn=0, raises=0)
    return answer.model_copy(update=update)


async def perform_roll(action: RollAction, context: RollContext) -> RollReport:
    """Run the roll pipeline for one action.

    Pipeline errors never propagate: cancellation, missing resources, a missing
    actor and presentation failures are all turned into a RollReport status.
    """
    pipeline = RollPipeline(action, context)
    try:
        await pipeline.run()
    except UserCancelled:
        logger.debug("Roll cancelled: %s", pipeline.label)
        return pipeline.report(CANCELLED)
    except InsufficientResource as exc:
        context.notifier.warn(str(exc))
        return pipeline.report(INSUFFICIENT_RESOURCE, str(exc))
    except NoActorResolved as exc:
        context.notifier.warn(str(exc))
        return pipeline.report(NO_ACTOR, str(exc))
    except PresentationFailure as exc:
        context.notifier.error(str(exc))
        return pipeline.report(PRESENTATION_FAILED, str(exc))
    return pipeline.report(PRESENTED)


# ---------------------------------------------------------------------------
# Entry points per roll kind
# ---------------------------------------------------------------------------


async def skill_roll(
    context: RollContext,
    *,
    skill: str,
    skill_rank: int,
    trait: str,
    trait_rank: int,
    actor: ActorData | None = None,
    roll_type: str | None = None,
    target: ActorData | None = None,
    ask_for_options: bool = True,
    penalty: int | None = None,
    preset: BonusSet | None = None,
) -> RollReport:
    """(trait + skill)k(trait), exploding on 10."""
    action = RollAction(
        kind=SKILL,
        subject=skill,
        base_roll=trait_rank + skill_rank,
        base_keep=trait_rank,
        actor=actor,
        trait=trait,
        roll_type=roll_type,
        target=target,
        ask_for_options=ask_for_options,
        penalty=penalty,
        preset=preset or BonusSet(),
    )
    return await perform_roll(action, context)


async def ring_roll(
    context: RollContext,
    *,
    ring: str,
    ring_rank: int,
    actor: ActorData | None = None,
    ask_for_options: bool = True,
    penalty: int | None = None,
) -> RollReport:
    """(ring)k(ring). The prompt may also spend a spell slot of that ring."""
    action = RollAction(
        kind=RING,
        subject=ring,
        base_roll=ring_rank,
        base_keep=ring_rank,
        actor=actor,
        ask_for_options=ask_for_options,
        penalty=penalty,
    )
    return await perform_roll(action, context)


async def trait_roll(
    context: RollContext,
    *,
    trait: str,
    trait_rank: int,
    actor: ActorData | None = None,
    unskilled: bool = False,
    ask_for_options: bool = True,
    penalty: int | None = None,
) -> RollReport:
    """(trait)k(trait); unskilled trait rolls do not explode."""
    action = RollAction(
        kind=TRAIT,
        subject=trait,
        base_roll=trait_rank,
        base_keep=trait_rank,
        actor=actor,
        unskilled=unskilled,
        ask_for_options=ask_for_options,
        penalty=penalty,
    )
    return await perform_roll(action, context)


async def weapon_roll(
    context: RollContext,
    *,
    weapon: str,
    damage_roll: int,
    damage_keep: int,
    actor: ActorData | None = None,
    attack_raises: int = 0,
    description: str | None = None,
    ask_for_options: bool = True,
) -> RollReport:
    """Weapon damage. Each raise from the attack adds one rolled die."""
    action = RollAction(
        kind=WEAPON,
        subject=weapon,
        base_roll=damage_roll,
        base_keep=damage_keep,
        actor=actor,
        attack_raises=max(0, attack_raises),
        description=description,
        ask_for_options=ask_for_options,
    )
    return await perform_roll(action, context)


async def npc_roll(
    context: RollContext,
    *,
    name: str,
    dice_roll: int | None = None,
    dice_keep: int | None = None,
    trait: str | None = None,
    trait_rank: int | None = None,
    ring: str | None = None,
    ring_rank: int | None = None,
    actor: ActorData | None = None,
    roll_type: str | None = None,
    target: ActorData | None = None,
    untrained: bool = False,
    ask_for_options: bool = True,
    penalty: int | None = None,
) -> RollReport:
    """NPC roll from an explicit pool, a trait rank or a ring rank, in that order.

    Raises:
        ValueError: If none of the three pool sources is given.
    """
    if dice_roll is not None and dice_keep is not None:
        base_roll, base_keep = dice_roll, dice_keep
    elif trait_rank is not None:
        base_roll = base_keep = trait_rank
    elif ring_rank is not None:
        base_roll = base_keep = ring_rank
    else:
        raise ValueError("NPC roll needs dice_roll/dice_keep, trait_rank or ring_rank")

    action = RollAction(
        kind=NPC,
        subject=name,
        base_roll=base_roll,
        base_keep=base_keep,
        actor=actor,
        trait=trait or ring,
        roll_type=roll_type,
        target=target,
        unskilled=untrained,
        ask_for_options=ask_for_options,
        penalty=penalty,
    )
    return await perform_roll(action, context)
