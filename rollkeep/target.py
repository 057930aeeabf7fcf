"""Target numbers, raises and roll outcomes.

effective TN = base TN + 5 per raise + penalty (when applied)

A penalty always raises the TN; it is never subtracted, and a negative penalty
is ignored. An effective TN of 0 or less means no TN was declared (damage rolls,
plain tests) and the roll has no success or failure.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

RAISE_STEP = 5

RESULT_LABELS: dict[str, str] = {
    "success": "Success",
    "failure": "Failure",
    "missed": "Missed",
}


@dataclass(frozen=True)
class RollOutcome:
    formula: str
    total: int
    effective_tn: int
    raises_achieved: int = 0
    success: bool | None = None
    result: str | None = None

    @property
    def label(self) -> str | None:
        return RESULT_LABELS.get(self.result) if self.result else None


def effective_tn(base_tn: int, raises: int = 0, penalty: int = 0, apply_penalty: bool = True) -> int:
    tn = base_tn + raises * RAISE_STEP
    if apply_penalty and penalty > 0:
        tn += penalty
    return tn


def resolve(
    roll_total: int,
    base_tn: int = 0,
    raises: int = 0,
    penalty: int = 0,
    apply_penalty: bool = True,
    *,
    formula: str = "",
) -> RollOutcome:
    """Classify a roll total against its target number.

    Args:
        roll_total: Total of the executed roll.
        base_tn: Declared target number; 0 when none.
        raises: Declared raises, each +5 to the TN.
        penalty: Wound or situational penalty added to the TN.
        apply_penalty: Whether the penalty counts for this roll.
        formula: Formula that produced the total, carried into the outcome.

    Returns:
        RollOutcome; success and result are None when there is no TN.
    """
    tn = effective_tn(base_tn, raises, penalty, apply_penalty)
    if tn <= 0:
        return RollOutcome(formula=formula, total=roll_total, effective_tn=tn)
    success = roll_total >= tn
    return RollOutcome(
        formula=formula,
        total=roll_total,
        effective_tn=tn,
        raises_achieved=raises if success else 0,
        success=success,
        result="success" if success else "failure",
    )


def present_result(outcome: RollOutcome, roll_type: str | None) -> RollOutcome:
    """Relabel a failed attack as "missed". Display only; numbers are unchanged."""
    if roll_type == "attack" and outcome.result == "failure":
        return replace(outcome, result="missed")
    return outcome


def build_tn_label(tn: int, raises: int = 0) -> str:
    """Return the " [TN 25 (Raises: 2)]" flavor suffix, or "" without a TN."""
    if tn <= 0:
        return ""
    raise_part = f" (Raises: {raises})" if raises else ""
    return f" [TN {tn}{raise_part}]"
