"""Shared Jinja2 environment for roll cards."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import Environment, FileSystemLoader, select_autoescape

if TYPE_CHECKING:
    from rollkeep.dice import RollResult
    from rollkeep.target import RollOutcome

_env = Environment(
    loader=FileSystemLoader(Path(__file__).parent / "templates"),
    autoescape=select_autoescape(["html", "xml"]),
)


def render_dice(result: RollResult) -> str:
    """Render the dice of an executed roll as an HTML fragment."""
    return _env.get_template("dice.html").render(result=result)


def render_roll_card(label: str, rendered_dice: str, outcome: RollOutcome) -> str:
    """Render the full roll card shown to players."""
    return _env.get_template("roll_card.html").render(
        label=label, dice=rendered_dice, outcome=outcome
    )
