"""CHOICE collection and the effects of selecting an option.

    CHOICE,"What do you tell him?",
    Tell everything,"I'll tell you all of it.",CHOICE_ID=TRUTH;CHOICE_OPT=TODO;AFF_DAMIAO=1;L=LOGAN:serious
    Keep it short,"Only what you need.",CHOICE_ID=TRUTH;CHOICE_OPT=PARTIAL
    NARRADOR,The rain keeps falling.,            ← resume point

Options are the rows right after the CHOICE row, up to the number of
presentation slots or the next CHOICE row. The speaker column of an option is
its button label; its text is what is shown after it is picked.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from vn_runtime.commands import (
    Directive,
    decode_commands,
    directive_for,
    parse_value,
    slot_speaker,
)
from vn_runtime.config import EngineConfig
from vn_runtime.decisions import DecisionStore
from vn_runtime.models import ChoicePrompt, LastChoice, ScriptLine

logger = logging.getLogger(__name__)


class ChoiceOutcome(BaseModel):
    last_choice: LastChoice | None = None
    told_full_truth: bool | None = None
    affinity_delta: int | None = None
    speaker: str = ""


def collect_options(lines: list[ScriptLine], index: int, slots: int) -> ChoicePrompt:
    """Gather the options of the CHOICE at `index`."""
    options: list[ScriptLine] = []
    i = index + 1
    while i < len(lines) and len(options) < slots:
        if directive_for(lines[i].speaker) is Directive.CHOICE:
            break
        options.append(lines[i])
        i += 1
    return ChoicePrompt(prompt=lines[index].text, options=options, resume_index=i)


def apply_choice(option: ScriptLine, decisions: DecisionStore, config: EngineConfig) -> ChoiceOutcome:
    """Persist what a selected option implies and describe how to show it."""
    commands = decode_commands(option.command, config.affinity_command)
    outcome = ChoiceOutcome(speaker=slot_speaker(commands.raw, config.character_slots))

    if commands.choice_id:
        decisions.set_last_choice(commands.choice_id, commands.choice_opt)
        outcome.last_choice = LastChoice(
            choice_id=commands.choice_id, choice_opt=commands.choice_opt,
        )
        if commands.choice_id.upper() == config.moral_choice_id.upper():
            told_all = commands.choice_opt.upper() == config.moral_truth_option.upper()
            decisions.set_moral_flag(told_all)
            outcome.told_full_truth = told_all

    if commands.affinity_delta is not None:
        decisions.add_affinity(commands.affinity_delta)
        outcome.affinity_delta = commands.affinity_delta
    elif parse_value(commands.raw, config.affinity_command):
        logger.warning("Ignoring non-numeric affinity delta in %r", commands.raw)

    return outcome
