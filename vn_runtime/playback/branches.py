"""Conditional branch evaluation.

    BRANCH      CHOICE_ID=Q1;CHOICE_OPT=YES   ← gate, body follows
    ...body...
    BRANCH      CHOICE_ID=Q1;CHOICE_OPT=NO    ← sibling gate
    ...body...
    BRANCH_END                                ← shared content resumes here

A gate matches when both fields equal the persisted last choice exactly. A
non-matching gate skips forward to the next BRANCH (evaluated in turn) or past
the next BRANCH_END. Running off the end of the script counts as an implicit
BRANCH_END.
"""

from __future__ import annotations

from vn_runtime.commands import Directive, directive_for, parse_value
from vn_runtime.models import LastChoice, ScriptLine


def branch_matches(line: ScriptLine, last_choice: LastChoice) -> bool:
    required_id = parse_value(line.command, "CHOICE_ID")
    required_opt = parse_value(line.command, "CHOICE_OPT")
    return required_id == last_choice.choice_id and required_opt == last_choice.choice_opt


def skip_branch_block(lines: list[ScriptLine], index: int) -> int:
    """Index to continue at after skipping the block that starts at `index`."""
    i = index + 1
    while i < len(lines):
        directive = directive_for(lines[i].speaker)
        if directive is Directive.BRANCH:
            return i
        if directive is Directive.BRANCH_END:
            return i + 1
        i += 1
    return len(lines)


def resolve_branch(lines: list[ScriptLine], index: int, last_choice: LastChoice) -> int:
    """Evaluate the BRANCH at `index`; return the next index to execute."""
    if branch_matches(lines[index], last_choice):
        return index + 1
    return skip_branch_block(lines, index)
