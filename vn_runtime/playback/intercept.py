"""Intercept minigame bookkeeping.

`ACT=INTERCEPT_START` hands control to the minigame; its result is stored,
recorded as the virtual choice INTERCEPT=SUCCESS|FAIL so later BRANCH gates
can test it, and nudges affinity by ±intercept_affinity_delta.
`ACT=INTERCEPT_RESULT` later shows text built from the stored result.
"""

from __future__ import annotations

from vn_runtime.config import EngineConfig
from vn_runtime.decisions import DecisionStore

SUCCESS = "SUCCESS"
FAIL = "FAIL"


def record_minigame_result(decisions: DecisionStore, success: bool, config: EngineConfig) -> int:
    """Persist a minigame outcome. Returns the affinity delta applied."""
    decisions.set_minigame_result(success)
    decisions.set_last_choice(config.intercept_choice_id, SUCCESS if success else FAIL)
    delta = config.intercept_affinity_delta if success else -config.intercept_affinity_delta
    decisions.add_affinity(delta)
    return delta


def intercept_result_text(decisions: DecisionStore, config: EngineConfig) -> str:
    if decisions.get_minigame_result():
        return "\n".join(config.intercept_success_lines)
    return "\n".join(config.intercept_failure_lines)
