"""Decision store — affinity, last choice and one-off narrative flags.

Every write goes straight to the injected StateStore. Only the interpreter's
own handlers write here; `reset_all()` runs once, at the start of a new game.
"""

from __future__ import annotations

import logging

from vn_runtime.models import LastChoice
from vn_runtime.state import StateStore

logger = logging.getLogger(__name__)

KEY_AFFINITY = "vn.state.affinity"
KEY_LAST_CHOICE_ID = "vn.state.last_choice_id"
KEY_LAST_CHOICE_OPT = "vn.state.last_choice_opt"
KEY_MINIGAME_RESULT = "vn.state.minigame_success"
KEY_MORAL_FLAG = "vn.state.told_full_truth"

DECISION_KEYS = (
    KEY_AFFINITY,
    KEY_LAST_CHOICE_ID,
    KEY_LAST_CHOICE_OPT,
    KEY_MINIGAME_RESULT,
    KEY_MORAL_FLAG,
)


class DecisionStore:
    def __init__(self, store: StateStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Affinity
    # ------------------------------------------------------------------

    def get_affinity(self) -> int:
        value = self._store.get(KEY_AFFINITY, 0)
        if isinstance(value, bool) or not isinstance(value, int):
            logger.warning("Stored affinity %r is not an integer — reading as 0", value)
            return 0
        return value

    def add_affinity(self, delta: int) -> int:
        """Accumulate `delta` and return the new total. A zero delta is a no-op."""
        current = self.get_affinity()
        if delta == 0:
            return current
        self._store.set(KEY_AFFINITY, current + delta)
        logger.debug("Affinity %d -> %d", current, current + delta)
        return current + delta

    # ------------------------------------------------------------------
    # Last choice (branch gating)
    # ------------------------------------------------------------------

    def set_last_choice(self, choice_id: str, choice_opt: str) -> None:
        self._store.set(KEY_LAST_CHOICE_ID, choice_id or "")
        self._store.set(KEY_LAST_CHOICE_OPT, choice_opt or "")
        logger.debug("Last choice recorded: %s=%s", choice_id, choice_opt)

    def get_last_choice(self) -> LastChoice:
        return LastChoice(
            choice_id=str(self._store.get(KEY_LAST_CHOICE_ID, "") or ""),
            choice_opt=str(self._store.get(KEY_LAST_CHOICE_OPT, "") or ""),
        )

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def set_minigame_result(self, success: bool) -> None:
        self._store.set(KEY_MINIGAME_RESULT, bool(success))

    def get_minigame_result(self) -> bool:
        return self._store.get(KEY_MINIGAME_RESULT, False) is True

    def set_moral_flag(self, told_full_truth: bool) -> None:
        self._store.set(KEY_MORAL_FLAG, bool(told_full_truth))
        logger.debug("Moral decision: told_full_truth=%s", told_full_truth)

    def get_moral_flag(self) -> bool:
        return self._store.get(KEY_MORAL_FLAG, False) is True

    def reset_all(self) -> None:
        for key in DECISION_KEYS:
            self._store.delete(key)
        logger.info("Decision state reset")
