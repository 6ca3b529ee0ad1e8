"""Playback state machine.

Drives one cursor through a scene's script sequence:
  1. Load the current script from the Script Store (missing → empty, skipped).
  2. Execute lines from the cursor until one needs the player:
     a. narration / dialogue and WAIT blocks wait for advance().
     b. ACT blocks wait for advance(), which confirms the action
        (INTERCEPT_START hands control to the minigame instead).
     c. CHOICE presents up to choice_slots options; only a selection resumes.
     d. BRANCH gates are evaluated silently against the last choice.
     e. JUMP hands control to the TransitionOrchestrator.
  3. Past the last line, the next script of the sequence is loaded
     (wrapping to the first).

Decisions (last choice, affinity, moral flag, minigame result) are written
straight to the DecisionStore as they happen.
"""

from .branches import (  # noqa: F401
    branch_matches,
    resolve_branch,
    skip_branch_block,
)
from .choices import (  # noqa: F401
    ChoiceOutcome,
    apply_choice,
    collect_options,
)
from .core import PlaybackMachine  # noqa: F401
from .intercept import (  # noqa: F401
    FAIL,
    SUCCESS,
    intercept_result_text,
    record_minigame_result,
)
