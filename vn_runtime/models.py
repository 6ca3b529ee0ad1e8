"""Core playback models.

Every interpreter component and the persisted stores operate on these types.
Pydantic validates them at each data boundary (script parsing, state store
round-trips, the HTTP layer).
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

TextStyle = Literal["dialogue", "narration", "aside"]

TargetLine = Literal["END"] | int | None


class ScriptLine(BaseModel):
    """One row of a script. Immutable once parsed."""

    model_config = ConfigDict(frozen=True)

    speaker: str
    text: str
    command: str = ""


class PlaybackMode(str, Enum):
    NARRATING = "narrating"
    WAITING = "waiting"
    ACTING = "acting"
    CHOICE_PENDING = "choice_pending"
    BRANCH_SCANNING = "branch_scanning"
    JUMPING = "jumping"


class PlaybackPosition(BaseModel):
    """The cursor into the program."""

    script_id: str
    script_index: int
    line_index: int


class ChoicePrompt(BaseModel):
    """A presented CHOICE: its prompt, the collected options and where to resume."""

    prompt: str
    options: list[ScriptLine]
    resume_index: int


class LastChoice(BaseModel):
    choice_id: str = ""
    choice_opt: str = ""


class JumpRequest(BaseModel):
    """A decoded JUMP line, consumed exactly once by the orchestrator."""

    target_script_id: str
    target_line: TargetLine = None
    target_external_scene: str | None = None
    skip_audio_fade: bool = False
    crossfade: bool = False


class Bookmark(BaseModel):
    """The persisted save position."""

    scene: str
    script_index: int
    line_index: int


class PendingJump(BaseModel):
    """A cross-scene jump waiting for the destination scene to boot."""

    script_id: str
    script_index: int = 0
    target_line: TargetLine = None
    scene: str
    fade_in: bool = True
    crossfade: bool = False
    persisted_audio: list[str] = Field(default_factory=list)
