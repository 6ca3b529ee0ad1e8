"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel

from backend.presenter import DisplayState, PlaybackEvent
from vn_runtime.models import Bookmark, ChoicePrompt, PlaybackPosition


class ChoiceBody(BaseModel):
    index: int


class MinigameBody(BaseModel):
    success: bool


class AudioBody(BaseModel):
    playing: list[str]


class OkResponse(BaseModel):
    ok: bool


class SaveResponse(BaseModel):
    ok: bool
    bookmark: Bookmark | None = None


class ContinueResponse(BaseModel):
    ok: bool
    resumed: bool


class SessionView(BaseModel):
    started: bool
    scene: str | None = None
    mode: str | None = None
    position: PlaybackPosition | None = None
    revealing: bool = False
    awaiting_minigame: bool = False
    choice: ChoicePrompt | None = None
    display: DisplayState
    affinity: int = 0
    has_save: bool = False


class EventsResponse(BaseModel):
    events: list[PlaybackEvent]
