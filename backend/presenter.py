"""Collaborators for the HTTP player.

The browser does the drawing; the server only queues what happened. Every
presentation callback becomes a PlaybackEvent in BufferedPresenter's queue,
which GET /api/events drains. Per-character reveal ticks are not queued (the
client animates them from the `progressive` flag); the final full reveal is.

The fader and audio bridge report their work as events too and then wait
out the requested duration so the jump sequence keeps its timing.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Sequence

from pydantic import BaseModel, Field

from vn_runtime.config import EngineConfig
from vn_runtime.models import ScriptLine, TextStyle
from vn_runtime.presenter import choice_label
from vn_runtime.scripts import ScriptStore
from vn_runtime.session import PlayerSession
from vn_runtime.state import StateStore

logger = logging.getLogger(__name__)

MAX_EVENTS = 500


class PlaybackEvent(BaseModel):
    kind: str
    data: dict[str, Any] = Field(default_factory=dict)


class DisplayState(BaseModel):
    """What the text box currently shows."""

    speaker: str = ""
    text: str = ""
    visible: str = ""
    style: TextStyle = "narration"
    focus: str = ""
    choices: list[str] = Field(default_factory=list)


class EventQueue:
    def __init__(self, maxlen: int = MAX_EVENTS) -> None:
        self._events: deque[PlaybackEvent] = deque(maxlen=maxlen)

    def emit(self, kind: str, **data: Any) -> None:
        if len(self._events) == self._events.maxlen:
            logger.debug("Event queue full — dropping %s", self._events[0].kind)
        self._events.append(PlaybackEvent(kind=kind, data=data))

    def drain(self) -> list[PlaybackEvent]:
        events = list(self._events)
        self._events.clear()
        return events

    def __len__(self) -> int:
        return len(self._events)


class BufferedPresenter:
    def __init__(self, events: EventQueue) -> None:
        self._events = events
        self.display = DisplayState()

    def on_line_display(self, speaker: str, text: str, progressive: bool, style: TextStyle) -> None:
        self.display = DisplayState(
            speaker=speaker, text=text, style=style, focus=self.display.focus,
        )
        self._events.emit("line", speaker=speaker, text=text, progressive=progressive, style=style)

    def on_text_reveal(self, visible: str) -> None:
        self.display.visible = visible
        if visible == self.display.text:
            self._events.emit("revealed")

    def on_character_directive(self, command: str) -> None:
        self._events.emit("characters", command=command)

    def on_focus(self, speaker: str) -> None:
        self.display.focus = speaker
        self._events.emit("focus", speaker=speaker)

    def on_defocus_all(self) -> None:
        self.display.focus = ""
        self._events.emit("defocus")

    def on_hide_characters(self) -> None:
        self._events.emit("hide_characters")

    def on_choice_presented(self, prompt: str, options: Sequence[ScriptLine]) -> None:
        labels = [choice_label(o) for o in options]
        self.display.choices = labels
        self._events.emit("choice", prompt=prompt, options=labels)

    def on_action_confirmed(self, action_id: str) -> None:
        self._events.emit("action", id=action_id)

    def on_affinity_delta(self, delta: int) -> None:
        self._events.emit("affinity", delta=delta)


class EventFader:
    def __init__(self, events: EventQueue) -> None:
        self._events = events

    async def fade_out(self, duration: float) -> None:
        self._events.emit("fade_out", duration=duration)
        await asyncio.sleep(duration)

    async def fade_in(self, duration: float) -> None:
        self._events.emit("fade_in", duration=duration)
        await asyncio.sleep(duration)

    async def capture_snapshot(self) -> None:
        self._events.emit("snapshot")

    async def crossfade(self, duration: float) -> None:
        self._events.emit("crossfade", duration=duration)
        await asyncio.sleep(duration)


class EventAudio:
    """Tracks which music the client reports as playing."""

    def __init__(self, events: EventQueue) -> None:
        self._events = events
        self.playing: list[str] = []

    def persist_playing(self) -> list[str]:
        sources = list(self.playing)
        self._events.emit("audio_persist", sources=sources)
        return sources

    async def fade_out(self, duration: float) -> None:
        self._events.emit("audio_fade_out", duration=duration)
        await asyncio.sleep(duration)
        self.playing = []

    async def tail_fade(self, sources: list[str], duration: float) -> None:
        self._events.emit("audio_tail_fade", sources=sources, duration=duration)
        await asyncio.sleep(duration)
        self.playing = [s for s in self.playing if s not in sources]


class ClientMinigame:
    """The minigame runs in the browser; POST /api/minigame reports back."""

    def __init__(self, events: EventQueue) -> None:
        self._events = events

    def start(self, on_complete: Callable[[bool], None]) -> None:
        self._events.emit("minigame_start")


class WebPlayer:
    """One PlayerSession wired to the event-queue collaborators."""

    def __init__(self, config: EngineConfig, scripts: ScriptStore, state: StateStore) -> None:
        self.events = EventQueue()
        self.presenter = BufferedPresenter(self.events)
        self.audio = EventAudio(self.events)
        self.session = PlayerSession(
            config=config,
            scripts=scripts,
            state=state,
            presenter=self.presenter,
            fader=EventFader(self.events),
            audio=self.audio,
            minigame=ClientMinigame(self.events),
        )