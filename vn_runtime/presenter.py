"""Collaborator interfaces the interpreter talks to.

The interpreter never draws, plays audio or loads scenes itself. It drives
these protocols:

    Presenter    — text, speaker focus, character directives, choices,
                   action/affinity notifications
    SceneLoader  — tears down the current top-level scene and boots another
    Fader        — visual hand-off around a scene load
    AudioBridge  — keeps or fades playing audio across a scene load
    Minigame     — the intercept minigame; reports success/failure once

NullPresenter / NullFader / NullAudio are no-op implementations. Subclass
NullPresenter to handle only the callbacks you care about.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol, Sequence

from vn_runtime.models import ScriptLine, TextStyle

logger = logging.getLogger(__name__)


class Presenter(Protocol):
    def on_line_display(self, speaker: str, text: str, progressive: bool, style: TextStyle) -> None: ...

    def on_text_reveal(self, visible: str) -> None: ...

    def on_character_directive(self, command: str) -> None: ...

    def on_focus(self, speaker: str) -> None: ...

    def on_defocus_all(self) -> None: ...

    def on_hide_characters(self) -> None: ...

    def on_choice_presented(self, prompt: str, options: Sequence[ScriptLine]) -> None: ...

    def on_action_confirmed(self, action_id: str) -> None: ...

    def on_affinity_delta(self, delta: int) -> None: ...


class SceneLoader(Protocol):
    async def load_scene(self, scene_id: str) -> None: ...


class Fader(Protocol):
    async def fade_out(self, duration: float) -> None: ...

    async def fade_in(self, duration: float) -> None: ...

    async def capture_snapshot(self) -> None: ...

    async def crossfade(self, duration: float) -> None: ...


class AudioBridge(Protocol):
    def persist_playing(self) -> list[str]: ...

    async def fade_out(self, duration: float) -> None: ...

    async def tail_fade(self, sources: list[str], duration: float) -> None: ...


class Minigame(Protocol):
    def start(self, on_complete: Callable[[bool], None]) -> None: ...


def choice_label(option: ScriptLine) -> str:
    """Button label of a choice option: its speaker column, else its text."""
    return option.speaker.strip() or option.text.strip()


class NullPresenter:
    def on_line_display(self, speaker: str, text: str, progressive: bool, style: TextStyle) -> None:
        pass

    def on_text_reveal(self, visible: str) -> None:
        pass

    def on_character_directive(self, command: str) -> None:
        pass

    def on_focus(self, speaker: str) -> None:
        pass

    def on_defocus_all(self) -> None:
        pass

    def on_hide_characters(self) -> None:
        pass

    def on_choice_presented(self, prompt: str, options: Sequence[ScriptLine]) -> None:
        pass

    def on_action_confirmed(self, action_id: str) -> None:
        pass

    def on_affinity_delta(self, delta: int) -> None:
        pass


class NullFader:
    async def fade_out(self, duration: float) -> None:
        pass

    async def fade_in(self, duration: float) -> None:
        pass

    async def capture_snapshot(self) -> None:
        pass

    async def crossfade(self, duration: float) -> None:
        pass


class NullAudio:
    def persist_playing(self) -> list[str]:
        return []

    async def fade_out(self, duration: float) -> None:
        pass

    async def tail_fade(self, sources: list[str], duration: float) -> None:
        pass


class LoggingPresenter(NullPresenter):
    """Logs every line at debug level. Handy for headless runs."""

    def on_line_display(self, speaker: str, text: str, progressive: bool, style: TextStyle) -> None:
        logger.debug("[%s] %s: %s", style, speaker or "-", text)

    def on_choice_presented(self, prompt: str, options: Sequence[ScriptLine]) -> None:
        logger.debug("choice %r: %s", prompt, [choice_label(o) for o in options])

    def on_action_confirmed(self, action_id: str) -> None:
        logger.debug("action confirmed: %s", action_id)
