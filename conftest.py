from pathlib import Path
from typing import Callable, Sequence

import pytest

from vn_runtime.config import EngineConfig
from vn_runtime.decisions import DecisionStore
from vn_runtime.models import ScriptLine, TextStyle
from vn_runtime.playback import PlaybackMachine
from vn_runtime.presenter import choice_label
from vn_runtime.scripts import ScriptStore
from vn_runtime.state import MemoryStateStore

HEADER = "speaker,text,command"


class RecordingPresenter:
    """Presenter that keeps every callback in order, for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.visible = ""

    def on_line_display(self, speaker: str, text: str, progressive: bool, style: TextStyle) -> None:
        self.calls.append(("line", speaker, text, progressive, style))

    def on_text_reveal(self, visible: str) -> None:
        self.visible = visible

    def on_character_directive(self, command: str) -> None:
        self.calls.append(("characters", command))

    def on_focus(self, speaker: str) -> None:
        self.calls.append(("focus", speaker))

    def on_defocus_all(self) -> None:
        self.calls.append(("defocus",))

    def on_hide_characters(self) -> None:
        self.calls.append(("hide",))

    def on_choice_presented(self, prompt: str, options: Sequence[ScriptLine]) -> None:
        self.calls.append(("choice", prompt, [choice_label(o) for o in options]))

    def on_action_confirmed(self, action_id: str) -> None:
        self.calls.append(("action", action_id))

    def on_affinity_delta(self, delta: int) -> None:
        self.calls.append(("affinity", delta))

    # -- helpers --

    def texts(self) -> list[str]:
        return [c[2] for c in self.calls if c[0] == "line"]

    def last_line(self) -> tuple | None:
        lines = [c for c in self.calls if c[0] == "line"]
        return lines[-1] if lines else None

    def of(self, kind: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == kind]


class RecordingMinigame:
    def __init__(self) -> None:
        self.started = 0
        self.on_complete: Callable[[bool], None] | None = None

    def start(self, on_complete: Callable[[bool], None]) -> None:
        self.started += 1
        self.on_complete = on_complete


def fast_config(**overrides) -> EngineConfig:
    """No typewriter, no waits, no auto-advance unless asked for."""
    values = dict(
        scenes={"game": ["intro", "scene_01"]},
        start_scene="game",
        typewriter_enabled=False,
        auto_advance_after_choice=False,
        choice_auto_advance_delay=0.0,
        jump_wait_time=0.0,
        jump_fade_out=0.0,
        jump_fade_in_delay=0.0,
        jump_fade_in=0.0,
        jump_crossfade=0.0,
        music_tail_fade=0.0,
    )
    values.update(overrides)
    return EngineConfig(**values)


@pytest.fixture
def script_dir(tmp_path) -> Path:
    path = tmp_path / "dialogue"
    path.mkdir()
    return path


@pytest.fixture
def write_script(script_dir) -> Callable[[str, list[str]], Path]:
    """Write `<name>.csv` from data rows (the header is added)."""

    def _write(name: str, rows: list[str]) -> Path:
        path = script_dir / f"{name}.csv"
        path.write_text("\n".join([HEADER, *rows]) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def scripts(script_dir) -> ScriptStore:
    return ScriptStore(script_dir)


@pytest.fixture
def state() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def decisions(state) -> DecisionStore:
    return DecisionStore(state)


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def make_machine(scripts, decisions, presenter):
    """Build a PlaybackMachine over the test script directory."""

    def _make(sequence: list[str], config: EngineConfig | None = None, **kwargs) -> PlaybackMachine:
        config = config or fast_config(scenes={"game": sequence})
        return PlaybackMachine(
            scene=kwargs.pop("scene", "game"),
            sequence=sequence,
            scripts=scripts,
            decisions=decisions,
            presenter=presenter,
            config=config,
            **kwargs,
        )

    return _make
