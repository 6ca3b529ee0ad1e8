"""Tests for vn_runtime.models."""

import pytest
from pydantic import ValidationError

from vn_runtime.models import (
    ChoicePrompt,
    JumpRequest,
    LastChoice,
    PendingJump,
    PlaybackMode,
    ScriptLine,
)


class TestScriptLine:
    def test_command_defaults_to_empty(self) -> None:
        line = ScriptLine(speaker="LOGAN", text="Hi.")
        assert line.command == ""

    def test_is_frozen(self) -> None:
        line = ScriptLine(speaker="LOGAN", text="Hi.")
        with pytest.raises(ValidationError):
            line.text = "Bye."

    def test_equal_by_value(self) -> None:
        assert ScriptLine(speaker="A", text="b", command="c") == ScriptLine(speaker="A", text="b", command="c")


class TestJumpRequest:
    def test_defaults(self) -> None:
        r = JumpRequest(target_script_id="scene_02")
        assert r.target_line is None
        assert r.target_external_scene is None
        assert r.skip_audio_fade is False
        assert r.crossfade is False

    def test_end_and_int_targets(self) -> None:
        assert JumpRequest(target_script_id="s", target_line="END").target_line == "END"
        assert JumpRequest(target_script_id="s", target_line=4).target_line == 4

    def test_other_strings_rejected(self) -> None:
        with pytest.raises(ValidationError):
            JumpRequest(target_script_id="s", target_line="START")


class TestPendingJump:
    def test_roundtrip(self) -> None:
        p = PendingJump(
            script_id="rooftop_01", script_index=0, target_line="END",
            scene="rooftop", fade_in=False, crossfade=True, persisted_audio=["rain"],
        )
        assert PendingJump.model_validate(p.model_dump()) == p

    def test_defaults(self) -> None:
        p = PendingJump(script_id="x", scene="game")
        assert p.fade_in is True
        assert p.persisted_audio == []


def test_last_choice_defaults_empty() -> None:
    assert LastChoice() == LastChoice(choice_id="", choice_opt="")


def test_choice_prompt_holds_options() -> None:
    opts = [ScriptLine(speaker="Yes", text="Sure."), ScriptLine(speaker="No", text="Never.")]
    prompt = ChoicePrompt(prompt="Well?", options=opts, resume_index=3)
    assert [o.speaker for o in prompt.options] == ["Yes", "No"]


def test_playback_mode_values() -> None:
    assert PlaybackMode("choice_pending") is PlaybackMode.CHOICE_PENDING
