"""Tests for vn_runtime.transitions — JUMP hand-off with mocked collaborators."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import fast_config
from vn_runtime.bookmarks import BookmarkStore
from vn_runtime.models import PendingJump, PlaybackMode
from vn_runtime.transitions import TransitionOrchestrator


def _audio(playing: list[str] | None = None) -> MagicMock:
    audio = MagicMock()
    audio.persist_playing.return_value = list(playing or [])
    audio.fade_out = AsyncMock()
    audio.tail_fade = AsyncMock()
    return audio


@pytest.fixture
def bookmarks(state) -> BookmarkStore:
    return BookmarkStore(state)


@pytest.fixture
def fader() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def audio() -> MagicMock:
    return _audio(["rain_loop"])


@pytest.fixture
def loader() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def orchestrator(bookmarks, fader, audio, loader) -> TransitionOrchestrator:
    return TransitionOrchestrator(fast_config(), bookmarks, scene_loader=loader, fader=fader, audio=audio)


# ---------------------------------------------------------------------------
# In-process jumps
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_jump_to_end_of_ten_line_script(write_script, make_machine, orchestrator, presenter):
    write_script("intro", ["NARRADOR,Before.,", "JUMP,Going.,JUMP_SCENE=scene_01;JUMP_LINE=END"])
    write_script("scene_01", [f"LOGAN,Line {i}.," for i in range(10)])
    machine = make_machine(["intro", "scene_01"], orchestrator=orchestrator)

    machine.start()
    machine.advance()
    assert machine.mode is PlaybackMode.JUMPING
    assert presenter.last_line() == ("line", "", "Going.", False, "aside")
    assert machine.advance() is False
    assert not machine.is_idle

    await machine.settle()
    assert machine.position.script_id == "scene_01"
    assert machine.position.line_index == 9
    assert machine.mode is PlaybackMode.NARRATING
    assert presenter.texts()[-1] == "Line 9."


@pytest.mark.asyncio
async def test_jump_to_end_of_one_line_script(write_script, make_machine, orchestrator):
    write_script("intro", ["JUMP,,JUMP_SCENE=scene_01;JUMP_LINE=END"])
    write_script("scene_01", ["LOGAN,Only line.,"])
    machine = make_machine(["intro", "scene_01"], orchestrator=orchestrator)

    machine.start()
    await machine.settle()
    assert machine.position.script_id == "scene_01"
    assert machine.position.line_index == 0


@pytest.mark.asyncio
async def test_jump_line_number_and_default(write_script, make_machine, orchestrator, presenter):
    write_script("intro", ["JUMP,,JUMP_SCENE=scene_01;JUMP_LINE=2"])
    write_script("scene_01", ["LOGAN,a.,", "LOGAN,b.,", "LOGAN,c.,", "JUMP,,JUMP_SCENE=scene_01"])
    machine = make_machine(["intro", "scene_01"], orchestrator=orchestrator)

    machine.start()
    await machine.settle()
    assert presenter.texts() == ["c."]

    machine.advance()
    await machine.settle()
    assert presenter.texts() == ["c.", "a."]


@pytest.mark.asyncio
async def test_unknown_target_continues_on_current_script(write_script, make_machine, orchestrator, presenter, caplog):
    write_script("intro", ["JUMP,,JUMP_SCENE=nowhere", "NARRADOR,After.,"])
    machine = make_machine(["intro"], orchestrator=orchestrator)

    with caplog.at_level(logging.ERROR):
        machine.start()
        await machine.settle()
    assert presenter.texts() == ["After."]
    assert machine.mode is PlaybackMode.NARRATING
    assert "nowhere" in caplog.text


@pytest.mark.asyncio
async def test_jump_cancels_pending_auto_advance(write_script, make_machine, orchestrator, presenter):
    write_script("intro", [
        "CHOICE,Go?,", "Yes,Go.,", "No,Stay.,", "Maybe,Hm.,",
        "JUMP,,JUMP_SCENE=scene_01",
    ])
    write_script("scene_01", ["LOGAN,Arrived.,", "LOGAN,Too far.,"])
    config = fast_config(
        scenes={"game": ["intro", "scene_01"]},
        auto_advance_after_choice=True,
        choice_auto_advance_delay=0.05,
    )
    machine = make_machine(["intro", "scene_01"], config=config, orchestrator=orchestrator)

    machine.start()
    machine.select_choice_index(0)
    machine.advance()
    assert not machine.auto_advance_pending
    await machine.settle()
    assert presenter.texts() == ["Go.", "Arrived."]


# ---------------------------------------------------------------------------
# Cross-scene jumps (outgoing half)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cross_scene_jump_fades_and_hands_off(write_script, make_machine, orchestrator, bookmarks, fader, audio, loader):
    write_script("intro", ["JUMP,,JUMP_SCENE=rooftop_01;JUMP_LINE=END;JUMP_UNITY_SCENE=rooftop"])
    machine = make_machine(["intro"], orchestrator=orchestrator)

    machine.start()
    await machine.settle()

    fader.fade_out.assert_awaited_once_with(0.0)
    audio.fade_out.assert_awaited_once_with(0.0)
    audio.persist_playing.assert_not_called()
    fader.capture_snapshot.assert_not_awaited()
    loader.load_scene.assert_awaited_once_with("rooftop")

    assert bookmarks.consume_jump() == PendingJump(
        script_id="rooftop_01", script_index=0, target_line="END",
        scene="rooftop", fade_in=True, crossfade=False, persisted_audio=[],
    )


@pytest.mark.asyncio
async def test_skip_music_fade_migrates_audio(write_script, make_machine, orchestrator, bookmarks, fader, audio):
    write_script("intro", ["JUMP,,JUMP_SCENE=rooftop_01;JUMP_UNITY_SCENE=rooftop;SKIP_MUSIC_FADE=1"])
    machine = make_machine(["intro"], orchestrator=orchestrator)

    machine.start()
    await machine.settle()

    audio.persist_playing.assert_called_once()
    audio.fade_out.assert_not_awaited()
    fader.fade_out.assert_awaited_once()
    assert bookmarks.consume_jump().persisted_audio == ["rain_loop"]


@pytest.mark.asyncio
async def test_crossfade_snapshots_instead_of_fading(write_script, make_machine, orchestrator, bookmarks, fader, audio):
    write_script("intro", ["JUMP,,JUMP_SCENE=rooftop_01;JUMP_UNITY_SCENE=rooftop;JUMP_CROSSFADE=1"])
    machine = make_machine(["intro"], orchestrator=orchestrator)

    machine.start()
    await machine.settle()

    fader.capture_snapshot.assert_awaited_once()
    fader.fade_out.assert_not_awaited()
    audio.fade_out.assert_not_awaited()
    pending = bookmarks.consume_jump()
    assert pending.crossfade is True
    assert pending.fade_in is False


@pytest.mark.asyncio
async def test_target_in_current_scene_is_resolved_before_hand_off(write_script, make_machine, orchestrator, bookmarks):
    write_script("intro", ["JUMP,,JUMP_SCENE=scene_01;JUMP_UNITY_SCENE=other"])
    machine = make_machine(["intro", "scene_01"], orchestrator=orchestrator)

    machine.start()
    await machine.settle()
    assert bookmarks.consume_jump().script_index == 1


@pytest.mark.asyncio
async def test_cross_scene_without_loader_is_ignored(write_script, make_machine, bookmarks, presenter, caplog):
    orchestrator = TransitionOrchestrator(fast_config(), bookmarks)
    write_script("intro", ["JUMP,,JUMP_SCENE=x;JUMP_UNITY_SCENE=rooftop", "NARRADOR,Stayed.,"])
    machine = make_machine(["intro"], orchestrator=orchestrator)

    machine.start()
    await machine.settle()
    assert presenter.texts() == ["Stayed."]
    assert not bookmarks.jump_pending()
    assert "No scene loader" in caplog.text


@pytest.mark.asyncio
async def test_failed_jump_is_logged_and_playback_continues(write_script, make_machine, orchestrator, loader, presenter, caplog):
    loader.load_scene.side_effect = RuntimeError("scene exploded")
    write_script("intro", ["JUMP,,JUMP_SCENE=x;JUMP_UNITY_SCENE=rooftop", "NARRADOR,Recovered.,"])
    machine = make_machine(["intro"], orchestrator=orchestrator)

    machine.start()
    await machine.settle()
    assert presenter.texts() == ["Recovered."]
    assert "scene exploded" in caplog.text


# ---------------------------------------------------------------------------
# Arrival (incoming half)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_arrive_fades_in_before_first_line(write_script, make_machine, orchestrator, fader, audio, presenter):
    write_script("rooftop_01", ["NARRADOR,Wind.,", "DAMIAO,Here.,"])
    order: list[tuple[str, int]] = []
    fader.fade_in.side_effect = lambda duration: order.append(("fade_in", len(presenter.texts())))
    machine = make_machine(["rooftop_01"], scene="rooftop", orchestrator=orchestrator)

    pending = PendingJump(
        script_id="rooftop_01", target_line="END", scene="rooftop", persisted_audio=["rain_loop"],
    )
    await orchestrator.arrive(pending, machine)
    await orchestrator.drain()

    assert order == [("fade_in", 0)]
    assert presenter.texts() == ["Here."]
    assert machine.position.line_index == 1
    audio.tail_fade.assert_awaited_once_with(["rain_loop"], 0.0)


@pytest.mark.asyncio
async def test_arrive_crossfade_shows_line_first(write_script, make_machine, orchestrator, fader, presenter):
    write_script("rooftop_01", ["NARRADOR,Wind.,"])
    order: list[tuple[str, int]] = []
    fader.crossfade.side_effect = lambda duration: order.append(("crossfade", len(presenter.texts())))
    machine = make_machine(["rooftop_01"], scene="rooftop", orchestrator=orchestrator)

    pending = PendingJump(script_id="rooftop_01", scene="rooftop", fade_in=False, crossfade=True)
    await orchestrator.arrive(pending, machine)

    assert order == [("crossfade", 1)]
    fader.fade_in.assert_not_awaited()


@pytest.mark.asyncio
async def test_arrive_without_fade_in(write_script, make_machine, orchestrator, fader, audio, presenter):
    write_script("rooftop_01", ["NARRADOR,Wind.,"])
    machine = make_machine(["rooftop_01"], scene="rooftop", orchestrator=orchestrator)

    await orchestrator.arrive(PendingJump(script_id="rooftop_01", scene="rooftop", fade_in=False), machine)
    fader.fade_in.assert_not_awaited()
    audio.tail_fade.assert_not_awaited()
    assert presenter.texts() == ["Wind."]


@pytest.mark.asyncio
async def test_arrive_unknown_script_uses_stored_index(write_script, make_machine, orchestrator, presenter):
    write_script("a", ["NARRADOR,A.,"])
    write_script("b", ["NARRADOR,B.,"])
    machine = make_machine(["a", "b"], scene="rooftop", orchestrator=orchestrator)

    await orchestrator.arrive(PendingJump(script_id="renamed", script_index=1, scene="rooftop"), machine)
    assert presenter.texts() == ["B."]
