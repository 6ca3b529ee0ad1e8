"""Tests for vn_runtime.bookmarks — save slot, continue flag, pending jump, boot path."""

import pytest

from vn_runtime.bookmarks import (
    KEY_JUMP_ACTIVE,
    KEY_JUMP_SCRIPT_INDEX,
    KEY_SAVE_LINE,
    BookmarkStore,
    clamp_index,
    resolve_boot,
    resolve_line_index,
)
from vn_runtime.errors import PersistenceError
from vn_runtime.models import Bookmark, PendingJump, PlaybackPosition


@pytest.fixture
def bookmarks(state) -> BookmarkStore:
    return BookmarkStore(state)


# ---------------------------------------------------------------------------
# Line resolution
# ---------------------------------------------------------------------------

class TestResolveLineIndex:
    def test_end_on_ten_lines(self) -> None:
        assert resolve_line_index("END", 10) == 9

    def test_end_on_one_line(self) -> None:
        assert resolve_line_index("END", 1) == 0

    def test_end_on_empty_script(self) -> None:
        assert resolve_line_index("END", 0) == 0

    def test_int_is_clamped(self) -> None:
        assert resolve_line_index(4, 10) == 4
        assert resolve_line_index(40, 10) == 9
        assert resolve_line_index(-2, 10) == 0

    def test_numeric_string(self) -> None:
        assert resolve_line_index(" 3 ", 10) == 3
        assert resolve_line_index("end", 5) == 4

    def test_anything_else_is_zero(self) -> None:
        assert resolve_line_index(None, 10) == 0
        assert resolve_line_index("later", 10) == 0


def test_clamp_index():
    assert clamp_index(7, 10) == 7
    assert clamp_index(12, 10) == 9
    assert clamp_index(-1, 10) == 0
    assert clamp_index(3, 0) == 0


# ---------------------------------------------------------------------------
# Save slot
# ---------------------------------------------------------------------------

def test_save_then_read(bookmarks):
    position = PlaybackPosition(script_id="scene_01", script_index=1, line_index=7)
    saved = bookmarks.save(position, "game")
    assert saved == Bookmark(scene="game", script_index=1, line_index=7)
    assert bookmarks.has_save()
    assert bookmarks.read() == saved


def test_read_without_save_raises(bookmarks):
    assert not bookmarks.has_save()
    with pytest.raises(PersistenceError):
        bookmarks.read()


def test_read_corrupt_bookmark_raises(state, bookmarks):
    bookmarks.save(PlaybackPosition(script_id="s", script_index=0, line_index=2), "game")
    state.set(KEY_SAVE_LINE, "two")
    with pytest.raises(PersistenceError):
        bookmarks.read()
    assert bookmarks.peek_scene() is None


def test_continue_flag_consumed_once(bookmarks):
    assert bookmarks.consume_continue() is False
    bookmarks.request_continue()
    assert bookmarks.continue_requested()
    assert bookmarks.consume_continue() is True
    assert bookmarks.consume_continue() is False


# ---------------------------------------------------------------------------
# Pending jump
# ---------------------------------------------------------------------------

def test_jump_record_roundtrip_and_single_consumption(state, bookmarks):
    pending = PendingJump(
        script_id="rooftop_01", script_index=0, target_line="END",
        scene="rooftop", fade_in=True, crossfade=False, persisted_audio=["rain"],
    )
    bookmarks.write_jump(pending)
    assert bookmarks.jump_pending()
    assert bookmarks.pending_scene() == "rooftop"

    assert bookmarks.consume_jump() == pending
    assert bookmarks.consume_jump() is None
    assert state.get(KEY_JUMP_ACTIVE) is False
    assert state.get(KEY_JUMP_SCRIPT_INDEX) is None


def test_corrupt_jump_record_is_dropped(state, bookmarks):
    bookmarks.write_jump(PendingJump(script_id="x", scene="rooftop"))
    state.set(KEY_JUMP_SCRIPT_INDEX, "zero")
    assert bookmarks.consume_jump() is None
    assert not bookmarks.jump_pending()


# ---------------------------------------------------------------------------
# Boot path
# ---------------------------------------------------------------------------

def test_boot_fresh_by_default(bookmarks):
    assert resolve_boot(bookmarks).path == "fresh"


def test_boot_continue_uses_bookmark_verbatim(bookmarks):
    bookmarks.save(PlaybackPosition(script_id="s", script_index=2, line_index=7), "game")
    bookmarks.request_continue()
    plan = resolve_boot(bookmarks)
    assert plan.path == "continue"
    assert plan.bookmark == Bookmark(scene="game", script_index=2, line_index=7)
    assert not bookmarks.continue_requested()


def test_boot_continue_without_save_falls_back_to_fresh(bookmarks):
    bookmarks.request_continue()
    assert resolve_boot(bookmarks).path == "fresh"


def test_boot_save_without_continue_is_fresh(bookmarks):
    bookmarks.save(PlaybackPosition(script_id="s", script_index=0, line_index=3), "game")
    assert resolve_boot(bookmarks).path == "fresh"


def test_boot_jump_wins_over_continue(bookmarks):
    bookmarks.save(PlaybackPosition(script_id="s", script_index=0, line_index=3), "game")
    bookmarks.request_continue()
    bookmarks.write_jump(PendingJump(script_id="rooftop_01", scene="rooftop"))

    plan = resolve_boot(bookmarks)
    assert plan.path == "jump"
    assert plan.jump.script_id == "rooftop_01"
    # The continue flag stays for a later boot
    assert bookmarks.continue_requested()
