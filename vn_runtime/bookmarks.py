"""Bookmark/resume protocol.

Persisted keys (all through the injected StateStore):

    vn.save.exists          bool   a bookmark has been written
    vn.save.continue        bool   the menu asked to resume on next boot
    vn.save.scene           str    top-level scene of the bookmark
    vn.save.script_index    int    script within that scene's sequence
    vn.save.line_index      int    line within that script
    vn.jump.active          bool   a cross-scene jump awaits the next boot
    vn.jump.*                      the PendingJump record

On boot exactly one path is taken, in priority order:

    1. jump     — a pending jump flag is set (consumed once)
    2. continue — the continue flag is set and a readable bookmark exists
    3. fresh    — reset decisions, start at script 0, line 0
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel

from vn_runtime.errors import PersistenceError
from vn_runtime.models import Bookmark, PendingJump, PlaybackPosition, TargetLine
from vn_runtime.state import StateStore

logger = logging.getLogger(__name__)

KEY_HAS_SAVE = "vn.save.exists"
KEY_CONTINUE = "vn.save.continue"
KEY_SAVE_SCENE = "vn.save.scene"
KEY_SAVE_SCRIPT = "vn.save.script_index"
KEY_SAVE_LINE = "vn.save.line_index"

KEY_JUMP_ACTIVE = "vn.jump.active"
KEY_JUMP_SCRIPT_ID = "vn.jump.script_id"
KEY_JUMP_SCRIPT_INDEX = "vn.jump.script_index"
KEY_JUMP_LINE = "vn.jump.line"
KEY_JUMP_SCENE = "vn.jump.scene"
KEY_JUMP_FADE_IN = "vn.jump.fade_in"
KEY_JUMP_CROSSFADE = "vn.jump.crossfade"
KEY_JUMP_AUDIO = "vn.jump.persisted_audio"

_JUMP_KEYS = (
    KEY_JUMP_SCRIPT_ID,
    KEY_JUMP_SCRIPT_INDEX,
    KEY_JUMP_LINE,
    KEY_JUMP_SCENE,
    KEY_JUMP_FADE_IN,
    KEY_JUMP_CROSSFADE,
    KEY_JUMP_AUDIO,
)

BootPath = Literal["jump", "continue", "fresh"]


def resolve_line_index(target: TargetLine | str, count: int) -> int:
    """Resolve a jump target line against a script of `count` lines.

    "END" → last valid index; an int → clamped into range; anything else → 0.
    """
    last = max(0, count - 1)
    if isinstance(target, str):
        if target.strip().upper() == "END":
            return last
        try:
            target = int(target.strip())
        except ValueError:
            return 0
    if isinstance(target, bool) or not isinstance(target, int):
        return 0
    return min(max(target, 0), last)


def clamp_index(index: int, count: int) -> int:
    if index < 0:
        return 0
    if index >= count:
        return max(0, count - 1)
    return index


class BootPlan(BaseModel):
    path: BootPath
    bookmark: Bookmark | None = None
    jump: PendingJump | None = None


class BookmarkStore:
    def __init__(self, store: StateStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Save bookmark
    # ------------------------------------------------------------------

    def save(self, position: PlaybackPosition, scene: str) -> Bookmark:
        bookmark = Bookmark(
            scene=scene,
            script_index=position.script_index,
            line_index=position.line_index,
        )
        self._store.set(KEY_SAVE_SCENE, bookmark.scene)
        self._store.set(KEY_SAVE_SCRIPT, bookmark.script_index)
        self._store.set(KEY_SAVE_LINE, bookmark.line_index)
        self._store.set(KEY_HAS_SAVE, True)
        logger.info(
            "Saved bookmark scene=%s script=%d line=%d",
            bookmark.scene, bookmark.script_index, bookmark.line_index,
        )
        return bookmark

    def has_save(self) -> bool:
        return self._store.get(KEY_HAS_SAVE, False) is True

    def read(self) -> Bookmark:
        """Return the saved bookmark, or raise PersistenceError."""
        if not self.has_save():
            raise PersistenceError("No save present")
        scene = self._store.get(KEY_SAVE_SCENE)
        script_index = self._store.get(KEY_SAVE_SCRIPT)
        line_index = self._store.get(KEY_SAVE_LINE)
        if not isinstance(scene, str) or not scene:
            raise PersistenceError(f"Bookmark scene is corrupt: {scene!r}")
        for name, value in (("script", script_index), ("line", line_index)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise PersistenceError(f"Bookmark {name} index is corrupt: {value!r}")
        return Bookmark(scene=scene, script_index=script_index, line_index=line_index)

    def peek_scene(self) -> str | None:
        """Scene of the saved bookmark, if readable."""
        try:
            return self.read().scene
        except PersistenceError:
            return None

    # ------------------------------------------------------------------
    # Continue flag
    # ------------------------------------------------------------------

    def request_continue(self) -> None:
        self._store.set(KEY_CONTINUE, True)

    def continue_requested(self) -> bool:
        return self._store.get(KEY_CONTINUE, False) is True

    def consume_continue(self) -> bool:
        requested = self.continue_requested()
        if requested:
            self._store.set(KEY_CONTINUE, False)
        return requested

    # ------------------------------------------------------------------
    # Pending jump
    # ------------------------------------------------------------------

    def write_jump(self, pending: PendingJump) -> None:
        self._store.set(KEY_JUMP_SCRIPT_ID, pending.script_id)
        self._store.set(KEY_JUMP_SCRIPT_INDEX, pending.script_index)
        self._store.set(KEY_JUMP_LINE, pending.target_line)
        self._store.set(KEY_JUMP_SCENE, pending.scene)
        self._store.set(KEY_JUMP_FADE_IN, pending.fade_in)
        self._store.set(KEY_JUMP_CROSSFADE, pending.crossfade)
        self._store.set(KEY_JUMP_AUDIO, list(pending.persisted_audio))
        self._store.set(KEY_JUMP_ACTIVE, True)

    def jump_pending(self) -> bool:
        return self._store.get(KEY_JUMP_ACTIVE, False) is True

    def pending_scene(self) -> str | None:
        if not self.jump_pending():
            return None
        scene = self._store.get(KEY_JUMP_SCENE)
        return scene if isinstance(scene, str) and scene else None

    def consume_jump(self) -> PendingJump | None:
        """Return the pending jump and clear it. Returns None if none or corrupt."""
        if not self.jump_pending():
            return None
        self._store.set(KEY_JUMP_ACTIVE, False)
        try:
            pending = PendingJump(
                script_id=self._store.get(KEY_JUMP_SCRIPT_ID, "") or "",
                script_index=self._store.get(KEY_JUMP_SCRIPT_INDEX, 0) or 0,
                target_line=self._store.get(KEY_JUMP_LINE),
                scene=self._store.get(KEY_JUMP_SCENE, "") or "",
                fade_in=bool(self._store.get(KEY_JUMP_FADE_IN, False)),
                crossfade=bool(self._store.get(KEY_JUMP_CROSSFADE, False)),
                persisted_audio=self._store.get(KEY_JUMP_AUDIO) or [],
            )
        except ValueError as e:
            logger.warning("Pending jump record is corrupt (%s) — ignoring it", e)
            pending = None
        finally:
            for key in _JUMP_KEYS:
                self._store.delete(key)
        return pending


def resolve_boot(bookmarks: BookmarkStore) -> BootPlan:
    """Decide how playback starts. Consumes the one-shot flags it acts on."""
    pending = bookmarks.consume_jump()
    if pending is not None:
        return BootPlan(path="jump", jump=pending)

    if bookmarks.consume_continue():
        try:
            return BootPlan(path="continue", bookmark=bookmarks.read())
        except PersistenceError as e:
            logger.warning("Cannot resume (%s) — starting a new game", e)

    return BootPlan(path="fresh")
