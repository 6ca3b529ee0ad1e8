"""JUMP hand-off between scripts and scenes.

A JUMP line parks the machine in JUMPING and runs `jump()` as a task:

  1. Wait jump_wait_time so the JUMP line's own text can be read.
  2. Resolve JUMP_SCENE in the current scene's sequence.
     - unresolved, no JUMP_UNITY_SCENE → ScriptReferenceError, logged; playback
       carries on after the JUMP line.
     - unresolved, with JUMP_UNITY_SCENE → index 0 as placeholder; the
       destination scene re-resolves the script id on arrival.
  3. In-process (no JUMP_UNITY_SCENE): machine.enter_script(index, line).
  4. Cross-scene:
     a. SKIP_MUSIC_FADE=1 migrates playing audio instead of fading it.
     b. Visual out: fade to opaque (audio fades in lock-step) or, with
        JUMP_CROSSFADE=1, an instant snapshot of the outgoing frame.
     c. Write the PendingJump record and ask the SceneLoader to boot the scene.

`arrive()` is the destination half, run by whoever boots the new scene once
the jump flag has been consumed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from vn_runtime.bookmarks import BookmarkStore
from vn_runtime.config import EngineConfig
from vn_runtime.errors import ScriptReferenceError
from vn_runtime.models import JumpRequest, PendingJump
from vn_runtime.presenter import AudioBridge, Fader, NullAudio, NullFader, SceneLoader

if TYPE_CHECKING:
    from vn_runtime.playback import PlaybackMachine

logger = logging.getLogger(__name__)


class TransitionOrchestrator:
    def __init__(
        self,
        config: EngineConfig,
        bookmarks: BookmarkStore,
        scene_loader: SceneLoader | None = None,
        fader: Fader | None = None,
        audio: AudioBridge | None = None,
    ) -> None:
        self._config = config
        self._bookmarks = bookmarks
        self._scene_loader = scene_loader
        self._fader = fader or NullFader()
        self._audio = audio or NullAudio()
        self._background: set[asyncio.Task] = set()

    @property
    def scene_loader(self) -> SceneLoader | None:
        return self._scene_loader

    @scene_loader.setter
    def scene_loader(self, loader: SceneLoader | None) -> None:
        self._scene_loader = loader

    def resolve_target(self, request: JumpRequest, machine: PlaybackMachine) -> int:
        """Index of the target script in the machine's sequence.

        Raises ScriptReferenceError when the script is unknown and there is no
        external scene to defer the lookup to.
        """
        index = machine.script_index_of(request.target_script_id)
        if index >= 0:
            return index
        if request.target_external_scene:
            logger.debug(
                "Script %r not in scene %r — deferring to %r",
                request.target_script_id, machine.scene, request.target_external_scene,
            )
            return 0
        raise ScriptReferenceError(
            f"JUMP target {request.target_script_id!r} is not in scene {machine.scene!r}"
        )

    # ------------------------------------------------------------------
    # Outgoing half
    # ------------------------------------------------------------------

    async def jump(self, request: JumpRequest, machine: PlaybackMachine) -> None:
        await asyncio.sleep(self._config.jump_wait_time)

        try:
            index = self.resolve_target(request, machine)
        except ScriptReferenceError as e:
            logger.error("%s", e)
            machine.abort_jump()
            return

        if not request.target_external_scene:
            machine.enter_script(index, request.target_line)
            return

        if self._scene_loader is None:
            logger.error("No scene loader to boot %r — JUMP ignored", request.target_external_scene)
            machine.abort_jump()
            return

        await self._hand_off(request, index)

    async def _hand_off(self, request: JumpRequest, index: int) -> None:
        scene = request.target_external_scene or ""
        persisted: list[str] = []
        if request.skip_audio_fade:
            persisted = self._audio.persist_playing()
            logger.debug("Migrating audio across the jump: %s", persisted)

        if request.crossfade:
            # The reload releases whatever audio was not migrated.
            await self._fader.capture_snapshot()
        elif request.skip_audio_fade:
            await self._fader.fade_out(self._config.jump_fade_out)
        else:
            await asyncio.gather(
                self._fader.fade_out(self._config.jump_fade_out),
                self._audio.fade_out(self._config.jump_fade_out),
            )

        self._bookmarks.write_jump(PendingJump(
            script_id=request.target_script_id,
            script_index=index,
            target_line=request.target_line,
            scene=scene,
            fade_in=not request.crossfade,
            crossfade=request.crossfade,
            persisted_audio=persisted,
        ))
        logger.info("Loading scene %r for script %r", scene, request.target_script_id)

        await self._scene_loader.load_scene(scene)

    # ------------------------------------------------------------------
    # Incoming half
    # ------------------------------------------------------------------

    async def arrive(self, pending: PendingJump, machine: PlaybackMachine) -> None:
        """Enter the destination script of a consumed PendingJump."""
        machine.hold_for_transition()

        index = machine.script_index_of(pending.script_id)
        if index < 0:
            logger.warning(
                "Script %r not in scene %r — using stored index %d",
                pending.script_id, machine.scene, pending.script_index,
            )
            index = pending.script_index

        if pending.persisted_audio:
            task = asyncio.get_running_loop().create_task(
                self._audio.tail_fade(list(pending.persisted_audio), self._config.music_tail_fade)
            )
            self._background.add(task)
            task.add_done_callback(self._background.discard)

        if pending.crossfade:
            machine.enter_script(index, pending.target_line)
            await self._fader.crossfade(self._config.jump_crossfade)
            return

        if pending.fade_in:
            await asyncio.sleep(self._config.jump_fade_in_delay)
            await self._fader.fade_in(self._config.jump_fade_in)
        machine.enter_script(index, pending.target_line)

    async def drain(self) -> None:
        """Wait for background audio tails to finish."""
        if self._background:
            await asyncio.wait(set(self._background))
