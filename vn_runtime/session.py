"""Player session: boots scenes, owns the live PlaybackMachine, saves.

A session plays the role of the host application's scene manager. Loading a
scene throws the current machine away and builds a new one over that scene's
script sequence, then resolves how to enter it (pending jump → continue →
fresh start). Cross-scene jumps come back in through `load_scene()`.
"""

from __future__ import annotations

import logging

from vn_runtime.bookmarks import BookmarkStore, resolve_boot
from vn_runtime.config import EngineConfig
from vn_runtime.decisions import DecisionStore
from vn_runtime.errors import PersistenceError, StateError
from vn_runtime.models import Bookmark
from vn_runtime.playback import PlaybackMachine
from vn_runtime.presenter import AudioBridge, Fader, LoggingPresenter, Minigame, Presenter
from vn_runtime.scripts import ScriptStore
from vn_runtime.state import StateStore
from vn_runtime.transitions import TransitionOrchestrator

logger = logging.getLogger(__name__)


class PlayerSession:
    def __init__(
        self,
        *,
        config: EngineConfig,
        scripts: ScriptStore,
        state: StateStore,
        presenter: Presenter | None = None,
        fader: Fader | None = None,
        audio: AudioBridge | None = None,
        minigame: Minigame | None = None,
    ) -> None:
        self._config = config
        self._scripts = scripts
        self._presenter = presenter or LoggingPresenter()
        self._minigame = minigame
        self._decisions = DecisionStore(state)
        self._bookmarks = BookmarkStore(state)
        self._orchestrator = TransitionOrchestrator(
            config, self._bookmarks, scene_loader=self, fader=fader, audio=audio,
        )
        self._machine: PlaybackMachine | None = None

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def machine(self) -> PlaybackMachine | None:
        return self._machine

    @property
    def decisions(self) -> DecisionStore:
        return self._decisions

    @property
    def bookmarks(self) -> BookmarkStore:
        return self._bookmarks

    @property
    def orchestrator(self) -> TransitionOrchestrator:
        return self._orchestrator

    # ------------------------------------------------------------------
    # Booting
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Boot whichever scene the persisted flags point at."""
        scene = self._bookmarks.pending_scene()
        if scene is None and self._bookmarks.continue_requested():
            scene = self._bookmarks.peek_scene()
        await self._boot(scene or self._config.start_scene)

    async def new_game(self) -> None:
        self._bookmarks.consume_continue()
        if self._bookmarks.consume_jump() is not None:
            logger.info("Discarding pending jump for a new game")
        await self._boot(self._config.start_scene)

    async def continue_game(self) -> bool:
        """Resume the saved bookmark. Returns False if there was none."""
        try:
            self._bookmarks.read()
        except PersistenceError as e:
            logger.info("Cannot continue (%s) — starting a new game", e)
            await self.new_game()
            return False
        self._bookmarks.request_continue()
        await self.start()
        return True

    async def load_scene(self, scene_id: str) -> None:
        await self._boot(scene_id)

    async def _boot(self, scene: str) -> None:
        if scene not in self._config.scenes:
            logger.warning("Unknown scene %r — booting %r", scene, self._config.start_scene)
            scene = self._config.start_scene

        if self._machine is not None:
            self._machine.close()

        machine = PlaybackMachine(
            scene=scene,
            sequence=self._config.sequence(scene),
            scripts=self._scripts,
            decisions=self._decisions,
            presenter=self._presenter,
            config=self._config,
            orchestrator=self._orchestrator,
            minigame=self._minigame,
        )
        self._machine = machine

        plan = resolve_boot(self._bookmarks)
        logger.info("Booting scene %r via %s", scene, plan.path)
        if plan.path == "jump" and plan.jump is not None:
            await self._orchestrator.arrive(plan.jump, machine)
        elif plan.path == "continue" and plan.bookmark is not None:
            machine.resume(plan.bookmark.script_index, plan.bookmark.line_index)
        else:
            self._decisions.reset_all()
            machine.start()

    # ------------------------------------------------------------------
    # Player input
    # ------------------------------------------------------------------

    def advance(self) -> bool:
        if self._machine is None:
            return False
        return self._machine.advance()

    def select_choice_index(self, index: int) -> bool:
        if self._machine is None:
            return False
        try:
            self._machine.select_choice_index(index)
        except StateError as e:
            logger.debug("Choice %d ignored: %s", index, e)
            return False
        return True

    def minigame_complete(self, success: bool) -> bool:
        if self._machine is None or not self._machine.awaiting_minigame:
            return False
        self._machine.on_minigame_complete(success)
        return True

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def has_save(self) -> bool:
        return self._bookmarks.has_save()

    def save(self) -> Bookmark | None:
        """Bookmark the current position. Only allowed while idle."""
        if self._machine is None or not self._machine.is_idle:
            logger.info("Save refused — playback is not idle")
            return None
        return self._bookmarks.save(self._machine.resume_position, self._machine.scene)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def settle(self) -> None:
        """Wait until no jump is in flight, following scene reloads."""
        while self._machine is not None:
            machine = self._machine
            await machine.settle()
            if self._machine is machine:
                return

    def close(self) -> None:
        if self._machine is not None:
            self._machine.close()
