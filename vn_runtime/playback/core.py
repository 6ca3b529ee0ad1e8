"""The interpreter: one cursor over a scene's script sequence.

Lines are executed from the cursor until one needs the player:

    narration / dialogue  → shown, waits for advance()
    WAIT                  → aside text, waits for advance()
    ACT=<id>              → aside text; advance() confirms the action
    CHOICE                → options presented; only select_choice() moves on
    BRANCH / BRANCH_END   → evaluated silently, never shown
    JUMP                  → handed to the TransitionOrchestrator

advance() is the single player-input entry point. While a reveal is running
it only completes the reveal; otherwise it moves the cursor one line. It is
refused while a choice is pending, a jump is in flight or the intercept
minigame is running.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from vn_runtime.bookmarks import clamp_index, resolve_line_index
from vn_runtime.commands import (
    Directive,
    LineCommands,
    decode_commands,
    directive_for,
    is_narrator,
    normalize_speaker,
)
from vn_runtime.config import EngineConfig
from vn_runtime.decisions import DecisionStore
from vn_runtime.errors import StateError
from vn_runtime.models import (
    ChoicePrompt,
    PlaybackMode,
    PlaybackPosition,
    ScriptLine,
    TargetLine,
    TextStyle,
)
from vn_runtime.presenter import Minigame, Presenter
from vn_runtime.scripts import ScriptStore
from vn_runtime.typewriter import Typewriter

from .branches import resolve_branch
from .choices import apply_choice, collect_options
from .intercept import intercept_result_text, record_minigame_result

if TYPE_CHECKING:
    from vn_runtime.transitions import TransitionOrchestrator

logger = logging.getLogger(__name__)


class PlaybackMachine:
    def __init__(
        self,
        *,
        scene: str,
        sequence: list[str],
        scripts: ScriptStore,
        decisions: DecisionStore,
        presenter: Presenter,
        config: EngineConfig,
        orchestrator: TransitionOrchestrator | None = None,
        minigame: Minigame | None = None,
    ) -> None:
        self._scene = scene
        self._sequence = list(sequence)
        self._scripts = scripts
        self._decisions = decisions
        self._presenter = presenter
        self._config = config
        self._orchestrator = orchestrator
        self._minigame = minigame

        self._script_index = 0
        self._line_index = 0
        self._lines: list[ScriptLine] = []
        self._mode = PlaybackMode.NARRATING
        self._choice: ChoicePrompt | None = None
        self._act_id = ""
        self._awaiting_minigame = False
        self._closed = False
        self._after_choice = False

        self._typewriter = Typewriter(
            presenter.on_text_reveal,
            chars_per_second=config.chars_per_second,
            enabled=config.typewriter_enabled,
        )
        self._auto_task: asyncio.Task | None = None
        self._jump_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def scene(self) -> str:
        return self._scene

    @property
    def sequence(self) -> list[str]:
        return list(self._sequence)

    @property
    def mode(self) -> PlaybackMode:
        return self._mode

    @property
    def lines(self) -> list[ScriptLine]:
        return list(self._lines)

    @property
    def position(self) -> PlaybackPosition:
        script_id = self._sequence[self._script_index] if self._sequence else ""
        return PlaybackPosition(
            script_id=script_id,
            script_index=self._script_index,
            line_index=self._line_index,
        )

    @property
    def resume_position(self) -> PlaybackPosition:
        """Where a bookmark taken now should resume.

        While a selected option is showing, the cursor still sits on the last
        option row; the resume point is the row after it.
        """
        position = self.position
        if not self._after_choice:
            return position
        line_index = self._line_index + 1
        if line_index < len(self._lines):
            return position.model_copy(update={"line_index": line_index})
        script_index = (self._script_index + 1) % len(self._sequence)
        return PlaybackPosition(
            script_id=self._sequence[script_index],
            script_index=script_index,
            line_index=0,
        )

    @property
    def current_line(self) -> ScriptLine | None:
        if 0 <= self._line_index < len(self._lines):
            return self._lines[self._line_index]
        return None

    @property
    def choice(self) -> ChoicePrompt | None:
        return self._choice

    @property
    def awaiting_minigame(self) -> bool:
        return self._awaiting_minigame

    @property
    def is_revealing(self) -> bool:
        return self._typewriter.running

    @property
    def auto_advance_pending(self) -> bool:
        return self._auto_task is not None and not self._auto_task.done()

    @property
    def is_idle(self) -> bool:
        """True when the position can be bookmarked."""
        return (
            not self._closed
            and self._mode is not PlaybackMode.JUMPING
            and not self._awaiting_minigame
        )

    def script_index_of(self, script_id: str) -> int:
        try:
            return self._sequence.index(script_id)
        except ValueError:
            return -1

    # ------------------------------------------------------------------
    # Entering playback
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Fresh start: first script, first line."""
        self._enter(0, 0)

    def resume(self, script_index: int, line_index: int) -> None:
        """Resume a bookmark, keeping its line index."""
        if not 0 <= script_index < len(self._sequence):
            logger.warning("Bookmark script %d out of range — using 0", script_index)
            script_index = 0
        self._load_script(script_index)
        self._line_index = clamp_index(line_index, len(self._lines))
        self._mode = PlaybackMode.NARRATING
        self._run()

    def enter_script(self, script_index: int, target_line: TargetLine | str) -> None:
        """Switch to a script and resolve a jump target line within it."""
        if not 0 <= script_index < len(self._sequence):
            script_index = 0
        self._load_script(script_index)
        self._line_index = resolve_line_index(target_line, len(self._lines))
        logger.debug(
            "Entered %r at line %d (target %r)",
            self.position.script_id, self._line_index, target_line,
        )
        self._mode = PlaybackMode.NARRATING
        self._run()

    def hold_for_transition(self) -> None:
        """Refuse input until enter_script() is called."""
        self._mode = PlaybackMode.JUMPING

    def abort_jump(self) -> None:
        """Give up on the current JUMP and carry on after it."""
        if self._mode is PlaybackMode.JUMPING:
            self._step()

    def _enter(self, script_index: int, line_index: int) -> None:
        self._load_script(script_index)
        self._line_index = line_index
        self._mode = PlaybackMode.NARRATING
        self._run()

    # ------------------------------------------------------------------
    # Player input
    # ------------------------------------------------------------------

    def advance(self) -> bool:
        """Confirm input. Returns False when the input is ignored."""
        try:
            self._check_can_advance()
        except StateError as e:
            logger.debug("advance() ignored: %s", e)
            return False

        if self._typewriter.running:
            self._typewriter.complete()
            return True

        self._cancel_auto_advance()

        if self._mode is PlaybackMode.ACTING:
            action = self._act_id
            self._act_id = ""
            if action.upper() == self._config.intercept_start_action.upper():
                self._start_minigame(action)
                return True
            if action:
                self._presenter.on_action_confirmed(action)

        self._step()
        return True

    def select_choice(self, option: ScriptLine) -> None:
        """Apply a selected option. Raises StateError if it is not on offer."""
        if self._mode is not PlaybackMode.CHOICE_PENDING or self._choice is None:
            raise StateError("No choice is pending")
        if option not in self._choice.options:
            raise StateError(f"Option {option.speaker!r} is not part of the pending choice")

        choice = self._choice
        self._choice = None
        outcome = apply_choice(option, self._decisions, self._config)
        if outcome.affinity_delta:
            self._presenter.on_affinity_delta(outcome.affinity_delta)

        self._mode = PlaybackMode.NARRATING
        self._show(outcome.speaker, option.text, "dialogue" if outcome.speaker else "narration")
        command = decode_commands(option.command).raw
        if command:
            self._presenter.on_character_directive(command)
        if outcome.speaker:
            self._presenter.on_focus(outcome.speaker)

        # The next advance() lands exactly on the resume point
        self._line_index = choice.resume_index - 1
        self._after_choice = True

        if self._config.auto_advance_after_choice:
            self._schedule_auto_advance(self._config.choice_auto_advance_delay)

    def select_choice_index(self, index: int) -> None:
        if self._choice is None:
            raise StateError("No choice is pending")
        if not 0 <= index < len(self._choice.options):
            raise StateError(f"Choice index {index} out of range")
        self.select_choice(self._choice.options[index])

    def on_minigame_complete(self, success: bool) -> None:
        """Minigame callback. Ignored unless the machine is waiting for it."""
        if self._closed or not self._awaiting_minigame:
            logger.debug("Ignoring stale minigame result (success=%s)", success)
            return
        self._awaiting_minigame = False
        delta = record_minigame_result(self._decisions, success, self._config)
        if delta:
            self._presenter.on_affinity_delta(delta)
        logger.info("Intercept finished, success=%s", success)
        self._step()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def settle(self) -> None:
        """Wait for any in-flight jump to finish."""
        while self._jump_task is not None and not self._jump_task.done():
            await asyncio.wait({self._jump_task})

    def close(self) -> None:
        """Stop timers and the reveal. An in-flight jump is left to finish."""
        self._closed = True
        self._typewriter.stop()
        self._cancel_auto_advance()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _check_can_advance(self) -> None:
        if self._closed:
            raise StateError("machine is closed")
        if self._mode is PlaybackMode.JUMPING:
            raise StateError("a jump is in progress")
        if self._mode is PlaybackMode.CHOICE_PENDING:
            raise StateError("a choice is pending")
        if self._awaiting_minigame:
            raise StateError("waiting for the minigame")
        if not self._sequence:
            raise StateError("no scripts configured")

    def _load_script(self, index: int) -> None:
        self._typewriter.stop()
        self._cancel_auto_advance()
        self._script_index = index
        self._lines = self._scripts.load(self._sequence[index]) if self._sequence else []
        self._line_index = 0
        self._choice = None
        self._act_id = ""
        self._awaiting_minigame = False
        self._after_choice = False

    def _step(self) -> None:
        self._mode = PlaybackMode.NARRATING
        self._after_choice = False
        self._line_index += 1
        self._run()

    def _run(self) -> None:
        """Execute from the cursor until a line parks it."""
        if self._closed or not self._sequence:
            return
        loads = 0
        while True:
            if self._line_index >= len(self._lines):
                loads += 1
                if loads > len(self._sequence):
                    logger.warning("Nothing playable in scene %r — playback idle", self._scene)
                    self._mode = PlaybackMode.NARRATING
                    return
                self._load_script((self._script_index + 1) % len(self._sequence))
                continue

            line = self._lines[self._line_index]
            directive = directive_for(line.speaker)

            if directive is Directive.BRANCH_END:
                self._line_index += 1
                continue

            if directive is Directive.BRANCH:
                self._mode = PlaybackMode.BRANCH_SCANNING
                self._line_index = resolve_branch(
                    self._lines, self._line_index, self._decisions.get_last_choice(),
                )
                continue

            if self._execute(line, directive):
                return

    def _execute(self, line: ScriptLine, directive: Directive) -> bool:
        """Run one line. Returns True if it parked the cursor."""
        commands = decode_commands(line.command, self._config.affinity_command)
        if directive is Directive.CHOICE:
            return self._present_choice()
        if directive is Directive.WAIT:
            return self._wait(line, commands)
        if directive is Directive.ACT:
            return self._act(line, commands)
        if directive is Directive.JUMP:
            return self._jump(line, commands)
        return self._narrate(line, commands)

    def _narrate(self, line: ScriptLine, commands: LineCommands) -> bool:
        self._mode = PlaybackMode.NARRATING
        narrator = is_narrator(line.speaker)
        speaker = "" if narrator else line.speaker.strip()
        self._show(speaker, line.text, "narration" if narrator else "dialogue")
        if commands.raw:
            self._presenter.on_character_directive(commands.raw)
        if narrator:
            self._presenter.on_defocus_all()
        else:
            self._presenter.on_focus(normalize_speaker(line.speaker))
        return True

    def _wait(self, line: ScriptLine, commands: LineCommands) -> bool:
        self._mode = PlaybackMode.WAITING
        self._show("", line.text, "aside")
        if commands.wait_hide:
            self._presenter.on_hide_characters()
        return True

    def _act(self, line: ScriptLine, commands: LineCommands) -> bool:
        if commands.act.upper() == self._config.intercept_result_action.upper():
            self._mode = PlaybackMode.WAITING
            text = intercept_result_text(self._decisions, self._config)
            self._show("", text, "aside", instant=True)
            return True
        self._mode = PlaybackMode.ACTING
        self._act_id = commands.act
        self._show("", line.text, "aside")
        return True

    def _present_choice(self) -> bool:
        prompt = collect_options(self._lines, self._line_index, self._config.choice_slots)
        if not prompt.options:
            logger.warning(
                "CHOICE at %s:%d has no options — skipped",
                self.position.script_id, self._line_index,
            )
            self._line_index += 1
            return False
        self._cancel_auto_advance()
        self._typewriter.stop()
        self._choice = prompt
        self._mode = PlaybackMode.CHOICE_PENDING
        self._presenter.on_choice_presented(prompt.prompt, prompt.options)
        return True

    def _jump(self, line: ScriptLine, commands: LineCommands) -> bool:
        if self._orchestrator is None:
            logger.warning("JUMP without an orchestrator attached — ignored")
            self._line_index += 1
            return False
        self._cancel_auto_advance()
        self._mode = PlaybackMode.JUMPING
        if line.text.strip():
            self._show("", line.text, "aside")
        request = commands.jump_request()
        logger.info(
            "JUMP to %r line=%r scene=%r",
            request.target_script_id, request.target_line, request.target_external_scene,
        )
        task = asyncio.get_running_loop().create_task(self._orchestrator.jump(request, self))
        task.add_done_callback(self._jump_finished)
        self._jump_task = task
        return True

    def _jump_finished(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Jump failed: %r — continuing on the current script", error)
            if not self._closed:
                self.abort_jump()

    def _start_minigame(self, action: str) -> None:
        if self._minigame is None:
            logger.warning("No minigame attached — skipping %s", action)
            self._step()
            return
        self._awaiting_minigame = True
        self._minigame.start(self.on_minigame_complete)

    # ------------------------------------------------------------------
    # Presentation helpers
    # ------------------------------------------------------------------

    def _show(self, speaker: str, text: str, style: TextStyle, *, instant: bool = False) -> None:
        progressive = not instant and self._typewriter.progressive and bool(text)
        self._presenter.on_line_display(speaker, text, progressive, style)
        self._typewriter.start(text, instant=instant)

    def _schedule_auto_advance(self, delay: float) -> None:
        self._cancel_auto_advance()
        self._auto_task = asyncio.get_running_loop().create_task(self._auto_advance(delay))

    async def _auto_advance(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._auto_task = None
        if self._closed or self._mode is not PlaybackMode.NARRATING:
            return
        self._typewriter.complete()
        self._step()

    def _cancel_auto_advance(self) -> None:
        if self._auto_task is not None and not self._auto_task.done():
            self._auto_task.cancel()
        self._auto_task = None
