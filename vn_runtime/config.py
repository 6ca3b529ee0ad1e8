"""Engine configuration (scene sequences, timings, reserved identifiers).

`load_config()` returns defaults merged with the stored JSON file, if any.
Unknown keys in the file are ignored; an unreadable or invalid file falls
back to defaults with a warning.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


def _default_scenes() -> dict[str, list[str]]:
    return {
        "game": ["intro", "scene_01", "scene_02"],
        "rooftop": ["rooftop_01"],
    }


class EngineConfig(BaseModel):
    # Top-level scenes, each with its ordered script sequence
    scenes: dict[str, list[str]] = Field(default_factory=_default_scenes)
    start_scene: str = "game"

    # Text reveal
    typewriter_enabled: bool = True
    chars_per_second: float = 40.0

    # Choices
    choice_slots: int = 3
    auto_advance_after_choice: bool = True
    choice_auto_advance_delay: float = 5.0
    character_slots: list[str] = Field(default_factory=lambda: ["L", "R", "C"])

    # Jump hand-off timings (seconds)
    jump_wait_time: float = 1.5
    jump_fade_out: float = 0.8
    jump_fade_in_delay: float = 0.3
    jump_fade_in: float = 1.0
    jump_crossfade: float = 0.6
    music_tail_fade: float = 15.0

    # Reserved identifiers
    affinity_command: str = "AFF_DAMIAO"
    moral_choice_id: str = "TRUTH"
    moral_truth_option: str = "TODO"
    intercept_start_action: str = "INTERCEPT_START"
    intercept_result_action: str = "INTERCEPT_RESULT"
    intercept_choice_id: str = "INTERCEPT"
    intercept_affinity_delta: int = 1
    intercept_success_lines: list[str] = Field(default_factory=lambda: [
        "PROJECT SUMMER REACTIVATED",
        "NEURAL CORE IN NIGHT TRANSFER",
        "CORPORATE AUTHORIZATION ACTIVE",
    ])
    intercept_failure_lines: list[str] = Field(default_factory=lambda: [
        "TRANSFER DETECTED",
        "INCOMPLETE DATA",
        "AUTHORIZATION NOT VERIFIED",
    ])

    def sequence(self, scene: str) -> list[str]:
        return list(self.scenes.get(scene, []))


def load_config(path: Path | None = None) -> EngineConfig:
    """Read config, returning defaults merged with stored values."""
    if path is None or not Path(path).is_file():
        return EngineConfig()
    try:
        stored = json.loads(Path(path).read_text(encoding="utf-8"))
        return EngineConfig.model_validate(stored)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning("Invalid config %s (%s) — using defaults", path, e)
        return EngineConfig()


def save_config(config: EngineConfig, path: Path) -> EngineConfig:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
    return config
