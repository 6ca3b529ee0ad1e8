"""Command field tokenizing and per-line directive decoding.

A line's command field is a `;`-separated list of KEY=VALUE tokens:

    WAIT=PAUSE;WAIT_HIDE=1
    CHOICE_ID=Q1;CHOICE_OPT=NO;AFF_DAMIAO=-1;R=DAMIAO:sad
    JUMP_SCENE=scene_02;JUMP_LINE=END;JUMP_UNITY_SCENE=terrace;SKIP_MUSIC_FADE=1

Keys are case-insensitive and the first occurrence wins. A missing key is the
normal case and reads as "" — callers apply their own default.

The speaker column doubles as the directive selector: reserved tokens (WAIT,
ACT, JUMP, CHOICE, BRANCH, BRANCH_END) change how the line is interpreted;
anything else is a speaking character, with NARRADOR / empty meaning the
narrator.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from vn_runtime.models import JumpRequest, TargetLine

NARRATOR = "NARRADOR"

# Keys the interpreter understands; anything else lands in `unrecognized`.
KNOWN_KEYS = (
    "WAIT",
    "WAIT_HIDE",
    "ACT",
    "JUMP_SCENE",
    "JUMP_LINE",
    "JUMP_UNITY_SCENE",
    "SKIP_MUSIC_FADE",
    "JUMP_CROSSFADE",
    "CHOICE_ID",
    "CHOICE_OPT",
)


class Directive(str, Enum):
    NARRATION = "NARRATION"
    WAIT = "WAIT"
    ACT = "ACT"
    JUMP = "JUMP"
    CHOICE = "CHOICE"
    BRANCH = "BRANCH"
    BRANCH_END = "BRANCH_END"


_RESERVED = {d.value: d for d in Directive if d is not Directive.NARRATION}


def normalize_speaker(speaker: str | None) -> str:
    return (speaker or "").strip().upper()


def directive_for(speaker: str | None) -> Directive:
    """Map a speaker column to the directive it selects."""
    return _RESERVED.get(normalize_speaker(speaker), Directive.NARRATION)


def is_narrator(speaker: str | None) -> bool:
    name = normalize_speaker(speaker)
    return name in ("", NARRATOR)


def clean_command(command: str | None) -> str:
    """Strip whitespace and the stray quotes the CSV layer leaves around commands."""
    return (command or "").strip().strip('"').strip()


def tokens(command: str | None) -> list[tuple[str, str]]:
    """Split a command field into (KEY, value) pairs, keys upper-cased."""
    pairs: list[tuple[str, str]] = []
    for part in clean_command(command).split(";"):
        token = part.strip()
        if not token:
            continue
        key, sep, value = token.partition("=")
        if not sep:
            pairs.append((key.strip().upper(), ""))
            continue
        pairs.append((key.strip().upper(), value.strip()))
    return pairs


def parse_value(command: str | None, key: str) -> str:
    """Return the value of `key` in `command`, or "" when absent.

    "A=1;B=2;C=3", "B"  → "2"
    "b=2", "B"          → "2"
    "", "B"             → ""
    """
    if not command:
        return ""
    wanted = key.strip().upper() + "="
    for part in clean_command(command).split(";"):
        token = part.strip()
        if token.upper().startswith(wanted):
            return token[len(wanted):].strip()
    return ""


def parse_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except (TypeError, ValueError):
        return None


def parse_target_line(value: str) -> TargetLine:
    """JUMP_LINE value: "END", an integer, or unset."""
    value = value.strip()
    if not value:
        return None
    if value.upper() == "END":
        return "END"
    return parse_int(value)


def slot_speaker(command: str | None, slots: list[str] | tuple[str, ...] = ("L", "R", "C")) -> str:
    """Speaker implied by a character-slot directive such as `R=DAMIAO:sad`."""
    for slot in slots:
        value = parse_value(command, slot)
        if value:
            name = value.split(":", 1)[0].strip().upper()
            if name:
                return name
    return ""


class LineCommands(BaseModel):
    """Every command a line can carry, decoded once."""

    raw: str = ""
    wait: str = ""
    wait_hide: bool = False
    act: str = ""
    jump_scene: str = ""
    jump_line: TargetLine = None
    jump_external_scene: str = ""
    skip_music_fade: bool = False
    jump_crossfade: bool = False
    choice_id: str = ""
    choice_opt: str = ""
    affinity_delta: int | None = None
    unrecognized: list[str] = Field(default_factory=list)

    def jump_request(self) -> JumpRequest:
        return JumpRequest(
            target_script_id=self.jump_scene,
            target_line=self.jump_line,
            target_external_scene=self.jump_external_scene or None,
            skip_audio_fade=self.skip_music_fade,
            crossfade=self.jump_crossfade,
        )


def decode_commands(command: str | None, affinity_key: str = "AFF_DAMIAO") -> LineCommands:
    """Decode a command field into a LineCommands record (first key wins)."""
    raw = clean_command(command)
    affinity_key = affinity_key.upper()
    seen: dict[str, str] = {}
    unrecognized: list[str] = []
    for key, value in tokens(raw):
        if key in seen:
            continue
        seen[key] = value
        if key not in KNOWN_KEYS and key != affinity_key:
            unrecognized.append(key)

    affinity = seen.get(affinity_key, "")
    return LineCommands(
        raw=raw,
        wait=seen.get("WAIT", ""),
        wait_hide=parse_flag(seen.get("WAIT_HIDE", "")),
        act=seen.get("ACT", ""),
        jump_scene=seen.get("JUMP_SCENE", ""),
        jump_line=parse_target_line(seen.get("JUMP_LINE", "")),
        jump_external_scene=seen.get("JUMP_UNITY_SCENE", ""),
        skip_music_fade=parse_flag(seen.get("SKIP_MUSIC_FADE", "")),
        jump_crossfade=parse_flag(seen.get("JUMP_CROSSFADE", "")),
        choice_id=seen.get("CHOICE_ID", ""),
        choice_opt=seen.get("CHOICE_OPT", ""),
        affinity_delta=parse_int(affinity) if affinity else None,
        unrecognized=unrecognized,
    )
