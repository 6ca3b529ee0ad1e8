"""Script store — named CSV resources parsed into ScriptLine lists.

Resource layout:

    {script_dir}/
      intro.csv
      scene_01.csv
      ...

Each file is `speaker,text,command` with a header row that is discarded.
Fields may be quote-wrapped to carry commas. Quote characters only toggle the
quoting state and are otherwise kept verbatim; the text column then has one
surrounding pair removed. Command fields keep theirs — the tokenizer strips
them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from vn_runtime.errors import ParseError, ResourceNotFound
from vn_runtime.models import ScriptLine

logger = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".csv"


def split_row(row: str, delimiter: str = ",") -> list[str]:
    """Split one CSV row, respecting quoted fields."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in row:
        if ch == '"':
            in_quotes = not in_quotes
            current.append(ch)
        elif ch == delimiter and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def parse_row(row: str) -> ScriptLine:
    parts = split_row(row)
    if len(parts) < 2:
        raise ParseError(f"Expected at least 2 fields, got {len(parts)}: {row!r}")
    speaker = parts[0].strip()
    text = unquote(parts[1])
    command = parts[2].strip() if len(parts) >= 3 else ""
    return ScriptLine(speaker=speaker, text=text, command=command)


def parse_script(text: str, name: str = "<script>") -> list[ScriptLine]:
    """Parse raw CSV text. The first row is a header; malformed rows are skipped."""
    rows = text.lstrip("\ufeff").split("\n")
    lines: list[ScriptLine] = []
    for number, raw in enumerate(rows[1:], start=2):
        row = raw.strip()
        if not row:
            continue
        try:
            lines.append(parse_row(row))
        except ParseError as e:
            logger.warning("%s:%d skipped — %s", name, number, e)
    if not lines:
        logger.warning("Script %r loaded but has no lines", name)
    return lines


class ScriptStore:
    def __init__(self, script_dir: Path) -> None:
        self._dir = Path(script_dir)

    @property
    def script_dir(self) -> Path:
        return self._dir

    def _path(self, script_id: str) -> Path:
        return self._dir / f"{script_id}{SCRIPT_SUFFIX}"

    def exists(self, script_id: str) -> bool:
        return bool(script_id) and self._path(script_id).is_file()

    def read(self, script_id: str) -> str:
        """Return the raw text of a script, or raise ResourceNotFound."""
        if not self.exists(script_id):
            raise ResourceNotFound(f"Script not found: {self._path(script_id)}")
        return self._path(script_id).read_text(encoding="utf-8")

    def load(self, script_id: str) -> list[ScriptLine]:
        """Load and parse a script. A missing script yields an empty list."""
        try:
            text = self.read(script_id)
        except ResourceNotFound as e:
            logger.error("%s — continuing with an empty script", e)
            return []
        lines = parse_script(text, name=script_id)
        logger.debug("Loaded script %r (%d lines)", script_id, len(lines))
        return lines
