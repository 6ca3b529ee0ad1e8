"""Playback error taxonomy.

None of these are allowed to halt playback. Each is raised where the problem
is detected and handled at the nearest seam, which degrades to a safe default
and logs:

    ParseError           — malformed script row; the row is skipped
    ResourceNotFound     — script resource missing; an empty script is used
    ScriptReferenceError — JUMP target unresolvable; playback stays put
    StateError           — operation invalid in the current mode; ignored
    PersistenceError     — missing/corrupt bookmark; treated as "no save"
"""

from __future__ import annotations


class PlaybackError(RuntimeError):
    """Base class for every recoverable playback failure."""


class ParseError(PlaybackError):
    """A script row could not be turned into a ScriptLine."""


class ResourceNotFound(PlaybackError):
    """A named script resource does not exist."""


class ScriptReferenceError(PlaybackError):
    """A JUMP names a script that is not in the active sequence."""


class StateError(PlaybackError):
    """An operation was requested in a mode that does not accept it."""


class PersistenceError(PlaybackError):
    """Persisted playback state is missing or corrupt."""
