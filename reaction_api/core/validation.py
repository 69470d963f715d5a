"""Allow-list validation for identifiers that arrive from the page boundary."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

VIDEO_ID_MAX_LEN = 100

_VIDEO_ID_RE = re.compile(r'[A-Za-z0-9_.-]+')
_REACTION_KIND_RE = re.compile(r'[A-Za-z0-9_]+')


class ReactionKind(str, Enum):
    """Reaction buttons offered under a video."""

    LIKE = 'like'
    LOVE = 'love'
    LAUGH = 'laugh'
    WOW = 'wow'
    SAD = 'sad'
    ANGRY = 'angry'


REACTION_KINDS = frozenset(kind.value for kind in ReactionKind)


def is_valid_video_id(value: Any) -> bool:
    """Check a video id against the safe charset.

    Letters, digits, ``-``, ``_`` and ``.`` only, at most 100 chars and
    no ``..`` sequence, so the id can never address a path.
    """
    if not isinstance(value, str):
        return False
    if not 0 < len(value) <= VIDEO_ID_MAX_LEN:
        return False
    if '..' in value:
        return False
    return _VIDEO_ID_RE.fullmatch(value) is not None


def is_valid_reaction_kind(value: Any) -> bool:
    """Check that a reaction kind is alphanumeric and a known kind."""
    if not isinstance(value, str):
        return False
    if _REACTION_KIND_RE.fullmatch(value) is None:
        return False
    return value in REACTION_KINDS
