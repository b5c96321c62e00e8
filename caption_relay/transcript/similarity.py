"""
Text similarity used to decide whether two caption lines are the same utterance.

Speech recognition revises a sentence while it is on screen ("Hello wor" ->
"Hello world", "Yes I" -> "Yes, I do", "I sea the" -> "I see the ship"), so
equality is too strict. Comparisons run on normalized text: lowercase words
with punctuation stripped, joined by single spaces. Two texts are the same
utterance when one normalized text is a prefix of the other, or when most of
the words of the shorter one occur in the longer one. Texts with too few
words for an overlap ratio fall back to word-set containment or a long
shared head.
"""
from __future__ import annotations

import re

_NON_WORD = re.compile(r"[^\w]+", re.UNICODE)


def words(text: str) -> list[str]:
    """Lowercase words in order, punctuation stripped."""
    out: list[str] = []
    for word in (text or "").lower().split():
        w = _NON_WORD.sub("", word)
        if w:
            out.append(w)
    return out


def normalize(text: str) -> str:
    return " ".join(words(text))


def tokenize(text: str) -> set[str]:
    """Lowercase word set, punctuation stripped."""
    return set(words(text))


def common_prefix_len(a: str, b: str) -> int:
    n = min(len(a), len(b))
    i = 0
    while i < n and a[i] == b[i]:
        i += 1
    return i


def speakers_compatible(a: str, b: str) -> bool:
    """Declared labels must match when both are present."""
    return not (a and b and a != b)


def token_overlap(a: str, b: str, min_tokens: int = 3) -> float:
    """Overlap of the smaller token set with the larger one (0.0 when a set is too small)."""
    set_a, set_b = tokenize(a), tokenize(b)
    if len(set_a) < min_tokens or len(set_b) < min_tokens:
        return 0.0
    smaller, larger = (set_a, set_b) if len(set_a) <= len(set_b) else (set_b, set_a)
    return len(smaller & larger) / len(smaller)


def short_texts_related(a: str, b: str, threshold: float = 0.6) -> bool:
    """
    Relation for texts too short for token overlap: the smaller word set is
    contained in the larger one, or the normalized texts share a head covering
    at least threshold of the shorter one ("I sea" / "I see").
    """
    na, nb = normalize(a), normalize(b)
    if not na or not nb:
        return False
    set_a, set_b = set(na.split()), set(nb.split())
    if set_a <= set_b or set_b <= set_a:
        return True
    return common_prefix_len(na, nb) >= threshold * min(len(na), len(nb))


def is_revision(previous: str, current: str, threshold: float = 0.6, min_tokens: int = 3) -> bool:
    """True when current looks like a rewrite of previous rather than a new utterance."""
    p, c = normalize(previous), normalize(current)
    if not p or not c:
        return False
    if p.startswith(c) or c.startswith(p):
        return True
    if len(set(p.split())) < min_tokens or len(set(c.split())) < min_tokens:
        return short_texts_related(p, c, threshold)
    return token_overlap(p, c, min_tokens) >= threshold


def shares_head(a: str, b: str, head_chars: int = 10) -> bool:
    """First head_chars characters agree (bounded by the shorter text)."""
    need = min(head_chars, len(a), len(b))
    return common_prefix_len(a, b) >= need
