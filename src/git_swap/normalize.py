"""Case and path normalization shared by every duplicate and match check."""

from __future__ import annotations


def _fold_char(ch: str) -> str:
    # Simple case folding: a character only maps to a single character,
    # so "ß" stays "ß" rather than expanding to "ss".
    upper = ch.upper()
    if len(upper) == 1:
        ch = upper
    lower = ch.lower()
    return lower if len(lower) == 1 else ch


def fold(text: str | None) -> str:
    """Case-fold text for comparison. ``None`` folds to the empty string.

    The result always has the same length as the input.
    """
    return "".join(_fold_char(ch) for ch in text or "")


def same_text(a: str | None, b: str | None) -> bool:
    """Case-insensitive equality under simple case folding."""
    return fold(a) == fold(b)


def normalize_path(path: str | None) -> str:
    """Fold case and unify separators.

    This is a textual heuristic, not filesystem canonicalization: symlinks
    and ``~`` versus an absolute home path are not resolved.
    """
    return fold(path).replace("\\", "/")


def same_path(a: str | None, b: str | None) -> bool:
    return normalize_path(a) == normalize_path(b)
