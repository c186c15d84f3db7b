"""
Team Diagnostics Report Service
Module marker renumbering.

Module templates are authored with a reference numbering ("### MODULE 3:
THE STRESS TEST", "see MODULE 1") that rarely matches the order a user
picks. This module rewrites those markers to the module's position in the
selection.

Marker grammar (case-insensitive):

    marker  := WORD_BOUNDARY "module" BLANK+ DIGIT+ WORD_BOUNDARY
    BLANK   := " " | "\\t"

Only the integer is replaced; the word's original casing, the blanks, any
heading prefix ("###") and a trailing ":" are left as written. Numbers not
directly introduced by the word "module" (numbered list items, "3 Ways to
Shift", "MODULES 2") never match.
"""

import re

MODULE_MARKER_RE = re.compile(
    r"(?P<word>\bmodule)(?P<blank>[ \t]+)(?P<number>\d+)\b",
    re.IGNORECASE,
)


def find_module_markers(text: str) -> list[int]:
    """Return the numbers of every module marker in ``text``, in order."""
    if not text:
        return []
    return [int(m.group("number")) for m in MODULE_MARKER_RE.finditer(text)]


def renumber_module_markers(text: str, number: int) -> str:
    """
    Rewrite every module marker in ``text`` to ``number``.

    Args:
        text: Module template text. Empty or marker-free text is returned
              unchanged.
        number: 1-based positional number of the module in the selection.

    Returns:
        The rewritten text.

    Raises:
        ValueError: If ``number`` is not a positive integer.
    """
    if isinstance(number, bool) or not isinstance(number, int) or number < 1:
        raise ValueError(f"Module number must be a positive integer, got {number!r}")
    if not text:
        return text

    def _replace(match: re.Match) -> str:
        return f"{match.group('word')}{match.group('blank')}{number}"

    return MODULE_MARKER_RE.sub(_replace, text)
