from __future__ import annotations

import re

import jellyfish

_NON_ASCII_LETTERS = re.compile(r"[^A-Z]")


def soundex(name: str | None) -> str:
    """American Soundex code of `name`, e.g. 'SMITH' -> 'S530'.

    Only the letters A-Z are coded, so anything else (digits, punctuation,
    accented characters left over from encoding problems) is dropped first.
    Empty or missing input gives an empty code rather than an error.
    """
    if not name:
        return ""
    letters = _NON_ASCII_LETTERS.sub("", name.upper())
    if not letters:
        return ""
    return jellyfish.soundex(letters)
