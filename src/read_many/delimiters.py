"""Delimiter allocation for framed blocks.

A delimiter is derived from the file's path and its 1-based position in the
request, then pushed through a deterministic sequence of suffixed variants
until one is found that does not appear as a line of the file's content.
That guarantee is what lets a block body travel without any escaping.
"""

from __future__ import annotations

from itertools import count
from typing import TYPE_CHECKING

from read_many.config import DELIMITER_SUFFIX_PROBES, DELIMITER_WORDS

if TYPE_CHECKING:
    from collections.abc import Iterator

_HASH_SEED = 5381
_HASH_MASK = 0xFFFFFFFF
_HASH_WIDTH = 6
_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _utf16_code_units(text: str) -> Iterator[int]:
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def path_hash(path: str) -> str:
    """Compute the short framing hash of a path.

    djb2 over the UTF-16 code units of `path` with unsigned 32-bit wraparound,
    rendered as uppercase hexadecimal, zero padded and cut to 6 characters.
    Not a cryptographic hash; it only has to keep delimiters of different
    paths apart.

    Args:
        path (str): the requested file path, used verbatim

    Returns:
        str: six uppercase hexadecimal characters
    """
    value = _HASH_SEED
    for unit in _utf16_code_units(path):
        value = ((value << 5) + value + unit) & _HASH_MASK
    return f"{value:X}".rjust(_HASH_WIDTH, "0")[:_HASH_WIDTH]


def delimiter_word(position: int) -> str:
    """Return the readable word for a 1-based position, or `FILE<position>` past the dictionary."""
    if 1 <= position <= len(DELIMITER_WORDS):
        return DELIMITER_WORDS[position - 1]
    return f"FILE{position}"


def build_line_set(content: str) -> frozenset[str]:
    """Collect every line of `content`, ignoring one trailing carriage return per line."""
    return frozenset(line.removesuffix("\r") for line in content.split("\n"))


def to_base36(value: int) -> str:
    """Render a non-negative integer in uppercase base 36."""
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def delimiter_candidates(base: str, content_length: int) -> Iterator[str]:
    """Yield the deterministic, never ending sequence of delimiter candidates for `base`."""
    yield base
    for attempt in range(1, DELIMITER_SUFFIX_PROBES + 1):
        yield f"{base}_{attempt}"
    fallback = f"{base}_{to_base36(content_length)}"
    yield fallback
    for suffix in count(1):
        yield f"{fallback}_{suffix}"


def first_free(candidates: Iterator[str], forbidden: frozenset[str] | set[str]) -> str:
    """Return the first candidate not in `forbidden`.

    Terminates for any finite `forbidden` set as long as `candidates` yields
    infinitely many distinct values.
    """
    for candidate in candidates:
        if candidate not in forbidden:
            return candidate
    msg = "delimiter candidate sequence exhausted"
    raise RuntimeError(msg)


def pick_delimiter(path: str, position: int, content: str) -> str:
    """Pick the delimiter for the block of `path` at `position`.

    Args:
        path (str): the requested file path
        position (int): 1-based position of the file in the request
        content (str): the body that will be wrapped by the delimiter

    Returns:
        str: a token of the form `<WORD>_<position>_<HASH>[_suffix...]` that is
            not equal to any line of `content`
    """
    base = f"{delimiter_word(position)}_{position}_{path_hash(path)}"
    return first_free(delimiter_candidates(base, len(content)), build_line_set(content))
