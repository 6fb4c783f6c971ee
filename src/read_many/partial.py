"""Truncation-safe partial inclusion of a single oversized block.

The wrapper around a body (header, markers, delimiter) is only known exactly
once the block is formatted, so the fit is found by a bounded shrink loop:
truncate the head of the body, format, measure, and shrink the caps by the
observed overflow. At most `PARTIAL_MAX_ATTEMPTS` rounds are tried; if none
fits, no partial is produced rather than an oversized one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from read_many.config import (
    PARTIAL_BYTE_MARGIN,
    PARTIAL_MAX_ATTEMPTS,
    PARTIAL_MIN_BYTES,
    PARTIAL_WRAPPER_BYTES,
    PARTIAL_WRAPPER_LINES,
)
from read_many.formatting import format_content_block
from read_many.metrics import measure_text, truncate_head

if TYPE_CHECKING:
    from read_many.models import FileCandidate


def build_partial_section(
    candidate: FileCandidate,
    remaining_lines: int,
    remaining_bytes: int,
) -> str | None:
    """Build the largest head-truncated block of `candidate` that fits the remaining budget.

    Args:
        candidate (FileCandidate): the candidate to truncate; failed reads carry no body
            and never yield a partial
        remaining_lines (int): lines available for the whole rendered block
        remaining_bytes (int): bytes available for the whole rendered block

    Returns:
        str | None: the framed partial block, or None when no usable partial fits
    """
    if not candidate.body:
        return None

    max_body_lines = remaining_lines - PARTIAL_WRAPPER_LINES
    if max_body_lines < 1 or remaining_bytes < PARTIAL_MIN_BYTES:
        return None
    max_body_bytes = max(1, remaining_bytes - PARTIAL_WRAPPER_BYTES)

    for _attempt in range(PARTIAL_MAX_ATTEMPTS):
        trunc = truncate_head(candidate.body, max_lines=max_body_lines, max_bytes=max_body_bytes)
        if not trunc.content:
            return None

        text = format_content_block(candidate.path, trunc.content, candidate.position)
        metrics = measure_text(text)
        if metrics.lines <= remaining_lines and metrics.bytes <= remaining_bytes:
            return text

        if metrics.lines > remaining_lines and max_body_lines > 1:
            max_body_lines = max(1, max_body_lines - (metrics.lines - remaining_lines))
        if metrics.bytes > remaining_bytes and max_body_bytes > 1:
            max_body_bytes = max(1, max_body_bytes - (metrics.bytes - remaining_bytes) - PARTIAL_BYTE_MARGIN)

    return None
