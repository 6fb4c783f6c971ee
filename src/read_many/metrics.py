from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from read_many.config import DEFAULT_MAX_BYTES, DEFAULT_MAX_LINES


class TextMetrics(BaseModel):
    """Size of a text blob in the units the combined budget is expressed in.

    Attributes:
        bytes: UTF-8 byte length.
        lines: Number of newline separated segments (a text without newline has one line).
    """

    model_config = ConfigDict(frozen=True)

    bytes: int = Field(..., ge=0)
    lines: int = Field(..., ge=1)


class TruncationResult(BaseModel):
    """Outcome of keeping the head of a text under a line and byte ceiling."""

    model_config = ConfigDict(frozen=True)

    content: str
    truncated: bool
    truncated_by: Literal["lines", "bytes"] | None = None
    total_lines: int
    total_bytes: int
    output_lines: int
    output_bytes: int
    last_line_partial: bool = False
    first_line_exceeds_limit: bool = False
    max_lines: int
    max_bytes: int


def byte_length(text: str) -> int:
    """Return the UTF-8 byte length of `text`."""
    return len(text.encode("utf-8"))


def measure_text(text: str) -> TextMetrics:
    """Measure a text blob.

    Args:
        text (str): the text to measure

    Returns:
        TextMetrics: UTF-8 byte length and newline separated segment count of `text`
    """
    return TextMetrics(bytes=byte_length(text), lines=text.count("\n") + 1)


def truncate_head(
    content: str,
    *,
    max_lines: int = DEFAULT_MAX_LINES,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> TruncationResult:
    """Keep the longest run of leading whole lines that fits both ceilings.

    Lines are never cut in the middle. When the very first line is already
    larger than `max_bytes`, nothing can be kept and the result is empty with
    `first_line_exceeds_limit` set.

    Args:
        content (str): the text to truncate
        max_lines (int): maximum number of lines to keep
        max_bytes (int): maximum UTF-8 byte length to keep

    Returns:
        TruncationResult: the kept content and bookkeeping about what was dropped
    """
    total_bytes = byte_length(content)
    lines = content.split("\n")
    total_lines = len(lines)
    limits = {"max_lines": max_lines, "max_bytes": max_bytes}

    if total_lines <= max_lines and total_bytes <= max_bytes:
        return TruncationResult(
            content=content,
            truncated=False,
            total_lines=total_lines,
            total_bytes=total_bytes,
            output_lines=total_lines,
            output_bytes=total_bytes,
            **limits,
        )

    if byte_length(lines[0]) > max_bytes:
        return TruncationResult(
            content="",
            truncated=True,
            truncated_by="bytes",
            total_lines=total_lines,
            total_bytes=total_bytes,
            output_lines=0,
            output_bytes=0,
            first_line_exceeds_limit=True,
            **limits,
        )

    kept: list[str] = []
    used = 0
    truncated_by: Literal["lines", "bytes"] = "lines"
    for i, line in enumerate(lines[: max(0, max_lines)]):
        cost = byte_length(line) + (1 if i else 0)
        if used + cost > max_bytes:
            truncated_by = "bytes"
            break
        kept.append(line)
        used += cost

    out = "\n".join(kept)
    return TruncationResult(
        content=out,
        truncated=True,
        truncated_by=truncated_by,
        total_lines=total_lines,
        total_bytes=total_bytes,
        output_lines=len(kept),
        output_bytes=byte_length(out),
        **limits,
    )
