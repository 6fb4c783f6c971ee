"""Local single-file read primitive used by the command line.

Library callers normally bring their own primitive; this one covers the
plain local file system case: text files sliced by offset/limit and capped
to the default budget, images handed back as opaque base64 payloads.
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import TYPE_CHECKING

from read_many.config import DEFAULT_MAX_BYTES, DEFAULT_MAX_LINES, IMAGE_MEDIA_TYPES
from read_many.exceptions import OffsetOutOfRangeError
from read_many.metrics import byte_length, truncate_head
from read_many.models import ImageFragment, ReadResult, TextFragment

if TYPE_CHECKING:
    from read_many.models import FileRequest


def resolve_path(path: str, cwd: Path) -> Path:
    """Resolve a requested path against `cwd`, expanding `~`.

    Args:
        path (str): the requested path, relative or absolute
        cwd (Path): base directory for relative paths

    Returns:
        Path: the absolute path to read
    """
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = cwd / p
    return p


def guess_media_type(path: Path) -> str | None:
    """Return the image media type for known image suffixes, None otherwise."""
    return IMAGE_MEDIA_TYPES.get(path.suffix.lower())


def slice_lines(lines: list[str], offset: int | None, limit: int | None) -> tuple[list[str], int]:
    """Select the requested window of lines.

    Args:
        lines (list[str]): all lines of the file
        offset (int | None): 1-based first line, None for the start of the file
        limit (int | None): maximum number of lines, None for no limit

    Raises:
        OffsetOutOfRangeError: if `offset` points past the last line

    Returns:
        tuple[list[str], int]: the selected lines and the 0-based index of the first one
    """
    start = (offset or 1) - 1
    if start >= len(lines):
        raise OffsetOutOfRangeError(offset=start + 1, total_lines=len(lines))
    end = len(lines) if limit is None else min(len(lines), start + limit)
    return lines[start:end], start


def read_image(path: Path, media_type: str) -> ReadResult:
    """Read an image file as an opaque base64 payload."""
    data = base64.b64encode(path.read_bytes()).decode("ascii")
    return ReadResult(
        content=[
            TextFragment(text=f"Read image file [{media_type}]"),
            ImageFragment(data=data, mime_type=media_type),
        ],
    )


def read_text(
    path: Path,
    *,
    offset: int | None,
    limit: int | None,
    max_lines: int = DEFAULT_MAX_LINES,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> ReadResult:
    """Read a text file window, capped to the given ceilings, with a continuation notice.

    Args:
        path (Path): the file to read
        offset (int | None): 1-based first line
        limit (int | None): maximum number of lines
        max_lines (int): line cap applied after slicing
        max_bytes (int): byte cap applied after slicing

    Returns:
        ReadResult: a single text fragment, plus truncation info when the cap applied
    """
    lines = path.read_text(encoding="utf-8", errors="ignore").split("\n")
    total = len(lines)
    selected, start = slice_lines(lines, offset, limit)
    trunc = truncate_head("\n".join(selected), max_lines=max_lines, max_bytes=max_bytes)

    if trunc.first_line_exceeds_limit:
        size = byte_length(selected[0])
        text = f"[Line {start + 1} is {size} bytes, exceeds {max_bytes} byte limit. Use a smaller window.]"
    elif trunc.truncated:
        last = start + trunc.output_lines
        text = f"{trunc.content}\n\n[Showing lines {start + 1}-{last} of {total}. Use offset={last + 1} to continue.]"
    elif start + len(selected) < total:
        shown_end = start + len(selected)
        text = (
            f"{trunc.content}\n\n[{total - shown_end} more lines in file. "
            f"Use offset={shown_end + 1} to continue.]"
        )
    else:
        text = trunc.content

    return ReadResult(
        content=[TextFragment(text=text)],
        truncation=trunc if trunc.truncated else None,
    )


def read_local_file(request: FileRequest, *, cwd: Path | None = None) -> ReadResult:
    """Read one requested file from the local file system.

    Args:
        request (FileRequest): path and optional offset/limit
        cwd (Path | None): base directory for relative paths; defaults to the process cwd

    Raises:
        FileNotFoundError: if the path does not exist
        OffsetOutOfRangeError: if the offset points past the end of a text file

    Returns:
        ReadResult: the read primitive result for this file
    """
    path = resolve_path(request.path, cwd or Path.cwd())
    if not path.exists():
        msg = f"File not found: {request.path}"
        raise FileNotFoundError(msg)
    media_type = guess_media_type(path)
    if media_type is not None:
        return read_image(path, media_type)
    return read_text(path, offset=request.offset, limit=request.limit)


class LocalFileReader:
    """Read primitive bound to a base directory."""

    def __init__(self, cwd: Path | None = None) -> None:
        self.cwd = cwd or Path.cwd()

    def __call__(self, request: FileRequest) -> ReadResult:
        return read_local_file(request, cwd=self.cwd)
