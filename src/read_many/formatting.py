from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict

from read_many.delimiters import pick_delimiter
from read_many.exceptions import MalformedBlockError

_OPENING_RE = re.compile(r"^<<'(?P<delimiter>.+)'$")


class FramedBlock(BaseModel):
    """One file's contribution recovered from combined output."""

    model_config = ConfigDict(frozen=True)

    path: str
    delimiter: str
    body: str


def format_content_block(path: str, body: str, position: int) -> str:
    """Wrap `body` in a heredoc style block headed by `path`.

    The layout is::

        @<path>
        <<'<delimiter>'
        <body>
        <delimiter>

    The body is emitted verbatim; the delimiter is chosen so that it never
    equals one of the body's lines.

    Args:
        path (str): the requested file path, emitted as is in the header
        body (str): the content to frame
        position (int): 1-based position of the file in the request

    Returns:
        str: the framed block, without trailing newline
    """
    delimiter = pick_delimiter(path, position, body)
    return f"@{path}\n<<'{delimiter}'\n{body}\n{delimiter}"


def split_blocks(text: str) -> list[FramedBlock]:
    """Split combined output back into its framed blocks.

    Only header, opening and closing lines are inspected; body lines are
    collected untouched until the exact delimiter line shows up. Blank lines
    between blocks are skipped.

    Args:
        text (str): combined output made of framed blocks separated by blank lines

    Raises:
        MalformedBlockError: if a header is missing, is not followed by an
            opening marker, or a block is never closed

    Returns:
        list[FramedBlock]: the blocks in the order they appear
    """
    lines = text.split("\n")
    blocks: list[FramedBlock] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if not line:
            i += 1
            continue
        if not line.startswith("@"):
            raise MalformedBlockError(line_number=i + 1, message="expected a '@<path>' header line")
        path = line[1:]
        if i + 1 >= len(lines):
            raise MalformedBlockError(line_number=i + 2, message="missing opening marker")
        opening = _OPENING_RE.match(lines[i + 1])
        if opening is None:
            raise MalformedBlockError(line_number=i + 2, message="expected a <<'<delimiter>' opening line")
        delimiter = opening.group("delimiter")
        start = i + 2
        end = start
        while end < len(lines) and lines[end] != delimiter:
            end += 1
        if end >= len(lines):
            raise MalformedBlockError(line_number=i + 1, message=f"block for {path!r} is never closed")
        blocks.append(FramedBlock(path=path, delimiter=delimiter, body="\n".join(lines[start:end])))
        i = end + 1
    return blocks
