from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from read_many.config import MAX_FILES, PackingStrategy, error_body
from read_many.formatting import format_content_block
from read_many.metrics import TextMetrics, TruncationResult, measure_text


class FileRequest(BaseModel):
    """One entry of a read request.

    Attributes:
        path: Path to the file to read (relative or absolute), passed verbatim to the read primitive.
        offset: 1-based line number to start reading from.
        limit: Maximum number of lines to read.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Path to the file to read (relative or absolute)")
    offset: int | None = Field(default=None, ge=1, description="Line number to start reading from (1-indexed)")
    limit: int | None = Field(default=None, ge=1, description="Maximum number of lines to read")


class ReadManyRequest(BaseModel):
    """Files to read in the exact order listed, plus the error policy."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    files: list[FileRequest] = Field(..., min_length=1, max_length=MAX_FILES)
    stop_on_error: bool = Field(default=False, alias="stopOnError", description="Stop on first error")


class TextFragment(BaseModel):
    """Textual output fragment of the read primitive."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImageFragment(BaseModel):
    """Opaque image payload returned by the read primitive."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["image"] = "image"
    data: str
    mime_type: str = Field(..., alias="mimeType")


Fragment = Annotated[TextFragment | ImageFragment, Field(discriminator="type")]


class ReadResult(BaseModel):
    """What the read primitive returns for one file."""

    model_config = ConfigDict(frozen=True)

    content: list[Fragment] = Field(default_factory=list)
    truncation: TruncationResult | None = Field(
        default=None,
        description="Set when the read primitive itself truncated the content",
    )

    @property
    def texts(self) -> list[str]:
        """Text of every textual fragment, in order."""
        return [item.text for item in self.content if isinstance(item, TextFragment)]

    @property
    def image_count(self) -> int:
        """Number of image fragments."""
        return sum(1 for item in self.content if isinstance(item, ImageFragment))


class FileCandidate(BaseModel):
    """A file's fully framed block, built once from its read outcome.

    Attributes:
        index: 0-based position of the file in the request.
        path: Requested path, not canonicalized.
        ok: Whether the read succeeded.
        full_text: The complete framed block (success body or error message).
        full_metrics: Metrics of `full_text`.
        body: Raw body used to build a smaller partial block; None for failed reads.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    path: str
    ok: bool
    full_text: str
    full_metrics: TextMetrics
    body: str | None = None

    @property
    def position(self) -> int:
        """1-based position, used for delimiter allocation."""
        return self.index + 1

    @classmethod
    def from_body(cls, index: int, path: str, body: str) -> FileCandidate:
        """Build the candidate of a successful read."""
        full_text = format_content_block(path, body, index + 1)
        return cls(
            index=index,
            path=path,
            ok=True,
            full_text=full_text,
            full_metrics=measure_text(full_text),
            body=body,
        )

    @classmethod
    def from_error(cls, index: int, path: str, message: str) -> FileCandidate:
        """Build the candidate of a failed read; it can only be fully included or omitted."""
        full_text = format_content_block(path, error_body(message), index + 1)
        return cls(
            index=index,
            path=path,
            ok=False,
            full_text=full_text,
            full_metrics=measure_text(full_text),
        )


class PackedSection(BaseModel):
    """A truncated block standing in for a candidate that did not fit in full."""

    model_config = ConfigDict(frozen=True)

    index: int
    text: str
    metrics: TextMetrics


class PackingPlan(BaseModel):
    """Outcome of packing all candidates under one traversal strategy."""

    model_config = ConfigDict(frozen=True)

    strategy: PackingStrategy
    full_included: frozenset[int] = Field(default_factory=frozenset)
    partial_section: PackedSection | None = None
    omitted_indexes: tuple[int, ...] = ()
    used_bytes: int = 0
    used_lines: int = 0
    section_count: int = 0
    full_success_count: int = 0

    @property
    def full_count(self) -> int:
        """Number of fully included blocks, error blocks included."""
        return len(self.full_included)

    @property
    def partial_index(self) -> int | None:
        """Index of the partially included candidate, if any."""
        return self.partial_section.index if self.partial_section is not None else None


class FileDetail(BaseModel):
    """Per-file outcome reported to the caller."""

    path: str
    ok: bool
    error: str | None = None
    image_count: int | None = None
    truncation: TruncationResult | None = None


class PackingDetails(BaseModel):
    """Diagnostics of the packing decision."""

    strategy: PackingStrategy
    switched_for_coverage: bool
    full_included_count: int
    full_included_success_count: int
    partial_included_path: str | None = None
    omitted_paths: list[str] = Field(default_factory=list)


class ReadManyDetails(BaseModel):
    """Structured report accompanying the combined text."""

    processed_count: int
    success_count: int
    error_count: int
    files: list[FileDetail]
    packing: PackingDetails
    combined_truncation: TruncationResult | None = None


class ReadManyResult(BaseModel):
    """Combined framed text plus its report."""

    text: str
    details: ReadManyDetails
