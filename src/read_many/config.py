from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_BYTES = 50 * 1024
DEFAULT_MAX_LINES = 2000

MAX_FILES = 26

# Blank line between rendered sections ("\n\n").
SEPARATOR_BYTES = 2
SEPARATOR_LINES = 1

DELIMITER_WORDS: tuple[str, ...] = (
    "PINE",
    "MANGO",
    "ORBIT",
    "RAVEN",
    "CEDAR",
    "LOTUS",
    "EMBER",
    "NOVA",
    "DUNE",
    "KITE",
    "TIDAL",
    "QUARTZ",
    "ACORN",
    "BLAZE",
    "FJORD",
    "GLYPH",
    "HARBOR",
    "IVORY",
    "JUNIPER",
    "SIERRA",
    "UMBRA",
    "VIOLET",
    "WILLOW",
    "XENON",
    "YARROW",
    "ZEPHYR",
)

DELIMITER_SUFFIX_PROBES = 256

PARTIAL_WRAPPER_LINES = 3
PARTIAL_WRAPPER_BYTES = 96
PARTIAL_MIN_BYTES = 32
PARTIAL_MAX_ATTEMPTS = 16
PARTIAL_BYTE_MARGIN = 8

NO_TEXT_PLACEHOLDER = "[No text content returned]"

IMAGE_MEDIA_TYPES: dict[str, str] = {
    ".bmp": "image/bmp",
    ".gif": "image/gif",
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


class PackingStrategy(StrEnum):
    """Traversal order used by the packing planner for full-block inclusion."""

    REQUEST_ORDER = "request-order"
    SMALLEST_FIRST = "smallest-first"


class Budget(BaseModel):
    """Combined byte and line ceilings the assembled output must respect.

    Attributes:
        max_bytes: Maximum UTF-8 byte length of the combined output.
        max_lines: Maximum number of newline separated lines of the combined output.
    """

    model_config = ConfigDict(frozen=True)

    max_bytes: int = Field(default=DEFAULT_MAX_BYTES, gt=0, description="Byte ceiling")
    max_lines: int = Field(default=DEFAULT_MAX_LINES, gt=0, description="Line ceiling")


def image_omitted_notice(image_count: int) -> str:
    """Text line standing in for image payloads that cannot travel in the combined text."""
    return f"[{image_count} image attachment(s) omitted; use read on this file for image payload.]"


def error_body(message: str) -> str:
    """Body of the framed block emitted for a failed read."""
    return f"[Error: {message}]"
