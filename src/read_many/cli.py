"""
read_many: read several files in one call for an LLM.

Overview
--------
Each requested file is read in order and wrapped in a heredoc style block::

    @<path>
    <<'<delimiter>'
    <body>
    <delimiter>

The delimiter never matches a line of the body, so blocks can be split back
out without escaping. Blocks are packed under a combined byte/line budget:
request order first, smallest-first only when it fully includes more files
that were read successfully. At most one block is included partially.

Usage
-----
Run `python -m read_many.cli --help` for full options. Common examples:
    - Two files, the second one from line 40 for 20 lines:
        uv run python -m read_many.cli src/app.py README.md:40:20

    - Request document (JSON or YAML) plus a YAML report:
        uv run python -m read_many.cli --request files.yaml --report report.yaml

    - Tighter budget, stop at the first unreadable file:
        uv run python -m read_many.cli a.py b.py --max-bytes 8000 --stop-on-error
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError

from read_many import __version__
from read_many.exceptions import InvalidRequestError, OperationAbortedError
from read_many.file_manipulation import LocalFileReader
from read_many.logging import logger, setup_logging
from read_many.models import FileRequest, ReadManyRequest
from read_many.output_construction import read_many
from read_many.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from read_many.models import ReadManyDetails

EXIT_OK = 0
EXIT_FILE_ERRORS = 1
EXIT_USAGE = 2
EXIT_ABORTED = 130

# Large report fields that only repeat content already present in the output.
_REPORT_EXCLUDE = {
    "combined_truncation": {"content"},
    "files": {"__all__": {"truncation": {"content"}}},
}


def parse_file_spec(spec: str) -> FileRequest:
    """Parse a `path[:offset[:limit]]` command line file spec.

    Only trailing numeric parts are taken as offset/limit, so paths that
    contain colons (e.g. `C:\\src\\app.py`) are kept whole. An empty offset
    (`path::limit`) means "from the start".

    Args:
        spec (str): the command line argument

    Raises:
        InvalidRequestError: if the spec has no path

    Returns:
        FileRequest: the parsed request entry
    """
    parts = spec.split(":")
    numeric: list[str] = []
    while len(parts) > 1 and len(numeric) < 2 and (parts[-1].isdecimal() or (not parts[-1] and numeric)):  # noqa: PLR2004
        numeric.insert(0, parts.pop())
    path = ":".join(parts)
    if not path:
        msg = f"missing path in file spec {spec!r}"
        raise InvalidRequestError(message=msg)

    offset: int | None = None
    limit: int | None = None
    if len(numeric) == 2:  # noqa: PLR2004
        offset = int(numeric[0]) if numeric[0] else None
        limit = int(numeric[1])
    elif numeric:
        offset = int(numeric[0])
    try:
        return FileRequest(path=path, offset=offset, limit=limit)
    except ValidationError as e:
        raise InvalidRequestError(message=f"invalid file spec {spec!r}: {e}") from e


def load_request_document(path: Path) -> dict:
    """Load a JSON or YAML request document (`files`, optional `stopOnError`).

    Raises:
        InvalidRequestError: if the document is unreadable or not a mapping
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        msg = f"cannot load request document {path}: {e}"
        raise InvalidRequestError(message=msg) from e
    if not isinstance(data, dict):
        msg = f"request document {path} must be a mapping"
        raise InvalidRequestError(message=msg)
    return data


def build_request(settings: Settings) -> ReadManyRequest:
    """Combine the request document and command line file specs into one request.

    Document entries come first, command line specs after them. `--stop-on-error`
    turns the policy on even if the document leaves it off.

    Raises:
        InvalidRequestError: if no file is requested or the request is invalid
    """
    files: list[FileRequest] = []
    stop_on_error = settings.stop_on_error
    if settings.request is not None:
        doc = load_request_document(settings.request)
        try:
            doc_request = ReadManyRequest.model_validate(doc)
        except ValidationError as e:
            raise InvalidRequestError(message=f"invalid request document {settings.request}: {e}") from e
        files.extend(doc_request.files)
        stop_on_error = stop_on_error or doc_request.stop_on_error
    files.extend(parse_file_spec(spec) for spec in settings.files)

    try:
        return ReadManyRequest(files=files, stop_on_error=stop_on_error)
    except ValidationError as e:
        raise InvalidRequestError(message=f"invalid request: {e}") from e


def write_report(details: ReadManyDetails, path: Path) -> None:
    """Write the report as YAML for `.yaml`/`.yml` files, JSON otherwise."""
    data = details.model_dump(mode="json", exclude=_REPORT_EXCLUDE)
    if path.suffix.lower() in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
    else:
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="read-many",
        description="Read several files into one framed, size-bounded text blob.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "files",
        nargs="*",
        default=[],
        help="File spec: path[:offset[:limit]] (offset is 1-based).",
    )
    p.add_argument("--request", type=Path, default=None, help="JSON or YAML request document.")
    p.add_argument("--cwd", type=Path, default=None, help="Base directory for relative paths.")
    p.add_argument("--output", type=Path, default=None, help="Write combined text to this file.")
    p.add_argument("--report", type=Path, default=None, help="Write the report (.json, .yaml, .yml).")
    p.add_argument("--stop-on-error", action="store_true", help="Stop on first error.")
    p.add_argument("--max-bytes", type=int, default=None, help="Combined output byte ceiling.")
    p.add_argument("--max-lines", type=int, default=None, help="Combined output line ceiling.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    args = p.parse_args(argv)
    return Settings(**{k: v for k, v in vars(args).items() if v is not None})


@contextmanager
def cancel_on_sigint() -> Iterator[threading.Event]:
    """Turn SIGINT into a cancellation token checked between file reads."""
    cancel = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return
    previous = signal.signal(signal.SIGINT, lambda *_: cancel.set())
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = parse_args(argv)
    except (ValidationError, ValueError) as e:
        print(f"read-many: error: {e}", file=sys.stderr)
        return EXIT_USAGE
    if settings.log_file:
        setup_logging(settings.log_file)

    try:
        request = build_request(settings)
    except InvalidRequestError as e:
        logger.error("invalid_request", error=str(e))
        print(f"read-many: error: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        with cancel_on_sigint() as cancel:
            result = read_many(request, LocalFileReader(settings.cwd), budget=settings.budget, cancel=cancel)
    except OperationAbortedError as e:
        logger.warning("aborted", processed=e.processed)
        print(f"read-many: {e}", file=sys.stderr)
        return EXIT_ABORTED

    if settings.output is not None:
        settings.output.write_text(result.text, encoding="utf-8")
        packing = result.details.packing
        print(
            f"Wrote {settings.output} files={result.details.processed_count} "
            f"strategy={packing.strategy} full={packing.full_included_count} "
            f"omitted={len(packing.omitted_paths)}",
        )
    else:
        sys.stdout.write(result.text + "\n")

    if settings.report is not None:
        write_report(result.details, settings.report)

    return EXIT_OK if result.details.error_count == 0 else EXIT_FILE_ERRORS


if __name__ == "__main__":
    raise SystemExit(main())
