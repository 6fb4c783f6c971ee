from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from read_many.config import NO_TEXT_PLACEHOLDER, Budget, PackingStrategy, image_omitted_notice
from read_many.exceptions import OperationAbortedError
from read_many.logging import logger
from read_many.metrics import truncate_head
from read_many.models import (
    FileCandidate,
    FileDetail,
    PackingDetails,
    ReadManyDetails,
    ReadManyRequest,
    ReadManyResult,
)
from read_many.packing import build_plan, request_order, select_plan, smallest_first_order

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from read_many.models import FileRequest, PackingPlan, ReadResult

    ReadPrimitive = Callable[[FileRequest], ReadResult]


class CancelToken(Protocol):
    """Anything exposing `is_set()`, e.g. `threading.Event`."""

    def is_set(self) -> bool: ...


def body_from_result(result: ReadResult) -> tuple[str, int]:
    """Turn a read primitive result into the text body of its block.

    Text fragments are joined with a newline. Images cannot travel in the
    combined text, so they are summarized by a notice line; a result with
    neither text nor images gets a placeholder body.

    Args:
        result (ReadResult): the read primitive's output for one file

    Returns:
        tuple[str, int]: the body and the number of image fragments
    """
    image_count = result.image_count
    body = "\n".join(result.texts)
    if not body:
        body = image_omitted_notice(image_count) if image_count > 0 else NO_TEXT_PLACEHOLDER
    elif image_count > 0:
        body += "\n" + image_omitted_notice(image_count)
    return body, image_count


def collect_candidates(
    request: ReadManyRequest,
    read_file: ReadPrimitive,
    *,
    cancel: CancelToken | None = None,
) -> tuple[list[FileCandidate], list[FileDetail]]:
    """Read every requested file in order and build one candidate block per file.

    Reads are strictly sequential. A failing read becomes an error block; with
    `stop_on_error` the loop ends right after the first failure is recorded.

    Args:
        request (ReadManyRequest): the files to read and the error policy
        read_file (ReadPrimitive): single-file read primitive
        cancel (CancelToken | None): checked before each read

    Raises:
        OperationAbortedError: if `cancel` is set before a read starts

    Returns:
        tuple[list[FileCandidate], list[FileDetail]]: candidates and per-file details,
            both in request order
    """
    candidates: list[FileCandidate] = []
    details: list[FileDetail] = []

    for index, file_request in enumerate(request.files):
        if cancel is not None and cancel.is_set():
            raise OperationAbortedError(processed=index)

        try:
            result = read_file(file_request)
        except Exception as e:  # noqa: BLE001
            message = str(e) or type(e).__name__
            logger.warning("read_failed", path=file_request.path, position=index + 1, error=message)
            candidates.append(FileCandidate.from_error(index, file_request.path, message))
            details.append(FileDetail(path=file_request.path, ok=False, error=message))
            if request.stop_on_error:
                logger.info("stop_on_error", path=file_request.path, processed=index + 1)
                break
            continue

        body, image_count = body_from_result(result)
        candidates.append(FileCandidate.from_body(index, file_request.path, body))
        details.append(
            FileDetail(
                path=file_request.path,
                ok=True,
                image_count=image_count,
                truncation=result.truncation,
            ),
        )

    return candidates, details


def render_plan(plan: PackingPlan, candidates: Sequence[FileCandidate]) -> str:
    """Assemble the chosen plan in original request order, blocks separated by a blank line."""
    sections: list[str] = []
    for candidate in candidates:
        if candidate.index in plan.full_included:
            sections.append(candidate.full_text)
        elif plan.partial_section is not None and plan.partial_section.index == candidate.index:
            sections.append(plan.partial_section.text)
    return "\n\n".join(sections)


def plan_candidates(candidates: Sequence[FileCandidate], budget: Budget) -> tuple[PackingPlan, bool]:
    """Run both packing strategies and keep the one with better successful coverage."""
    request_plan = build_plan(PackingStrategy.REQUEST_ORDER, request_order(candidates), candidates, budget)
    smallest_plan = build_plan(
        PackingStrategy.SMALLEST_FIRST,
        smallest_first_order(candidates),
        candidates,
        budget,
    )
    plan, switched = select_plan(request_plan, smallest_plan)
    logger.info(
        "packing_plan_selected",
        strategy=str(plan.strategy),
        switched_for_coverage=switched,
        request_order_success=request_plan.full_success_count,
        smallest_first_success=smallest_plan.full_success_count,
        used_bytes=plan.used_bytes,
        used_lines=plan.used_lines,
    )
    return plan, switched


def read_many(
    request: ReadManyRequest | Mapping[str, Any],
    read_file: ReadPrimitive,
    *,
    budget: Budget | None = None,
    cancel: CancelToken | None = None,
) -> ReadManyResult:
    """Read several files and pack them into one framed, bounded text blob.

    Args:
        request (ReadManyRequest | Mapping[str, Any]): the request, or its raw mapping form
            (`files`, `stopOnError`)
        read_file (ReadPrimitive): single-file read primitive, called once per file in order
        budget (Budget | None): combined ceilings; defaults to the host limits
        cancel (CancelToken | None): cancellation token checked before each read

    Raises:
        OperationAbortedError: if `cancel` fires before a read starts

    Returns:
        ReadManyResult: the combined text and the structured report
    """
    if not isinstance(request, ReadManyRequest):
        request = ReadManyRequest.model_validate(request)
    budget = budget or Budget()

    candidates, files = collect_candidates(request, read_file, cancel=cancel)
    plan, switched = plan_candidates(candidates, budget)

    planned_text = render_plan(plan, candidates)
    final = truncate_head(planned_text, max_lines=budget.max_lines, max_bytes=budget.max_bytes)
    if final.truncated:
        logger.warning(
            "combined_output_truncated",
            total_bytes=final.total_bytes,
            total_lines=final.total_lines,
            truncated_by=final.truncated_by,
        )

    success_count = sum(1 for f in files if f.ok)
    details = ReadManyDetails(
        processed_count=len(files),
        success_count=success_count,
        error_count=len(files) - success_count,
        files=files,
        packing=PackingDetails(
            strategy=plan.strategy,
            switched_for_coverage=switched,
            full_included_count=plan.full_count,
            full_included_success_count=plan.full_success_count,
            partial_included_path=(
                candidates[plan.partial_section.index].path if plan.partial_section is not None else None
            ),
            omitted_paths=[candidates[i].path for i in plan.omitted_indexes],
        ),
        combined_truncation=final if final.truncated else None,
    )
    return ReadManyResult(text=final.content, details=details)
