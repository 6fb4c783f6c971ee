"""Packing of candidate blocks under a combined byte/line budget.

Two strategies share one loop and differ in traversal order and in what
happens on a miss:

- `request-order` walks the request order and stops full-block packing at
  the first block that does not fit, so the included set is a prefix.
- `smallest-first` walks blocks sorted by size and skips the ones that do
  not fit.

After the full pass, one partial section may be added for the earliest
remaining candidate (in request order) whose truncated block fits.
Choosing between the two plans is a separate step, see `select_plan`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from read_many.config import SEPARATOR_BYTES, SEPARATOR_LINES, Budget, PackingStrategy
from read_many.metrics import measure_text
from read_many.models import PackedSection, PackingPlan
from read_many.partial import build_partial_section

if TYPE_CHECKING:
    from collections.abc import Sequence

    from read_many.metrics import TextMetrics
    from read_many.models import FileCandidate


@dataclass
class _Usage:
    used_bytes: int = 0
    used_lines: int = 0
    section_count: int = 0

    def separator(self) -> tuple[int, int]:
        if self.section_count > 0:
            return SEPARATOR_BYTES, SEPARATOR_LINES
        return 0, 0

    def fits(self, metrics: TextMetrics, budget: Budget) -> bool:
        sep_bytes, sep_lines = self.separator()
        return (
            self.used_bytes + sep_bytes + metrics.bytes <= budget.max_bytes
            and self.used_lines + sep_lines + metrics.lines <= budget.max_lines
        )

    def add(self, metrics: TextMetrics) -> None:
        sep_bytes, sep_lines = self.separator()
        self.used_bytes += sep_bytes + metrics.bytes
        self.used_lines += sep_lines + metrics.lines
        self.section_count += 1

    def remaining(self, budget: Budget) -> tuple[int, int]:
        sep_bytes, sep_lines = self.separator()
        return (
            budget.max_lines - self.used_lines - sep_lines,
            budget.max_bytes - self.used_bytes - sep_bytes,
        )


def request_order(candidates: Sequence[FileCandidate]) -> list[int]:
    """Identity traversal order."""
    return list(range(len(candidates)))


def smallest_first_order(candidates: Sequence[FileCandidate]) -> list[int]:
    """Traversal order by ascending full block size (bytes, then lines, then request index)."""
    return sorted(
        range(len(candidates)),
        key=lambda i: (candidates[i].full_metrics.bytes, candidates[i].full_metrics.lines, i),
    )


def build_plan(
    strategy: PackingStrategy,
    order: Sequence[int],
    candidates: Sequence[FileCandidate],
    budget: Budget | None = None,
) -> PackingPlan:
    """Decide which candidates are fully included, which one is partial and which are omitted.

    Args:
        strategy (PackingStrategy): overflow policy of the full-block pass
        order (Sequence[int]): permutation of candidate indexes to walk during the full-block pass
        candidates (Sequence[FileCandidate]): candidates indexed by request position
        budget (Budget | None): combined ceilings; defaults to the host limits

    Returns:
        PackingPlan: the immutable packing outcome
    """
    budget = budget or Budget()
    usage = _Usage()
    full_included: set[int] = set()
    full_success_count = 0

    for index in order:
        candidate = candidates[index]
        if usage.fits(candidate.full_metrics, budget):
            usage.add(candidate.full_metrics)
            full_included.add(index)
            if candidate.ok:
                full_success_count += 1
        elif strategy is PackingStrategy.REQUEST_ORDER:
            break

    partial: PackedSection | None = None
    for index, candidate in enumerate(candidates):
        if index in full_included:
            continue
        remaining_lines, remaining_bytes = usage.remaining(budget)
        if remaining_lines <= 0 or remaining_bytes <= 0:
            break
        text = build_partial_section(candidate, remaining_lines, remaining_bytes)
        if text is None:
            continue
        metrics = measure_text(text)
        partial = PackedSection(index=index, text=text, metrics=metrics)
        usage.add(metrics)
        break

    omitted = tuple(
        i for i in range(len(candidates)) if i not in full_included and (partial is None or partial.index != i)
    )

    return PackingPlan(
        strategy=strategy,
        full_included=frozenset(full_included),
        partial_section=partial,
        omitted_indexes=omitted,
        used_bytes=usage.used_bytes,
        used_lines=usage.used_lines,
        section_count=usage.section_count,
        full_success_count=full_success_count,
    )


def select_plan(request_plan: PackingPlan, smallest_plan: PackingPlan) -> tuple[PackingPlan, bool]:
    """Pick the plan to render.

    Smallest-first wins only when it fully includes strictly more successful
    reads; error blocks never count. Ties keep request order.

    Returns:
        tuple[PackingPlan, bool]: the chosen plan and whether it is the smallest-first one
    """
    switched = smallest_plan.full_success_count > request_plan.full_success_count
    return (smallest_plan if switched else request_plan), switched
