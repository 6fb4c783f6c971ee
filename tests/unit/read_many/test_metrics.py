from __future__ import annotations

import pytest

from read_many.metrics import measure_text, truncate_head


@pytest.mark.unit
def test_measure_text_counts_segments_and_utf8_bytes() -> None:
    assert measure_text("").lines == 1
    assert measure_text("").bytes == 0
    assert measure_text("abc").lines == 1
    assert measure_text("a\n").lines == 2
    assert measure_text("a\n").bytes == 2
    assert measure_text("é").bytes == 2


@pytest.mark.unit
def test_truncate_head_returns_content_untouched_when_it_fits() -> None:
    result = truncate_head("a\nb", max_lines=2, max_bytes=3)

    assert result.truncated is False
    assert result.truncated_by is None
    assert result.content == "a\nb"
    assert result.output_lines == 2


@pytest.mark.unit
def test_truncate_head_by_lines() -> None:
    result = truncate_head("a\nb\nc", max_lines=2, max_bytes=100)

    assert result.truncated is True
    assert result.truncated_by == "lines"
    assert result.content == "a\nb"
    assert result.total_lines == 3
    assert result.output_lines == 2


@pytest.mark.unit
def test_truncate_head_by_bytes_keeps_whole_lines() -> None:
    result = truncate_head("aaa\nbbb\nccc", max_lines=100, max_bytes=7)

    assert result.truncated_by == "bytes"
    assert result.content == "aaa\nbbb"
    assert result.output_bytes == 7
    assert result.last_line_partial is False


@pytest.mark.unit
def test_truncate_head_first_line_too_large() -> None:
    result = truncate_head("x" * 10 + "\ny", max_lines=100, max_bytes=5)

    assert result.content == ""
    assert result.first_line_exceeds_limit is True
    assert result.output_lines == 0


@pytest.mark.unit
@pytest.mark.parametrize(("max_lines", "max_bytes"), [(1, 1000), (5, 40), (50, 17), (3, 3)])
def test_truncate_head_never_exceeds_limits(max_lines: int, max_bytes: int) -> None:
    text = "\n".join(f"row-{i}-{'é' * (i % 4)}" for i in range(30))

    result = truncate_head(text, max_lines=max_lines, max_bytes=max_bytes)

    assert text.startswith(result.content)
    if result.content:
        metrics = measure_text(result.content)
        assert metrics.lines <= max_lines
        assert metrics.bytes <= max_bytes
