from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from read_many import output_construction
from read_many.config import Budget, PackingStrategy
from read_many.exceptions import OperationAbortedError
from read_many.formatting import split_blocks
from read_many.metrics import measure_text, truncate_head
from read_many.models import FileRequest, ImageFragment, ReadManyRequest, ReadResult, TextFragment
from read_many.output_construction import body_from_result, read_many

if TYPE_CHECKING:
    from collections.abc import Callable

    from pytest_mock import MockerFixture

BIG = "\n".join(f"line-{i}-{'x' * 20}" for i in range(3200))


def text_result(text: str) -> ReadResult:
    return ReadResult(content=[TextFragment(text=text)])


def make_reader(
    stubs: dict[str, ReadResult | Exception],
    calls: list[FileRequest] | None = None,
) -> Callable[[FileRequest], ReadResult]:
    def read_file(request: FileRequest) -> ReadResult:
        if calls is not None:
            calls.append(request)
        value = stubs.get(request.path)
        if value is None:
            msg = f"No stub for path: {request.path}"
            raise FileNotFoundError(msg)
        if isinstance(value, Exception):
            raise value
        return value

    return read_file


def request_for(*paths: str, stop_on_error: bool = False) -> ReadManyRequest:
    return ReadManyRequest(files=[FileRequest(path=p) for p in paths], stop_on_error=stop_on_error)


@pytest.mark.unit
def test_switches_to_smallest_first_when_success_coverage_improves() -> None:
    reader = make_reader({"/a": text_result(BIG), "/b": text_result("small-b"), "/c": text_result("small-c")})

    result = read_many(request_for("/a", "/b", "/c"), reader)

    packing = result.details.packing
    assert packing.strategy == PackingStrategy.SMALLEST_FIRST
    assert packing.switched_for_coverage is True
    assert packing.full_included_success_count == 2
    assert packing.partial_included_path == "/a"
    assert packing.omitted_paths == []
    pos_a = result.text.index("@/a")
    pos_b = result.text.index("@/b")
    pos_c = result.text.index("@/c")
    assert 0 <= pos_a < pos_b < pos_c


@pytest.mark.unit
def test_does_not_switch_when_only_error_blocks_improve() -> None:
    reader = make_reader(
        {"/a": text_result(BIG), "/e1": FileNotFoundError("missing e1"), "/e2": FileNotFoundError("missing e2")},
    )

    result = read_many(request_for("/a", "/e1", "/e2"), reader)

    packing = result.details.packing
    assert packing.strategy == PackingStrategy.REQUEST_ORDER
    assert packing.switched_for_coverage is False
    assert packing.full_included_success_count == 0
    assert packing.partial_included_path == "/a"
    assert packing.omitted_paths == ["/e1", "/e2"]


@pytest.mark.unit
def test_error_framing_and_stop_on_error() -> None:
    reader = make_reader({"/bad": RuntimeError("boom"), "/good": text_result("ok")})

    result = read_many(request_for("/bad", "/good", stop_on_error=True), reader)

    details = result.details
    assert details.processed_count == 1
    assert details.error_count == 1
    assert details.success_count == 0
    assert len(details.files) == 1
    assert details.files[0].ok is False
    assert details.files[0].error == "boom"
    assert details.files[0].image_count is None
    assert "@/bad" in result.text
    assert "[Error: boom]" in result.text
    assert "@/good" not in result.text


@pytest.mark.unit
def test_stop_on_error_processed_count_matches_first_failure_position() -> None:
    calls: list[FileRequest] = []
    reader = make_reader(
        {"/1": text_result("one"), "/2": text_result("two"), "/3": ValueError("bad"), "/4": text_result("four")},
        calls,
    )

    result = read_many(request_for("/1", "/2", "/3", "/4", stop_on_error=True), reader)

    assert result.details.processed_count == 3
    assert [c.path for c in calls] == ["/1", "/2", "/3"]


@pytest.mark.unit
def test_errors_do_not_stop_processing_by_default() -> None:
    reader = make_reader({"/bad": RuntimeError("boom"), "/good": text_result("ok")})

    result = read_many(request_for("/bad", "/good"), reader)

    assert result.details.processed_count == 2
    assert [b.body for b in split_blocks(result.text)] == ["[Error: boom]", "ok"]


@pytest.mark.unit
def test_image_attachments_are_summarized() -> None:
    reader = make_reader(
        {
            "/img": ReadResult(
                content=[
                    TextFragment(text="Read image file [image/png]"),
                    ImageFragment(data="abc", mime_type="image/png"),
                ],
            ),
        },
    )

    result = read_many(request_for("/img"), reader)

    assert "Read image file [image/png]" in result.text
    assert "[1 image attachment(s) omitted; use read on this file for image payload.]" in result.text
    assert result.details.files[0].image_count == 1


@pytest.mark.unit
def test_body_placeholders() -> None:
    images_only = ReadResult(
        content=[ImageFragment(data="a", mime_type="image/png"), ImageFragment(data="b", mime_type="image/gif")],
    )

    assert body_from_result(ReadResult()) == ("[No text content returned]", 0)
    assert body_from_result(images_only) == (
        "[2 image attachment(s) omitted; use read on this file for image payload.]",
        2,
    )
    assert body_from_result(ReadResult(content=[TextFragment(text="a"), TextFragment(text="b")])) == ("a\nb", 0)


@pytest.mark.unit
def test_empty_read_yields_placeholder_block() -> None:
    reader = make_reader({"/a": ReadResult()})

    result = read_many({"files": [{"path": "/a"}]}, reader)

    blocks = split_blocks(result.text)
    assert blocks[0].path == "/a"
    assert blocks[0].body == "[No text content returned]"


@pytest.mark.unit
def test_combined_truncation_absent_when_output_fits() -> None:
    reader = make_reader({"/a": text_result("a"), "/b": text_result("b")})

    result = read_many(request_for("/a", "/b"), reader)

    assert result.details.combined_truncation is None


@pytest.mark.unit
def test_final_safety_pass_reports_truncation(mocker: MockerFixture) -> None:
    reader = make_reader({"/a": text_result("a")})
    mocker.patch.object(output_construction, "render_plan", return_value="\n".join(["row"] * 10))

    result = read_many(request_for("/a"), reader, budget=Budget(max_bytes=1000, max_lines=5))

    assert result.details.combined_truncation is not None
    assert result.details.combined_truncation.truncated_by == "lines"
    assert measure_text(result.text).lines == 5


@pytest.mark.unit
def test_request_mapping_with_wire_aliases(mocker: MockerFixture) -> None:
    read_file = mocker.Mock(side_effect=RuntimeError("nope"))

    result = read_many(
        {"files": [{"path": "/x", "offset": 3, "limit": 4}, {"path": "/y"}], "stopOnError": True},
        read_file,
    )

    read_file.assert_called_once_with(FileRequest(path="/x", offset=3, limit=4))
    assert result.details.processed_count == 1


@pytest.mark.unit
def test_read_truncation_is_reported_per_file() -> None:
    truncation = truncate_head("a\nb\nc", max_lines=1, max_bytes=100)
    reader = make_reader({"/a": ReadResult(content=[TextFragment(text="a")], truncation=truncation)})

    result = read_many(request_for("/a"), reader)

    assert result.details.files[0].truncation == truncation


@pytest.mark.unit
def test_cancellation_before_first_read(mocker: MockerFixture) -> None:
    read_file = mocker.Mock()
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationAbortedError) as exc_info:
        read_many(request_for("/a"), read_file, cancel=cancel)

    read_file.assert_not_called()
    assert exc_info.value.processed == 0


@pytest.mark.unit
def test_cancellation_between_reads_abandons_remaining_files() -> None:
    cancel = threading.Event()
    calls: list[str] = []

    def read_file(request: FileRequest) -> ReadResult:
        calls.append(request.path)
        cancel.set()
        return text_result("content")

    with pytest.raises(OperationAbortedError) as exc_info:
        read_many(request_for("/a", "/b", "/c"), read_file, cancel=cancel)

    assert calls == ["/a"]
    assert exc_info.value.processed == 1


@pytest.mark.unit
def test_rendered_output_fits_budget_and_splits_back() -> None:
    bodies = {f"/f{i}": "\n".join(f"{i}-{j}" for j in range(i * 40)) or "empty" for i in range(6)}
    reader = make_reader({path: text_result(body) for path, body in bodies.items()})
    budget = Budget(max_bytes=2500, max_lines=300)

    result = read_many(request_for(*bodies), reader, budget=budget)

    metrics = measure_text(result.text)
    assert metrics.bytes <= budget.max_bytes
    assert metrics.lines <= budget.max_lines
    assert result.details.combined_truncation is None
    blocks = split_blocks(result.text)
    paths = [b.path for b in blocks]
    assert paths == sorted(paths, key=lambda p: int(p[2:]))
    for block in blocks:
        assert bodies[block.path].startswith(block.body)
