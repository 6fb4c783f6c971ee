from __future__ import annotations

import re

import pytest

from read_many.delimiters import (
    build_line_set,
    delimiter_candidates,
    delimiter_word,
    first_free,
    path_hash,
    pick_delimiter,
    to_base36,
)


@pytest.mark.unit
def test_path_hash_is_deterministic_and_fixed_width() -> None:
    assert path_hash("/tmp/a.txt") == path_hash("/tmp/a.txt")
    assert path_hash("/tmp/a.txt") != path_hash("/tmp/b.txt")
    assert re.fullmatch(r"[0-9A-F]{6}", path_hash("/tmp/a.txt"))


@pytest.mark.unit
def test_path_hash_known_values() -> None:
    # 5381 * 33 + ord("a") == 0x2B606
    assert path_hash("a") == "02B606"
    assert path_hash("") == "001505"


@pytest.mark.unit
def test_delimiter_word_falls_back_past_dictionary() -> None:
    assert delimiter_word(1) == "PINE"
    assert delimiter_word(3) == "ORBIT"
    assert delimiter_word(26) == "ZEPHYR"
    assert delimiter_word(27) == "FILE27"


@pytest.mark.unit
def test_pick_delimiter_uses_base_when_free() -> None:
    assert pick_delimiter("/x", 2, "hello") == f"MANGO_2_{path_hash('/x')}"


@pytest.mark.unit
def test_pick_delimiter_adds_suffix_on_collision() -> None:
    path = "/tmp/collide.txt"
    base = f"PINE_1_{path_hash(path)}"
    content = f"hello\n{base}\nworld"

    assert pick_delimiter(path, 1, content) == f"{base}_1"


@pytest.mark.unit
def test_pick_delimiter_ignores_carriage_returns() -> None:
    path = "/tmp/crlf.txt"
    base = f"PINE_1_{path_hash(path)}"
    content = f"hello\r\n{base}\r\nworld\r\n"

    assert pick_delimiter(path, 1, content) == f"{base}_1"


@pytest.mark.unit
def test_pick_delimiter_falls_back_after_256_suffix_collisions() -> None:
    path = "/tmp/deep-collide.txt"
    base = f"PINE_1_{path_hash(path)}"
    collisions = [base, *(f"{base}_{i}" for i in range(1, 257))]
    content = "\n".join(collisions)

    picked = pick_delimiter(path, 1, content)

    assert picked not in collisions
    assert picked == f"{base}_{to_base36(len(content))}"


@pytest.mark.unit
def test_first_free_probes_past_colliding_fallback() -> None:
    forbidden = {"B", *(f"B_{i}" for i in range(1, 257)), "B_10", "B_10_1"}

    assert first_free(delimiter_candidates("B", 36), forbidden) == "B_10_2"


@pytest.mark.unit
def test_to_base36() -> None:
    assert to_base36(0) == "0"
    assert to_base36(35) == "Z"
    assert to_base36(36) == "10"
    assert to_base36(1295) == "ZZ"


@pytest.mark.unit
def test_build_line_set_strips_one_carriage_return() -> None:
    assert build_line_set("a\r\nb\r\r\n") == frozenset({"a", "b\r", ""})


@pytest.mark.unit
@pytest.mark.parametrize("position", [1, 5, 26, 30])
def test_picked_delimiter_never_matches_a_content_line(position: int) -> None:
    path = "/repo/file.py"
    word = delimiter_word(position)
    base = f"{word}_{position}_{path_hash(path)}"
    content = "\n".join([base, f"{base}_1", f"{base}_2\r", "plain"])

    picked = pick_delimiter(path, position, content)

    assert picked not in build_line_set(content)
    assert picked == f"{base}_3"
