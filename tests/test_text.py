# tests/test_text.py
import pytest

from smartapply.core.models import Position, Range
from smartapply.core.text import line_count, position_at, splice


def test_insert_inside_line():
    assert splice("abc\ndef", Position(1, 1), "X") == "abc\ndXef"


def test_insert_multiline_block_at_line_start():
    assert splice("a\nb", Position(1, 0), "x\ny\n") == "a\nx\ny\nb"


def test_insert_past_last_line_appends():
    assert splice("a\nb", Position(5, 0), "c") == "a\nb\nc"


def test_replace_range_within_one_line():
    rng = Range(Position(0, 6), Position(0, 11))
    assert splice("hello world!", Position(0, 6), "there", rng) == "hello there!"


def test_replace_range_keeps_prefix_and_suffix():
    original = "x = 1; def f():\n    return 1  # end\nrest"
    rng = Range(Position(0, 7), Position(1, 12))
    result = splice(original, rng.start, "def g():\n    return 2", rng)
    assert result == "x = 1; def g():\n    return 2  # end\nrest"


def test_replace_whole_function():
    original = "import os\n\ndef f():\n    return 1\n\nprint(f())"
    rng = Range(Position(2, 0), Position(3, 12))
    result = splice(original, rng.start, "def f():\n    return 2", rng)
    assert result == "import os\n\ndef f():\n    return 2\n\nprint(f())"


@pytest.mark.parametrize("position", [Position(0, 0), Position(1, 2), Position(2, 5)])
def test_single_line_insertion_only_touches_target_line(position):
    original = "first\nsecond\nthird"
    lines = original.split("\n")
    result = splice(original, position, "NEW").split("\n")

    current = lines[position.line]
    assert result[position.line] == current[:position.character] + "NEW" + current[position.character:]
    assert result[:position.line] == lines[:position.line]
    assert result[position.line + 1:] == lines[position.line + 1:]


def test_position_at():
    assert position_at("ab\ncd", 4) == Position(1, 1)
    assert position_at("ab\ncd", 0) == Position(0, 0)
    assert position_at("ab\ncd", 99) == Position(1, 2)
    assert position_at("ab\ncd", -3) == Position(0, 0)


def test_line_count():
    assert line_count("") == 1
    assert line_count("a\nb\n") == 3
