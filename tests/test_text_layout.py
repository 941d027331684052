import pytest

from daypat.text_layout import ELLIPSIS, line_height, text_height, truncate, wrap


def test_wrap_short_text_is_single_line(stub_font):
    assert wrap("hello", stub_font, 100) == ["hello"]


def test_wrap_breaks_per_character(stub_font):
    assert wrap("abcdefghij", stub_font, 35) == ["abc", "def", "ghi", "j"]


def test_wrap_korean_without_spaces(stub_font):
    assert wrap("오늘도수고했어", stub_font, 30) == ["오늘도", "수고했", "어"]


def test_wrap_explicit_newlines(stub_font):
    assert wrap("ab\ncd", stub_font, 100) == ["ab", "cd"]


def test_wrap_keeps_blank_lines_between_paragraphs(stub_font):
    assert wrap("ab\n\ncd\n", stub_font, 100) == ["ab", "", "cd"]


@pytest.mark.parametrize("text", ["", None])
def test_wrap_empty(stub_font, text):
    assert wrap(text, stub_font, 100) == []


def test_wrap_glyph_wider_than_box_gets_own_line(stub_font):
    assert wrap("abc", stub_font, 5) == ["a", "b", "c"]


def test_truncate_unchanged_when_short(stub_font):
    lines = ["aaaa", "bbbb"]
    assert truncate(lines, stub_font, 2, 40) == lines


def test_truncate_adds_fitting_ellipsis(stub_font):
    result = truncate(["aaaa", "bbbb", "cccc"], stub_font, 2, 40)
    assert result == ["aaaa", "bbb" + ELLIPSIS]
    assert stub_font.getlength(result[-1]) <= 40


@pytest.mark.parametrize("max_lines", [1, 2, 3, 4])
def test_truncate_never_exceeds_max_lines(stub_font, max_lines):
    lines = wrap("x" * 200, stub_font, 50)
    result = truncate(lines, stub_font, max_lines, 50)
    assert len(result) <= max_lines
    assert stub_font.getlength(result[-1]) <= 50
    assert result[-1].endswith(ELLIPSIS)


def test_truncate_degenerate_width(stub_font):
    assert truncate(["abc", "def"], stub_font, 1, 5) == [ELLIPSIS]


def test_line_height_is_rounded():
    assert line_height(18, 1.5) == 27
    assert line_height(14, 1.625) == 23
    assert isinstance(line_height(14, 1.625), int)


def test_text_height():
    assert text_height(4, 14, 1.625) == 92
    assert text_height(0, 18, 1.5) == 0
