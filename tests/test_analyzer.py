from __future__ import annotations

import pytest

from reformation.analyzer import Placeholder, extract_placeholders, scan_template, split_template
from reformation.errors import CompileError


def test_extract_named_placeholders() -> None:
    names = extract_placeholders(r"{year}-{month}-{day} {hour}:{minute}")

    assert names == {"year", "month", "day", "hour", "minute"}


def test_doubled_braces_are_literal() -> None:
    assert extract_placeholders("{{literal}}") == set()
    assert extract_placeholders(r"a{{2,3}}b") == set()


def test_escaped_braces_around_placeholders() -> None:
    names = extract_placeholders(r"Vec\{{{x},\s*{y},\s*{z}\}}")

    assert names == {"x", "y", "z"}


def test_stray_close_brace_is_literal() -> None:
    assert extract_placeholders("a}b{c}") == {"c"}


def test_nested_placeholders_follow_stack_order() -> None:
    placeholders = scan_template("{outer{inner}}")

    assert [item.name for item in placeholders] == ["inner", "outer{inner}"]


def test_empty_and_unusual_names_are_reported() -> None:
    assert extract_placeholders("{} and {a b}") == {"", "a b"}


def test_unterminated_placeholder_raises() -> None:
    with pytest.raises(CompileError, match="Unterminated placeholder"):
        extract_placeholders("value={x")


def test_placeholder_spans_cover_braces() -> None:
    placeholders = scan_template("ab{name}cd")

    assert placeholders == [Placeholder(name="name", start=2, end=8)]


def test_split_template_unescapes_literals() -> None:
    pieces = split_template(r"Vec\{{{x}\}}")

    assert pieces == ["Vec\\{", Placeholder(name="x", start=6, end=9), "\\}"]


def test_split_template_keeps_outermost_placeholder_only() -> None:
    pieces = split_template("<{a{b}}>")

    assert pieces == ["<", Placeholder(name="a{b}", start=1, end=7), ">"]
