from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Annotated

import pytest
from pydantic import BaseModel

from reformation.config import ReformationConfig
from reformation.errors import CompileError, NoRegexMatch, ReconstructionError
from reformation.primitives import f64, i32, u8, u16
from reformation.record import compiled_schema, reformation


@reformation(r"{year}-{month}-{day} {hour}:{minute}")
@dataclass
class Date:
    year: u16
    month: u8
    day: u8
    hour: u8
    minute: u8


@reformation(r"Vec\{{{x},\s*{y},\s*{z}\}}")
@dataclass
class Vec:
    x: f64
    y: f64
    z: f64


@reformation(r"\({x}, {y}\)")
@dataclass(frozen=True)
class Point:
    x: i32
    y: i32


@reformation(r"{start} -> {end} \[{label}\]")
@dataclass
class Segment:
    start: Point
    end: Point
    label: str


@reformation(r"{b}/{a}")
@dataclass
class Swapped:
    a: int
    b: int


@reformation(r"{name}")
@dataclass
class Tagged:
    name: str
    note: str = "n/a"
    tags: list[str] = field(default_factory=list)


@reformation(r"{name}=<{value}>")
class Setting(BaseModel):
    name: str
    value: Annotated[int, u8]
    unit: str = "none"


@reformation(r"{year}-{month}-{day} {hour}:{minute}", mode="search")
@dataclass
class LooseDate:
    year: u16
    month: u8
    day: u8
    hour: u8
    minute: u8


def test_parse_date() -> None:
    date = Date.parse("2018-12-22 20:23")

    assert date == Date(year=2018, month=12, day=22, hour=20, minute=23)


def test_out_of_calendar_values_still_parse_when_type_allows() -> None:
    date = Date.parse("2018-13-99 20:23")

    assert date.month == 13
    assert date.day == 99


def test_value_out_of_type_range_raises_reconstruction_error() -> None:
    with pytest.raises(ReconstructionError) as exc_info:
        Date.parse("2018-300-01 20:23")

    assert exc_info.value.field == "month"
    assert exc_info.value.text == "300"
    assert exc_info.value.type_name == "u8"
    assert isinstance(exc_info.value.__cause__, OverflowError)


def test_parse_vec_with_escaped_braces_and_whitespace() -> None:
    vec = Vec.parse("Vec{-0.4,1e-3,   2e-3}")

    assert vec.x == -0.4
    assert vec.y == 0.001
    assert vec.z == 0.002


def test_no_match_carries_template_and_input() -> None:
    with pytest.raises(NoRegexMatch) as exc_info:
        Date.parse("not-a-date")

    error = exc_info.value
    assert error.request == "not-a-date"
    assert error.format == r"{year}-{month}-{day} {hour}:{minute}"
    assert error.pattern == Date.regex_str()
    assert "not-a-date" in str(error)


def test_non_ascii_digits_do_not_match() -> None:
    with pytest.raises(NoRegexMatch):
        Date.parse("\u0662\u0660\u0661\u0668-12-22 20:23")


def test_full_mode_requires_whole_input() -> None:
    with pytest.raises(NoRegexMatch):
        Date.parse("at 2018-12-22 20:23 UTC")


def test_search_mode_finds_match_inside_input() -> None:
    date = LooseDate.parse("at 2018-12-22 20:23 UTC")

    assert (date.year, date.month, date.minute) == (2018, 12, 23)


def test_round_trip_through_template_format() -> None:
    original = Date(year=1999, month=1, day=2, hour=3, minute=4)
    text = f"{original.year}-{original.month}-{original.day} {original.hour}:{original.minute}"

    assert Date.parse(text) == original


def test_record_exposes_contract() -> None:
    assert Date.captures_count() == 5
    assert Date.regex_str() == r"([0-9]+)-([0-9]+)-([0-9]+) ([0-9]+):([0-9]+)"
    assert compiled_schema(Date).offsets == {
        "year": 1,
        "month": 2,
        "day": 3,
        "hour": 4,
        "minute": 5,
    }


def test_nested_records_route_captures_to_their_own_fields() -> None:
    segment = Segment.parse("(1, 2) -> (-3, 4) [main road]")

    assert segment == Segment(start=Point(1, 2), end=Point(-3, 4), label="main road")
    assert Segment.captures_count() == 5
    assert compiled_schema(Segment).offsets == {"start": 1, "end": 3, "label": 5}


def test_nested_record_from_captures_at_offset() -> None:
    match = re.fullmatch(r"(x)" + Point.regex_str(), "x(5, -6)")

    assert match is not None
    assert Point.from_captures(match, 2) == Point(5, -6)


def test_template_order_may_differ_from_field_order() -> None:
    swapped = Swapped.parse("1/2")

    assert swapped == Swapped(a=2, b=1)


def test_fields_absent_from_template_keep_defaults() -> None:
    tagged = Tagged.parse("hello")

    assert tagged == Tagged(name="hello", note="n/a", tags=[])
    assert compiled_schema(Tagged).excluded == ("note", "tags")


def test_pydantic_model_record() -> None:
    setting = Setting.parse("alpha=<12>")

    assert setting == Setting(name="alpha", value=12)
    assert setting.unit == "none"
    with pytest.raises(ReconstructionError):
        Setting.parse("alpha=<999>")


def test_config_flags_apply_to_matching() -> None:
    @reformation(r"id:{value}", config=ReformationConfig(ignore_case=True))
    @dataclass
    class Identifier:
        value: u16

    assert Identifier.parse("ID:42").value == 42


def test_keyword_options_override_config() -> None:
    @reformation(r"{value}", config=ReformationConfig(mode="search"), mode="full")
    @dataclass
    class Number:
        value: u16

    with pytest.raises(NoRegexMatch):
        Number.parse("n=42")


def test_decorator_without_template_raises() -> None:
    with pytest.raises(CompileError, match="containing format string not found"):

        @reformation
        @dataclass
        class Bare:
            value: int


def test_empty_decorator_call_raises() -> None:
    with pytest.raises(CompileError, match="containing format string not found"):
        reformation()


def test_non_string_template_raises() -> None:
    @dataclass
    class Value:
        value: int

    with pytest.raises(CompileError, match="must be string literal"):
        reformation(42)(Value)


def test_non_record_class_raises() -> None:
    class Plain:
        value = 1

    with pytest.raises(CompileError, match="only records with named fields"):
        reformation("{value}")(Plain)


def test_non_class_raises() -> None:
    with pytest.raises(CompileError, match="only classes"):
        reformation("{value}")(lambda: None)  # type: ignore[arg-type,type-var]


def test_unsupported_field_type_raises() -> None:
    @dataclass
    class WithBytes:
        value: bytes

    with pytest.raises(CompileError, match="does not implement the reformation contract"):
        reformation("{value}")(WithBytes)


def test_post_init_failure_becomes_reconstruction_error() -> None:
    @reformation(r"{low}\.\.{high}")
    @dataclass
    class Span:
        low: int
        high: int

        def __post_init__(self) -> None:
            if self.low > self.high:
                raise ValueError("low must not exceed high")

    assert Span.parse("1..5") == Span(1, 5)
    with pytest.raises(ReconstructionError, match="low must not exceed high"):
        Span.parse("5..1")


def test_matcher_is_built_lazily_and_once() -> None:
    @reformation(r"{value}")
    @dataclass
    class Lazy:
        value: int

    matcher = Lazy.__reformation__.matcher  # type: ignore[attr-defined]
    assert not matcher.is_built

    Lazy.parse("1")
    first = matcher.get()
    Lazy.parse("2")

    assert matcher.is_built
    assert matcher.get() is first


def test_local_record_types_need_localns() -> None:
    @reformation(r"<{row}:{col}>")
    @dataclass
    class Cell:
        row: u8
        col: u8

    @dataclass
    class Range:
        first: Cell
        last: Cell

    with pytest.raises(CompileError, match="Cannot resolve field annotations"):
        reformation(r"{first}\.\.{last}")(Range)

    reformation(r"{first}\.\.{last}", localns={"Cell": Cell})(Range)

    parsed = Range.parse("<1:2>..<3:4>")  # type: ignore[attr-defined]

    assert parsed == Range(Cell(1, 2), Cell(3, 4))
    assert compiled_schema(Range).offsets == {"first": 1, "last": 3}
