"""Leaf field types: integers, floating point numbers and free text."""

from __future__ import annotations

import re
import struct
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

UNSIGNED_PATTERN = r"([0-9]+)"
SIGNED_PATTERN = r"([\+-]?[0-9]+)"
FLOAT_PATTERN = r"((?:[\+-]?[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][\+-]?[0-9]+)?)"
TEXT_PATTERN = r"(.*)"


@dataclass(frozen=True)
class Primitive:
    """A field type that matches exactly one capture group."""

    name: str
    pattern: str
    convert: Callable[[str], Any]

    def regex_str(self) -> str:
        return self.pattern

    def captures_count(self) -> int:
        return 1

    def from_captures(self, captures: re.Match[str], offset: int) -> Any:
        text = captures.group(offset)
        if text is None:
            raise ValueError("capture group did not participate in the match")
        return self.convert(text)

    def __call__(self, text: str) -> Any:
        return self.convert(text)

    def __repr__(self) -> str:
        return self.name


def _bounded_int(bits: int, signed: bool) -> Callable[[str], int]:
    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1

    def convert(text: str) -> int:
        value = int(text)
        if not low <= value <= high:
            raise OverflowError(f"{value} is outside [{low}, {high}]")
        return value

    return convert


def _single_precision(text: str) -> float:
    return struct.unpack("f", struct.pack("f", float(text)))[0]


u8 = Primitive("u8", UNSIGNED_PATTERN, _bounded_int(8, signed=False))
u16 = Primitive("u16", UNSIGNED_PATTERN, _bounded_int(16, signed=False))
u32 = Primitive("u32", UNSIGNED_PATTERN, _bounded_int(32, signed=False))
u64 = Primitive("u64", UNSIGNED_PATTERN, _bounded_int(64, signed=False))
u128 = Primitive("u128", UNSIGNED_PATTERN, _bounded_int(128, signed=False))
usize = Primitive("usize", UNSIGNED_PATTERN, _bounded_int(64, signed=False))

i8 = Primitive("i8", SIGNED_PATTERN, _bounded_int(8, signed=True))
i16 = Primitive("i16", SIGNED_PATTERN, _bounded_int(16, signed=True))
i32 = Primitive("i32", SIGNED_PATTERN, _bounded_int(32, signed=True))
i64 = Primitive("i64", SIGNED_PATTERN, _bounded_int(64, signed=True))
i128 = Primitive("i128", SIGNED_PATTERN, _bounded_int(128, signed=True))
isize = Primitive("isize", SIGNED_PATTERN, _bounded_int(64, signed=True))

f32 = Primitive("f32", FLOAT_PATTERN, _single_precision)
f64 = Primitive("f64", FLOAT_PATTERN, float)

integer = Primitive("int", SIGNED_PATTERN, int)
string = Primitive("str", TEXT_PATTERN, str)


PRIMITIVES: Mapping[str, Primitive] = MappingProxyType(
    {
        primitive.name: primitive
        for primitive in (
            u8, u16, u32, u64, u128, usize,
            i8, i16, i32, i64, i128, isize,
            f32, f64,
            integer, string,
        )
    }
    | {"float": f64, "string": string}
)

BUILTIN_TYPES: Mapping[type, Primitive] = MappingProxyType(
    {
        int: integer,
        float: f64,
        str: string,
    }
)
