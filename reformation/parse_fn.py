"""Tuple parsers built from positional ``{}`` templates."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from reformation.compiler import compile_positional
from reformation.contract import resolve_type
from reformation.matcher import LazyPattern, MatchMode, match_input, reconstruct_fields


def create_parse_fn(
    template: str, *types: Any, mode: MatchMode = "full", flags: int = 0
) -> Callable[[str], tuple[Any, ...]]:
    """Create a function parsing strings shaped like ``template`` into a tuple.

    Each ``{}`` in ``template`` is filled, in order, by the sub-pattern of the
    matching entry of ``types``. Braces that are part of the input must be
    written ``{{`` and ``}}``; regex metacharacters must be escaped.

    >>> parse_vec = create_parse_fn(r"Vec\\({}, {}\\)", int, int)
    >>> parse_vec("Vec(-16, 8)")
    (-16, 8)
    """

    compiled = compile_positional(template, [resolve_type(item) for item in types], flags=flags)
    matcher = LazyPattern(compiled.pattern, flags, owner=f"parse fn {template!r}")

    def parse(text: str) -> tuple[Any, ...]:
        captures = match_input(matcher, text, template=template, mode=mode)
        return tuple(reconstruct_fields(compiled.slots, captures).values())

    parse.__doc__ = f"Parse a string matching r{template!r}."
    return parse
