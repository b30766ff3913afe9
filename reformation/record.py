"""Class decorator turning a dataclass or pydantic model into a template parser.

Usage::

    @reformation(r"{year}-{month}-{day} {hour}:{minute}")
    @dataclass
    class Date:
        year: u16
        month: u8
        day: u8
        hour: u8
        minute: u8

    Date.parse("2018-12-22 20:23")

The format string is a regular expression in which ``{field}`` is replaced by
the field type's sub-pattern and ``{{``/``}}`` stand for literal braces.
Capturing groups in the format string itself are rejected; use ``(?:...)``.

Dataclass annotations are resolved against the defining module. Records
declared inside a function under ``from __future__ import annotations`` that
refer to other local classes must pass those classes with ``localns=``.
"""

from __future__ import annotations

import dataclasses
import re
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel

from reformation.compiler import CompiledSchema, FieldSpec, compile_schema
from reformation.config import DEFAULT_CONFIG, ReformationConfig
from reformation.contract import Reformable, resolve_type
from reformation.errors import CompileError, ReconstructionError
from reformation.matcher import (
    MATCH_MODES,
    LazyPattern,
    MatchMode,
    match_input,
    reconstruct_fields,
)

T = TypeVar("T", bound=type)

_MISSING_TEMPLATE = 'Decorator @reformation(r"..") containing format string not found.'
_NOT_A_CLASS = "reformation supports only classes."
_NOT_A_RECORD = "reformation supports only records with named fields."


@dataclass(frozen=True)
class RecordBinding:
    """Everything a decorated class needs at parse time."""

    compiled: CompiledSchema
    matcher: LazyPattern
    mode: MatchMode


def reformation(
    template: Any = None,
    /,
    *,
    mode: MatchMode | None = None,
    strict: bool | None = None,
    flags: int | None = None,
    config: ReformationConfig | None = None,
    localns: Mapping[str, Any] | None = None,
) -> Callable[[T], T]:
    """Compile ``template`` against the decorated record's fields.

    Keyword arguments override the matching ``config`` values. ``localns``
    resolves dataclass annotations naming classes local to a function.
    """

    if template is None or isinstance(template, type):
        raise CompileError(_MISSING_TEMPLATE)

    effective = config or DEFAULT_CONFIG
    resolved_mode = mode if mode is not None else effective.mode
    if resolved_mode not in MATCH_MODES:
        raise CompileError(f"Unsupported match mode: {resolved_mode}")
    resolved_strict = strict if strict is not None else effective.strict
    resolved_flags = flags if flags is not None else effective.regex_flags()

    def decorate(cls: T) -> T:
        if not isinstance(cls, type):
            raise CompileError(_NOT_A_CLASS)

        name = cls.__qualname__
        compiled = compile_schema(
            template,
            record_fields(cls, localns),
            record=name,
            strict=resolved_strict,
            flags=resolved_flags,
        )
        binding = RecordBinding(
            compiled=compiled,
            matcher=LazyPattern(compiled.pattern, resolved_flags, owner=name),
            mode=resolved_mode,
        )
        cls.__reformation__ = binding  # type: ignore[attr-defined]
        cls.regex_str = classmethod(_regex_str)  # type: ignore[attr-defined]
        cls.captures_count = classmethod(_captures_count)  # type: ignore[attr-defined]
        cls.from_captures = classmethod(_from_captures)  # type: ignore[attr-defined]
        cls.parse = classmethod(_parse)  # type: ignore[attr-defined]
        return cls

    return decorate


def record_fields(cls: type, localns: Mapping[str, Any] | None = None) -> list[FieldSpec]:
    """Return the ordered field list of a dataclass or pydantic model."""

    if dataclasses.is_dataclass(cls):
        hints = _type_hints(cls, localns)
        return [
            FieldSpec(
                name=item.name,
                field_type=_resolve_or_none(hints.get(item.name, item.type)),
                has_default=(
                    item.default is not dataclasses.MISSING
                    or item.default_factory is not dataclasses.MISSING
                ),
                annotation=hints.get(item.name, item.type),
            )
            for item in dataclasses.fields(cls)
            if item.init
        ]

    if issubclass(cls, BaseModel):
        specs = []
        for field_name, info in cls.model_fields.items():
            explicit = [item for item in info.metadata if isinstance(item, Reformable)]
            specs.append(
                FieldSpec(
                    name=field_name,
                    field_type=explicit[0] if explicit else _resolve_or_none(info.annotation),
                    has_default=not info.is_required(),
                    annotation=info.annotation,
                )
            )
        return specs

    raise CompileError(_NOT_A_RECORD, record=cls.__qualname__)


def compiled_schema(cls: type) -> CompiledSchema:
    """Return the compiled schema attached to a decorated class."""

    binding = getattr(cls, "__reformation__", None)
    if not isinstance(binding, RecordBinding):
        raise TypeError(f"{cls!r} is not decorated with @reformation")
    return binding.compiled


def _resolve_or_none(annotation: Any) -> Reformable | None:
    try:
        return resolve_type(annotation)
    except CompileError:
        return None


def _type_hints(cls: type, localns: Mapping[str, Any] | None) -> dict[str, Any]:
    try:
        return typing.get_type_hints(
            cls, localns=dict(localns) if localns else None, include_extras=True
        )
    except NameError as exc:
        raise CompileError(
            f"Cannot resolve field annotations of {cls.__qualname__}: {exc}; "
            "pass local types through localns.",
            record=cls.__qualname__,
        ) from exc


def _regex_str(cls: type) -> str:
    return cls.__reformation__.compiled.pattern  # type: ignore[attr-defined]


def _captures_count(cls: type) -> int:
    return cls.__reformation__.compiled.width  # type: ignore[attr-defined]


def _from_captures(cls: type, captures: re.Match[str], offset: int) -> Any:
    binding: RecordBinding = cls.__reformation__  # type: ignore[attr-defined]
    values = reconstruct_fields(binding.compiled.slots, captures, base=offset)
    try:
        return cls(**values)
    except (ValueError, TypeError) as exc:
        raise ReconstructionError(
            field=cls.__qualname__,
            text=None,
            type_name=cls.__qualname__,
            reason=str(exc),
        ) from exc


def _parse(cls: type, text: str) -> Any:
    binding: RecordBinding = cls.__reformation__  # type: ignore[attr-defined]
    captures = match_input(
        binding.matcher, text, template=binding.compiled.template, mode=binding.mode
    )
    return cls.from_captures(captures, 1)  # type: ignore[attr-defined]
