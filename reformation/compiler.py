"""Compose field sub-patterns into one pattern and assign capture offsets."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from reformation.analyzer import Placeholder, split_template
from reformation.contract import Reformable, type_name
from reformation.errors import CompileError

logger = logging.getLogger("reformation.compiler")

BASE_OFFSET = 1


@dataclass(frozen=True)
class FieldSpec:
    """One record field as seen by the compiler."""

    name: str
    field_type: Reformable | None
    has_default: bool = False
    annotation: Any = None


@dataclass(frozen=True)
class FieldSlot:
    """A field that takes part in matching and the groups it owns."""

    name: str
    field_type: Reformable
    offset: int
    width: int


@dataclass(frozen=True)
class CompiledSchema:
    """Composed pattern, total capture width and per-field offsets."""

    template: str
    pattern: str
    width: int
    slots: tuple[FieldSlot, ...]
    excluded: tuple[str, ...] = field(default_factory=tuple)

    @property
    def offsets(self) -> dict[str, int]:
        return {slot.name: slot.offset for slot in self.slots}

    def regex_str(self) -> str:
        return self.pattern

    def captures_count(self) -> int:
        return self.width


def compile_schema(
    template: object,
    fields: Sequence[FieldSpec],
    *,
    record: str | None = None,
    strict: bool = False,
    flags: int = 0,
) -> CompiledSchema:
    """Compile a named-placeholder template against an ordered field list.

    Offsets are assigned in the order the placeholders appear in the template,
    which is the order their groups appear in the composed pattern. Slots are
    returned in field declaration order.
    """

    if not isinstance(template, str):
        raise CompileError("reformation argument must be string literal.", record=record)

    by_name: dict[str, FieldSpec] = {}
    for spec in fields:
        if spec.name in by_name:
            raise CompileError(
                f"Field {spec.name!r} is declared more than once.", template=template, record=record
            )
        by_name[spec.name] = spec

    pieces = split_template(template)
    ordered: list[FieldSpec] = []
    for placeholder in _placeholders(pieces):
        name = placeholder.name
        if not name.isidentifier():
            raise CompileError(
                f"Invalid placeholder {{{name}}}: placeholder names must be field identifiers.",
                template=template,
                record=record,
            )
        if name not in by_name:
            raise CompileError(
                f"Placeholder {{{name}}} does not name a field of {record or 'the record'}.",
                template=template,
                record=record,
            )
        if any(spec.name == name for spec in ordered):
            raise CompileError(
                f"Placeholder {{{name}}} is used more than once.", template=template, record=record
            )
        if by_name[name].field_type is None:
            raise CompileError(
                f"Type {by_name[name].annotation!r} of field {name!r} does not implement "
                "the reformation contract.",
                template=template,
                record=record,
            )
        ordered.append(by_name[name])

    pattern, widths, offsets = _compose(
        template, pieces, [(spec.name, spec.field_type) for spec in ordered], record, flags
    )

    referenced = {spec.name for spec in ordered}
    excluded = tuple(spec.name for spec in fields if spec.name not in referenced)
    for name in excluded:
        if strict or not by_name[name].has_default:
            raise CompileError(
                f"Field {name!r} is not referenced by the format string"
                + (" (strict mode)." if by_name[name].has_default else " and has no default."),
                template=template,
                record=record,
            )
        logger.warning(
            "field %r of %s is not referenced by the format string and keeps its default",
            name,
            record or "record",
        )

    slots = tuple(
        FieldSlot(spec.name, spec.field_type, offsets[spec.name], widths[spec.name])
        for spec in fields
        if spec.name in referenced
    )
    compiled = CompiledSchema(
        template=template,
        pattern=pattern,
        width=sum(widths.values()),
        slots=slots,
        excluded=excluded,
    )
    logger.debug(
        "compiled %s: pattern=%r width=%d offsets=%r",
        record or "record",
        compiled.pattern,
        compiled.width,
        compiled.offsets,
    )
    return compiled


def compile_positional(
    template: object, types: Sequence[Reformable], *, flags: int = 0
) -> CompiledSchema:
    """Compile a template made of ``{}`` placeholders filled by ``types`` in order."""

    if not isinstance(template, str):
        raise CompileError("reformation argument must be string literal.")

    pieces = split_template(template)
    placeholders = list(_placeholders(pieces))
    for placeholder in placeholders:
        if placeholder.name:
            raise CompileError(
                f"Positional format strings only accept {{}}, found {{{placeholder.name}}}.",
                template=template,
            )
    if len(placeholders) != len(types):
        raise CompileError(
            f"Format string has {len(placeholders)} placeholders "
            f"but {len(types)} types were given.",
            template=template,
        )

    entries = [(str(index), field_type) for index, field_type in enumerate(types)]
    pattern, widths, offsets = _compose(template, pieces, entries, None, flags)
    slots = tuple(
        FieldSlot(key, field_type, offsets[key], widths[key]) for key, field_type in entries
    )
    return CompiledSchema(
        template=template, pattern=pattern, width=sum(widths.values()), slots=slots
    )


def count_groups(pattern: str, flags: int = 0) -> int:
    return re.compile(pattern, flags).groups


def _placeholders(pieces: Sequence[str | Placeholder]) -> list[Placeholder]:
    return [piece for piece in pieces if isinstance(piece, Placeholder)]


def _compose(
    template: str,
    pieces: Sequence[str | Placeholder],
    entries: Sequence[tuple[str, Reformable]],
    record: str | None,
    flags: int,
) -> tuple[str, dict[str, int], dict[str, int]]:
    # entries line up one-to-one with the placeholders in pieces
    widths: dict[str, int] = {}
    offsets: dict[str, int] = {}
    chunks: list[str] = []
    cursor = BASE_OFFSET
    remaining = iter(entries)

    for piece in pieces:
        if not isinstance(piece, Placeholder):
            chunks.append(piece)
            continue
        key, field_type = next(remaining)
        sub_pattern = field_type.regex_str()
        width = field_type.captures_count()
        _check_width(sub_pattern, width, field_type, template, record, flags)
        chunks.append(sub_pattern)
        widths[key] = width
        offsets[key] = cursor
        cursor += width

    pattern = "".join(chunks)
    total = cursor - BASE_OFFSET
    try:
        actual = count_groups(pattern, flags)
    except re.error as exc:
        raise CompileError(
            f"Format string does not compile to a valid regular expression: {exc}",
            template=template,
            record=record,
        ) from exc
    if actual != total:
        raise CompileError(
            f"Format string adds {actual - total} capturing group(s) of its own; "
            "use non-capturing groups (?:...) instead.",
            template=template,
            record=record,
        )
    return pattern, widths, offsets


def _check_width(
    sub_pattern: str,
    width: int,
    field_type: Reformable,
    template: str,
    record: str | None,
    flags: int,
) -> None:
    try:
        actual = count_groups(sub_pattern, flags)
    except re.error as exc:
        raise CompileError(
            f"Sub-pattern of {type_name(field_type)} is not a valid regular expression: {exc}",
            template=template,
            record=record,
        ) from exc
    if actual != width:
        raise CompileError(
            f"{type_name(field_type)} declares {width} capture group(s) "
            f"but its sub-pattern {sub_pattern!r} has {actual}.",
            template=template,
            record=record,
        )
