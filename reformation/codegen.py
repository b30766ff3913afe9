"""Python source generator for YAML record schemas.

The generated module contains one frozen dataclass per record. Composed
patterns, capture counts and field offsets are emitted as constants, so the
generated code depends only on the runtime parts of reformation (primitives,
errors and the lazy matcher).
"""

from __future__ import annotations

from reformation.compiler import CompiledSchema
from reformation.config import DEFAULT_CONFIG, ReformationConfig
from reformation.primitives import FLOAT_PATTERN, PRIMITIVES, TEXT_PATTERN
from reformation.record import compiled_schema
from reformation.schema_file import SchemaFile, build_records

GENERATOR_VERSION = "1"

_PRIMITIVE_SYMBOLS = {"int": "integer", "str": "string", "string": "string", "float": "f64"}


def generate_module(
    schema: SchemaFile,
    config: ReformationConfig = DEFAULT_CONFIG,
    *,
    source: str = "<schema>",
) -> str:
    """Render ``schema`` as the source of a standalone Python module."""

    records = build_records(schema, config)
    used_primitives = sorted(
        {
            _primitive_symbol(type_name)
            for spec in schema.records.values()
            for type_name in spec.fields.values()
            if type_name in PRIMITIVES
        }
    )

    lines: list[str] = []
    lines.append(f'"""Record parsers generated by reformation from {source}. Do not edit."""')
    lines.append(f"# generator: {GENERATOR_VERSION}")
    lines.append("")
    lines.append("from __future__ import annotations")
    lines.append("")
    lines.append("import re")
    lines.append("from dataclasses import dataclass")
    lines.append("from typing import ClassVar")
    lines.append("")
    lines.append("from reformation.matcher import LazyPattern, match_input, reconstruct_field")
    if used_primitives:
        lines.append(f"from reformation.primitives import {', '.join(used_primitives)}")

    for name, spec in schema.records.items():
        compiled = compiled_schema(records[name])
        lines.append("")
        lines.append("")
        lines.extend(
            _render_record(
                name,
                compiled,
                spec.fields,
                spec.defaults,
                mode=spec.mode or config.mode,
                flags=config.regex_flags(),
            )
        )

    lines.append("")
    return "\n".join(lines)


def _render_record(
    name: str,
    compiled: CompiledSchema,
    fields: dict[str, str],
    defaults: dict[str, object],
    *,
    mode: str,
    flags: int,
) -> list[str]:
    lines = [
        "@dataclass(frozen=True, kw_only=True)",
        f"class {name}:",
    ]
    for field_name, type_name in fields.items():
        annotation = _python_annotation(type_name)
        if field_name in defaults:
            lines.append(f"    {field_name}: {annotation} = {defaults[field_name]!r}")
        else:
            lines.append(f"    {field_name}: {annotation}")

    lines.append("")
    lines.append(f"    TEMPLATE: ClassVar[str] = {compiled.template!r}")
    lines.append(f"    REGEX_STR: ClassVar[str] = {compiled.pattern!r}")
    lines.append(f"    CAPTURES_COUNT: ClassVar[int] = {compiled.width}")
    lines.append(f"    MODE: ClassVar[str] = {mode!r}")
    lines.append(
        f"    _MATCHER: ClassVar[LazyPattern] = LazyPattern(REGEX_STR, {flags}, owner={name!r})"
    )
    lines.append("")
    lines.append("    @classmethod")
    lines.append("    def regex_str(cls) -> str:")
    lines.append("        return cls.REGEX_STR")
    lines.append("")
    lines.append("    @classmethod")
    lines.append("    def captures_count(cls) -> int:")
    lines.append("        return cls.CAPTURES_COUNT")
    lines.append("")
    lines.append("    @classmethod")
    lines.append(f"    def from_captures(cls, captures: re.Match[str], offset: int) -> {name}:")
    if compiled.slots:
        lines.append("        return cls(")
        for slot in compiled.slots:
            type_expr = _type_expr(fields[slot.name])
            lines.append(
                f"            {slot.name}=reconstruct_field("
                f"{slot.name!r}, {type_expr}, captures, offset + {slot.offset - 1}),"
            )
        lines.append("        )")
    else:
        lines.append("        return cls()")
    lines.append("")
    lines.append("    @classmethod")
    lines.append(f"    def parse(cls, text: str) -> {name}:")
    lines.append(
        "        captures = match_input(cls._MATCHER, text, template=cls.TEMPLATE, mode=cls.MODE)"
    )
    lines.append("        return cls.from_captures(captures, 1)")
    return lines


def _primitive_symbol(type_name: str) -> str:
    return _PRIMITIVE_SYMBOLS.get(type_name, type_name)


def _type_expr(type_name: str) -> str:
    if type_name in PRIMITIVES:
        return _primitive_symbol(type_name)
    return type_name


def _python_annotation(type_name: str) -> str:
    primitive = PRIMITIVES.get(type_name)
    if primitive is None:
        return type_name
    if primitive.pattern == FLOAT_PATTERN:
        return "float"
    if primitive.pattern == TEXT_PATTERN:
        return "str"
    return "int"
