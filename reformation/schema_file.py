"""Record schemas described in YAML and turned into decorated dataclasses."""

from __future__ import annotations

import dataclasses
import keyword
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml  # type: ignore[import-untyped]
from pydantic import (
    AllowInfNan,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
)

from reformation.config import DEFAULT_CONFIG, ReformationConfig
from reformation.contract import Reformable
from reformation.errors import CompileError
from reformation.primitives import PRIMITIVES
from reformation.record import reformation

# Defaults must survive a repr() round trip into generated source.
DefaultValue = (
    StrictBool | StrictInt | Annotated[StrictFloat, AllowInfNan(False)] | StrictStr | None
)

# Names bound by generated modules and members attached to every record.
RESERVED_RECORD_NAMES = frozenset(
    {"re", "dataclass", "ClassVar", "LazyPattern", "match_input", "reconstruct_field"}
    | {"integer"}
    | set(PRIMITIVES)
)
RESERVED_FIELD_NAMES = RESERVED_RECORD_NAMES | {
    "regex_str",
    "captures_count",
    "from_captures",
    "parse",
    "TEMPLATE",
    "REGEX_STR",
    "CAPTURES_COUNT",
    "MODE",
    "_MATCHER",
}


class RecordSpec(BaseModel):
    """One record: its format string and ordered ``name: type`` fields."""

    model_config = ConfigDict(extra="forbid")

    template: str
    fields: dict[str, str]
    defaults: dict[str, DefaultValue] = Field(default_factory=dict)
    mode: Literal["full", "search"] | None = None
    strict: bool | None = None


class SchemaFile(BaseModel):
    """A YAML schema file; records may use records declared before them."""

    model_config = ConfigDict(extra="forbid")

    records: dict[str, RecordSpec]


class _UniqueKeyLoader(yaml.SafeLoader):
    def construct_mapping(self, node, deep=False):  # type: ignore[no-untyped-def]
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    None, None, f"duplicate key {key!r}", key_node.start_mark
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def load_schema_file(path: Path) -> SchemaFile:
    """Load and validate a YAML schema file."""

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ValueError(f"Schema file not found: {path}") from exc
    return parse_schema_text(text, source=str(path))


def parse_schema_text(text: str, *, source: str = "<string>") -> SchemaFile:
    try:
        raw = yaml.load(text, Loader=_UniqueKeyLoader)  # noqa: S506
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in schema file: {source}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Schema file must contain a mapping: {source}")

    try:
        return SchemaFile.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid schema: {source}") from exc


def resolve_type_name(type_name: str, known: Mapping[str, Reformable]) -> Reformable:
    """Resolve a field type name to a primitive or a previously built record."""

    if type_name in PRIMITIVES:
        return PRIMITIVES[type_name]
    if type_name in known:
        return known[type_name]
    raise CompileError(f"Unknown field type {type_name!r}.")


def build_record(
    name: str,
    spec: RecordSpec,
    known: Mapping[str, Reformable],
    config: ReformationConfig = DEFAULT_CONFIG,
) -> type:
    """Create a frozen, keyword-only dataclass for ``spec`` and compile it."""

    _check_name(name, RESERVED_RECORD_NAMES, "record", record=name)
    for field_name in spec.fields:
        _check_name(field_name, RESERVED_FIELD_NAMES, "field", record=name)
    for default_name in spec.defaults:
        if default_name not in spec.fields:
            raise CompileError(f"Default given for unknown field {default_name!r}.", record=name)

    field_specs: list[Any] = []
    for field_name, type_name in spec.fields.items():
        field_type = resolve_type_name(type_name, known)
        if field_name in spec.defaults:
            default = dataclasses.field(default=spec.defaults[field_name])
            field_specs.append((field_name, field_type, default))
        else:
            field_specs.append((field_name, field_type))

    try:
        cls = dataclasses.make_dataclass(name, field_specs, frozen=True, kw_only=True)
    except (TypeError, ValueError) as exc:
        raise CompileError(f"Cannot build record {name!r}: {exc}", record=name) from exc

    decorate = reformation(spec.template, mode=spec.mode, strict=spec.strict, config=config)
    return decorate(cls)


def build_records(
    schema: SchemaFile, config: ReformationConfig = DEFAULT_CONFIG
) -> dict[str, type]:
    """Build every record of ``schema`` in declaration order."""

    records: dict[str, type] = {}
    for name, spec in schema.records.items():
        records[name] = build_record(name, spec, records, config)
    return records


def _check_name(name: str, reserved: frozenset[str], kind: str, *, record: str) -> None:
    if not name.isidentifier() or keyword.iskeyword(name):
        raise CompileError(
            f"Invalid {kind} name {name!r}: must be a Python identifier.", record=record
        )
    if name in reserved:
        raise CompileError(
            f"Invalid {kind} name {name!r}: reserved by generated record modules.", record=record
        )
