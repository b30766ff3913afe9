"""Capability contract shared by primitive field types and compiled records."""

from __future__ import annotations

import re
from typing import Annotated, Any, Protocol, get_args, get_origin, runtime_checkable

from reformation.errors import CompileError
from reformation.primitives import BUILTIN_TYPES


@runtime_checkable
class Reformable(Protocol):
    """Anything that can be embedded as a field of a record template.

    ``from_captures`` receives the whole match and the index of the first
    group it owns; it must read only ``captures_count()`` groups from there.
    """

    def regex_str(self) -> str:
        """Return the sub-pattern matching this type."""

    def captures_count(self) -> int:
        """Return the number of capturing groups in ``regex_str()``."""

    def from_captures(self, captures: re.Match[str], offset: int) -> Any:
        """Build a value from the groups starting at ``offset``."""


def resolve_type(annotation: Any) -> Reformable:
    """Map a field annotation onto the contract implementation parsing it."""

    if get_origin(annotation) is Annotated:
        base, *metadata = get_args(annotation)
        for item in metadata:
            if isinstance(item, Reformable):
                return item
        return resolve_type(base)

    if isinstance(annotation, type) and annotation in BUILTIN_TYPES:
        return BUILTIN_TYPES[annotation]

    if isinstance(annotation, Reformable):
        return annotation

    raise CompileError(f"Type {annotation!r} does not implement the reformation contract.")


def type_name(field_type: Reformable) -> str:
    return getattr(field_type, "__name__", None) or repr(field_type)
