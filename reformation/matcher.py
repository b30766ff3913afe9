"""Lazily compiled matchers and capture-to-value reconstruction."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Sequence
from typing import Any, Literal

from reformation.compiler import FieldSlot
from reformation.contract import Reformable, type_name
from reformation.errors import NoRegexMatch, PatternDefectError, ReconstructionError

logger = logging.getLogger("reformation.matcher")

MatchMode = Literal["full", "search"]
MATCH_MODES: tuple[MatchMode, ...] = ("full", "search")


class LazyPattern:
    """A regular expression compiled on first use, at most once."""

    def __init__(self, source: str, flags: int = 0, *, owner: str = "record") -> None:
        self.source = source
        self.flags = flags
        self.owner = owner
        self._lock = threading.Lock()
        self._compiled: re.Pattern[str] | None = None

    @property
    def is_built(self) -> bool:
        return self._compiled is not None

    def get(self) -> re.Pattern[str]:
        compiled = self._compiled
        if compiled is not None:
            return compiled

        with self._lock:
            if self._compiled is None:
                try:
                    self._compiled = re.compile(self.source, self.flags)
                except re.error as exc:
                    raise PatternDefectError(
                        f"Cannot compile regex {self.source!r} for {self.owner}"
                    ) from exc
                logger.debug("built matcher for %s: %r", self.owner, self.source)
            return self._compiled

    def match(self, text: str, mode: MatchMode = "full") -> re.Match[str] | None:
        pattern = self.get()
        if mode == "full":
            return pattern.fullmatch(text)
        if mode == "search":
            return pattern.search(text)
        raise ValueError(f"Unsupported match mode: {mode}")


def match_input(
    lazy: LazyPattern, text: str, *, template: str, mode: MatchMode = "full"
) -> re.Match[str]:
    """Apply ``lazy`` to ``text`` or raise NoRegexMatch carrying both strings."""

    captures = lazy.match(text, mode)
    if captures is None:
        raise NoRegexMatch(format=template, request=text, pattern=lazy.source)
    return captures


def reconstruct_field(
    name: str, field_type: Reformable, captures: re.Match[str], offset: int
) -> Any:
    """Build one field value, wrapping conversion failures."""

    try:
        return field_type.from_captures(captures, offset)
    except ReconstructionError:
        raise
    except (ValueError, TypeError, ArithmeticError) as exc:
        raise ReconstructionError(
            field=name,
            text=captures.group(offset),
            type_name=type_name(field_type),
            reason=str(exc),
        ) from exc


def reconstruct_fields(
    slots: Sequence[FieldSlot], captures: re.Match[str], base: int = 1
) -> dict[str, Any]:
    """Build every slot's value; ``base`` shifts offsets for nested records."""

    shift = base - 1
    return {
        slot.name: reconstruct_field(slot.name, slot.field_type, captures, slot.offset + shift)
        for slot in slots
    }
