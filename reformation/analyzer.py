"""Placeholder discovery for brace-delimited format strings.

Rules:
- ``{name}`` is a placeholder; ``{}`` is a positional placeholder.
- ``{{`` and ``}}`` are literal braces.
- A ``}`` with no open placeholder is literal.
- Placeholders nest with stack discipline; the analyzer does not validate names.
- An unterminated ``{`` is an error.
"""

from __future__ import annotations

from dataclasses import dataclass

from reformation.errors import CompileError

_OPEN = "{"
_CLOSE = "}"


@dataclass(frozen=True)
class Placeholder:
    """One placeholder occurrence; ``start``/``end`` span the braces."""

    name: str
    start: int
    end: int


def scan_template(template: str) -> list[Placeholder]:
    """Return placeholders in the order their closing braces appear."""

    open_positions: list[int] = []
    found: list[Placeholder] = []
    index = 0
    length = len(template)

    while index < length:
        char = template[index]
        if char == _OPEN:
            if template.startswith(_OPEN, index + 1):
                index += 2
                continue
            open_positions.append(index + 1)
        elif char == _CLOSE:
            if open_positions:
                start = open_positions.pop()
                found.append(Placeholder(template[start:index], start - 1, index + 1))
            elif template.startswith(_CLOSE, index + 1):
                index += 2
                continue
        index += 1

    if open_positions:
        start = open_positions[-1] - 1
        raise CompileError(
            f"Unterminated placeholder in format string at position {start}: "
            f"{template[start:]!r}",
            template=template,
        )

    return found


def extract_placeholders(template: str) -> set[str]:
    """Return the distinct placeholder names used by ``template``."""

    return {placeholder.name for placeholder in scan_template(template)}


def split_template(template: str) -> list[str | Placeholder]:
    """Split ``template`` into unescaped literal chunks and outermost placeholders."""

    outermost: list[Placeholder] = []
    for placeholder in sorted(scan_template(template), key=lambda item: item.start):
        if outermost and placeholder.start < outermost[-1].end:
            continue
        outermost.append(placeholder)

    pieces: list[str | Placeholder] = []
    cursor = 0
    for placeholder in outermost:
        if placeholder.start > cursor:
            pieces.append(_unescape(template[cursor : placeholder.start]))
        pieces.append(placeholder)
        cursor = placeholder.end
    if cursor < len(template):
        pieces.append(_unescape(template[cursor:]))
    return pieces


def _unescape(literal: str) -> str:
    return literal.replace(_OPEN * 2, _OPEN).replace(_CLOSE * 2, _CLOSE)
