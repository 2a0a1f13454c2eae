"""
Parser for UCI option declarations.

Example line:
    option name Hash type spin default 16 min 1 max 33554432

Every token following a keyword, up to the next keyword, belongs to that
keyword's value; the tokens are joined with single spaces, which keeps names
such as "Clear Hash" or "Skill Level" intact. A token equal to a keyword always
starts a new field.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .exceptions import OptionParseError

logger = logging.getLogger(__name__)

KEYWORDS = frozenset({"name", "type", "default", "min", "max", "var"})


class OptionKind(Enum):
    """UCI option types."""

    CHECK = "check"
    SPIN = "spin"
    COMBO = "combo"
    BUTTON = "button"
    STRING = "string"


@dataclass
class EngineOption:
    """One option declared by an engine during the handshake."""

    name: str
    kind: OptionKind
    default: str = ""
    min: int | None = None
    max: int | None = None
    vars: list[str] = field(default_factory=list)

    def to_line(self) -> str:
        """Render the canonical UCI declaration of this option."""
        parts = ["option", "name", self.name, "type", self.kind.value]
        if self.default:
            parts += ["default", self.default]
        if self.min is not None:
            parts += ["min", str(self.min)]
        if self.max is not None:
            parts += ["max", str(self.max)]
        for var in self.vars:
            parts += ["var", var]
        return " ".join(parts)


def _tokenize(tokens: list[str]) -> list[tuple[str, str]]:
    """Split option tokens into (keyword, value) pairs in order of appearance."""
    fields: list[tuple[str, str]] = []
    key: str | None = None
    buffer: list[str] = []

    for token in tokens:
        if token in KEYWORDS:
            if key is not None:
                fields.append((key, " ".join(buffer)))
            key = token
            buffer = []
        elif key is not None:
            buffer.append(token)
        else:
            raise OptionParseError(f"Unexpected token '{token}' before any keyword")

    if key is not None:
        fields.append((key, " ".join(buffer)))
    return fields


def _parse_bound(key: str, value: str, line: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise OptionParseError(f"Invalid '{key}' value '{value}' in option line: {line}") from e


def parse_option_line(line: str) -> EngineOption:
    """
    Parse a single UCI option line.

    Args:
        line: A line as sent by the engine, starting with "option".

    Returns:
        A structurally valid EngineOption.

    Raises:
        OptionParseError: If the line is malformed; the message names the
            offending field and quotes the line.
    """
    tokens = line.split()
    if not tokens or tokens[0] != "option":
        raise OptionParseError(f"Line does not start with 'option': {line}")

    try:
        fields = _tokenize(tokens[1:])
    except OptionParseError as e:
        raise OptionParseError(f"{e} in option line: {line}") from e

    name = ""
    type_text: str | None = None
    default = ""
    min_value: int | None = None
    max_value: int | None = None
    variants: list[str] = []

    for key, value in fields:
        if key == "name":
            name = value
        elif key == "type":
            type_text = value
        elif key == "default":
            default = value
        elif key == "min":
            min_value = _parse_bound(key, value, line)
        elif key == "max":
            max_value = _parse_bound(key, value, line)
        else:
            variants.append(value)

    if not name:
        raise OptionParseError(f"Missing 'name' field in option line: {line}")
    if type_text is None:
        raise OptionParseError(f"Missing 'type' field in option line: {line}")
    try:
        kind = OptionKind(type_text)
    except ValueError as e:
        raise OptionParseError(f"Unknown 'type' value '{type_text}' in option line: {line}") from e

    # Type-dependent structural validation
    if kind is OptionKind.SPIN:
        if min_value is None or max_value is None:
            raise OptionParseError(f"Spin option missing 'min' or 'max' in option line: {line}")
    elif min_value is not None or max_value is not None:
        raise OptionParseError(
            f"Option of type '{kind.value}' must not define 'min'/'max' in option line: {line}"
        )

    if kind is OptionKind.COMBO:
        if not variants:
            raise OptionParseError(f"Combo option missing 'var' entries in option line: {line}")
    elif variants:
        raise OptionParseError(
            f"Option of type '{kind.value}' must not define 'var' in option line: {line}"
        )

    return EngineOption(
        name=name,
        kind=kind,
        default=default,
        min=min_value,
        max=max_value,
        vars=variants,
    )
