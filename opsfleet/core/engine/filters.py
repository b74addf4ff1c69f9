"""
Filter engine — narrow an inventory with ``field:pattern`` expressions.

Two fields are stack-level: ``stack`` (stack name) and ``region``.
Every other field is layer-level: ``layer`` matches the layer short
name, and any field is looked up in the layer's effective custom JSON.

A layer-level filter keeps only matching layers and drops stacks left
without any. Filters only ever remove; an empty batch returns the
input unchanged.

Patterns use ``*`` for "any characters" and match the whole value.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable

from opsfleet.core.errors import ValidationError
from opsfleet.core.models import Layer, Stack

logger = logging.getLogger(__name__)

FILTER_DELIMITER = ":"
WILDCARD = "*"

# filter field → Stack attribute
STACK_FIELDS = {
    "stack": "name",
    "region": "region",
}
LAYER_NAME_FIELD = "layer"


@dataclass(frozen=True)
class FilterExpression:
    field: str
    pattern: str
    regex: re.Pattern[str]

    @property
    def stack_level(self) -> bool:
        return self.field in STACK_FIELDS

    def __str__(self) -> str:
        return f"{self.field}{FILTER_DELIMITER}{self.pattern}"


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a wildcard pattern into a regex for ``fullmatch``.

    Everything except ``*`` is literal: ``us-west*`` matches
    ``us-west-2a`` but not ``eu-us-west-1``, and ``a.b`` does not match
    ``axb``.
    """
    literal_parts = (re.escape(part) for part in pattern.split(WILDCARD))
    return re.compile(".*".join(literal_parts), re.DOTALL)


def parse_filter(text: str) -> FilterExpression:
    """Parse ``field:pattern``.

    Raises:
        ValidationError: unless the text holds exactly one delimiter
            with something on both sides.
    """
    parts = text.split(FILTER_DELIMITER)
    if len(parts) != 2 or not parts[0].strip() or not parts[1]:
        raise ValidationError(f"Incorrect filter '{text}' (Format: name:value)")

    field, pattern = parts[0].strip(), parts[1]
    regex = compile_pattern(pattern)
    logger.debug("Filter %s:%s turned to regex %s", field, pattern, regex.pattern)
    return FilterExpression(field=field, pattern=pattern, regex=regex)


def parse_filters(texts: Iterable[str]) -> list[FilterExpression]:
    """Parse a whole batch and reject repeated fields."""
    expressions = [parse_filter(text) for text in texts]
    seen: set[str] = set()
    for expr in expressions:
        if expr.field in seen:
            raise ValidationError(
                f"Cannot use the same filter twice: '{expr.field}'"
            )
        seen.add(expr.field)
    return expressions


def filters_from_option(values: Iterable[str]) -> list[str]:
    """Flatten repeated and comma-separated ``-f`` values."""
    result = []
    for value in values:
        result.extend(part.strip() for part in value.split(",") if part.strip())
    return result


def _matches(regex: re.Pattern[str], value: Any) -> bool:
    if isinstance(value, str):
        return regex.fullmatch(value) is not None
    # Scalars compare through their JSON text (true, 3, 1.5)
    if isinstance(value, (bool, int, float)):
        return regex.fullmatch(json.dumps(value)) is not None
    return False


def layer_matches(layer: Layer, expr: FilterExpression) -> bool:
    """Whether a layer survives a layer-level filter."""
    if expr.field == LAYER_NAME_FIELD and _matches(expr.regex, layer.shortname):
        return True
    if expr.field not in layer.effective_config:
        return False
    return _matches(expr.regex, layer.effective_config[expr.field])


def apply_filter(stacks: list[Stack], expr: FilterExpression) -> list[Stack]:
    """Apply one parsed expression, returning a new stack list."""
    if expr.stack_level:
        attribute = STACK_FIELDS[expr.field]
        return [s for s in stacks if _matches(expr.regex, getattr(s, attribute))]

    narrowed = []
    for stack in stacks:
        layers = [layer for layer in stack.layers if layer_matches(layer, expr)]
        if layers:
            narrowed.append(stack.model_copy(update={"layers": layers}))
    return narrowed


def narrow(stacks: list[Stack], expressions: list[FilterExpression]) -> list[Stack]:
    """Apply already-parsed expressions in order."""
    logger.debug(
        "Got %d stacks, applying filters %s",
        len(stacks),
        ", ".join(str(e) for e in expressions),
    )

    for expr in expressions:
        stacks = apply_filter(stacks, expr)

    logger.debug("Got %d stacks after filters", len(stacks))
    return stacks


def apply_filters(stacks: list[Stack], filters: Iterable[str]) -> list[Stack]:
    """Narrow ``stacks`` with every ``field:pattern`` in ``filters``.

    The batch is validated in full before anything is filtered.

    Raises:
        ValidationError: on a malformed expression or a repeated field.
    """
    return narrow(stacks, parse_filters(filters))
