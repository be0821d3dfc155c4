"""Expression, condition and template evaluation for harmony-scripts.

Supported expression forms:

- ``$vars.a.b`` / ``$input.a.b``: dotted lookup, missing segments yield None;
- ``$len(expr)``: length of a string or list, 0 for anything else;
- ``$map(expr, 'prop')``: ``prop`` of every mapping in a list, skipping
  mappings that lack it;
- anything not starting with ``$`` is a literal.

Conditions are either ``left OP right`` with a relational operator, compared
numerically when both sides are numbers and as strings otherwise, or a single
expression judged by truthiness. Templates replace ``{{vars.x}}`` and
``{{input.x}}`` and leave every other ``{{...}}`` untouched.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any

from harmonia.errors import ExpressionError

EXPRESSION_SENTINEL = "$"
VARS_PREFIX = "vars."
INPUT_PREFIX = "input."
CONDITION_RE = re.compile(r"^(?P<left>.+?)\s*(?P<op>==|!=|<=|>=|<|>)\s*(?P<right>.+?)$", re.DOTALL)
TEMPLATE_RE = re.compile(r"\{\{\s*(?P<path>[^}]+?)\s*\}\}")


class VarStore(MutableMapping[str, Any]):
    """Variable store with case-insensitive names that remembers the spelling of the last write."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, tuple[str, Any]] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, key: str) -> Any:
        return self._data[key.casefold()][1]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key.casefold()] = (key, value)

    def __delitem__(self, key: str) -> None:
        del self._data[key.casefold()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._data

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._data.values())

    def __len__(self) -> int:
        return len(self._data)

    def snapshot(self) -> dict[str, Any]:
        return dict(self._data.values())


@dataclass
class Scope:
    """Names visible to expressions: script variables and the read-only input."""

    vars: VarStore = field(default_factory=VarStore)
    input: Mapping[str, Any] = field(default_factory=dict)


def evaluate(expression: str, scope: Scope) -> Any:
    expr = expression.strip()
    if not expr.startswith(EXPRESSION_SENTINEL):
        return expr

    if expr.startswith("$len(") and expr.endswith(")"):
        value = _evaluate_argument(expr[len("$len(") : -1], scope)
        return len(value) if isinstance(value, str | list | tuple) else 0

    if expr.startswith("$map(") and expr.endswith(")"):
        arguments = _split_arguments(expr[len("$map(") : -1])
        if len(arguments) != 2:
            raise ExpressionError(f"$map expects two arguments (collection, 'prop'), got {len(arguments)}: {expr}")
        collection = _evaluate_argument(arguments[0], scope)
        prop = arguments[1].strip().strip("'\"")
        if not isinstance(collection, list | tuple):
            return []
        return [item[prop] for item in collection if isinstance(item, Mapping) and prop in item]

    if expr.startswith(EXPRESSION_SENTINEL + VARS_PREFIX):
        return resolve_path(scope.vars, expr[len(EXPRESSION_SENTINEL + VARS_PREFIX) :])
    if expr.startswith(EXPRESSION_SENTINEL + INPUT_PREFIX):
        return resolve_path(scope.input, expr[len(EXPRESSION_SENTINEL + INPUT_PREFIX) :])

    return expr


def evaluate_condition(condition: str, scope: Scope) -> bool:
    match = CONDITION_RE.match(condition.strip())
    if match is None:
        return is_truthy(evaluate(condition, scope))

    left = evaluate(match.group("left"), scope)
    right = evaluate(match.group("right"), scope)
    op = match.group("op")
    if op == "==":
        return _equals(left, right)
    if op == "!=":
        return not _equals(left, right)

    cmp = _compare(left, right)
    if op == "<":
        return cmp < 0
    if op == "<=":
        return cmp <= 0
    if op == ">":
        return cmp > 0
    return cmp >= 0


def render_template(template: str, scope: Scope) -> str:
    def _replace(match: re.Match[str]) -> str:
        path = match.group("path").strip()
        if path.startswith(VARS_PREFIX):
            return stringify(resolve_path(scope.vars, path[len(VARS_PREFIX) :]))
        if path.startswith(INPUT_PREFIX):
            return stringify(resolve_path(scope.input, path[len(INPUT_PREFIX) :]))
        return match.group(0)

    return TEMPLATE_RE.sub(_replace, template)


def resolve_path(root: Mapping[str, Any], path: str) -> Any:
    """Walk a dotted path; any missing segment yields None."""

    current: Any = root
    for part in (segment for segment in path.split(".") if segment):
        if isinstance(current, Mapping):
            if part not in current:
                return None
            current = current[part]
        elif isinstance(current, list | tuple) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return None
            current = current[index]
        else:
            return None
    if isinstance(current, VarStore):
        return current.snapshot()
    return current


def is_truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return bool(value.strip())
    return True


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping | list | tuple):
        return json.dumps(_plain(value), ensure_ascii=False, separators=(",", ":"), default=str)
    return str(value)


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_plain(item) for item in value]
    return value


def _evaluate_argument(argument: str, scope: Scope) -> Any:
    stripped = argument.strip()
    if stripped.startswith((VARS_PREFIX, INPUT_PREFIX)):
        stripped = EXPRESSION_SENTINEL + stripped
    return evaluate(stripped, scope)


def _split_arguments(text: str) -> list[str]:
    """Split on commas that sit outside quotes and parentheses."""

    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    depth = 0
    for char in text:
        if quote is not None:
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if current:
        parts.append("".join(current))
    return parts


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _equals(left: Any, right: Any) -> bool:
    if left is None and right is None:
        return True
    if left is None or right is None:
        return False
    left_number, right_number = _as_number(left), _as_number(right)
    if left_number is not None and right_number is not None:
        return left_number == right_number
    return stringify(left) == stringify(right)


def _compare(left: Any, right: Any) -> int:
    left_number, right_number = _as_number(left), _as_number(right)
    if left_number is not None and right_number is not None:
        return (left_number > right_number) - (left_number < right_number)
    left_text, right_text = stringify(left), stringify(right)
    return (left_text > right_text) - (left_text < right_text)
