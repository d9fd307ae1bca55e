# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

"""
Visual condition groups and their compiled expression form.

A ConditionGroup is compiled to a JavaScript boolean expression that the
execution service evaluates. The same group can also be evaluated here
against a data context, following the execution service's semantics.
"""

import json
import math
import re
import uuid
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from coreason_flow.engine.resolver import resolve_path
from coreason_flow.utils.logger import logger

ConditionOperator = Literal[
    "equals",
    "notEquals",
    "contains",
    "notContains",
    "startsWith",
    "endsWith",
    "greaterThan",
    "lessThan",
    "greaterOrEqual",
    "lessOrEqual",
    "isEmpty",
    "isNotEmpty",
    "isTrue",
    "isFalse",
    "matches",
]

MatchMode = Literal["exact", "contains", "regex", "range"]

DEFAULT_FIELD = "data.field"
DEFAULT_SWITCH_OUTPUT = "default"

# Operator names used by conditional node configs in the execution service.
OPERATOR_ALIASES: Dict[str, str] = {
    "not_equals": "notEquals",
    "not_contains": "notContains",
    "starts_with": "startsWith",
    "ends_with": "endsWith",
    "regex": "matches",
    "gt": "greaterThan",
    "gte": "greaterOrEqual",
    "lt": "lessThan",
    "lte": "lessOrEqual",
    "is_empty": "isEmpty",
    "is_not_empty": "isNotEmpty",
    "is_true": "isTrue",
    "is_false": "isFalse",
}

_IDENTIFIER = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_KEY = re.compile(r"[\w$-]+")
_SEGMENT = re.compile(r"([^\[\]]*)((?:\[[0-9]+\])*)")


class OperatorInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    description: str
    requires_value: bool


OPERATORS: Dict[str, OperatorInfo] = {
    "equals": OperatorInfo(label="=", description="Equals", requires_value=True),
    "notEquals": OperatorInfo(label="≠", description="Not equals", requires_value=True),
    "contains": OperatorInfo(label="∋", description="Contains", requires_value=True),
    "notContains": OperatorInfo(label="∌", description="Does not contain", requires_value=True),
    "startsWith": OperatorInfo(label="a...", description="Starts with", requires_value=True),
    "endsWith": OperatorInfo(label="...z", description="Ends with", requires_value=True),
    "greaterThan": OperatorInfo(label=">", description="Greater than", requires_value=True),
    "lessThan": OperatorInfo(label="<", description="Less than", requires_value=True),
    "greaterOrEqual": OperatorInfo(label="≥", description="Greater or equal", requires_value=True),
    "lessOrEqual": OperatorInfo(label="≤", description="Less or equal", requires_value=True),
    "isEmpty": OperatorInfo(label="∅", description="Is empty", requires_value=False),
    "isNotEmpty": OperatorInfo(label="!∅", description="Is not empty", requires_value=False),
    "isTrue": OperatorInfo(label="✓", description="Is true", requires_value=False),
    "isFalse": OperatorInfo(label="✗", description="Is false", requires_value=False),
    "matches": OperatorInfo(label="/./", description="Matches regex", requires_value=True),
}


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class Condition(BaseModel):
    """A single field/operator/value test."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=_new_id)
    field: str = ""
    operator: ConditionOperator
    value: Union[bool, int, float, str, None] = None

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, v: Any) -> Any:
        if isinstance(v, str):
            return OPERATOR_ALIASES.get(v, v)
        return v


class ConditionGroup(BaseModel):
    """An AND/OR combination of conditions. Groups may nest."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=_new_id)
    logic: Literal["and", "or"] = "and"
    conditions: List[Union[Condition, "ConditionGroup"]] = Field(default_factory=list)


ConditionGroup.model_rebuild()


# --- Group -> expression ---


def _literal(value: Any) -> str:
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, (int, float)):
        return json.dumps(value)
    return json.dumps(str(value), ensure_ascii=False)


def render_path(path: str) -> Optional[str]:
    """
    Renders a dotted data path as a property access expression.

    Segments that are not identifiers, such as generated node ids, use
    bracket access: `nodes.form-trigger_ab12.submittedAt` becomes
    `nodes["form-trigger_ab12"].submittedAt`. Returns None for anything
    that is not a plain path.
    """
    rendered: List[str] = []
    for position, segment in enumerate(path.split(".")):
        match = _SEGMENT.fullmatch(segment)
        if match is None:
            return None
        key, indexes = match.groups()
        if _IDENTIFIER.fullmatch(key):
            rendered.append(key if position == 0 else f".{key}")
        elif position > 0 and _KEY.fullmatch(key):
            rendered.append(f"[{json.dumps(key)}]")
        else:
            return None
        rendered.append(indexes)
    return "".join(rendered)


def compile_condition(condition: Condition) -> str:
    field = condition.field or DEFAULT_FIELD
    f = render_path(field)
    if f is None:
        logger.debug(f"Condition field '{field}' is not a valid path, compiling to true")
        return "true"
    v = _literal(condition.value)

    op = condition.operator
    if op == "equals":
        return f"{f} === {v}"
    if op == "notEquals":
        return f"{f} !== {v}"
    if op == "contains":
        return f"{f}?.includes({v})"
    if op == "notContains":
        return f"!{f}?.includes({v})"
    if op == "startsWith":
        return f"{f}?.startsWith({v})"
    if op == "endsWith":
        return f"{f}?.endsWith({v})"
    if op == "greaterThan":
        return f"{f} > {v}"
    if op == "lessThan":
        return f"{f} < {v}"
    if op == "greaterOrEqual":
        return f"{f} >= {v}"
    if op == "lessOrEqual":
        return f"{f} <= {v}"
    if op == "isEmpty":
        return f"(!{f} || {f}.length === 0)"
    if op == "isNotEmpty":
        return f"(!!{f} && {f}.length > 0)"
    if op == "isTrue":
        return f"{f} === true"
    if op == "isFalse":
        return f"{f} === false"
    if op == "matches":
        return f"new RegExp({v}).test({f})"
    return "true"


def compile_group(group: ConditionGroup) -> str:
    """
    Compiles a condition group to a boolean expression.

    An empty group compiles to `true`. Nested groups with more than one
    member are parenthesized.
    """
    if not group.conditions:
        return "true"

    parts: List[str] = []
    for item in group.conditions:
        if isinstance(item, ConditionGroup):
            compiled = compile_group(item)
            parts.append(f"({compiled})" if len(item.conditions) > 1 else compiled)
        else:
            parts.append(compile_condition(item))

    joiner = " && " if group.logic == "and" else " || "
    return joiner.join(parts)


def parse_expression(expression: str) -> ConditionGroup:
    """
    Returns a fresh, empty AND group.

    Expressions are not parsed back into the visual form; a hand-written
    expression is discarded.
    """
    stripped = (expression or "").strip()
    if stripped and stripped != "true":
        logger.warning(f"Expression '{stripped}' cannot be converted to a condition group and was discarded")
    return ConditionGroup()


def group_from_config(config: Mapping[str, Any]) -> ConditionGroup:
    """Builds a group from a conditional node config (`conditions`, `combineWith`)."""
    raw = config.get("conditions") or []
    logic = config.get("combineWith") or "and"
    conditions: List[Union[Condition, ConditionGroup]] = []
    for item in raw if isinstance(raw, list) else []:
        try:
            conditions.append(Condition.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed condition: {e.error_count()} invalid field(s)")
    return ConditionGroup(logic=logic if logic in ("and", "or") else "and", conditions=conditions)


# --- Evaluation ---


def _js_string(value: Any) -> str:
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Mapping):
        return "[object Object]"
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else _js_string(v) for v in value)
    return str(value)


def _js_number(value: Any) -> float:
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) == 0
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _loose_equals(left: Any, right: Any) -> bool:
    return left == right or _js_string(left) == _js_string(right)


def _regex_test(pattern: Any, text: Any) -> bool:
    if not isinstance(pattern, str) or not isinstance(text, str):
        return False
    try:
        return re.search(pattern, text, re.IGNORECASE) is not None
    except re.error:
        return False


def _contains(haystack: Any, needle: Any) -> Optional[bool]:
    if isinstance(haystack, str) and isinstance(needle, str):
        return needle.lower() in haystack.lower()
    if isinstance(haystack, (list, tuple)):
        return needle in haystack
    return None


def evaluate_condition(condition: Condition, data: Any) -> bool:
    """Evaluates one condition against a runtime data context. Never raises."""
    actual = resolve_path(data, condition.field or DEFAULT_FIELD)
    expected = condition.value
    op = condition.operator

    if op == "equals":
        return _loose_equals(actual, expected)
    if op == "notEquals":
        return not _loose_equals(actual, expected)
    if op == "contains":
        return bool(_contains(actual, expected))
    if op == "notContains":
        found = _contains(actual, expected)
        return True if found is None else not found
    if op in ("startsWith", "endsWith"):
        if not isinstance(actual, str) or not isinstance(expected, str):
            return False
        if op == "startsWith":
            return actual.lower().startswith(expected.lower())
        return actual.lower().endswith(expected.lower())
    if op == "greaterThan":
        return _js_number(actual) > _js_number(expected)
    if op == "lessThan":
        return _js_number(actual) < _js_number(expected)
    if op == "greaterOrEqual":
        return _js_number(actual) >= _js_number(expected)
    if op == "lessOrEqual":
        return _js_number(actual) <= _js_number(expected)
    if op == "isEmpty":
        return _is_empty(actual)
    if op == "isNotEmpty":
        return not _is_empty(actual)
    if op == "isTrue":
        return actual is True or actual in ("true", "1") or (_is_number(actual) and actual == 1)
    if op == "isFalse":
        return actual is False or actual in ("false", "0") or (_is_number(actual) and actual == 0)
    if op == "matches":
        return _regex_test(expected, actual)
    return False


def evaluate_group(group: ConditionGroup, data: Any) -> bool:
    """Evaluates a group against a runtime data context. An empty group is true."""
    if not group.conditions:
        return True
    results = (
        evaluate_group(item, data) if isinstance(item, ConditionGroup) else evaluate_condition(item, data)
        for item in group.conditions
    )
    if group.logic == "and":
        return all(results)
    return any(results)


# --- Switch routing ---


class SwitchCase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    value: Any = None
    output: str = ""
    min: Optional[float] = None
    max: Optional[float] = None


class SwitchMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    output: str
    matched_case: Any
    matched_index: int
    is_default: bool


def _case_matches(field_value: Any, case: SwitchCase, mode: str) -> bool:
    if mode == "exact":
        return _loose_equals(field_value, case.value)
    if mode == "contains":
        return bool(_contains(field_value, case.value))
    if mode == "regex":
        return _regex_test(case.value, field_value)
    if mode == "range":
        number = _js_number(field_value)
        if math.isnan(number):
            return False
        return (case.min is None or number >= case.min) and (case.max is None or number <= case.max)
    return bool(field_value == case.value)


def match_switch(
    field_value: Any,
    cases: Sequence[Union[SwitchCase, Mapping[str, Any]]],
    default_output: str = DEFAULT_SWITCH_OUTPUT,
    match_mode: MatchMode = "exact",
) -> SwitchMatch:
    """
    Picks the output branch for a switch node.

    The first matching case in declaration order wins; with no match the
    default output is taken.
    """
    default_output = default_output or DEFAULT_SWITCH_OUTPUT
    for index, raw in enumerate(cases):
        try:
            case = raw if isinstance(raw, SwitchCase) else SwitchCase.model_validate(raw)
        except ValidationError:
            logger.warning(f"Skipping malformed switch case at index {index}")
            continue
        if _case_matches(field_value, case, match_mode):
            return SwitchMatch(
                output=case.output or default_output,
                matched_case=case.value,
                matched_index=index,
                is_default=False,
            )
    return SwitchMatch(output=default_output, matched_case="default", matched_index=-1, is_default=True)


def route_switch(config: Mapping[str, Any], data: Any) -> SwitchMatch:
    """Routes `data` through a switch node config (`field`, `cases`, `defaultOutput`, `matchMode`)."""
    field = config.get("field")
    field_value = resolve_path(data, field) if field else data
    cases = config.get("cases") or []
    match_mode = config.get("matchMode") or "exact"
    return match_switch(field_value, cases, config.get("defaultOutput") or DEFAULT_SWITCH_OUTPUT, match_mode)
