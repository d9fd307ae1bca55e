# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

import json
import re
from typing import Any, Dict, List, Mapping, Optional

TEMPLATE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
FULL_TEMPLATE_PATTERN = re.compile(r"^\{\{([^}]+)\}\}$")
_INDEX_PATTERN = re.compile(r"^([^\[\]]*)((?:\[\d+\])+)$")


def find_references(value: Any) -> List[str]:
    """Returns every `{{ path }}` reference in a nested config value, in order of appearance."""
    found: List[str] = []
    _collect(value, found)
    return found


def _collect(value: Any, found: List[str]) -> None:
    if isinstance(value, str):
        for raw in TEMPLATE_PATTERN.findall(value):
            path = raw.strip()
            if path and path not in found:
                found.append(path)
    elif isinstance(value, Mapping):
        for v in value.values():
            _collect(v, found)
    elif isinstance(value, (list, tuple)):
        for v in value:
            _collect(v, found)


def _split(path: str) -> List[Any]:
    """Splits `a.items[0].b` into ['a', 'items', 0, 'b']."""
    keys: List[Any] = []
    for part in path.split("."):
        match = _INDEX_PATTERN.match(part)
        if match is None:
            keys.append(part)
            continue
        if match.group(1):
            keys.append(match.group(1))
        keys.extend(int(i) for i in re.findall(r"\[(\d+)\]", match.group(2)))
    return keys


def resolve_path(context: Any, path: str) -> Optional[Any]:
    """
    Resolves a dot-notation path against a nested context.

    Supports list indexing (`items[0]`). Returns None when any segment is missing.
    """
    current = context
    for key in _split(path):
        if current is None:
            return None
        if isinstance(key, int):
            if isinstance(current, (list, tuple)) and 0 <= key < len(current):
                current = current[key]
            else:
                return None
        elif isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, (list, tuple)) and key.isdigit():
            index = int(key)
            current = current[index] if index < len(current) else None
        else:
            return None
    return current


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def build_context(
    node_outputs: Mapping[str, Any], trigger: Mapping[str, Any], variables: Mapping[str, Any]
) -> Dict[str, Any]:
    """Builds the substitution context the execution service resolves templates against."""
    return {"nodes": dict(node_outputs), "trigger": dict(trigger), "variables": dict(variables)}


class VariableResolver:
    """
    Handles resolution of variables {{ path }} in configuration dictionaries.
    """

    def resolve(self, config: Dict[str, Any], context: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Recursively replaces {{ path }} with values from the context.
        """
        resolved = config.copy()
        return self._replace_value(resolved, context)  # type: ignore

    def _replace_value(self, val: Any, context: Mapping[str, Any]) -> Any:
        if isinstance(val, str):
            if "{{" not in val:
                return val

            # If the string is EXACTLY one template, return the raw value (e.g. dict/int)
            full = FULL_TEMPLATE_PATTERN.match(val)
            if full:
                value = resolve_path(context, full.group(1).strip())
                return val if value is None else value

            def _substitute(match: "re.Match[str]") -> str:
                value = resolve_path(context, match.group(1).strip())
                if value is None:
                    return match.group(0)
                return _to_text(value)

            return TEMPLATE_PATTERN.sub(_substitute, val)
        elif isinstance(val, dict):
            return {k: self._replace_value(v, context) for k, v in val.items()}
        elif isinstance(val, list):
            return [self._replace_value(v, context) for v in val]
        return val
