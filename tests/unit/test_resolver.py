# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import Any, Dict

import pytest

from coreason_flow.engine.resolver import VariableResolver, build_context, find_references, resolve_path


@pytest.fixture  # type: ignore
def context() -> Dict[str, Any]:
    return build_context(
        node_outputs={
            "Q": {"documents": [{"email": "a@example.com"}, {"email": "b@example.com"}], "count": 2},
            "T": {"data": {"name": "Ada", "active": True}},
        },
        trigger={"type": "form", "payload": {"formId": "f1"}},
        variables={"threshold": 10},
    )


def test_find_references_walks_nested_values() -> None:
    config = {
        "to": "{{nodes.T.data.email}}",
        "body": ["Hi {{ nodes.T.data.name }}", {"n": "{{variables.threshold}} and {{nodes.T.data.email}}"}],
        "retries": 3,
    }
    assert find_references(config) == ["nodes.T.data.email", "nodes.T.data.name", "variables.threshold"]


def test_resolve_path_with_indexes(context: Dict[str, Any]) -> None:
    assert resolve_path(context, "nodes.Q.documents[1].email") == "b@example.com"
    assert resolve_path(context, "nodes.Q.documents.0.email") == "a@example.com"
    assert resolve_path(context, "nodes.Q.documents[5].email") is None
    assert resolve_path(context, "nodes.Q.count.value") is None
    assert resolve_path(context, "missing.path") is None


def test_full_template_returns_raw_value(context: Dict[str, Any]) -> None:
    resolver = VariableResolver()
    resolved = resolver.resolve({"docs": "{{nodes.Q.documents}}", "n": "{{ nodes.Q.count }}"}, context)
    assert resolved["docs"] == context["nodes"]["Q"]["documents"]
    assert resolved["n"] == 2


def test_partial_template_is_stringified(context: Dict[str, Any]) -> None:
    resolver = VariableResolver()
    resolved = resolver.resolve(
        {
            "greeting": "Hello {{nodes.T.data.name}}, {{nodes.Q.count}} found",
            "flag": "active={{nodes.T.data.active}}",
            "payload": "payload: {{trigger.payload}}",
        },
        context,
    )
    assert resolved["greeting"] == "Hello Ada, 2 found"
    assert resolved["flag"] == "active=true"
    assert resolved["payload"] == 'payload: {"formId": "f1"}'


def test_unknown_references_are_left_intact(context: Dict[str, Any]) -> None:
    resolver = VariableResolver()
    resolved = resolver.resolve({"a": "{{nodes.X.out}}", "b": "x {{nodes.X.out}} y", "c": [1, None]}, context)
    assert resolved == {"a": "{{nodes.X.out}}", "b": "x {{nodes.X.out}} y", "c": [1, None]}
