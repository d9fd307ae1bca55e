# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from coreason_flow.core.models import WorkflowNode
from coreason_flow.core.node_types import get_spec, input_handles, is_known_type, output_handles, validate_config


def test_triggers_have_no_inputs() -> None:
    node = WorkflowNode(id="T", type="webhook-trigger")
    assert input_handles(node) == ()
    assert output_handles(node) == ("output",)
    assert get_spec("webhook-trigger").is_trigger


def test_unknown_type_is_permissive() -> None:
    assert not is_known_type("my-plugin")
    spec = get_spec("my-plugin")
    assert spec.category == "custom"
    assert spec.inputs == ("input",) and spec.outputs == ("output",)


def test_switch_handles_come_from_config() -> None:
    node = WorkflowNode(
        id="S",
        type="switch",
        config={"cases": [{"value": 1, "output": "one"}, {"value": 2, "output": "one"}, {"value": 3}, "bad"]},
    )
    assert output_handles(node) == ("one", "default")

    named = node.model_copy(update={"config": {"cases": [], "defaultOutput": "else"}})
    assert output_handles(named) == ("else",)


def test_validate_config() -> None:
    assert validate_config("delay", {"duration": 5, "unit": "seconds"}) == []
    assert validate_config("delay", {"duration": "{{variables.wait}}"}) == []
    assert validate_config("delay", {"duration": None, "extra": 1}) == []

    issues = validate_config("delay", {"duration": "five", "unit": 3})
    assert issues == [
        "Field 'duration' of delay expects number, got string",
        "Field 'unit' of delay expects string, got number",
    ]
    assert validate_config("loop", {"items": [1, 2]}) == []
