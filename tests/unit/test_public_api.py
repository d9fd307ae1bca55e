# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

import coreason_flow
from coreason_flow import (
    ConditionGroup,
    GraphStore,
    WorkflowEditor,
    catalog_for,
    compile_group,
    upstream,
)


def test_public_exports() -> None:
    for name in coreason_flow.__all__:
        assert hasattr(coreason_flow, name), name


def test_exports_are_usable() -> None:
    assert compile_group(ConditionGroup()) == "true"
    store = GraphStore()
    assert upstream("missing", store.nodes, store.edges) == []
    assert catalog_for("missing", [], [])
    assert WorkflowEditor is not None
