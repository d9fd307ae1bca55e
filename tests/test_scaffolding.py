# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from importlib.metadata import version

import networkx
import pydantic

import coreason_flow.core
import coreason_flow.editor
import coreason_flow.engine
import coreason_flow.events
import coreason_flow.infrastructure
import coreason_flow.lifecycle


def test_dependencies_installed() -> None:
    assert pydantic.__version__
    assert networkx.__version__
    assert version("loguru")
    assert version("redis")


def test_modules_importable() -> None:
    assert coreason_flow.core is not None
    assert coreason_flow.editor is not None
    assert coreason_flow.engine is not None
    assert coreason_flow.events is not None
    assert coreason_flow.infrastructure is not None
    assert coreason_flow.lifecycle is not None


def test_version() -> None:
    assert coreason_flow.__version__ == "0.1.0"
