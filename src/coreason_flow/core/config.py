# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

import os
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HISTORY_LIMIT = 50


class EditorConfig(BaseModel):
    """
    Tunables for an editor session.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=1)
    default_source_handle: str = "output"
    default_target_handle: str = "input"
    paste_offset: Tuple[float, float] = (50.0, 50.0)

    @classmethod
    def from_env(cls) -> "EditorConfig":
        """Builds the config from COREASON_FLOW_* environment variables."""
        raw_limit = os.getenv("COREASON_FLOW_HISTORY_LIMIT")
        history_limit = DEFAULT_HISTORY_LIMIT
        if raw_limit:
            try:
                history_limit = max(1, int(raw_limit))
            except ValueError:
                history_limit = DEFAULT_HISTORY_LIMIT

        return cls(history_limit=history_limit)
