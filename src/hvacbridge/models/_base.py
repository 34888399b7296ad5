"""Base model shared by hvacbridge value types.

Every model is frozen: values crossing thread or task boundaries
(stream updates, state snapshots, retry requests) are never mutated in
place, only replaced.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class HvacBaseModel(BaseModel):
    """Frozen pydantic base for hvacbridge models."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
    )
