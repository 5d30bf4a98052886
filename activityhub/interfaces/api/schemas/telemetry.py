"""Pydantic schema for the telemetry endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TelemetryRead(BaseModel):
    since: int = Field(..., description="Time counting started on this node (ms)")
    routing: dict[str, int]
    collection: dict[str, int]
    effects: dict[str, int] = Field(..., description="Side effect dispatch outcomes")


__all__ = ["TelemetryRead"]
