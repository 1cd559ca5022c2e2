"""Usage logging data models."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class UsageLog(BaseModel):
    """One completion-service call, successful or not."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=datetime.now)
    operation: str  # "resume_parse" | "resume_tailor" | "resume_analysis" | ...
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost_usd: float = 0.0
    elapsed_seconds: float = 0.0
    success: bool = True
    error_category: str | None = None
    error_message: str | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens
