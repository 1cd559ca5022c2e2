"""Turn raw completion text into a typed, shape-repaired model."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from career_ai.utils.json_parser import ExtractionError, extract_json

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ValidationFailure(ValueError):
    """Located output (or caller input) is semantically unusable. Never retried."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details


def extract(raw_text: str, model_cls: type[M]) -> M:
    """Locate JSON in ``raw_text`` and validate it as ``model_cls``.

    Missing containers are filled and out-of-range values are clamped by the
    model's field validators, so only a missing or non-object payload fails
    here as ``ExtractionError``. A payload that still cannot be validated
    raises ``ValidationFailure``.
    """
    data = extract_json(raw_text)
    if isinstance(data, list) and len(data) == 1 and isinstance(data[0], dict):
        data = data[0]
    if not isinstance(data, dict):
        raise ExtractionError(
            f"Expected a JSON object for {model_cls.__name__}, got {type(data).__name__}",
            raw_text,
        )
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        logger.warning("%s failed validation: %s", model_cls.__name__, exc)
        raise ValidationFailure(
            f"Response did not match the {model_cls.__name__} shape",
            errors=exc.errors(include_url=False, include_context=False),
        ) from exc
