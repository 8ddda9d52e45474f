"""Extraction confidence from LLM response metadata and the extracted JSON.

The score blends three signals: whether the model finished cleanly, whether
the output has any structure, and the model's self-reported confidence.
Input flagged as invalid is penalized and capped.
"""

import logging
from dataclasses import dataclass
from typing import Any

from config import settings

logger = logging.getLogger(__name__)

STOP_REASON = "stop"
TRUNCATION_REASONS = frozenset({"length", "model_length", "max_tokens"})

CLEAN_COMPLETION = 1.0
TRUNCATED_COMPLETION = 0.3
UNKNOWN_COMPLETION = 0.5

STRUCTURED = 0.9
UNSTRUCTURED = 0.3


@dataclass(frozen=True)
class ConfidenceWeights:
    finish: float = 0.6
    structure: float = 0.2
    model: float = 0.2
    invalid_multiplier: float = 0.3
    invalid_cap: float = 0.3

    @classmethod
    def from_settings(cls) -> "ConfidenceWeights":
        return cls(
            finish=settings.CONFIDENCE_FINISH_WEIGHT,
            structure=settings.CONFIDENCE_STRUCTURE_WEIGHT,
            model=settings.CONFIDENCE_MODEL_WEIGHT,
            invalid_multiplier=settings.CONFIDENCE_INVALID_MULTIPLIER,
            invalid_cap=settings.HALLUCINATION_CONFIDENCE_CAP,
        )


def finish_reason_of(raw_response: Any) -> str | None:
    """Pull the first choice's finish reason out of a chat-completion payload."""
    if not isinstance(raw_response, dict):
        return None
    choices = raw_response.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    reason = choices[0].get("finish_reason", choices[0].get("finishReason"))
    return reason if isinstance(reason, str) else None


class ConfidenceCalculator:
    """Scores an extraction in [0, 1]. Never raises."""

    def __init__(self, weights: ConfidenceWeights | None = None):
        self._weights = weights or ConfidenceWeights.from_settings()

    @property
    def weights(self) -> ConfidenceWeights:
        return self._weights

    def calculate(self, raw_response: Any, extracted: Any) -> float:
        w = self._weights
        fields = extracted if isinstance(extracted, dict) else {}

        completion = self._completion_score(finish_reason_of(raw_response))
        structure = STRUCTURED if fields else UNSTRUCTURED
        score = completion * w.finish + structure * w.structure

        invalid = fields.get("isValidInput") is False
        if invalid:
            score *= w.invalid_multiplier

        model_confidence = fields.get("confidence")
        if (
            isinstance(model_confidence, (int, float))
            and not isinstance(model_confidence, bool)
            and 0 <= model_confidence <= 1
        ):
            score = score * (1 - w.model) + model_confidence * w.model

        if invalid:
            score = min(score, w.invalid_cap)

        score = round(min(max(score, 0.0), 1.0), 2)
        logger.debug(
            "Confidence %.2f (completion=%.1f structure=%.1f invalid=%s)",
            score, completion, structure, invalid,
        )
        return score

    @staticmethod
    def _completion_score(reason: str | None) -> float:
        if reason == STOP_REASON:
            return CLEAN_COMPLETION
        if reason in TRUNCATION_REASONS:
            return TRUNCATED_COMPLETION
        return UNKNOWN_COMPLETION
