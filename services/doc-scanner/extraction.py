"""JSON extraction from OCR text via an LLM provider.

Every provider sends the same anti-hallucination system prompt, parses the
model output into a dict, runs the hallucination detectors and scores the
result with the confidence calculator. Providers never retry; failures are
returned as ``Err`` values carrying a ``ScannerError``.
"""

import json
import logging
import re
import time
from typing import Any, Protocol

from confidence import ConfidenceCalculator
from config import settings
from context import RequestContext
from errors import (
    ConfigurationError,
    InvalidResponseError,
    JsonParseError,
    ScannerError,
)
from hallucination import HallucinationDetectors
from mistral_client import MistralClient
from models import ExtractionRequest, ExtractionResult
from prompts import SYSTEM_PROMPT, SYSTEM_PROMPT_UNSTRUCTURED, build_schema_prompt
from result import Err, Ok, Result
from workers_ai_client import WorkersAIClient

logger = logging.getLogger(__name__)

EXTRACTOR_TYPES = ("mistral", "cloudflare")

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)
_FENCE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_DANGLING_KEY = re.compile(r'[{,]\s*"[^"]*"$')


class JsonExtractor(Protocol):
    def extract(
        self, request: ExtractionRequest, ctx: RequestContext | None = None
    ) -> Result[ExtractionResult, ScannerError]:
        ...

    def close(self) -> None:
        ...


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def clean_json_response(raw: str) -> str:
    """Strip reasoning blocks, code fences and surrounding prose from model output."""
    cleaned = _THINK_BLOCK.sub("", raw or "").strip()

    match = _FENCE.search(cleaned)
    if match:
        cleaned = match.group(1).strip()
    else:
        cleaned = cleaned.replace("```json", "").replace("```", "").strip()

    start = cleaned.find("{")
    if start == -1:
        return cleaned
    end = cleaned.rfind("}")
    # A missing closing brace is left for repair_json.
    return cleaned[start:end + 1] if end > start else cleaned[start:]


def repair_json(text: str) -> str:
    """Best-effort fix-up of truncated JSON.

    Closes an unterminated string, quotes bare keys, fills a dangling key with
    null, drops trailing commas and closes open objects and arrays.
    """
    repaired = text.rstrip()

    closers: list[str] = []
    in_string = False
    escaped = False
    for ch in repaired:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            closers.append("}")
        elif ch == "[":
            closers.append("]")
        elif ch in "}]" and closers:
            closers.pop()

    if in_string:
        if escaped:
            repaired = repaired[:-1]
        repaired += '"'

    repaired = _BARE_KEY.sub(r'\1"\2":', repaired).rstrip()
    if repaired.endswith(":"):
        repaired += " null"
    elif closers and closers[-1] == "}" and _DANGLING_KEY.search(repaired):
        repaired += ": null"

    repaired = repaired.rstrip().rstrip(",")
    repaired += "".join(reversed(closers))
    return _TRAILING_COMMA.sub(r"\1", repaired)


def try_parse_json(raw: str) -> tuple[dict | None, bool]:
    """Parse a JSON object out of model output.

    Returns (object, repaired). ``repaired`` is True when the text only parsed
    after truncation repair.
    """
    cleaned = clean_json_response(raw)
    try:
        parsed = json.loads(cleaned)
        return (parsed if isinstance(parsed, dict) else None), False
    except json.JSONDecodeError:
        pass

    repaired = repair_json(cleaned)
    if repaired == cleaned:
        return None, False
    try:
        parsed = json.loads(repaired)
    except json.JSONDecodeError:
        return None, False
    return (parsed if isinstance(parsed, dict) else None), True


def _finalize(
    data: dict[str, Any],
    raw_response: Any,
    detectors: HallucinationDetectors,
    calculator: ConfidenceCalculator,
    log: logging.LoggerAdapter,
) -> ExtractionResult:
    detection = detectors.detect(data)
    confidence = calculator.calculate(raw_response, data)
    data["confidence"] = confidence
    log.info(
        "Extracted %d fields (suspicion=%d valid=%s confidence=%.2f): %s",
        len(data), detection.suspicion_score, detection.is_valid_input, confidence,
        ", ".join(sorted(data)),
    )
    return ExtractionResult(data=data, confidence=confidence)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class MistralJsonExtractor:
    """Schema-constrained extraction with Mistral chat completions."""

    name = "mistral"

    def __init__(
        self,
        client: MistralClient | None = None,
        detectors: HallucinationDetectors | None = None,
        calculator: ConfidenceCalculator | None = None,
    ):
        self._owns_client = client is None
        self._client = client or MistralClient()
        self._detectors = detectors or HallucinationDetectors()
        self._calculator = calculator or ConfidenceCalculator()

    def close(self):
        # A shared client is closed by whoever created it.
        if self._owns_client:
            self._client.close()

    def extract(
        self, request: ExtractionRequest, ctx: RequestContext | None = None
    ) -> Result[ExtractionResult, ScannerError]:
        ctx = ctx or RequestContext()
        log = ctx.logger(logger)
        start = time.monotonic()

        if request.json_schema is not None:
            response_format = {
                "type": "json_schema",
                "json_schema": {
                    "name": request.json_schema.name,
                    "schema": request.json_schema.definition,
                    "strict": request.json_schema.strict,
                },
            }
        else:
            response_format = {"type": "json_object"}

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": request.text},
        ]

        try:
            raw = self._client.chat(messages, response_format)
        except ScannerError as e:
            log.error("Mistral JSON extraction failed: %s", e)
            return Err(e)

        log.info("Mistral chat completed in %dms", int((time.monotonic() - start) * 1000))

        choices = raw.get("choices")
        if not isinstance(choices, list) or not choices:
            return Err(InvalidResponseError("Empty response from Mistral API"))
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            return Err(InvalidResponseError("Invalid response format from Mistral API"))

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            log.warning("Could not parse JSON from Mistral response: %s", content[:200])
            return Err(JsonParseError(f"Invalid JSON response: {e}", raw_content=content))
        if not isinstance(data, dict):
            return Err(InvalidResponseError("Mistral returned JSON that is not an object"))

        return Ok(_finalize(data, raw, self._detectors, self._calculator, log))


class CloudflareJsonExtractor:
    """Extraction with a Workers AI text model; the schema travels in the prompt."""

    name = "cloudflare"

    def __init__(
        self,
        client: WorkersAIClient | None = None,
        max_tokens: int | None = None,
        detectors: HallucinationDetectors | None = None,
        calculator: ConfidenceCalculator | None = None,
    ):
        self._client = client or WorkersAIClient()
        self._max_tokens = max_tokens if max_tokens is not None else settings.CLOUDFLARE_MAX_TOKENS
        self._detectors = detectors or HallucinationDetectors()
        self._calculator = calculator or ConfidenceCalculator()

    def close(self):
        self._client.close()

    def extract(
        self, request: ExtractionRequest, ctx: RequestContext | None = None
    ) -> Result[ExtractionResult, ScannerError]:
        ctx = ctx or RequestContext()
        log = ctx.logger(logger)
        start = time.monotonic()

        schema = request.json_schema.definition if request.json_schema is not None else None
        inputs: dict[str, Any] = {
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT_UNSTRUCTURED},
                {"role": "user", "content": build_schema_prompt(request.text, schema)},
            ],
            "max_tokens": self._max_tokens,
            "temperature": 0,
        }
        if schema is not None:
            inputs["response_format"] = {"type": "json_schema", "json_schema": schema}

        try:
            result = self._client.run(inputs)
        except ScannerError as e:
            log.error("Workers AI JSON extraction failed: %s", e)
            return Err(e)

        log.info("Workers AI run completed in %dms", int((time.monotonic() - start) * 1000))

        response = result.get("response")
        finish_reason = "stop"
        if isinstance(response, dict):
            data = response
        elif isinstance(response, str):
            data, repaired = try_parse_json(response)
            if data is None:
                log.warning("Could not parse JSON from Workers AI response: %s", response[:200])
                return Err(JsonParseError("Invalid JSON response after repair attempts", raw_content=response))
            if repaired:
                log.warning("Workers AI response was truncated; parsed after repair")
                finish_reason = "length"
        else:
            return Err(InvalidResponseError("Workers AI response has no text"))

        raw_response = {"choices": [{"finish_reason": finish_reason}], "usage": result.get("usage")}
        return Ok(_finalize(data, raw_response, self._detectors, self._calculator, log))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def _build(kind: str, mistral_client: MistralClient | None) -> JsonExtractor:
    if kind == "mistral":
        return MistralJsonExtractor(client=mistral_client)
    if kind == "cloudflare":
        return CloudflareJsonExtractor()
    raise ConfigurationError(f"Unknown JSON extractor type: {kind}")


def create_json_extractor(
    kind: str | None = None,
    fallback: str | None = None,
    mistral_client: MistralClient | None = None,
) -> JsonExtractor:
    """Build the configured JSON extractor, falling back when it cannot be set up."""
    kind = (kind or settings.JSON_EXTRACTOR_TYPE).strip().lower()
    fallback = (fallback if fallback is not None else settings.JSON_EXTRACTOR_FALLBACK).strip().lower()

    if kind not in EXTRACTOR_TYPES:
        raise ConfigurationError(f"Unknown JSON extractor type: {kind}")

    try:
        return _build(kind, mistral_client)
    except ConfigurationError as e:
        if not fallback or fallback == kind:
            raise
        logger.warning("%s JSON extractor not configured (%s), falling back to %s", kind, e, fallback)
        return _build(fallback, mistral_client)
