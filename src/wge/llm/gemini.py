"""Gemini REST client for structured JSON predictions."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Generic, Literal, Optional, TypeVar, Union

import httpx
import orjson
from pydantic import BaseModel, ValidationError

from wge.config import Settings
from wge.utils.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

ServiceErrorKind = Literal["timeout", "quota", "http", "malformed", "unavailable"]


REPAIR_SUFFIX = (
    "\n\nIMPORTANT: Return ONLY a single JSON object. No markdown. No code fences. "
    "Do not add any extra keys. Ensure types and allowed values match the schema."
)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Validated model output."""

    payload: T
    latency_ms: int
    attempts: int


@dataclass(frozen=True)
class ServiceError:
    """The service produced no usable result."""

    kind: ServiceErrorKind
    message: str
    attempts: int = 0
    latency_ms: int = 0


StructuredResult = Union[Ok[T], ServiceError]


class MalformedOutputError(ValueError):
    """Model output could not be turned into the expected JSON object."""


def _extract_text_from_response(payload: dict[str, Any]) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        raise MalformedOutputError("Gemini response missing candidates")

    content = candidates[0].get("content") or {}
    parts = content.get("parts") or []
    texts: list[str] = []
    for part in parts:
        text = part.get("text")
        if isinstance(text, str) and text.strip():
            texts.append(text)
    if not texts:
        raise MalformedOutputError("Gemini response missing text parts")
    return "\n".join(texts).strip()


def _strip_code_fences(text: str) -> str:
    value = text.strip()
    if value.startswith("```"):
        lines = value.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].startswith("```"):
            lines = lines[:-1]
        value = "\n".join(lines).strip()
    return value


def _extract_json_string(text: str) -> str:
    candidate = _strip_code_fences(text)
    try:
        orjson.loads(candidate)
        return candidate
    except orjson.JSONDecodeError:
        pass

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start >= 0 and end > start:
        maybe = candidate[start : end + 1].strip()
        try:
            orjson.loads(maybe)
        except orjson.JSONDecodeError as exc:
            raise MalformedOutputError(f"Invalid JSON in model output: {exc}") from exc
        return maybe

    raise MalformedOutputError("Could not extract valid JSON from model output")


def _classify_error(exc: Exception) -> ServiceErrorKind:
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"
    if isinstance(exc, httpx.HTTPStatusError):
        return "quota" if exc.response.status_code == 429 else "http"
    if isinstance(exc, httpx.HTTPError):
        return "http"
    return "malformed"


@dataclass(frozen=True)
class GeminiResult:
    text: str
    latency_ms: int


class GeminiClient:
    """Minimal REST client for Gemini generateContent."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        if not self.settings.google_api_key:
            raise ValueError("GOOGLE_API_KEY must be set for Gemini predictions")
        self._transport = transport

    def _request(self, prompt: str) -> GeminiResult:
        url = (
            f"{self.settings.gemini_api_base_url}/models/"
            f"{self.settings.gemini_model_id}:generateContent"
        )
        params = {"key": self.settings.google_api_key}
        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.settings.gemini_temperature,
                "maxOutputTokens": self.settings.gemini_max_output_tokens,
                "responseMimeType": "application/json",
            },
        }

        start = time.time()
        with httpx.Client(
            timeout=self.settings.gemini_timeout_seconds, transport=self._transport
        ) as client:
            response = client.post(url, params=params, json=body)
            response.raise_for_status()
            payload = response.json()

        latency_ms = int((time.time() - start) * 1000)
        text = _extract_text_from_response(payload)
        return GeminiResult(text=text, latency_ms=latency_ms)

    def generate_structured(self, prompt: str, schema: type[T]) -> StructuredResult[T]:
        """Generate and validate structured JSON output.

        Malformed output is retried with a repair suffix. Quota errors are not
        retried. Every failure comes back as a `ServiceError` instead of raising.
        """
        total_latency = 0
        attempts = max(1, self.settings.llm_max_retries)
        last_error: ServiceError | None = None

        for attempt in range(1, attempts + 1):
            suffix = "" if attempt == 1 else REPAIR_SUFFIX
            try:
                result = self._request(prompt + suffix)
                total_latency += result.latency_ms
                json_str = _extract_json_string(result.text)
                parsed = schema.model_validate_json(json_str)
                return Ok(payload=parsed, latency_ms=total_latency, attempts=attempt)
            except (httpx.HTTPError, ValidationError, ValueError) as exc:
                kind = _classify_error(exc)
                last_error = ServiceError(
                    kind=kind,
                    message=str(exc),
                    attempts=attempt,
                    latency_ms=total_latency,
                )
                logger.warning(
                    "gemini.generate.failed kind=%s attempt=%s error=%s", kind, attempt, exc
                )
                if kind == "quota":
                    break
                if attempt < attempts:
                    time.sleep(self.settings.llm_sleep_seconds)

        assert last_error is not None
        return last_error
