"""Provider identifiers and the model-handle interface used by the extractor."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
import json
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ...utils.logging import log_event, redact_text, truncate_text


class Provider(str, Enum):
    """Closed set of model-serving backends."""

    GOOGLE = "google"
    GROQ = "groq"
    CEREBRAS = "cerebras"

    def __str__(self) -> str:
        return self.value


class ProviderError(RuntimeError):
    """A single model call failed (HTTP, transport, malformed or invalid output)."""

    def __init__(
        self,
        message: str,
        provider: Provider,
        model: str,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


@dataclass
class HandleOptions:
    """Per-request settings shared by every provider handle.

    Attributes:
        timeout_seconds: HTTP timeout for one model call
        trust_env: Whether to respect system proxy settings
        temperature: Sampling temperature
        max_output_tokens: Upper bound on generated tokens
        transport: Optional httpx transport (tests inject a MockTransport)
        llm_logger: Optional logger receiving prompt/response payloads
        llm_log_detail: "response_only" or "prompt_response"
        llm_log_redaction: Redaction mode applied to logged payloads
    """

    timeout_seconds: float = 60.0
    trust_env: bool = True
    temperature: float = 0.1
    max_output_tokens: int = 4096
    transport: httpx.BaseTransport | None = None
    llm_logger: logging.Logger | None = None
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls"


SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ModelHandle(ABC):
    """A callable model bound to one provider, model id and credential."""

    def __init__(
        self,
        provider: Provider,
        model_id: str,
        api_key: str,
        base_url: str,
        options: HandleOptions | None = None,
    ):
        if not api_key:
            raise ValueError(f"Missing API key for provider {provider}")
        self.provider = provider
        self.model_id = model_id
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.options = options or HandleOptions()

    @abstractmethod
    def generate_object(self, prompt: str, schema: type[SchemaT]) -> SchemaT | None:
        """Ask the model for an object conforming to `schema`.

        Returns:
            The validated object, or None if the model returned no content.

        Raises:
            ProviderError: the call failed or the output did not match the schema.
        """
        raise NotImplementedError

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.options.timeout_seconds,
            trust_env=self.options.trust_env,
            transport=self.options.transport,
        )

    def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            with self._client() as client:
                resp = client.post(url, json=payload, headers=headers, params=params)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            body = truncate_text(exc.response.text, 500)
            raise ProviderError(
                f"HTTP {exc.response.status_code} from {self.provider}: {body}",
                self.provider,
                self.model_id,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"{type(exc).__name__} calling {self.provider}: {exc}",
                self.provider,
                self.model_id,
            ) from exc
        except ValueError as exc:
            raise ProviderError(
                f"Non-JSON response from {self.provider}: {exc}",
                self.provider,
                self.model_id,
            ) from exc

    def _to_object(self, content: str, schema: type[SchemaT]) -> SchemaT | None:
        if not content.strip():
            return None
        try:
            obj = parse_json_response(content)
        except json.JSONDecodeError as exc:
            raise ProviderError(
                f"Unparseable output from {self.provider}: {exc.msg}",
                self.provider,
                self.model_id,
            ) from exc
        if not obj:
            return None
        try:
            return schema.model_validate(obj)
        except ValidationError as exc:
            raise ProviderError(
                f"Output from {self.provider} does not match {schema.__name__}: "
                f"{exc.error_count()} error(s)",
                self.provider,
                self.model_id,
            ) from exc

    def _log_llm_response(self, status: str, content: str, prompt: str) -> None:
        logger = self.options.llm_logger
        if logger is None:
            return
        redaction = self.options.llm_log_redaction
        payload = {
            "event": "llm_generate_object",
            "status": status,
            "provider": str(self.provider),
            "model": self.model_id,
            "raw_response": truncate_text(redact_text(content, redaction)),
        }
        if self.options.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        log_event(logger, "LLM response", **payload)


def parse_json_response(content: str) -> Any:
    if not content:
        raise json.JSONDecodeError("Empty content", content or "", 0)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        extracted = _extract_json_snippet(content)
        return json.loads(extracted)


def _extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```") and "json" in line.lower():
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None
