"""Model handle for OpenAI-compatible chat completion APIs (Groq, Cerebras)."""

from __future__ import annotations

from typing import Any

from ..tracing import record_span_error, set_span_output, start_span
from .base import ModelHandle, ProviderError, SchemaT


class OpenAICompatibleModel(ModelHandle):
    """Chat-completions handle requesting a `json_schema` response format."""

    def generate_object(self, prompt: str, schema: type[SchemaT]) -> SchemaT | None:
        payload = self._build_payload(prompt, schema.__name__, schema.model_json_schema())
        with start_span(
            f"{self.provider}.generate_object",
            kind="llm",
            input_value=prompt,
            attributes={
                "llm.provider": str(self.provider),
                "llm.model": self.model_id,
                "schema": schema.__name__,
            },
        ) as span:
            try:
                data = self._post_json(
                    f"{self.base_url}/chat/completions",
                    payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                content = _read_message(data)
                set_span_output(span, content)
                result = self._to_object(content, schema)
            except ProviderError as exc:
                record_span_error(span, exc)
                self._log_llm_response("provider_error", str(exc), prompt)
                raise
        self._log_llm_response("ok" if result is not None else "empty", content, prompt)
        return result

    def _build_payload(
        self,
        prompt: str,
        schema_name: str,
        json_schema: dict[str, Any],
    ) -> dict[str, Any]:
        return {
            "model": self.model_id,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.options.temperature,
            "max_completion_tokens": self.options.max_output_tokens,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": json_schema},
            },
        }


def _read_message(response: dict[str, Any]) -> str:
    choices = response.get("choices") or []
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    return message.get("content") or ""
