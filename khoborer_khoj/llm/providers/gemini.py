"""Google Gemini model handle using the generateContent REST API."""

from __future__ import annotations

from typing import Any

from ..tracing import record_span_error, set_span_output, start_span
from .base import ModelHandle, ProviderError, SchemaT


class GeminiModel(ModelHandle):
    """Gemini-backed handle returning JSON constrained by a response schema."""

    def generate_object(self, prompt: str, schema: type[SchemaT]) -> SchemaT | None:
        payload = self._build_payload(prompt, schema.model_json_schema())
        with start_span(
            "gemini.generate_object",
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
                    f"{self.base_url}/v1beta/models/{self.model_id}:generateContent",
                    payload,
                    params={"key": self.api_key},
                )
                content = _extract_text(data)
                set_span_output(span, content)
                result = self._to_object(content, schema)
            except ProviderError as exc:
                record_span_error(span, exc)
                self._log_llm_response("provider_error", str(exc), prompt)
                raise
        self._log_llm_response("ok" if result is not None else "empty", content, prompt)
        return result

    def _build_payload(self, prompt: str, json_schema: dict[str, Any]) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.options.temperature,
                "maxOutputTokens": self.options.max_output_tokens,
                "responseMimeType": "application/json",
                "responseJsonSchema": json_schema,
            },
        }


def _extract_text(data: dict[str, Any]) -> str:
    """Join the text parts of the first candidate, preferring non-thought parts."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""

    if not isinstance(parts, list):
        return ""

    non_thought_chunks: list[str] = []
    all_chunks: list[str] = []
    for part in parts:
        if not isinstance(part, dict):
            continue
        text = part.get("text")
        if not text:
            continue
        chunk = str(text)
        all_chunks.append(chunk)
        if not part.get("thought"):
            non_thought_chunks.append(chunk)

    if non_thought_chunks:
        return "".join(non_thought_chunks)
    return "".join(all_chunks)
