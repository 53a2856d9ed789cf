from __future__ import annotations
from typing import Dict, Any, Optional, List
import time
from os import getenv
import httpx
from pydantic import ValidationError

from google import genai
from google.genai import types, errors

from .base import ModelProvider, ChatRequest, ModelResponse, ModelError, ModelTimeout, TextPart, MediaPart, ReplyPart


JSON_TYPES = {
    "string": types.Type.STRING,
    "integer": types.Type.INTEGER,
    "number": types.Type.NUMBER,
    "boolean": types.Type.BOOLEAN,
    "array": types.Type.ARRAY,
    "object": types.Type.OBJECT,
}


def to_gemini_schema(json_schema: Dict[str, Any]) -> types.Schema:
    """
    Convert a flat pydantic JSON schema into a Gemini response schema.

    The Gemini API rejects `default` values, so defaults are dropped and every
    property is marked required; missing fields are filled in by the caller.
    """
    kind = json_schema.get("type", "string")
    if kind == "object":
        properties = {name: to_gemini_schema(sub) for name, sub in json_schema.get("properties", {}).items()}
        return types.Schema(
            type=types.Type.OBJECT,
            properties=properties,
            required=list(properties),
            property_ordering=list(properties),
        )
    if kind == "array":
        return types.Schema(
            type=types.Type.ARRAY,
            items=to_gemini_schema(json_schema.get("items") or {"type": "string"}),
            description=json_schema.get("description"),
        )
    return types.Schema(
        type=JSON_TYPES.get(kind, types.Type.STRING),
        description=json_schema.get("description"),
        enum=json_schema.get("enum"),
    )


class GeminiProvider(ModelProvider):
    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None, **kwargs):
        http_options = types.HttpOptions(timeout=int(timeout * 1000)) if timeout else None
        self.client = genai.Client(
            api_key=api_key or getenv("GEMINI_API_KEY") or getenv("GOOGLE_API_KEY"),
            http_options=http_options,
            **kwargs
        )
        self.timeout = timeout

    def _build_contents(self, req: ChatRequest) -> List[types.Content]:
        parts = [types.Part.from_text(text=req.user_prompt)]
        for media in req.media or []:
            parts.append(types.Part.from_bytes(data=media.data, mime_type=media.mime_type))
        return [types.Content(role="user", parts=parts)]

    def _build_config(self, req: ChatRequest) -> types.GenerateContentConfig:
        params = dict(req.params or {})
        config: Dict[str, Any] = {**params}

        if req.system_prompt:
            config["system_instruction"] = req.system_prompt

        if req.schema is not None:
            config["response_mime_type"] = "application/json"
            config["response_schema"] = to_gemini_schema(req.schema.model_json_schema())

        gen = req.generation
        if gen.response_modalities:
            config["response_modalities"] = [m.upper() for m in gen.response_modalities]
        if gen.voice:
            config["speech_config"] = types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=gen.voice)
                )
            )
        if gen.safety_settings:
            config["safety_settings"] = [
                types.SafetySetting(category=s.category, threshold=s.threshold)
                for s in gen.safety_settings
            ]
        return types.GenerateContentConfig(**config)

    def chat(self, req: ChatRequest) -> ModelResponse:
        contents = self._build_contents(req)
        config = self._build_config(req)

        t0 = time.perf_counter()
        try:
            response = self.client.models.generate_content(model=req.model, contents=contents, config=config)
        except httpx.TimeoutException as e:
            raise ModelTimeout(f"Gemini timeout: {e}") from e
        except errors.APIError as e:
            raise ModelError(f"Gemini API error ({e.code}): {e.message or e}") from e
        except Exception as e:
            raise ModelError(f"Gemini provider error: {e}") from e
        dt = time.perf_counter() - t0

        parts: List[ReplyPart] = []
        finish_reason = None
        finish_message = None
        candidates = getattr(response, "candidates", None) or []
        if candidates:
            candidate = candidates[0]
            if candidate.finish_reason is not None:
                finish_reason = str(getattr(candidate.finish_reason, "value", candidate.finish_reason)).upper()
            finish_message = getattr(candidate, "finish_message", None)
            content_parts = candidate.content.parts if candidate.content and candidate.content.parts else []
            for part in content_parts:
                if part.inline_data is not None and part.inline_data.data:
                    parts.append(MediaPart(mime_type=part.inline_data.mime_type or "application/octet-stream", data=part.inline_data.data))
                elif part.text:
                    parts.append(TextPart(text=part.text))

        content = "".join(p.text for p in parts if isinstance(p, TextPart))

        meta = {"provider": "gemini", "model": req.model, "latency": dt}
        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            meta["usage"] = usage.model_dump(exclude_none=True)
        if finish_reason:
            meta["finish_reason"] = finish_reason
        prompt_feedback = getattr(response, "prompt_feedback", None)
        if prompt_feedback is not None and prompt_feedback.block_reason:
            meta["block_reason"] = str(prompt_feedback.block_reason)

        parsed = None
        if req.schema is not None and content:
            try:
                parsed = req.schema.model_validate_json(content)
            except ValidationError as ve:
                meta["validation_error"] = str(ve)

        return ModelResponse(
            content=content,
            raw=response,
            meta=meta,
            parsed=parsed,
            parts=parts,
            finish_reason=finish_reason,
            finish_message=finish_message,
        )

    def health_check(self) -> bool:
        try:
            next(iter(self.client.models.list()), None)
            return True
        except Exception:
            return False
