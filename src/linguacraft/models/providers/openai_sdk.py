from __future__ import annotations
from typing import Dict, Any, Optional, List
import base64
import time
from os import getenv
from pydantic import ValidationError

from openai import OpenAI
from openai import APIError, APITimeoutError

from .base import ModelProvider, ChatRequest, ModelResponse, ModelError, ModelTimeout, TextPart, MediaPart, ReplyPart
from ...utils.media import MediaReference, audio_format

# chat completions finish reasons -> the STOP/MAX_TOKENS/SAFETY vocabulary used by ModelResponse
FINISH_REASONS = {"stop": "STOP", "length": "MAX_TOKENS", "content_filter": "SAFETY", "tool_calls": "STOP"}


class OpenAIProvider(ModelProvider):
    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, default_headers: Optional[Dict[str, str]] = None, timeout: float = 60.0, audio_format: str = "wav", **kwargs):
        self.client = OpenAI(
            base_url=base_url,
            api_key=api_key or getenv("OPENAI_API_KEY"),
            default_headers=default_headers or {},
            timeout=timeout,
            max_retries=0,
            **kwargs
        )
        self.base_url = base_url
        self.timeout = timeout
        self.audio_format = audio_format

    def _format_messages(self, messages: List[Dict[str, Any]], media: List[MediaReference]) -> List[Dict[str, Any]]:
        """Attach media to the first user message - converts it to content array format"""
        if not media:
            return messages

        media_contents = []
        for item in media:
            if item.mime_type.startswith("audio/"):
                media_contents.append({
                    "type": "input_audio",
                    "input_audio": {"data": item.base64, "format": audio_format(item.mime_type)}
                })
            elif item.mime_type.startswith("image/"):
                media_contents.append({
                    "type": "image_url",
                    "image_url": {"url": item.data_uri, "detail": "high"}
                })
            else:
                raise ModelError(f"OpenAI provider cannot attach media of type {item.mime_type}")

        processed_messages = []
        media_added = False
        for msg in messages:
            if msg.get("role") == "user" and not media_added:
                processed_msg = msg.copy()
                content_array = [{"type": "text", "text": msg.get("content", "")}]
                content_array.extend(media_contents)
                processed_msg["content"] = content_array
                processed_messages.append(processed_msg)
                media_added = True
            else:
                processed_messages.append(msg)

        return processed_messages

    def chat(self, req: ChatRequest) -> ModelResponse:
        params = dict(req.params or {})

        completion_params = {
            "model": req.model,
            "messages": self._format_messages(req.messages, req.media or []),
            **params
        }

        if req.schema is not None:
            completion_params["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "response_schema",
                    "schema": req.schema.model_json_schema()
                }
            }

        if req.generation.wants_audio:
            completion_params["modalities"] = ["text", "audio"]
            completion_params["audio"] = {"voice": req.generation.voice or "alloy", "format": self.audio_format}

        t0 = time.perf_counter()
        try:
            response = self.client.chat.completions.create(**completion_params)
        except APITimeoutError as e:
            raise ModelTimeout(f"OpenAI timeout: {e}") from e
        except APIError as e:
            raise ModelError(f"OpenAI API error: {e}") from e
        except Exception as e:
            raise ModelError(f"OpenAI provider error: {e}") from e

        dt = time.perf_counter() - t0

        try:
            choice = response.choices[0]
            message = choice.message
        except (IndexError, AttributeError) as e:
            raise ModelError(f"Invalid response structure from OpenAI API: {e}") from e

        content = message.content or ""
        parts: List[ReplyPart] = []
        if content:
            parts.append(TextPart(text=content))
        audio = getattr(message, "audio", None)
        if audio is not None and getattr(audio, "data", None):
            parts.append(MediaPart(mime_type=f"audio/{self.audio_format}", data=base64.b64decode(audio.data)))
            if not content and getattr(audio, "transcript", None):
                content = audio.transcript

        finish_reason = None
        if getattr(choice, "finish_reason", None):
            finish_reason = FINISH_REASONS.get(choice.finish_reason, str(choice.finish_reason).upper())

        meta = {
            "provider": "openai",
            "model": getattr(response, 'model', req.model),
            "latency": dt,
            "base_url": self.base_url or "https://api.openai.com/v1",
            "timeout": self.timeout,
            "finish_reason": finish_reason,
        }
        if getattr(response, 'usage', None):
            meta["usage"] = response.usage.model_dump()
        if hasattr(response, 'id'):
            meta["id"] = response.id

        parsed = None
        if req.schema is not None and content:
            try:
                parsed = req.schema.model_validate_json(content)
            except ValidationError as ve:
                meta["validation_error"] = str(ve)

        finish_message = getattr(message, "refusal", None)
        return ModelResponse(content=content, raw=response, meta=meta, parsed=parsed, parts=parts, finish_reason=finish_reason, finish_message=finish_message)

    def health_check(self) -> bool:
        """SYNCHRONOUS health check - blocks until complete"""
        try:
            _ = self.client.models.list()
            return True
        except Exception:
            return False
