from __future__ import annotations
from typing import Any, Dict, List, Optional
import time
import httpx
from pydantic import ValidationError
from ollama import Client, ResponseError
from .base import ModelProvider, ChatRequest, ModelResponse, ModelError, ModelTimeout, TextPart


class OllamaProvider(ModelProvider):
    """Local text-only provider. Structured flows work; audio in or out does not."""

    def __init__(self, host: str = "http://localhost:11434", request_timeout_s: Optional[float] = None, keep_alive: str = "5m"):
        self.client = Client(host=host, timeout=request_timeout_s)
        self.keep_alive = keep_alive
        self.host = host
        self.request_timeout_s = request_timeout_s

    def chat(self, req: ChatRequest) -> ModelResponse:
        if req.media:
            raise ModelError("Ollama provider does not accept media input")
        if req.generation.wants_audio:
            raise ModelError("Ollama provider cannot produce audio output")

        options = dict(req.params or {})
        keep_alive = options.pop('keep_alive', self.keep_alive)
        json_format = req.schema.model_json_schema() if req.schema else None

        t0 = time.perf_counter()
        try:
            response = self.client.chat(
                model=req.model,
                messages=req.messages,
                options=options,
                format=json_format,
                keep_alive=keep_alive
            )
        except httpx.TimeoutException as e:
            raise ModelTimeout(f"Ollama timeout after {self.request_timeout_s}s: {e}") from e
        except ResponseError as e:
            raise ModelError(f"Ollama error ({e.status_code}): {e.error}") from e
        except Exception as e:
            raise ModelError(f"Ollama request failed: {e}") from e

        dt = time.perf_counter() - t0

        # The ollama client returns either a dict or a pydantic ChatResponse object
        raw_response_dict: Dict[str, Any] = {}
        if isinstance(response, dict):
            raw_response_dict = response
            content = (response.get('message') or {}).get('content', '') or ''
            model_name = response.get('model', req.model)
        elif hasattr(response, 'message') and hasattr(response.message, 'content'):
            content = response.message.content or ''
            model_name = getattr(response, 'model', req.model)
            try:
                raw_response_dict = response.__dict__
            except AttributeError:
                raw_response_dict = {}
        else:
            raise ModelError(f"Received unexpected response structure from Ollama: {response}")

        done_reason = raw_response_dict.get('done_reason')
        finish_reason = str(done_reason).upper() if isinstance(done_reason, str) else None

        meta = {"provider": "ollama", "model": model_name, "latency": dt}
        for key in ['total_duration', 'load_duration', 'prompt_eval_count', 'eval_count', 'eval_duration']:
            if key in raw_response_dict:
                meta[key] = raw_response_dict[key]

        parsed = None
        if req.schema and content:
            try:
                parsed = req.schema.model_validate_json(content)
            except ValidationError as ve:
                meta["validation_error"] = f"Failed to validate JSON: {ve}. Raw content: {content[:500]}"

        parts = [TextPart(text=content)] if content else []
        return ModelResponse(content=content, raw=response, meta=meta, parsed=parsed, parts=parts, finish_reason=finish_reason)

    def health_check(self) -> bool:
        try:
            self.client.list()
            return True
        except Exception:
            return False
