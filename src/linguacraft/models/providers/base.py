from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Type, Union
from pydantic import BaseModel

from ...utils.media import MediaReference

#unified model errors
class ModelError(RuntimeError): ...
class ModelTimeout(ModelError): ...


@dataclass(frozen=True)
class SafetySetting:
    category: str #e.g. HARM_CATEGORY_HATE_SPEECH
    threshold: str #e.g. BLOCK_MEDIUM_AND_ABOVE


@dataclass(frozen=True)
class GenerationConfig:
    response_modalities: Optional[List[str]] = None #["AUDIO"] for speech output
    voice: Optional[str] = None #prebuilt voice name
    safety_settings: List[SafetySetting] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GenerationConfig":
        if not data:
            return cls()
        return cls(
            response_modalities=data.get("response_modalities"),
            voice=data.get("voice"),
            safety_settings=[SafetySetting(**s) for s in data.get("safety_settings") or []],
        )

    @property
    def wants_audio(self) -> bool:
        return any(m.upper() == "AUDIO" for m in self.response_modalities or [])


@dataclass(frozen=True)
class ChatRequest:
    model: str
    messages: List[Dict[str, Any]]
    params: Dict[str, Any] | None = None
    schema: Optional[Type[BaseModel]] = None #pydantic model -> json schema
    media: Optional[List[MediaReference]] = None #attached to the first user message
    generation: GenerationConfig = field(default_factory=GenerationConfig)

    @property
    def system_prompt(self) -> str:
        return "\n".join(m["content"] for m in self.messages if m.get("role") == "system" and m.get("content"))

    @property
    def user_prompt(self) -> str:
        return "\n".join(m["content"] for m in self.messages if m.get("role") == "user" and m.get("content"))


# Reply content parts
@dataclass(frozen=True)
class TextPart:
    text: str

@dataclass(frozen=True)
class MediaPart:
    mime_type: str
    data: bytes

    @property
    def data_uri(self) -> str:
        return MediaReference(self.mime_type, self.data).data_uri

ReplyPart = Union[TextPart, MediaPart]


class _NotFound:
    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"

NOT_FOUND = _NotFound()


@dataclass(frozen=True)
class ModelResponse:
    content: str
    raw: Any #provider-native response obj/dict
    meta: Dict[str, Any] #timings, token counts, model, created_at, etc.
    parsed: Optional[BaseModel] = None #populated if schema was provided
    parts: List[ReplyPart] = field(default_factory=list)
    finish_reason: Optional[str] = None #normalized to upper case, "STOP" on normal completion
    finish_message: Optional[str] = None #model's own explanation when it stopped early

    def find_media(self, prefix: str) -> Union[MediaPart, _NotFound]:
        for part in self.parts:
            if isinstance(part, MediaPart) and part.mime_type.startswith(prefix):
                return part
        return NOT_FOUND

    @property
    def stopped_normally(self) -> bool:
        return self.finish_reason is None or self.finish_reason == "STOP"


class ModelProvider(ABC):
    @abstractmethod
    def chat(self, req: ChatRequest) -> ModelResponse:
        raise NotImplementedError

    @abstractmethod
    def health_check(self) -> bool:
        raise NotImplementedError
