from __future__ import annotations
from functools import lru_cache
from typing import Any, Dict, Iterable, Mapping, Optional, Type, TypeVar, Union
import json
import logging

from pydantic import BaseModel, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_MISSING = object()


@lru_cache(maxsize=None)
def _adapter(shape: Type[BaseModel], name: str) -> TypeAdapter:
    return TypeAdapter(shape.model_fields[name].annotation)


def reply_to_mapping(reply: Union[BaseModel, Mapping[str, Any], str, None]) -> Optional[Dict[str, Any]]:
    """Coerce a raw model reply into a plain dict, or None if nothing usable came back"""
    if reply is None:
        return None
    if isinstance(reply, BaseModel):
        return reply.model_dump(by_alias=True)
    if isinstance(reply, str):
        text = reply.strip()
        if not text:
            return None
        try:
            reply = json.loads(text)
        except json.JSONDecodeError:
            return None
    if isinstance(reply, Mapping):
        return dict(reply)
    return None


def normalize(shape: Type[T], reply: Union[BaseModel, Mapping[str, Any], str, None], fallbacks: Optional[Mapping[str, Any]] = None, non_empty: Iterable[str] = ()) -> T:
    """
    Map a raw reply onto shape, one field at a time.

    A field keeps the reply's value when it is present and strictly valid for the
    field's type. Otherwise it takes fallbacks[name], or the field's own default.
    Fields listed in non_empty also fall back when the reply gives an empty string.
    """
    data = reply_to_mapping(reply) or {}
    fallbacks = fallbacks or {}
    non_empty = set(non_empty)

    values: Dict[str, Any] = {}
    for name, info in shape.model_fields.items():
        value = data.get(info.alias or name, data.get(name, _MISSING))
        if value is not _MISSING and value is not None:
            try:
                value = _adapter(shape, name).validate_python(value, strict=True)
            except ValidationError:
                logger.debug(f"{shape.__name__}.{name}: discarding mistyped value {value!r}")
                value = _MISSING
        else:
            value = _MISSING

        if value is not _MISSING and name in non_empty and isinstance(value, str) and not value.strip():
            value = _MISSING

        if value is _MISSING:
            if name in fallbacks:
                value = fallbacks[name]
            else:
                value = info.get_default(call_default_factory=True)
        values[name] = value

    return shape.model_validate(values)
