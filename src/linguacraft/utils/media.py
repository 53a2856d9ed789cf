from __future__ import annotations
from dataclasses import dataclass
import base64
import binascii
import re

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+(?:;[\w.+-]+=[\w.+-]+)*);base64,(?P<data>[A-Za-z0-9+/=\s]*)$")


@dataclass(frozen=True)
class MediaReference:
    mime_type: str
    data: bytes

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.data, self.mime_type)

    @property
    def is_empty(self) -> bool:
        return not self.data


def parse_data_uri(uri: str) -> MediaReference:
    match = DATA_URI_PATTERN.match(uri or "")
    if not match:
        raise ValueError("Expected a data URI of the form 'data:<mimetype>;base64,<encoded_data>'")
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 payload in data URI: {e}")
    return MediaReference(mime_type=match.group("mime"), data=data)


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


def audio_format(mime_type: str) -> str:
    """Short audio format name ("wav", "mp3") from a mime type like audio/x-wav or audio/mpeg"""
    subtype = mime_type.split("/", 1)[-1].split(";", 1)[0].lower()
    if subtype in ("mpeg", "mp3"):
        return "mp3"
    if subtype in ("wav", "x-wav", "wave", "vnd.wave"):
        return "wav"
    return subtype
