"""
Input and output shapes for every flow.

Field names are snake_case in Python and camelCase on the wire
(``source_language`` <-> ``sourceLanguage``). Every output field carries a
default, which is the fallback the normalizer substitutes when a model
reply leaves it out.
"""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ...utils.media import parse_data_uri

LanguageCode = Literal["en", "en-US", "vi"]
SpeechLanguageCode = Literal["en", "en-US", "vi", "ko", "es", "fr", "de", "ja"]

LANGUAGES = {
    "en": "English",
    "en-US": "English (US)",
    "vi": "Vietnamese",
}

MAX_SPEECH_CHARS = 1000
DEFAULT_ALTERNATIVES = 3


class FlowModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# translate-text
class TranslateTextInput(FlowModel):
    text: str = Field(..., description="The text to translate.")
    source_language: LanguageCode = Field(..., description="The source language of the text.")
    target_language: LanguageCode = Field(..., description="The target language for the translation.")

class TranslateTextOutput(FlowModel):
    translated_text: str = Field("", description="The translated text.")


# get-alternative-translations
class AlternativeTranslationsInput(FlowModel):
    source_text: str = Field(..., description="The original text to translate.")
    source_language: LanguageCode
    target_language: LanguageCode
    count: int = Field(DEFAULT_ALTERNATIVES, ge=1, strict=True, description="The desired number of alternative translations.")

class AlternativeTranslationsOutput(FlowModel):
    alternatives: List[str] = Field(default_factory=list, description="A list of alternative translations.")


# suggest-correction
class SuggestCorrectionInput(FlowModel):
    text: str = Field(..., description="The text to check for corrections.")
    language: LanguageCode

class SuggestCorrectionOutput(FlowModel):
    corrected_text: str = Field("", description="The corrected text, the same as the input if nothing needed fixing.")


# enhance-text
class EnhanceTextInput(FlowModel):
    text: str = Field(..., description="The text to enhance.")
    language: LanguageCode
    instruction: str = Field(..., description="How to enhance the text.")

class EnhanceTextOutput(FlowModel):
    enhanced_text: str = Field("", description="The enhanced text.")


# get-word-details
class WordDetailsInput(FlowModel):
    word: str = Field(..., description="The word to get details for.")
    language: LanguageCode

class WordDetailsOutput(FlowModel):
    defined_word: str = Field("", description="The word the details describe, possibly its base form.")
    type: str = Field("", description="Grammatical type (noun, verb, ...). Empty if not applicable.")
    meaning: str = Field("", description="A concise definition. Empty if not found.")
    synonyms: List[str] = Field(default_factory=list, description="Common synonyms. Can be empty.")
    antonyms: List[str] = Field(default_factory=list, description="Common antonyms. Can be empty.")


# speech-to-text
class SpeechToTextInput(FlowModel):
    audio_data_uri: str = Field(..., description="Audio as 'data:<mimetype>;base64,<encoded_data>'.")
    source_language: LanguageCode
    target_language: LanguageCode

    @field_validator("audio_data_uri")
    @classmethod
    def check_data_uri(cls, value: str) -> str:
        parse_data_uri(value) #raises ValueError on a bad shape or undecodable payload
        return value

class SpeechToTextOutput(FlowModel):
    transcription: str = Field("", description="The transcribed text.")
    translation: str = Field("", description="The translated text, equal to the transcription when no translation is needed.")


# text-to-speech
class TextToSpeechInput(FlowModel):
    text: str = Field(..., min_length=1, max_length=MAX_SPEECH_CHARS, description="The text to be converted to speech.")
    language: SpeechLanguageCode

    @field_validator("text")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Input text cannot be empty.")
        return value

class TextToSpeechOutput(FlowModel):
    audio_data_uri: str = Field("", description="The synthesized audio as a base64 data URI.")
