from typing import Any, Dict, Optional

from linguacraft.models.providers.base import ModelResponse
from .base import Flow
from .schemas import (
    LANGUAGES,
    AlternativeTranslationsInput,
    AlternativeTranslationsOutput,
    TranslateTextInput,
    TranslateTextOutput,
)
from .types import FlowDefinition


def language_variables(request) -> Dict[str, Any]:
    variables = request.model_dump()
    variables["source_language_name"] = LANGUAGES[request.source_language]
    variables["target_language_name"] = LANGUAGES[request.target_language]
    return variables


class TranslateTextFlow(Flow):
    definition = FlowDefinition(
        name="translate-text",
        input_shape=TranslateTextInput,
        output_shape=TranslateTextOutput,
        prompt_ref="translate/text@v1",
        task="translate",
    )

    def short_circuit(self, request: TranslateTextInput) -> Optional[TranslateTextOutput]:
        if not request.text.strip():
            return TranslateTextOutput()
        return None

    def variables(self, request: TranslateTextInput) -> Dict[str, Any]:
        return language_variables(request)


class AlternativeTranslationsFlow(Flow):
    definition = FlowDefinition(
        name="get-alternative-translations",
        input_shape=AlternativeTranslationsInput,
        output_shape=AlternativeTranslationsOutput,
        prompt_ref="translate/alternatives@v1",
        task="alternatives",
    )

    def short_circuit(self, request: AlternativeTranslationsInput) -> Optional[AlternativeTranslationsOutput]:
        if not request.source_text.strip():
            return AlternativeTranslationsOutput(alternatives=[])
        return None

    def variables(self, request: AlternativeTranslationsInput) -> Dict[str, Any]:
        return language_variables(request)

    def on_missing_reply(self, request: AlternativeTranslationsInput, response: ModelResponse) -> AlternativeTranslationsOutput:
        return AlternativeTranslationsOutput(alternatives=[])
