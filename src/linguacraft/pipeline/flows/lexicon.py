from typing import Any, Dict, Optional
import re

from linguacraft.models.providers.base import ModelResponse
from .base import Flow
from .schemas import LANGUAGES, WordDetailsInput, WordDetailsOutput
from .types import FlowDefinition

WORD_PUNCTUATION = re.compile(r'[.,!?;:"“”（）]')

NO_WORD_MEANING = "No word provided or word is only punctuation."
NOT_FOUND_MEANING = "Could not retrieve details for this word."


def clean_word(word: str) -> str:
    return WORD_PUNCTUATION.sub("", word).strip().lower()


class WordDetailsFlow(Flow):
    definition = FlowDefinition(
        name="get-word-details",
        input_shape=WordDetailsInput,
        output_shape=WordDetailsOutput,
        prompt_ref="lexicon/word_details@v1",
        task="word_details",
    )
    non_empty = ("defined_word",)

    def short_circuit(self, request: WordDetailsInput) -> Optional[WordDetailsOutput]:
        if not clean_word(request.word):
            return WordDetailsOutput(
                defined_word=request.word,
                type="",
                meaning=NO_WORD_MEANING,
                synonyms=[],
                antonyms=[],
            )
        return None

    def prepare(self, request: WordDetailsInput) -> WordDetailsInput:
        return request.model_copy(update={"word": clean_word(request.word)})

    def variables(self, request: WordDetailsInput) -> Dict[str, Any]:
        return {**request.model_dump(), "language_name": LANGUAGES[request.language]}

    def fallbacks(self, request: WordDetailsInput) -> Dict[str, Any]:
        # request.word is already cleaned by prepare()
        return {"defined_word": request.word}

    def on_missing_reply(self, request: WordDetailsInput, response: ModelResponse) -> WordDetailsOutput:
        return WordDetailsOutput(defined_word=request.word, meaning=NOT_FOUND_MEANING)
