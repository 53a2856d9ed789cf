from typing import Any, Dict, Optional
import logging

from linguacraft.models.providers.base import ModelResponse
from .base import Flow
from .normalizer import normalize
from .schemas import LANGUAGES, EnhanceTextInput, EnhanceTextOutput, SuggestCorrectionInput, SuggestCorrectionOutput
from .types import FlowDefinition

logger = logging.getLogger(__name__)


class SuggestCorrectionFlow(Flow):
    definition = FlowDefinition(
        name="suggest-correction",
        input_shape=SuggestCorrectionInput,
        output_shape=SuggestCorrectionOutput,
        prompt_ref="edit/correct@v1",
        task="correct",
    )

    def short_circuit(self, request: SuggestCorrectionInput) -> Optional[SuggestCorrectionOutput]:
        if not request.text.strip():
            return SuggestCorrectionOutput(corrected_text="")
        return None

    def variables(self, request: SuggestCorrectionInput) -> Dict[str, Any]:
        return {**request.model_dump(), "language_name": LANGUAGES[request.language]}

    def fallbacks(self, request: SuggestCorrectionInput) -> Dict[str, Any]:
        return {"corrected_text": request.text}

    def on_missing_reply(self, request: SuggestCorrectionInput, response: ModelResponse) -> SuggestCorrectionOutput:
        return SuggestCorrectionOutput(corrected_text=request.text)


class EnhanceTextFlow(Flow):
    """
    Rewrites text according to a free-text instruction.

    When the structured call yields no usable text, a second unstructured call
    (task "enhance_freeform") is tried before falling back to the original text.
    """

    definition = FlowDefinition(
        name="enhance-text",
        input_shape=EnhanceTextInput,
        output_shape=EnhanceTextOutput,
        prompt_ref="edit/enhance@v1",
        task="enhance",
    )
    freeform_task = "enhance_freeform"

    def short_circuit(self, request: EnhanceTextInput) -> Optional[EnhanceTextOutput]:
        if not request.text.strip() or not request.instruction.strip():
            return EnhanceTextOutput(enhanced_text=request.text)
        return None

    def variables(self, request: EnhanceTextInput) -> Dict[str, Any]:
        return {**request.model_dump(), "language_name": LANGUAGES[request.language]}

    def interpret(self, request: EnhanceTextInput, response: ModelResponse) -> EnhanceTextOutput:
        reply = response.parsed if response.parsed is not None else response.content
        enhanced = normalize(EnhanceTextOutput, reply).enhanced_text.strip()
        if enhanced:
            return EnhanceTextOutput(enhanced_text=enhanced)

        # TODO: drop the secondary call once structured replies prove reliable in the logs
        logger.warning(f"{self.name}: structured reply unusable, retrying as free-form generation")
        freeform = self.invoke(request, task=self.freeform_task, structured=False)
        text = freeform.content.strip()
        if text:
            return EnhanceTextOutput(enhanced_text=text)
        return EnhanceTextOutput(enhanced_text=request.text)
