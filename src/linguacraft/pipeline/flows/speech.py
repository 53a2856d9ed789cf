from typing import Any, Dict, Optional
import logging

from linguacraft.models.providers.base import MediaPart, ModelResponse
from linguacraft.utils.media import parse_data_uri
from .base import Flow
from .schemas import LANGUAGES, SpeechToTextInput, SpeechToTextOutput, TextToSpeechInput, TextToSpeechOutput
from .types import Discipline, FlowDefinition, MalformedModelOutput

logger = logging.getLogger(__name__)


class SpeechToTextFlow(Flow):
    definition = FlowDefinition(
        name="speech-to-text",
        input_shape=SpeechToTextInput,
        output_shape=SpeechToTextOutput,
        prompt_ref="speech/transcribe@v1",
        task="transcribe",
        media_fields=("audio_data_uri",),
    )

    def short_circuit(self, request: SpeechToTextInput) -> Optional[SpeechToTextOutput]:
        if parse_data_uri(request.audio_data_uri).is_empty:
            return SpeechToTextOutput(transcription="", translation="")
        return None

    def variables(self, request: SpeechToTextInput) -> Dict[str, Any]:
        return {
            **request.model_dump(),
            "source_language_name": LANGUAGES[request.source_language],
            "target_language_name": LANGUAGES[request.target_language],
            "same_language": request.source_language == request.target_language,
        }

    def interpret(self, request: SpeechToTextInput, response: ModelResponse) -> SpeechToTextOutput:
        result = super().interpret(request, response)
        # translation falls back to the transcription, which only the reply itself knows
        if not result.translation.strip():
            result = result.model_copy(update={"translation": result.transcription})
        return result

    def finalize(self, request: SpeechToTextInput, result: SpeechToTextOutput) -> SpeechToTextOutput:
        if request.source_language == request.target_language and result.translation != result.transcription:
            return result.model_copy(update={"translation": result.transcription})
        return result


class TextToSpeechFlow(Flow):
    definition = FlowDefinition(
        name="text-to-speech",
        input_shape=TextToSpeechInput,
        output_shape=TextToSpeechOutput,
        prompt_ref="speech/synthesize@v1",
        task="synthesize",
        discipline=Discipline.FREEFORM,
    )

    def interpret(self, request: TextToSpeechInput, response: ModelResponse) -> TextToSpeechOutput:
        audio = response.find_media("audio/")
        if isinstance(audio, MediaPart):
            logger.info(f"{self.name}: received {len(audio.data)} bytes of {audio.mime_type}")
            return TextToSpeechOutput(audio_data_uri=audio.data_uri)

        logger.error(f"{self.name}: no audio data in response (finish_reason={response.finish_reason}, meta={response.meta})")
        if not response.stopped_normally and response.finish_message:
            message = f"Speech model failed: {response.finish_message}"
        elif not response.stopped_normally:
            message = f"Speech model generation failed. Reason: {response.finish_reason}."
        else:
            message = "Failed to convert text to speech. No audio data received from model."
        raise MalformedModelOutput(message, raw_payload=response.content, finish_reason=response.finish_reason)
