import json
import pytest
from unittest.mock import Mock

from linguacraft.models.manager import ModelManager
from linguacraft.models.providers.base import ModelResponse, ModelError, ModelTimeout, TextPart, MediaPart
from linguacraft.pipeline.flows import FlowValidationError, MalformedModelOutput, ModelInvocationError
from linguacraft.pipeline.flows.editing import EnhanceTextFlow, SuggestCorrectionFlow
from linguacraft.pipeline.flows.lexicon import WordDetailsFlow, clean_word
from linguacraft.pipeline.flows.schemas import (
    AlternativeTranslationsOutput,
    SpeechToTextOutput,
    TranslateTextOutput,
    WordDetailsOutput,
)
from linguacraft.pipeline.flows.speech import SpeechToTextFlow, TextToSpeechFlow
from linguacraft.pipeline.flows.translation import AlternativeTranslationsFlow, TranslateTextFlow

AUDIO_URI = "data:audio/wav;base64,UklGRg=="


def reply(content="", parsed=None, parts=None, finish_reason="STOP", finish_message=None, meta=None):
    return ModelResponse(
        content=content,
        raw=None,
        meta=meta or {"provider": "test"},
        parsed=parsed,
        parts=parts if parts is not None else ([TextPart(content)] if content else []),
        finish_reason=finish_reason,
        finish_message=finish_message,
    )


def json_reply(data):
    return reply(content=json.dumps(data))


@pytest.fixture
def manager():
    return Mock(spec=ModelManager)


# ============ Validation ============

class TestValidation:
    def test_enum_violation_rejected_before_model_call(self, manager):
        """
        Test: Language outside the allowed set
        How: Send sourceLanguage "fr" to translate-text
        Ensures: FlowValidationError names the field and no model call is made
        """
        flow = TranslateTextFlow(manager)

        with pytest.raises(FlowValidationError) as exc_info:
            flow.execute({"text": "Bonjour", "sourceLanguage": "fr", "targetLanguage": "en"})

        assert exc_info.value.field == "sourceLanguage"
        assert exc_info.value.details[0]["loc"] == "sourceLanguage"
        manager.call.assert_not_called()

    @pytest.mark.parametrize("flow_cls, payload", [
        (AlternativeTranslationsFlow, {"sourceText": "hi", "sourceLanguage": "en", "targetLanguage": "ko"}),
        (SuggestCorrectionFlow, {"text": "hi", "language": "ja"}),
        (WordDetailsFlow, {"word": "hi", "language": "de"}),
        (SpeechToTextFlow, {"audioDataUri": AUDIO_URI, "sourceLanguage": "es", "targetLanguage": "en"}),
    ])
    def test_enum_violation_every_flow(self, manager, flow_cls, payload):
        with pytest.raises(FlowValidationError):
            flow_cls(manager).execute(payload)
        manager.call.assert_not_called()

    def test_missing_required_field(self, manager):
        with pytest.raises(FlowValidationError) as exc_info:
            TranslateTextFlow(manager).execute({"sourceLanguage": "en", "targetLanguage": "vi"})
        assert exc_info.value.field == "text"

    def test_wrong_type(self, manager):
        with pytest.raises(FlowValidationError) as exc_info:
            SuggestCorrectionFlow(manager).execute({"text": 123, "language": "en"})
        assert exc_info.value.field == "text"

    def test_non_object_input(self, manager):
        with pytest.raises(FlowValidationError) as exc_info:
            TranslateTextFlow(manager).execute(["hello"])
        assert exc_info.value.field == "__root__"

    def test_unknown_fields_ignored(self, manager):
        request = TranslateTextFlow(manager).validate(
            {"text": "hi", "sourceLanguage": "en", "targetLanguage": "vi", "extra": True}
        )
        assert request.text == "hi"

    def test_count_defaults_to_three(self, manager):
        request = AlternativeTranslationsFlow(manager).validate(
            {"sourceText": "hi", "sourceLanguage": "en", "targetLanguage": "vi"}
        )
        assert request.count == 3

    def test_explicit_count_kept(self, manager):
        request = AlternativeTranslationsFlow(manager).validate(
            {"sourceText": "hi", "sourceLanguage": "en", "targetLanguage": "vi", "count": 5}
        )
        assert request.count == 5

    @pytest.mark.parametrize("count", [True, "3", 2.0])
    def test_count_wrong_type(self, manager, count):
        """
        Test: Non-integer count
        How: Send a boolean, a numeric string and a float as count
        Ensures: Each is rejected instead of being coerced to an int
        """
        with pytest.raises(FlowValidationError) as exc_info:
            AlternativeTranslationsFlow(manager).execute(
                {"sourceText": "hi", "sourceLanguage": "en", "targetLanguage": "vi", "count": count}
            )
        assert exc_info.value.field == "count"
        manager.call.assert_not_called()

    def test_count_below_one(self, manager):
        with pytest.raises(FlowValidationError):
            AlternativeTranslationsFlow(manager).execute(
                {"sourceText": "hi", "sourceLanguage": "en", "targetLanguage": "vi", "count": 0}
            )

    @pytest.mark.parametrize("uri", ["hello", "data:audio/wav;base64,abc"])
    def test_bad_audio_uri(self, manager, uri):
        """
        Test: Malformed or undecodable audio data URI
        How: Send a plain string and a URI whose payload is not valid base64
        Ensures: Both are validation errors on audioDataUri, no model call
        """
        with pytest.raises(FlowValidationError) as exc_info:
            SpeechToTextFlow(manager).execute({"audioDataUri": uri, "sourceLanguage": "en", "targetLanguage": "vi"})
        assert exc_info.value.field == "audioDataUri"
        manager.call.assert_not_called()

    def test_speech_text_too_long(self, manager):
        with pytest.raises(FlowValidationError) as exc_info:
            TextToSpeechFlow(manager).execute({"text": "a" * 1001, "language": "en"})
        assert exc_info.value.field == "text"
        manager.call.assert_not_called()

    def test_speech_text_at_limit_accepted(self, manager):
        request = TextToSpeechFlow(manager).validate({"text": "a" * 1000, "language": "ko"})
        assert len(request.text) == 1000

    @pytest.mark.parametrize("text", ["", "   "])
    def test_speech_text_blank(self, manager, text):
        with pytest.raises(FlowValidationError):
            TextToSpeechFlow(manager).execute({"text": text, "language": "en"})
        manager.call.assert_not_called()


# ============ Short circuits ============

class TestShortCircuits:
    def test_alternatives_empty_source(self, manager):
        result = AlternativeTranslationsFlow(manager).execute(
            {"sourceText": "", "sourceLanguage": "en", "targetLanguage": "vi"}
        )
        assert result.model_dump(by_alias=True) == {"alternatives": []}
        manager.call.assert_not_called()

    def test_translate_blank_text(self, manager):
        result = TranslateTextFlow(manager).execute({"text": "  ", "sourceLanguage": "en", "targetLanguage": "vi"})
        assert result == TranslateTextOutput(translated_text="")
        manager.call.assert_not_called()

    def test_correction_blank_text(self, manager):
        result = SuggestCorrectionFlow(manager).execute({"text": "\n", "language": "en"})
        assert result.corrected_text == ""
        manager.call.assert_not_called()

    def test_enhance_blank_instruction(self, manager):
        result = EnhanceTextFlow(manager).execute({"text": "Some text", "language": "en", "instruction": ""})
        assert result.model_dump(by_alias=True) == {"enhancedText": "Some text"}
        manager.call.assert_not_called()

    def test_word_only_whitespace(self, manager):
        result = WordDetailsFlow(manager).execute({"word": "   ", "language": "en"})
        assert result.model_dump(by_alias=True) == {
            "definedWord": "   ",
            "type": "",
            "meaning": "No word provided or word is only punctuation.",
            "synonyms": [],
            "antonyms": [],
        }
        manager.call.assert_not_called()

    def test_word_only_punctuation(self, manager):
        result = WordDetailsFlow(manager).execute({"word": "?!“”", "language": "vi"})
        assert result.defined_word == "?!“”"
        manager.call.assert_not_called()

    def test_speech_empty_audio(self, manager):
        result = SpeechToTextFlow(manager).execute(
            {"audioDataUri": "data:audio/wav;base64,", "sourceLanguage": "en", "targetLanguage": "vi"}
        )
        assert result == SpeechToTextOutput(transcription="", translation="")
        manager.call.assert_not_called()


# ============ Model invocation and normalization ============

class TestTranslate:
    def test_parsed_reply(self, manager):
        manager.call.return_value = reply(parsed=TranslateTextOutput(translated_text="Xin chào"))

        result = TranslateTextFlow(manager).execute({"text": "Hello", "sourceLanguage": "en", "targetLanguage": "vi"})

        assert result.translated_text == "Xin chào"
        kwargs = manager.call.call_args.kwargs
        assert kwargs["task"] == "translate"
        assert kwargs["prompt_ref"] == "translate/text@v1"
        assert kwargs["schema"] is TranslateTextOutput
        assert kwargs["variables"]["target_language_name"] == "Vietnamese"

    def test_missing_reply_is_malformed(self, manager):
        manager.call.return_value = reply(content="I cannot help with that", finish_reason="STOP")

        with pytest.raises(MalformedModelOutput) as exc_info:
            TranslateTextFlow(manager).execute({"text": "Hello", "sourceLanguage": "en", "targetLanguage": "vi"})

        assert exc_info.value.raw_payload == "I cannot help with that"

    @pytest.mark.parametrize("error", [ModelError("boom"), ModelTimeout("slow")])
    def test_model_failure_classified(self, manager, error):
        """
        Test: Provider failure
        How: Make the manager raise ModelError / ModelTimeout
        Ensures: ModelInvocationError is raised with the original cause preserved
        """
        manager.call.side_effect = error

        with pytest.raises(ModelInvocationError) as exc_info:
            TranslateTextFlow(manager).execute({"text": "Hello", "sourceLanguage": "en", "targetLanguage": "vi"})

        assert exc_info.value.cause is error
        assert exc_info.value.__cause__ is error
        assert manager.call.call_count == 1


class TestAlternatives:
    def test_reply_normalized(self, manager):
        manager.call.return_value = json_reply({"alternatives": ["Xin chào", "Chào bạn"]})

        result = AlternativeTranslationsFlow(manager).execute(
            {"sourceText": "Hello", "sourceLanguage": "en", "targetLanguage": "vi", "count": 2}
        )

        assert result.alternatives == ["Xin chào", "Chào bạn"]
        assert manager.call.call_args.kwargs["variables"]["count"] == 2

    def test_missing_reply_gives_empty_list(self, manager):
        manager.call.return_value = reply(content="")

        result = AlternativeTranslationsFlow(manager).execute(
            {"sourceText": "Hello", "sourceLanguage": "en", "targetLanguage": "vi"}
        )

        assert result == AlternativeTranslationsOutput(alternatives=[])


class TestCorrection:
    def test_missing_reply_falls_back_to_input(self, manager):
        manager.call.return_value = reply(content="not json")

        result = SuggestCorrectionFlow(manager).execute({"text": "Helo wrld", "language": "en"})

        assert result.corrected_text == "Helo wrld"

    def test_mistyped_field_falls_back_to_input(self, manager):
        manager.call.return_value = json_reply({"correctedText": ["Hello", "world"]})

        result = SuggestCorrectionFlow(manager).execute({"text": "Helo wrld", "language": "en"})

        assert result.corrected_text == "Helo wrld"

    def test_correction_used(self, manager):
        manager.call.return_value = json_reply({"correctedText": "Hello world"})
        result = SuggestCorrectionFlow(manager).execute({"text": "Helo wrld", "language": "en"})
        assert result.corrected_text == "Hello world"


class TestEnhance:
    PAYLOAD = {"text": "the meeting is tomorrow", "language": "en", "instruction": "Make it formal"}

    def test_structured_reply_trimmed(self, manager):
        manager.call.return_value = json_reply({"enhancedText": "  The meeting will take place tomorrow.  "})

        result = EnhanceTextFlow(manager).execute(self.PAYLOAD)

        assert result.enhanced_text == "The meeting will take place tomorrow."
        assert manager.call.call_count == 1

    def test_secondary_freeform_call(self, manager):
        """
        Test: Dual-path enhancement
        How: First call yields no enhancedText, second free-form call yields text
        Ensures: The free-form task is used without a schema and its text is returned
        """
        manager.call.side_effect = [
            json_reply({"enhancedText": ""}),
            reply(content="\nThe meeting will take place tomorrow.\n"),
        ]

        result = EnhanceTextFlow(manager).execute(self.PAYLOAD)

        assert result.enhanced_text == "The meeting will take place tomorrow."
        assert manager.call.call_count == 2
        second = manager.call.call_args_list[1].kwargs
        assert second["task"] == "enhance_freeform"
        assert second["schema"] is None

    def test_both_paths_empty_returns_original(self, manager):
        manager.call.side_effect = [reply(content=""), reply(content="   ")]

        result = EnhanceTextFlow(manager).execute(self.PAYLOAD)

        assert result.enhanced_text == self.PAYLOAD["text"]

    def test_secondary_call_failure_classified(self, manager):
        manager.call.side_effect = [reply(content=""), ModelError("down")]

        with pytest.raises(ModelInvocationError):
            EnhanceTextFlow(manager).execute(self.PAYLOAD)


class TestWordDetails:
    def test_clean_word(self):
        assert clean_word("Hello!!") == "hello"
        assert clean_word(" “Xin”, ") == "xin"
        assert clean_word("（テスト）") == "テスト"

    def test_word_normalized_before_call(self, manager):
        manager.call.return_value = json_reply({
            "definedWord": "hello",
            "type": "Interjection",
            "meaning": "A greeting",
            "synonyms": ["hi"],
            "antonyms": ["goodbye"],
        })

        result = WordDetailsFlow(manager).execute({"word": "Hello!!", "language": "en"})

        assert manager.call.call_args.kwargs["variables"]["word"] == "hello"
        assert result.type == "Interjection"
        assert result.antonyms == ["goodbye"]

    def test_partial_reply_filled(self, manager):
        manager.call.return_value = json_reply({"definedWord": "", "meaning": "A greeting", "synonyms": None})

        result = WordDetailsFlow(manager).execute({"word": "Hello!!", "language": "en"})

        assert result == WordDetailsOutput(
            defined_word="hello",
            type="",
            meaning="A greeting",
            synonyms=[],
            antonyms=[],
        )

    def test_missing_reply(self, manager):
        manager.call.return_value = reply(content="")

        result = WordDetailsFlow(manager).execute({"word": "Hello", "language": "en"})

        assert result.defined_word == "hello"
        assert result.meaning == "Could not retrieve details for this word."
        assert result.synonyms == []


class TestSpeechToText:
    def test_audio_attached_as_media(self, manager):
        manager.call.return_value = json_reply({"transcription": "xin chào", "translation": "hello"})

        result = SpeechToTextFlow(manager).execute({"audioDataUri": AUDIO_URI, "sourceLanguage": "vi", "targetLanguage": "en"})

        assert result.transcription == "xin chào"
        assert result.translation == "hello"
        kwargs = manager.call.call_args.kwargs
        assert kwargs["media_fields"] == ("audio_data_uri",)
        assert kwargs["variables"]["same_language"] is False

    def test_same_language_translation_equals_transcription(self, manager):
        manager.call.return_value = json_reply({"transcription": "hello there", "translation": "hi there"})

        result = SpeechToTextFlow(manager).execute({"audioDataUri": AUDIO_URI, "sourceLanguage": "en", "targetLanguage": "en"})

        assert result.translation == result.transcription == "hello there"

    def test_missing_translation_uses_transcription(self, manager):
        manager.call.return_value = json_reply({"transcription": "xin chào"})

        result = SpeechToTextFlow(manager).execute({"audioDataUri": AUDIO_URI, "sourceLanguage": "vi", "targetLanguage": "en"})

        assert result.translation == "xin chào"

    def test_missing_reply_is_malformed(self, manager):
        manager.call.return_value = reply(content="", finish_reason="SAFETY")

        with pytest.raises(MalformedModelOutput) as exc_info:
            SpeechToTextFlow(manager).execute({"audioDataUri": AUDIO_URI, "sourceLanguage": "vi", "targetLanguage": "en"})

        assert exc_info.value.finish_reason == "SAFETY"


class TestTextToSpeech:
    PAYLOAD = {"text": "Xin chào", "language": "vi"}

    def test_audio_part_extracted(self, manager):
        manager.call.return_value = reply(parts=[
            TextPart("Here is your audio"),
            MediaPart(mime_type="audio/L16;codec=pcm;rate=24000", data=b"\x00\x01"),
        ])

        result = TextToSpeechFlow(manager).execute(self.PAYLOAD)

        assert result.audio_data_uri == "data:audio/L16;codec=pcm;rate=24000;base64,AAE="
        assert manager.call.call_args.kwargs["schema"] is None
        assert manager.call.call_args.kwargs["task"] == "synthesize"

    def test_first_audio_part_wins(self, manager):
        manager.call.return_value = reply(parts=[
            MediaPart(mime_type="image/png", data=b"png"),
            MediaPart(mime_type="audio/wav", data=b"one"),
            MediaPart(mime_type="audio/wav", data=b"two"),
        ])

        result = TextToSpeechFlow(manager).execute(self.PAYLOAD)

        assert result.audio_data_uri == "data:audio/wav;base64,b25l"

    def test_blocked_generation_surfaces_model_message(self, manager):
        manager.call.return_value = reply(parts=[], finish_reason="SAFETY", finish_message="Blocked for hate speech")

        with pytest.raises(MalformedModelOutput) as exc_info:
            TextToSpeechFlow(manager).execute(self.PAYLOAD)

        assert "Blocked for hate speech" in str(exc_info.value)
        assert exc_info.value.finish_reason == "SAFETY"

    def test_truncated_generation_reports_reason(self, manager):
        manager.call.return_value = reply(parts=[], finish_reason="MAX_TOKENS")

        with pytest.raises(MalformedModelOutput, match="MAX_TOKENS"):
            TextToSpeechFlow(manager).execute(self.PAYLOAD)

    def test_no_audio_on_normal_stop(self, manager):
        manager.call.return_value = reply(content="I can only write text")

        with pytest.raises(MalformedModelOutput, match="No audio data"):
            TextToSpeechFlow(manager).execute(self.PAYLOAD)
