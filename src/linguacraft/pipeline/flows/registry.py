from typing import Any, Dict, Iterable, List, Optional, Type
import logging

from pydantic import BaseModel

from linguacraft.models.manager import ModelManager
from .base import Flow
from .editing import EnhanceTextFlow, SuggestCorrectionFlow
from .lexicon import WordDetailsFlow
from .speech import SpeechToTextFlow, TextToSpeechFlow
from .translation import AlternativeTranslationsFlow, TranslateTextFlow
from .types import UnknownFlowError

logger = logging.getLogger(__name__)

DEFAULT_FLOWS: List[Type[Flow]] = [
    TranslateTextFlow,
    AlternativeTranslationsFlow,
    SuggestCorrectionFlow,
    EnhanceTextFlow,
    WordDetailsFlow,
    SpeechToTextFlow,
    TextToSpeechFlow,
]


class FlowRegistry:
    """Name -> flow lookup. Built once at startup and read-only afterwards."""

    def __init__(self, manager: ModelManager, flows: Optional[Iterable[Type[Flow]]] = None):
        self.model_manager = manager
        self._flows: Dict[str, Flow] = {}
        for flow_cls in flows or DEFAULT_FLOWS:
            self._register(flow_cls(manager))

    def _register(self, flow: Flow):
        if flow.name in self._flows:
            raise ValueError(f"Flow already registered: {flow.name}")
        self.model_manager.get_task(flow.definition.task) #fail fast on a missing task config
        self._flows[flow.name] = flow
        logger.info(f"registered flow: {flow.name} (task={flow.definition.task})")

    def names(self) -> List[str]:
        return list(self._flows)

    def get(self, name: str) -> Flow:
        try:
            return self._flows[name]
        except KeyError:
            raise UnknownFlowError(name) from None

    def execute(self, name: str, raw_input: Any) -> BaseModel:
        return self.get(name).execute(raw_input)
