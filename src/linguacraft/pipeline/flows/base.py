from typing import Any, Dict, Mapping, Optional
import logging

from pydantic import BaseModel, ValidationError

from linguacraft.models.manager import ModelManager
from linguacraft.models.providers.base import ModelError, ModelResponse
from .normalizer import normalize, reply_to_mapping
from .types import Discipline, FlowDefinition, FlowValidationError, MalformedModelOutput, ModelInvocationError

logger = logging.getLogger(__name__)


class Flow:
    """
    One validated request/response operation backed by a model call.

    execute() runs: validate -> short_circuit -> prepare -> invoke -> interpret
    -> finalize. Subclasses set `definition` and override the hooks they need.
    Instances hold no per-call state and can be shared across threads.
    """

    definition: FlowDefinition
    non_empty: tuple = () #output fields where an empty string counts as missing

    def __init__(self, manager: ModelManager):
        self.model_manager = manager

    @property
    def name(self) -> str:
        return self.definition.name

    def execute(self, raw_input: Any) -> BaseModel:
        request = self.validate(raw_input)

        trivial = self.short_circuit(request)
        if trivial is not None:
            logger.info(f"{self.name}: degenerate input, skipping model call")
            return trivial

        request = self.prepare(request)
        response = self.invoke(request)
        result = self.interpret(request, response)
        return self.finalize(request, result)

    def validate(self, raw_input: Any) -> BaseModel:
        if not isinstance(raw_input, Mapping):
            raise FlowValidationError("__root__", f"Expected a JSON object, got {type(raw_input).__name__}")
        try:
            return self.definition.input_shape.model_validate(raw_input)
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False)
            first = errors[0]
            field = ".".join(str(part) for part in first["loc"]) or "__root__"
            details = [
                {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in errors
            ]
            raise FlowValidationError(field, first["msg"], details) from e

    def short_circuit(self, request: BaseModel) -> Optional[BaseModel]:
        return None

    def prepare(self, request: BaseModel) -> BaseModel:
        return request

    def variables(self, request: BaseModel) -> Dict[str, Any]:
        return request.model_dump()

    def invoke(self, request: BaseModel, task: Optional[str] = None, structured: Optional[bool] = None, **params_override) -> ModelResponse:
        if structured is None:
            structured = self.definition.discipline == Discipline.SCHEMA
        task = task or self.definition.task
        try:
            return self.model_manager.call(
                task=task,
                prompt_ref=self.definition.prompt_ref,
                variables=self.variables(request),
                schema=self.definition.output_shape if structured else None,
                media_fields=self.definition.media_fields,
                **params_override
            )
        except ModelError as e:
            logger.error(f"{self.name}: model call for task '{task}' failed: {e}")
            raise ModelInvocationError(f"{self.name} failed: {e}", cause=e) from e

    def fallbacks(self, request: BaseModel) -> Dict[str, Any]:
        return {}

    def on_missing_reply(self, request: BaseModel, response: ModelResponse) -> BaseModel:
        raise MalformedModelOutput(
            f"{self.name}: model returned no structured output",
            raw_payload=response.content,
            finish_reason=response.finish_reason,
        )

    def interpret(self, request: BaseModel, response: ModelResponse) -> BaseModel:
        reply = response.parsed if response.parsed is not None else reply_to_mapping(response.content)
        if reply is None:
            if "validation_error" in response.meta:
                logger.warning(f"{self.name}: reply failed schema validation: {response.meta['validation_error']}")
            return self.on_missing_reply(request, response)
        return normalize(self.definition.output_shape, reply, self.fallbacks(request), self.non_empty)

    def finalize(self, request: BaseModel, result: BaseModel) -> BaseModel:
        return result
