from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type
from pydantic import BaseModel


class Discipline(Enum):
    SCHEMA = "schema" #reply constrained to the output shape
    FREEFORM = "freeform" #reply parts scanned for the expected content


@dataclass(frozen=True)
class FlowDefinition:
    name: str
    input_shape: Type[BaseModel]
    output_shape: Type[BaseModel]
    prompt_ref: str #e.g. "translate/text@v1"
    task: str #invocation config name in config.yaml
    discipline: Discipline = Discipline.SCHEMA
    media_fields: Tuple[str, ...] = ()


# Errors
class FlowError(Exception):
    """Base class for classified flow failures"""


class FlowValidationError(FlowError):
    def __init__(self, field: str, reason: str, details: Optional[List[Dict[str, Any]]] = None):
        self.field = field
        self.reason = reason
        self.details = details or [{"loc": field, "msg": reason}]
        super().__init__(f"{field}: {reason}")


class UnknownFlowError(FlowError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown flow: {name}")


class ModelInvocationError(FlowError):
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class MalformedModelOutput(FlowError):
    def __init__(self, message: str, raw_payload: Any = None, finish_reason: Optional[str] = None):
        self.raw_payload = raw_payload
        self.finish_reason = finish_reason
        super().__init__(message)
