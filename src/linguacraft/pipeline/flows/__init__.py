from .registry import FlowRegistry, DEFAULT_FLOWS
from .types import (
    FlowDefinition,
    FlowError,
    FlowValidationError,
    MalformedModelOutput,
    ModelInvocationError,
    UnknownFlowError,
)

__all__ = [
    "FlowRegistry",
    "DEFAULT_FLOWS",
    "FlowDefinition",
    "FlowError",
    "FlowValidationError",
    "MalformedModelOutput",
    "ModelInvocationError",
    "UnknownFlowError",
]
