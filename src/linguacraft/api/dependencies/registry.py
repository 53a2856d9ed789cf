"""
Accessors for the shared ModelManager and FlowRegistry.

Both are built once in create_app() and stored on app.state; endpoints get
them through these dependencies so tests can swap them with
app.dependency_overrides.
"""

from fastapi import Request

from linguacraft.models.manager import ModelManager
from linguacraft.pipeline.flows import FlowRegistry


def get_model_manager(request: Request) -> ModelManager:
    """FastAPI dependency to get the model manager from app state."""
    return request.app.state.model_manager

def get_flow_registry(request: Request) -> FlowRegistry:
    """FastAPI dependency to get the flow registry from app state."""
    return request.app.state.flow_registry
