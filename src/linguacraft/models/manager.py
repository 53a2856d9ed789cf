from __future__ import annotations
from typing import Optional, Dict, Any, Type, Union, Iterable
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum
from os import getenv
import threading
import yaml
import time
import logging

from pydantic import BaseModel

from .prompts import PromptManager
from .providers.base import ChatRequest, GenerationConfig, ModelProvider, ModelResponse, ModelError, ModelTimeout
from .providers.gemini import GeminiProvider
from .providers.ollama import OllamaProvider
from .providers.openai_sdk import OpenAIProvider

logger = logging.getLogger(__name__)

PACKAGE_ROOT = Path(__file__).parents[1]
DEFAULT_CONFIG_PATH = PACKAGE_ROOT / "config" / "config.yaml"
DEFAULT_PROMPTS_DIR = PACKAGE_ROOT / "prompts"


class Provider(Enum):
    GEMINI = "gemini"
    OLLAMA = "ollama"
    OPENAI = "openai"

PROVIDER_CLASSES = {
    Provider.GEMINI.value: GeminiProvider,
    Provider.OLLAMA.value: OllamaProvider,
    Provider.OPENAI.value: OpenAIProvider,
}


@dataclass(frozen=True)
class TaskConfig:
    provider: str
    model: str
    params: Dict[str, Any] = field(default_factory=dict)
    generation: GenerationConfig = field(default_factory=GenerationConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskConfig":
        return cls(
            provider=data["provider"],
            model=data["model"],
            params=dict(data.get("params") or {}),
            generation=GenerationConfig.from_dict(data.get("generation")),
        )


def default_config_path() -> Path:
    return Path(getenv("LINGUACRAFT_CONFIG") or DEFAULT_CONFIG_PATH)


class ModelManager:
    def __init__(self, config_path: Union[Path, str, None] = None, prompts_dir: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else default_config_path()
        self.config = self._load_config()
        self.tasks = {name: TaskConfig.from_dict(cfg) for name, cfg in self.config["tasks"].items()}
        self._providers: Dict[str, ModelProvider] = {}
        self._providers_lock = threading.Lock()
        self._stats: Dict[str, Dict[str, Any]] = {} #performance tracking
        self._stats_lock = threading.Lock()

        self.prompts = PromptManager(prompts_dir or DEFAULT_PROMPTS_DIR)

    def _load_config(self) -> Dict:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config not found: {self.config_path}")
        with open(self.config_path) as f:
            config = yaml.safe_load(f) or {}

        if 'providers' not in config:
            raise ValueError("Config missing 'providers'")
        if 'tasks' not in config:
            raise ValueError("Config missing 'tasks'")

        for provider_name, provider_cfg in config['providers'].items():
            if provider_cfg.get('type') not in PROVIDER_CLASSES:
                raise ValueError(f"Provider '{provider_name}' has unknown type '{provider_cfg.get('type')}'")

        for task_name, task_cfg in config['tasks'].items():
            if 'provider' not in task_cfg:
                raise ValueError(f"Task '{task_name}' missing provider")
            if 'model' not in task_cfg:
                raise ValueError(f"Task '{task_name}' missing model")

            provider_name = task_cfg['provider']
            if provider_name not in config['providers']:
                raise ValueError(f"Task '{task_name}' references unknown provider '{provider_name}'")

        return config

    @property
    def server_settings(self) -> Dict[str, Any]:
        return self.config.get("server") or {}

    def _get_provider(self, provider_name: str) -> ModelProvider:
        with self._providers_lock:
            if provider_name in self._providers:
                return self._providers[provider_name]

            provider_cfg = self.config["providers"][provider_name]
            provider_type = provider_cfg["type"]
            settings = provider_cfg.get("settings") or {}

            try:
                provider = PROVIDER_CLASSES[provider_type](**settings)
            except ModelError:
                raise
            except Exception as e: #bad settings or missing credentials
                raise ModelError(f"Failed to initialize provider '{provider_name}' ({provider_type}): {e}") from e
            self._providers[provider_name] = provider
            logger.info(f"initialized provider: {provider_name} ({provider_type})")
            return provider

    def _provider_type(self, provider_name: str) -> str:
        return self.config["providers"][provider_name]["type"]

    def get_task(self, task: str) -> TaskConfig:
        if task not in self.tasks:
            raise ValueError(f"Unknown task: {task}")
        return self.tasks[task]

    def call(self, task: str, prompt_ref: str, variables: Dict[str, Any], schema: Optional[Type[BaseModel]] = None, media_fields: Iterable[str] = (), **params_override) -> ModelResponse:
        start_time = time.perf_counter()

        task_cfg = self.get_task(task)
        rendered = self.prompts.render(prompt_ref, variables, media_fields=media_fields)

        params = {**task_cfg.params, **params_override}
        if rendered.stop_sequences:
            stop_key = "stop_sequences" if self._provider_type(task_cfg.provider) == Provider.GEMINI.value else "stop"
            params.setdefault(stop_key, rendered.stop_sequences)

        request = ChatRequest(
            model=task_cfg.model,
            messages=rendered.messages,
            params=params,
            schema=schema,
            media=rendered.media or None,
            generation=task_cfg.generation,
        )

        try:
            provider = self._get_provider(task_cfg.provider)
            response = provider.chat(request)
        except (ModelTimeout, ModelError):
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self._track_stats(task, elapsed_ms, success=False)
            raise
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self._track_stats(task, elapsed_ms, success=True)
        logger.debug(f"task '{task}' completed in {elapsed_ms:.0f}ms via {task_cfg.provider}")
        return response

    def _track_stats(self, task: str, latency_ms: float, success: bool):
        with self._stats_lock:
            if task not in self._stats:
                self._stats[task] = {
                    'total_calls': 0,
                    'successful_calls': 0,
                    'total_latency_ms': 0
                }

            stats = self._stats[task]
            stats['total_calls'] += 1
            if success:
                stats['successful_calls'] += 1
                stats['total_latency_ms'] += latency_ms

    def get_stats(self, task: Optional[str] = None) -> Dict:
        with self._stats_lock:
            if task:
                return dict(self._stats.get(task, {}))
            return {name: dict(stats) for name, stats in self._stats.items()}

    def provider_types(self) -> Dict[str, str]:
        return {name: cfg["type"] for name, cfg in self.config["providers"].items()}

    def check_providers(self) -> Dict[str, bool]:
        """
        Health-check every provider that a task routes to.

        Providers are instantiated on demand, so a missing API key shows up here
        as False rather than on the first flow request.
        """
        results = {}
        for name in sorted({task_cfg.provider for task_cfg in self.tasks.values()}):
            try:
                results[name] = self._get_provider(name).health_check()
            except ModelError as e:
                logger.warning(f"provider '{name}' unavailable: {e}")
                results[name] = False
        return results

    def cleanup(self):
        for name, provider in self._providers.items():
            if hasattr(provider, 'cleanup'):
                try:
                    provider.cleanup()
                    logger.info(f"Cleaned up provider: {name}")
                except Exception as e:
                    logger.error(f"Cleanup failed for {name}: {e}")

        self._providers.clear()
