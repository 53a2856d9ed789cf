from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, List, Iterable, Tuple
import yaml
import jinja2
import logging

from ..utils.media import MediaReference, parse_data_uri

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptConfig:
    #immutable prompt config
    name: str
    version: str
    system_template: str
    user_template: str
    stop_sequences: Optional[list[str]] = None
    media_fields: Tuple[str, ...] = () #variables attached as media instead of text

    @property
    def ref(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True)
class RenderedPrompt:
    messages: List[Dict[str, str]]
    media: List[MediaReference] = field(default_factory=list)
    stop_sequences: Optional[list[str]] = None


class PromptManager:
    def __init__(self, prompts_dir: Path):
        self.prompts_dir = Path(prompts_dir)
        if not self.prompts_dir.exists():
            raise FileNotFoundError(f"Prompts dir not found: {self.prompts_dir}")

        self.jinja_env = jinja2.Environment(
            undefined=jinja2.StrictUndefined, #strict checking, but 'is defined' test still works
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
            cache_size=100, #cache compiled templates
        )
        self._cache: Dict[str, PromptConfig] = {}

    def load_prompt(self, prompt_ref: str) -> PromptConfig:
        if prompt_ref in self._cache:
            return self._cache[prompt_ref]

        #parse ref
        if '@' not in prompt_ref:
            raise ValueError(f"Invalid prompt reference: {prompt_ref}")

        path_parts, version = prompt_ref.rsplit('@', 1)
        prompt_path = self.prompts_dir / path_parts / version
        if not prompt_path.exists():
            raise FileNotFoundError(f"Prompt not found: {prompt_path}")

        config = self._load_config(prompt_path)
        system_template = self._load_template(prompt_path, "system.j2", required=False)
        user_template = self._load_template(prompt_path, "user.j2")

        prompt_config = PromptConfig(
            name=path_parts,
            version=version,
            system_template=system_template,
            user_template=user_template,
            stop_sequences=config.get('stop_sequences'),
            media_fields=tuple(config.get('media_fields') or ()),
        )

        self._cache[prompt_ref] = prompt_config
        logger.info(f"Loaded prompt: {prompt_ref}")
        return prompt_config

    def render(self, prompt_ref: str, variables: Dict[str, Any], media_fields: Iterable[str] = ()) -> RenderedPrompt:
        """
        Render a prompt into chat messages plus attached media.

        Variables named in media_fields (or in the prompt's config.yaml) must hold
        data URIs. They are decoded into MediaReference objects and removed from the
        template context, so a template can never inline the encoded payload.
        """
        config = self.load_prompt(prompt_ref)
        media_names = set(config.media_fields) | set(media_fields)

        text_vars = {k: v for k, v in variables.items() if k not in media_names}
        media: List[MediaReference] = []
        for name in sorted(media_names):
            if name not in variables:
                raise ValueError(f"Missing required media variable in prompt {prompt_ref}: {name}")
            value = variables[name]
            media.append(value if isinstance(value, MediaReference) else parse_data_uri(value))

        try:
            system_content = self.jinja_env.from_string(config.system_template).render(**text_vars)
            user_content = self.jinja_env.from_string(config.user_template).render(**text_vars)
        except jinja2.UndefinedError as e:
            raise ValueError(f"Missing required variable in prompt {prompt_ref}: {e}")

        messages = []
        if system_content.strip():
            messages.append({"role": "system", "content": system_content})
        messages.append({"role": "user", "content": user_content})
        logger.debug(f"Rendered {prompt_ref}: {len(messages)} messages, {len(media)} media parts")
        return RenderedPrompt(messages=messages, media=media, stop_sequences=config.stop_sequences)

    def _load_config(self, prompt_path: Path) -> dict:
        config_path = prompt_path / "config.yaml"
        if not config_path.exists():
            return {}
        with open(config_path) as f:
            return yaml.safe_load(f) or {}

    def _load_template(self, prompt_path: Path, template_name: str, required: bool = True) -> str:
        template_path = prompt_path / template_name
        if not template_path.exists():
            if not required:
                return ""
            raise FileNotFoundError(f"Template file not found: {template_path}")
        return template_path.read_text(encoding="utf-8")
