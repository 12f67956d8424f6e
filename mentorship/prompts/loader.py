"""Prompt template loading."""
from pathlib import Path
from typing import Any, Dict, Optional

from mentorship.prompts.prompt_template import PromptTemplate

DEFAULT_PROMPTS_DIR = Path(__file__).parent / "templates"


class PromptLoader:
    """Load `.txt` templates from a directory and render them.

    Class methods use the package's own templates; instances can point at a
    custom directory (tests use this).
    """

    _cache: Dict[str, PromptTemplate] = {}

    def __init__(self, prompts_dir: Optional[Path] = None):
        self._prompts_dir = prompts_dir or DEFAULT_PROMPTS_DIR
        self._instance_cache: Dict[str, PromptTemplate] = {}

    @staticmethod
    def _read(prompts_dir: Path, template_name: str) -> PromptTemplate:
        template_path = prompts_dir / f"{template_name}.txt"
        with open(template_path, 'r', encoding='utf-8') as f:
            return PromptTemplate(f.read(), name=template_name)

    @classmethod
    def load(cls, template_name: str) -> PromptTemplate:
        """
        Load a template by name (without the .txt extension), cached per process.
        """
        if template_name not in cls._cache:
            cls._cache[template_name] = cls._read(DEFAULT_PROMPTS_DIR, template_name)
        return cls._cache[template_name]

    @classmethod
    def format(cls, template_name: str, **kwargs: Any) -> str:
        """
        Load and render a template.

        Raises:
            PromptTemplateError: a placeholder has no value
        """
        return cls.load(template_name).render(**kwargs)

    def render(self, template_name: str, variables: Dict[str, Any]) -> str:
        """Render a template from this loader's directory."""
        if template_name not in self._instance_cache:
            self._instance_cache[template_name] = self._read(self._prompts_dir, template_name)
        return self._instance_cache[template_name].render(**variables)
