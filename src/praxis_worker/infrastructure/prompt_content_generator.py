"""Content generation from Jinja2 prompt templates."""

from pathlib import Path

from jinja2 import StrictUndefined, Template, TemplateError

from praxis_worker.domain.models import ArtifactType
from praxis_worker.exceptions import LLMServiceError
from praxis_worker.infrastructure.interfaces import ContentGenerator, LLMService
from praxis_worker.logging import setup_logging

logger = setup_logging()

DEFAULT_PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

_JSON_KINDS = {ArtifactType.SESSION_SPEAKER_ROLES_CLASSIFICATION}


class PromptContentGenerator(ContentGenerator):
    """
    Renders `<kind>.txt` templates with `{{ name }}` placeholders and sends
    them to the LLM together with the shared `system.txt` instruction.
    """

    def __init__(self, llm: LLMService, prompts_dir: Path = DEFAULT_PROMPTS_DIR):
        self._llm = llm
        self._prompts_dir = prompts_dir
        self._system_instruction = (prompts_dir / "system.txt").read_text(
            encoding="utf-8"
        )
        self._templates: dict[ArtifactType, Template] = {}

    def generate(self, kind: ArtifactType, variables: dict[str, str]) -> str:
        template_path = self._prompts_dir / f"{kind.value}.txt"
        try:
            prompt = self._template(kind, template_path).render(**variables)
        except (OSError, TemplateError) as e:
            logger.exception(
                "Prompt rendering failed",
                extra={"kind": kind.value, "template": str(template_path)},
            )
            raise LLMServiceError(
                f"Cannot render prompt for '{kind.value}': {e}", cause=e
            ) from e

        content = self._llm.generate(
            prompt,
            system_instruction=self._system_instruction,
            json_output=kind in _JSON_KINDS,
        )
        logger.info(
            "Content generated",
            extra={"kind": kind.value, "length": len(content)},
        )
        return content.strip()

    def _template(self, kind: ArtifactType, template_path: Path) -> Template:
        template = self._templates.get(kind)
        if template is None:
            template = Template(
                template_path.read_text(encoding="utf-8"),
                undefined=StrictUndefined,
                keep_trailing_newline=True,
            )
            self._templates[kind] = template
        return template
