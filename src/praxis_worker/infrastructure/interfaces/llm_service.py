"""Abstract interfaces for LLM-backed content generation."""

from abc import ABC, abstractmethod

from praxis_worker.domain.models import ArtifactType


class LLMService(ABC):
    """Abstract base class for LLM backends."""

    @abstractmethod
    def generate(
        self, prompt: str, system_instruction: str, json_output: bool = False
    ) -> str:
        """
        Generates text for a prompt.

        Args:
            prompt: The user prompt.
            system_instruction: Instructions framing the task.
            json_output: Ask the model for a JSON document.

        Returns:
            The generated text.

        Raises:
            LLMServiceError: If the LLM call fails.
        """


class ContentGenerator(ABC):
    """Generates the content of one artifact kind from named inputs."""

    @abstractmethod
    def generate(self, kind: ArtifactType, variables: dict[str, str]) -> str:
        """
        Generates content for an artifact kind.

        Args:
            kind: Which artifact to generate.
            variables: Values substituted into the kind's prompt template.

        Returns:
            The generated content.

        Raises:
            LLMServiceError: If generation fails.
        """
