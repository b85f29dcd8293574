"""Gemini LLM service implementation."""

from google import genai

from praxis_worker.exceptions import LLMServiceError
from praxis_worker.infrastructure.interfaces import LLMService
from praxis_worker.logging import setup_logging

logger = setup_logging()


class GeminiLLMService(LLMService):
    """LLM service implementation using Google Gemini."""

    def __init__(self, client: genai.Client, model_name: str):
        self._client = client
        self._model_name = model_name

    def generate(
        self, prompt: str, system_instruction: str, json_output: bool = False
    ) -> str:
        """
        Generates content with Gemini.

        Args:
            prompt: The rendered prompt.
            system_instruction: Instructions framing the task.
            json_output: Request an `application/json` response.

        Returns:
            The response text.

        Raises:
            LLMServiceError: If the Gemini API call fails or returns nothing.
        """
        config = {"system_instruction": system_instruction}
        if json_output:
            config["response_mime_type"] = "application/json"

        try:
            response = self._client.models.generate_content(
                model=self._model_name,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            logger.exception("Gemini API call failed")
            raise LLMServiceError(f"Gemini generation failed: {e}", cause=e) from e

        if not response.text:
            raise LLMServiceError("Gemini returned empty response")

        logger.info(
            "LLM generation completed",
            extra={"model": self._model_name, "json_output": json_output},
        )
        return response.text
