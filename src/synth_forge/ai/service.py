"""
Creative-content services used for AI-strategy columns.

Supports:
- Google Gemini (structured JSON array responses)
- Faker (offline, no network)

A service returns up to ``count`` strings per call and raises
ContentServiceError when it cannot produce a usable response.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from faker import Faker

from synth_forge.models import ContentServiceError, GenerationConfig

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = """
You are a synthetic data generator.
Your task is to generate realistic, diverse, professional-grade and
contextually appropriate values for a single dataset column, based on the
user's column description.

STRICT CONSTRAINTS:
1. Follow the format and style of any example values exactly.
2. When per-row context is given, value N must be consistent with context N.
3. Do not introduce placeholder text such as "lorem ipsum".
4. Return ONLY a JSON array of strings. No markdown, no explanations.
""".strip()


class ContentService(ABC):
    """Interface of an external creative-content generator."""

    @abstractmethod
    async def generate_batch(
        self,
        prompt: str,
        count: int,
        example_values: Sequence[str] = (),
        row_contexts: Sequence[str] = (),
    ) -> List[str]:
        """Return up to ``count`` generated values."""


def build_user_prompt(
    prompt: str,
    count: int,
    example_values: Sequence[str],
    row_contexts: Sequence[str],
) -> str:
    """Compose the request text sent to an LLM."""
    lines = [f'Generate {count} unique values for a dataset column described as: "{prompt}".']

    if example_values:
        lines.append(
            "Here are some examples of the desired data format/style: "
            f"{', '.join(example_values)}."
        )

    if any(row_contexts):
        lines.append("Each value must fit the context of its row, in this order:")
        for index, context in enumerate(row_contexts, start=1):
            lines.append(f"{index}. {context}")

    return "\n".join(lines)


def parse_json_array(text: Optional[str]) -> List[str]:
    """Decode a JSON array of strings from an LLM response."""
    if not text:
        raise ContentServiceError("No Response")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ContentServiceError(f"Invalid Format: {e}") from e

    if not isinstance(parsed, list):
        raise ContentServiceError("Invalid Format: expected a JSON array")
    return [v if isinstance(v, str) else json.dumps(v) for v in parsed]


class GeminiContentService(ContentService):
    """Content service backed by the Google Gemini API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-3-flash-preview",
        temperature: float = 1.0,
    ):
        """
        Initialize the Gemini service.

        Args:
            api_key: Gemini API key (the client is only created on first use)
            model: Model identifier
            temperature: Sampling temperature
        """
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self._client = None

    def _get_client(self):
        if not self.api_key:
            raise ContentServiceError("No API key configured for Gemini")
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_batch(
        self,
        prompt: str,
        count: int,
        example_values: Sequence[str] = (),
        row_contexts: Sequence[str] = (),
    ) -> List[str]:
        client = self._get_client()
        from google.genai import types

        contents = build_user_prompt(prompt, count, example_values, row_contexts)

        response = await client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(
                system_instruction=SYSTEM_INSTRUCTION,
                temperature=self.temperature,
                response_mime_type="application/json",
                response_schema=types.Schema(
                    type=types.Type.ARRAY,
                    items=types.Schema(type=types.Type.STRING),
                ),
            ),
        )

        values = parse_json_array(response.text)
        logger.debug(f"Gemini returned {len(values)}/{count} values")
        return values


class FakerContentService(ContentService):
    """Offline content service producing Faker sentences."""

    def __init__(self, seed: Optional[int] = None, locale: str = "en_US"):
        self.faker = Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)

    async def generate_batch(
        self,
        prompt: str,
        count: int,
        example_values: Sequence[str] = (),
        row_contexts: Sequence[str] = (),
    ) -> List[str]:
        # Match the rough length of the examples when there are any
        if example_values:
            avg_words = sum(len(v.split()) for v in example_values) / len(example_values)
            nb_words = max(int(round(avg_words)), 1)
        else:
            nb_words = 8

        if nb_words <= 2:
            return [self.faker.word().title() for _ in range(count)]
        return [self.faker.sentence(nb_words=nb_words) for _ in range(count)]


def build_content_service(config: GenerationConfig) -> ContentService:
    """Create the content service selected in the configuration."""
    provider = (config.ai_provider or "gemini").lower()

    if provider == "gemini":
        if not config.api_key:
            logger.warning("No Gemini API key found, AI columns will be filled with error markers")
        return GeminiContentService(api_key=config.api_key, model=config.ai_model)
    if provider == "faker":
        return FakerContentService(seed=config.seed)

    raise ValueError(f"Unknown AI provider: {config.ai_provider}")
