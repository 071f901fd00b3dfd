# ndis_core/reports/generation.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The text-generation provider could not produce a report."""


@dataclass(frozen=True)
class GenerationResult:
    text: str
    model: str


class WeeklyReportGenerator:
    """
    Thin wrapper around the OpenAI chat completions API.
    The client is created on first use so importing this module needs no key.
    """

    def __init__(self):
        self._client = None

    @property
    def model(self) -> str:
        return settings.OPENAI_MODEL

    @property
    def client(self):
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise GenerationError("Text generation is not configured (OPENAI_API_KEY is empty).")
            from openai import OpenAI

            self._client = OpenAI(api_key=settings.OPENAI_API_KEY, base_url=settings.OPENAI_BASE_URL)
        return self._client

    def generate(self, *, system_prompt: str, user_prompt: str) -> GenerationResult:
        from openai import OpenAIError

        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_completion_tokens=settings.OPENAI_MAX_COMPLETION_TOKENS,
            )
        except OpenAIError as exc:
            raise GenerationError(str(exc) or exc.__class__.__name__) from exc

        text = ""
        if completion.choices:
            text = completion.choices[0].message.content or ""
        logger.info("Generated weekly report text model=%s chars=%s", completion.model, len(text))
        return GenerationResult(text=text, model=completion.model or self.model)


_default_generator: WeeklyReportGenerator | None = None


def get_generator() -> WeeklyReportGenerator:
    global _default_generator
    if _default_generator is None:
        _default_generator = WeeklyReportGenerator()
    return _default_generator
