"""
TIPSTREAM - Generative Model Client
Schema-constrained chat completions via the OpenAI API.
"""

import logging
from typing import Any, Dict, Optional

from openai import APIStatusError, AsyncOpenAI

from tipstream.core.config import Settings, settings as default_settings
from tipstream.core.exceptions import (
    EmptyModelResponseError,
    PaymentRequiredError,
    ProviderAuthError,
    QuotaExceededError,
)
from tipstream.services.predictions.prompts import SYSTEM_MESSAGE

logger = logging.getLogger(__name__)

BILLING_URL = "https://platform.openai.com/account/billing"


def map_provider_error(error: APIStatusError) -> Exception:
    """Translate quota/auth/billing statuses to typed errors; others pass through."""
    status = error.status_code
    if status == 429:
        return QuotaExceededError(
            f"OpenAI API quota exceeded. Check balance and billing settings at {BILLING_URL}",
            details={"provider_message": str(error)},
        )
    if status == 401:
        return ProviderAuthError(
            "Invalid OpenAI API key. Check OPENAI_API_KEY in the .env file",
            details={"provider_message": str(error)},
        )
    if status == 402:
        return PaymentRequiredError(
            f"OpenAI API payment required. Check balance at {BILLING_URL}",
            details={"provider_message": str(error)},
        )
    return error


class GenerativeClient:
    """
    Thin wrapper around ``AsyncOpenAI`` that enforces strict JSON output.

    Returns the raw completion text; parsing and validation happen in the
    engine so every caller gets the same error semantics.
    """

    def __init__(
        self,
        settings: Settings = default_settings,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.settings = settings
        self.model = settings.OPENAI_MODEL
        self.top_p = settings.OPENAI_TOP_P
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        # Created on first use so the app starts without an API key
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.OPENAI_API_KEY or None,
                timeout=self.settings.OPENAI_TIMEOUT,
            )
        return self._client

    async def generate(self, prompt: str, output_schema: Dict[str, Any], temperature: float) -> str:
        """
        Run one completion constrained to ``output_schema``.

        Raises:
            QuotaExceededError, ProviderAuthError, PaymentRequiredError:
                mapped provider statuses
            EmptyModelResponseError: the completion carried no content
        """
        logger.info(f"[LLM] Requesting {output_schema.get('name')} (temperature={temperature})")
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_schema", "json_schema": output_schema},
                temperature=temperature,
                top_p=self.top_p,
            )
        except APIStatusError as e:
            mapped = map_provider_error(e)
            if mapped is e:
                raise
            logger.error(f"[LLM] Provider error {e.status_code}: {mapped}")
            raise mapped from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise EmptyModelResponseError("Empty response from OpenAI")
        return content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
