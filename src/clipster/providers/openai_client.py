"""
OpenAI-compatible Providers
OpenAI GPT and xAI Grok through the chat completions API.
"""

from typing import Optional

import openai
from openai import OpenAI

from clipster.models import FailureReason, ProviderId
from clipster.providers.base import MalformedResponseError, ProviderClient, classify_sdk_error

OPENAI_DEFAULT_MODEL = "gpt-5.1"
XAI_DEFAULT_MODEL = "grok-4-latest"
XAI_BASE_URL = "https://api.x.ai/v1"


def first_choice_text(response) -> str:
    """Text of the first choice in a chat completion."""
    choices = getattr(response, "choices", None)
    if not choices:
        raise MalformedResponseError("No choices in completion response")
    content = choices[0].message.content
    if not isinstance(content, str):
        raise MalformedResponseError("Completion has no text content")
    return content


class OpenAIClient(ProviderClient):
    """Completes prompts with an OpenAI chat model."""

    provider_id = ProviderId.OPENAI

    # Newer OpenAI models take max_completion_tokens instead of max_tokens
    uses_completion_tokens = True

    def __init__(self, api_key: str, model: str = OPENAI_DEFAULT_MODEL,
                 base_url: Optional[str] = None, **kwargs):
        super().__init__(model=model, **kwargs)
        self.base_url = base_url.rstrip("/") if base_url else None
        self.client = OpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )

    def _request(self, prompt: str) -> str:
        limit_param = "max_completion_tokens" if self.uses_completion_tokens else "max_tokens"
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            **{limit_param: self.max_tokens},
        )
        return first_choice_text(response)

    def _classify(self, error: Exception) -> FailureReason:
        return classify_sdk_error(error, openai)

    def close(self) -> None:
        self.client.close()


class XAIClient(OpenAIClient):
    """Completes prompts with xAI's Grok via its OpenAI-compatible API."""

    provider_id = ProviderId.XAI
    uses_completion_tokens = False

    def __init__(self, api_key: str, model: str = XAI_DEFAULT_MODEL,
                 base_url: str = XAI_BASE_URL, **kwargs):
        super().__init__(api_key=api_key, model=model, base_url=base_url, **kwargs)
