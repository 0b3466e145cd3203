"""
Groq Provider
Open-weight models hosted by Groq.
"""

import groq
from groq import Groq

from clipster.models import FailureReason, ProviderId
from clipster.providers.base import ProviderClient, classify_sdk_error
from clipster.providers.openai_client import first_choice_text

DEFAULT_MODEL = "llama-3.3-70b-versatile"


class GroqClient(ProviderClient):
    """Completes prompts with a Groq-hosted chat model."""

    provider_id = ProviderId.GROQ

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, **kwargs):
        super().__init__(model=model, **kwargs)
        self.client = Groq(api_key=api_key, timeout=self.timeout, max_retries=0)

    def _request(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return first_choice_text(response)

    def _classify(self, error: Exception) -> FailureReason:
        return classify_sdk_error(error, groq)

    def close(self) -> None:
        self.client.close()
