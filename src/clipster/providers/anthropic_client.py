"""
Anthropic Provider
Claude models through the Messages API.
"""

import anthropic
from anthropic import Anthropic

from clipster.models import FailureReason, ProviderId
from clipster.providers.base import MalformedResponseError, ProviderClient, classify_sdk_error

DEFAULT_MODEL = "claude-haiku-4-5-20251001"


class AnthropicClient(ProviderClient):
    """Completes prompts with Anthropic's Claude."""

    provider_id = ProviderId.ANTHROPIC

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, **kwargs):
        super().__init__(model=model, **kwargs)
        # Anthropic only accepts temperatures in [0, 1]
        self.temperature = min(max(self.temperature, 0.0), 1.0)
        self.client = Anthropic(api_key=api_key, timeout=self.timeout, max_retries=0)

    def _request(self, prompt: str) -> str:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=self.system_prompt,
            messages=[{"role": "user", "content": prompt}],
        )
        texts = [
            block.text
            for block in (response.content or [])
            if getattr(block, "type", None) == "text"
        ]
        if not texts:
            raise MalformedResponseError("No text content in Anthropic response")
        return "".join(texts)

    def _classify(self, error: Exception) -> FailureReason:
        return classify_sdk_error(error, anthropic)

    def close(self) -> None:
        self.client.close()
