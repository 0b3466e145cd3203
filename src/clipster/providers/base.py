"""
Provider Abstraction - Base Class

Each remote language-model provider implements ProviderClient. A client
sends one prompt and returns a ProviderReply; provider-side problems are
reported as one of five failure kinds and never raised.
"""

import logging
from abc import ABC, abstractmethod

from clipster.models import FailureReason, ProviderId, ProviderReply

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are a code assistant.
ONLY respond with the requested code, command, or snippet.
NO explanations.
NO markdown (unless it was specifically asked for).
NO unnecessary quotes around response.
BE CONCISE and immediately usable.

Correct example:
User: "Regex for email"
Response: "[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\\.[a-zA-Z]{2,}"

Incorrect example:
User: "Regex for email"
Response: "```text
^[^\\s@]+@[^\\s@]+\\.[^\\s@]+$
```

Or more comprehensive: ..."
"""

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_TOKENS = 500
DEFAULT_TEMPERATURE = 0.8


class MalformedResponseError(Exception):
    """Provider answered, but not in a shape we can use."""
    pass


def clean_response(response: str) -> str:
    """
    Strip whitespace and a surrounding markdown code fence.

    Models asked for a bare snippet still sometimes wrap it in
    ```lang ... ```; the fence must not end up on the clipboard. A one-line
    ```cmd``` loses both fences.
    """
    cleaned = response.strip()
    if cleaned.startswith("```"):
        newline = cleaned.find("\n")
        cleaned = cleaned[newline + 1:] if newline != -1 else cleaned[3:]
    while cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def failure_for_status(status_code: int) -> FailureReason:
    """Map an HTTP status code from a provider API to a failure kind."""
    if status_code == 429:
        return FailureReason.RATE_LIMITED
    if status_code in (401, 403):
        return FailureReason.AUTH_INVALID
    if status_code in (408, 504):
        return FailureReason.TIMEOUT
    if status_code >= 500:
        return FailureReason.UNREACHABLE
    return FailureReason.MALFORMED


def classify_sdk_error(error: Exception, sdk) -> FailureReason:
    """
    Map an exception raised by an anthropic/openai/groq SDK to a failure kind.

    These SDKs share one exception layout, so the module itself is passed in.

    Args:
        error: The exception raised by the SDK call.
        sdk: The SDK module (anthropic, openai or groq).
    """
    # APITimeoutError subclasses APIConnectionError, check it first
    if isinstance(error, sdk.APITimeoutError):
        return FailureReason.TIMEOUT
    if isinstance(error, sdk.APIConnectionError):
        return FailureReason.UNREACHABLE
    if isinstance(error, sdk.RateLimitError):
        return FailureReason.RATE_LIMITED
    if isinstance(error, (sdk.AuthenticationError, sdk.PermissionDeniedError)):
        return FailureReason.AUTH_INVALID
    if isinstance(error, sdk.APIStatusError):
        return failure_for_status(error.status_code)
    return FailureReason.MALFORMED


class ProviderClient(ABC):
    """Sends a prompt to one provider and returns its reply."""

    provider_id: ProviderId

    def __init__(
        self,
        model: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        """
        Args:
            model: Provider model identifier.
            timeout: Seconds before a request is abandoned.
            max_tokens: Reply length limit.
            temperature: Sampling temperature.
            system_prompt: Instructions sent ahead of every prompt.
        """
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.system_prompt = system_prompt

    @abstractmethod
    def _request(self, prompt: str) -> str:
        """Perform the API call and return the raw reply text."""

    @abstractmethod
    def _classify(self, error: Exception) -> FailureReason:
        """Map an exception from _request to a failure kind."""

    def complete(self, prompt: str) -> ProviderReply:
        """
        Send a prompt and wait for the completion.

        Args:
            prompt: Non-empty user text.

        Returns:
            ProviderReply with the cleaned reply text, or a failure kind.
        """
        try:
            raw = self._request(prompt)
        except MalformedResponseError as e:
            logger.warning(f"{self.provider_id.display_name} returned a malformed response: {e}")
            return ProviderReply.failed(self.provider_id, FailureReason.MALFORMED, str(e))
        except Exception as e:
            failure = self._classify(e)
            logger.warning(f"{self.provider_id.display_name} request failed ({failure.value}): {e}")
            return ProviderReply.failed(self.provider_id, failure, str(e))

        if not isinstance(raw, str):
            return ProviderReply.failed(
                self.provider_id, FailureReason.MALFORMED, "reply is not text"
            )

        text = clean_response(raw)
        if not text:
            return ProviderReply.failed(
                self.provider_id, FailureReason.MALFORMED, "empty reply"
            )
        return ProviderReply.success(self.provider_id, text)

    def close(self) -> None:
        """Release the underlying HTTP client, if any."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r}, timeout={self.timeout})"
