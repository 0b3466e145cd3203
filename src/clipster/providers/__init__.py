"""
Provider clients and the lookup table that builds them.

Adding a provider means adding a ProviderClient implementation and an
entry in PROVIDER_FACTORIES.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict

from clipster.exceptions import ProviderError
from clipster.models import ProviderId
from clipster.providers.anthropic_client import AnthropicClient
from clipster.providers.base import (
    SYSTEM_PROMPT,
    ProviderClient,
    clean_response,
    classify_sdk_error,
    failure_for_status,
)
from clipster.providers.groq_client import GroqClient
from clipster.providers.openai_client import OpenAIClient, XAIClient

if TYPE_CHECKING:
    from clipster.config import Config
    from clipster.credentials import CredentialRegistry

logger = logging.getLogger(__name__)

PROVIDER_FACTORIES: Dict[ProviderId, Callable[..., ProviderClient]] = {
    ProviderId.ANTHROPIC: AnthropicClient,
    ProviderId.OPENAI: OpenAIClient,
    ProviderId.XAI: XAIClient,
    ProviderId.GROQ: GroqClient,
}


def create_provider_client(provider: ProviderId, api_key: str,
                           config: "Config") -> ProviderClient:
    """
    Build the client for one provider.

    Raises:
        ProviderError: If the client cannot be constructed.
    """
    factory = PROVIDER_FACTORIES.get(provider)
    if factory is None:
        raise ProviderError(f"No client registered for provider: {provider.value}")
    try:
        return factory(
            api_key=api_key,
            model=config.model_for(provider),
            timeout=config.provider_timeout,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
    except Exception as e:
        raise ProviderError(f"Failed to initialize {provider.display_name}: {e}") from e


def create_provider_clients(registry: "CredentialRegistry",
                            config: "Config") -> Dict[ProviderId, ProviderClient]:
    """
    Build clients for every provider with a credential.

    A provider whose client fails to initialize is logged and left out.
    """
    clients: Dict[ProviderId, ProviderClient] = {}
    for provider in registry.enabled_providers:
        try:
            clients[provider] = create_provider_client(
                provider, registry.api_key(provider), config
            )
            logger.info(f"Provider ready: {provider.display_name} ({config.model_for(provider)})")
        except ProviderError as e:
            logger.error(str(e))
            print(f"[Warning] {provider.display_name} key found but failed to initialize: {e}")
    return clients


__all__ = [
    "PROVIDER_FACTORIES",
    "SYSTEM_PROMPT",
    "AnthropicClient",
    "GroqClient",
    "OpenAIClient",
    "ProviderClient",
    "XAIClient",
    "classify_sdk_error",
    "clean_response",
    "create_provider_client",
    "create_provider_clients",
    "failure_for_status",
]
