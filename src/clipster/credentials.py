"""
Credential Registry Module
Determines which providers are usable from API keys present at startup.
"""

import logging
import os
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from clipster.exceptions import ConfigurationError
from clipster.models import FALLBACK_ORDER, ProviderId

logger = logging.getLogger(__name__)


class CredentialSet:
    """Immutable snapshot of provider API keys."""

    __slots__ = ("_keys",)

    def __init__(self, keys: Mapping[ProviderId, str]):
        cleaned = {
            provider: key.strip()
            for provider, key in keys.items()
            if key and key.strip()
        }
        object.__setattr__(self, "_keys", MappingProxyType(cleaned))

    def __setattr__(self, name, value):
        raise AttributeError("CredentialSet is immutable")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CredentialSet":
        """
        Read one API key per provider from the environment.

        Args:
            environ: Mapping to read from. Defaults to os.environ.
        """
        if environ is None:
            environ = os.environ
        return cls({provider: environ.get(provider.env_var, "") for provider in ProviderId})

    def is_enabled(self, provider: ProviderId) -> bool:
        return provider in self._keys

    def api_key(self, provider: ProviderId) -> str:
        """
        Get the API key for an enabled provider.

        Raises:
            KeyError: If the provider has no credential.
        """
        return self._keys[provider]

    @property
    def enabled_providers(self) -> Tuple[ProviderId, ...]:
        """Enabled providers in fallback priority order."""
        return tuple(p for p in FALLBACK_ORDER if p in self._keys)

    def as_flags(self) -> Mapping[ProviderId, bool]:
        return {provider: provider in self._keys for provider in ProviderId}

    def __repr__(self) -> str:
        enabled = ", ".join(p.value for p in self.enabled_providers) or "none"
        return f"CredentialSet(enabled=[{enabled}])"


class CredentialRegistry:
    """
    Read-only view of enabled providers, shared with the orchestrator.

    Computed once at startup and never mutated afterwards.
    """

    def __init__(self, credentials: CredentialSet,
                 preferred: Optional[ProviderId] = None):
        self._credentials = credentials
        self._preferred = preferred

    @classmethod
    def from_env(cls, preferred: Optional[ProviderId] = None,
                 environ: Optional[Mapping[str, str]] = None) -> "CredentialRegistry":
        registry = cls(CredentialSet.from_env(environ), preferred=preferred)
        logger.info(f"Credentials loaded: {registry.credentials!r}")
        return registry

    @property
    def credentials(self) -> CredentialSet:
        return self._credentials

    @property
    def enabled_providers(self) -> Tuple[ProviderId, ...]:
        return self._credentials.enabled_providers

    def is_enabled(self, provider: ProviderId) -> bool:
        return self._credentials.is_enabled(provider)

    def api_key(self, provider: ProviderId) -> str:
        return self._credentials.api_key(provider)

    def default_provider(self) -> Optional[ProviderId]:
        """
        Resolve the "default" provider selector.

        The preferred provider wins when configured, even if it has no
        credential, so that a missing key surfaces as ProviderUnavailable
        instead of silently switching models. Otherwise the first enabled
        provider in priority order is used.
        """
        if self._preferred is not None:
            return self._preferred
        enabled = self.enabled_providers
        return enabled[0] if enabled else None

    def require_any(self) -> None:
        """
        Raises:
            ConfigurationError: If no provider has a credential.
        """
        if not self.enabled_providers:
            names = ", ".join(p.env_var for p in FALLBACK_ORDER)
            raise ConfigurationError(
                f"No AI API keys found. Please set one of: {names}"
            )
