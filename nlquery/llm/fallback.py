"""Single-level provider fallback shared by intent parsing and answer generation."""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TypeVar

from nlquery.errors import ProviderNotConfiguredError
from nlquery.llm.base import LLMProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderFallback:
    """Run an operation against the preferred provider, then one alternative.

    Args:
        providers: Configured providers keyed by name
    """

    def __init__(self, providers: Mapping[str, LLMProvider]) -> None:
        self.providers = dict(providers)

    def chain(self, preferred: str) -> list[tuple[str, LLMProvider]]:
        """Return the providers to try, preferred first, at most two."""
        names = [preferred] + [name for name in self.providers if name != preferred]
        return [(name, self.providers[name]) for name in names if name in self.providers][:2]

    def is_configured(self) -> bool:
        return bool(self.providers)

    async def run(
        self,
        preferred: str,
        operation: Callable[[str, LLMProvider], Awaitable[T]],
        label: str = "llm request",
    ) -> T:
        """Execute ``operation`` with automatic fallback.

        Args:
            preferred: Name of the provider to try first
            operation: Coroutine factory receiving ``(name, provider)``
            label: Operation name used in logs and errors

        Returns:
            Result of the first successful attempt

        Raises:
            ProviderNotConfiguredError: If no provider is configured
            Exception: The last provider error, unwrapped, if every attempt fails
        """
        chain = self.chain(preferred)
        if not chain:
            raise ProviderNotConfiguredError(preferred, label)

        *fallbacks, (last_name, last_provider) = chain
        for name, provider in fallbacks:
            try:
                return await operation(name, provider)
            except Exception as e:
                logger.warning(f"{label} failed with provider '{name}': {e}")

        try:
            return await operation(last_name, last_provider)
        except Exception as e:
            logger.warning(f"{label} failed with provider '{last_name}': {e}")
            raise
