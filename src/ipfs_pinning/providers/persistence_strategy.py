"""Selection of the persistence provider used for a pinning run."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..exceptions import NoProviderAvailableError
from .providers_base import PersistenceProvider

logger = logging.getLogger(__name__)


class PersistenceStrategy:
    """Pick the first healthy provider from a priority-ordered list.

    ``last_selected`` only suppresses repeated "using provider" log lines;
    routing never depends on it.
    """

    def __init__(
        self,
        providers: Sequence[PersistenceProvider],
        *,
        log: logging.Logger | None = None,
    ) -> None:
        self._providers = tuple(providers)
        self._log = log or logger
        self.last_selected: PersistenceProvider | None = None

    @property
    def providers(self) -> tuple[PersistenceProvider, ...]:
        return self._providers

    async def get_primary_provider(self) -> PersistenceProvider:
        """Return the first provider whose health probe succeeds."""
        for provider in self._providers:
            if await provider.is_healthy():
                if self.last_selected is not provider:
                    self._log.info("Using healthy provider: %s", provider.name)
                    self.last_selected = provider
                return provider
            self._log.warning("Provider %s is unhealthy. Trying next.", provider.name)

        self.last_selected = None
        raise NoProviderAvailableError(
            "All IPFS persistence providers are currently unavailable."
        )
