"""Abstract persistence provider definition."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class AddResult:
    """Outcome of uploading one file to a provider."""

    cid: str
    asset_hash: str


class PersistenceProvider(ABC):
    """Capability set of a content-addressable storage backend."""

    name: str

    @abstractmethod
    async def add(self, file_path: str, filename: str) -> AddResult:
        """Upload ``file_path`` and return its content identifier and hash."""

    @abstractmethod
    async def pin(self, cid: str, display_name: str) -> None:
        """Ensure ``cid`` is retained durably under ``display_name``."""

    @abstractmethod
    async def is_healthy(self) -> bool:
        """Probe the backend; must return ``False`` instead of raising."""
