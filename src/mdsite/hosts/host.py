from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path


class Host(ABC):
    """A hosting target that accepts a packaged site bundle."""

    name: str = "host"

    @abstractmethod
    def deploy(self, bundle: Path, release_id: str, digest: str) -> str:
        """Make the bundle live and return its public location. Raises TransferError."""
        raise NotImplementedError
