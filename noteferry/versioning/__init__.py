"""Git versioning of migrated vaults."""

from .manager import VaultVersioner

__all__ = ["VaultVersioner"]
