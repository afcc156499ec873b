"""
Blob store factory for creating store instances based on configuration
"""
from typing import Optional
from coffeebot.storage.base import BlobStoreInterface
from coffeebot.storage.memory_store import MemoryBlobStore
from coffeebot.storage.s3_store import S3BlobStore
from coffeebot.core.config import settings
from coffeebot.core.logging_config import get_logger


class BlobStoreFactory:
    """Factory for creating blob store instances"""

    @staticmethod
    def create_store(backend: Optional[str] = None) -> BlobStoreInterface:
        logger = get_logger("coffeebot.storage.factory")

        if backend is None:
            backend = settings.BACKUP_BACKEND.lower()

        logger.info(f"Creating blob store backend: {backend}")

        if backend == "s3":
            if not settings.AWS_BUCKET_NAME:
                logger.warning("AWS_BUCKET_NAME not set, falling back to memory store; backups will not persist")
                return MemoryBlobStore()
            return S3BlobStore()
        elif backend == "memory":
            return MemoryBlobStore()
        else:
            logger.warning(f"Unknown blob store backend '{backend}', falling back to memory store")
            return MemoryBlobStore()
