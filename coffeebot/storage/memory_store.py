"""
In-memory blob store for development/testing
"""
import asyncio
import time
from typing import Any, Dict, List, Optional
from coffeebot.storage.base import BlobStoreInterface
from coffeebot.core.logging_config import get_logger


class MemoryBlobStore(BlobStoreInterface):
    """Keeps uploaded artifacts in a dict.

    `get` and `list_keys` let callers inspect what was uploaded.
    """

    def __init__(self):
        self.logger = get_logger("coffeebot.storage.memory")
        self._blobs: Dict[str, bytes] = {}
        self._lock = asyncio.Lock()
        self.logger.info("Memory blob store initialized")

    async def put(self, key: str, body: bytes, content_type: Optional[str] = None) -> str:
        async with self._lock:
            self._blobs[key] = body
        return f"memory://{key}"

    async def get(self, key: str) -> Optional[bytes]:
        async with self._lock:
            return self._blobs.get(key)

    async def list_keys(self, prefix: str = "") -> List[str]:
        async with self._lock:
            return sorted(key for key in self._blobs if key.startswith(prefix))

    async def health_check(self) -> Dict[str, Any]:
        async with self._lock:
            total_keys = len(self._blobs)
        return {
            "status": "healthy",
            "backend": "memory",
            "total_keys": total_keys,
            "timestamp": time.time()
        }
