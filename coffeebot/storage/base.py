"""
Base blob store interface for backup artifacts
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BlobStoreInterface(ABC):
    """Abstract base class for blob store implementations"""

    @abstractmethod
    async def put(self, key: str, body: bytes, content_type: Optional[str] = None) -> str:
        """Store body under key and return its location"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Check blob store health and return status"""
        pass
