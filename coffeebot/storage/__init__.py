from .base import BlobStoreInterface
from .memory_store import MemoryBlobStore
from .s3_store import S3BlobStore
from .factory import BlobStoreFactory

__all__ = ["BlobStoreInterface", "MemoryBlobStore", "S3BlobStore", "BlobStoreFactory"]
