from app.storage.blob_store import (
    S3BlobStore,
    StoredObject,
    BlobStoreError,
    ObjectNotFoundError,
    get_blob_store,
)

__all__ = [
    "S3BlobStore",
    "StoredObject",
    "BlobStoreError",
    "ObjectNotFoundError",
    "get_blob_store",
]
