from .models import StoredBlob
from .repositories import BlobStorage, Clock, RemoteFetcher, TokenGenerator

__all__ = ["BlobStorage", "Clock", "RemoteFetcher", "StoredBlob", "TokenGenerator"]
