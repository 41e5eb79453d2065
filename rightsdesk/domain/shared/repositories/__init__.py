from .clock import Clock
from .storage import BlobStorage, RemoteFetcher
from .tokens import TokenGenerator

__all__ = ["BlobStorage", "Clock", "RemoteFetcher", "TokenGenerator"]
