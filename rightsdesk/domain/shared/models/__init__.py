from .storage import StoredBlob

__all__ = ["StoredBlob"]
