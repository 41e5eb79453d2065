from .downloader import AssetDownloader
from .local import LocalBlobStorage, safe_filename

__all__ = ["AssetDownloader", "LocalBlobStorage", "safe_filename"]
