from .models import (
    Copyright,
    CopyrightExport,
    CopyrightPublisher,
    CopyrightRecording,
    CopyrightWriter,
    WorkDetails,
)
from .services import (
    CopyrightChangeResult,
    CopyrightChangeStatus,
    CopyrightService,
    CWRExportResult,
)

__all__ = [
    "CWRExportResult",
    "Copyright",
    "CopyrightChangeResult",
    "CopyrightChangeStatus",
    "CopyrightExport",
    "CopyrightPublisher",
    "CopyrightRecording",
    "CopyrightService",
    "CopyrightWriter",
    "WorkDetails",
]
