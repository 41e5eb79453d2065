from .copyright_service import (
    CopyrightChangeResult,
    CopyrightChangeStatus,
    CopyrightService,
    CWRExportResult,
)

__all__ = [
    "CWRExportResult",
    "CopyrightChangeResult",
    "CopyrightChangeStatus",
    "CopyrightService",
]
