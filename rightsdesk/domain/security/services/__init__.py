from .security_service import SecurityService

__all__ = ["SecurityService"]
