from .models import Session, User, UserRole
from .services import (
    AccountsService,
    DemoCredentials,
    SignInResult,
    SignInStatus,
    SignUpResult,
    SignUpStatus,
)

__all__ = [
    "AccountsService",
    "DemoCredentials",
    "Session",
    "SignInResult",
    "SignInStatus",
    "SignUpResult",
    "SignUpStatus",
    "User",
    "UserRole",
]
