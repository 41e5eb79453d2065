from .accounts_service import (
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
    "SignInResult",
    "SignInStatus",
    "SignUpResult",
    "SignUpStatus",
]
