from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Awaitable, Callable, Optional

from ...security import SecurityService, Severity
from ...security.sanitize import (
    MAX_UPLOAD_BYTES,
    sanitize_input,
    validate_email,
    validate_file_upload,
    validate_password,
)
from ...shared.repositories import BlobStorage, Clock, TokenGenerator
from ..models import Session, User, UserRole
from ..passwords import hash_password, verify_password
from ..repositories import AccountsRepository, OneTimeTokensRepository, SessionsRepository

logger = logging.getLogger(__name__)

RESET_PURPOSE = "password_reset"
LINK_PURPOSE = "chat_link"
AVATAR_TYPES = ("image/png", "image/jpeg", "image/webp", "image/gif")


class SignUpStatus(Enum):
    CREATED = "created"
    INVALID_EMAIL = "invalid_email"
    WEAK_PASSWORD = "weak_password"
    EXISTS = "exists"


@dataclass(frozen=True)
class SignUpResult:
    status: SignUpStatus
    user_id: Optional[int] = None
    errors: tuple[str, ...] = ()


class SignInStatus(Enum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    INVALID_CREDENTIALS = "invalid_credentials"


@dataclass(frozen=True)
class SignInResult:
    status: SignInStatus
    session: Optional[Session] = None
    user: Optional[User] = None


@dataclass(frozen=True)
class DemoCredentials:
    user_id: int
    email: str
    password: str


class AccountsService:
    def __init__(
        self,
        *,
        accounts: AccountsRepository,
        sessions: SessionsRepository,
        one_time_tokens: OneTimeTokensRepository,
        security: SecurityService,
        tokens: TokenGenerator,
        clock: Clock,
        storage: BlobStorage | None = None,
        session_ttl_minutes: int = 60,
        reset_ttl_minutes: int = 60,
        link_ttl_minutes: int = 30,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ):
        self._accounts = accounts
        self._sessions = sessions
        self._one_time = one_time_tokens
        self._security = security
        self._tokens = tokens
        self._clock = clock
        self._storage = storage
        self._session_ttl = timedelta(minutes=session_ttl_minutes)
        self._reset_ttl = timedelta(minutes=reset_ttl_minutes)
        self._link_ttl = timedelta(minutes=link_ttl_minutes)
        self._max_upload_bytes = max_upload_bytes

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str = "",
        *,
        role: UserRole = UserRole.SUBSCRIBER,
    ) -> SignUpResult:
        email = (email or "").strip().lower()
        if not validate_email(email):
            return SignUpResult(SignUpStatus.INVALID_EMAIL)
        errors = validate_password(password)
        if errors:
            return SignUpResult(SignUpStatus.WEAK_PASSWORD, errors=tuple(errors))
        if await self._accounts.get_by_email(email):
            return SignUpResult(SignUpStatus.EXISTS)
        user_id = await self._accounts.create_user(
            email=email,
            password_hash=hash_password(password),
            full_name=sanitize_input(full_name, 120),
            role=role,
        )
        await self._security.log_security_event("user_signup", Severity.LOW, user_id=user_id)
        return SignUpResult(SignUpStatus.CREATED, user_id=user_id)

    async def sign_in(self, email: str, password: str, *, identifier: str | None = None) -> SignInResult:
        email = (email or "").strip().lower()
        allowed = await self._security.check_rate_limit(identifier or email, "sign_in", 5, 15, 30)
        if not allowed:
            return SignInResult(SignInStatus.RATE_LIMITED)

        user = await self._accounts.get_by_email(email)
        if not user or not verify_password(password or "", user.password_hash):
            await self._security.log_security_event(
                "failed_login",
                Severity.MEDIUM,
                user_id=user.id if user else None,
                event_data={"email": email},
            )
            return SignInResult(SignInStatus.INVALID_CREDENTIALS)

        session = Session(
            token=self._tokens.token(),
            user_id=user.id,
            expires_at=self._clock.now() + self._session_ttl,
        )
        await self._sessions.create(session)
        await self._security.log_security_event("successful_login", Severity.LOW, user_id=user.id)
        return SignInResult(SignInStatus.OK, session=session, user=user)

    async def validate_session(self, token: str) -> Optional[User]:
        session = await self._sessions.get(token)
        if not session:
            return None
        if session.is_expired(self._clock.now()):
            await self._sessions.delete(token)
            return None
        return await self._accounts.get_user(session.user_id)

    async def sign_out(self, token: str) -> None:
        await self._sessions.delete(token)

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._accounts.get_user(user_id)

    async def request_password_reset(self, email: str) -> Optional[str]:
        user = await self._accounts.get_by_email((email or "").strip().lower())
        if not user:
            return None
        token = self._tokens.token()
        await self._one_time.create(
            token=token,
            purpose=RESET_PURPOSE,
            user_id=user.id,
            expires_at=self._clock.now() + self._reset_ttl,
        )
        await self._security.log_security_event("password_reset_requested", Severity.LOW, user_id=user.id)
        return token

    async def reset_password(self, token: str, new_password: str) -> list[str]:
        errors = validate_password(new_password)
        if errors:
            return errors
        user_id = await self._one_time.consume(token=token, purpose=RESET_PURPOSE, now=self._clock.now())
        if user_id is None:
            return ["Reset link is invalid or has expired"]
        await self._accounts.update_password(user_id, hash_password(new_password))
        await self._sessions.delete_for_user(user_id)
        await self._security.log_security_event("password_reset", Severity.MEDIUM, user_id=user_id)
        return []

    async def issue_link_token(self, user_id: int) -> str:
        token = self._tokens.hex(8)
        await self._one_time.create(
            token=token,
            purpose=LINK_PURPOSE,
            user_id=user_id,
            expires_at=self._clock.now() + self._link_ttl,
        )
        return token

    async def link_chat(self, token: str, tg_user_id: int) -> Optional[User]:
        user_id = await self._one_time.consume(token=token.strip(), purpose=LINK_PURPOSE, now=self._clock.now())
        if user_id is None:
            return None
        await self._accounts.link_telegram(user_id, tg_user_id)
        return await self._accounts.get_user(user_id)

    async def find_by_chat(self, tg_user_id: int) -> Optional[User]:
        return await self._accounts.get_by_telegram(tg_user_id)

    async def update_avatar(self, user_id: int, filename: str, data: bytes, content_type: str) -> Optional[str]:
        if self._storage is None:
            raise RuntimeError("Blob storage is not configured")
        errors = validate_file_upload(
            filename, len(data), content_type, allowed_types=AVATAR_TYPES, max_size=self._max_upload_bytes
        )
        if errors:
            logger.info("Avatar rejected for user %s: %s", user_id, "; ".join(errors))
            return None
        blob = await self._storage.upload("avatars", user_id, filename, data, content_type)
        await self._accounts.set_avatar(user_id, blob.public_url)
        return blob.public_url

    async def create_demo_user(
        self,
        seed: Callable[[int], Awaitable[object]] | None = None,
    ) -> DemoCredentials:
        suffix = self._tokens.hex(4)
        email = f"demo+{suffix}@demo.local"
        password = f"Demo-{self._tokens.hex(6)}!9Rk"
        user_id = await self._accounts.create_user(
            email=email,
            password_hash=hash_password(password),
            full_name="Demo Publisher",
            role=UserRole.SUBSCRIBER,
            is_demo=True,
        )
        if seed is not None:
            await seed(user_id)
        await self._security.log_security_event("demo_user_created", Severity.LOW, user_id=user_id)
        logger.info("Demo account %s created", user_id)
        return DemoCredentials(user_id=user_id, email=email, password=password)
