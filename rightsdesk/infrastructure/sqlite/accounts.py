from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...domain.accounts.models import Session, User, UserRole
from ...domain.accounts.repositories import AccountsRepository, OneTimeTokensRepository, SessionsRepository
from ..mappers import session_from_row, to_iso, user_from_row
from ..metrics import metrics
from .columns import utc_now_iso
from .database import SQLiteDatabase

USER_COLUMNS = "id, email, full_name, role, password_hash, is_demo, avatar_url, tg_user_id, created_at"


class SQLiteAccountsRepository(AccountsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:users.create", source="database")
    async def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        full_name: str,
        role: UserRole,
        is_demo: bool = False,
    ) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO users(email, full_name, role, password_hash, is_demo, created_at)
                VALUES(?, ?, ?, ?, ?, ?)
                """,
                (email, full_name, role.value, password_hash, int(is_demo), utc_now_iso()),
            )
            await conn.commit()
            return int(cur.lastrowid)

    async def _fetch_one(self, where: str, params: tuple) -> Optional[User]:
        async with self._db.connect() as conn:
            cur = await conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE {where}", params)
            row = await cur.fetchone()
        return user_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:users.get", source="database")
    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._fetch_one("id=?", (user_id,))

    @metrics.wrap_async("db:users.get_by_email", source="database")
    async def get_by_email(self, email: str) -> Optional[User]:
        return await self._fetch_one("email=? COLLATE NOCASE", (email,))

    @metrics.wrap_async("db:users.get_by_telegram", source="database")
    async def get_by_telegram(self, tg_user_id: int) -> Optional[User]:
        return await self._fetch_one("tg_user_id=?", (tg_user_id,))

    @metrics.wrap_async("db:users.update_password", source="database")
    async def update_password(self, user_id: int, password_hash: str) -> None:
        async with self._db.connect() as conn:
            await conn.execute("UPDATE users SET password_hash=? WHERE id=?", (password_hash, user_id))
            await conn.commit()

    @metrics.wrap_async("db:users.set_avatar", source="database")
    async def set_avatar(self, user_id: int, avatar_url: Optional[str]) -> None:
        async with self._db.connect() as conn:
            await conn.execute("UPDATE users SET avatar_url=? WHERE id=?", (avatar_url, user_id))
            await conn.commit()

    @metrics.wrap_async("db:users.link_telegram", source="database")
    async def link_telegram(self, user_id: int, tg_user_id: int) -> None:
        async with self._db.connect() as conn:
            # a chat belongs to one account at a time
            await conn.execute("UPDATE users SET tg_user_id=NULL WHERE tg_user_id=?", (tg_user_id,))
            await conn.execute("UPDATE users SET tg_user_id=? WHERE id=?", (tg_user_id, user_id))
            await conn.commit()


class SQLiteSessionsRepository(SessionsRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:sessions.create", source="database")
    async def create(self, session: Session) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                "INSERT INTO sessions(token, user_id, expires_at) VALUES(?, ?, ?)",
                (session.token, session.user_id, to_iso(session.expires_at)),
            )
            await conn.commit()

    @metrics.wrap_async("db:sessions.get", source="database")
    async def get(self, token: str) -> Optional[Session]:
        async with self._db.connect() as conn:
            cur = await conn.execute("SELECT token, user_id, expires_at FROM sessions WHERE token=?", (token,))
            row = await cur.fetchone()
        return session_from_row(dict(row)) if row else None

    @metrics.wrap_async("db:sessions.delete", source="database")
    async def delete(self, token: str) -> None:
        async with self._db.connect() as conn:
            await conn.execute("DELETE FROM sessions WHERE token=?", (token,))
            await conn.commit()

    @metrics.wrap_async("db:sessions.delete_for_user", source="database")
    async def delete_for_user(self, user_id: int) -> int:
        async with self._db.connect() as conn:
            cur = await conn.execute("DELETE FROM sessions WHERE user_id=?", (user_id,))
            await conn.commit()
            return cur.rowcount


class SQLiteOneTimeTokensRepository(OneTimeTokensRepository):
    def __init__(self, db: SQLiteDatabase):
        self._db = db

    @metrics.wrap_async("db:one_time_tokens.create", source="database")
    async def create(self, *, token: str, purpose: str, user_id: int, expires_at: datetime) -> None:
        async with self._db.connect() as conn:
            await conn.execute(
                "INSERT INTO one_time_tokens(token, purpose, user_id, expires_at) VALUES(?, ?, ?, ?)",
                (token, purpose, user_id, to_iso(expires_at)),
            )
            await conn.commit()

    @metrics.wrap_async("db:one_time_tokens.consume", source="database")
    async def consume(self, *, token: str, purpose: str, now: datetime) -> Optional[int]:
        async with self._db.connect() as conn:
            cur = await conn.execute(
                """
                UPDATE one_time_tokens
                SET consumed_at=?
                WHERE token=? AND purpose=? AND consumed_at IS NULL AND expires_at > ?
                """,
                (to_iso(now), token, purpose, to_iso(now)),
            )
            if cur.rowcount != 1:
                await conn.commit()
                return None
            cur = await conn.execute(
                "SELECT user_id FROM one_time_tokens WHERE token=? AND purpose=?",
                (token, purpose),
            )
            row = await cur.fetchone()
            await conn.commit()
        return int(row["user_id"]) if row else None
