"""UserAuthentication: usernames, passwords and login sessions."""

import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bodymap.core.security import fresh_id, hash_password, verify_password
from bodymap.models.user import User, UserSession
from bodymap.sync_engine import action, query

logger = logging.getLogger(__name__)


class UserAuthentication:
    """Simple identities with credential matching and login sessions.

    Logged-out sessions stay on record but are marked inactive.
    """

    name = "UserAuthentication"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @action(outputs=("user",))
    async def register(self, username: str, password: str) -> dict:
        """Create a user; the username must not be taken."""
        async with self.session_factory() as db:
            existing = await db.execute(select(User).where(User.username == username))
            if existing.scalar_one_or_none():
                return {"error": f"Username '{username}' already exists."}

            user = User(id=fresh_id(), username=username, password_hash=hash_password(password))
            db.add(user)
            await db.commit()

        logger.info(f"Registered user {username}")
        return {"user": user.id}

    @action(outputs=("session", "user", "username"))
    async def login(self, username: str, password: str) -> dict:
        """Open a new active session.

        Bad credentials are not a failure: every output field is None.
        """
        async with self.session_factory() as db:
            result = await db.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
            if user is None or not verify_password(password, user.password_hash):
                return {"session": None, "user": None, "username": None}

            session = UserSession(id=fresh_id(), user_id=user.id, active=True)
            db.add(session)
            await db.commit()
            return {"session": session.id, "user": user.id, "username": user.username}

    @action()
    async def logout(self, session: str) -> dict:
        async with self.session_factory() as db:
            state = await db.get(UserSession, session)
            if state is None:
                return {"error": f"Session {session} does not exist."}
            if not state.active:
                return {"error": f"Session {session} is already inactive."}

            state.active = False
            await db.commit()
        return {}

    @query(outputs=("user",))
    async def _getUser(self, username: str) -> list[dict]:
        async with self.session_factory() as db:
            result = await db.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
        if user is None:
            return [{"user": None}]
        return [{"user": {"id": user.id, "username": user.username}}]

    @query(outputs=("session",))
    async def _getSession(self, session: str) -> list[dict]:
        """Session state, or a single None record when the session is unknown."""
        async with self.session_factory() as db:
            state = await db.get(UserSession, session)
        return [{"session": state.to_state() if state else None}]
