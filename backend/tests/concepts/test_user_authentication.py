"""Tests for the UserAuthentication concept."""

import pytest


class TestRegister:
    """Test user registration."""

    @pytest.mark.asyncio
    async def test_register(self, auth):
        """Test registering a new user."""
        result = await auth.register("alice", "secret")

        assert result["user"]
        records = await auth._getUser("alice")
        assert records == [{"user": {"id": result["user"], "username": "alice"}}]

    @pytest.mark.asyncio
    async def test_duplicate_username(self, auth):
        """Test that a taken username is rejected."""
        await auth.register("alice", "secret")

        result = await auth.register("alice", "other")

        assert result == {"error": "Username 'alice' already exists."}

    @pytest.mark.asyncio
    async def test_unknown_user(self, auth):
        assert await auth._getUser("nobody") == [{"user": None}]


class TestLogin:
    """Test login sessions."""

    @pytest.mark.asyncio
    async def test_login(self, auth):
        """Test logging in opens an active session."""
        user = (await auth.register("alice", "secret"))["user"]

        result = await auth.login("alice", "secret")

        assert result["user"] == user
        assert result["username"] == "alice"
        [record] = await auth._getSession(result["session"])
        assert record["session"]["userId"] == user
        assert record["session"]["active"] is True

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth):
        """Test that bad credentials yield empty outputs, not a failure."""
        await auth.register("alice", "secret")

        result = await auth.login("alice", "wrong")

        assert result == {"session": None, "user": None, "username": None}

    @pytest.mark.asyncio
    async def test_unknown_username(self, auth):
        result = await auth.login("nobody", "secret")

        assert result["session"] is None

    @pytest.mark.asyncio
    async def test_each_login_is_a_new_session(self, auth):
        await auth.register("alice", "secret")

        first = await auth.login("alice", "secret")
        second = await auth.login("alice", "secret")

        assert first["session"] != second["session"]


class TestLogout:
    """Test ending sessions."""

    @pytest.mark.asyncio
    async def test_logout(self, auth):
        """Test that logout marks the session inactive."""
        await auth.register("alice", "secret")
        session = (await auth.login("alice", "secret"))["session"]

        assert await auth.logout(session) == {}

        [record] = await auth._getSession(session)
        assert record["session"]["active"] is False

    @pytest.mark.asyncio
    async def test_logout_twice(self, auth):
        await auth.register("alice", "secret")
        session = (await auth.login("alice", "secret"))["session"]
        await auth.logout(session)

        result = await auth.logout(session)

        assert result == {"error": f"Session {session} is already inactive."}

    @pytest.mark.asyncio
    async def test_logout_unknown_session(self, auth):
        result = await auth.logout("missing")

        assert result == {"error": "Session missing does not exist."}
        assert await auth._getSession("missing") == [{"session": None}]
