"""
Ponto Urbano Backend — Session Store Tests
============================================

What:  Server-side sessions: create, look up, expire, purge, rename, destroy.
How:   MemorySessionStore with plain User objects and a controllable clock;
       no database involved.
"""

import pytest

from pontourbano.models.user import User
from pontourbano.services.session_store import MemorySessionStore


class FakeClock:
    """Monotonic clock the test can move forward."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _user(user_id=1, name="Maria", email="maria@example.com") -> User:
    return User(id=user_id, name=name, email=email, password_hash="x")


class TestMemorySessionStore:

    def setup_method(self):
        self.clock = FakeClock()
        self.store = MemorySessionStore(max_age=60, clock=self.clock)

    @pytest.mark.asyncio
    async def test_create_then_get_returns_user_identity(self):
        token = await self.store.create(_user())
        session = await self.store.get(token)

        assert session is not None
        assert (session.user_id, session.name, session.email) == (1, "Maria", "maria@example.com")

    @pytest.mark.asyncio
    async def test_tokens_are_unique_per_login(self):
        first = await self.store.create(_user())
        second = await self.store.create(_user())
        assert first != second
        assert len(first) >= 32

    @pytest.mark.asyncio
    async def test_unknown_or_empty_token_is_none(self):
        assert await self.store.get(None) is None
        assert await self.store.get("") is None
        assert await self.store.get("nao-existe") is None

    @pytest.mark.asyncio
    async def test_expired_session_is_removed_on_lookup(self):
        token = await self.store.create(_user())
        self.clock.now += 60

        assert await self.store.get(token) is None
        assert len(self.store) == 0

    @pytest.mark.asyncio
    async def test_session_alive_until_max_age(self):
        token = await self.store.create(_user())
        self.clock.now += 59
        assert await self.store.get(token) is not None

    @pytest.mark.asyncio
    async def test_abandoned_sessions_do_not_accumulate(self):
        """Browsers closed without logging out never present their token again."""
        store = MemorySessionStore(max_age=0)
        for user_id in range(50):
            await store.create(_user(user_id=user_id))

        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_create_purges_only_expired_sessions(self):
        old = await self.store.create(_user(user_id=1))
        self.clock.now += 30
        live = await self.store.create(_user(user_id=2))
        self.clock.now += 31

        await self.store.create(_user(user_id=3))

        assert len(self.store) == 2
        assert await self.store.get(old) is None
        assert await self.store.get(live) is not None

    @pytest.mark.asyncio
    async def test_rename_updates_every_session_of_user(self):
        tokens = [await self.store.create(_user()) for _ in range(2)]
        other = await self.store.create(_user(user_id=2, name="Ana"))

        await self.store.rename(1, "Maria Souza")

        for token in tokens:
            assert (await self.store.get(token)).name == "Maria Souza"
        assert (await self.store.get(other)).name == "Ana"

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self):
        token = await self.store.create(_user())
        await self.store.destroy(token)
        await self.store.destroy(token)
        await self.store.destroy(None)

        assert await self.store.get(token) is None

    @pytest.mark.asyncio
    async def test_close_drops_all_sessions(self):
        await self.store.create(_user())
        await self.store.close()
        assert len(self.store) == 0
