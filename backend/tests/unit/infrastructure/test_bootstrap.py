"""Tests for application wiring and lifecycle."""

import pytest

from application.orders.order_writer import OrderWriter
from domain.identity.core.session import SessionState
from domain.metrics.core.counters import MetricsUpdateMode
from domain.orders.core.entities.order import OrderInput
from domain.orders.core.events.order_events import AggregateUpdateFailed, OrderReserved
from infrastructure.bootstrap import app_context, build_app_context
from infrastructure.identity.factory import create_identity_provider
from infrastructure.identity.firebase_provider import FirebaseIdentityProvider
from infrastructure.identity.in_memory_provider import InMemoryIdentityProvider
from infrastructure.remote_store.in_memory_store import InMemoryRemoteStore


@pytest.fixture
def clean_env(monkeypatch):
    """Unset every backend selector so defaults apply."""
    for name in (
        "REMOTE_STORE_BACKEND",
        "IDENTITY_PROVIDER",
        "LOCAL_CACHE_BACKEND",
        "METRICS_UPDATE_MODE",
        "PROFILE_CACHE_TTL_S",
    ):
        monkeypatch.delenv(name, raising=False)


class TestBuildAppContext:
    """Test service wiring."""

    def test_defaults_are_in_memory(self, clean_env):
        """Test every adapter defaults to its in-memory version."""
        ctx = build_app_context()

        assert isinstance(ctx.store, InMemoryRemoteStore)
        assert isinstance(ctx.identity_provider, InMemoryIdentityProvider)
        assert isinstance(ctx.order_writer, OrderWriter)
        assert ctx.aggregator.mode is MetricsUpdateMode.ATOMIC
        assert ctx.event_bus.get_handler_count(AggregateUpdateFailed) == 1
        assert ctx.event_bus.get_handler_count(OrderReserved) == 1

    def test_explicit_adapters_win(self, clean_env, store, provider, local_cache):
        ctx = build_app_context(store=store, local_cache=local_cache, identity_provider=provider)

        assert ctx.store is store
        assert ctx.identity_provider is provider
        assert ctx.local_cache is local_cache

    def test_metrics_mode_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("METRICS_UPDATE_MODE", "read_modify_write")

        assert build_app_context().aggregator.mode is MetricsUpdateMode.READ_MODIFY_WRITE

    def test_firebase_selected(self, monkeypatch):
        monkeypatch.setenv("IDENTITY_PROVIDER", "firebase")
        monkeypatch.setenv("FIREBASE_API_KEY", "test-key")

        assert isinstance(create_identity_provider(), FirebaseIdentityProvider)


class TestAppContextLifecycle:
    """Test the full flow through a running context."""

    @pytest.mark.asyncio
    async def test_sign_up_reserve_and_favorites(self, clean_env, seeded_store):
        """Test a student signs up, reserves an item and favorites its vendor."""
        async with app_context(load_env=False, store=seeded_store) as ctx:
            assert ctx.session_manager.current.state is SessionState.ANONYMOUS

            identity = (
                await ctx.session_manager.sign_up(
                    "ben@campus.edu", "secret1", {"role": "student", "firstName": "Ben"}
                )
            ).unwrap()
            assert ctx.favorites.identity_id == identity.id

            result = await ctx.order_writer.reserve(
                OrderInput(identity.id, "vendor-1", "Pad Thai", 6.29, servings=2)
            )
            assert result.ok
            await ctx.favorites.toggle(identity.id, "Campus Cafe")

            student = await seeded_store.get_document(f"users/{identity.id}")
            assert student.data["metrics"] == {"moneySaved": 6.29, "mealsRescued": 2}
            assert ctx.favorites.is_favorite("Campus Cafe")

            await ctx.session_manager.sign_out()
            assert ctx.favorites.identity_id is None

        assert ctx.event_bus.get_handler_count(OrderReserved) == 0
