"""Application wiring.

Builds every service from environment configuration and manages the
startup/shutdown lifecycle:

    async with app_context() as ctx:
        await ctx.session_manager.sign_in("ana@campus.edu", "secret1")
        await ctx.order_writer.reserve(...)
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
import logging
from typing import Any, AsyncIterator, Optional

from dotenv import load_dotenv

from application.catalog.menu_catalog import MenuCatalog
from application.favorites.favorites_cache import FavoritesCache
from application.identity.profile_service import ProfileService
from application.identity.session_manager import SessionManager
from application.metrics.aggregator import MetricsAggregator
from application.metrics.event_handlers import (
    OrderReservedHandler,
    ReconcileMetricsOnFailureHandler,
)
from application.metrics.reconciler import MetricsReconciler
from application.orders.order_queries import OrderQueries
from application.orders.order_status import OrderStatusService
from application.orders.order_writer import OrderWriter
from domain.identity.auth.ports.identity_provider import IIdentityProvider, Unsubscribe
from domain.orders.core.events.order_events import AggregateUpdateFailed, OrderReserved
from domain.shared.ports.local_cache import ILocalCache
from domain.shared.ports.remote_store import IRemoteStore
from infrastructure.config import (
    get_log_level,
    get_metrics_update_mode,
    get_profile_cache_ttl,
)
from infrastructure.events.in_memory_bus import InMemoryEventBus
from infrastructure.identity.factory import create_identity_provider
from infrastructure.local_cache.factory import create_local_cache
from infrastructure.remote_store.factory import create_remote_store

logger = logging.getLogger("startup")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging (LOG_LEVEL, default INFO)."""
    level_name = (level or get_log_level()).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)


@dataclass
class AppContext:
    """All wired services of one running instance."""

    store: IRemoteStore
    local_cache: ILocalCache
    identity_provider: IIdentityProvider
    event_bus: InMemoryEventBus
    session_manager: SessionManager
    profile_service: ProfileService
    aggregator: MetricsAggregator
    reconciler: MetricsReconciler
    order_writer: OrderWriter
    order_status: OrderStatusService
    order_queries: OrderQueries
    menu_catalog: MenuCatalog
    favorites: FavoritesCache
    _favorites_subscription: Optional[Unsubscribe] = None

    async def start(self) -> None:
        await self.session_manager.start()
        self._favorites_subscription = await self.session_manager.observe_session(
            self.favorites.on_session
        )
        logger.info(
            "startup.ready",
            extra={
                "store": type(self.store).__name__,
                "identity_provider": type(self.identity_provider).__name__,
                "metrics_mode": self.aggregator.mode.value,
            },
        )

    async def dispose(self) -> None:
        if self._favorites_subscription is not None:
            self._favorites_subscription()
            self._favorites_subscription = None
        await self.session_manager.dispose()
        self.event_bus.clear()
        close: Any = getattr(self.store, "close", None)
        if close is not None:
            await close()
        logger.info("shutdown.complete")


def build_app_context(
    store: Optional[IRemoteStore] = None,
    local_cache: Optional[ILocalCache] = None,
    identity_provider: Optional[IIdentityProvider] = None,
) -> AppContext:
    """
    Wire services from configuration; explicit adapters take precedence.

    Environment Variables:
        REMOTE_STORE_BACKEND, IDENTITY_PROVIDER, LOCAL_CACHE_BACKEND,
        METRICS_UPDATE_MODE, PROFILE_CACHE_TTL_S (see infrastructure.config)
    """
    store = store or create_remote_store()
    local_cache = local_cache or create_local_cache()
    identity_provider = identity_provider or create_identity_provider()
    event_bus = InMemoryEventBus()

    profile_service = ProfileService(store)
    aggregator = MetricsAggregator(store, mode=get_metrics_update_mode())
    reconciler = MetricsReconciler(store, aggregator)

    event_bus.subscribe(AggregateUpdateFailed, ReconcileMetricsOnFailureHandler(reconciler).handle)
    event_bus.subscribe(OrderReserved, OrderReservedHandler().handle)

    return AppContext(
        store=store,
        local_cache=local_cache,
        identity_provider=identity_provider,
        event_bus=event_bus,
        session_manager=SessionManager(
            identity_provider,
            store,
            profile_service=profile_service,
            profile_cache_ttl=get_profile_cache_ttl(),
        ),
        profile_service=profile_service,
        aggregator=aggregator,
        reconciler=reconciler,
        order_writer=OrderWriter(store, aggregator, event_bus),
        order_status=OrderStatusService(store),
        order_queries=OrderQueries(store),
        menu_catalog=MenuCatalog(store),
        favorites=FavoritesCache(local_cache),
    )


@asynccontextmanager
async def app_context(load_env: bool = True, **adapters: Any) -> AsyncIterator[AppContext]:
    """Load ``.env``, configure logging, start the context and dispose it on exit."""
    if load_env:
        load_dotenv()
    configure_logging()

    ctx = build_app_context(**adapters)
    await ctx.start()
    try:
        yield ctx
    finally:
        await ctx.dispose()
