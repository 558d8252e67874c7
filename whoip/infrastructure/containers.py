"""
Dependency Injection container for whoip.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's configuration.
"""

from dependency_injector import containers, providers
import httpx

from ..application.domain import FeedFetcher, SnapshotStore
from ..application.service import RefreshOrchestrator, WhoipService
from ..settings import settings

from .catalog import build_registry
from .data_directory import resolve_data_directory
from .feed_client import HttpFeedFetcher
from .snapshot_store import ZstdSnapshotStore


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    cli_args = providers.Configuration()

    config = providers.Object(settings)

    http_client = providers.Singleton(httpx.AsyncClient, follow_redirects=True)

    feed_fetcher: providers.Singleton[FeedFetcher] = providers.Singleton(
        HttpFeedFetcher,
        client=http_client,
        timeout=config.provided.http.timeout,
        total_timeout=config.provided.http.total_timeout,
        retry_attempts=config.provided.http.retry_attempts,
        retry_min_wait=config.provided.http.retry_min_wait,
        retry_max_wait=config.provided.http.retry_max_wait,
    )

    snapshot_store: providers.Singleton[SnapshotStore] = providers.Singleton(
        ZstdSnapshotStore,
    )

    data_directory = providers.Singleton(
        resolve_data_directory,
        cli_args.data_dir,
        config.provided.paths.data_dir,
    )

    registry = providers.Singleton(
        build_registry,
        fetcher=feed_fetcher,
        store=snapshot_store,
        data_dir=data_directory,
    )

    refresh_orchestrator = providers.Singleton(
        RefreshOrchestrator,
        registry=registry,
        show_progress=config.provided.refresh.show_progress,
    )

    whoip_service = providers.Factory(
        WhoipService,
        registry=registry,
        orchestrator=refresh_orchestrator,
        refresh_before_lookup=config.provided.lookup.refresh_before_lookup,
    )
