"""Resolution and lifecycle of the standalone label store."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable

import structlog

from rmadmin.config import AdminSettings, StoreKind, StoreSettings
from rmadmin.errors import LocalStoreError, UnsupportedStoreError
from rmadmin.storage.base import LabelStore
from rmadmin.storage.file_store import FileSystemLabelStore
from rmadmin.storage.memory_store import InMemoryLabelStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StoreFactory:
    """A resolved store implementation.

    Attributes:
        kind: Configured store kind.
        supports_recovery: Whether stores built here persist independently
            of the resource manager process.
        build: Zero-argument constructor for the store.
    """

    kind: StoreKind
    supports_recovery: bool
    build: Callable[[], LabelStore]


def resolve_store_factory(settings: StoreSettings) -> StoreFactory:
    """Map store settings to a factory, deciding recovery support up front."""
    if settings.kind == StoreKind.FILESYSTEM:
        return StoreFactory(
            kind=settings.kind,
            supports_recovery=FileSystemLabelStore.supports_recovery,
            build=lambda: FileSystemLabelStore(settings.path),
        )
    if settings.kind == StoreKind.MEMORY:
        return StoreFactory(
            kind=settings.kind,
            supports_recovery=InMemoryLabelStore.supports_recovery,
            build=InMemoryLabelStore,
        )
    raise LocalStoreError(f"Unknown label store kind: {settings.kind}")


@asynccontextmanager
async def open_standalone_store(settings: AdminSettings) -> AsyncIterator[LabelStore]:
    """Open the configured store for one operation and always close it.

    Raises:
        UnsupportedStoreError: If the configured store cannot recover on its
            own; nothing is constructed in that case.
    """
    factory = resolve_store_factory(settings.label_store)
    if not factory.supports_recovery:
        msg = (
            f"Label store '{factory.kind.value}' doesn't have ability to recover, "
            "rmadmin will exit"
        )
        await logger.aerror("label_store_unsupported", kind=factory.kind.value)
        raise UnsupportedStoreError(msg)

    store = factory.build()
    try:
        await store.init()
        await store.start()
        yield store
    finally:
        await store.close()
