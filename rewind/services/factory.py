"""Assemblage des services / Service wiring (explicit dependency injection)."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

# Enregistrer les modeles sur Base.metadata / Register the models on Base.metadata
import rewind.models  # noqa: F401
from rewind.config import Settings, settings as default_settings
from rewind.database import Base
from rewind.entities import build_registry
from rewind.services.audit_trail import AuditTrail
from rewind.services.catalog import SchemaCatalog
from rewind.services.change_feed import ChangeFeedPublisher
from rewind.services.quick_undo import QuickUndoLog
from rewind.services.recorder import ChangeRecorder
from rewind.services.registry import EntityRegistry
from rewind.services.restore import RestoreDispatcher
from rewind.services.snapshot import SnapshotSerializer
from rewind.services.undo import UndoProcessor
from rewind.utils.clock import utcnow


@dataclass
class Services:
    registry: EntityRegistry
    catalog: SchemaCatalog
    serializer: SnapshotSerializer
    dispatcher: RestoreDispatcher
    feed: ChangeFeedPublisher
    audit: AuditTrail
    recorder: ChangeRecorder
    undo: UndoProcessor
    quick_undo: QuickUndoLog


async def create_services(
    engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
    registry: EntityRegistry | None = None,
    feed: ChangeFeedPublisher | None = None,
    clock: Callable[[], datetime] = utcnow,
    config: Settings = default_settings,
) -> Services:
    """Construire les services apres creation du schema / Build the services once the schema exists."""
    registry = registry or build_registry()
    catalog = await SchemaCatalog.load(engine, declared=Base.metadata)
    feed = feed or ChangeFeedPublisher()
    audit = AuditTrail()
    serializer = SnapshotSerializer(registry, catalog)
    dispatcher = RestoreDispatcher(registry, catalog)
    recorder = ChangeRecorder(
        registry,
        feed,
        default_limit=config.RECENT_CHANGES_DEFAULT_LIMIT,
        max_limit=config.RECENT_CHANGES_MAX_LIMIT,
    )
    return Services(
        registry=registry,
        catalog=catalog,
        serializer=serializer,
        dispatcher=dispatcher,
        feed=feed,
        audit=audit,
        recorder=recorder,
        undo=UndoProcessor(
            session_factory, dispatcher, recorder, audit,
            allow_admin_override=config.UNDO_ADMIN_OVERRIDE,
        ),
        quick_undo=QuickUndoLog(
            session_factory, serializer, dispatcher, audit,
            default_ttl=timedelta(minutes=config.QUICK_UNDO_TTL_MINUTES),
            list_limit=config.QUICK_UNDO_LIST_LIMIT,
            clock=clock,
        ),
    )
