"""Process wiring for the book lifecycle pipeline.

Builds the process-wide handles (database pool, Redis client, S3 client)
once and injects them into the repository, the service and the deletion
processor. Nothing below looks these handles up globally.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

import redis.asyncio as redis

from .config.logging_config import setup_logging
from .config.settings import ShelffySettings, get_settings
from .database.connection import DatabaseManager
from .features.books.repositories.book_repository import BookDatabaseRepository
from .features.books.services.book_events import BookDeletionEventPublisher
from .features.books.services.book_service import BookService
from .features.books.services.deletion_processor import DeletionEventProcessor
from .platform.events.infrastructure.channels.redis_event_channel import RedisEventChannel
from .platform.storage.infrastructure.providers.s3_storage_provider import (
    S3StorageProvider,
    create_s3_storage_provider,
)

logger = logging.getLogger(__name__)


class BooksApplication:
    """Owns the pipeline's components for one process lifetime."""
    
    def __init__(self, settings: Optional[ShelffySettings] = None):
        self.settings = settings or get_settings()
        self.database: Optional[DatabaseManager] = None
        self.redis_client: Optional[redis.Redis] = None
        self.storage: Optional[S3StorageProvider] = None
        self.channel: Optional[RedisEventChannel] = None
        self.repository: Optional[BookDatabaseRepository] = None
        self.book_service: Optional[BookService] = None
        self.deletion_processor: Optional[DeletionEventProcessor] = None
    
    async def start(self, run_deletion_processor: bool = True) -> None:
        """Connect to every backend and start the reconciliation loop.
        
        Args:
            run_deletion_processor: Start the background deletion loop; a
                process that only serves requests can leave it to others
                sharing the same durable consumer
        """
        settings = self.settings
        
        self.database = DatabaseManager(
            settings.database_url,
            app_name=settings.app_name,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            max_inactive_connection_lifetime=settings.db_pool_max_inactive_lifetime,
            command_timeout=settings.db_command_timeout,
        )
        await self.database.create_pool()
        
        self.redis_client = redis.from_url(settings.redis_url)
        self.channel = RedisEventChannel(
            self.redis_client,
            key_prefix=settings.events_key_prefix,
            max_len=settings.events_stream_max_len,
            claim_min_idle_seconds=settings.events_claim_min_idle_seconds,
        )
        
        self.storage = create_s3_storage_provider(settings)
        await self.storage.ensure_bucket()
        
        self.repository = BookDatabaseRepository(
            self.database, query_timeout=settings.book_service_timeout
        )
        if settings.db_auto_create_schema:
            await self.repository.create_schema()
        
        self.book_service = BookService(
            repository=self.repository,
            storage=self.storage,
            event_publisher=BookDeletionEventPublisher(self.channel),
            timeout=settings.book_service_timeout,
        )
        
        self.deletion_processor = DeletionEventProcessor(
            channel=self.channel,
            storage=self.storage,
            stream_name=settings.deletion_stream_name,
            durable_name=settings.deletion_durable_name,
            batch_size=settings.deletion_batch_size,
            max_wait=settings.deletion_max_wait_seconds,
            error_backoff=settings.deletion_error_backoff_seconds,
        )
        # Declares the stream even when the loop runs elsewhere, so publishes route
        await self.deletion_processor.setup()
        if run_deletion_processor:
            self.deletion_processor.start()
        
        logger.info(f"{settings.app_name} started ({settings.environment})")
    
    async def health_check(self) -> Dict[str, bool]:
        """Report connectivity of the database and the event channel."""
        return {
            "database": self.database is not None and await self.database.health_check(),
            "events": self.channel is not None and await self.channel.is_healthy(),
            "deletion_processor": self.deletion_processor is not None and self.deletion_processor.is_running,
        }
    
    async def stop(self) -> None:
        """Stop the loop, then release connections."""
        if self.deletion_processor is not None:
            await self.deletion_processor.stop()
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None
        if self.database is not None:
            await self.database.close_pool()
        logger.info(f"{self.settings.app_name} stopped")


@asynccontextmanager
async def books_application(
    settings: Optional[ShelffySettings] = None,
    run_deletion_processor: bool = True
):
    """Run the pipeline for the duration of the block.
    
    Usage:
        async with books_application() as app:
            book = await app.book_service.upload(...)
    """
    setup_logging()
    app = BooksApplication(settings)
    try:
        await app.start(run_deletion_processor=run_deletion_processor)
        yield app
    finally:
        await app.stop()
