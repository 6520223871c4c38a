"""Background reconciliation of book deletions.

Drains deletion events from the books stream in batches and removes the
referenced objects with one batch delete per fetch. Messages are
acknowledged only after their object is confirmed removed; paths the
store could not remove stay pending and are delivered again once their
claim idle time has passed.
"""

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ....config.constants import BookStreams, BookSubjects, DeletionDefaults, DeliverPolicy
from ....platform.events.core.entities.channel_message import ChannelMessage, ConsumerHandle
from ....platform.events.core.protocols.event_channel import EventChannelProtocol
from ....platform.storage.core.entities.not_deleted_result import NotDeletedResult
from ....platform.storage.core.protocols.storage_provider import StorageProviderProtocol
from ..entities.deletion_event import DeletionEvent


logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    """Outcome of one processed batch."""
    
    fetched: int = 0
    deleted: List[str] = field(default_factory=list)
    not_deleted: List[NotDeletedResult] = field(default_factory=list)
    malformed: int = 0
    acknowledged: int = 0
    
    @property
    def has_failures(self) -> bool:
        return bool(self.not_deleted)


class DeletionEventProcessor:
    """Single long-lived consumer of ``books.delete`` events per process."""
    
    def __init__(
        self,
        channel: EventChannelProtocol,
        storage: StorageProviderProtocol,
        stream_name: str = BookStreams.BOOKS,
        durable_name: str = BookStreams.DELETE_BOOK_DURABLE,
        stream_subjects: Optional[List[str]] = None,
        filter_subject: str = BookSubjects.DELETE_BOOK,
        batch_size: int = DeletionDefaults.BATCH_SIZE,
        max_wait: float = DeletionDefaults.MAX_WAIT_SECONDS,
        error_backoff: float = DeletionDefaults.ERROR_BACKOFF_SECONDS
    ):
        """Initialize deletion processor.
        
        Args:
            channel: Event channel carrying deletion events
            storage: Object store to delete from
            stream_name: Stream holding book events
            durable_name: Durable consumer shared by every process
            stream_subjects: Subject patterns of the stream, ``books.*`` by default
            filter_subject: Subject this consumer handles
            batch_size: Maximum messages per fetch
            max_wait: Maximum seconds a fetch blocks
            error_backoff: Pause after a failed fetch
        """
        self._channel = channel
        self._storage = storage
        self._stream_name = stream_name
        self._durable_name = durable_name
        self._stream_subjects = stream_subjects or [BookSubjects.ALL]
        self._filter_subject = filter_subject
        self._batch_size = batch_size
        self._max_wait = max_wait
        self._error_backoff = error_backoff
        
        self._consumer: Optional[ConsumerHandle] = None
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
    
    @property
    def consumer(self) -> Optional[ConsumerHandle]:
        return self._consumer
    
    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
    
    async def setup(self) -> ConsumerHandle:
        """Declare the stream and bind the durable consumer. Idempotent."""
        await self._channel.ensure_stream(self._stream_name, self._stream_subjects)
        self._consumer = await self._channel.ensure_durable_consumer(
            self._stream_name,
            self._durable_name,
            self._filter_subject,
            DeliverPolicy.ALL,
        )
        logger.info(
            f"Deletion processor bound to '{self._durable_name}' on stream "
            f"'{self._stream_name}' as {self._consumer.consumer_name}"
        )
        return self._consumer
    
    async def process_batch(self, messages: List[ChannelMessage]) -> ReconciliationReport:
        """Delete the objects referenced by a batch and acknowledge what's done."""
        report = ReconciliationReport(fetched=len(messages))
        if not messages:
            return report
        
        message_ids_by_path: Dict[str, List[str]] = {}
        ack_ids: List[str] = []
        for message in messages:
            try:
                event = DeletionEvent.from_json(message.data)
            except ValueError as e:
                logger.error(f"Dropping malformed deletion event {message.message_id}: {e}")
                report.malformed += 1
                ack_ids.append(message.message_id)
                continue
            message_ids_by_path.setdefault(event.path, []).append(message.message_id)
        
        if message_ids_by_path:
            paths = list(message_ids_by_path)
            try:
                report.not_deleted = await self._storage.batch_delete(*paths)
            except Exception as e:
                logger.error(f"Batch delete of {len(paths)} objects failed, leaving events pending: {e}")
                report.not_deleted = [NotDeletedResult(path=path, cause=e) for path in paths]
            
            failed_paths = set()
            for result in report.not_deleted:
                failed_paths.add(result.path)
                logger.error(f"Failed to delete object '{result.path}': {result.cause}")
            
            for path in paths:
                if path not in failed_paths:
                    report.deleted.append(path)
                    ack_ids.extend(message_ids_by_path[path])
        
        if ack_ids:
            try:
                report.acknowledged = await self._channel.ack(self._consumer, *ack_ids)
            except Exception as e:
                # Unacknowledged entries come back; deleting them again is harmless
                logger.error(f"Failed to acknowledge {len(ack_ids)} deletion events: {e}")
        
        return report
    
    async def run_once(self) -> ReconciliationReport:
        """Fetch one batch and process it."""
        if self._consumer is None:
            await self.setup()
        messages = await self._channel.fetch(self._consumer, self._batch_size, self._max_wait)
        return await self.process_batch(messages)
    
    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Process batches until ``stop_event`` is set.
        
        A fetch in progress when the stop signal arrives is abandoned; a
        batch delete in progress runs to completion.
        """
        stop_event = stop_event or self._stop_event
        if self._consumer is None:
            await self.setup()
        
        logger.info(f"Deletion processor started (batch={self._batch_size}, max_wait={self._max_wait}s)")
        while not stop_event.is_set():
            fetch_task = asyncio.ensure_future(
                self._channel.fetch(self._consumer, self._batch_size, self._max_wait)
            )
            stop_task = asyncio.ensure_future(stop_event.wait())
            try:
                done, pending = await asyncio.wait(
                    {fetch_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
                )
            except asyncio.CancelledError:
                fetch_task.cancel()
                stop_task.cancel()
                raise
            
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending)
            
            if fetch_task not in done:
                break
            
            try:
                messages = fetch_task.result()
            except Exception as e:
                logger.error(f"Failed to fetch deletion events: {e}")
                await self._wait_or_stop(stop_event, self._error_backoff)
                continue
            
            if not messages:
                continue
            
            report = await self.process_batch(messages)
            logger.info(
                f"Deletion batch processed: fetched={report.fetched} deleted={len(report.deleted)} "
                f"not_deleted={len(report.not_deleted)} malformed={report.malformed} "
                f"acknowledged={report.acknowledged}"
            )
        
        logger.info("Deletion processor stopped")
    
    async def _wait_or_stop(self, stop_event: asyncio.Event, delay: float) -> None:
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
    
    def start(self) -> asyncio.Task:
        """Launch the loop as a background task."""
        if self.is_running:
            return self._task
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(self._stop_event), name="books-deletion-processor")
        return self._task
    
    async def stop(self) -> None:
        """Signal the loop to stop, wait for it, then leave the consumer group."""
        self._stop_event.set()
        if self._task is None:
            return
        await self._task
        self._task = None
        
        if self._consumer is not None:
            try:
                await self._channel.release_consumer(self._consumer)
            except Exception as e:
                logger.error(f"Failed to release deletion consumer {self._consumer.consumer_name}: {e}")
