"""Publisher for book events."""

import logging

from ....config.constants import BookSubjects
from ....platform.events.core.entities.channel_message import PublishAck
from ....platform.events.core.protocols.event_channel import EventChannelProtocol
from ..entities.deletion_event import DeletionEvent


logger = logging.getLogger(__name__)


class BookDeletionEventPublisher:
    """Queues storage objects for reclamation by the deletion processor."""
    
    def __init__(self, channel: EventChannelProtocol, subject: str = BookSubjects.DELETE_BOOK):
        self._channel = channel
        self._subject = subject
    
    async def publish_delete_book_event(self, path: str) -> PublishAck:
        """Publish a DeletionEvent for the path.
        
        Raises:
            EventPublishingError: If the event was not durably recorded
        """
        ack = await self._channel.publish(self._subject, DeletionEvent(path=path).to_json())
        logger.debug(f"Queued deletion of '{path}' as {ack.stream}/{ack.message_id}")
        return ack
