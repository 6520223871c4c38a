"""Event channel protocol.

ONLY channel contract - durable, at-least-once subject-addressed
messaging with named streams and durable pull consumers.
"""

from typing import List

from typing_extensions import Protocol, runtime_checkable

from .....config.constants import DeliverPolicy
from ..entities.channel_message import ChannelMessage, ConsumerHandle, PublishAck, StreamConfig


@runtime_checkable
class EventChannelProtocol(Protocol):
    """Durable event channel.
    
    A message published to a subject is persisted in the stream whose
    subject patterns match it and stays there until every durable
    consumer bound to it has acknowledged it. Unacknowledged messages
    are delivered again, so handlers must be idempotent.
    """
    
    async def publish(self, subject: str, data: bytes) -> PublishAck:
        """Publish a payload.
        
        Returns only after the message is durably recorded.
        
        Raises:
            EventPublishingError: If no stream captures the subject or the
                message could not be recorded
        """
        ...
    
    async def ensure_stream(self, name: str, subjects: List[str]) -> StreamConfig:
        """Create the stream, or update its subjects if it exists."""
        ...
    
    async def ensure_durable_consumer(
        self,
        stream_name: str,
        durable_name: str,
        filter_subject: str,
        deliver_policy: DeliverPolicy = DeliverPolicy.ALL
    ) -> ConsumerHandle:
        """Create the named durable consumer if absent and bind to it.
        
        Raises:
            StreamNotFoundError: If the stream was never declared
        """
        ...
    
    async def fetch(
        self,
        consumer: ConsumerHandle,
        max_batch: int,
        max_wait: float
    ) -> List[ChannelMessage]:
        """Pull up to ``max_batch`` messages, waiting at most ``max_wait`` seconds.
        
        Returns an empty list on timeout.
        """
        ...
    
    async def ack(self, consumer: ConsumerHandle, *message_ids: str) -> int:
        """Acknowledge messages so they are never delivered again.
        
        Returns:
            Number of messages acknowledged
        """
        ...
    
    async def release_consumer(self, consumer: ConsumerHandle) -> bool:
        """Leave the durable consumer on shutdown.
        
        Returns:
            False if the member was kept because messages are still pending on it
        """
        ...
    
    async def is_healthy(self) -> bool:
        """Check channel connectivity."""
        ...
