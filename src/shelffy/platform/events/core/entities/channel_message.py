"""Event channel value types."""

from dataclasses import dataclass, field
from typing import List

from .....config.constants import DeliverPolicy


@dataclass(frozen=True)
class ChannelMessage:
    """A message delivered to a durable consumer.
    
    ``message_id`` is the handle passed back to ``ack``. ``redelivered`` is
    set when the message was handed out before without acknowledgment.
    """
    
    message_id: str
    subject: str
    data: bytes
    redelivered: bool = False


@dataclass(frozen=True)
class PublishAck:
    """Confirmation that a message was durably recorded."""
    
    stream: str
    message_id: str


@dataclass(frozen=True)
class StreamConfig:
    """A named stream and the subject patterns it captures."""
    
    name: str
    subjects: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConsumerHandle:
    """A bound durable consumer, returned by ``ensure_durable_consumer``."""
    
    stream_name: str
    durable_name: str
    filter_subject: str
    consumer_name: str
    deliver_policy: DeliverPolicy = DeliverPolicy.ALL
