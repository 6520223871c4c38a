"""Event channel platform module.

Durable subject-addressed messaging with at-least-once delivery to
durable pull consumers, backed by Redis Streams.
"""

from .core import (
    ChannelMessage,
    ConsumerHandle,
    EventChannelProtocol,
    PublishAck,
    StreamConfig,
    subject_matches,
    validate_subject,
)
from .infrastructure import MemoryEventChannel, RedisEventChannel, default_consumer_name

__all__ = [
    "ChannelMessage",
    "ConsumerHandle",
    "EventChannelProtocol",
    "PublishAck",
    "StreamConfig",
    "subject_matches",
    "validate_subject",
    "MemoryEventChannel",
    "RedisEventChannel",
    "default_consumer_name",
]
