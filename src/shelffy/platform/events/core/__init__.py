"""Event channel core: protocols, entities and subject matching."""

from .entities import ChannelMessage, ConsumerHandle, PublishAck, StreamConfig
from .protocols import EventChannelProtocol
from .subjects import subject_matches, validate_subject

__all__ = [
    "ChannelMessage",
    "ConsumerHandle",
    "PublishAck",
    "StreamConfig",
    "EventChannelProtocol",
    "subject_matches",
    "validate_subject",
]
