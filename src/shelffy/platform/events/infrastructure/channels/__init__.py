"""Event channel implementations."""

from .memory_event_channel import MemoryEventChannel
from .redis_event_channel import RedisEventChannel, default_consumer_name

__all__ = ["MemoryEventChannel", "RedisEventChannel", "default_consumer_name"]
