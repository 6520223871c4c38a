"""Event channel infrastructure."""

from .channels import MemoryEventChannel, RedisEventChannel, default_consumer_name

__all__ = ["MemoryEventChannel", "RedisEventChannel", "default_consumer_name"]
