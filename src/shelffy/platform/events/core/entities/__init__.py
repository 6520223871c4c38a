"""Event channel entities."""

from .channel_message import ChannelMessage, ConsumerHandle, PublishAck, StreamConfig

__all__ = ["ChannelMessage", "ConsumerHandle", "PublishAck", "StreamConfig"]
