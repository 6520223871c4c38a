"""Event channel protocols."""

from .event_channel import EventChannelProtocol

__all__ = ["EventChannelProtocol"]
