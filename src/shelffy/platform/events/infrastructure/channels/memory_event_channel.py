"""In-memory event channel for development and testing.

Keeps the delivery semantics of the Redis channel in one process:
messages are retained per stream, each durable consumer has its own
cursor and pending set, and pending messages idle for longer than
``claim_min_idle_seconds`` are delivered again with ``redelivered=True``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .....config.constants import DeliverPolicy
from .....core.exceptions import EventChannelError, EventPublishingError, StreamNotFoundError
from ...core.entities.channel_message import (
    ChannelMessage,
    ConsumerHandle,
    PublishAck,
    StreamConfig,
)
from ...core.protocols.event_channel import EventChannelProtocol
from ...core.subjects import subject_matches, validate_subject


logger = logging.getLogger(__name__)


@dataclass
class _StoredMessage:
    message_id: str
    subject: str
    data: bytes


@dataclass
class _Pending:
    message: _StoredMessage
    delivered_at: float


@dataclass
class _DurableState:
    filter_subject: str
    cursor: int = 0
    pending: Dict[str, _Pending] = field(default_factory=dict)


@dataclass
class _Stream:
    config: StreamConfig
    messages: List[_StoredMessage] = field(default_factory=list)
    durables: Dict[str, _DurableState] = field(default_factory=dict)


class MemoryEventChannel(EventChannelProtocol):
    """Process-local event channel."""
    
    def __init__(self, claim_min_idle_seconds: float = 300.0):
        self._claim_min_idle_seconds = claim_min_idle_seconds
        self._streams: Dict[str, _Stream] = {}
        self._sequence = 0
        self._condition = asyncio.Condition()
        self._publish_error: Optional[Exception] = None
    
    def fail_publishes(self, error: Optional[Exception]) -> None:
        """Make every publish raise ``error``; ``None`` restores publishing."""
        self._publish_error = error
    
    def published(self, stream_name: str) -> List[Tuple[str, bytes]]:
        """Subjects and payloads retained in the stream, in order."""
        stream = self._streams.get(stream_name)
        if stream is None:
            return []
        return [(message.subject, message.data) for message in stream.messages]
    
    def pending_count(self, stream_name: str, durable_name: str) -> int:
        """Messages delivered to the durable consumer but not yet acknowledged."""
        stream = self._streams.get(stream_name)
        if stream is None or durable_name not in stream.durables:
            return 0
        return len(stream.durables[durable_name].pending)
    
    async def ensure_stream(self, name: str, subjects: List[str]) -> StreamConfig:
        if not name:
            raise EventChannelError("Stream name must not be empty")
        if not subjects:
            raise EventChannelError(f"Stream '{name}' must capture at least one subject")
        for subject in subjects:
            validate_subject(subject, allow_wildcards=True)
        
        config = StreamConfig(name=name, subjects=list(subjects))
        async with self._condition:
            if name in self._streams:
                self._streams[name].config = config
            else:
                self._streams[name] = _Stream(config=config)
        return config
    
    async def ensure_durable_consumer(
        self,
        stream_name: str,
        durable_name: str,
        filter_subject: str,
        deliver_policy: DeliverPolicy = DeliverPolicy.ALL
    ) -> ConsumerHandle:
        validate_subject(filter_subject, allow_wildcards=True)
        
        async with self._condition:
            stream = self._streams.get(stream_name)
            if stream is None:
                raise StreamNotFoundError(
                    f"Stream '{stream_name}' is not declared",
                    details={"stream": stream_name}
                )
            if durable_name not in stream.durables:
                cursor = 0 if deliver_policy == DeliverPolicy.ALL else len(stream.messages)
                stream.durables[durable_name] = _DurableState(
                    filter_subject=filter_subject, cursor=cursor
                )
            else:
                stream.durables[durable_name].filter_subject = filter_subject
        
        return ConsumerHandle(
            stream_name=stream_name,
            durable_name=durable_name,
            filter_subject=filter_subject,
            consumer_name=f"{durable_name}-memory",
            deliver_policy=deliver_policy,
        )
    
    async def publish(self, subject: str, data: bytes) -> PublishAck:
        validate_subject(subject)
        if self._publish_error is not None:
            raise self._publish_error
        
        async with self._condition:
            stream = next(
                (
                    candidate for candidate in self._streams.values()
                    if any(subject_matches(pattern, subject) for pattern in candidate.config.subjects)
                ),
                None,
            )
            if stream is None:
                raise EventPublishingError(
                    f"No stream captures subject '{subject}'",
                    details={"subject": subject}
                )
            
            self._sequence += 1
            message = _StoredMessage(
                message_id=f"{self._sequence}-0", subject=subject, data=bytes(data)
            )
            stream.messages.append(message)
            self._condition.notify_all()
        
        return PublishAck(stream=stream.config.name, message_id=message.message_id)
    
    def _collect(self, stream: _Stream, state: _DurableState, max_batch: int) -> List[ChannelMessage]:
        now = time.monotonic()
        batch: List[ChannelMessage] = []
        
        for pending in state.pending.values():
            if len(batch) >= max_batch:
                return batch
            if now - pending.delivered_at >= self._claim_min_idle_seconds:
                pending.delivered_at = now
                batch.append(ChannelMessage(
                    message_id=pending.message.message_id,
                    subject=pending.message.subject,
                    data=pending.message.data,
                    redelivered=True,
                ))
        
        while len(batch) < max_batch and state.cursor < len(stream.messages):
            message = stream.messages[state.cursor]
            state.cursor += 1
            if not subject_matches(state.filter_subject, message.subject):
                continue
            state.pending[message.message_id] = _Pending(message=message, delivered_at=now)
            batch.append(ChannelMessage(
                message_id=message.message_id,
                subject=message.subject,
                data=message.data,
            ))
        
        return batch
    
    async def fetch(
        self,
        consumer: ConsumerHandle,
        max_batch: int,
        max_wait: float
    ) -> List[ChannelMessage]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait
        
        async with self._condition:
            stream = self._streams.get(consumer.stream_name)
            if stream is None or consumer.durable_name not in stream.durables:
                raise StreamNotFoundError(f"Consumer '{consumer.durable_name}' is not bound")
            state = stream.durables[consumer.durable_name]
            
            while True:
                batch = self._collect(stream, state, max_batch)
                if batch:
                    return batch
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return []
                try:
                    await asyncio.wait_for(self._condition.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    return []
    
    async def ack(self, consumer: ConsumerHandle, *message_ids: str) -> int:
        acknowledged = 0
        async with self._condition:
            stream = self._streams.get(consumer.stream_name)
            if stream is None or consumer.durable_name not in stream.durables:
                return 0
            pending = stream.durables[consumer.durable_name].pending
            for message_id in message_ids:
                if pending.pop(message_id, None) is not None:
                    acknowledged += 1
        return acknowledged
    
    async def release_consumer(self, consumer: ConsumerHandle) -> bool:
        # One member per durable here; it is kept while it holds pending messages
        return self.pending_count(consumer.stream_name, consumer.durable_name) == 0
    
    async def is_healthy(self) -> bool:
        return True
