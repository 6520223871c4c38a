"""Redis Streams event channel.

Each declared stream is one Redis stream key; each durable consumer is a
consumer group on it. Stream declarations live in a registry hash so any
process can route a subject to its stream:

    {prefix}:streams               hash   stream name -> {"subjects": [...]}
    {prefix}:stream:{name}         stream entries {"subject": ..., "data": ...}
    {prefix}:consumers:{name}      hash   durable name -> consumer config

Messages left pending by a crashed or failing member are reclaimed with
XAUTOCLAIM once they have been idle for ``claim_min_idle_seconds``. A member
leaves the group on shutdown once nothing is pending on it.
"""

import json
import logging
import os
import socket
from typing import Any, Dict, List, Optional, Tuple

from redis.exceptions import RedisError, ResponseError, TimeoutError as RedisTimeoutError

from .....config.constants import DeliverPolicy
from .....core.exceptions import (
    EventChannelError,
    EventPublishingError,
    StreamNotFoundError,
)
from ...core.entities.channel_message import (
    ChannelMessage,
    ConsumerHandle,
    PublishAck,
    StreamConfig,
)
from ...core.protocols.event_channel import EventChannelProtocol
from ...core.subjects import subject_matches, validate_subject


logger = logging.getLogger(__name__)

SUBJECT_FIELD = "subject"
DATA_FIELD = "data"


def _to_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if value is None:
        return b""
    return str(value).encode("utf-8")


def _field(fields: Dict[Any, Any], name: str) -> Any:
    if name in fields:
        return fields[name]
    return fields.get(name.encode("utf-8"))


def default_consumer_name(durable_name: str) -> str:
    """Member name unique to this process within a durable consumer."""
    return f"{durable_name}-{socket.gethostname()}-{os.getpid()}"


class RedisEventChannel(EventChannelProtocol):
    """Redis Streams implementation of the event channel."""
    
    def __init__(
        self,
        redis_client,
        key_prefix: str = "shelffy:events",
        max_len: Optional[int] = None,
        claim_min_idle_seconds: float = 300.0,
        consumer_name: Optional[str] = None
    ):
        """Initialize Redis event channel.
        
        Args:
            redis_client: Async Redis client (redis.asyncio.Redis)
            key_prefix: Prefix for every key the channel owns
            max_len: Approximate stream length cap, ``None`` keeps everything
                until acknowledged
            claim_min_idle_seconds: Idle time after which another member may
                take over a pending message
            consumer_name: Member name override, defaults to a
                host/process-unique name per durable
        """
        self._redis = redis_client
        self._key_prefix = key_prefix
        self._max_len = max_len
        self._claim_min_idle_ms = int(claim_min_idle_seconds * 1000)
        self._consumer_name = consumer_name
        self._streams: Dict[str, StreamConfig] = {}
    
    # ===========================================
    # Key layout
    # ===========================================
    
    @property
    def registry_key(self) -> str:
        return f"{self._key_prefix}:streams"
    
    def stream_key(self, stream_name: str) -> str:
        return f"{self._key_prefix}:stream:{stream_name}"
    
    def consumers_key(self, stream_name: str) -> str:
        return f"{self._key_prefix}:consumers:{stream_name}"
    
    # ===========================================
    # Stream and consumer management
    # ===========================================
    
    async def ensure_stream(self, name: str, subjects: List[str]) -> StreamConfig:
        if not name:
            raise EventChannelError("Stream name must not be empty")
        if not subjects:
            raise EventChannelError(f"Stream '{name}' must capture at least one subject")
        for subject in subjects:
            validate_subject(subject, allow_wildcards=True)
        
        config = StreamConfig(name=name, subjects=list(subjects))
        try:
            await self._redis.hset(self.registry_key, name, json.dumps({"subjects": config.subjects}))
        except RedisError as e:
            logger.error(f"Failed to declare stream '{name}': {e}")
            raise EventChannelError(f"Failed to declare stream: {e}") from e
        
        self._streams[name] = config
        logger.info(f"Stream '{name}' ready for subjects {config.subjects}")
        return config
    
    async def ensure_durable_consumer(
        self,
        stream_name: str,
        durable_name: str,
        filter_subject: str,
        deliver_policy: DeliverPolicy = DeliverPolicy.ALL
    ) -> ConsumerHandle:
        validate_subject(filter_subject, allow_wildcards=True)
        
        try:
            declared = await self._redis.hexists(self.registry_key, stream_name)
        except RedisError as e:
            raise EventChannelError(f"Failed to look up stream '{stream_name}': {e}") from e
        if not declared:
            raise StreamNotFoundError(
                f"Stream '{stream_name}' is not declared",
                details={"stream": stream_name}
            )
        
        start_id = "0" if deliver_policy == DeliverPolicy.ALL else "$"
        try:
            await self._redis.xgroup_create(
                self.stream_key(stream_name), durable_name, id=start_id, mkstream=True
            )
            logger.info(f"Created durable consumer '{durable_name}' on stream '{stream_name}'")
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                logger.error(f"Failed to create durable consumer '{durable_name}': {e}")
                raise EventChannelError(f"Failed to create durable consumer: {e}") from e
        except RedisError as e:
            logger.error(f"Failed to create durable consumer '{durable_name}': {e}")
            raise EventChannelError(f"Failed to create durable consumer: {e}") from e
        
        try:
            await self._redis.hset(
                self.consumers_key(stream_name),
                durable_name,
                json.dumps({"filter_subject": filter_subject, "deliver_policy": deliver_policy.value}),
            )
        except RedisError as e:
            raise EventChannelError(f"Failed to record durable consumer: {e}") from e
        
        return ConsumerHandle(
            stream_name=stream_name,
            durable_name=durable_name,
            filter_subject=filter_subject,
            consumer_name=self._consumer_name or default_consumer_name(durable_name),
            deliver_policy=deliver_policy,
        )
    
    async def _load_streams(self) -> Dict[str, StreamConfig]:
        raw = await self._redis.hgetall(self.registry_key)
        streams = {}
        for name, value in raw.items():
            stream_name = _to_str(name)
            streams[stream_name] = StreamConfig(
                name=stream_name,
                subjects=json.loads(_to_str(value)).get("subjects", []),
            )
        self._streams = streams
        return streams
    
    def _find_stream(self, subject: str) -> Optional[StreamConfig]:
        for config in self._streams.values():
            if any(subject_matches(pattern, subject) for pattern in config.subjects):
                return config
        return None
    
    # ===========================================
    # Publishing
    # ===========================================
    
    async def publish(self, subject: str, data: bytes) -> PublishAck:
        validate_subject(subject)
        
        try:
            stream = self._find_stream(subject)
            if stream is None:
                await self._load_streams()
                stream = self._find_stream(subject)
            if stream is None:
                raise EventPublishingError(
                    f"No stream captures subject '{subject}'",
                    details={"subject": subject}
                )
            
            kwargs = {}
            if self._max_len:
                kwargs = {"maxlen": self._max_len, "approximate": True}
            message_id = await self._redis.xadd(
                self.stream_key(stream.name),
                {SUBJECT_FIELD: subject, DATA_FIELD: data},
                **kwargs
            )
        except RedisError as e:
            logger.error(f"Failed to publish to '{subject}': {e}")
            raise EventPublishingError(f"Failed to publish event: {e}") from e
        
        message_id = _to_str(message_id)
        logger.debug(f"Published to '{subject}' on stream '{stream.name}' as {message_id}")
        return PublishAck(stream=stream.name, message_id=message_id)
    
    # ===========================================
    # Consuming
    # ===========================================
    
    async def fetch(
        self,
        consumer: ConsumerHandle,
        max_batch: int,
        max_wait: float
    ) -> List[ChannelMessage]:
        """Pull a batch for the consumer.
        
        Stale pending messages are reclaimed first, then new messages are
        read with a blocking XREADGROUP. Messages outside the consumer's
        filter subject are acknowledged on sight.
        """
        stream_key = self.stream_key(consumer.stream_name)
        
        try:
            claimed = await self._redis.xautoclaim(
                stream_key,
                consumer.durable_name,
                consumer.consumer_name,
                min_idle_time=self._claim_min_idle_ms,
                start_id="0-0",
                count=max_batch,
            )
            entries = [(entry_id, fields, True) for entry_id, fields in claimed[1]]
            
            if not entries:
                response = await self._redis.xreadgroup(
                    consumer.durable_name,
                    consumer.consumer_name,
                    {stream_key: ">"},
                    count=max_batch,
                    block=max(1, int(max_wait * 1000)),
                )
                for _stream, stream_messages in response or []:
                    entries.extend((entry_id, fields, False) for entry_id, fields in stream_messages)
        except RedisTimeoutError:
            return []
        except RedisError as e:
            logger.error(f"Failed to fetch from '{consumer.durable_name}': {e}")
            raise EventChannelError(f"Failed to fetch messages: {e}") from e
        
        messages, skipped = self._filter_entries(consumer, entries)
        if skipped:
            await self.ack(consumer, *skipped)
        return messages
    
    def _filter_entries(
        self,
        consumer: ConsumerHandle,
        entries: List[Tuple[Any, Any, bool]]
    ) -> Tuple[List[ChannelMessage], List[str]]:
        messages = []
        skipped = []
        for entry_id, fields, redelivered in entries:
            if entry_id is None:
                continue
            message_id = _to_str(entry_id)
            if not fields:
                # Trimmed while pending
                skipped.append(message_id)
                continue
            
            subject = _to_str(_field(fields, SUBJECT_FIELD) or "")
            if not subject_matches(consumer.filter_subject, subject):
                skipped.append(message_id)
                continue
            
            messages.append(ChannelMessage(
                message_id=message_id,
                subject=subject,
                data=_to_bytes(_field(fields, DATA_FIELD)),
                redelivered=redelivered,
            ))
        return messages, skipped
    
    async def ack(self, consumer: ConsumerHandle, *message_ids: str) -> int:
        if not message_ids:
            return 0
        try:
            return int(await self._redis.xack(
                self.stream_key(consumer.stream_name), consumer.durable_name, *message_ids
            ))
        except RedisError as e:
            logger.error(f"Failed to ack {len(message_ids)} messages on '{consumer.durable_name}': {e}")
            raise EventChannelError(f"Failed to acknowledge messages: {e}") from e
    
    async def release_consumer(self, consumer: ConsumerHandle) -> bool:
        """Remove this process's member from the consumer group.
        
        A member still holding pending messages is kept, so those messages
        stay claimable by the other members once idle.
        """
        stream_key = self.stream_key(consumer.stream_name)
        try:
            pending = await self._redis.xpending_range(
                stream_key,
                consumer.durable_name,
                min="-",
                max="+",
                count=1,
                consumername=consumer.consumer_name,
            )
            if pending:
                logger.info(
                    f"Keeping member {consumer.consumer_name} of '{consumer.durable_name}': "
                    f"messages still pending"
                )
                return False
            await self._redis.xgroup_delconsumer(stream_key, consumer.durable_name, consumer.consumer_name)
        except RedisError as e:
            logger.error(f"Failed to release member {consumer.consumer_name} of '{consumer.durable_name}': {e}")
            raise EventChannelError(f"Failed to release consumer: {e}") from e
        
        logger.info(f"Released member {consumer.consumer_name} of '{consumer.durable_name}'")
        return True
    
    async def is_healthy(self) -> bool:
        try:
            pong = await self._redis.ping()
            return pong is True or pong == b"PONG" or pong == "PONG"
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
