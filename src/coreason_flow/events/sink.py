# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_flow

from typing import List, Protocol

import redis.asyncio as redis

from coreason_flow.events.protocol import EditorEvent
from coreason_flow.utils.logger import logger


class AsyncEventSink(Protocol):
    """
    Interface for event sinks.
    """

    async def emit(self, event: EditorEvent) -> None:
        """
        Emits an event to the sink.
        """
        ...


class RedisEventSink:
    """
    Event sink that publishes editor events to Redis Pub/Sub,
    so other open editors of the same workflow can refresh.
    """

    def __init__(self, redis_client: redis.Redis) -> None:
        self.redis = redis_client

    async def emit(self, event: EditorEvent) -> None:
        """
        Publishes the event to Redis.
        """
        # Publish to "workflow:{workflow_id}" channel
        await self.redis.publish(f"workflow:{event.workflow_id}", event.model_dump_json())


class LoggingEventSink:
    """
    Event sink that logs events.
    Used when no other sink is configured.
    """

    async def emit(self, event: EditorEvent) -> None:
        """
        Logs the event.
        """
        if event.event_type == "ERROR":
            logger.error(f"Event: {event.event_type} - {event.workflow_id} - {event.message}")
        else:
            logger.info(f"Event: {event.event_type} - {event.workflow_id} - {event.message}")


class CollectingEventSink:
    """
    Event sink that keeps events in memory, in emission order.
    """

    def __init__(self) -> None:
        self.events: List[EditorEvent] = []

    async def emit(self, event: EditorEvent) -> None:
        self.events.append(event)
