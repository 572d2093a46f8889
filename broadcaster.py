#!/usr/bin/env python3
"""
Event Broadcaster
Fans lifecycle events out to every connected SSE subscriber
"""

import asyncio
import itertools
import json
import logging
import threading
from typing import Dict, List

from errors import DeliveryFailure
from models import LifecycleEvent

logger = logging.getLogger(__name__)

SUBSCRIBER_QUEUE_SIZE = 100

_subscriber_ids = itertools.count(1)


class Subscriber:
    """One subscriber channel backed by a bounded queue"""

    def __init__(self, maxsize: int = SUBSCRIBER_QUEUE_SIZE):
        self.id = next(_subscriber_ids)
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def send(self, event: LifecycleEvent):
        if self.closed:
            raise DeliveryFailure(f"Subscriber {self.id} is closed")
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            raise DeliveryFailure(f"Subscriber {self.id} is not keeping up")

    async def receive(self) -> LifecycleEvent:
        return await self.queue.get()

    def close(self):
        self.closed = True


class EventBroadcaster:
    """
    Publish/subscribe registry

    publish() works on a snapshot of the registry, so subscribers joining or
    leaving mid-publish never affect delivery to the others.
    """

    def __init__(self):
        self._subscribers: Dict[int, Subscriber] = {}
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscriber:
        subscriber = Subscriber()
        with self._lock:
            self._subscribers[subscriber.id] = subscriber
            total = len(self._subscribers)
        logger.info(f"✅ Client {subscriber.id} registered (total clients: {total})")
        return subscriber

    def unsubscribe(self, subscriber: Subscriber):
        subscriber.close()
        with self._lock:
            removed = self._subscribers.pop(subscriber.id, None) is not None
            total = len(self._subscribers)
        if removed:
            logger.info(f"🔌 Client {subscriber.id} disconnected (total clients: {total})")

    def publish(self, event: LifecycleEvent) -> int:
        """
        Deliver an event to every registered subscriber

        Subscribers are served in registration order. One that was closed
        after the snapshot was taken is skipped without an error.

        Returns:
            Number of subscribers the event was delivered to
        """
        with self._lock:
            subscribers: List[Subscriber] = list(self._subscribers.values())

        delivered = 0
        for subscriber in subscribers:
            if subscriber.closed:
                self.unsubscribe(subscriber)
                continue
            try:
                subscriber.send(event)
                delivered += 1
            except DeliveryFailure as e:
                logger.error(f"❌ Error sending to client {subscriber.id}: {e}")
                self.unsubscribe(subscriber)

        logger.info(f"📡 Published '{event.status}' event to {delivered} client(s)")
        return delivered


def format_sse(event: LifecycleEvent, event_type: str = "message") -> str:
    """Serialize an event as one SSE message"""
    return f"event: {event_type}\ndata: {json.dumps(event.to_dict())}\n\n"
