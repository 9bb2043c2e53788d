"""
Availability Watcher for Seatbook.
Keeps a fresh view of one event's booked seats.
A fixed-interval poll is the baseline; Redis change notifications only
trigger an earlier refresh. Without Redis the watcher just polls.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

from seatbook.core.config import config
from seatbook.core.exceptions import EventNotFound
from seatbook.db.redis_client import redis_manager
from .availability_service import availability_service, AvailabilitySnapshot

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[AvailabilitySnapshot], Awaitable[None]]


class AvailabilityWatcher:
    """
    Watches one event and calls back whenever its availability changes.
    """

    def __init__(self, event_id: int, on_change: SnapshotCallback, poll_interval: Optional[float] = None):
        self.event_id = event_id
        self.on_change = on_change
        self.poll_interval = poll_interval
        self.channel = None
        self.pubsub = None
        self.running = False
        self.snapshot: Optional[AvailabilitySnapshot] = None
        self._task: Optional[asyncio.Task] = None

    async def _get_configs(self):
        """Get configuration settings."""
        refresh_config = await config.get_refresh_config()
        if self.poll_interval is None:
            self.poll_interval = refresh_config["poll_interval_seconds"]
        self.channel = f"{refresh_config['channel_prefix']}:{self.event_id}"

    async def start(self):
        """Take the first snapshot and start watching."""
        if self.running:
            return

        await self._get_configs()
        self.pubsub = await redis_manager.subscribe(self.channel)
        if self.pubsub is None:
            logger.info(f"Change notifications unavailable for event {self.event_id}, polling every {self.poll_interval}s")

        self.running = True
        try:
            await self.refresh()
        except Exception:
            self.running = False
            await self._close_pubsub()
            raise
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        """Stop watching and release the subscription."""
        self.running = False
        if self._task and self._task is not asyncio.current_task():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        await self._close_pubsub()

    async def _close_pubsub(self):
        if self.pubsub is None:
            return
        pubsub, self.pubsub = self.pubsub, None
        try:
            await pubsub.unsubscribe()
            await pubsub.aclose()
        except Exception as e:
            logger.warning(f"Error closing subscription for event {self.event_id}: {e}")

    async def refresh(self) -> Optional[AvailabilitySnapshot]:
        """
        Read availability from storage and call back if it changed.

        Returns:
            The latest snapshot
        """
        snapshot = await availability_service.get_seat_availability(self.event_id)
        if snapshot != self.snapshot:
            self.snapshot = snapshot
            await self.on_change(snapshot)
        return self.snapshot

    async def _run(self):
        while self.running:
            trigger = await self._wait_for_trigger()
            if not self.running:
                break

            try:
                await self.refresh()
            except EventNotFound:
                logger.info(f"Event {self.event_id} no longer exists, stopping watcher")
                self.running = False
                await self._close_pubsub()
            except Exception as e:
                logger.error(f"Availability refresh ({trigger}) failed for event {self.event_id}: {e}")

    async def _wait_for_trigger(self) -> str:
        """Wait for a change notification or the end of the poll interval."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.poll_interval

        while self.running:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return "poll"

            if self.pubsub is None:
                await asyncio.sleep(remaining)
                return "poll"

            try:
                message = await self.pubsub.get_message(ignore_subscribe_messages=True, timeout=remaining)
            except Exception as e:
                logger.warning(f"Subscription for event {self.event_id} failed, falling back to polling: {e}")
                await self._close_pubsub()
                continue

            if message and message.get("type") == "message":
                self._log_message(message)
                return "push"

            # Small delay to prevent busy waiting
            await asyncio.sleep(min(0.1, max(deadline - loop.time(), 0)))

        return "stopped"

    def _log_message(self, message):
        try:
            data = json.loads(message["data"])
            logger.debug(f"Received {data.get('type')} for event {self.event_id}")
        except (TypeError, ValueError, KeyError):
            logger.warning(f"Malformed change notification on {self.channel}")
