from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from .errors import UpstreamError, ValidationError
from .history import MessageHistory
from .models import Attachment, MessageRecord
from .relay_client import RelayClient

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class Submission:
    """A submitted message: its pending record plus the task that resolves it."""

    record: MessageRecord
    outcome: asyncio.Task[MessageRecord]

    async def wait(self) -> MessageRecord:
        return await self.outcome


class SendPipeline:
    def __init__(
        self,
        history: MessageHistory,
        relay: RelayClient,
        on_complete: Callable[[MessageRecord], None] | None = None,
    ):
        self._history = history
        self._relay = relay
        self._on_complete = on_complete

    @staticmethod
    def validate(recipient: str, text: str, attachment: Attachment | None) -> None:
        if not recipient or not recipient.strip():
            raise ValidationError("Recipient phone number is required")
        if (not text or not text.strip()) and attachment is None:
            raise ValidationError("Either message text or file is required")

    def submit(
        self,
        recipient: str,
        text: str = "",
        attachment: Attachment | None = None,
    ) -> Submission:
        """
        Validate, store a pending record and start relaying it.

        Must be called from a running event loop. Raises ValidationError
        before anything is stored. Cancelling the returned outcome leaves
        the record pending.
        """
        self.validate(recipient, text, attachment)

        record = MessageRecord(
            id=uuid.uuid4().hex,
            to=recipient,
            text=text or "",
            attachment=attachment,
            timestamp=now_ms(),
        )
        self._history.upsert(record)
        logger.info("Submitted message %s to %s", record.id, record.to)

        outcome = asyncio.get_running_loop().create_task(self._deliver(record))
        return Submission(record=record, outcome=outcome)

    async def send(
        self,
        recipient: str,
        text: str = "",
        attachment: Attachment | None = None,
    ) -> MessageRecord:
        return await self.submit(recipient, text, attachment).wait()

    async def _deliver(self, record: MessageRecord) -> MessageRecord:
        try:
            await self._relay.send(record)
        except (UpstreamError, httpx.HTTPError, ValueError) as exc:
            logger.warning("Sending message %s failed: %s", record.id, exc)
            final = record.resolve(error=str(exc) or "Failed to send message")
        else:
            final = record.resolve()

        # Blocking SQLite write
        await asyncio.to_thread(self._history.upsert, final)
        logger.info("Message %s is %s", final.id, final.status.value)

        if self._on_complete is not None:
            self._on_complete(final)
        return final

    def list(self) -> list[MessageRecord]:
        return self._history.list()

    def clear(self) -> None:
        self._history.clear()
