from __future__ import annotations

import asyncio

import httpx
import pytest

from wa_sender.errors import ValidationError
from wa_sender.history import MessageHistory
from wa_sender.main import app
from wa_sender.models import Attachment, MessageRecord, MessageStatus
from wa_sender.notifications import NotificationType, notification_for
from wa_sender.pipeline import SendPipeline
from wa_sender.relay_client import RelayClient

from conftest import FakeProvider

RELAY_URL = "http://relay.test/whatsapp-sender"


@pytest.fixture
def relay_client(provider: FakeProvider) -> RelayClient:
    """Client talking to the real relay app, which talks to the fake provider."""
    return RelayClient(RELAY_URL, "secret-key", transport=httpx.ASGITransport(app=app))


@pytest.fixture
def completed() -> list[MessageRecord]:
    return []


@pytest.fixture
def pipeline(
    history: MessageHistory, relay_client: RelayClient, completed: list[MessageRecord]
) -> SendPipeline:
    return SendPipeline(history, relay_client, on_complete=completed.append)


@pytest.mark.parametrize("recipient", ["", "   "])
def test_empty_recipient_creates_no_record(pipeline: SendPipeline, recipient: str) -> None:
    with pytest.raises(ValidationError, match="Recipient"):
        pipeline.submit(recipient, "Hello")

    assert pipeline.list() == []


def test_empty_text_without_attachment_creates_no_record(pipeline: SendPipeline) -> None:
    with pytest.raises(ValidationError):
        pipeline.submit("+15551234567", "  ")

    assert pipeline.list() == []


@pytest.mark.asyncio
async def test_successful_send(
    pipeline: SendPipeline, provider: FakeProvider, completed: list[MessageRecord]
) -> None:
    provider.respond_with(200, {"message": "ok"})

    submission = pipeline.submit("+15551234567", "Hello")
    assert submission.record.status is MessageStatus.PENDING
    assert pipeline.list() == [submission.record]

    final = await submission.wait()

    assert final.id == submission.record.id
    assert final.status is MessageStatus.SENT
    assert final.error is None
    assert pipeline.list() == [final]
    assert completed == [final]
    assert provider.last_json == {"to": "+15551234567", "text": "Hello"}
    assert provider.requests[-1].headers["authorization"] == "Bearer secret-key"


@pytest.mark.asyncio
async def test_failed_send_records_provider_error(
    pipeline: SendPipeline, provider: FakeProvider, completed: list[MessageRecord]
) -> None:
    provider.respond_with(401, {"error": "bad token"})

    final = await pipeline.send("+15551234567", "Hello")

    assert final.status is MessageStatus.FAILED
    assert final.error == "bad token"
    records = pipeline.list()
    assert len(records) == 1
    assert records[0] == final

    notification = notification_for(completed[0])
    assert notification is not None
    assert notification.type is NotificationType.ERROR
    assert notification.message == "bad token"


@pytest.mark.asyncio
async def test_unreachable_relay_fails_the_record(history: MessageHistory) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    relay = RelayClient(RELAY_URL, "secret-key", transport=httpx.MockTransport(refuse))
    pipeline = SendPipeline(history, relay)

    final = await pipeline.send("+15551234567", "Hello")

    assert final.status is MessageStatus.FAILED
    assert final.error == "connection refused"


@pytest.mark.asyncio
async def test_image_attachment_is_forwarded(
    pipeline: SendPipeline, provider: FakeProvider
) -> None:
    final = await pipeline.send("+15551234567", "", Attachment.image("https://cdn.test/a.png"))

    assert final.status is MessageStatus.SENT
    assert provider.last_json == {"to": "+15551234567", "imageUrl": "https://cdn.test/a.png"}


@pytest.mark.asyncio
async def test_history_keeps_most_recent_first(pipeline: SendPipeline) -> None:
    first = await pipeline.send("+15551234567", "one")
    second = await pipeline.send("+15551234567", "two")

    assert [r.id for r in pipeline.list()] == [second.id, first.id]

    pipeline.clear()
    pipeline.clear()
    assert pipeline.list() == []


@pytest.mark.asyncio
async def test_verify_through_relay(relay_client: RelayClient, provider: FakeProvider) -> None:
    provider.respond_with(200, {"success": True})

    result = await relay_client.verify()

    assert result.is_valid is True
    assert result.message == "API key is valid"


@pytest.mark.asyncio
async def test_cancelled_submission_stays_pending(
    pipeline: SendPipeline, provider: FakeProvider, completed: list[MessageRecord]
) -> None:
    submission = pipeline.submit("+15551234567", "Hello")

    submission.outcome.cancel()
    with pytest.raises(asyncio.CancelledError):
        await submission.wait()

    records = pipeline.list()
    assert [r.id for r in records] == [submission.record.id]
    assert records[0].status is MessageStatus.PENDING
    assert completed == []
    assert provider.requests == []
