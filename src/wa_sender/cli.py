from __future__ import annotations

import argparse
import asyncio
from collections.abc import Iterable
from datetime import datetime

import httpx

from .config import configure_logging, get_settings
from .db import create_session_factory
from .errors import UpstreamError, ValidationError
from .history import KeyValueStore, MessageHistory
from .models import Attachment, AttachmentKind, MessageRecord, MessageStatus
from .notifications import Notification, NotificationType, history_cleared, notification_for
from .pipeline import SendPipeline
from .relay_client import get_relay_client


def get_history() -> MessageHistory:
    settings = get_settings()
    return MessageHistory(KeyValueStore(create_session_factory(settings.database_url)))


def _format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")


def print_notification(notification: Notification | None) -> None:
    if notification is not None:
        print(f"[{notification.type.value}] {notification.message}")


def print_records(records: Iterable[MessageRecord]) -> None:
    """Print history records in a human-readable form."""
    for record in records:
        print("-" * 80)
        print(f"{record.to} | {record.status.value} | at={_format_timestamp(record.timestamp)}")
        if record.text:
            print(record.text)
        if record.attachment is not None:
            print(f"[{record.attachment.kind.value}] {record.attachment.url}")
        if record.error:
            print(f"error: {record.error}")


def print_error(message: str) -> None:
    print_notification(Notification(NotificationType.ERROR, message))


def print_outcome(record: MessageRecord) -> None:
    print_notification(notification_for(record))


def _attachment_from_args(args: argparse.Namespace) -> Attachment | None:
    if args.file:
        attachment = Attachment.from_file(args.file)
        if args.file_type:
            return Attachment(kind=AttachmentKind(args.file_type), url=attachment.url)
        return attachment
    if args.file_url:
        kind = AttachmentKind(args.file_type or AttachmentKind.DOCUMENT.value)
        return Attachment(kind=kind, url=args.file_url)
    return None


def cmd_send(args: argparse.Namespace) -> int:
    try:
        pipeline = SendPipeline(get_history(), get_relay_client(), on_complete=print_outcome)
        record = asyncio.run(pipeline.send(args.to, args.text, _attachment_from_args(args)))
    except (ValidationError, RuntimeError) as exc:
        print_error(str(exc))
        return 1
    return 0 if record.status is MessageStatus.SENT else 1


def cmd_verify(args: argparse.Namespace) -> int:
    try:
        result = asyncio.run(get_relay_client().verify())
    except (UpstreamError, httpx.HTTPError, ValueError, RuntimeError) as exc:
        print_error(str(exc) or "API key verification failed")
        return 1
    print(result.message or ("API key is valid" if result.is_valid else "Invalid API key"))
    return 0 if result.is_valid else 1


def cmd_history(args: argparse.Namespace) -> int:
    records = get_history().list()
    if not records:
        print("No messages sent yet.")
        return 0
    print_records(records[: args.limit] if args.limit else records)
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    get_history().clear()
    print_notification(history_cleared())
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("wa_sender.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wa-sender")
    sub = parser.add_subparsers(dest="command", required=True)

    send = sub.add_parser("send", help="send a message through the relay")
    send.add_argument("--to", required=True)
    send.add_argument("--text", default="")
    media = send.add_mutually_exclusive_group()
    media.add_argument("--file", help="local file to attach")
    media.add_argument("--file-url", help="URL of the media to attach")
    send.add_argument(
        "--file-type",
        choices=[k.value for k in AttachmentKind],
        help="attachment kind; defaults to the file's content type, or document for --file-url",
    )
    send.set_defaults(func=cmd_send)

    verify = sub.add_parser("verify", help="check the configured API key")
    verify.set_defaults(func=cmd_verify)

    history = sub.add_parser("history", help="show sent messages, newest first")
    history.add_argument("--limit", type=int, default=0)
    history.set_defaults(func=cmd_history)

    clear = sub.add_parser("clear", help="drop the local message history")
    clear.set_defaults(func=cmd_clear)

    serve = sub.add_parser("serve", help="run the relay")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
