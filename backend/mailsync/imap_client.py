"""
IMAP Mailbox Client

Read-only access to the booking mailbox over IMAP4 SSL:
- Connect, login and select the mailbox read-only
- UID SEARCH SINCE for the lookback window
- Header-only fetch (subject, sender, date, INTERNALDATE)
- Chunked full-body fetch for classified messages

Messages are never marked seen (BODY.PEEK). Every transport failure is
raised as MailboxConnectionError, and the connection is logged out on
every exit path.
"""

import email
import email.header
import imaplib
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from email import policy
from email.utils import parsedate_to_datetime
from typing import Iterable, Optional

from mailsync.booking_parsing import MessageBody
from mailsync.error_tracking import MailboxConnectionError
from mailsync.logging_config import get_logger

logger = get_logger(__name__)

HEADER_FETCH = "(UID INTERNALDATE BODY.PEEK[HEADER.FIELDS (SUBJECT FROM DATE)])"
BODY_FETCH = "(UID BODY.PEEK[])"

DEFAULT_CHUNK_SIZE = 50

# Receipt time for messages with neither INTERNALDATE nor a usable Date header
UNKNOWN_RECEIVED_AT = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class MessageEnvelope:
    """Header-level view of one message."""
    id: str
    subject: str
    sender: str
    received_at: datetime


def decode_header_value(value: Optional[str]) -> str:
    if not value:
        return ""
    decoded_fragments = []
    for fragment, encoding in email.header.decode_header(str(value)):
        if isinstance(fragment, bytes):
            try:
                decoded_fragments.append(fragment.decode(encoding or "utf-8", errors="replace"))
            except LookupError:
                decoded_fragments.append(fragment.decode("utf-8", errors="replace"))
        else:
            decoded_fragments.append(fragment)
    return re.sub(r"\s+", " ", "".join(decoded_fragments)).strip()


def parse_internaldate(meta: bytes) -> Optional[datetime]:
    """INTERNALDATE from a FETCH response line, as an aware UTC datetime."""
    match = re.search(rb'INTERNALDATE "([^"]+)"', meta or b"")
    if not match:
        return None
    try:
        parsed = datetime.strptime(match.group(1).decode().strip(), "%d-%b-%Y %H:%M:%S %z")
    except ValueError:
        return None
    return parsed.astimezone(timezone.utc)


def parse_date_header(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def iter_fetch_items(fetch_data: Iterable[object]):
    """
    Yield (meta, payload) for each message in a FETCH response.

    Attributes sent after the literal (e.g. a trailing ' UID 42)') are
    appended to meta.
    """
    pending = None
    for part in fetch_data or []:
        if isinstance(part, tuple) and len(part) >= 2:
            if pending is not None:
                yield pending[0], pending[1]
            pending = [part[0] or b"", part[1]]
        elif isinstance(part, bytes) and pending is not None:
            pending[0] += b" " + part
    if pending is not None:
        yield pending[0], pending[1]


def fetch_uid(meta: bytes) -> Optional[str]:
    match = re.search(rb"UID (\d+)", meta or b"")
    return match.group(1).decode() if match else None


def parse_envelope(uid: str, meta: bytes, header_bytes: bytes) -> MessageEnvelope:
    headers = email.message_from_bytes(header_bytes or b"")
    received_at = parse_internaldate(meta) or parse_date_header(headers.get("Date"))
    if received_at is None:
        logger.warning(f"No receipt date for message {uid}", extra={"message_uid": uid})
        received_at = UNKNOWN_RECEIVED_AT
    return MessageEnvelope(
        id=uid,
        subject=decode_header_value(headers.get("Subject")),
        sender=decode_header_value(headers.get("From")),
        received_at=received_at,
    )


def _part_text(part) -> str:
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError, KeyError):
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def parse_message_body(raw: bytes) -> MessageBody:
    """First text/plain and text/html parts of an RFC 822 message (attachments skipped)."""
    message = email.message_from_bytes(raw or b"", policy=policy.default)
    body = MessageBody()

    for part in message.walk():
        if part.is_multipart() or part.get_content_disposition() == "attachment":
            continue
        content_type = part.get_content_type()
        if content_type == "text/plain" and not body.text:
            body.text = _part_text(part)
        elif content_type == "text/html" and not body.html:
            body.html = _part_text(part)

    return body


def chunked(items: list, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class ImapMailbox:
    """
    IMAP4 SSL connection to one mailbox, opened read-only.

    Usage:
        with ImapMailbox(host, port, user, password) as mailbox:
            uids = mailbox.search_since(date(2026, 2, 1))
            envelopes = mailbox.fetch_headers(uids)
    """

    def __init__(self, host: str, port: int, user: str, password: str,
                 mailbox: str = "INBOX", timeout: int = 15,
                 imap_factory=imaplib.IMAP4_SSL):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.mailbox = mailbox
        self.timeout = timeout
        self._imap_factory = imap_factory
        self._imap = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def connect(self) -> None:
        """
        Raises:
            MailboxConnectionError: Unreachable host, rejected login or unselectable mailbox
        """
        try:
            self._imap = self._imap_factory(self.host, self.port, timeout=self.timeout)
            self._imap.login(self.user, self.password)
            status, _ = self._imap.select(self.mailbox, readonly=True)
        except (imaplib.IMAP4.error, OSError) as e:
            self.close()
            raise MailboxConnectionError(f"IMAP connection to {self.host} failed: {e}") from e

        if status != "OK":
            self.close()
            raise MailboxConnectionError(f"Could not select mailbox '{self.mailbox}'")

        logger.info(f"Connected to {self.host} ({self.mailbox}, read-only)")

    def close(self) -> None:
        if self._imap is None:
            return
        try:
            self._imap.logout()
        except (imaplib.IMAP4.error, OSError) as e:
            logger.debug(f"IMAP logout failed: {e}")
        finally:
            self._imap = None

    def _uid(self, command: str, *args):
        if self._imap is None:
            raise MailboxConnectionError("Mailbox is not connected")
        try:
            status, data = self._imap.uid(command, *args)
        except (imaplib.IMAP4.error, OSError) as e:
            raise MailboxConnectionError(f"IMAP {command} failed: {e}") from e
        if status != "OK":
            raise MailboxConnectionError(f"IMAP {command} returned {status}")
        return data

    def search_since(self, since: date) -> list[str]:
        """UIDs of messages received on or after the given date."""
        data = self._uid("SEARCH", None, "SINCE", since.strftime("%d-%b-%Y"))
        if not data or not data[0]:
            return []
        return data[0].decode().split()

    def fetch_headers(self, uids: list[str], chunk_size: int = 200) -> list[MessageEnvelope]:
        envelopes = []
        for chunk in chunked(list(uids), chunk_size):
            data = self._uid("FETCH", ",".join(chunk), HEADER_FETCH)
            for meta, payload in iter_fetch_items(data):
                uid = fetch_uid(meta)
                if uid is None:
                    continue
                envelopes.append(parse_envelope(uid, meta, payload))
        return envelopes

    def fetch_bodies(self, uids: list[str], chunk_size: int = DEFAULT_CHUNK_SIZE) -> dict[str, MessageBody]:
        """Full bodies keyed by UID, fetched chunk_size messages per request."""
        bodies = {}
        for chunk in chunked(list(uids), chunk_size):
            data = self._uid("FETCH", ",".join(chunk), BODY_FETCH)
            for meta, payload in iter_fetch_items(data):
                uid = fetch_uid(meta)
                if uid is None:
                    continue
                bodies[uid] = parse_message_body(payload)
            logger.debug(f"Fetched {len(chunk)} bodies")
        return bodies


class MailboxScanner:
    """Header scan and body fetch over an open mailbox."""

    def __init__(self, mailbox, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.mailbox = mailbox
        self.chunk_size = chunk_size

    def scan(self, lookback_days: int, deep: bool = False) -> list[MessageEnvelope]:
        """
        Envelopes for every message in the lookback window, newest first.

        Raises:
            MailboxConnectionError: On any transport failure (no partial list)
        """
        since = (datetime.now(timezone.utc) - timedelta(days=lookback_days)).date()
        uids = self.mailbox.search_since(since)
        logger.info(f"{'Deep' if deep else 'Quick'} scan since {since}: {len(uids)} messages")

        envelopes = self.mailbox.fetch_headers(uids)
        return sorted(envelopes, key=lambda e: int(e.id), reverse=True)

    def fetch_bodies(self, uids: list[str]) -> dict[str, MessageBody]:
        if not uids:
            return {}
        return self.mailbox.fetch_bodies(uids, chunk_size=self.chunk_size)
