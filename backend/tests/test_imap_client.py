"""Tests for the read-only IMAP mailbox client."""

import imaplib
from datetime import date, datetime, timezone
from email.message import EmailMessage
from unittest.mock import MagicMock

import pytest

from mailsync.error_tracking import MailboxConnectionError
from mailsync.imap_client import (
    HEADER_FETCH,
    UNKNOWN_RECEIVED_AT,
    ImapMailbox,
    MailboxScanner,
    MessageEnvelope,
    decode_header_value,
    fetch_uid,
    iter_fetch_items,
    parse_envelope,
    parse_internaldate,
    parse_message_body,
)

HEADERS = b"Subject: Your Playo booking\r\nFrom: Playo <noreply@playo.co>\r\n\r\n"


@pytest.fixture
def fake_imap():
    imap = MagicMock()
    imap.select.return_value = ("OK", [b"3"])
    return imap


@pytest.fixture
def factory(fake_imap):
    return MagicMock(return_value=fake_imap)


def _mailbox(factory):
    return ImapMailbox("imap.example.com", 993, "courts@example.com", "app-password",
                       imap_factory=factory)


# ============================================================================
# CONNECTION
# ============================================================================


def test_connect_selects_mailbox_read_only(factory, fake_imap):
    with _mailbox(factory):
        pass

    factory.assert_called_once_with("imap.example.com", 993, timeout=15)
    fake_imap.login.assert_called_once_with("courts@example.com", "app-password")
    fake_imap.select.assert_called_once_with("INBOX", readonly=True)
    fake_imap.logout.assert_called_once()


def test_unreachable_host_raises_connection_error():
    factory = MagicMock(side_effect=OSError("Network is unreachable"))

    with pytest.raises(MailboxConnectionError):
        _mailbox(factory).connect()


def test_rejected_login_raises_and_logs_out(factory, fake_imap):
    fake_imap.login.side_effect = imaplib.IMAP4.error("AUTHENTICATIONFAILED")

    with pytest.raises(MailboxConnectionError):
        with _mailbox(factory):
            pass

    fake_imap.logout.assert_called_once()


def test_unselectable_mailbox_raises(factory, fake_imap):
    fake_imap.select.return_value = ("NO", [b"Mailbox does not exist"])

    with pytest.raises(MailboxConnectionError):
        _mailbox(factory).connect()


def test_logout_on_error_inside_block(factory, fake_imap):
    with pytest.raises(RuntimeError):
        with _mailbox(factory):
            raise RuntimeError("boom")

    fake_imap.logout.assert_called_once()


# ============================================================================
# SEARCH & FETCH
# ============================================================================


def test_search_since_formats_imap_date(factory, fake_imap):
    fake_imap.uid.return_value = ("OK", [b"101 102 103"])

    with _mailbox(factory) as mailbox:
        uids = mailbox.search_since(date(2026, 2, 1))

    assert uids == ["101", "102", "103"]
    fake_imap.uid.assert_called_once_with("SEARCH", None, "SINCE", "01-Feb-2026")


def test_failed_command_raises_connection_error(factory, fake_imap):
    fake_imap.uid.side_effect = OSError("connection reset")

    with _mailbox(factory) as mailbox:
        with pytest.raises(MailboxConnectionError):
            mailbox.search_since(date(2026, 2, 1))


def test_fetch_headers_builds_envelopes(factory, fake_imap):
    fake_imap.uid.return_value = ("OK", [
        (b'1 (UID 101 INTERNALDATE "06-Feb-2026 19:00:00 +0530" '
         b'BODY[HEADER.FIELDS (SUBJECT FROM DATE)] {70}', HEADERS),
        b")",
    ])

    with _mailbox(factory) as mailbox:
        [envelope] = mailbox.fetch_headers(["101"])

    fake_imap.uid.assert_called_once_with("FETCH", "101", HEADER_FETCH)
    assert envelope.id == "101"
    assert envelope.subject == "Your Playo booking"
    assert envelope.sender == "Playo <noreply@playo.co>"
    assert envelope.received_at == datetime(2026, 2, 6, 13, 30, tzinfo=timezone.utc)


def test_fetch_bodies_chunks_requests(factory, fake_imap):
    raw = b"Content-Type: text/plain\r\n\r\nSlot Details\r\n"
    fake_imap.uid.side_effect = [
        ("OK", [(b"1 (UID 1 BODY[] {40}", raw), b")", (b"2 (UID 2 BODY[] {40}", raw), b")"]),
        ("OK", [(b"3 (UID 3 BODY[] {40}", raw), b")"]),
    ]

    with _mailbox(factory) as mailbox:
        bodies = mailbox.fetch_bodies(["1", "2", "3"], chunk_size=2)

    assert sorted(bodies) == ["1", "2", "3"]
    assert fake_imap.uid.call_count == 2
    assert "Slot Details" in bodies["3"].text


def test_uid_after_literal_is_read():
    data = [(b"1 (BODY[] {10}", b"raw"), b" UID 105)"]

    [(meta, payload)] = list(iter_fetch_items(data))

    assert fetch_uid(meta) == "105"
    assert payload == b"raw"


# ============================================================================
# PARSING
# ============================================================================


def test_internaldate_converted_to_utc():
    meta = b'1 (UID 101 INTERNALDATE " 6-Feb-2026 19:00:00 +0530")'

    assert parse_internaldate(meta) == datetime(2026, 2, 6, 13, 30, tzinfo=timezone.utc)
    assert parse_internaldate(b"1 (UID 101)") is None


def test_envelope_falls_back_to_date_header():
    headers = b"Subject: Hudle booking\r\nDate: Fri, 06 Feb 2026 10:00:00 +0000\r\n\r\n"

    envelope = parse_envelope("7", b"1 (UID 7)", headers)

    assert envelope.received_at == datetime(2026, 2, 6, 10, 0, tzinfo=timezone.utc)
    assert envelope.sender == ""


def test_envelope_without_any_date_is_deterministic():
    first = parse_envelope("8", b"1 (UID 8)", HEADERS)
    second = parse_envelope("8", b"1 (UID 8)", HEADERS)

    assert first.received_at == UNKNOWN_RECEIVED_AT
    assert second.received_at == first.received_at



def test_decode_header_value():
    assert decode_header_value("=?UTF-8?Q?Your_Playo_booking?=") == "Your Playo booking"
    assert decode_header_value("Booking\r\n confirmed") == "Booking confirmed"
    assert decode_header_value(None) == ""


def test_multipart_body_parts_extracted():
    message = EmailMessage()
    message["Subject"] = "Your Playo booking"
    message.set_content("Slot Details")
    message.add_alternative("<p>Slot Details</p>", subtype="html")
    message.add_attachment(b"%PDF-1.4", maintype="application", subtype="pdf",
                           filename="invoice.pdf")

    body = parse_message_body(message.as_bytes())

    assert "Slot Details" in body.text
    assert "<p>Slot Details</p>" in body.html


def test_scanner_orders_newest_first():
    mailbox = MagicMock()
    mailbox.search_since.return_value = ["9", "100", "10"]
    mailbox.fetch_headers.return_value = [
        MessageEnvelope(id=uid, subject="", sender="", received_at=datetime.now(timezone.utc))
        for uid in ["9", "100", "10"]
    ]

    envelopes = MailboxScanner(mailbox).scan(lookback_days=7)

    assert [e.id for e in envelopes] == ["100", "10", "9"]


def test_scanner_skips_empty_body_fetch():
    mailbox = MagicMock()

    assert MailboxScanner(mailbox).fetch_bodies([]) == {}
    mailbox.fetch_bodies.assert_not_called()
