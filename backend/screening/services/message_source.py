"""
IMAP Message Source
Reads unread application emails from the recruiting mailbox and marks them
processed once the pipeline is done with them.

Messages are fetched with BODY.PEEK so nothing is flagged as seen until
mark_processed() is called; a message that crashed mid-pipeline is simply
picked up again on the next run.
"""
import email
import imaplib
import logging
import re
from datetime import datetime
from email.header import decode_header
from email.message import Message
from email.utils import parsedate_to_datetime
from html import unescape
from typing import Callable, List, Optional

from screening.core.config import Settings
from screening.core.exceptions import ConfigurationError, MessageSourceError
from screening.models.messages import InboundAttachment, InboundMessage

logger = logging.getLogger(__name__)


def clean_html_to_text(html_content: str) -> str:
    """Convert HTML content to plain text"""
    if not html_content:
        return ""

    text = re.sub(r'<(script|style)[^>]*>.*?</\1>', '', html_content, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r'<br\s*/?>', '\n', text, flags=re.IGNORECASE)
    text = re.sub(r'</(p|div|li|tr)>', '\n', text, flags=re.IGNORECASE)
    text = re.sub(r'<[^>]+>', '', text)
    text = unescape(text)
    text = re.sub(r'[ \t]+', ' ', text)
    text = re.sub(r'\n\s*\n', '\n\n', text)
    return text.strip()


def decode_mime_header(value: Optional[str]) -> str:
    if not value:
        return ""
    decoded = ""
    for content, encoding in decode_header(value):
        if isinstance(content, bytes):
            try:
                decoded += content.decode(encoding or 'utf-8', errors='replace')
            except LookupError:
                decoded += content.decode('utf-8', errors='replace')
        else:
            decoded += content
    return decoded.strip()


def _part_text(part: Message) -> str:
    payload = part.get_payload(decode=True)
    if not payload:
        return ""
    charset = part.get_content_charset() or 'utf-8'
    try:
        return payload.decode(charset, errors='replace')
    except LookupError:
        return payload.decode('utf-8', errors='replace')


def parse_message(raw: bytes, message_id: str) -> InboundMessage:
    """Build an InboundMessage from an RFC 822 byte string"""
    msg = email.message_from_bytes(raw)

    try:
        received_at = parsedate_to_datetime(msg.get("Date", ""))
    except (TypeError, ValueError):
        received_at = datetime.now()
    if received_at.tzinfo is not None:
        received_at = received_at.astimezone().replace(tzinfo=None)

    plain, html = [], []
    attachments: List[InboundAttachment] = []
    for part in msg.walk():
        if part.is_multipart():
            continue
        filename = part.get_filename()
        disposition = str(part.get("Content-Disposition", "")).lower()
        if filename or "attachment" in disposition:
            content = part.get_payload(decode=True) or b""
            attachments.append(InboundAttachment(
                name=decode_mime_header(filename) or "attachment",
                content=content,
                media_type=part.get_content_type(),
            ))
        elif part.get_content_type() == "text/plain":
            plain.append(_part_text(part))
        elif part.get_content_type() == "text/html":
            html.append(_part_text(part))

    body = "\n".join(plain) if plain else clean_html_to_text("\n".join(html))

    return InboundMessage(
        message_id=message_id,
        subject=decode_mime_header(msg.get("Subject")),
        body=body.strip(),
        sender=decode_mime_header(msg.get("From")),
        received_at=received_at,
        attachments=attachments,
    )


class ImapMessageSource:
    def __init__(self, settings: Settings, imap_factory: Callable[..., imaplib.IMAP4] = imaplib.IMAP4_SSL):
        self.server = settings.imap_server
        self.port = settings.imap_port
        self.address = settings.email_address
        self.password = settings.email_password
        self.mailbox = settings.imap_mailbox
        self.processed_mailbox = settings.processed_mailbox
        self.max_messages = settings.max_messages_per_run
        self.imap_factory = imap_factory

    def _connect(self) -> imaplib.IMAP4:
        if not self.address or not self.password:
            raise ConfigurationError("EMAIL_ADDRESS / EMAIL_PASSWORD not configured", setting="email_address")
        try:
            mail = self.imap_factory(self.server, self.port)
            mail.login(self.address, self.password)
            status, _ = mail.select(self.mailbox)
        except (imaplib.IMAP4.error, OSError) as e:
            raise MessageSourceError(str(e)[:200]) from e
        if status != 'OK':
            mail.logout()
            raise MessageSourceError(f"mailbox '{self.mailbox}' not available")
        return mail

    def fetch_messages(self) -> List[InboundMessage]:
        """Unread messages in the recruiting mailbox, oldest first"""
        mail = self._connect()
        messages: List[InboundMessage] = []
        try:
            status, data = mail.uid('search', None, 'UNSEEN')
            if status != 'OK':
                raise MessageSourceError("search failed")
            uids = data[0].split()[: self.max_messages]
            logger.info(f"📬 Found {len(uids)} unread message(s) in '{self.mailbox}'")

            for uid in uids:
                uid_text = uid.decode()
                status, msg_data = mail.uid('fetch', uid, '(BODY.PEEK[])')
                if status != 'OK':
                    logger.warning(f"Fetch failed for message {uid_text}")
                    continue
                for response_part in msg_data:
                    if isinstance(response_part, tuple):
                        messages.append(parse_message(response_part[1], uid_text))
        except imaplib.IMAP4.error as e:
            raise MessageSourceError(str(e)[:200]) from e
        finally:
            mail.logout()
        return messages

    def mark_processed(self, message: InboundMessage) -> None:
        mail = self._connect()
        try:
            if self.processed_mailbox:
                mail.uid('copy', message.message_id, self.processed_mailbox)
            mail.uid('store', message.message_id, '+FLAGS', '(\\Seen)')
        except imaplib.IMAP4.error as e:
            raise MessageSourceError(str(e)[:200]) from e
        finally:
            mail.logout()

    def ping(self) -> bool:
        mail = self._connect()
        mail.logout()
        return True
