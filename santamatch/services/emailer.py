import logging
import os
import ssl
import smtplib
from dataclasses import dataclass
from email.headerregistry import Address
from email.message import EmailMessage
from typing import Iterable, List, Optional, Tuple

from dotenv import load_dotenv

from ..models.constraints import Assignment
from ..models.participants import Participant, participants_by_key
from .notifications import render_notification

logger = logging.getLogger(__name__)

# settings field -> environment variable, for the values a mail run cannot do without
REQUIRED_SMTP_ENV = {
    "host": "SMTP_HOST",
    "username": "SMTP_USERNAME",
    "password": "SMTP_PASSWORD",
    "sender": "SMTP_FROM",
}
DEFAULT_SMTPS_PORT = 465


@dataclass(frozen=True)
class SMTPSettings:
    host: str
    username: str
    password: str
    sender: str
    port: int = DEFAULT_SMTPS_PORT
    sender_name: Optional[str] = None

    @property
    def from_header(self) -> str:
        if not self.sender_name:
            return self.sender
        return str(Address(display_name=self.sender_name, addr_spec=self.sender))


def load_smtp_settings_from_env() -> SMTPSettings:
    """Reads the SMTP_* variables (a .env file is picked up too)."""
    load_dotenv()

    values = {field: (os.getenv(var) or "").strip() for field, var in REQUIRED_SMTP_ENV.items()}
    missing = [REQUIRED_SMTP_ENV[field] for field, value in values.items() if not value]
    if missing:
        raise RuntimeError(f"Missing .env variables: {', '.join(missing)}")

    raw_port = (os.getenv("SMTP_PORT") or "").strip()
    if raw_port and not raw_port.isdigit():
        raise RuntimeError(f"SMTP_PORT must be an integer, got '{raw_port}'.")

    return SMTPSettings(
        port=int(raw_port) if raw_port else DEFAULT_SMTPS_PORT,
        sender_name=(os.getenv("SMTP_FROM_NAME") or "").strip() or None,
        **values,
    )


def send_secret_santa_emails(
    assignment: Assignment,
    participants: Iterable[Participant],
    settings: SMTPSettings,
    details: str,
    dry_run: bool = False
) -> List[Tuple[str, str]]:
    """
    Sends one email per giver that has an email address.
    Givers without an email are skipped (their .txt file is the only copy).
    Returns a list of (giver key, recipient email) actually sent/attempted.
    """
    people = participants_by_key(participants)
    attempted: List[Tuple[str, str]] = []
    messages: List[EmailMessage] = []
    for giver_key, receiver_key in assignment:
        giver = people[giver_key]
        if not giver.email:
            logger.debug("No email for %s, skipping", giver_key)
            continue
        msg = EmailMessage()
        msg["Subject"] = "Secret Santa"
        msg["From"] = settings.from_header
        msg["To"] = giver.email
        msg.set_content(render_notification(giver, people[receiver_key], details))
        messages.append(msg)
        attempted.append((giver_key, giver.email))
    if dry_run or not messages:
        logger.info("Prepared %d emails (not sent)", len(messages))
        return attempted
    context = ssl.create_default_context()
    with smtplib.SMTP_SSL(settings.host, settings.port, context=context) as server:
        server.login(settings.username, settings.password)
        for msg in messages:
            server.send_message(msg)
    logger.info("Sent %d emails via %s:%d", len(messages), settings.host, settings.port)
    return attempted
