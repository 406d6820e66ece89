"""Daily digest email: rendering and SMTP delivery."""

import logging
import smtplib
from datetime import date
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import List, Sequence, Tuple

from .config import MailSettings
from .notifications import DueEvent
from .vehicle import Vehicle

logger = logging.getLogger(__name__)

Selection = Sequence[Tuple[Vehicle, List[DueEvent]]]


def event_count(selection: Selection) -> int:
    return sum(len(events) for _, events in selection)


def digest_lines(selection: Selection) -> List[str]:
    """One plain-text line per event."""
    lines = []
    for vehicle, events in selection:
        for event in events:
            lines.append(
                f"{event.category.digest_icon} {vehicle.display_name}: "
                f"{event.category.label} em {event.date.isoformat()}"
            )
    return lines


def _html_body(selection: Selection, target: date) -> str:
    items = []
    for vehicle, events in selection:
        name = escape(vehicle.name)
        plate = escape(vehicle.plate or "-")
        for event in events:
            items.append(
                f"<li>{event.category.digest_icon} <strong>{name}</strong> ({plate}): "
                f"{escape(event.category.label)} em {event.date.isoformat()}</li>"
            )
    return (
        "<h2>⚠️ Alertas de Frota - AutoGest</h2>\n"
        "<p>Os seguintes eventos estão pendentes ou vencem nos próximos dias "
        f"(até <strong>{target.isoformat()}</strong>):</p>\n"
        "<ul>\n" + "\n".join(items) + "\n</ul>\n"
        "<p>Aceda à aplicação para gerir estes alertas.</p>\n"
    )


def render_digest(selection: Selection, target: date) -> EmailMessage:
    """Build the digest message (plain text with an HTML alternative)."""
    count = event_count(selection)
    message = EmailMessage()
    message["Subject"] = f"⚠️ Alerta AutoGest: {count} eventos próximos ou em atraso"

    text = [
        "Alertas de Frota - AutoGest",
        "",
        f"Os seguintes eventos estão pendentes ou vencem até {target.isoformat()}:",
        "",
    ]
    text.extend(f"- {line}" for line in digest_lines(selection))
    text.extend(["", "Aceda à aplicação para gerir estes alertas."])
    message.set_content("\n".join(text) + "\n")
    message.add_alternative(_html_body(selection, target), subtype="html")
    return message


def send_digest(message: EmailMessage, settings: MailSettings, smtp_factory=smtplib.SMTP) -> None:
    """
    Send the digest to the configured recipient.

    SMTP errors propagate to the caller; there is no retry, the next daily
    run picks up any deadline that is still due.
    """
    del message["From"]
    del message["To"]
    message["From"] = formataddr(("AutoGest Bot", settings.sender))
    message["To"] = settings.recipient

    logger.info("Sending digest to %s via %s:%s", settings.recipient, settings.host, settings.port)
    with smtp_factory(settings.host, settings.port, timeout=30) as smtp:
        if settings.use_tls:
            smtp.starttls()
        if settings.user and settings.password:
            smtp.login(settings.user, settings.password)
        smtp.send_message(message)
    logger.info("Digest sent: %s", message["Subject"])
