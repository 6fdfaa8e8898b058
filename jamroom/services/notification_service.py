from __future__ import annotations

import logging
import re
import smtplib
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from email.message import EmailMessage
from enum import Enum
from typing import Callable
from zoneinfo import ZoneInfo

import httpx
from icalendar import Calendar, Event, vCalAddress, vText

from ..config import get_settings
from ..db import models

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


class BookingEventKind(str, Enum):
    requested = "requested"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


@dataclass(slots=True)
class BookingEvent:
    kind: BookingEventKind
    booking_id: int
    user_name: str
    user_email: str
    slot_date: date
    start_time: str
    end_time: str
    rental_type: str
    price: float
    user_mobile: str | None = None
    band_name: str | None = None
    notes: str | None = None
    reason: str | None = None
    actor_name: str | None = None
    admin_emails: tuple[str, ...] = ()
    whatsapp_recipients: tuple[str, ...] = field(default_factory=tuple)


Notifier = Callable[[BookingEvent], None]


@dataclass(slots=True)
class OutgoingEmail:
    to: str
    subject: str
    body: str
    calendar_invite: bytes | None = None


def build_event(
    kind: BookingEventKind,
    booking: models.Booking,
    settings: models.AdminSettings | None,
    *,
    reason: str | None = None,
    actor_name: str | None = None,
    notify_user_whatsapp: bool = False,
) -> BookingEvent:
    admin_emails = tuple(settings.admin_emails or []) if settings else ()
    whatsapp: list[str] = []
    if notify_user_whatsapp and booking.user_mobile:
        whatsapp.append(booking.user_mobile)
    if kind == BookingEventKind.requested and settings:
        whatsapp.extend(settings.admin_mobiles or [])
    return BookingEvent(
        kind=kind,
        booking_id=booking.id,
        user_name=booking.user_name,
        user_email=booking.user_email,
        user_mobile=booking.user_mobile,
        slot_date=booking.slot_date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        rental_type=booking.rental_type,
        price=float(booking.price),
        band_name=booking.band_name,
        notes=booking.notes,
        reason=reason,
        actor_name=actor_name,
        admin_emails=admin_emails,
        whatsapp_recipients=tuple(whatsapp),
    )


def _display_date(value: date) -> str:
    return value.strftime("%A, %d %B %Y")


def _details(event: BookingEvent) -> str:
    lines = [
        f"Date: {_display_date(event.slot_date)}",
        f"Time: {event.start_time} - {event.end_time}",
        f"Rental type: {event.rental_type}",
        f"Price: Rs. {event.price:.2f}",
    ]
    if event.band_name:
        lines.append(f"Band name: {event.band_name}")
    return "\n".join(lines)


def build_calendar_invite(event: BookingEvent) -> bytes:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    start_hour, start_minute = (int(part) for part in event.start_time.split(":"))
    end_hour, end_minute = (int(part) for part in event.end_time.split(":"))
    starts_at = datetime(
        event.slot_date.year, event.slot_date.month, event.slot_date.day,
        start_hour, start_minute, tzinfo=tz,
    )
    ends_at = datetime(
        event.slot_date.year, event.slot_date.month, event.slot_date.day,
        end_hour, end_minute, tzinfo=tz,
    )

    calendar = Calendar()
    calendar.add("prodid", "-//JamRoom//Booking System//EN")
    calendar.add("version", "2.0")
    calendar.add("method", "REQUEST")

    entry = Event()
    entry.add("uid", f"booking-{event.booking_id}@jamroom")
    entry.add("summary", f"{settings.studio_name} Booking - {event.rental_type}")
    description = f"Booking confirmed for {event.user_name}"
    if event.band_name:
        description += f" ({event.band_name})"
    entry.add("description", description)
    entry.add("location", settings.studio_location)
    entry.add("url", settings.base_url)
    entry.add("dtstart", starts_at)
    entry.add("dtend", ends_at)
    entry.add("dtstamp", datetime.now(timezone.utc))

    organizer_email = settings.smtp_from_email or settings.smtp_username
    if organizer_email:
        organizer = vCalAddress(f"MAILTO:{organizer_email}")
        organizer.params["cn"] = vText(settings.studio_name)
        entry["organizer"] = organizer

    for email in (event.user_email, *event.admin_emails):
        attendee = vCalAddress(f"MAILTO:{email}")
        attendee.params["role"] = vText("REQ-PARTICIPANT")
        attendee.params["partstat"] = vText("NEEDS-ACTION")
        attendee.params["rsvp"] = vText("TRUE")
        entry.add("attendee", attendee, encode=0)

    calendar.add_component(entry)
    return calendar.to_ical()


def compose_emails(event: BookingEvent) -> list[OutgoingEmail]:
    studio = get_settings().studio_name
    details = _details(event)
    emails: list[OutgoingEmail] = []

    if event.kind == BookingEventKind.requested:
        emails.append(
            OutgoingEmail(
                to=event.user_email,
                subject=f"Booking Request Received - {studio}",
                body=(
                    f"Hi {event.user_name},\n\n"
                    "Your booking request has been received and is pending admin approval.\n\n"
                    f"{details}\n\nYou will receive a confirmation email once approved."
                ),
            )
        )
        for admin_email in event.admin_emails:
            emails.append(
                OutgoingEmail(
                    to=admin_email,
                    subject=f"New Booking Request - {studio}",
                    body=(
                        f"User: {event.user_name} ({event.user_email})\n{details}\n\n"
                        "Please review and approve/reject this booking in the admin panel."
                    ),
                )
            )
    elif event.kind == BookingEventKind.approved:
        try:
            invite = build_calendar_invite(event)
        except Exception:
            logger.exception(
                "Failed to build calendar invite", extra={"booking_id": event.booking_id}
            )
            invite = None
        emails.append(
            OutgoingEmail(
                to=event.user_email,
                subject=f"Booking Confirmed - {studio}",
                body=(
                    f"Hi {event.user_name},\n\nYour booking has been confirmed.\n\n"
                    f"{details}\n\nA calendar invite is attached to this email."
                ),
                calendar_invite=invite,
            )
        )
        approver = event.actor_name or "an admin"
        for admin_email in event.admin_emails:
            emails.append(
                OutgoingEmail(
                    to=admin_email,
                    subject=f"Booking Approved - {studio}",
                    body=(
                        f"A booking has been approved by {approver}.\n\n"
                        f"User: {event.user_name} ({event.user_email})\n{details}"
                    ),
                    calendar_invite=invite,
                )
            )
    elif event.kind == BookingEventKind.rejected:
        body = (
            f"Hi {event.user_name},\n\n"
            "Unfortunately, your booking request has been declined.\n\n"
            f"{details}"
        )
        if event.reason:
            body += f"\n\nReason: {event.reason}"
        emails.append(
            OutgoingEmail(to=event.user_email, subject=f"Booking Update - {studio}", body=body)
        )
    elif event.kind == BookingEventKind.cancelled:
        emails.append(
            OutgoingEmail(
                to=event.user_email,
                subject=f"Booking Cancelled - {studio}",
                body=(
                    f"Hi {event.user_name},\n\nYour booking has been cancelled.\n\n"
                    f"{details}\n\nIf you paid for this booking, please contact us for a refund."
                ),
            )
        )
    return emails


def compose_whatsapp(event: BookingEvent) -> str:
    studio = get_settings().studio_name
    headline = {
        BookingEventKind.requested: "New booking request",
        BookingEventKind.approved: "Booking confirmed",
        BookingEventKind.rejected: "Booking declined",
        BookingEventKind.cancelled: "Booking cancelled",
    }[event.kind]
    message = (
        f"{studio}: {headline}\n"
        f"{event.user_name} - {event.slot_date.isoformat()} "
        f"{event.start_time}-{event.end_time} ({event.rental_type})"
    )
    if event.reason:
        message += f"\nReason: {event.reason}"
    return message


def send_email(email: OutgoingEmail) -> bool:
    settings = get_settings()
    from_email = settings.smtp_from_email or settings.smtp_username
    if not settings.smtp_host or not from_email:
        logger.warning("SMTP is not configured; skipping email", extra={"to": email.to})
        return False

    message = EmailMessage()
    message["From"] = f"{settings.studio_name} <{from_email}>"
    message["To"] = email.to
    message["Subject"] = email.subject
    message.set_content(email.body)
    if email.calendar_invite:
        message.add_attachment(
            email.calendar_invite,
            maintype="text",
            subtype="calendar",
            filename="booking.ics",
        )

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as server:
        if settings.smtp_use_tls:
            server.starttls()
        if settings.smtp_username and settings.smtp_password:
            server.login(settings.smtp_username, settings.smtp_password)
        server.send_message(message)
    logger.info("Email sent", extra={"to": email.to, "subject": email.subject})
    return True


def format_whatsapp_number(mobile: str) -> str:
    digits = re.sub(r"\D", "", mobile)
    if len(digits) == 10:
        return f"+91{digits}"
    return f"+{digits}"


def send_whatsapp(mobile: str, message: str, client: httpx.Client) -> bool:
    settings = get_settings()
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        logger.warning("WhatsApp is not configured; skipping message", extra={"mobile": mobile})
        return False
    response = client.post(
        TWILIO_MESSAGES_URL.format(sid=settings.twilio_account_sid),
        auth=(settings.twilio_account_sid, settings.twilio_auth_token),
        data={
            "From": f"whatsapp:{settings.twilio_whatsapp_number}",
            "To": f"whatsapp:{format_whatsapp_number(mobile)}",
            "Body": message,
        },
    )
    response.raise_for_status()
    return True


def dispatch_event(event: BookingEvent) -> None:
    """Deliver every message for ``event``; one failed recipient never stops the rest."""
    try:
        emails = compose_emails(event)
    except Exception:
        logger.exception(
            "Failed to compose booking emails",
            extra={"booking_id": event.booking_id, "kind": event.kind.value},
        )
        emails = []

    for email in emails:
        try:
            send_email(email)
        except Exception:
            logger.exception(
                "Failed to send booking email",
                extra={"booking_id": event.booking_id, "kind": event.kind.value, "to": email.to},
            )

    if not event.whatsapp_recipients:
        return
    message = compose_whatsapp(event)
    with httpx.Client(timeout=get_settings().notification_timeout) as client:
        for mobile in event.whatsapp_recipients:
            try:
                send_whatsapp(mobile, message, client)
            except Exception:
                logger.exception(
                    "Failed to send WhatsApp notification",
                    extra={"booking_id": event.booking_id, "kind": event.kind.value},
                )


__all__ = [
    "BookingEventKind",
    "BookingEvent",
    "Notifier",
    "OutgoingEmail",
    "build_event",
    "build_calendar_invite",
    "compose_emails",
    "compose_whatsapp",
    "send_email",
    "send_whatsapp",
    "format_whatsapp_number",
    "dispatch_event",
]
