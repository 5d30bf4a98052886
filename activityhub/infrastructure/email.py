"""Utility helpers for sending activity email notifications via SendGrid."""

from __future__ import annotations

import json
import logging
from html import escape
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from activityhub.config import get_settings
from activityhub.domain.entities import AggregateActivity, User
from activityhub.utils import epoch_millis_to_datetime

logger = logging.getLogger(__name__)

_VERB_LABELS = {
    "create": "created",
    "update": "updated",
    "follow": "followed",
    "share": "shared",
}


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages = [
                str(item["message"])
                for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _log_sendgrid_failure(status_code: Any, body: Any, exc: Exception | None = None) -> None:
    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        logger.error("SendGrid API request failed with status %s: %s", status_code, details)
    elif status_code:
        logger.error("SendGrid API request failed with status %s", status_code)
    elif details:
        logger.error("SendGrid API request failed: %s", details)
    elif exc is not None:
        logger.exception("Error sending email via SendGrid: %s", exc)


def send_email(subject: str, html_content: str, recipient: str) -> bool:
    """Send an email using the configured SendGrid credentials."""

    settings = get_settings()
    if not (settings.sendgrid_api_key and settings.sendgrid_sender):
        logger.info("SendGrid configuration incomplete; skipping email delivery")
        return False

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:  # pragma: no cover - network failures depend on environment
        _log_sendgrid_failure(getattr(exc, "status_code", None), getattr(exc, "body", None), exc)
        return False

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        _log_sendgrid_failure(status_code, getattr(response, "body", None))
        return False

    return True


def render_activity_email(user: User, activity: AggregateActivity) -> tuple[str, str]:
    """Return the subject and HTML body describing ``activity`` to ``user``."""

    verb = _VERB_LABELS.get(activity.verb, activity.verb)
    object_count = len(activity.objects)
    object_type = activity.key.object_type
    if object_count == 1:
        subject = f"Someone {verb} a {object_type} with you"
    else:
        subject = f"Someone {verb} {object_count} {object_type} items with you"

    published = epoch_millis_to_datetime(activity.last_time)
    items = "".join(
        f"<li>{escape(obj.resource_type)} {escape(obj.resource_id)}</li>"
        for obj in activity.objects
    )
    actors = ", ".join(escape(actor.resource_id) for actor in activity.actors)
    html_content = "".join(
        (
            f"<p>Hello {escape(user.name)},</p>",
            f"<p>User {actors} {escape(verb)}:</p>",
            f"<ul>{items}</ul>",
            f"<p><small>{published.isoformat() if published else ''}</small></p>",
        )
    )
    return subject, html_content


def send_activity_email(user: User, activity: AggregateActivity) -> bool:
    """Email ``user`` about ``activity``; return ``True`` when SendGrid accepted it."""

    if not user.email:
        return False
    subject, html_content = render_activity_email(user, activity)
    return send_email(subject, html_content, user.email)


__all__ = ["render_activity_email", "send_activity_email", "send_email"]
