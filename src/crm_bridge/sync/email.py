"""Email extraction and validation for inbound PostHog events."""

from __future__ import annotations

import re
from typing import Any

from src.crm_bridge.schemas import InboundEvent

EMAIL_RE = re.compile(
    r'(([^<>()\[\]\\.,;:\s@"]+(\.[^<>()\[\]\\.,;:\s@"]+)*)|(".+"))'
    r"@"
    r"((\[[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\])|(([a-zA-Z\-0-9]+\.)+[a-zA-Z]{2,}))"
)


def is_email(value: Any) -> bool:
    if value is None:
        return False
    return EMAIL_RE.fullmatch(str(value).lower()) is not None


def extract_email(event: InboundEvent) -> str | None:
    """Return the first valid email on the event.

    Checked in order: the distinct id, ``$set.email``, ``properties.email``.
    """
    candidates = (
        event.distinct_id,
        event.set_properties.get("email"),
        event.event_properties.get("email"),
    )
    for candidate in candidates:
        if is_email(candidate):
            return str(candidate)
    return None


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].lower()


def is_ignored_domain(email: str, ignored_domains: list[str]) -> bool:
    """True if the email's domain is, or is a subdomain of, an ignored entry."""
    domain = email_domain(email)
    for ignored in ignored_domains:
        ignored = ignored.lower()
        if domain == ignored or domain.endswith("." + ignored):
            return True
    return False
