"""Map a Slack profile to the canonical GitHub username."""

from __future__ import annotations

from urllib.parse import urlsplit

from .errors import MissingProfile
from .models import SlackProfile

PAGES_DOMAIN = ".github.io"


def resolve_username(value: str | None) -> str:
    """Return the lower-cased GitHub username encoded in a profile URL.

    Two shapes are understood: ``https://github.com/<username>`` (last path
    segment) and ``https://<username>.github.io`` (subdomain label).  Any
    other value raises :class:`MissingProfile`.
    """
    raw = (value or "").strip()
    if not raw:
        raise MissingProfile()

    parts = urlsplit(raw)
    host = (parts.hostname or "").lower()
    if parts.scheme not in {"http", "https"} or not host:
        raise MissingProfile()

    if host.endswith(PAGES_DOMAIN):
        label = host[: -len(PAGES_DOMAIN)]
        if label and "." not in label:
            return label
        raise MissingProfile()

    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        raise MissingProfile()
    return segments[-1].lower()


def username_from_profile(profile: SlackProfile, field_id: str) -> str:
    """Resolve the username stored in ``profile``'s custom field ``field_id``."""
    try:
        return resolve_username(profile.field_value(field_id))
    except MissingProfile:
        raise MissingProfile(profile.name) from None
