"""Meetup API calls: group timezone and the next 24 hours of events."""

import logging
from datetime import datetime, timedelta

import requests
from dateutil import tz

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MEETUP_API_URL = "https://api.meetup.com"
REQUEST_TIMEOUT = 30
PAGE_SIZE = "999"

# Every field the renderer reads
EVENT_FIELDS = ",".join([
    "comment_count",
    "description",
    "duration",
    "event_hosts",
    "featured_photo",
    "fee",
    "how_to_find_us",
    "id",
    "name",
    "photo_album",
    "plain_text_no_images_description",
    "rsvp_limit",
    "rsvp_rules",
    "series",
    "short_link",
    "time",
    "updated",
    "venue",
    "waitlist_count",
    "web_actions",
    "yes_rsvp_count",
])


class FetchError(Exception):
    """The timezone or event list request failed."""


def _get_json(url, params):
    try:
        resp = requests.get(url, params=params, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        return resp.json()
    except requests.RequestException as e:
        raise FetchError("Meetup request to %s failed: %s" % (url, e)) from e
    except ValueError as e:
        raise FetchError("Meetup response from %s is not JSON: %s" % (url, e)) from e


def _local_timestamp(dt):
    """Format as group-local wall time, e.g. 2026-10-18T09:30:00.000"""
    return dt.replace(tzinfo=None).isoformat(timespec="milliseconds")


def fetch_timezone(group_name, api_key):
    """Return the IANA timezone name of the group, e.g. "America/New_York"."""
    data = _get_json("%s/%s" % (MEETUP_API_URL, group_name),
                     {"key": api_key, "only": "timezone"})
    timezone = data.get("timezone") if isinstance(data, dict) else None
    if not timezone:
        raise FetchError("Meetup group %s returned no timezone" % group_name)
    return timezone


def event_window(timezone, now=None):
    """Return (start, end) of the 24-hour window as aware datetimes in timezone."""
    zone = tz.gettz(timezone)
    if zone is None:
        raise FetchError("Unknown group timezone %r" % timezone)
    if now is None:
        now = datetime.now(zone)
    else:
        now = now.astimezone(zone)
    return now, now + timedelta(days=1)


def fetch_upcoming_events(group_name, api_key, timezone, now=None):
    """Fetch the group's upcoming events starting within the next 24 hours.

    Args:
        group_name: Meetup URL name of the group.
        api_key: Meetup API key.
        timezone: the group's IANA timezone name (see fetch_timezone).
        now: aware datetime to use as "now"; defaults to the current time.

    Returns:
        List of raw event dicts in the order Meetup returned them.

    Raises:
        FetchError: on any transport error or non-2xx response.
    """
    start, end = event_window(timezone, now)
    params = {
        "key": api_key,
        "no_earlier_than": _local_timestamp(start),
        "no_later_than": _local_timestamp(end),
        "page": PAGE_SIZE,
        "has_ended": "false",
        "status": "upcoming",
        "fields": EVENT_FIELDS,
    }
    logger.info("Fetching events for %s between %s and %s",
                group_name, params["no_earlier_than"], params["no_later_than"])
    events = _get_json("%s/%s/events" % (MEETUP_API_URL, group_name), params)
    if not isinstance(events, list):
        raise FetchError("Meetup events response for %s is not a list" % group_name)
    logger.info("Fetched %d events", len(events))
    return events
