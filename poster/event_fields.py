"""Map a raw Meetup event into the flat fields a message template uses.

Pure functions, no network calls.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import List, Optional
from urllib.parse import quote

from babel.dates import format_timedelta
from bs4 import BeautifulSoup
from dateutil import tz

# Meetup omits duration when the organizer didn't set one; the site shows 3 hours
DEFAULT_DURATION_MS = 3 * 60 * 60 * 1000

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_EXTRA_BLANK_LINES = re.compile(r"\n{3,}")
_BLOCK_TAGS = ["p", "div", "ul", "ol", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre", "table"]


class RenderError(ValueError):
    """The event is missing a field every message needs."""


@dataclass(frozen=True)
class HostFields:
    name: str
    bio: Optional[str] = None
    photo: Optional[str] = None
    joined: Optional[datetime] = None


@dataclass(frozen=True)
class VenueFields:
    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    has_address: bool
    address: List[str]
    address_multiline: str
    address_line: str
    city: Optional[str]
    state: Optional[str]
    zip: Optional[str]
    country_code: Optional[str]
    country_name: Optional[str]
    google_maps_link: str
    apple_maps_link: str
    waze_link: str


@dataclass(frozen=True)
class RsvpFields:
    is_closed: bool
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None
    refund_policy: Optional[str] = None


@dataclass(frozen=True)
class RenderFields:
    name: str
    start_time: datetime
    end_time: datetime
    from_now: str
    link: str
    hosts: str
    description: str = ""
    summary_list: List[str] = field(default_factory=list)
    hosts_list: List[HostFields] = field(default_factory=list)
    series: Optional[str] = None
    last_updated: Optional[datetime] = None
    rsvp_yes_count: int = 0
    waitlist_count: int = 0
    comments: int = 0
    how_to_find_us: Optional[str] = None
    venue: Optional[VenueFields] = None
    rsvp: Optional[RsvpFields] = None
    photo: Optional[str] = None


def clean(text):
    """Turn literal "\\n" escapes into newlines, drop stray backslashes, trim."""
    if not isinstance(text, str):
        return text
    return text.replace("\\n", "\n").replace("\\", "").strip()


def _clean_or_none(text):
    text = clean(text)
    return text or None


def _from_millis(ms, zone):
    return datetime.fromtimestamp(ms / 1000, tz=dt_timezone.utc).astimezone(zone)


def _encode(text):
    # Same escaping as JavaScript's encodeURIComponent
    return quote(text, safe="-_.!~*'()")


def split_paragraphs(text):
    """Split a plain-text description into paragraphs on blank lines."""
    text = clean(text or "")
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def html_to_text(html_description):
    """Convert an HTML description to plain text.

    Block elements become paragraphs separated by a blank line, list items
    and <br> become single line breaks.
    """
    soup = BeautifulSoup(html_description, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for li in soup.find_all("li"):
        li.insert_before("\n")
    for block in soup.find_all(_BLOCK_TAGS):
        block.insert_before("\n\n")
        block.insert_after("\n\n")

    text = "\n".join(line.strip() for line in soup.get_text().split("\n"))
    return _EXTRA_BLANK_LINES.sub("\n\n", text).strip()


def description_text(event):
    """Plain-text description of an event, or "" if it has none.

    Prefers Meetup's plain-text rendition and falls back to stripping the
    HTML description.
    """
    plain = event.get("plain_text_no_images_description")
    if plain:
        return plain
    html_description = event.get("description")
    if html_description:
        return html_to_text(html_description)
    return ""


def map_links(latitude, longitude, address_text, use_coordinates):
    """Build Google Maps, Apple Maps and Waze links for a venue.

    Args:
        latitude, longitude: venue coordinates.
        address_text: one-line street address used when coordinates aren't precise.
        use_coordinates: link to the coordinates instead of the address.

    Returns:
        (google_maps_link, apple_maps_link, waze_link)
    """
    if use_coordinates:
        coords = "%s,%s" % (latitude, longitude)
        return (
            "https://www.google.com/maps/dir?api=1&destination=" + _encode(coords),
            "https://maps.apple.com/?ll=" + coords,
            "https://waze.com/ul?ll=" + coords + "&navigate=yes",
        )

    query = _encode(address_text)
    waze = "https://waze.com/ul?q=" + query
    if latitude is not None and longitude is not None:
        waze += "&ll=%s,%s" % (latitude, longitude)
    return (
        "https://www.google.com/maps/dir?api=1&destination=" + query,
        "https://maps.apple.com/?q=" + query,
        waze + "&navigate=yes",
    )


def build_venue(venue):
    """Return VenueFields for a Meetup venue dict, or None if there is no venue."""
    if not venue:
        return None

    address = [venue[key] for key in ("address_1", "address_2", "address_3") if venue.get(key)]
    has_address = bool(venue.get("address_1"))
    city = venue.get("city")
    state = venue.get("state")
    zip_code = venue.get("zip")

    locality = ", ".join(part for part in (city, " ".join(p for p in (state, zip_code) if p)) if part)
    address_line = ", ".join(part for part in (venue.get("address_1"), locality) if part)

    latitude = venue.get("lat")
    longitude = venue.get("lon")
    has_coordinates = latitude is not None and longitude is not None
    use_coordinates = has_coordinates and (bool(venue.get("repinned")) or not has_address)

    google, apple, waze = map_links(latitude, longitude, address_line, use_coordinates)

    return VenueFields(
        name=clean(venue.get("name", "")),
        latitude=latitude,
        longitude=longitude,
        has_address=has_address,
        address=address,
        address_multiline="\n".join(address),
        address_line=address_line,
        city=city,
        state=state,
        zip=zip_code,
        country_code=venue.get("country"),
        country_name=venue.get("localized_country_name"),
        google_maps_link=google,
        apple_maps_link=apple,
        waze_link=waze,
    )


def build_rsvp(rules, zone):
    """Return RsvpFields when the rules carry an open or close time, else None."""
    if not rules or (rules.get("open_time") is None and rules.get("close_time") is None):
        return None

    opens_at = rules.get("open_time")
    closes_at = rules.get("close_time")
    refund_policy = rules.get("refund_policy") or {}
    return RsvpFields(
        is_closed=bool(rules.get("closed")),
        opens_at=_from_millis(opens_at, zone) if opens_at is not None else None,
        closes_at=_from_millis(closes_at, zone) if closes_at is not None else None,
        refund_policy=_clean_or_none(refund_policy.get("notes")),
    )


def build_hosts(hosts, zone):
    result = []
    for host in hosts:
        joined = host.get("join_date")
        result.append(HostFields(
            name=clean(host.get("name", "")),
            bio=_clean_or_none(host.get("intro")),
            photo=(host.get("photo") or {}).get("photo_link"),
            joined=_from_millis(joined, zone) if joined is not None else None,
        ))
    return result


def cover_photo(event):
    """High-resolution URL of the event's cover photo, or None."""
    featured = event.get("featured_photo") or {}
    if featured.get("highres_link"):
        return featured["highres_link"]

    album = event.get("photo_album") or {}
    samples = album.get("photo_sample") or []
    if album.get("photo_count", 0) > 0 and samples:
        return samples[0].get("highres_link")
    return None


def event_link(event):
    link = event.get("short_link") or event.get("link") or ""
    if link.startswith("http://"):
        link = "https://" + link[len("http://"):]
    return link


def build_render_fields(event, timezone, now=None, locale="en_US"):
    """Derive the template fields for one event.

    Args:
        event: raw Meetup event dict. Never modified.
        timezone: IANA name of the group's timezone; datetimes are converted to it.
        now: aware datetime the relative "from now" phrase is measured from.
        locale: Babel locale identifier for the relative phrase.

    Returns:
        RenderFields

    Raises:
        RenderError: if the event has no name or start time.
    """
    if not event.get("name") or event.get("time") is None:
        raise RenderError("Event %s has no name or start time" % event.get("id", "<unknown>"))

    zone = tz.gettz(timezone) or tz.UTC
    if now is None:
        now = datetime.now(zone)

    start_time = _from_millis(event["time"], zone)
    duration = event.get("duration") or DEFAULT_DURATION_MS
    end_time = start_time + timedelta(milliseconds=duration)
    updated = event.get("updated")

    description = description_text(event)
    hosts_list = build_hosts(event.get("event_hosts") or [], zone)
    series = event.get("series") or {}

    return RenderFields(
        name=clean(event["name"]),
        start_time=start_time,
        end_time=end_time,
        from_now=format_timedelta(start_time - now, add_direction=True, locale=locale),
        link=event_link(event),
        hosts=", ".join(host.name for host in hosts_list),
        description=clean(description),
        summary_list=split_paragraphs(description),
        hosts_list=hosts_list,
        series=series.get("description") or None,
        last_updated=_from_millis(updated, zone) if updated is not None else None,
        rsvp_yes_count=event.get("yes_rsvp_count", 0),
        waitlist_count=event.get("waitlist_count", 0),
        comments=event.get("comment_count", 0),
        how_to_find_us=_clean_or_none(event.get("how_to_find_us")),
        venue=build_venue(event.get("venue")),
        rsvp=build_rsvp(event.get("rsvp_rules"), zone),
        photo=cover_photo(event),
    )
