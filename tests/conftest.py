"""Shared fixtures for the test suite.

The poster modules live in poster/ as top-level modules (the Lambda zip
layout), so that directory is put on sys.path before anything imports them.
"""

import os
import sys
from datetime import datetime, timezone

import pytest
from dateutil import tz

_POSTER_DIR = os.path.join(os.path.dirname(__file__), os.pardir, "poster")
sys.path.insert(0, os.path.abspath(_POSTER_DIR))

from poster_config import GroupConfig  # noqa: E402

GROUP_TZ = "America/New_York"

# Saturday March 7 2026, 7:00 PM in New York (EST, UTC-5)
EVENT_START_MS = int(datetime(2026, 3, 8, 0, 0, tzinfo=timezone.utc).timestamp() * 1000)

# Two hours before the event
FIXED_NOW = datetime(2026, 3, 7, 17, 0, tzinfo=tz.gettz(GROUP_TZ))

THREE_PARAGRAPHS = (
    "Join us for an evening of board games.\\n\\n"
    "Bring your favourite game or pick one from our shelf.\n\n"
    "Snacks are provided, drinks are available at the bar."
)


def make_venue(**overrides):
    venue = {
        "id": 25000001,
        "name": "The Dice Tower Cafe",
        "lat": 40.7411,
        "lon": -73.9897,
        "repinned": True,
        "address_1": "123 Broadway",
        "address_2": "2nd Floor",
        "city": "New York",
        "state": "NY",
        "zip": "10010",
        "country": "us",
        "localized_country_name": "USA",
    }
    venue.update(overrides)
    return venue


def make_event(**overrides):
    """Build a Meetup event dict shaped like the /events response."""
    event = {
        "id": "evt-1",
        "name": "Board Game Night",
        "time": EVENT_START_MS,
        "duration": 3 * 60 * 60 * 1000,
        "updated": EVENT_START_MS - 7 * 24 * 60 * 60 * 1000,
        "yes_rsvp_count": 12,
        "waitlist_count": 0,
        "comment_count": 3,
        "short_link": "http://meetu.ps/e/abc123",
        "plain_text_no_images_description": THREE_PARAGRAPHS,
        "how_to_find_us": "Look for the table with the meeple flag",
        "event_hosts": [
            {
                "id": 1,
                "name": "Alex Rivera",
                "intro": "Organizer since 2019",
                "join_date": EVENT_START_MS - 365 * 24 * 60 * 60 * 1000,
                "photo": {"photo_link": "https://secure.meetupstatic.com/photos/member/1.jpeg"},
            },
            {
                "id": 2,
                "name": "Sam Lee\\",
                "photo": {"photo_link": "https://secure.meetupstatic.com/photos/member/2.jpeg"},
            },
        ],
        "venue": make_venue(),
    }
    event.update(overrides)
    return event


@pytest.fixture
def config():
    return GroupConfig(
        group_name="nyc-board-games",
        api_key="meetup-key",
        bot_token="123:bot-token",
        channel_id="@boardgames",
    )


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def venue_factory():
    return make_venue
