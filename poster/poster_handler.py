"""Entry points for the Meetup -> Telegram event poster.

Fetches the group's events starting in the next 24 hours and posts one
message per event to the Telegram channel.

Lambda config:        handler = poster_handler.lambda_handler
Cloud Functions HTTP: entry point = gcloud_handler_http
Cloud Functions Pub/Sub: entry point = gcloud_handler_pubsub
"""

import json
import logging
from datetime import datetime

from dateutil import tz

from event_fields import build_render_fields
from meetup_client import FetchError, fetch_timezone, fetch_upcoming_events
from message_template import get_template
from poster_config import ConfigError, load_config
from telegram_client import ERROR, post_message, post_result

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def run(config=None, now=None):
    """Fetch, render and post every event in the next 24 hours.

    Args:
        config: GroupConfig; loaded from the environment when None.
        now: aware datetime to treat as the invocation time.

    Returns:
        (status_code, body). body is a diagnostic string when config or the
        fetch failed, otherwise the list of per-event results in fetch order.
        status_code is 500 if anything failed, including a single post.
    """
    if config is None:
        try:
            config = load_config()
        except ConfigError as e:
            logger.error("Configuration error: %s", e)
            return 500, str(e)

    try:
        timezone = fetch_timezone(config.group_name, config.api_key)
        if now is None:
            now = datetime.now(tz.gettz(timezone))
        events = fetch_upcoming_events(config.group_name, config.api_key, timezone, now)
    except FetchError as e:
        logger.error("Fetching events failed: %s", e)
        return 500, "%s: %s" % (type(e).__name__, e)

    template = get_template(config.message_style)
    zone = tz.gettz(timezone)

    status = 200
    results = []
    for event in events:
        try:
            fields = build_render_fields(event, timezone, now, config.locale)
            text = template.render(fields, tzinfo=zone, locale=config.locale)
        except Exception as e:
            # A malformed event must not stop the remaining ones
            event_id = event.get("id") if isinstance(event, dict) else None
            logger.warning("Could not render event %s", event_id, exc_info=True)
            result = post_result(ERROR, {"event_id": event_id, "error": str(e)})
        else:
            result = post_message(config.bot_token, config.channel_id, text, fields.photo)

        if result["type"] == ERROR:
            status = 500
        results.append(result)

    logger.info("Processed %d events for %s", len(results), config.group_name)
    return status, results


def lambda_handler(event, context):
    status, body = run()
    return {"statusCode": status, "body": json.dumps(body)}


def gcloud_handler_http(request):
    status, body = run()
    return json.dumps(body), status, {"Content-Type": "application/json"}


def gcloud_handler_pubsub(data, context):
    status, body = run()
    logger.info("Poster finished with status %d: %s", status, json.dumps(body))
