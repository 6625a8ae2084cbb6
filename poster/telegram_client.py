"""Telegram Bot API poster. One call per message, failures are returned not raised."""

import logging

import requests

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TELEGRAM_API_URL = "https://api.telegram.org"
REQUEST_TIMEOUT = 30

# Messages longer than this go out as text even if the event has a photo
CAPTION_LIMIT = 200

SUCCESS = "SUCCESS"
ERROR = "ERROR"


def post_result(kind, result):
    return {"type": kind, "result": result}


def build_request(bot_token, channel_id, text, photo=None):
    """Return (url, json_body) for posting text to the channel.

    Uses sendPhoto with the text as caption when a photo is given and the
    text fits in a caption, otherwise sendMessage without a link preview.
    """
    base = "%s/bot%s/" % (TELEGRAM_API_URL, bot_token)
    if photo and len(text) <= CAPTION_LIMIT:
        return base + "sendPhoto", {
            "chat_id": channel_id,
            "photo": photo,
            "caption": text,
            "parse_mode": "Markdown",
        }
    return base + "sendMessage", {
        "chat_id": channel_id,
        "text": text,
        "parse_mode": "Markdown",
        "disable_web_page_preview": True,
    }


def post_message(bot_token, channel_id, text, photo=None):
    """Post one message and report the outcome.

    Returns:
        {"type": "SUCCESS", "result": <Telegram result>} when the API accepted
        the message, otherwise {"type": "ERROR", "result": <error payload>}.
    """
    url, body = build_request(bot_token, channel_id, text, photo)
    method = url.rsplit("/", 1)[1]

    try:
        resp = requests.post(url, json=body, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.warning("Telegram %s failed: %s", method, e)
        return post_result(ERROR, {"ok": False, "description": str(e)})

    try:
        data = resp.json()
    except ValueError:
        data = {"ok": False, "error_code": resp.status_code, "description": resp.text}

    if resp.ok and isinstance(data, dict) and data.get("ok"):
        logger.info("Posted via %s to %s", method, channel_id)
        return post_result(SUCCESS, data.get("result"))

    logger.warning("Telegram %s rejected message: %s", method, data)
    return post_result(ERROR, data)
