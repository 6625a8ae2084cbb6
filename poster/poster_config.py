"""Configuration gate for the event poster.

Reads the group/bot settings from the environment. When SSM_PARAMETER_PATH
is set, required values missing from the environment are looked up in SSM
Parameter Store under that path.
"""

import logging
import os
from dataclasses import dataclass

import boto3
from babel import Locale, UnknownLocaleError
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DEFAULT_LOCALE = "en_US"
DEFAULT_STYLE = "full"
MESSAGE_STYLES = ("full", "simple")

# Checked in this order; the first missing one is reported.
REQUIRED_SETTINGS = (
    ("GROUP_NAME",
     "Missing environment variable GROUP_NAME. Use the group name from the URL, "
     "e.g. https://meetup.com/mygroup/ would have the value: mygroup"),
    ("SOURCE_API_KEY",
     "Missing environment variable SOURCE_API_KEY. Create a throwaway account with "
     "a strong password, have it join a group, and get the key from "
     "https://secure.meetup.com/meetup_api/key/"),
    ("MESSAGING_API_KEY",
     "Missing environment variable MESSAGING_API_KEY. Get this from Botfather on Telegram."),
    ("TARGET_CHANNEL_ID",
     "Missing environment variable TARGET_CHANNEL_ID. Format can either be "
     "@myChannelName or the numerical ID number."),
)


class ConfigError(Exception):
    """A required setting is absent or an optional one is invalid."""


@dataclass(frozen=True)
class GroupConfig:
    group_name: str
    api_key: str
    bot_token: str
    channel_id: str
    locale: str = DEFAULT_LOCALE
    message_style: str = DEFAULT_STYLE


def _read_ssm_parameter(ssm, path, name):
    """Return the decrypted value of <path>/<name>, or None if it doesn't exist.

    Raises:
        ConfigError: when SSM can't be reached or refuses the request.
    """
    try:
        resp = ssm.get_parameter(Name="%s/%s" % (path.rstrip("/"), name),
                                 WithDecryption=True)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ParameterNotFound":
            return None
        raise ConfigError("Could not read %s from SSM path %s: %s" % (name, path, e)) from e
    except BotoCoreError as e:
        raise ConfigError("Could not read %s from SSM path %s: %s" % (name, path, e)) from e
    return resp["Parameter"]["Value"]


def load_config(environ=None):
    """Build a GroupConfig from the environment.

    Args:
        environ: mapping to read from; defaults to os.environ.

    Returns:
        GroupConfig

    Raises:
        ConfigError: naming the first missing required variable, or an
            unusable DATE_LOCALE / MESSAGE_STYLE, or an SSM lookup that failed.
    """
    if environ is None:
        environ = os.environ

    ssm_path = environ.get("SSM_PARAMETER_PATH")
    ssm = None

    values = {}
    for name, diagnostic in REQUIRED_SETTINGS:
        value = environ.get(name)
        if not value and ssm_path:
            if ssm is None:
                ssm = boto3.client("ssm", region_name=environ.get("AWS_REGION", "us-east-1"))
            logger.info("Reading %s from SSM path %s", name, ssm_path)
            value = _read_ssm_parameter(ssm, ssm_path, name)
        if not value:
            raise ConfigError(diagnostic)
        values[name] = value

    locale = environ.get("DATE_LOCALE") or DEFAULT_LOCALE
    try:
        Locale.parse(locale)
    except (ValueError, UnknownLocaleError):
        raise ConfigError("Invalid DATE_LOCALE %r. Use a locale identifier such as en_US or de_DE." % locale)

    style = environ.get("MESSAGE_STYLE") or DEFAULT_STYLE
    if style not in MESSAGE_STYLES:
        raise ConfigError("Invalid MESSAGE_STYLE %r. Expected one of: %s" % (style, ", ".join(MESSAGE_STYLES)))

    return GroupConfig(
        group_name=values["GROUP_NAME"],
        api_key=values["SOURCE_API_KEY"],
        bot_token=values["MESSAGING_API_KEY"],
        channel_id=values["TARGET_CHANNEL_ID"],
        locale=locale,
        message_style=style,
    )
