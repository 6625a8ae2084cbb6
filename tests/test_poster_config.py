"""Tests for poster/poster_config.py."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoCredentialsError

from poster_config import REQUIRED_SETTINGS, ConfigError, load_config

FULL_ENV = {
    "GROUP_NAME": "nyc-board-games",
    "SOURCE_API_KEY": "meetup-key",
    "MESSAGING_API_KEY": "123:bot-token",
    "TARGET_CHANNEL_ID": "@boardgames",
}


class TestLoadConfig:
    def test_all_present(self):
        config = load_config(dict(FULL_ENV))
        assert config.group_name == "nyc-board-games"
        assert config.api_key == "meetup-key"
        assert config.bot_token == "123:bot-token"
        assert config.channel_id == "@boardgames"
        assert config.locale == "en_US"
        assert config.message_style == "full"

    @pytest.mark.parametrize("missing", [name for name, _ in REQUIRED_SETTINGS])
    def test_missing_variable_is_named(self, missing):
        env = dict(FULL_ENV)
        del env[missing]
        with patch("poster_config.boto3.client") as mock_client, \
             pytest.raises(ConfigError) as excinfo:
            load_config(env)
        assert missing in str(excinfo.value)
        mock_client.assert_not_called()

    def test_first_missing_wins(self):
        with pytest.raises(ConfigError) as excinfo:
            load_config({"MESSAGING_API_KEY": "x"})
        assert "GROUP_NAME" in str(excinfo.value)
        assert "SOURCE_API_KEY" not in str(excinfo.value)

    def test_optional_settings(self):
        config = load_config(dict(FULL_ENV, DATE_LOCALE="de_DE", MESSAGE_STYLE="simple"))
        assert config.locale == "de_DE"
        assert config.message_style == "simple"

    def test_invalid_locale(self):
        with pytest.raises(ConfigError):
            load_config(dict(FULL_ENV, DATE_LOCALE="xx_NOPE"))

    def test_invalid_style(self):
        with pytest.raises(ConfigError):
            load_config(dict(FULL_ENV, MESSAGE_STYLE="fancy"))

    def test_config_is_immutable(self):
        config = load_config(dict(FULL_ENV))
        with pytest.raises(Exception):
            config.group_name = "other"


class TestSSMFallback:
    def test_reads_missing_values_from_ssm(self):
        env = {"GROUP_NAME": "nyc-board-games", "TARGET_CHANNEL_ID": "@boardgames",
               "SSM_PARAMETER_PATH": "/meetup-poster/"}
        mock_ssm = MagicMock()
        mock_ssm.get_parameter.side_effect = lambda Name, WithDecryption: {
            "Parameter": {"Value": "secret-for-" + Name}
        }

        with patch("poster_config.boto3.client", return_value=mock_ssm) as mock_client:
            config = load_config(env)

        mock_client.assert_called_once_with("ssm", region_name="us-east-1")
        assert config.api_key == "secret-for-/meetup-poster/SOURCE_API_KEY"
        assert config.bot_token == "secret-for-/meetup-poster/MESSAGING_API_KEY"
        assert config.group_name == "nyc-board-games"

    def test_missing_parameter_is_config_error(self):
        env = dict(FULL_ENV, SSM_PARAMETER_PATH="/meetup-poster")
        del env["MESSAGING_API_KEY"]
        mock_ssm = MagicMock()
        mock_ssm.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "ParameterNotFound", "Message": "not found"}},
            "GetParameter",
        )

        with patch("poster_config.boto3.client", return_value=mock_ssm), \
             pytest.raises(ConfigError) as excinfo:
            load_config(env)
        assert "MESSAGING_API_KEY" in str(excinfo.value)

    def test_access_denied_becomes_config_error(self):
        env = dict(FULL_ENV, SSM_PARAMETER_PATH="/meetup-poster")
        del env["SOURCE_API_KEY"]
        mock_ssm = MagicMock()
        mock_ssm.get_parameter.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "denied"}},
            "GetParameter",
        )

        with patch("poster_config.boto3.client", return_value=mock_ssm), \
             pytest.raises(ConfigError) as excinfo:
            load_config(env)
        assert "SOURCE_API_KEY" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, ClientError)

    def test_missing_credentials_becomes_config_error(self):
        env = dict(FULL_ENV, SSM_PARAMETER_PATH="/meetup-poster")
        del env["SOURCE_API_KEY"]
        mock_ssm = MagicMock()
        mock_ssm.get_parameter.side_effect = NoCredentialsError()

        with patch("poster_config.boto3.client", return_value=mock_ssm), \
             pytest.raises(ConfigError) as excinfo:
            load_config(env)
        assert "Unable to locate credentials" in str(excinfo.value)
