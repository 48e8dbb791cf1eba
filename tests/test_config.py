"""Tests for environment configuration loading."""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from deviation_monitor.config import ConfigurationError, MonitorConfig, load_config

BASE_ENV = {
    "URL": "https://example.com/quote",
    "QUERY_SELECTOR": "#price",
    "HORA_FECHAMENTO": "18",
    "VARIACAO_PERCENTUAL_EXPERADA": "5",
}


def env(**overrides):
    merged = dict(BASE_ENV)
    merged.update(overrides)
    return merged


class TestDefaults:
    """Tests for values that fall back to defaults."""

    def test_minimal_environment(self):
        config = load_config(BASE_ENV)
        assert config.source_url == "https://example.com/quote"
        assert config.source_selector == "#price"
        assert config.closing_hour == 18
        assert config.alert_threshold_percent == 5.0
        assert config.poll_interval_ms == 30000
        assert config.poll_interval_seconds == 30.0
        assert config.quantity == 1.0
        assert config.reference_price == 0.0
        assert config.headless is True
        assert config.email is None
        assert config.discord_webhook_url is None

    def test_explicit_values(self):
        config = load_config(env(
            TEMPO_ESPERA="1500",
            QUANTIDADE="200",
            VALOR_COMPRA="27,35",
            HEADLESS="no",
        ))
        assert config.poll_interval_seconds == 1.5
        assert config.quantity == 200.0
        assert config.reference_price == pytest.approx(27.35)
        assert config.headless is False

    def test_blank_values_are_unset(self):
        config = load_config(env(TEMPO_ESPERA="  ", DISCORD_WEBHOOK_URL=""))
        assert config.poll_interval_ms == 30000
        assert config.discord_webhook_url is None

    def test_config_is_frozen(self):
        config = load_config(BASE_ENV)
        with pytest.raises(AttributeError):
            config.closing_hour = 20


class TestValidation:
    """Tests for configuration errors."""

    @pytest.mark.parametrize("key", ["URL", "QUERY_SELECTOR", "HORA_FECHAMENTO", "VARIACAO_PERCENTUAL_EXPERADA"])
    def test_required_keys(self, key):
        environ = dict(BASE_ENV)
        del environ[key]
        with pytest.raises(ConfigurationError, match=key):
            load_config(environ)

    @pytest.mark.parametrize("interval", ["0", "-100"])
    def test_non_positive_interval(self, interval):
        with pytest.raises(ConfigurationError, match="Poll interval"):
            load_config(env(TEMPO_ESPERA=interval))

    def test_unparseable_interval(self):
        with pytest.raises(ConfigurationError, match="TEMPO_ESPERA"):
            load_config(env(TEMPO_ESPERA="30s"))

    @pytest.mark.parametrize("hour", ["-1", "24"])
    def test_closing_hour_range(self, hour):
        with pytest.raises(ConfigurationError, match="Closing hour"):
            load_config(env(HORA_FECHAMENTO=hour))

    def test_unparseable_threshold(self):
        with pytest.raises(ConfigurationError, match="VARIACAO_PERCENTUAL_EXPERADA"):
            load_config(env(VARIACAO_PERCENTUAL_EXPERADA="five"))

    def test_non_finite_threshold(self):
        with pytest.raises(ConfigurationError, match="threshold"):
            load_config(env(VARIACAO_PERCENTUAL_EXPERADA="nan"))

    def test_negative_quantity(self):
        with pytest.raises(ConfigurationError, match="Quantity"):
            load_config(env(QUANTIDADE="-1"))

    def test_bad_boolean(self):
        with pytest.raises(ConfigurationError, match="HEADLESS"):
            load_config(env(HEADLESS="maybe"))

    def test_direct_construction_validates(self):
        with pytest.raises(ConfigurationError):
            MonitorConfig(
                source_url="https://example.com",
                source_selector="#price",
                closing_hour=18,
                alert_threshold_percent=5.0,
                poll_interval_ms=0,
            )


class TestEmailSettings:
    """Tests for the SMTP block."""

    def test_full_email_block(self):
        config = load_config(env(
            EMAIL_HOST="smtp.example.com",
            EMAIL_PORT="465",
            EMAIL_SECURE="true",
            EMAIL_USER="bot@example.com",
            EMAIL_PASS="secret",
            EMAIL_USERNAME="Price Bot",
            EMAIL_MAIL_FROM="bot@example.com",
            EMAIL_MAIL_TO="me@example.com",
        ))
        email = config.email
        assert email.host == "smtp.example.com"
        assert email.port == 465
        assert email.secure is True
        assert email.password == "secret"
        assert email.sender == '"Price Bot" <bot@example.com>'
        assert email.to_address == "me@example.com"

    def test_sender_defaults_to_user(self):
        config = load_config(env(
            EMAIL_HOST="smtp.example.com",
            EMAIL_USER="bot@example.com",
            EMAIL_MAIL_TO="me@example.com",
        ))
        assert config.email.port == 587
        assert config.email.secure is False
        assert config.email.sender == "bot@example.com"

    def test_missing_recipient(self):
        with pytest.raises(ConfigurationError, match="EMAIL_MAIL_TO"):
            load_config(env(EMAIL_HOST="smtp.example.com", EMAIL_MAIL_FROM="bot@example.com"))

    def test_missing_sender(self):
        with pytest.raises(ConfigurationError, match="EMAIL_MAIL_FROM"):
            load_config(env(EMAIL_HOST="smtp.example.com", EMAIL_MAIL_TO="me@example.com"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
