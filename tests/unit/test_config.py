"""Unit tests for configuration loading."""

import dataclasses
from pathlib import Path

import pytest

from scenariokit.config import ConfigLoader, Settings, parse_bool, parse_int
from scenariokit.constants import BrowserKind, EndpointKind
from scenariokit.exceptions import ConfigurationError


@pytest.fixture
def loader() -> ConfigLoader:
    return ConfigLoader()


class TestDefaults:
    """Test built-in defaults."""

    def test_defaults_without_file_or_env(self, loader: ConfigLoader, tmp_path: Path) -> None:
        """Test the settings produced from defaults alone."""
        settings = loader.load_settings(config_path=str(tmp_path / "none.yaml"), environ={})

        assert settings.base_url == "https://github.com"
        assert settings.browser is BrowserKind.CHROMIUM
        assert settings.headless is True
        assert settings.timeout_ms == 30000
        assert settings.api_timeout_ms == 30000
        assert settings.screenshot_on_failure is True
        assert settings.oauth_body_form == "grant_type=client_credentials"
        assert settings.fixtures_dir == Path("features/fixtures")
        assert settings.endpoint_base_url(EndpointKind.OAUTH) == "https://api-m.sandbox.paypal.com"
        assert settings.endpoint_headers(EndpointKind.TRANSACTION)["Content-Type"] == (
            "application/json"
        )

    def test_every_settings_field_is_documented(self) -> None:
        """Test that the Settings attribute block names every field."""
        undocumented = [
            field.name
            for field in dataclasses.fields(Settings)
            if f"    {field.name} : " not in Settings.__doc__
        ]

        assert undocumented == []


class TestLayering:
    """Test YAML file and environment layering."""

    def test_yaml_file_overrides_defaults(self, loader: ConfigLoader, tmp_path: Path) -> None:
        """Test values and interpolation from the YAML file."""
        config_file = tmp_path / "scenariokit.yaml"
        config_file.write_text(
            "base_url: https://staging.example.test/\n"
            "browser: firefox\n"
            "workers: 4\n"
            "oauth_url: https://payments.example.test\n"
            "transaction_url: ${oauth_url}\n"
            "custom_flag: true\n"
        )

        settings = loader.load_settings(config_path=str(config_file), environ={})

        assert settings.base_url == "https://staging.example.test"
        assert settings.browser is BrowserKind.FIREFOX
        assert settings.workers == 4
        assert settings.transaction_url == "https://payments.example.test"
        assert settings.extra == {"custom_flag": True}

    def test_environment_wins_over_file(self, loader: ConfigLoader, tmp_path: Path) -> None:
        """Test that environment variables override the YAML file."""
        config_file = tmp_path / "scenariokit.yaml"
        config_file.write_text("browser: firefox\nheadless: true\n")

        settings = loader.load_settings(
            config_path=str(config_file),
            environ={"BROWSER": "webkit", "HEADLESS": "false", "TIMEOUT": "45000"},
        )

        assert settings.browser is BrowserKind.WEBKIT
        assert settings.headless is False
        assert settings.timeout_ms == 45000

    def test_config_path_from_env_var(
        self, loader: ConfigLoader, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test SCENARIOKIT_CONFIG selects the file."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("workers: 3\n")
        monkeypatch.setenv("SCENARIOKIT_CONFIG", str(config_file))

        assert loader.load_config() == {"workers": 3}

    def test_dotenv_file_does_not_override_environment(
        self, loader: ConfigLoader, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that .env values fill gaps but never replace exported variables."""
        dotenv_file = tmp_path / ".env"
        dotenv_file.write_text("CLIENT_ID=from-dotenv\nCLIENT_SECRET=secret-from-dotenv\n")
        monkeypatch.setenv("CLIENT_ID", "from-shell")
        monkeypatch.setenv("CLIENT_SECRET", "unset-below")
        monkeypatch.delenv("CLIENT_SECRET")

        settings = loader.load_settings(
            config_path=str(tmp_path / "none.yaml"), dotenv_path=str(dotenv_file)
        )

        assert settings.client_id == "from-shell"
        assert settings.client_secret == "secret-from-dotenv"


class TestValidation:
    """Test invalid configuration handling."""

    def test_invalid_yaml_raises(self, loader: ConfigLoader, tmp_path: Path) -> None:
        """Test that malformed YAML raises ConfigurationError."""
        config_file = tmp_path / "scenariokit.yaml"
        config_file.write_text("browser: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            loader.load_config(str(config_file))

    def test_unresolvable_interpolation_raises(self, loader: ConfigLoader, tmp_path: Path) -> None:
        """Test that a dangling interpolation raises ConfigurationError."""
        config_file = tmp_path / "scenariokit.yaml"
        config_file.write_text("base_url: ${missing_key}\n")

        with pytest.raises(ConfigurationError, match="resolution"):
            loader.load_config(str(config_file))

    @pytest.mark.parametrize(
        ("environ", "message"),
        [
            ({"BROWSER": "netscape"}, "Unknown browser"),
            ({"WORKERS": "0"}, "workers"),
            ({"TIMEOUT": "-5"}, "timeout_ms"),
            ({"HEADLESS": "maybe"}, "HEADLESS"),
            ({"API_TIMEOUT": "soon"}, "API_TIMEOUT"),
        ],
    )
    def test_invalid_values_raise(
        self, loader: ConfigLoader, tmp_path: Path, environ: dict, message: str
    ) -> None:
        """Test that invalid values are rejected with a descriptive error."""
        with pytest.raises(ConfigurationError, match=message):
            loader.load_settings(config_path=str(tmp_path / "none.yaml"), environ=environ)

    def test_configuration_error_is_value_error(self) -> None:
        """Test that configuration errors can be caught as ValueError."""
        assert issubclass(ConfigurationError, ValueError)


class TestParsers:
    """Test environment value parsers."""

    @pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
    def test_truthy(self, raw: str) -> None:
        """Test accepted true literals."""
        assert parse_bool(raw, "FLAG") is True

    @pytest.mark.parametrize("raw", ["0", "false", "No", "off", ""])
    def test_falsy(self, raw: str) -> None:
        """Test accepted false literals."""
        assert parse_bool(raw, "FLAG") is False

    def test_parse_int(self) -> None:
        """Test integer parsing with whitespace."""
        assert parse_int(" 42 ", "WORKERS") == 42
