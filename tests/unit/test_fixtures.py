"""Unit tests for YAML fixture loading and URL templating."""

from pathlib import Path

import pytest

from scenariokit.exceptions import FixtureError
from scenariokit.fixtures import FixtureLoader, resolve_placeholders


@pytest.fixture
def fixtures_root(tmp_path: Path) -> Path:
    requests_dir = tmp_path / "apiRequests"
    responses_dir = tmp_path / "apiResponses"
    requests_dir.mkdir()
    responses_dir.mkdir()

    (requests_dir / "Webhooks.yml").write_text(
        "createWebhook:\n"
        "  url: https://example.com/hook\n"
        "  event_types:\n"
        "    - name: PAYMENT.CAPTURE.COMPLETED\n"
        "emptyScenario:\n"
    )
    (responses_dir / "Webhooks.yaml").write_text("eventTypes:\n  status: ENABLED\n")
    (requests_dir / "Broken.yml").write_text("createWebhook: [unclosed\n")
    return tmp_path


class TestFixtureLoader:
    """Test fixture file resolution and parsing."""

    def test_load_request_payload(self, fixtures_root: Path) -> None:
        """Test loading one scenario's request payload."""
        payload = FixtureLoader(fixtures_root).load("Request", "Webhooks", "createWebhook")

        assert payload == {
            "url": "https://example.com/hook",
            "event_types": [{"name": "PAYMENT.CAPTURE.COMPLETED"}],
        }

    def test_yaml_extension_fallback(self, fixtures_root: Path) -> None:
        """Test that .yaml files are found when no .yml exists."""
        payload = FixtureLoader(fixtures_root).load("response", "Webhooks", "eventTypes")

        assert payload == {"status": "ENABLED"}

    def test_each_load_returns_fresh_payload(self, fixtures_root: Path) -> None:
        """Test that mutating a loaded payload does not leak into the next load."""
        loader = FixtureLoader(fixtures_root)
        first = loader.load("request", "Webhooks", "createWebhook")
        first["url"] = "changed"

        assert loader.load("request", "Webhooks", "createWebhook")["url"] == (
            "https://example.com/hook"
        )

    def test_invalid_content_type_raises(self, fixtures_root: Path) -> None:
        """Test that only request and response are accepted."""
        with pytest.raises(FixtureError, match='Must be "request" or "response"'):
            FixtureLoader(fixtures_root).load("payload", "Webhooks", "createWebhook")

    def test_missing_file_raises(self, fixtures_root: Path) -> None:
        """Test that an unknown file name raises FixtureError."""
        with pytest.raises(FixtureError, match="not found"):
            FixtureLoader(fixtures_root).load("request", "Orders", "createOrder")

    def test_invalid_yaml_raises(self, fixtures_root: Path) -> None:
        """Test that unparsable YAML raises FixtureError."""
        with pytest.raises(FixtureError, match="Failed to parse YAML"):
            FixtureLoader(fixtures_root).load("request", "Broken", "createWebhook")

    @pytest.mark.parametrize("scenario", ["missingScenario", "emptyScenario"])
    def test_missing_scenario_lists_available(self, fixtures_root: Path, scenario: str) -> None:
        """Test that a missing or empty scenario key names the available ones."""
        with pytest.raises(FixtureError) as exc_info:
            FixtureLoader(fixtures_root).load("request", "Webhooks", scenario)

        assert "Available scenarios: createWebhook, emptyScenario" in str(exc_info.value)


class TestResolvePlaceholders:
    """Test resource URL templating."""

    def test_placeholders_are_replaced(self) -> None:
        """Test substitution of scratch values."""
        url = resolve_placeholders(
            "/v1/notifications/webhooks/{webhookId}/events/{index}",
            {"webhookId": "WH-1", "index": 0},
        )

        assert url == "/v1/notifications/webhooks/WH-1/events/0"

    def test_template_without_placeholders(self) -> None:
        """Test that plain paths pass through."""
        assert resolve_placeholders("/v1/notifications/webhooks", {}) == (
            "/v1/notifications/webhooks"
        )

    @pytest.mark.parametrize("values", [{}, {"webhookId": None}, {"webhookId": ""}])
    def test_missing_value_raises(self, values: dict) -> None:
        """Test that missing, None or empty values are rejected."""
        with pytest.raises(FixtureError, match="webhookId"):
            resolve_placeholders("/v1/notifications/webhooks/{webhookId}", values)
