"""Unit tests for the page-object layer."""

import zlib
from pathlib import Path

import pytest

from scenariokit.browser import BrowserManager
from scenariokit.exceptions import ElementTimeoutError
from scenariokit.pages import BasePage, HomePage, LoginPage
from tests.fakes.fake_playwright import FakeDownload, FakePage


def make_pdf(text: str) -> bytes:
    """Build a one-page PDF whose content stream is Flate-compressed."""
    content = zlib.compress(f"BT /F1 24 Tf 72 720 Td ({text}) Tj ET".encode("latin-1"))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Length %d /Filter /FlateDecode >>\nstream\n" % len(content)
        + content
        + b"\nendstream",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)


@pytest.fixture
def manager(settings, playwright_factory) -> BrowserManager:
    manager = BrowserManager(settings, playwright_factory=playwright_factory)
    manager.launch()
    manager.create_session()
    manager.create_page()
    yield manager
    manager.close()


@pytest.fixture
def page(manager) -> FakePage:
    return manager.get_page()


class TestBasePageElements:
    """Test wait-then-act element operations."""

    def test_click_waits_with_element_timeout(self, manager, page, settings) -> None:
        """Test that actions wait for visibility bounded by the element timeout."""
        BasePage(manager, settings).click("#submit")

        assert page.waits == [("#submit", settings.element_timeout_ms)]
        assert page.actions == [("click", "#submit")]

    def test_hidden_element_raises_element_timeout(self, manager, page, settings) -> None:
        """Test that a visibility timeout surfaces as ElementTimeoutError."""
        page.hidden.add("#missing")

        with pytest.raises(ElementTimeoutError, match="#missing"):
            BasePage(manager, settings).fill("#missing", "text")

        assert page.actions == []

    def test_is_visible_never_raises(self, manager, page, settings) -> None:
        """Test the boolean visibility check."""
        page.hidden.add("#hidden")
        base = BasePage(manager, settings)

        assert base.is_visible("#shown") is True
        assert base.is_visible("#hidden") is False

    def test_get_text_defaults_to_empty(self, manager, page, settings) -> None:
        """Test reading text of an element without content."""
        page.texts["#title"] = "Pricing"
        base = BasePage(manager, settings)

        assert base.get_text("#title") == "Pricing"
        assert base.get_text("#empty") == ""

    def test_navigate_joins_base_url_and_path(self, manager, page, settings) -> None:
        """Test navigation relative to the configured base URL."""
        LoginPage(manager, settings).navigate()
        BasePage(manager, settings).navigate("/features")

        assert page.visited == [
            "https://app.example.test/login",
            "https://app.example.test/features",
        ]

    def test_take_screenshot_saves_under_evidence_dir(self, manager, page, settings) -> None:
        """Test screenshots land in the evidence screenshots folder."""
        data = BasePage(manager, settings).take_screenshot("highlighted-element")

        assert data.startswith(b"\x89PNG")
        saved = Path(page.screenshots[0]["path"])
        assert saved.parent == settings.evidence_dir / "screenshots"
        assert saved.name.startswith("highlighted-element-")


class TestBasePageTabs:
    """Test new-tab handling."""

    def test_switch_to_new_tab_and_back(self, manager, page, settings) -> None:
        """Test that the active page follows tab switches for every page object."""
        context = manager.get_session()
        popup = FakePage(context, url="https://discord.com/invite/playwright")
        page.popups['text="Discord"'] = popup
        home = HomePage(manager, settings)
        login = LoginPage(manager, settings)

        switched = home.click_and_switch_to_new_tab('text="Discord"')

        assert switched is popup
        assert login.page is popup

        parent = home.close_tab_and_switch_to_parent()

        assert parent is page
        assert popup.closed
        assert login.page is page


class TestBasePageDownloads:
    """Test download and content validation."""

    def test_download_and_validate_success(self, manager, page, settings) -> None:
        """Test that matching content validates case-insensitively."""
        page.download = FakeDownload("report.txt", b"Monthly INVOICE total: 10")

        result = BasePage(manager, settings).download_and_validate("#download", "invoice")

        assert result is True
        assert (settings.download_dir / "report.txt").exists()

    def test_download_with_wrong_content(self, manager, page, settings) -> None:
        """Test that missing expected text fails validation."""
        page.download = FakeDownload("report.txt", b"something else")

        assert BasePage(manager, settings).download_and_validate("#download", "invoice") is False

    def test_download_failure_returns_false(self, manager, page, settings) -> None:
        """Test that a download error is reported as a failed validation."""
        assert BasePage(manager, settings).download_and_validate("#download", "invoice") is False

    def test_pdf_text_is_extracted_from_compressed_pages(self, manager, settings, tmp_path) -> None:
        """Test that text inside a Flate-compressed PDF page is found."""
        pdf_path = tmp_path / "invoice.pdf"
        pdf_path.write_bytes(make_pdf("Invoice Total Due"))
        base = BasePage(manager, settings)

        assert b"Invoice" not in pdf_path.read_bytes()
        assert base.validate_file_content(pdf_path, "invoice total due") is True
        assert base.validate_file_content(pdf_path, "Refund") is False

    def test_pdf_detected_without_extension(self, manager, settings, tmp_path) -> None:
        """Test that PDFs saved without a .pdf name are still parsed."""
        pdf_path = tmp_path / "downloaded-file-1700000000000"
        pdf_path.write_bytes(make_pdf("Quarterly Statement"))

        assert BasePage(manager, settings).validate_file_content(pdf_path, "Quarterly Statement")

    def test_downloaded_pdf_validates(self, manager, page, settings) -> None:
        """Test the full download path with a PDF attachment."""
        page.download = FakeDownload("statement.pdf", make_pdf("Statement Balance"))

        assert BasePage(manager, settings).download_and_validate("#download", "balance")

    def test_validate_requires_expected_content(self, manager, settings, tmp_path) -> None:
        """Test that blank expectations never validate."""
        file_path = tmp_path / "file.txt"
        file_path.write_text("content")

        assert BasePage(manager, settings).validate_file_content(file_path, "  ") is False


class TestLoginPage:
    """Test the sign-in page object."""

    def test_login_fills_and_submits(self, manager, page, settings) -> None:
        """Test the composite login action."""
        LoginPage(manager, settings).login("octocat", "hunter2")

        assert page.actions == [
            ("fill", LoginPage._USERNAME, "octocat"),
            ("fill", LoginPage._PASSWORD, "hunter2"),
            ("click", LoginPage._SUBMIT),
        ]

    def test_error_message(self, manager, page, settings) -> None:
        """Test reading and detecting the flash error."""
        page.texts[LoginPage._ERROR_MSG] = "Incorrect username or password."
        login = LoginPage(manager, settings)

        assert login.is_error_message_displayed()
        assert login.get_error_message() == "Incorrect username or password."


class TestHomePage:
    """Test the landing page object."""

    def test_pricing_title_is_trimmed(self, manager, page, settings) -> None:
        """Test reading the pricing headline."""
        page.texts[HomePage._PRICING_TITLE] = "  Try the Copilot-powered platform \n"

        assert HomePage(manager, settings).get_pricing_title() == (
            "Try the Copilot-powered platform"
        )

    def test_logged_out_user(self, manager, page, settings) -> None:
        """Test that a missing avatar means not logged in."""
        page.hidden.add(HomePage._USER_AVATAR)

        assert HomePage(manager, settings).is_logged_in() is False

    def test_hover_menu_and_submenu(self, manager, page, settings) -> None:
        """Test hovering a navigation menu and checking its submenu."""
        home = HomePage(manager, settings)

        home.hover_menu("Platform")

        assert page.actions == [("hover", HomePage._NAV_MENU.format(menu="Platform"))]
        assert home.is_submenu_visible("Platform", "GitHub Copilot")
