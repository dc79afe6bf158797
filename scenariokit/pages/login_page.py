"""Login page object for the GitHub sign-in screen."""

from __future__ import annotations

from scenariokit.pages.base_page import BasePage

# Concatenates the alert's direct text nodes, skipping the dismiss button.
_DIRECT_TEXT_JS = """
(el) => Array.from(el.childNodes)
    .filter((node) => node.nodeType === Node.TEXT_NODE)
    .map((node) => (node.textContent || '').trim())
    .join('')
"""


class LoginPage(BasePage):
    """Page object for the sign-in form."""

    path = "/login"

    _USERNAME = 'input[name="login"]'
    _PASSWORD = 'input[name="password"]'
    _SUBMIT = 'input[name="commit"]'
    _ERROR_MSG = 'div[id="js-flash-container"] div[role="alert"]'
    _SIGN_IN_LINK = '//div[contains(@class, "HeaderMenu-link-wrap")]//a[@href="/login"]'

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def navigate_to_login_page(self) -> None:
        self.navigate(self.path)
        self.wait_for_page_load()

    def click_sign_in_menu(self) -> None:
        self.click(self._SIGN_IN_LINK)

    def enter_username(self, username: str) -> None:
        self.fill(self._USERNAME, username)

    def enter_password(self, password: str) -> None:
        self.fill(self._PASSWORD, password)

    def click_sign_in_button(self) -> None:
        self.click(self._SUBMIT)

    def login(self, username: str, password: str) -> None:
        """Convenience: fill both fields and submit."""
        self.enter_username(username)
        self.enter_password(password)
        self.click_sign_in_button()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_error_message(self) -> str:
        locator = self.wait_for_visible(self._ERROR_MSG)
        return locator.evaluate(_DIRECT_TEXT_JS)

    def is_error_message_displayed(self) -> bool:
        return self.is_visible(self._ERROR_MSG)
