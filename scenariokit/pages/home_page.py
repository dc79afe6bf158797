"""Home page object for the GitHub landing and pricing pages."""

from __future__ import annotations

from scenariokit.pages.base_page import BasePage


class HomePage(BasePage):
    """Page object for the landing page, its global navigation and pricing."""

    path = "/"

    _PRICING_LINK = '//nav[@aria-label="Global"]//span[contains(text(),"Pricing")]'
    _PRICING_TITLE = '//h1[@class="h2-mktg"]'
    _WELCOME_MESSAGE = '//div[contains(@class, "welcome-message")]'
    _PROFILE_MENU = '//summary[@aria-label="View profile and more"]'
    _USER_AVATAR = '//img[@alt="@username"]'
    _NAV_MENU = '//nav[@aria-label="Global"]//button[normalize-space()="{menu}"]'
    _NAV_SUBMENU = (
        '//nav[@aria-label="Global"]//button[normalize-space()="{menu}"]'
        '/following-sibling::div//*[normalize-space()="{submenu}"]'
    )

    def click_pricing_link(self) -> None:
        self.click(self._PRICING_LINK)

    def get_pricing_title(self) -> str:
        return self.get_text(self._PRICING_TITLE).strip()

    def get_welcome_message(self) -> str:
        return self.get_text(self._WELCOME_MESSAGE).strip()

    def is_welcome_message_displayed(self) -> bool:
        return self.is_visible(self._WELCOME_MESSAGE)

    def open_profile_menu(self) -> None:
        self.click(self._PROFILE_MENU)

    def is_logged_in(self) -> bool:
        return self.is_visible(self._USER_AVATAR)

    def hover_menu(self, menu: str) -> None:
        """Hover a global navigation menu to expand it."""
        self.hover(self._NAV_MENU.format(menu=menu))

    def is_submenu_visible(self, menu: str, submenu: str) -> bool:
        return self.is_visible(self._NAV_SUBMENU.format(menu=menu, submenu=submenu))
