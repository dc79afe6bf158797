"""Page Object Model classes for web scenarios."""

from scenariokit.pages.base_page import BasePage
from scenariokit.pages.home_page import HomePage
from scenariokit.pages.login_page import LoginPage

__all__ = ["BasePage", "HomePage", "LoginPage"]
