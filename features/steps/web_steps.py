"""Step definitions for browser scenarios."""

import logging
import os

from behave import given, then, when
from behave.runner import Context

from scenariokit.constants import MEDIA_PNG

logger = logging.getLogger(__name__)

HOVERED_MENU_KEY = "hoveredMenu"


def text_selector(text: str) -> str:
    return f'text="{text}"'


@given('Open the browser and start "{app_name}" application')
def step_open_application(context: Context, app_name: str) -> None:
    context.world.home_page.navigate()
    context.world.attach_clean(f"Opened the browser and started the {app_name} application")


@given('I open the webpage "{url}"')
def step_open_webpage(context: Context, url: str) -> None:
    context.world.home_page.navigate_to_url(url)


@when("I click on Sign in link")
def step_click_sign_in_link(context: Context) -> None:
    context.world.login_page.click_sign_in_menu()


@when('I enter username "{username}"')
def step_enter_username(context: Context, username: str) -> None:
    context.world.attach_clean(f"Process ID: {os.getpid()} - Entering username: {username}")
    context.world.login_page.enter_username(username)


@when('I enter password "{password}"')
def step_enter_password(context: Context, password: str) -> None:
    context.world.login_page.enter_password(password)


@when("I click on Sign in button")
def step_click_sign_in_button(context: Context) -> None:
    context.world.login_page.click_sign_in_button()


@when('the user logs in with username "{username}" and password "{password}"')
def step_login(context: Context, username: str, password: str) -> None:
    context.world.login_page.login(username, password)


@then("the user should see the home page")
def step_see_home_page(context: Context) -> None:
    assert context.world.home_page.is_logged_in(), "User is not logged in"


@then("the user should see an error message")
def step_see_error_message(context: Context) -> None:
    assert context.world.login_page.is_error_message_displayed(), "No error message displayed"


@then('I should see error message "{expected}"')
def step_see_specific_error_message(context: Context, expected: str) -> None:
    actual = context.world.login_page.get_error_message()
    assert actual == expected, f"Expected error message {expected!r}, got {actual!r}"


@when("I click on Pricing link")
def step_click_pricing_link(context: Context) -> None:
    context.world.home_page.click_pricing_link()


@then('I should see the pricing page with title "{expected}"')
def step_see_pricing_title(context: Context, expected: str) -> None:
    title = context.world.home_page.get_pricing_title()
    context.world.attach_clean(f"Pricing page title: {title}")
    assert title == expected, f"Expected pricing title {expected!r}, got {title!r}"


@when('I click the "{link_text}" link and switch to the new tab')
def step_switch_to_new_tab(context: Context, link_text: str) -> None:
    page = context.world.home_page.click_and_switch_to_new_tab(text_selector(link_text))
    logger.info(f"Switched to new tab: {page.url}")


@then('I verify the title contains "{expected}"')
def step_verify_title_contains(context: Context, expected: str) -> None:
    title = context.world.page.title()
    assert expected.lower() in title.lower(), f"Title {title!r} does not contain {expected!r}"


@when("I close the new tab and switch back to the main tab")
def step_close_tab(context: Context) -> None:
    context.world.home_page.close_tab_and_switch_to_parent()


@then('I verify the text "{text}" is visible on the page')
def step_verify_text_visible(context: Context, text: str) -> None:
    assert context.world.home_page.is_visible(text_selector(text)), f"Text {text!r} not visible"


@when('I scroll to the "{button_text}" button')
def step_scroll_to_button(context: Context, button_text: str) -> None:
    home_page = context.world.home_page
    home_page.scroll_to(text_selector(button_text))
    home_page.highlight(text_selector(button_text))
    screenshot = home_page.take_screenshot("highlighted-element")
    if screenshot:
        context.world.attach(screenshot, MEDIA_PNG)


@then('I verify the "{button_text}" button is visible on the page')
def step_verify_button_visible(context: Context, button_text: str) -> None:
    assert context.world.home_page.is_visible(
        text_selector(button_text)
    ), f"Button {button_text!r} not visible"


@when('I hover over the "{menu}" menu link')
def step_hover_menu(context: Context, menu: str) -> None:
    context.world.home_page.hover_menu(menu)
    context.world.test_data[HOVERED_MENU_KEY] = menu


@then('I verify the "{submenu}" submenu is displayed')
def step_verify_submenu(context: Context, submenu: str) -> None:
    menu = context.world.test_data.get(HOVERED_MENU_KEY)
    assert menu, "No menu was hovered before checking its submenu"
    assert context.world.home_page.is_submenu_visible(
        menu, submenu
    ), f"Submenu '{submenu}' is not visible."


@then('downloading the file from "{link_text}" gives a file containing "{expected}"')
def step_download_and_validate(context: Context, link_text: str, expected: str) -> None:
    validated = context.world.home_page.download_and_validate(text_selector(link_text), expected)
    assert validated, f"Downloaded file from {link_text!r} does not contain {expected!r}"
