"""Step definitions for OAuth-protected transaction API scenarios."""

import json
import logging

from behave import given, then, when
from behave.runner import Context

from scenariokit.constants import (
    KEY_ACTUAL_RESPONSE,
    KEY_OAUTH_TOKEN,
    KEY_REQUEST_OBJECT,
    KEY_RESPONSE_OBJECT,
    PAYLOAD_METHODS,
    EndpointKind,
)
from scenariokit.fixtures import FixtureLoader, resolve_placeholders
from scenariokit.jsonpath import apply_updates, get_value, parse_smart_value

logger = logging.getLogger(__name__)

EXCLUDED_RESPONSE_KEYS = frozenset({"debug_id"})


def pretty(payload: object) -> str:
    return json.dumps(payload, indent=2, sort_keys=False)


def without_excluded_keys(payload: object) -> object:
    """Drop top-level keys whose values change on every call."""
    if isinstance(payload, dict):
        return {k: v for k, v in payload.items() if k not in EXCLUDED_RESPONSE_KEYS}
    return payload


def require_data(context: Context, key: str, what: str) -> object:
    value = context.world.test_data.get(key)
    if value is None:
        raise AssertionError(f"{what} not found in test data. {key} has not been set yet.")
    return value


def form_transaction_client(context: Context, resource: str) -> None:
    rest = context.world.rest
    rest.set_resource_url(EndpointKind.TRANSACTION, resource)
    rest.open_request_context(EndpointKind.TRANSACTION)


@given('I generate OAuth token with resource "{resource}"')
def step_generate_oauth_token(context: Context, resource: str) -> None:
    settings = context.world.settings
    rest = context.world.rest
    rest.set_resource_url(EndpointKind.OAUTH, resource)
    rest.open_request_context(EndpointKind.OAUTH)

    response = rest.get_oauth_token(settings.client_id, settings.client_secret)
    assert response.status_code == 200, f"OAuth token request returned {response.status_code}"

    token = response.json()["access_token"]
    context.world.test_data[KEY_OAUTH_TOKEN] = token
    context.world.attach(f"Generated OAuth token for {resource}")


@when('I form a client with this resource url "{resource}"')
def step_form_client(context: Context, resource: str) -> None:
    form_transaction_client(context, resource)
    context.world.attach(f"Formed client with resource URL: {resource}.")


@when('I form a client by manipulating the resource url with "{template}"')
def step_form_client_from_template(context: Context, template: str) -> None:
    resource = resolve_placeholders(template, context.world.test_data)
    form_transaction_client(context, resource)
    context.world.attach(f"Formed client with manipulated resource URL: {resource}.")


@when('I get the "{content_type}" content from "{file_name}" file for the scenario "{scenario_name}"')
def step_load_fixture(
    context: Context, content_type: str, file_name: str, scenario_name: str
) -> None:
    loader = FixtureLoader(context.world.settings.fixtures_dir)
    payload = loader.load(content_type, file_name, scenario_name)

    key = f"{content_type.strip().lower()}Object"
    context.world.test_data[key] = payload
    context.world.attach(
        f'Loaded {content_type} for scenario "{scenario_name}" from {file_name}\n'
        f"Payload:\n{pretty(payload)}"
    )


@when("I modify the request payload with below values for respective json paths:")
def step_modify_payload(context: Context) -> None:
    request_object = require_data(context, KEY_REQUEST_OBJECT, "Request object")
    updates = [(row["jsonPath"], row["value"]) for row in context.table]

    applied = apply_updates(request_object, updates)
    logger.debug(f"Applied payload updates: {applied}")
    context.world.attach(
        f"Modified request payload with updates:\n{pretty(request_object)}"
    )


@when('I make a "{method}" call with OAuth token and capture the response')
def step_make_call(context: Context, method: str) -> None:
    verb = method.strip().upper()
    rest = context.world.rest

    if verb in PAYLOAD_METHODS:
        rest.set_body_payload(require_data(context, KEY_REQUEST_OBJECT, "Request object"))

    token = require_data(context, KEY_OAUTH_TOKEN, "OAuth token")
    rest.set_headers({"Authorization": f"Bearer {token}"})

    response = rest.send(verb)

    if verb == "DELETE" or not response.content:
        context.world.test_data[KEY_ACTUAL_RESPONSE] = None
        context.world.attach(f"API Response Status: {response.status_code}\nNo response body.")
        return

    body = rest.get_json_body()
    context.world.test_data[KEY_ACTUAL_RESPONSE] = body
    context.world.attach(
        f"API Response Status: {response.status_code}\nResponse Body:\n{pretty(body)}"
    )


@then("I should receive the HTTP status code in response as {expected:d}")
def step_verify_status(context: Context, expected: int) -> None:
    actual = context.world.rest.get_status_code()
    assert actual == expected, f"Expected status {expected}, got {actual}"
    context.world.attach(f"Verified response status code: {actual}")


@then('I extract value from response using json path "{path}" and store as "{store_key}"')
def step_extract_value(context: Context, path: str, store_key: str) -> None:
    response_object = require_data(context, KEY_ACTUAL_RESPONSE, "Response object")
    value = get_value(response_object, path)
    context.world.test_data[store_key] = value
    context.world.attach(
        f'Extracted value using JSON path "{path}" and stored as "{store_key}": '
        f"{json.dumps(value)}"
    )


@then("I form a JsonPath and verify the output object with ExpectedObject:")
def step_verify_json_paths(context: Context) -> None:
    response_object = require_data(context, KEY_ACTUAL_RESPONSE, "Response object")

    for row in context.table:
        path, expected = row["JsonPath"], row["ExpectedObject"]
        actual = get_value(response_object, path)

        if isinstance(actual, str):
            assert actual.lower() == expected.lower(), (
                f"{path}: expected {expected!r}, got {actual!r}"
            )
        else:
            assert actual == parse_smart_value(expected), (
                f"{path}: expected {expected!r}, got {actual!r}"
            )

        context.world.attach(
            f'Verified JSON path "{path}": Expected = {expected}, Actual = {json.dumps(actual)}'
        )


@then("I validate the actual output response with expected api response")
def step_validate_response(context: Context) -> None:
    actual = require_data(context, KEY_ACTUAL_RESPONSE, "Response object")
    expected = require_data(context, KEY_RESPONSE_OBJECT, "Expected response object")
    context.world.attach(f"Actual Response Object:\n{pretty(actual)}")
    context.world.attach(f"Expected Response Object:\n{pretty(expected)}")

    actual, expected = without_excluded_keys(actual), without_excluded_keys(expected)
    assert actual == expected, (
        f"Actual response differs from expected:\n{pretty(actual)}\n!=\n{pretty(expected)}"
    )
    context.world.attach("Validated the actual response with expected response.")
