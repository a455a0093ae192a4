from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from rtm_client.auth import AuthFlow, AuthState
from rtm_client.clients.http_client import AUTH_URL, REST_URL, RtmHttpClient
from rtm_client.exceptions import AuthenticationError, RequestTimeoutError
from rtm_client.signature import sign

from tests.integration.fixtures import FROB_RESPONSE, INVALID_SIGNATURE_RESPONSE, TOKEN_RESPONSE

FROB = FROB_RESPONSE["rsp"]["frob"]
TOKEN = TOKEN_RESPONSE["rsp"]["auth"]["token"]


def _register_handshake() -> None:
    responses.get(REST_URL, json=FROB_RESPONSE)
    responses.get(REST_URL, json=TOKEN_RESPONSE)


@responses.activate
def test_run_walks_through_all_states(http_client: RtmHttpClient, tmp_path: Path) -> None:
    _register_handshake()
    token_path = tmp_path / "token"
    seen_states = []

    def prompt(url: str) -> None:
        seen_states.append(flow.state)
        assert url.startswith(AUTH_URL)

    flow = AuthFlow(http_client, prompt, token_path=token_path)
    assert flow.state is AuthState.NO_FROB

    token = flow.run()

    assert token == TOKEN
    assert seen_states == [AuthState.FROB_OBTAINED]
    assert flow.state is AuthState.AUTHORIZED
    assert token_path.read_text(encoding="utf-8") == TOKEN


@responses.activate
def test_handshake_requests_are_signed_without_auth_token(http_client: RtmHttpClient) -> None:
    _register_handshake()

    AuthFlow(http_client, Mock()).run()

    frob_query = {k: v[0] for k, v in parse_qs(urlparse(responses.calls[0].request.url).query).items()}
    token_query = {k: v[0] for k, v in parse_qs(urlparse(responses.calls[1].request.url).query).items()}
    assert "auth_token" not in frob_query
    assert frob_query["api_sig"] == sign(
        "test_api_key", "test_secret", {"format": "json", "method": "rtm.auth.getFrob"}
    )
    assert token_query["frob"] == FROB
    assert token_query["api_sig"] == sign(
        "test_api_key",
        "test_secret",
        {"format": "json", "frob": FROB, "method": "rtm.auth.getToken"},
    )


def test_build_auth_url_contains_signed_perms(http_client: RtmHttpClient) -> None:
    flow = AuthFlow(http_client, Mock())

    url = flow.build_auth_url("abc")

    parsed = urlparse(url)
    query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
    assert url.startswith(AUTH_URL)
    assert query["api_key"] == "test_api_key"
    assert query["perms"] == "delete"
    assert query["frob"] == "abc"
    assert query["api_sig"] == sign("test_api_key", "test_secret", {"frob": "abc", "perms": "delete"})


@responses.activate
def test_run_does_not_repeat_once_authorized(http_client: RtmHttpClient) -> None:
    _register_handshake()
    prompt = Mock()
    flow = AuthFlow(http_client, prompt)

    assert flow.run() == TOKEN
    assert flow.run() == TOKEN

    prompt.assert_called_once()
    assert len(responses.calls) == 2


@responses.activate
def test_reset_allows_new_handshake(http_client: RtmHttpClient) -> None:
    _register_handshake()
    flow = AuthFlow(http_client, Mock())
    flow.run()

    flow.reset()

    assert flow.state is AuthState.NO_FROB
    assert flow.token is None


def test_steps_out_of_order_are_rejected(http_client: RtmHttpClient) -> None:
    flow = AuthFlow(http_client, Mock())

    with pytest.raises(AuthenticationError):
        flow.build_auth_url()
    with pytest.raises(AuthenticationError):
        flow.get_token()


@responses.activate
def test_api_failure_raises_authentication_error(http_client: RtmHttpClient, tmp_path: Path) -> None:
    responses.get(REST_URL, json=FROB_RESPONSE)
    responses.get(REST_URL, json=INVALID_SIGNATURE_RESPONSE)
    token_path = tmp_path / "token"

    with pytest.raises(AuthenticationError):
        AuthFlow(http_client, Mock(), token_path=token_path).run()

    assert not token_path.exists()


@responses.activate
def test_missing_frob_raises_authentication_error(http_client: RtmHttpClient) -> None:
    responses.get(REST_URL, json={"rsp": {"stat": "ok"}})

    with pytest.raises(AuthenticationError):
        AuthFlow(http_client, Mock()).get_frob()


@responses.activate
def test_transport_failures_keep_their_type(http_client: RtmHttpClient) -> None:
    responses.get(REST_URL, body=requests.exceptions.ReadTimeout())

    with pytest.raises(RequestTimeoutError):
        AuthFlow(http_client, Mock()).get_frob()


@responses.activate
def test_check_token_returns_auth_payload(http_client: RtmHttpClient) -> None:
    responses.get(REST_URL, json=TOKEN_RESPONSE)

    auth = AuthFlow(http_client, Mock()).check_token(TOKEN)

    assert auth["user"]["username"] == "bob"
    query = parse_qs(urlparse(responses.calls[0].request.url).query)
    assert query["method"] == ["rtm.auth.checkToken"]
    assert query["auth_token"] == [TOKEN]
