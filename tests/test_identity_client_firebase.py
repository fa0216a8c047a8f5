import json

import httpx
import pytest

from shared.clients.identity.firebase.IdentityClientFirebase import IdentityClientFirebase
from shared.errors.exceptions import RemoteIOError


@pytest.fixture
async def booted(helper_config):
    requests: list[httpx.Request] = []
    responses: list[httpx.Response] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return responses.pop(0)

    client = IdentityClientFirebase(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))
    yield client, requests, responses
    await client.close()


async def test_sign_in_sets_current_user(booted):
    client, requests, responses = booted
    responses.append(httpx.Response(200, json={"localId": "user-1", "idToken": "tok", "refreshToken": "ref", "email": "a@b.c", "expiresIn": "3600"}))

    assert client.is_authenticated() is False
    session = await client.do_sign_in("a@b.c", "secret")

    assert session.expires_in == 3600
    assert client.is_authenticated() is True
    assert client.get_current_user_id() == "user-1"
    assert requests[0].url.path == "/v1/accounts:signInWithPassword"
    assert requests[0].url.params["key"] == "web-api-key"
    assert json.loads(requests[0].content)["returnSecureToken"] is True

    client.sign_out()
    assert client.get_current_user_id() is None


async def test_rejected_sign_in(booted):
    client, _, responses = booted
    responses.append(httpx.Response(400, json={"error": {"code": 400, "message": "INVALID_PASSWORD"}}))

    with pytest.raises(RemoteIOError) as excinfo:
        await client.do_sign_in("a@b.c", "wrong")

    assert "INVALID_PASSWORD" in excinfo.value.message
    assert client.is_authenticated() is False


async def test_verify_token(booted):
    client, requests, responses = booted
    responses.append(httpx.Response(200, json={"users": [{"localId": "user-7"}]}))
    responses.append(httpx.Response(200, json={"users": []}))

    assert await client.do_verify_token("tok") == "user-7"
    with pytest.raises(RemoteIOError) as excinfo:
        await client.do_verify_token("orphan-token")
    assert excinfo.value.status_code == 401
    assert requests[0].url.path == "/v1/accounts:lookup"


async def test_healthcheck_accepts_client_errors(booted):
    client, _, responses = booted
    responses.append(httpx.Response(400, json={"error": {"message": "INVALID_ID_TOKEN"}}))
    responses.append(httpx.Response(503, text="down"))

    assert (await client.do_healthcheck()).status_code == 400
    with pytest.raises(RemoteIOError):
        await client.do_healthcheck()
