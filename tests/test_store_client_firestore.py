import json

import httpx
import pytest

from shared.clients.store.firestore.StoreClientFirestore import StoreClientFirestore
from shared.errors.exceptions import ConflictError, RemoteIOError

DOCUMENTS_ROOT = "/v1/projects/demo-project/databases/(default)/documents"


@pytest.fixture
async def booted(helper_config, monkeypatch):
    monkeypatch.setenv("STORE_FIRESTORE_API_KEY", "web-key")
    monkeypatch.setenv("STORE_FIRESTORE_ACCESS_TOKEN", "service-token")
    requests: list[httpx.Request] = []
    responses: list[httpx.Response] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return responses.pop(0)

    client = StoreClientFirestore(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))
    yield client, requests, responses
    await client.close()


async def test_query_sends_structured_query_and_parses_documents(booted):
    client, requests, responses = booted
    responses.append(httpx.Response(200, json=[
        {"document": {
            "name": f"projects/demo-project/databases/(default)/documents/pdfCategories/abc",
            "fields": {"organizationId": {"stringValue": "org-a"}, "pdfName": {"stringValue": "SOP"}},
        }, "readTime": "2024-01-01T00:00:00Z"},
        {"readTime": "2024-01-01T00:00:00Z"},
    ]))

    records = await client.do_query("pdfCategories", [("organizationId", "org-a")])

    assert [(record.collection, record.id) for record in records] == [("pdfCategories", "abc")]
    assert records[0].fields["pdfName"] == "SOP"
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == f"{DOCUMENTS_ROOT}:runQuery"
    assert request.url.params["key"] == "web-key"
    assert request.headers["Authorization"] == "Bearer service-token"
    body = json.loads(request.content)
    assert body["structuredQuery"]["from"] == [{"collectionId": "pdfCategories"}]
    assert body["structuredQuery"]["where"]["fieldFilter"] == {
        "field": {"fieldPath": "organizationId"}, "op": "EQUAL", "value": {"stringValue": "org-a"},
    }


async def test_query_with_several_filters_uses_composite_filter(booted):
    client, requests, responses = booted
    responses.append(httpx.Response(200, json=[]))

    await client.do_query("sopFolders", [("organizationId", "org-a"), ("name", "Safety")])

    where = json.loads(requests[0].content)["structuredQuery"]["where"]
    assert where["compositeFilter"]["op"] == "AND"
    assert len(where["compositeFilter"]["filters"]) == 2


async def test_user_token_takes_precedence(booted):
    client, requests, responses = booted
    responses.append(httpx.Response(200, json=[]))
    client.set_auth_token("user-id-token")

    await client.do_query("sopCategories", [])

    assert requests[0].headers["Authorization"] == "Bearer user-id-token"


async def test_create_uses_server_timestamp_and_precondition(booted):
    client, requests, responses = booted
    responses.append(httpx.Response(200, json={"writeResults": [{}]}))

    document_id = await client.do_create(
        "sopFolders", {"name": "Safety", "createdAt": "ignored"},
        server_timestamp_fields=["createdAt"], document_id="folder-1", must_not_exist=True,
    )

    assert document_id == "folder-1"
    write = json.loads(requests[0].content)["writes"][0]
    assert requests[0].url.path == f"{DOCUMENTS_ROOT}:commit"
    assert write["update"]["name"].endswith("/documents/sopFolders/folder-1")
    assert write["update"]["fields"] == {"name": {"stringValue": "Safety"}}
    assert write["updateTransforms"] == [{"fieldPath": "createdAt", "setToServerValue": "REQUEST_TIME"}]
    assert write["currentDocument"] == {"exists": False}


async def test_create_generates_ids(booted):
    client, requests, responses = booted
    responses.append(httpx.Response(200, json={}))

    document_id = await client.do_create("pdfCategories", {"pdfName": "SOP"})

    assert len(document_id) == 20
    assert "currentDocument" not in json.loads(requests[0].content)["writes"][0]


async def test_create_conflict_raises_conflict_error(booted):
    client, _, responses = booted
    responses.append(httpx.Response(409, json={"error": {"status": "ALREADY_EXISTS", "message": "Document already exists"}}))

    with pytest.raises(ConflictError) as excinfo:
        await client.do_create("sopFolders", {"name": "Safety"}, document_id="folder-1", must_not_exist=True)

    assert excinfo.value.status_code == 409


async def test_create_failure_raises_remote_error(booted):
    client, _, responses = booted
    responses.append(httpx.Response(403, json={"error": {"status": "PERMISSION_DENIED", "message": "Missing permissions"}}))

    with pytest.raises(RemoteIOError) as excinfo:
        await client.do_create("pdfCategories", {"pdfName": "SOP"})

    assert not isinstance(excinfo.value, ConflictError)
    assert "Missing permissions" in excinfo.value.message


async def test_get_returns_none_for_missing_document(booted):
    client, requests, responses = booted
    responses.append(httpx.Response(404, json={"error": {"status": "NOT_FOUND"}}))
    responses.append(httpx.Response(200, json={
        "name": "projects/demo-project/databases/(default)/documents/users/user-1",
        "fields": {"organizationId": {"stringValue": "org-a"}},
    }))

    assert await client.do_get("users", "nobody") is None
    record = await client.do_get("users", "user-1")
    assert record.fields == {"organizationId": "org-a"}
    assert requests[1].method == "GET"


async def test_delete_and_query_failure(booted):
    client, requests, responses = booted
    responses.append(httpx.Response(200, json={}))
    responses.append(httpx.Response(503, text="unavailable"))

    await client.do_delete("PDFCategories", "abc")
    assert requests[0].method == "DELETE"
    assert requests[0].url.path == f"{DOCUMENTS_ROOT}/PDFCategories/abc"

    with pytest.raises(RemoteIOError) as excinfo:
        await client.do_query("pdfCategories", [])
    assert excinfo.value.status_code == 503


async def test_request_before_boot_fails(helper_config):
    client = StoreClientFirestore(helper_config=helper_config)

    with pytest.raises(RemoteIOError):
        await client.do_query("pdfCategories", [])


def test_missing_project_id_fails_validation(helper_config, monkeypatch):
    monkeypatch.delenv("STORE_FIRESTORE_PROJECT_ID")

    with pytest.raises(ValueError):
        StoreClientFirestore(helper_config=helper_config)
