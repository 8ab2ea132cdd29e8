import pytest
from httpx import AsyncClient, ASGITransport

from repo_webscripts.api.dependencies import build_container, get_container
from repo_webscripts.db.transaction import RetryingTransactionHelper
from repo_webscripts.main import app
from repo_webscripts.wcm.model import PROP_DEPLOYSERVERPASSWORD

from conftest import create_token

PROJECT_URL = "/service/api/wcm/webprojects/www/deploymentservers"


def bearer(user="alice", authorities=None):
    return {"Authorization": f"Bearer {create_token(user=user, authorities=authorities)}"}


ADMIN = {"user": "root", "authorities": ["GROUP_ALFRESCO_ADMINISTRATORS"]}


@pytest.fixture
def container(session_factory):
    helper = RetryingTransactionHelper(
        session_factory,
        max_retries=0,
        min_retry_wait_ms=0,
        max_retry_wait_ms=0,
        retry_wait_increment_ms=0,
    )
    container = build_container(transaction_helper=helper)
    app.dependency_overrides[get_container] = lambda: container
    yield container
    app.dependency_overrides = {}


@pytest.fixture
async def async_client(container):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_health(async_client):
    resp = await async_client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_index_is_anonymous(async_client):
    resp = await async_client.get("/service/index")

    assert resp.status_code == 200
    ids = [s["id"] for s in resp.json()["webscripts"]]
    assert "index" in ids
    assert "wcm.deploymentservers.post" in ids


@pytest.mark.asyncio
async def test_unknown_script_is_404(async_client):
    resp = await async_client.get("/service/api/nothing-here")

    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_user_script_without_token_is_challenged(async_client, session_factory):
    resp = await async_client.get("/service/api/server")

    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"].startswith("Bearer")
    # The script never ran, so no transaction was opened
    assert session_factory.sessions == []


@pytest.mark.asyncio
async def test_guest_on_user_script_is_unauthorized(async_client):
    resp = await async_client.get("/service/api/server", params={"guest": "true"})

    assert resp.status_code == 401
    assert "Web Script server requires user authentication" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_server_script_publishes_anchors(async_client, container):
    resp = await async_client.get("/service/api/server", headers=bearer())

    assert resp.status_code == 200
    body = resp.json()
    assert body["user"] == "alice"
    assert body["companyhome"] == str(container.repository.get_company_home())
    assert "roothome" not in body
    assert body["person"].startswith("workspace://SpacesStore/")
    assert "userhome" in body


@pytest.mark.asyncio
async def test_create_requires_admin(async_client, session_factory):
    resp = await async_client.post(
        PROJECT_URL,
        json={"deployType": "file", "properties": {"type": "test", "host": "fsr"}},
        headers=bearer(),
    )

    assert resp.status_code == 401
    assert "requires admin authentication" in resp.json()["detail"]
    assert session_factory.rows == {}


@pytest.mark.asyncio
async def test_create_list_and_get_deployment_server(async_client, session_factory):
    resp = await async_client.post(
        PROJECT_URL,
        json={
            "deployType": "file",
            "properties": {
                "type": "live",
                "host": "fsr.example.com",
                "port": "44100",
                "password": "s3cret",
                "targetName": "siteA",
                "url": "",
            },
        },
        headers=bearer(**ADMIN),
    )

    assert resp.status_code == 201
    created = resp.json()["data"]
    assert created["deployType"] == "file"
    assert created["properties"]["targetName"] == "siteA"
    assert created["properties"]["onApproval"] is False
    assert "password" not in created["properties"]
    assert "url" not in created["properties"]

    (row,) = session_factory.rows.values()
    assert row.web_project == "www"
    assert row.properties[PROP_DEPLOYSERVERPASSWORD] == "s3cret"

    listed = await async_client.get(PROJECT_URL, headers=bearer())
    assert listed.status_code == 200
    assert [s["nodeRef"] for s in listed.json()["data"]] == [created["nodeRef"]]

    test_only = await async_client.get(PROJECT_URL, params={"type": "test"}, headers=bearer())
    assert test_only.json()["data"] == []

    fetched = await async_client.get(f"{PROJECT_URL}/{row.node_id}", headers=bearer())
    assert fetched.status_code == 200
    assert fetched.json()["data"]["properties"]["port"] == "44100"


@pytest.mark.asyncio
async def test_get_missing_server_is_404(async_client):
    resp = await async_client.get(f"{PROJECT_URL}/does-not-exist", headers=bearer())

    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_create_rejects_unknown_deploy_type(async_client, session_factory):
    resp = await async_client.post(
        PROJECT_URL,
        json={"deployType": "ftp", "properties": {}},
        headers=bearer(**ADMIN),
    )

    assert resp.status_code == 400
    assert session_factory.rows == {}
    assert session_factory.rollbacks == 1
