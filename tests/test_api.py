"""Tests for the HTTP API."""

import json

import pytest
import pytest_asyncio

from portim.core.config import settings
from conftest import OTHER_PROJECT_ID, PROJECT_ID, basic_auth, bearer_auth

OPERATOR = bearer_auth("operator", [PROJECT_ID])
STRANGER = bearer_auth("stranger", [OTHER_PROJECT_ID])
BOT_EVENTS = "https://bot.example.com/events"


def _interface_payload(name: str, **fields) -> dict:
    return {
        "name": name,
        "event_endpoint": f"https://{name}.example.com/events",
        "external_id_field": "$.user.id",
        **fields,
    }


@pytest_asyncio.fixture
async def registered(client):
    """Bot and channel interfaces registered through the API."""
    response = await client.post(
        f"/projects/{PROJECT_ID}/interfaces",
        json=_interface_payload("bot", control_endpoint="https://bot.example.com/control"),
        headers=OPERATOR,
    )
    assert response.status_code == 201
    bot = response.json()

    response = await client.post(
        f"/projects/{PROJECT_ID}/interfaces",
        json=_interface_payload("channel", control=bot["id"]),
        headers=OPERATOR,
    )
    assert response.status_code == 201
    channel = response.json()

    return {"bot": bot, "channel": channel}


@pytest_asyncio.fixture
async def outsider(client):
    """An interface of another project, with its own control endpoint."""
    response = await client.post(
        f"/projects/{OTHER_PROJECT_ID}/interfaces",
        json=_interface_payload("outsider", control_endpoint="https://outsider.example.com/control"),
        headers=STRANGER,
    )
    assert response.status_code == 201
    return response.json()


async def _create_client(client, project_id: str, external_id: str, auth: dict) -> dict:
    response = await client.post(
        f"/projects/{project_id}/clients",
        json={"external_id": external_id},
        headers=auth,
    )
    assert response.status_code == 201
    return response.json()


async def _post_message(client, interface, body: dict, session_id: str | None = None, **headers):
    path = f"/projects/{PROJECT_ID}/interfaces/{interface['id']}"
    if session_id:
        path += f"/sessions/{session_id}"
    return await client.post(
        f"{path}/messages",
        content=json.dumps(body).encode(),
        headers={**basic_auth(interface["id"], interface["secret"]), **headers},
    )


# ==================== Authentication ====================


@pytest.mark.asyncio
async def test_missing_credentials(client):
    """Test project routes require authentication."""
    response = await client.get(f"/projects/{PROJECT_ID}/interfaces")

    assert response.status_code == 401
    assert response.json()["error"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_user_outside_project(client):
    """Test users cannot list another project's interfaces."""
    response = await client.get(
        f"/projects/{OTHER_PROJECT_ID}/interfaces",
        headers=OPERATOR,
    )

    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_interface_outside_project(client, registered):
    """Test interface credentials are scoped to their project."""
    channel = registered["channel"]

    response = await client.get(
        f"/projects/{OTHER_PROJECT_ID}/interfaces",
        headers=basic_auth(channel["id"], channel["secret"]),
    )

    assert response.status_code == 403


# ==================== Interfaces ====================


@pytest.mark.asyncio
async def test_create_interface_returns_secret_once(client, registered):
    """Test the secret is in the creation response and stored fields are hidden."""
    channel = registered["channel"]

    assert channel["secret"]
    assert channel["secret_token"]
    assert channel["secret_token"] != channel["secret"]
    assert "secret_hash" not in channel
    assert "iv_token" not in channel

    response = await client.get(
        f"/projects/{PROJECT_ID}/interfaces/{channel['id']}",
        headers=OPERATOR,
    )
    assert response.status_code == 200
    assert "secret" not in response.json()
    assert response.json()["secret_token"] == channel["secret_token"]


@pytest.mark.asyncio
async def test_interface_sees_only_its_own_token(client, registered):
    """Test interface callers cannot read the control token of other interfaces."""
    bot, channel = registered["bot"], registered["channel"]
    auth = basic_auth(channel["id"], channel["secret"])
    path = f"/projects/{PROJECT_ID}/interfaces"

    response = await client.get(f"{path}/{bot['id']}", headers=auth)
    assert response.status_code == 200
    assert response.json()["secret_token"] is None

    response = await client.get(f"{path}/{channel['id']}", headers=auth)
    assert response.json()["secret_token"] == channel["secret_token"]

    response = await client.get(path, headers=auth)
    tokens = {i["id"]: i["secret_token"] for i in response.json()}
    assert tokens == {bot["id"]: None, channel["id"]: channel["secret_token"]}

    response = await client.patch(f"{path}/{bot['id']}", json={"name": "Bot two"}, headers=auth)
    assert response.status_code == 200
    assert response.json()["secret_token"] is None


@pytest.mark.asyncio
async def test_create_interface_validation(client):
    """Test endpoint and path validation on creation."""
    response = await client.post(
        f"/projects/{PROJECT_ID}/interfaces",
        json=_interface_payload("bot", event_endpoint="http://bot.example.com/events"),
        headers=OPERATOR,
    )
    assert response.status_code == 422

    response = await client.post(
        f"/projects/{PROJECT_ID}/interfaces",
        json=_interface_payload("bot", external_id_field="user.id"),
        headers=OPERATOR,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_interface_unknown_control(client):
    """Test a control interface that does not exist is rejected."""
    response = await client.post(
        f"/projects/{PROJECT_ID}/interfaces",
        json=_interface_payload("channel", control="missing"),
        headers=OPERATOR,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_update_interface(client, registered):
    """Test partial updates and clearing the control interface."""
    channel = registered["channel"]
    path = f"/projects/{PROJECT_ID}/interfaces/{channel['id']}"

    response = await client.patch(path, json={"name": "Web chat"}, headers=OPERATOR)
    assert response.status_code == 200
    assert response.json()["name"] == "Web chat"
    assert response.json()["control"] == registered["bot"]["id"]

    response = await client.patch(path, json={"control": None}, headers=OPERATOR)
    assert response.status_code == 200
    assert response.json()["control"] is None


@pytest.mark.asyncio
async def test_rotate_secret(client, registered):
    """Test the old secret stops working after rotation."""
    channel = registered["channel"]
    path = f"/projects/{PROJECT_ID}/interfaces/{channel['id']}"

    response = await client.post(f"{path}/secret", headers=OPERATOR)
    assert response.status_code == 200
    new_secret = response.json()["secret"]

    response = await client.get(path, headers=basic_auth(channel["id"], channel["secret"]))
    assert response.status_code == 401

    response = await client.get(path, headers=basic_auth(channel["id"], new_secret))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_list_and_delete_interfaces(client, registered):
    """Test listing a project's interfaces and deleting one."""
    response = await client.get(f"/projects/{PROJECT_ID}/interfaces", headers=OPERATOR)
    assert {i["name"] for i in response.json()} == {"bot", "channel"}

    channel_id = registered["channel"]["id"]
    response = await client.delete(
        f"/projects/{PROJECT_ID}/interfaces/{channel_id}",
        headers=OPERATOR,
    )
    assert response.status_code == 204

    response = await client.get(f"/projects/{PROJECT_ID}/interfaces/{channel_id}", headers=OPERATOR)
    assert response.status_code == 404


# ==================== Clients ====================


@pytest.mark.asyncio
async def test_client_endpoints(client):
    """Test client creation, metadata merge and uniqueness."""
    path = f"/projects/{PROJECT_ID}/clients"

    response = await client.post(
        path,
        json={"external_id": "u-1", "metadata": {"name": "Ada"}},
        headers=OPERATOR,
    )
    assert response.status_code == 201
    client_id = response.json()["id"]

    response = await client.post(path, json={"external_id": "u-1"}, headers=OPERATOR)
    assert response.status_code == 409

    response = await client.patch(
        f"{path}/{client_id}",
        json={"metadata": {"plan": "pro"}},
        headers=OPERATOR,
    )
    assert response.json()["metadata"] == {"name": "Ada", "plan": "pro"}

    response = await client.delete(f"{path}/{client_id}", headers=OPERATOR)
    assert response.status_code == 204


# ==================== Messages ====================


@pytest.mark.asyncio
async def test_conversation_round_trip(client, webhooks, registered):
    """Test a first message reaches the bot and the bot's reply reaches the channel."""
    bot, channel = registered["bot"], registered["channel"]

    response = await _post_message(client, channel, {"user": {"id": "u-1"}, "text": "hi"})
    assert response.status_code == 201
    message = response.json()
    assert message["status"] == "delivered"
    assert message["sender"] == channel["id"]
    session_id = message["session_id"]

    [to_bot] = webhooks.to(BOT_EVENTS)
    assert to_bot.headers["catapio-session-id"] == session_id
    assert to_bot.headers["catapio-token"] == bot["secret_token"]
    assert to_bot.headers["catapio-token"] != bot["secret"]
    assert "authorization" not in to_bot.headers

    response = await _post_message(client, bot, {"text": "hello!"}, session_id=session_id)
    assert response.status_code == 201
    assert response.json()["status"] == "delivered"
    assert len(webhooks.to("https://channel.example.com/events")) == 1

    response = await client.get(
        f"/projects/{PROJECT_ID}/interfaces/{channel['id']}/sessions/{session_id}/messages",
        headers=OPERATOR,
    )
    assert [m["sender"] for m in response.json()] == [channel["id"], bot["id"]]


@pytest.mark.asyncio
async def test_caller_headers_forwarded(client, webhooks, registered):
    """Test custom caller headers reach the destination."""
    response = await _post_message(
        client,
        registered["channel"],
        {"user": {"id": "u-1"}},
        **{"x-provider-signature": "sig"},
    )

    assert response.status_code == 201
    [to_bot] = webhooks.to(BOT_EVENTS)
    assert to_bot.headers["x-provider-signature"] == "sig"


@pytest.mark.asyncio
async def test_failed_delivery_still_created(client, webhooks, registered):
    """Test a destination failure is recorded on the message, not raised."""
    webhooks.respond(BOT_EVENTS, 404)

    response = await _post_message(client, registered["channel"], {"user": {"id": "u-1"}})

    assert response.status_code == 201
    assert response.json()["status"] == "error"
    assert response.json()["error"] == "Not Found"


@pytest.mark.asyncio
async def test_message_without_external_id(client, registered):
    """Test the client id must be present in session-less messages."""
    response = await _post_message(client, registered["channel"], {"text": "who am I"})

    assert response.status_code == 422
    assert response.json()["error"] == "NO_EXTERNAL_ID"


@pytest.mark.asyncio
async def test_message_without_control(client, registered):
    """Test session-less messages on an interface without control are rejected."""
    response = await _post_message(client, registered["bot"], {"user": {"id": "u-1"}})

    assert response.status_code == 422
    assert response.json()["error"] == "NO_CONTROL_INTERFACE"


@pytest.mark.asyncio
async def test_background_delivery(client, webhooks, registered, monkeypatch):
    """Test background mode answers pending and delivers after the response."""
    monkeypatch.setattr(settings, "delivery_mode", "background")
    channel = registered["channel"]

    response = await _post_message(client, channel, {"user": {"id": "u-1"}})
    assert response.status_code == 201
    message = response.json()
    assert message["status"] == "pending"

    response = await client.get(
        f"/projects/{PROJECT_ID}/interfaces/{channel['id']}"
        f"/sessions/{message['session_id']}/messages/{message['id']}",
        headers=OPERATOR,
    )
    assert response.json()["status"] == "delivered"
    assert len(webhooks.to(BOT_EVENTS)) == 1


@pytest.mark.asyncio
async def test_message_status_update(client, registered):
    """Test status updates accept only known statuses."""
    channel = registered["channel"]
    message = (await _post_message(client, channel, {"user": {"id": "u-1"}})).json()
    path = (
        f"/projects/{PROJECT_ID}/interfaces/{channel['id']}"
        f"/sessions/{message['session_id']}/messages/{message['id']}"
    )

    response = await client.patch(f"{path}/status", json={"status": "pending"}, headers=OPERATOR)
    assert response.status_code == 200
    assert response.json()["status"] == "pending"

    response = await client.patch(f"{path}/status", json={"status": "lost"}, headers=OPERATOR)
    assert response.status_code == 422

    response = await client.delete(path, headers=OPERATOR)
    assert response.status_code == 204
    response = await client.get(path, headers=OPERATOR)
    assert response.status_code == 404


# ==================== Sessions ====================


@pytest.mark.asyncio
async def test_pass_control_endpoint(client, webhooks, registered):
    """Test pass-control over HTTP notifies the new target."""
    bot, channel = registered["bot"], registered["channel"]
    response = await client.post(
        f"/projects/{PROJECT_ID}/interfaces",
        json=_interface_payload("agent", control_endpoint="https://agent.example.com/control"),
        headers=OPERATOR,
    )
    agent = response.json()

    contact = await _create_client(client, PROJECT_ID, "u-1", OPERATOR)

    response = await client.post(
        f"/projects/{PROJECT_ID}/interfaces/{channel['id']}/sessions",
        json={"client_id": contact["id"]},
        headers=OPERATOR,
    )
    assert response.status_code == 201
    session = response.json()
    assert session["target"] == bot["id"]

    response = await client.post(
        f"/projects/{PROJECT_ID}/interfaces/{channel['id']}/sessions/{session['id']}/passControl",
        json={"target": agent["id"], "metadata": {"reason": "human requested"}},
        headers=basic_auth(bot["id"], bot["secret"]),
    )
    assert response.status_code == 200
    assert response.json()["target"] == agent["id"]

    [notification] = webhooks.to("https://agent.example.com/control")
    assert json.loads(notification.content) == {"reason": "human requested"}
    assert notification.headers["catapio-session-id"] == session["id"]


@pytest.mark.asyncio
async def test_session_not_found(client, registered):
    """Test unknown sessions answer 404."""
    channel = registered["channel"]

    response = await client.get(
        f"/projects/{PROJECT_ID}/interfaces/{channel['id']}/sessions/missing",
        headers=OPERATOR,
    )

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_session_of_other_project_is_not_found(client, webhooks, registered, outsider):
    """Test a session id cannot be reached through another project's interface."""
    channel = registered["channel"]
    message = (await _post_message(client, channel, {"user": {"id": "u-1"}})).json()
    session_id = message["session_id"]
    webhooks.requests.clear()

    auth = basic_auth(outsider["id"], outsider["secret"])
    base = f"/projects/{OTHER_PROJECT_ID}/interfaces/{outsider['id']}/sessions/{session_id}"

    responses = [
        await client.get(base, headers=auth),
        await client.get(f"{base}/messages", headers=auth),
        await client.get(f"{base}/messages/{message['id']}", headers=auth),
        await client.patch(
            f"{base}/messages/{message['id']}/status",
            json={"status": "pending"},
            headers=auth,
        ),
        await client.delete(f"{base}/messages/{message['id']}", headers=auth),
        await client.post(f"{base}/messages", content=b'{"text": "injected"}', headers=auth),
        await client.post(f"{base}/passControl", json={"target": outsider["id"]}, headers=auth),
        await client.delete(base, headers=auth),
    ]

    assert [r.status_code for r in responses] == [404] * len(responses)
    assert all(r.json()["details"]["resource"] == "session" for r in responses)
    assert webhooks.requests == []

    response = await client.get(
        f"/projects/{PROJECT_ID}/interfaces/{channel['id']}/sessions/{session_id}",
        headers=OPERATOR,
    )
    assert response.json()["target"] == registered["bot"]["id"]

    response = await client.get(
        f"/projects/{PROJECT_ID}/interfaces/{channel['id']}"
        f"/sessions/{session_id}/messages/{message['id']}",
        headers=OPERATOR,
    )
    assert response.json()["status"] == "delivered"


@pytest.mark.asyncio
async def test_create_session_target_of_other_project(client, registered, outsider):
    """Test a session cannot be opened towards another project's interface."""
    contact = await _create_client(client, PROJECT_ID, "u-1", OPERATOR)

    response = await client.post(
        f"/projects/{PROJECT_ID}/interfaces/{registered['channel']['id']}/sessions",
        json={"client_id": contact["id"], "target": outsider["id"]},
        headers=OPERATOR,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_pass_control_to_other_project(client, webhooks, registered, outsider):
    """Test control cannot be handed to another project's interface."""
    channel = registered["channel"]
    contact = await _create_client(client, PROJECT_ID, "u-1", OPERATOR)
    path = f"/projects/{PROJECT_ID}/interfaces/{channel['id']}/sessions"
    session = (await client.post(path, json={"client_id": contact["id"]}, headers=OPERATOR)).json()

    response = await client.post(
        f"{path}/{session['id']}/passControl",
        json={"target": outsider["id"], "metadata": {"transcript": "private"}},
        headers=OPERATOR,
    )

    assert response.status_code == 400
    assert webhooks.to("https://outsider.example.com/control") == []

    response = await client.get(f"{path}/{session['id']}", headers=OPERATOR)
    assert response.json()["target"] == registered["bot"]["id"]


@pytest.mark.asyncio
async def test_create_session_client_of_other_project(client, registered):
    """Test sessions only attach clients of the same project."""
    stranger = await _create_client(client, OTHER_PROJECT_ID, "u-9", STRANGER)
    path = f"/projects/{PROJECT_ID}/interfaces/{registered['channel']['id']}/sessions"

    response = await client.post(path, json={"client_id": stranger["id"]}, headers=OPERATOR)
    assert response.status_code == 404
    assert response.json()["details"]["resource"] == "client"

    response = await client.post(path, json={"client_id": "missing"}, headers=OPERATOR)
    assert response.status_code == 404
