import pytest


@pytest.mark.asyncio
async def test_create_room_pins_session(async_test_client, register):
    await register(async_test_client, "alice")
    response = await async_test_client.post("/api/chatrooms/create", json={"name": "lobby", "pin": "1234"})
    assert response.status_code == 201
    assert response.json() == {"message": "Chat room created and joined!", "redirect": "/chat"}

    me = (await async_test_client.get("/api/user/me")).json()
    assert me["currentChatRoomName"] == "lobby"
    assert me["currentChatRoomId"] is not None

@pytest.mark.asyncio
async def test_create_room_requires_session(async_test_client):
    response = await async_test_client.post("/api/chatrooms/create", json={"name": "lobby", "pin": "1234"})
    assert response.status_code == 401

@pytest.mark.asyncio
async def test_create_room_duplicate_name(async_test_client, make_client, register):
    await register(async_test_client, "alice")
    await async_test_client.post("/api/chatrooms/create", json={"name": "lobby", "pin": "1234"})

    bob = make_client()
    await register(bob, "bob")
    response = await bob.post("/api/chatrooms/create", json={"name": "lobby", "pin": "9999"})
    assert response.status_code == 409
    assert response.json()["message"] == "Chat room with this name already exists."

@pytest.mark.asyncio
async def test_create_room_weak_pin(async_test_client, register):
    await register(async_test_client, "alice")
    response = await async_test_client.post("/api/chatrooms/create", json={"name": "lobby", "pin": "12"})
    assert response.status_code == 400

@pytest.mark.asyncio
async def test_join_room(async_test_client, make_client, register, enter_room):
    await register(async_test_client, "alice")
    room_id = await enter_room(async_test_client)

    bob = make_client()
    await register(bob, "bob")
    response = await bob.post("/api/chatrooms/join", json={"name": "lobby", "pin": "1234"})
    assert response.status_code == 200
    assert response.json()["redirect"] == "/chat"

    me = (await bob.get("/api/user/me")).json()
    assert me["currentChatRoomId"] == room_id

@pytest.mark.asyncio
async def test_join_room_wrong_pin(async_test_client, make_client, register, enter_room):
    await register(async_test_client, "alice")
    await enter_room(async_test_client)

    bob = make_client()
    await register(bob, "bob")
    response = await bob.post("/api/chatrooms/join", json={"name": "lobby", "pin": "0000"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid PIN for this chat room."

    me = (await bob.get("/api/user/me")).json()
    assert me["currentChatRoomId"] is None

@pytest.mark.asyncio
async def test_join_missing_room(async_test_client, register):
    await register(async_test_client, "alice")
    response = await async_test_client.post("/api/chatrooms/join", json={"name": "nowhere", "pin": "1234"})
    assert response.status_code == 404

@pytest.mark.asyncio
async def test_online_users_excludes_self(async_test_client, make_client, register, enter_room):
    await register(async_test_client, "alice")
    room_id = await enter_room(async_test_client)

    bob = make_client()
    await register(bob, "bob")
    await enter_room(bob)

    response = await async_test_client.get(f"/api/chatrooms/{room_id}/online-users")
    assert response.status_code == 200
    usernames = [u["username"] for u in response.json()["onlineUsers"]]
    assert usernames == ["bob"]

@pytest.mark.asyncio
async def test_online_users_forbidden_for_outsider(async_test_client, make_client, register, enter_room):
    await register(async_test_client, "alice")
    room_id = await enter_room(async_test_client)

    mallory = make_client()
    await register(mallory, "mallory")
    response = await mallory.get(f"/api/chatrooms/{room_id}/online-users")
    assert response.status_code == 403
