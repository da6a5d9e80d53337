"""Small request helpers shared by the API tests."""


async def create_user(client, handle: str) -> int:
    resp = await client.post("/users/", json={"handle": handle, "display_name": handle.title()})
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


async def create_post(client, user_id: int, text: str, reply_to_id=None) -> dict:
    body = {"user_id": user_id, "text": text}
    if reply_to_id is not None:
        body["reply_to_id"] = reply_to_id
    resp = await client.post("/posts/", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def follow(client, follower_id: int, followee_id: int) -> None:
    resp = await client.post(
        "/users/follow", json={"follower_id": follower_id, "followee_id": followee_id}
    )
    assert resp.status_code == 204, resp.text


async def react(client, post_id: int, user_id: int, type: str = "LIKE") -> dict:
    resp = await client.post(f"/posts/{post_id}/react", json={"user_id": user_id, "type": type})
    assert resp.status_code == 200, resp.text
    return resp.json()
