import pytest
from werkzeug.exceptions import Forbidden

from ownership import authorize


def test_authorize():
    authorize(1, 1)
    with pytest.raises(Forbidden):
        authorize(1, 2, "nope")


def test_foreign_task_is_forbidden_missing_task_is_not_found(client, alice, bob, make_task):
    _, alice_h = alice
    _, bob_h = bob
    task = make_task(alice_h)
    url = f"/tasks/{task['id']}"

    resp = client.get(url, headers=bob_h)
    assert resp.status_code == 403
    assert resp.get_json() == {
        "statusCode": 403,
        "error": "Forbidden",
        "message": "You do not have access to this task",
    }
    assert client.patch(url, json={"title": "x"}, headers=bob_h).status_code == 403
    assert client.post(f"{url}/toggle-complete", headers=bob_h).status_code == 403
    assert client.delete(url, headers=bob_h).status_code == 403

    missing = client.get("/tasks/9999", headers=bob_h)
    assert missing.status_code == 404
    assert missing.get_json()["message"] == "Task not found"

    # untouched by the rejected writes
    body = client.get(url, headers=alice_h).get_json()
    assert body["title"] == task["title"]
    assert body["completed"] is False


def test_cannot_move_task_into_foreign_category(client, alice, bob, make_task):
    _, alice_h = alice
    _, bob_h = bob
    foreign = client.post("/categories", json={"name": "Bob's"}, headers=bob_h).get_json()
    task = make_task(alice_h)

    resp = client.patch(f"/tasks/{task['id']}", json={"categoryId": foreign["id"]}, headers=alice_h)
    assert resp.status_code == 403
