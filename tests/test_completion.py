from datetime import datetime

import pytest

import completion
from model import Task, TaskStatus


def _active_task():
    return completion.mark_active(Task(title="t"))


def test_toggle_flips_and_derives_state():
    task = _active_task()
    now = datetime(2026, 1, 2, 3, 4, 5)

    completion.toggle(task, now)
    assert (task.status, task.completed, task.completed_at) == (TaskStatus.COMPLETED, True, now)

    completion.toggle(task)
    assert (task.status, task.completed, task.completed_at) == (TaskStatus.ACTIVE, False, None)


@pytest.mark.parametrize(
    "status, completed, expected",
    [
        (None, None, None),
        ("COMPLETED", None, True),
        ("ACTIVE", None, False),
        (None, True, True),
        (None, False, False),
        ("ACTIVE", True, True),
        ("COMPLETED", False, False),
    ],
)
def test_requested_completion(status, completed, expected):
    assert completion.requested_completion(status, completed) is expected


def test_update_without_signal_leaves_completion_alone():
    task = completion.mark_completed(Task(title="t"), datetime(2026, 1, 1))
    completion.apply_completion_update(task)
    assert task.completed is True
    assert task.completed_at == datetime(2026, 1, 1)


def test_create_always_starts_active(client, alice, make_task):
    _, h = alice
    task = make_task(h, title="x", completed=True, status="COMPLETED", completedAt="2020-01-01T00:00:00")
    assert task["status"] == "ACTIVE"
    assert task["completed"] is False
    assert task["completedAt"] is None
    assert task["priority"] == "MEDIUM"


def test_toggle_twice_round_trips(client, alice, make_task):
    _, h = alice
    task = make_task(h)

    once = client.post(f"/tasks/{task['id']}/toggle-complete", headers=h).get_json()
    assert once["completed"] is True
    assert once["status"] == "COMPLETED"
    assert once["completedAt"] is not None

    twice = client.post(f"/tasks/{task['id']}/toggle-complete", headers=h).get_json()
    assert twice["completed"] is False
    assert twice["status"] == "ACTIVE"
    assert twice["completedAt"] is None


def test_explicit_update_completed_then_active(client, alice, make_task):
    _, h = alice
    task = make_task(h)

    done = client.patch(f"/tasks/{task['id']}", json={"completed": True}, headers=h).get_json()
    assert done["status"] == "COMPLETED"
    assert done["completedAt"] is not None

    reopened = client.patch(f"/tasks/{task['id']}", json={"status": "ACTIVE"}, headers=h).get_json()
    assert reopened["completed"] is False
    assert reopened["completedAt"] is None


def test_status_completed_alone_completes(client, alice, make_task):
    _, h = alice
    task = make_task(h)
    body = client.patch(f"/tasks/{task['id']}", json={"status": "COMPLETED"}, headers=h).get_json()
    assert body["completed"] is True
    assert body["completedAt"] is not None


def test_contradictory_signals_follow_completed_flag(client, alice, make_task):
    _, h = alice
    task = make_task(h)
    body = client.patch(
        f"/tasks/{task['id']}", json={"status": "ACTIVE", "completed": True}, headers=h
    ).get_json()
    assert body["status"] == "COMPLETED"
    assert body["completed"] is True


def test_completed_at_is_never_client_supplied(client, alice, make_task):
    _, h = alice
    task = make_task(h)
    body = client.patch(
        f"/tasks/{task['id']}",
        json={"completed": True, "completedAt": "1999-01-01T00:00:00"},
        headers=h,
    ).get_json()
    assert not body["completedAt"].startswith("1999")


def test_plain_field_update_keeps_completion(client, alice, make_task):
    _, h = alice
    task = make_task(h)
    client.post(f"/tasks/{task['id']}/toggle-complete", headers=h)

    body = client.patch(f"/tasks/{task['id']}", json={"title": "renamed"}, headers=h).get_json()
    assert body["title"] == "renamed"
    assert body["completed"] is True
    assert body["status"] == "COMPLETED"


def test_partial_update_only_touches_sent_fields(client, alice, make_task):
    _, h = alice
    task = make_task(h, title="keep", description="desc", priority="HIGH", dueDate="2030-01-01")

    body = client.patch(f"/tasks/{task['id']}", json={"description": None}, headers=h).get_json()
    assert body["title"] == "keep"
    assert body["priority"] == "HIGH"
    assert body["dueDate"] == "2030-01-01"
    assert body["description"] is None
