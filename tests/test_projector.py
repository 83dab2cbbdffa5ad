from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from model import Task, TaskPriority, User, db
from projector import project_task


def _seed(app):
    with app.app_context():
        user = User(email="p@example.com", username="proj", password="x")
        db.session.add(user)
        db.session.flush()
        db.session.add(
            Task(title="plain", user_id=user.id, priority=TaskPriority.LOW, due_date=date(2030, 1, 2))
        )
        db.session.commit()


def test_unloaded_relations_are_omitted(app):
    _seed(app)
    with app.app_context():
        task = db.session.scalar(select(Task))
        data = project_task(task)

    assert data["title"] == "plain"
    assert data["priority"] == "LOW"
    assert data["status"] == "ACTIVE"
    assert data["dueDate"] == "2030-01-02"
    assert data["completedAt"] is None
    for relation in ("user", "category", "subtasks"):
        assert relation not in data


def test_loaded_empty_collection_is_empty_list(app):
    _seed(app)
    with app.app_context():
        task = db.session.scalar(select(Task).options(selectinload(Task.subtasks)))
        data = project_task(task)

    assert data["subtasks"] == []
    assert "user" not in data


def test_task_field_names(client, alice, make_task):
    _, h = alice
    task = make_task(h, title="shape")
    assert list(task) == [
        "id", "title", "description", "priority", "status", "dueDate", "completed",
        "completedAt", "userId", "categoryId", "createdAt", "updatedAt", "user", "subtasks",
    ]
