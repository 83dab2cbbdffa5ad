"""
Turn model instances into the JSON shapes returned by the API.

Relations are projected only when they were loaded with the instance, so the
same function serves shallow and deep reads. A loaded collection that is
empty becomes ``[]``; a relation that was never loaded is left out.
"""

from sqlalchemy import inspect


def _loaded(obj, relation):
    return relation not in inspect(obj).unloaded


def _iso(value):
    return value.isoformat() if value is not None else None


def _enum(value):
    return value.value if value is not None else None


def project_user(user, stats=None):
    data = {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }
    if stats is not None:
        data["stats"] = stats
    return data


def project_user_ref(user):
    return {"id": user.id, "email": user.email, "username": user.username}


def project_category_ref(category):
    return {"id": category.id, "name": category.name, "color": category.color}


def project_subtask(subtask):
    return {
        "id": subtask.id,
        "title": subtask.title,
        "completed": subtask.completed,
        "taskId": subtask.task_id,
        "createdAt": _iso(subtask.created_at),
        "updatedAt": _iso(subtask.updated_at),
    }


def project_task(task, include_user=True, include_category=True):
    data = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": _enum(task.priority),
        "status": _enum(task.status),
        "dueDate": _iso(task.due_date),
        "completed": task.completed,
        "completedAt": _iso(task.completed_at),
        "userId": task.user_id,
        "categoryId": task.category_id,
        "createdAt": _iso(task.created_at),
        "updatedAt": _iso(task.updated_at),
    }
    if include_user and _loaded(task, "user") and task.user is not None:
        data["user"] = project_user_ref(task.user)
    if include_category and _loaded(task, "category") and task.category is not None:
        data["category"] = project_category_ref(task.category)
    if _loaded(task, "subtasks"):
        data["subtasks"] = [project_subtask(s) for s in task.subtasks]
    return data


def project_category(category, task_count=None):
    data = {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "color": category.color,
        "userId": category.user_id,
        "createdAt": _iso(category.created_at),
        "updatedAt": _iso(category.updated_at),
    }
    if _loaded(category, "tasks"):
        data["tasks"] = [
            project_task(t, include_user=False, include_category=False) for t in category.tasks
        ]
    if task_count is not None:
        data["taskCount"] = task_count
    return data


def project_paginated(tasks, meta):
    return {"data": [project_task(t) for t in tasks], "meta": meta}
