"""
Service layer. Every write follows find, authorize, then mutate, and reads the
entity back with its relations before it is projected.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from werkzeug.exceptions import Conflict

import completion
from model import Category, Subtask, Task, TaskPriority, User, db
from ownership import (
    get_owned_category,
    get_owned_subtask,
    get_owned_task,
    get_self_user,
)
from projector import (
    project_category,
    project_paginated,
    project_subtask,
    project_task,
    project_user,
)
from task_filters import paginate_tasks
from task_stats import task_stats, user_stats

logger = logging.getLogger(__name__)


def commit_or_conflict(message):
    """Commit, turning a unique-constraint violation into Conflict."""
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning("Unique constraint hit on commit: %s", message)
        raise Conflict(message)


# Tasks

def create_task(payload, user_id):
    if payload.category_id is not None:
        get_owned_category(payload.category_id, user_id)

    task = Task(
        title=payload.title,
        description=payload.description,
        priority=payload.priority or TaskPriority.MEDIUM,
        due_date=payload.due_date,
        category_id=payload.category_id,
        user_id=user_id,
    )
    completion.mark_active(task)
    db.session.add(task)
    db.session.commit()
    logger.info("Task created id=%s user=%s", task.id, user_id)
    return get_task(task.id, user_id)


def list_tasks(task_filter):
    tasks, meta = paginate_tasks(task_filter)
    return project_paginated(tasks, meta)


def get_task(task_id, user_id):
    return project_task(get_owned_task(task_id, user_id, with_relations=True))


def update_task(task_id, payload, user_id):
    task = get_owned_task(task_id, user_id)

    if "category_id" in payload.present and payload.category_id is not None:
        get_owned_category(payload.category_id, user_id)

    for name in ("title", "description", "priority", "due_date", "category_id"):
        if name in payload.present:
            setattr(task, name, getattr(payload, name))

    completion.apply_completion_update(task, status=payload.status, completed=payload.completed)

    db.session.commit()
    logger.info("Task updated id=%s fields=%s", task_id, sorted(payload.present))
    return get_task(task_id, user_id)


def toggle_task(task_id, user_id):
    task = get_owned_task(task_id, user_id)
    completion.toggle(task)
    db.session.commit()
    logger.info("Task toggled id=%s completed=%s", task_id, task.completed)
    return get_task(task_id, user_id)


def delete_task(task_id, user_id):
    task = get_owned_task(task_id, user_id)
    db.session.delete(task)
    db.session.commit()
    logger.info("Task deleted id=%s user=%s", task_id, user_id)


def get_task_stats(user_id):
    return task_stats(user_id)


# Categories

CATEGORY_NAME_TAKEN = "Category with this name already exists for this user"


def _ensure_category_name_free(name, user_id):
    existing = db.session.scalar(
        select(Category).where(Category.user_id == user_id, Category.name == name)
    )
    if existing is not None:
        raise Conflict(CATEGORY_NAME_TAKEN)


def create_category(payload, user_id):
    _ensure_category_name_free(payload.name, user_id)
    category = Category(
        name=payload.name,
        description=payload.description,
        color=payload.color,
        user_id=user_id,
    )
    db.session.add(category)
    commit_or_conflict(CATEGORY_NAME_TAKEN)
    logger.info("Category created id=%s user=%s", category.id, user_id)
    return project_category(category)


def list_categories(user_id):
    task_count = (
        select(Task.category_id, func.count(Task.id).label("n"))
        .group_by(Task.category_id)
        .subquery()
    )
    rows = db.session.execute(
        select(Category, func.coalesce(task_count.c.n, 0))
        .outerjoin(task_count, task_count.c.category_id == Category.id)
        .where(Category.user_id == user_id)
        .order_by(Category.id)
    ).all()
    return [project_category(category, task_count=n) for category, n in rows]


def get_category(category_id, user_id):
    category = get_owned_category(
        category_id,
        user_id,
        options=[selectinload(Category.tasks).selectinload(Task.subtasks)],
    )
    return project_category(category)


def update_category(category_id, payload, user_id):
    category = get_owned_category(category_id, user_id)

    if "name" in payload.present and payload.name != category.name:
        _ensure_category_name_free(payload.name, user_id)

    for name in ("name", "description", "color"):
        if name in payload.present:
            setattr(category, name, getattr(payload, name))

    commit_or_conflict(CATEGORY_NAME_TAKEN)
    logger.info("Category updated id=%s fields=%s", category_id, sorted(payload.present))
    return project_category(category)


def delete_category(category_id, user_id):
    category = get_owned_category(category_id, user_id)
    db.session.delete(category)
    db.session.commit()
    logger.info("Category deleted id=%s user=%s", category_id, user_id)


# Subtasks

def create_subtask(payload, user_id):
    task = get_owned_task(payload.task_id, user_id)
    subtask = Subtask(title=payload.title, task_id=task.id)
    db.session.add(subtask)
    db.session.commit()
    logger.info("Subtask created id=%s task=%s", subtask.id, task.id)
    return project_subtask(subtask)


def update_subtask(subtask_id, payload, user_id):
    subtask = get_owned_subtask(subtask_id, user_id)
    for name in ("title", "completed"):
        if name in payload.present:
            setattr(subtask, name, getattr(payload, name))
    db.session.commit()
    return project_subtask(subtask)


def toggle_subtask(subtask_id, user_id):
    subtask = get_owned_subtask(subtask_id, user_id)
    subtask.completed = not subtask.completed
    db.session.commit()
    return project_subtask(subtask)


def delete_subtask(subtask_id, user_id):
    subtask = get_owned_subtask(subtask_id, user_id)
    db.session.delete(subtask)
    db.session.commit()
    logger.info("Subtask deleted id=%s", subtask_id)


# Users

def ensure_user_field_free(column, value, label):
    if db.session.scalar(select(User).where(column == value)) is not None:
        raise Conflict(f"{label} already exists")


def get_user(target_user_id, user_id):
    user = get_self_user(target_user_id, user_id)
    return project_user(user, stats=user_stats(user.id))


def update_user(target_user_id, payload, user_id):
    user = get_self_user(target_user_id, user_id, "You can only update your own profile")

    if "email" in payload.present and payload.email != user.email:
        ensure_user_field_free(User.email, payload.email, "Email")
    if "username" in payload.present and payload.username != user.username:
        ensure_user_field_free(User.username, payload.username, "Username")

    for name in ("email", "username"):
        if name in payload.present:
            setattr(user, name, getattr(payload, name))

    commit_or_conflict("Email or username already exists")
    logger.info("User updated id=%s fields=%s", user.id, sorted(payload.present))
    return project_user(user)


def delete_user(target_user_id, user_id):
    user = get_self_user(target_user_id, user_id, "You can only delete your own account")
    db.session.delete(user)
    db.session.commit()
    logger.info("User deleted id=%s", target_user_id)
