"""
Ownership checks shared by every read and write path.

A resource is looked up first and reported as NotFound when absent; only an
existing resource is then compared against the acting user and rejected with
Forbidden. Subtasks carry no owner of their own, they are authorized through
the parent task.
"""

import logging

from sqlalchemy.orm import joinedload, selectinload
from werkzeug.exceptions import Forbidden, NotFound

from model import Category, Subtask, Task, User, db

logger = logging.getLogger(__name__)


def authorize(resource_owner_id, acting_user_id, message="You do not have access to this resource"):
    if resource_owner_id != acting_user_id:
        logger.warning("Access denied owner=%s actor=%s", resource_owner_id, acting_user_id)
        raise Forbidden(message)


def get_owned_task(task_id, user_id, with_relations=False):
    options = []
    if with_relations:
        options = [
            joinedload(Task.category),
            selectinload(Task.subtasks),
            joinedload(Task.user),
        ]
    task = db.session.get(Task, task_id, options=options, populate_existing=with_relations)
    if task is None:
        raise NotFound("Task not found")
    authorize(task.user_id, user_id, "You do not have access to this task")
    return task


def get_owned_category(category_id, user_id, options=()):
    category = db.session.get(Category, category_id, options=list(options))
    if category is None:
        raise NotFound("Category not found")
    authorize(category.user_id, user_id, "You do not have access to this category")
    return category


def get_owned_subtask(subtask_id, user_id):
    subtask = db.session.get(Subtask, subtask_id, options=[joinedload(Subtask.task)])
    if subtask is None:
        raise NotFound("Subtask not found")
    authorize(subtask.task.user_id, user_id, "You do not have access to this subtask")
    return subtask


def get_self_user(target_user_id, user_id, message="You can only access your own profile"):
    user = db.session.get(User, target_user_id)
    if user is None:
        raise NotFound("User not found")
    authorize(user.id, user_id, message)
    return user
