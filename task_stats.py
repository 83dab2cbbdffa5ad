"""
Dashboard statistics for a single user's tasks.

Every figure is its own COUNT query with no dependency on the others.
Due-date windows are computed from the server's local date: a task due today
is never overdue, and completed tasks count towards neither window.
"""

import logging
from datetime import date, timedelta

from sqlalchemy import func, select

from model import Task, TaskPriority, TaskStatus, db

logger = logging.getLogger(__name__)


def _count(user_id, *criteria):
    stmt = select(func.count()).select_from(Task).where(Task.user_id == user_id, *criteria)
    return db.session.scalar(stmt)


def task_stats(user_id, today=None):
    today = today or date.today()
    tomorrow = today + timedelta(days=1)

    counts = {
        "total": (),
        "active": (Task.completed.is_(False),),
        "completed": (Task.completed.is_(True),),
        "low": (Task.priority == TaskPriority.LOW,),
        "medium": (Task.priority == TaskPriority.MEDIUM,),
        "high": (Task.priority == TaskPriority.HIGH,),
        "ACTIVE": (Task.status == TaskStatus.ACTIVE,),
        "COMPLETED": (Task.status == TaskStatus.COMPLETED,),
        "dueToday": (
            Task.due_date >= today,
            Task.due_date < tomorrow,
            Task.completed.is_(False),
        ),
        "overdue": (Task.due_date < today, Task.completed.is_(False)),
    }
    result = {name: _count(user_id, *criteria) for name, criteria in counts.items()}
    logger.debug("Task stats user=%s today=%s %s", user_id, today.isoformat(), result)

    return {
        "total": result["total"],
        "active": result["active"],
        "completed": result["completed"],
        "byPriority": {
            "low": result["low"],
            "medium": result["medium"],
            "high": result["high"],
        },
        "byStatus": {
            TaskStatus.ACTIVE.value: result["ACTIVE"],
            TaskStatus.COMPLETED.value: result["COMPLETED"],
        },
        "dueToday": result["dueToday"],
        "overdue": result["overdue"],
    }


def user_stats(user_id):
    """Compact counters shown on the user profile."""
    return {
        "totalTasks": _count(user_id),
        "completedTasks": _count(user_id, Task.completed.is_(True)),
        "activeTasks": _count(user_id, Task.status == TaskStatus.ACTIVE),
    }
