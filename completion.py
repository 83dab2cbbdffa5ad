"""
Completion state machine for tasks.

A task is either ACTIVE or COMPLETED. The ``status`` enum, the ``completed``
flag and ``completed_at`` always move together:

    ACTIVE     completed=False  completed_at=None
    COMPLETED  completed=True   completed_at=<server time of the transition>

``completed_at`` is never taken from a client payload.
"""

from model import TaskStatus, utcnow


def mark_completed(task, now=None):
    task.status = TaskStatus.COMPLETED
    task.completed = True
    task.completed_at = now or utcnow()
    return task


def mark_active(task):
    task.status = TaskStatus.ACTIVE
    task.completed = False
    task.completed_at = None
    return task


def toggle(task, now=None):
    """Flip ``completed`` and derive the rest of the state from the new value."""
    if task.completed:
        return mark_active(task)
    return mark_completed(task, now)


def requested_completion(status=None, completed=None):
    """Return the completion state an update asks for, or None if it asks for nothing.

    When both signals are present and disagree, the ``completed`` flag wins.
    """
    if completed is not None:
        return bool(completed)
    if status is not None:
        return TaskStatus(status) == TaskStatus.COMPLETED
    return None


def apply_completion_update(task, status=None, completed=None, now=None):
    target = requested_completion(status, completed)
    if target is None:
        return task
    if target:
        return mark_completed(task, now)
    return mark_active(task)
