"""
Query construction for the task list endpoint.

``TaskFilter.from_args`` normalizes raw query-string values (unknown sort
fields, out-of-range page sizes) instead of rejecting them. ``build_query``
always scopes to the acting user; every optional criterion is ANDed on top.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import joinedload, selectinload
from werkzeug.exceptions import BadRequest

from model import PRIORITY_RANK, Task, TaskPriority, TaskStatus, db

logger = logging.getLogger(__name__)

SORT_FIELDS = ("dueDate", "createdAt", "priority")
DEFAULT_SORT = "createdAt"
DEFAULT_ORDER = "DESC"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _to_int(raw, default):
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _to_enum(enum_cls, raw, field):
    if raw is None or raw == "":
        return None
    try:
        return enum_cls(str(raw).upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise BadRequest(f"{field} must be one of: {allowed}")


@dataclass
class TaskFilter:
    user_id: int
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category_id: Optional[int] = None
    search: Optional[str] = None
    sort_by: str = DEFAULT_SORT
    order: str = DEFAULT_ORDER
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    def __post_init__(self):
        if self.sort_by not in SORT_FIELDS:
            self.sort_by = DEFAULT_SORT
        self.order = str(self.order or DEFAULT_ORDER).upper()
        if self.order not in ("ASC", "DESC"):
            self.order = DEFAULT_ORDER
        self.page = max(1, self.page)
        self.limit = min(MAX_LIMIT, max(1, self.limit))

    @classmethod
    def from_args(cls, args, user_id):
        category_raw = args.get("categoryId")
        category_id = None
        if category_raw not in (None, ""):
            try:
                category_id = int(category_raw)
            except ValueError:
                raise BadRequest("categoryId must be an integer")

        return cls(
            user_id=user_id,
            status=_to_enum(TaskStatus, args.get("status"), "status"),
            priority=_to_enum(TaskPriority, args.get("priority"), "priority"),
            category_id=category_id,
            search=args.get("search") or None,
            sort_by=args.get("sortBy") or DEFAULT_SORT,
            order=args.get("order") or DEFAULT_ORDER,
            page=_to_int(args.get("page"), DEFAULT_PAGE),
            limit=_to_int(args.get("limit"), DEFAULT_LIMIT),
        )

    @property
    def offset(self):
        return (self.page - 1) * self.limit


def priority_rank():
    """SQL expression ranking HIGH above MEDIUM above LOW."""
    return case(
        *[(Task.priority == priority, rank) for priority, rank in PRIORITY_RANK.items()],
        else_=0,
    )


LIKE_ESCAPE = "\\"


def _contains_pattern(term):
    """Substring LIKE pattern; % and _ in the term match literally."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _where_clauses(f):
    clauses = [Task.user_id == f.user_id]
    if f.status is not None:
        clauses.append(Task.status == f.status)
    if f.priority is not None:
        clauses.append(Task.priority == f.priority)
    if f.category_id is not None:
        clauses.append(Task.category_id == f.category_id)
    if f.search:
        pattern = _contains_pattern(f.search)
        clauses.append(
            or_(
                Task.title.ilike(pattern, escape=LIKE_ESCAPE),
                Task.description.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    return clauses


def _order_by(f):
    if f.sort_by == "priority":
        key = priority_rank()
    elif f.sort_by == "dueDate":
        key = Task.due_date
    else:
        key = Task.created_at

    if f.order == "ASC":
        primary = key.asc()
        if f.sort_by == "dueDate":
            primary = primary.nulls_last()
        return [primary, Task.id.asc()]

    primary = key.desc()
    if f.sort_by == "dueDate":
        primary = primary.nulls_first()
    return [primary, Task.id.desc()]


def build_query(f):
    return select(Task).where(*_where_clauses(f)).order_by(*_order_by(f))


def count_matching(f):
    stmt = select(func.count()).select_from(Task).where(*_where_clauses(f))
    return db.session.scalar(stmt)


def paginate_tasks(f):
    """Return one page of matching tasks and the pagination meta block."""
    stmt = (
        build_query(f)
        .options(
            joinedload(Task.category),
            selectinload(Task.subtasks),
            joinedload(Task.user),
        )
        .offset(f.offset)
        .limit(f.limit)
    )
    tasks = db.session.scalars(stmt).unique().all()
    total = count_matching(f)

    logger.debug(
        "Task page user=%s sort=%s %s page=%s limit=%s total=%s",
        f.user_id, f.sort_by, f.order, f.page, f.limit, total,
    )
    meta = {
        "page": f.page,
        "limit": f.limit,
        "total": total,
        "totalPages": math.ceil(total / f.limit),
    }
    return tasks, meta
