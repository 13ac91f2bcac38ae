import uuid

from sqlalchemy import or_
from sqlalchemy.orm import Session

from unidocs.errors import NotFoundError, ValidationFailedError
from unidocs.models.university_body import UniversityBody

LIKE_ESCAPE = "\\"


def coerce_uuid(value, entity: str = "Resource"):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        # A malformed id can never match a row.
        raise NotFoundError(f"{entity} not found")


def coerce_enum(enum_cls, value, field: str):
    if value is None or isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if value in (member.value, member.name):
            return member
    allowed = ", ".join(member.value for member in enum_cls)
    raise ValidationFailedError(
        f"Invalid {field}. Allowed: {allowed}",
        errors=[{"field": field, "message": f"Must be one of: {allowed}"}],
    )


def apply_ordering(query, order_by, order_dir, allowed_columns, tiebreaker=None):
    if order_by not in allowed_columns:
        raise ValidationFailedError(
            f"Invalid sort_by. Allowed: {', '.join(sorted(allowed_columns))}",
        )
    column = allowed_columns[order_by]
    columns = [column]
    if tiebreaker is not None and tiebreaker is not column:
        columns.append(tiebreaker)
    if (order_dir or "desc").lower() == "desc":
        return query.order_by(*(col.desc() for col in columns))
    return query.order_by(*(col.asc() for col in columns))


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)


def ensure_unit_exists(db: Session, unit_id) -> None:
    if unit_id is not None and not db.get(UniversityBody, unit_id):
        raise NotFoundError("University body not found")


def escape_like(term: str) -> str:
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def search_clause(search: str | None, *columns):
    """Case-insensitive substring match of ``search`` over any of ``columns``."""
    term = (search or "").strip()
    if not term:
        return None
    pattern = f"%{escape_like(term)}%"
    return or_(*(column.ilike(pattern, escape=LIKE_ESCAPE) for column in columns))
