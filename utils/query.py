"""
Query Building - Filters, Sorting, Pagination and Partial Updates

Composes parameterized SQL for list and update endpoints. Values always travel
as bound parameters; the only interpolated identifiers are column names taken
from per-entity declarations and a sort column that passed `validate_sort`.

Placeholders use SQLite's numbered form (`?1`, `?2`, ...), so one index can be
referenced several times in a statement (see `Filter.search`).

Usage:
    from utils.query import Filter, ListQuery, PageRequest

    orders = ListQuery(
        select="SELECT o.* FROM orders o",
        count="SELECT COUNT(*) AS total FROM orders o",
        filters=[Filter.eq("status", "o.status")],
        sortable={"created_at": "o.created_at"},
    )
    count_stmt, page_stmt = orders.build({"status": "pending"}, PageRequest.clamp(2, 5))
    # page_stmt.params == ["pending", 5, 5]
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from utils.config import settings
from utils.errors import EmptyPatch, InvalidSortColumn, ValidationError

TAUTOLOGY = "1=1"
SORT_DIRECTIONS = ("ASC", "DESC")
DEFAULT_SORT_DIRECTION = "DESC"


def placeholder(index: int) -> str:
    return f"?{index}"


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally (ESCAPE '\\')."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class Statement:
    """SQL text plus its bound values, in placeholder order."""

    sql: str
    params: list[Any] = field(default_factory=list)


class ParamSequencer:
    """Hands out placeholder indices for a single statement build."""

    def __init__(self, start: int = 1) -> None:
        self._current = start

    @property
    def current(self) -> int:
        return self._current

    def next(self) -> int:
        index = self._current
        self._current += 1
        return index


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Predicate:
    """A predicate fragment with an unassigned placeholder slot `{p}`."""

    template: str
    value: Any

    def render(self, sequencer: ParamSequencer) -> str:
        return self.template.format(p=placeholder(sequencer.next()))


@dataclass(frozen=True)
class Filter:
    """Declares how one named criterion becomes a predicate."""

    name: str
    template: str
    search: bool = False

    @classmethod
    def eq(cls, name: str, column: str) -> "Filter":
        return cls(name, f"{column} = {{p}}")

    @classmethod
    def gte(cls, name: str, column: str) -> "Filter":
        return cls(name, f"{column} >= {{p}}")

    @classmethod
    def lte(cls, name: str, column: str) -> "Filter":
        return cls(name, f"{column} <= {{p}}")

    @classmethod
    def contains(cls, name: str, *columns: str) -> "Filter":
        """Case-insensitive substring match against any of `columns`, one value."""
        if not columns:
            raise ValueError("contains filter needs at least one column")
        clauses = [f"LOWER({column}) LIKE {{p}} ESCAPE '\\'" for column in columns]
        return cls(name, "(" + " OR ".join(clauses) + ")", search=True)

    def predicate(self, value: Any) -> Predicate:
        if self.search:
            value = f"%{escape_like(str(value).strip().lower())}%"
        return Predicate(self.template, value)


@dataclass(frozen=True)
class WhereClause:
    sql: str
    params: list[Any]


def _is_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


class FilterClauseBuilder:
    """Turns a criteria mapping into an AND-joined WHERE body.

    Filters are evaluated in declaration order, so the same criteria always
    render the same SQL and the same value order. Keys the builder does not
    know are ignored; keys whose value is None or blank are skipped.
    """

    def __init__(self, filters: Iterable[Filter]) -> None:
        self.filters = tuple(filters)
        names = [f.name for f in self.filters]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate filter names: {names}")

    def predicates(self, criteria: Mapping[str, Any]) -> list[Predicate]:
        return [
            f.predicate(criteria[f.name])
            for f in self.filters
            if _is_set(criteria.get(f.name))
        ]

    def build(
        self,
        criteria: Mapping[str, Any],
        sequencer: Optional[ParamSequencer] = None,
    ) -> WhereClause:
        sequencer = sequencer or ParamSequencer()
        predicates = self.predicates(criteria)
        if not predicates:
            return WhereClause(TAUTOLOGY, [])
        fragments = [p.render(sequencer) for p in predicates]
        return WhereClause(" AND ".join(fragments), [p.value for p in predicates])


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def validate_sort(
    column: Optional[str],
    direction: Optional[str],
    allowed: Sequence[str],
    default_column: str = "created_at",
) -> tuple[str, str]:
    """Check a caller-supplied sort against a whitelist.

    Sort identifiers cannot be bound as parameters, so anything outside
    `allowed` is rejected rather than interpolated.

    Args:
        column: Requested column, None/blank for the default
        direction: 'asc'/'desc' in any case; anything else means DESC
        allowed: Sortable column names for the entity
        default_column: Column used when none is requested

    Returns:
        (column, direction) with direction in SORT_DIRECTIONS

    Raises:
        InvalidSortColumn: If column is not whitelisted
    """
    column = (column or "").strip() or default_column
    if column not in allowed:
        raise InvalidSortColumn(column, list(allowed))

    normalized = (direction or "").strip().upper()
    if normalized not in SORT_DIRECTIONS:
        normalized = DEFAULT_SORT_DIRECTION

    return column, normalized


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PageInfo:
    page: int
    limit: int
    total: int
    offset: int
    total_pages: int
    has_next: bool
    has_prev: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    @classmethod
    def clamp(
        cls,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        default_limit: Optional[int] = None,
        max_limit: Optional[int] = None,
    ) -> "PageRequest":
        """Normalize page/limit; out-of-range values clamp instead of failing."""
        default_limit = default_limit or settings.PAGINATION_DEFAULT_LIMIT
        max_limit = max_limit or settings.PAGINATION_MAX_LIMIT

        page = 1 if page is None else max(1, int(page))
        limit = default_limit if limit is None else min(max_limit, max(1, int(limit)))
        return cls(page=page, limit=limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def describe(self, total: int) -> PageInfo:
        total_pages = -(-total // self.limit) if total > 0 else 0
        return PageInfo(
            page=self.page,
            limit=self.limit,
            total=total,
            offset=self.offset,
            total_pages=total_pages,
            has_next=self.page < total_pages,
            has_prev=self.page > 1,
        )


def paginate(page: Optional[int], limit: Optional[int], total: int) -> dict[str, Any]:
    """Offset and page flags for a listing with `total` matching rows."""
    info = PageRequest.clamp(page, limit).describe(total)
    return {
        "offset": info.offset,
        "totalPages": info.total_pages,
        "hasNext": info.has_next,
        "hasPrev": info.has_prev,
    }


# ---------------------------------------------------------------------------
# Partial updates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UpdateClause:
    assignments: list[str]
    where: str
    params: list[Any]

    def statement(self, table: str, returning: Optional[str] = "*") -> Statement:
        sql = f"UPDATE {table} SET {', '.join(self.assignments)} WHERE {self.where}"
        if returning:
            sql += f" RETURNING {returning}"
        return Statement(sql, list(self.params))


def compose_update(
    entity_id: Any,
    patch: Mapping[str, Any],
    allowed: Optional[Iterable[str]] = None,
    id_column: str = "id",
    timestamp_column: str = "updated_at",
) -> UpdateClause:
    """Build the SET/WHERE parts of a partial update.

    Only keys present in `patch` are written; an explicit None is written as
    NULL. The modification timestamp is always stamped and the id is bound
    last for the WHERE clause.

    Raises:
        EmptyPatch: If `patch` has no fields besides the id
        ValidationError: If a field is outside `allowed`
    """
    allowed_columns = set(allowed) if allowed is not None else None
    sequencer = ParamSequencer()
    assignments: list[str] = []
    params: list[Any] = []

    for column, value in patch.items():
        if column == id_column:
            continue
        if allowed_columns is not None and column not in allowed_columns:
            raise ValidationError(f"Field cannot be updated: {column}")
        assignments.append(f"{column} = {placeholder(sequencer.next())}")
        params.append(value)

    if not assignments:
        raise EmptyPatch()

    assignments.append(f"{timestamp_column} = CURRENT_TIMESTAMP")
    params.append(entity_id)
    where = f"{id_column} = {placeholder(sequencer.next())}"

    return UpdateClause(assignments=assignments, where=where, params=params)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


class ListQuery:
    """Count and page statements for one entity listing.

    Both statements share the WHERE body and its values; the page statement
    continues the same placeholder sequence for LIMIT and OFFSET.
    """

    def __init__(
        self,
        select: str,
        count: str,
        filters: Iterable[Filter],
        sortable: Mapping[str, str],
        default_sort: str = "created_at",
        tiebreaker: Optional[str] = None,
    ) -> None:
        if default_sort not in sortable:
            raise ValueError(f"default sort {default_sort!r} is not sortable")
        self.select = select
        self.count = count
        self.filters = FilterClauseBuilder(filters)
        self.sortable = dict(sortable)
        self.default_sort = default_sort
        self.tiebreaker = tiebreaker

    def order_by(self, sort_by: Optional[str], sort_order: Optional[str]) -> str:
        column, direction = validate_sort(sort_by, sort_order, list(self.sortable), self.default_sort)
        clause = f"{self.sortable[column]} {direction}"
        if self.tiebreaker:
            clause += f", {self.tiebreaker} {direction}"
        return clause

    def build(
        self,
        criteria: Mapping[str, Any],
        page: PageRequest,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> tuple[Statement, Statement]:
        order_by = self.order_by(sort_by, sort_order)

        sequencer = ParamSequencer()
        where = self.filters.build(criteria, sequencer)
        count_stmt = Statement(f"{self.count} WHERE {where.sql}", list(where.params))

        limit_ph = placeholder(sequencer.next())
        offset_ph = placeholder(sequencer.next())
        page_stmt = Statement(
            f"{self.select} WHERE {where.sql} ORDER BY {order_by} LIMIT {limit_ph} OFFSET {offset_ph}",
            [*where.params, page.limit, page.offset],
        )
        return count_stmt, page_stmt
