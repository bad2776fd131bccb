"""Catalog reads: one preconfigured DataQuery per page section."""
from typing import Optional

from queries import DataQuery, Filter, FilterOp, OrderBy, QuerySpec, RowRange

DRONE_COLUMNS = "*, produced, quote"
DRONE_DETAIL_COLUMNS = "*, produced, quantity, quote"


def use_faq(db) -> DataQuery:
    return DataQuery(
        db,
        "faq",
        filters={"is_active": True},
        order_by=OrderBy(column="order", ascending=True),
    )


def use_drones(db) -> DataQuery:
    return DataQuery(
        db,
        "droneslist",
        select=DRONE_COLUMNS,
        filters={"show": True},
        order_by=OrderBy(column="in_stock", ascending=False),
    )


def use_positions(db) -> DataQuery:
    return DataQuery(
        db,
        "positions",
        filters={"open": True},
        order_by=OrderBy(column="title", ascending=True),
    )


def review_range(page: int = 1, page_size: int = 5) -> RowRange:
    start = (page - 1) * page_size
    return RowRange(start=start, end=start + page_size - 1)


def use_reviews(db, page: int = 1, page_size: int = 5) -> DataQuery:
    order_by = OrderBy(column="submitted_at", ascending=False)
    try:
        window = review_range(page, page_size)
    except ValueError:
        query = DataQuery(db, "reviews", order_by=order_by, enabled=False)
        query.fail(ValueError(f"Invalid page {page} or page size {page_size}"))
        return query
    return DataQuery(db, "reviews", order_by=order_by, range=window)


def use_drone_by_id(db, drone_id: str) -> DataQuery:
    return DataQuery(
        db,
        "droneslist",
        select=DRONE_DETAIL_COLUMNS,
        filters={"id": drone_id},
    )


def similar_drones_spec(exclude_id: str, limit: int = 3,
                        category: Optional[str] = None) -> QuerySpec:
    filters = [
        Filter(column="id", value=exclude_id, op=FilterOp.NEQ),
        Filter(column="produced", value=True),
    ]
    if category is not None:
        filters.append(Filter(column="category", value=category))
    return QuerySpec(
        table="droneslist",
        filters=tuple(filters),
        limit=limit,
    )


def use_similar_drones(db, exclude_id: str, limit: int = 3,
                       category: Optional[str] = None) -> DataQuery:
    """Other production-ready drones, skipping the query when no id is known yet."""
    return DataQuery.from_spec(
        db,
        similar_drones_spec(exclude_id, limit, category),
        label="similar drones",
        enabled=bool(exclude_id),
    )
