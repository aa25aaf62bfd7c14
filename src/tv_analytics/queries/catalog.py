from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from tv_analytics.data.store import ListingStore, quote_ident
from tv_analytics.exceptions.errors import DataQualityError, QueryExecutionError
from tv_analytics.logging.logger import get_logger, log_duration
from tv_analytics.queries.policy import QueryPolicy
from tv_analytics.schema.registry import ROW_ID

log = get_logger("queries.catalog")

Sql = Tuple[str, List[Any]]


@dataclass(frozen=True)
class Bucket:
    label: str
    upper: Optional[float]  # inclusive; None = open-ended


SIZE_BUCKETS: Tuple[Bucket, ...] = (
    Bucket("<=32", 32),
    Bucket("33-43", 43),
    Bucket("44-55", 55),
    Bucket(">55", None),
)

PRICE_BUCKETS: Tuple[Bucket, ...] = (
    Bucket("<=15000", 15000),
    Bucket("15000-30000", 30000),
    Bucket("30000-50000", 50000),
    Bucket(">50000", None),
)


def _bucket_ordinal_sql(column: str, buckets: Sequence[Bucket]) -> str:
    parts = ["CASE"]
    for i, b in enumerate(buckets, start=1):
        if b.upper is None:
            parts.append(f"ELSE {i}")
        else:
            parts.append(f"WHEN {column} <= {b.upper} THEN {i}")
    parts.append("END")
    return " ".join(parts)


def _bucket_label_sql(ordinal: str, buckets: Sequence[Bucket]) -> str:
    whens = " ".join(f"WHEN {i} THEN '{b.label}'" for i, b in enumerate(buckets, start=1))
    return f"CASE {ordinal} {whens} END"


@dataclass
class QueryResult:
    name: str
    number: int
    title: str
    df: pd.DataFrame
    sql: str = ""
    message: str = ""

    @property
    def row_count(self) -> int:
        return len(self.df)


@dataclass(frozen=True)
class QueryDefinition:
    number: int
    name: str
    title: str
    kind: str  # "select" | "view" | "ddl"
    runner: Callable[[ListingStore, QueryPolicy], QueryResult] = field(repr=False)


# ---------------------------------------------------------------------------
# SQL builders
# ---------------------------------------------------------------------------

def affordable_top_rated_sql(table: str, policy: QueryPolicy) -> Sql:
    sql = f"""
    SELECT Brand, Resolution, Size, SellingPrice, Rating
    FROM {quote_ident(table)}
    WHERE SellingPrice < ? AND Rating > ?
    ORDER BY Rating DESC, {ROW_ID}
    """
    return sql.strip(), [policy.affordable_max_price, policy.affordable_min_rating]


def brand_summary_sql(table: str, policy: QueryPolicy) -> Sql:
    sql = f"""
    SELECT
        Brand,
        COUNT(*) AS total_models,
        ROUND(AVG(SellingPrice), 2) AS avg_selling_price,
        ROUND(AVG(Rating), 2) AS avg_rating
    FROM {quote_ident(table)}
    GROUP BY Brand
    HAVING COUNT(*) > ?
    ORDER BY AVG(SellingPrice) DESC, Brand
    """
    return sql.strip(), [policy.brand_min_models]


def above_brand_average_sql(table: str, policy: QueryPolicy) -> Sql:
    sql = f"""
    SELECT e.Brand, e.Resolution, e.Size, e.SellingPrice, e.Rating
    FROM {quote_ident(table)} AS e
    WHERE e.SellingPrice > (
        SELECT AVG(i.SellingPrice)
        FROM {quote_ident(table)} AS i
        WHERE i.Brand = e.Brand
    )
    ORDER BY e.Brand, e.SellingPrice, e.{ROW_ID}
    """
    return sql.strip(), []


def _discount_source(store: ListingStore, policy: QueryPolicy) -> str:
    """FROM-clause source for the discount aggregates under the active policy."""
    table = quote_ident(store.table)
    if policy.discount_policy == "exclude":
        return f"(SELECT * FROM {table} WHERE OriginalPrice >= SellingPrice)"
    if policy.discount_policy == "clamp":
        return f"(SELECT * REPLACE (GREATEST(OriginalPrice, SellingPrice) AS OriginalPrice) FROM {table})"
    if policy.discount_policy == "error":
        inverted = store.scalar(f"SELECT COUNT(*) FROM {table} WHERE SellingPrice > OriginalPrice")
        if inverted:
            raise DataQualityError(
                f"{inverted} listing(s) have Selling Price above Original Price; "
                "set the discount policy to keep, exclude or clamp to proceed"
            )
    return table


def brand_resolution_view_sql(view: str, source: str) -> str:
    sql = f"""
    CREATE OR REPLACE VIEW {quote_ident(view)} AS
    SELECT
        Brand,
        Resolution,
        COUNT(*) AS total_models,
        ROUND(AVG(SellingPrice), 2) AS avg_selling_price,
        ROUND(AVG(OriginalPrice), 2) AS avg_original_price,
        ROUND(AVG(OriginalPrice - SellingPrice), 2) AS avg_discount
    FROM {source} AS src
    GROUP BY Brand, Resolution
    """
    return sql.strip()


def discount_by_brand_resolution_sql(source: str, policy: QueryPolicy) -> Sql:
    sql = f"""
    SELECT
        Brand,
        Resolution,
        COUNT(*) AS total_models,
        ROUND(AVG(SellingPrice), 2) AS avg_selling_price,
        ROUND(AVG(OriginalPrice), 2) AS avg_original_price,
        ROUND((AVG(OriginalPrice) - AVG(SellingPrice)) / NULLIF(AVG(OriginalPrice), 0) * 100, 2)
            AS discount_percentage
    FROM {source} AS src
    WHERE Rating > ?
    GROUP BY Brand, Resolution
    HAVING COUNT(*) > ? AND COALESCE(AVG(OriginalPrice), 0) <> 0
    ORDER BY (AVG(OriginalPrice) - AVG(SellingPrice)) / AVG(OriginalPrice) DESC, Brand, Resolution
    """
    return sql.strip(), [policy.discount_min_rating, policy.discount_min_models]


def size_segments_sql(table: str, policy: QueryPolicy) -> Sql:
    sql = f"""
    WITH bucketed AS (
        SELECT {_bucket_ordinal_sql("Size", SIZE_BUCKETS)} AS bucket, SellingPrice, Rating
        FROM {quote_ident(table)}
    )
    SELECT
        {_bucket_label_sql("bucket", SIZE_BUCKETS)} AS size_category,
        COUNT(*) AS total_models,
        ROUND(AVG(SellingPrice), 2) AS avg_selling_price,
        ROUND(AVG(Rating), 2) AS avg_rating
    FROM bucketed
    GROUP BY bucket
    ORDER BY AVG(SellingPrice), bucket
    """
    return sql.strip(), []


def operating_system_summary_sql(table: str, policy: QueryPolicy) -> Sql:
    sql = f"""
    SELECT
        OperatingSystem,
        COUNT(*) AS total_models,
        ROUND(AVG(SellingPrice), 2) AS avg_selling_price,
        ROUND(AVG(Rating), 2) AS avg_rating,
        COUNT(DISTINCT Brand) AS distinct_brands
    FROM {quote_ident(table)}
    WHERE OperatingSystem IS NOT NULL
    GROUP BY OperatingSystem
    ORDER BY total_models DESC, OperatingSystem
    """
    return sql.strip(), []


def brand_price_index_sql(table: str, index: str) -> str:
    return f"CREATE INDEX {quote_ident(index)} ON {quote_ident(table)} (Brand, SellingPrice)"


def price_segments_sql(table: str, policy: QueryPolicy) -> Sql:
    sql = f"""
    WITH bucketed AS (
        SELECT {_bucket_ordinal_sql("SellingPrice", PRICE_BUCKETS)} AS bucket, Brand, Rating
        FROM {quote_ident(table)}
    )
    SELECT
        {_bucket_label_sql("bucket", PRICE_BUCKETS)} AS price_range,
        COUNT(*) AS total_models,
        ROUND(AVG(Rating), 2) AS avg_rating,
        COUNT(DISTINCT Brand) AS distinct_brands
    FROM bucketed
    GROUP BY bucket
    ORDER BY total_models DESC, bucket
    """
    return sql.strip(), []


def best_value_sql(table: str, policy: QueryPolicy) -> Sql:
    sql = f"""
    SELECT
        Brand,
        Resolution,
        Size,
        SellingPrice,
        Rating,
        ROUND(SellingPrice / Rating, 2) AS price_to_rating
    FROM {quote_ident(table)}
    WHERE Rating > ? AND Rating IS NOT NULL AND Rating <> 0
    ORDER BY SellingPrice / Rating, {ROW_ID}
    LIMIT {int(policy.best_value_limit)}
    """
    return sql.strip(), [policy.best_value_min_rating]


# ---------------------------------------------------------------------------
# Runners
# ---------------------------------------------------------------------------

def _select_runner(number: int, name: str, title: str, builder: Callable[[str, QueryPolicy], Sql]):
    def run(store: ListingStore, policy: QueryPolicy) -> QueryResult:
        sql, params = builder(store.table, policy)
        df = store.query(sql, params)
        return QueryResult(name=name, number=number, title=title, df=df, sql=sql)

    return run


def _run_brand_resolution_view(store: ListingStore, policy: QueryPolicy) -> QueryResult:
    view = store.settings.view_name
    ddl = brand_resolution_view_sql(view, _discount_source(store, policy))
    store.execute(ddl)
    log.info("View defined", extra={"view": view, "discount_policy": policy.discount_policy})
    read_sql = f"SELECT * FROM {quote_ident(view)} ORDER BY Brand, Resolution"
    df = store.query(read_sql)
    return QueryResult(
        name="brand_resolution_summary",
        number=4,
        title=CATALOG_TITLES[4],
        df=df,
        sql=f"{ddl};\n{read_sql}",
        message=f"view {view} defined",
    )


def _run_discount_by_brand_resolution(store: ListingStore, policy: QueryPolicy) -> QueryResult:
    sql, params = discount_by_brand_resolution_sql(_discount_source(store, policy), policy)
    df = store.query(sql, params)
    return QueryResult(
        name="discount_by_brand_resolution", number=5, title=CATALOG_TITLES[5], df=df, sql=sql
    )


def _run_create_index(store: ListingStore, policy: QueryPolicy) -> QueryResult:
    index = store.settings.index_name
    ddl = brand_price_index_sql(store.table, index)
    if store.index_exists(index):
        log.info("Index already exists", extra={"index": index})
        message = f"index {index} already exists"
    else:
        store.execute(ddl)
        log.info("Index created", extra={"index": index, "table": store.table})
        message = f"index {index} created"
    return QueryResult(
        name="create_brand_price_index",
        number=8,
        title=CATALOG_TITLES[8],
        df=pd.DataFrame(),
        sql=ddl,
        message=message,
    )


def _run_best_value(store: ListingStore, policy: QueryPolicy) -> QueryResult:
    if policy.zero_rating_policy == "error":
        unusable = store.scalar(
            f"SELECT COUNT(*) FROM {quote_ident(store.table)} WHERE Rating IS NULL OR Rating = 0"
        )
        if unusable:
            raise DataQualityError(
                f"{unusable} listing(s) have a null or zero Rating and cannot be ranked by price per rating point"
            )
    sql, params = best_value_sql(store.table, policy)
    df = store.query(sql, params)
    return QueryResult(name="best_value", number=10, title=CATALOG_TITLES[10], df=df, sql=sql)


CATALOG_TITLES: Dict[int, str] = {
    1: "Affordable, highly rated TVs",
    2: "Brand summary (brands with more than five models)",
    3: "Listings priced above their brand average",
    4: "Brand and resolution summary (view)",
    5: "Discount percentage by brand and resolution",
    6: "Price and rating by screen size segment",
    7: "Operating system summary",
    8: "Index on brand and selling price",
    9: "Rating and brand spread by price range",
    10: "Best value: lowest price per rating point",
}

CATALOG: Dict[str, QueryDefinition] = {
    d.name: d
    for d in (
        QueryDefinition(1, "affordable_top_rated", CATALOG_TITLES[1], "select",
                        _select_runner(1, "affordable_top_rated", CATALOG_TITLES[1], affordable_top_rated_sql)),
        QueryDefinition(2, "brand_summary", CATALOG_TITLES[2], "select",
                        _select_runner(2, "brand_summary", CATALOG_TITLES[2], brand_summary_sql)),
        QueryDefinition(3, "above_brand_average", CATALOG_TITLES[3], "select",
                        _select_runner(3, "above_brand_average", CATALOG_TITLES[3], above_brand_average_sql)),
        QueryDefinition(4, "brand_resolution_summary", CATALOG_TITLES[4], "view", _run_brand_resolution_view),
        QueryDefinition(5, "discount_by_brand_resolution", CATALOG_TITLES[5], "select",
                        _run_discount_by_brand_resolution),
        QueryDefinition(6, "size_segments", CATALOG_TITLES[6], "select",
                        _select_runner(6, "size_segments", CATALOG_TITLES[6], size_segments_sql)),
        QueryDefinition(7, "operating_system_summary", CATALOG_TITLES[7], "select",
                        _select_runner(7, "operating_system_summary", CATALOG_TITLES[7],
                                       operating_system_summary_sql)),
        QueryDefinition(8, "create_brand_price_index", CATALOG_TITLES[8], "ddl", _run_create_index),
        QueryDefinition(9, "price_segments", CATALOG_TITLES[9], "select",
                        _select_runner(9, "price_segments", CATALOG_TITLES[9], price_segments_sql)),
        QueryDefinition(10, "best_value", CATALOG_TITLES[10], "select", _run_best_value),
    )
}


def list_queries() -> List[QueryDefinition]:
    return sorted(CATALOG.values(), key=lambda d: d.number)


def get_query(key: Union[str, int]) -> QueryDefinition:
    """Look a query up by name or catalog number ("7" and 7 both work)."""
    k = str(key).strip()
    if k in CATALOG:
        return CATALOG[k]
    if k.isdigit():
        for d in CATALOG.values():
            if d.number == int(k):
                return d
    raise QueryExecutionError(f"Unknown query '{key}'. Available: {', '.join(d.name for d in list_queries())}")


def run_query(store: ListingStore, key: Union[str, int], policy: Optional[QueryPolicy] = None) -> QueryResult:
    definition = get_query(key)
    policy = policy or QueryPolicy.from_settings(store.settings)
    log.debug("Running query", extra={"query": definition.name, "number": definition.number})
    with log_duration(log, "Query finished", query=definition.name, number=definition.number) as ctx:
        result = definition.runner(store, policy)
        ctx["rows"] = result.row_count
    return result


def run_all(store: ListingStore, policy: Optional[QueryPolicy] = None) -> List[QueryResult]:
    policy = policy or QueryPolicy.from_settings(store.settings)
    return [run_query(store, d.name, policy) for d in list_queries()]
