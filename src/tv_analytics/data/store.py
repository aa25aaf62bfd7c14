from __future__ import annotations

from typing import Any, List, Optional, Sequence

import duckdb
import pandas as pd

from tv_analytics.config.settings import Settings, default_settings
from tv_analytics.exceptions.errors import QueryExecutionError, SchemaValidationError
from tv_analytics.ingestion.reader import read_listings_csv
from tv_analytics.logging.logger import get_logger
from tv_analytics.preprocessing.cleaning import (
    coerce_types,
    enforce_required,
    standardize_columns,
    to_canonical,
)
from tv_analytics.preprocessing.quality import QualityReport, audit_listings
from tv_analytics.schema.registry import ROW_ID, TV_LISTING

log = get_logger("data.store")

_SQL_TYPES = {"string": "VARCHAR", "float": "DOUBLE", "int": "BIGINT"}


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class ListingStore:
    """In-process DuckDB database holding the single listings table.

    Key points:
      - The table is loaded once and never mutated afterwards; only the view
        and the index (schema objects) are added on demand.
      - Each row carries ``listing_id``, its 1-based position in the source
        file, used as the final tie-break of every ordered query.
    """

    def __init__(self, con: duckdb.DuckDBPyConnection, settings: Settings, quality: QualityReport):
        self.con = con
        self.settings = settings
        self.quality = quality

    @property
    def table(self) -> str:
        return self.settings.table_name

    @classmethod
    def from_dataframe(cls, raw: pd.DataFrame, settings: Optional[Settings] = None) -> "ListingStore":
        settings = settings or default_settings()
        df = standardize_columns(raw)
        df = to_canonical(df)
        df = coerce_types(df)
        df = df.reset_index(drop=True)
        df.insert(0, ROW_ID, range(1, len(df) + 1))
        df = enforce_required(df, drop_incomplete=settings.drop_incomplete_rows)
        quality = audit_listings(df)

        con = duckdb.connect(database=":memory:")
        try:
            con.register("listings_src", df)
            cols = [f"CAST({quote_ident(ROW_ID)} AS BIGINT) AS {quote_ident(ROW_ID)}"]
            for cname, cspec in TV_LISTING.columns.items():
                cols.append(f"CAST({quote_ident(cname)} AS {_SQL_TYPES[cspec.type]}) AS {quote_ident(cname)}")
            con.execute(f"CREATE TABLE {quote_ident(settings.table_name)} AS SELECT {', '.join(cols)} FROM listings_src")
            con.unregister("listings_src")
        except duckdb.Error as e:
            con.close()
            raise QueryExecutionError(f"Failed to load table '{settings.table_name}': {e}") from e

        store = cls(con, settings, quality)
        log.info("Loaded listings table", extra={"table": settings.table_name, "rows": store.row_count()})
        return store

    @classmethod
    def from_csv(cls, file_path: Optional[str] = None, settings: Optional[Settings] = None) -> "ListingStore":
        settings = settings or default_settings()
        res = read_listings_csv(
            file_path or settings.csv_path,
            delimiter=settings.delimiter,
            fallback_encodings=settings.fallback_encodings,
        )
        try:
            return cls.from_dataframe(res.df, settings)
        except SchemaValidationError as e:
            raise SchemaValidationError(f"{res.source_file}: {e}") from e

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> pd.DataFrame:
        try:
            return self.con.execute(sql, params or []).df()
        except duckdb.Error as e:
            log.error("Query failed", extra={"sql": sql[:500], "error": str(e)})
            raise QueryExecutionError(str(e)) from e

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        try:
            self.con.execute(sql, params or [])
        except duckdb.Error as e:
            log.error("Statement failed", extra={"sql": sql[:500], "error": str(e)})
            raise QueryExecutionError(str(e)) from e

    def scalar(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        try:
            row = self.con.execute(sql, params or []).fetchone()
        except duckdb.Error as e:
            raise QueryExecutionError(str(e)) from e
        return row[0] if row else None

    def row_count(self) -> int:
        return int(self.scalar(f"SELECT COUNT(*) FROM {quote_ident(self.table)}"))

    def columns(self) -> List[str]:
        return [r[0] for r in self.con.execute(f"DESCRIBE {quote_ident(self.table)}").fetchall()]

    def table_exists(self, name: str) -> bool:
        return bool(self.scalar("SELECT COUNT(*) FROM duckdb_tables() WHERE table_name = ?", [name]))

    def view_exists(self, name: str) -> bool:
        return bool(
            self.scalar("SELECT COUNT(*) FROM duckdb_views() WHERE view_name = ? AND NOT internal", [name])
        )

    def index_exists(self, name: str) -> bool:
        return bool(self.scalar("SELECT COUNT(*) FROM duckdb_indexes() WHERE index_name = ?", [name]))

    def preview(self, limit: int = 20) -> pd.DataFrame:
        return self.query(f"SELECT * FROM {quote_ident(self.table)} ORDER BY {quote_ident(ROW_ID)} LIMIT {int(limit)}")

    def close(self) -> None:
        self.con.close()

    def __enter__(self) -> "ListingStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
