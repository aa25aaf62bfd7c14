from __future__ import annotations
import pandas as pd

from tv_analytics.schema.registry import TableSpec, TV_LISTING
from tv_analytics.exceptions.errors import DataIngestionError
from tv_analytics.logging.logger import get_logger

log = get_logger("preprocessing.cleaning")

def standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out.columns = [str(c).strip() for c in out.columns]
    return out

def to_canonical(df: pd.DataFrame, spec: TableSpec = TV_LISTING) -> pd.DataFrame:
    mapping = spec.resolve_header(df.columns)
    extra = [c for c in df.columns if c not in mapping]
    if extra:
        log.warning("Ignoring unknown columns", extra={"columns": extra})
    out = df[list(mapping.keys())].rename(columns=mapping)
    return out[list(spec.columns.keys())]

def coerce_types(df: pd.DataFrame, spec: TableSpec = TV_LISTING) -> pd.DataFrame:
    """Strictly type the canonical columns.

    Blank cells become nulls. A non-blank numeric cell that does not parse
    raises instead of being coerced to NaN.
    """
    out = df.copy()
    for col, cspec in spec.columns.items():
        values = out[col].astype("string").str.strip()
        values = values.mask(values.fillna("") == "")
        if not cspec.is_numeric:
            out[col] = values.astype(object).where(values.notna(), None)
            continue
        parsed = pd.to_numeric(values.astype(object), errors="coerce")
        bad = values.notna() & parsed.isna()
        if bad.any():
            pos = int(bad.to_numpy().nonzero()[0][0])
            raise DataIngestionError(
                f"Column '{cspec.header}' has non-numeric value {values.iloc[pos]!r} at data row {pos + 1}"
                f" ({int(bad.sum())} bad value(s) in total)"
            )
        out[col] = parsed.astype("Float64")
        log.debug("Type coerced", extra={"column": col, "type": cspec.type})
    return out

def enforce_required(df: pd.DataFrame, drop_incomplete: bool = False, spec: TableSpec = TV_LISTING) -> pd.DataFrame:
    required = spec.required_columns()
    incomplete = df[required].isna().any(axis=1)
    if not incomplete.any():
        return df
    counts = {c: int(df[c].isna().sum()) for c in required if df[c].isna().any()}
    if not drop_incomplete:
        first = int(incomplete.to_numpy().nonzero()[0][0]) + 1
        raise DataIngestionError(
            f"{int(incomplete.sum())} row(s) have empty required values (first at data row {first}): {counts}"
        )
    log.warning("Dropping incomplete rows", extra={"rows": int(incomplete.sum()), "null_counts": counts})
    return df.loc[~incomplete]
