from __future__ import annotations
import hashlib
from dataclasses import dataclass
from typing import List, Optional
from pathlib import Path
import pandas as pd

from tv_analytics.logging.logger import get_logger
from tv_analytics.exceptions.errors import DataIngestionError

log = get_logger("ingestion.reader")

@dataclass(frozen=True)
class IngestionResult:
    df: pd.DataFrame
    source_file: str
    encoding_used: str
    rows_read: int

def file_fingerprint(file_path: str, chunk_size: int = 1 << 20) -> str:
    """sha256 of the file contents; changes whenever the bytes do, whatever the name."""
    p = Path(file_path)
    if not p.exists():
        raise DataIngestionError(f"File not found: {file_path}")
    digest = hashlib.sha256()
    with p.open("rb") as fh:
        for chunk in iter(lambda: fh.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()

def read_listings_csv(
    file_path: str,
    delimiter: str = ",",
    fallback_encodings: Optional[List[str]] = None,
) -> IngestionResult:
    """Read the listings CSV as raw strings; typing happens in preprocessing."""
    p = Path(file_path)
    if not p.exists():
        raise DataIngestionError(f"File not found: {file_path}")

    encodings = fallback_encodings or ["utf-8"]
    last_err: Optional[Exception] = None
    for enc in encodings:
        try:
            log.info("Reading file", extra={"source_file": p.name, "encoding": enc})
            df = pd.read_csv(
                p,
                sep=delimiter,
                encoding=enc,
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
            )
            log.info("File read", extra={"source_file": p.name, "rows": len(df), "columns": len(df.columns)})
            return IngestionResult(df=df, source_file=p.name, encoding_used=enc, rows_read=len(df))
        except UnicodeDecodeError as e:
            last_err = e
            log.warning("Encoding error", extra={"source_file": p.name, "encoding": enc, "error": str(e)})
        except pd.errors.EmptyDataError as e:
            raise DataIngestionError(f"{p.name} is empty") from e
        except pd.errors.ParserError as e:
            raise DataIngestionError(f"{p.name} is not a well-formed CSV: {e}") from e

    raise DataIngestionError(f"Failed to decode {p.name} with encodings: {encodings}") from last_err
