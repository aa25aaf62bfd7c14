from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from tv_analytics.exceptions.errors import SchemaValidationError
from tv_analytics.logging.logger import get_logger

log = get_logger("schema.registry")

ROW_ID = "listing_id"


def _norm(s: str) -> str:
    return "".join(ch.lower() for ch in (s or "") if ch.isalnum())


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    type: str
    header: str
    description: str = ""
    nullable: bool = False
    aliases: List[str] = field(default_factory=list)

    @property
    def is_numeric(self) -> bool:
        return self.type in ("int", "float")


@dataclass(frozen=True)
class TableSpec:
    name: str
    description: str
    columns: Dict[str, ColumnSpec]

    def required_columns(self) -> List[str]:
        return [c for c, spec in self.columns.items() if not spec.nullable]

    def nullable_columns(self) -> List[str]:
        return [c for c, spec in self.columns.items() if spec.nullable]

    def numeric_columns(self) -> List[str]:
        return [c for c, spec in self.columns.items() if spec.is_numeric]

    def resolve_header(self, headers: Iterable[str]) -> Dict[str, str]:
        """Map raw CSV headers to canonical column names.

        Matching is case/space/punctuation-insensitive against the canonical
        name, the published CSV header and any aliases. Every canonical column
        must be found; the error lists all that are missing.
        """
        lookup: Dict[str, str] = {}
        for cname, cspec in self.columns.items():
            for key in {_norm(cname), _norm(cspec.header), *(_norm(a) for a in cspec.aliases)}:
                if key:
                    lookup.setdefault(key, cname)

        mapping: Dict[str, str] = {}
        for h in headers:
            canonical = lookup.get(_norm(str(h)))
            if canonical is None:
                continue
            if canonical in mapping.values():
                raise SchemaValidationError(f"Column '{canonical}' appears more than once in the CSV header (at '{h}')")
            mapping[str(h)] = canonical

        found = set(mapping.values())
        missing = [c for c in self.columns if c not in found]
        if missing:
            detail = ", ".join(f"{c} (expected header '{self.columns[c].header}')" for c in missing)
            raise SchemaValidationError(f"CSV is missing required column(s): {detail}")

        log.info("Resolved CSV header", extra={"table": self.name, "columns": len(mapping)})
        return mapping


TV_LISTING = TableSpec(
    name="ecommerce",
    description="One row per television listing scraped from an e-commerce catalogue.",
    columns={
        "Brand": ColumnSpec("Brand", "string", "Brand", "Manufacturer brand"),
        "Resolution": ColumnSpec("Resolution", "string", "Resolution", "Display resolution class, e.g. 4K Ultra HD"),
        "Size": ColumnSpec("Size", "float", "Size", "Screen diagonal in inches", aliases=["Size (inches)", "Screen Size"]),
        "SellingPrice": ColumnSpec("SellingPrice", "float", "Selling Price", "Current listed price", aliases=["Price"]),
        "OriginalPrice": ColumnSpec("OriginalPrice", "float", "Original Price", "List price before discount", aliases=["MRP"]),
        "OperatingSystem": ColumnSpec(
            "OperatingSystem", "string", "Operating System", "Smart TV platform", nullable=True, aliases=["OS"]
        ),
        "Rating": ColumnSpec("Rating", "float", "Rating", "Average customer rating, 0-5", nullable=True),
    },
)
