from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import pandas as pd

from reportlab.lib.pagesizes import letter, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet

from tv_analytics.exceptions.errors import ExportError
from tv_analytics.logging.logger import get_logger

log = get_logger("export.exporter")

MAX_PDF_ROWS = 200

@dataclass(frozen=True)
class ExportPaths:
    csv_path: Optional[str] = None
    xml_path: Optional[str] = None
    pdf_path: Optional[str] = None

def export_report(df: pd.DataFrame, out_dir: str, base_name: str, title: Optional[str] = None) -> ExportPaths:
    """Write a query result as CSV (required) plus XML and PDF (best-effort)."""
    Path(out_dir).mkdir(parents=True, exist_ok=True)
    csv_path = str(Path(out_dir) / f"{base_name}.csv")
    xml_path: Optional[str] = str(Path(out_dir) / f"{base_name}.xml")
    pdf_path: Optional[str] = str(Path(out_dir) / f"{base_name}.pdf")

    try:
        df.to_csv(csv_path, index=False, encoding="utf-8")
        log.info("Exported CSV", extra={"path": csv_path, "rows": len(df)})
    except OSError as e:
        log.exception("CSV export failed")
        raise ExportError(f"CSV export failed for {base_name}") from e

    if df.columns.empty:
        # DDL results carry no columns; XML/PDF would be empty documents
        return ExportPaths(csv_path=csv_path)

    try:
        df.to_xml(xml_path, index=False, root_name="Report", row_name="Row", parser="etree")
        log.info("Exported XML", extra={"path": xml_path})
    except Exception:
        log.exception("XML export failed")
        xml_path = None

    try:
        styles = getSampleStyleSheet()
        doc = SimpleDocTemplate(pdf_path, pagesize=landscape(letter))
        elements = [Paragraph(title or f"Report: {base_name}", styles["Title"]), Spacer(1, 12)]
        shown = df.head(MAX_PDF_ROWS)
        table_data = [list(df.columns)] + shown.astype(str).values.tolist()
        t = Table(table_data, repeatRows=1)
        t.setStyle(TableStyle([
            ("BACKGROUND", (0,0), (-1,0), colors.lightgrey),
            ("GRID", (0,0), (-1,-1), 0.25, colors.grey),
            ("FONTSIZE", (0,0), (-1,-1), 8),
            ("ALIGN", (0,0), (-1,-1), "LEFT"),
        ]))
        elements.append(t)
        if len(df) > MAX_PDF_ROWS:
            elements.append(Spacer(1, 6))
            elements.append(Paragraph(f"Showing {MAX_PDF_ROWS} of {len(df)} rows.", styles["Normal"]))
        doc.build(elements)
        log.info("Exported PDF", extra={"path": pdf_path})
    except Exception:
        log.exception("PDF export failed")
        pdf_path = None

    return ExportPaths(csv_path=csv_path, xml_path=xml_path, pdf_path=pdf_path)
