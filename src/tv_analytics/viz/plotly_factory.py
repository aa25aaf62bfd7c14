from __future__ import annotations
from typing import Dict, Any, Optional
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from tv_analytics.exceptions.errors import PlotlyRenderError
from tv_analytics.logging.logger import get_logger
from tv_analytics.queries.catalog import QueryResult

log = get_logger("viz.plotly_factory")

SUPPORTED_TYPES = {"bar", "scatter", "pie", "table"}

# Chart per catalog query; anything not listed renders as a table.
DEFAULT_CHARTS: Dict[str, Dict[str, Any]] = {
    "affordable_top_rated": {"type": "scatter", "x": "SellingPrice", "y": "Rating", "color": "Brand"},
    "brand_summary": {"type": "bar", "x": "Brand", "y": "avg_selling_price"},
    "above_brand_average": {"type": "scatter", "x": "Brand", "y": "SellingPrice", "color": "Resolution"},
    "brand_resolution_summary": {"type": "bar", "x": "Brand", "y": "avg_discount", "color": "Resolution"},
    "discount_by_brand_resolution": {"type": "bar", "x": "Brand", "y": "discount_percentage", "color": "Resolution"},
    "size_segments": {"type": "bar", "x": "size_category", "y": "avg_selling_price"},
    "operating_system_summary": {"type": "pie", "names": "OperatingSystem", "values": "total_models"},
    "price_segments": {"type": "bar", "x": "price_range", "y": "total_models"},
    "best_value": {"type": "bar", "x": "Brand", "y": "price_to_rating", "color": "Resolution"},
}

def build_figure(df: pd.DataFrame, spec: Dict[str, Any], title: Optional[str] = None) -> go.Figure:
    try:
        chart_type = (spec.get("type") or "bar").lower()
        if chart_type not in SUPPORTED_TYPES:
            raise PlotlyRenderError(f"Unsupported chart type: {chart_type}")

        if chart_type == "table":
            return go.Figure(
                data=[go.Table(
                    header=dict(values=list(df.columns)),
                    cells=dict(values=[df[c].tolist() for c in df.columns])
                )],
                layout=dict(title=title),
            )

        if chart_type == "pie":
            names = spec.get("names")
            values = spec.get("values")
            if not names or not values:
                raise PlotlyRenderError("pie requires names and values.")
            if names not in df.columns or values not in df.columns:
                raise PlotlyRenderError("Spec references missing columns.")
            return px.pie(df, names=names, values=values, title=title)

        x = spec.get("x")
        y = spec.get("y")
        color = spec.get("color")
        if not x or not y:
            raise PlotlyRenderError(f"{chart_type} requires x and y.")
        if x not in df.columns or y not in df.columns:
            raise PlotlyRenderError("Spec references missing columns.")
        fn = {"bar": px.bar, "scatter": px.scatter}[chart_type]
        return fn(df, x=x, y=y, color=color if (color in df.columns) else None, title=title)
    except Exception:
        log.exception("Plotly render error")
        raise

def default_chart(result: QueryResult) -> Optional[go.Figure]:
    """Chart for a catalog result, or None when there is nothing to plot."""
    if result.df.empty:
        return None
    spec = DEFAULT_CHARTS.get(result.name, {"type": "table"})
    return build_figure(result.df, spec, title=result.title)
