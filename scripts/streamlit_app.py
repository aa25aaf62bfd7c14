from __future__ import annotations
import sys
from pathlib import Path as _Path

_ROOT = _Path(__file__).resolve().parents[1]
_SRC = _ROOT / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import dataclasses
import hashlib
import time
from pathlib import Path
import streamlit as st
import traceback

from tv_analytics.config.settings import load_settings
from tv_analytics.logging.logger import init_logging
from tv_analytics.data.store import ListingStore
from tv_analytics.exceptions.errors import TVAnalyticsError
from tv_analytics.ingestion.reader import file_fingerprint
from tv_analytics.queries.catalog import list_queries, run_query
from tv_analytics.queries.policy import QueryPolicy, DISCOUNT_POLICIES, ZERO_RATING_POLICIES
from tv_analytics.viz.plotly_factory import default_chart
from tv_analytics.export.exporter import export_report

st.set_page_config(page_title="TV Listings Analytics", layout="wide")

@st.cache_resource
def bootstrap():
    settings = load_settings()
    init_logging(settings.log_level, settings.log_file)
    return settings

# One store per browser session: the view DDL and its SELECT must not interleave
# with another session running a different discount policy.
def session_store(csv_path: str, settings) -> ListingStore:
    key = (str(Path(csv_path).resolve()), file_fingerprint(csv_path))
    current = st.session_state.get("store")
    if current is not None and st.session_state.get("store_key") == key:
        return current
    if current is not None:
        current.close()
        st.session_state.pop("store", None)
    store = ListingStore.from_csv(csv_path, settings)
    st.session_state["store"] = store
    st.session_state["store_key"] = key
    return store

try:
    settings = bootstrap()
except Exception:
    st.error("Startup failed. See error below.")
    st.code(traceback.format_exc())
    raise

st.title("TV Listings Analytics")

with st.sidebar:
    st.subheader("Data")
    uploaded = st.file_uploader("Upload Ecommerce.csv", type=["csv"])
    csv_path = settings.csv_path
    if uploaded is not None:
        upload_dir = Path("data/uploads")
        upload_dir.mkdir(parents=True, exist_ok=True)
        data = uploaded.getvalue()
        target = upload_dir / f"{hashlib.sha256(data).hexdigest()[:12]}_{uploaded.name}"
        if not target.exists():
            target.write_bytes(data)
        csv_path = str(target)
    st.caption(f"Source: {csv_path}")

    st.subheader("Policies")
    discount_policy = st.selectbox(
        "Negative discounts", DISCOUNT_POLICIES, index=DISCOUNT_POLICIES.index(settings.discount_policy)
    )
    zero_rating_policy = st.selectbox(
        "Null / zero ratings", ZERO_RATING_POLICIES, index=ZERO_RATING_POLICIES.index(settings.zero_rating_policy)
    )

try:
    store = session_store(csv_path, settings)
except TVAnalyticsError as e:
    st.error(f"Could not load {csv_path}: {e}")
    st.stop()

with st.expander("Loaded table", expanded=False):
    st.write(f"**{store.table}**: {store.row_count()} rows")
    st.json(store.quality.as_dict())
    st.dataframe(store.preview(20), use_container_width=True)

policy = QueryPolicy.from_settings(
    dataclasses.replace(settings, discount_policy=discount_policy, zero_rating_policy=zero_rating_policy)
)

options = {f"{d.number}. {d.title}": d.name for d in list_queries()}
choice = st.selectbox("Query", list(options.keys()))

if st.button("Run query"):
    try:
        res = run_query(store, options[choice], policy)
    except TVAnalyticsError as e:
        st.error(str(e))
        st.stop()

    if res.message:
        st.info(res.message)
    with st.expander("SQL", expanded=False):
        st.code(res.sql, language="sql")

    if not res.df.columns.empty:
        left, right = st.columns([1, 1])
        with left:
            st.dataframe(res.df, use_container_width=True, height=420)
        with right:
            fig = default_chart(res)
            if fig is not None:
                st.plotly_chart(fig, use_container_width=True)

        exp = export_report(res.df, settings.export_dir, base_name=f"{res.name}_{int(time.time())}", title=res.title)
        c1, c2, c3 = st.columns(3)
        with c1:
            if exp.csv_path and Path(exp.csv_path).exists():
                st.download_button("Download CSV", data=Path(exp.csv_path).read_bytes(), file_name=Path(exp.csv_path).name)
        with c2:
            if exp.xml_path and Path(exp.xml_path).exists():
                st.download_button("Download XML", data=Path(exp.xml_path).read_bytes(), file_name=Path(exp.xml_path).name)
        with c3:
            if exp.pdf_path and Path(exp.pdf_path).exists():
                st.download_button("Download PDF", data=Path(exp.pdf_path).read_bytes(), file_name=Path(exp.pdf_path).name)
