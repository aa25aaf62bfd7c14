"""
Shared fixtures: small listing tables loaded into in-memory stores
"""
import pandas as pd
import pytest

from tv_analytics.config.settings import default_settings
from tv_analytics.data.store import ListingStore

HEADER = ["Brand", "Resolution", "Size", "Selling Price", "Original Price", "Operating System", "Rating"]

CATALOGUE_ROWS = [
    ("Samsung", "4K Ultra HD", 43, 32990, 45900, "Tizen", 4.4),
    ("Samsung", "4K Ultra HD", 55, 52990, 74900, "Tizen", 4.5),
    ("Samsung", "Full HD", 32, 13490, 22900, "Tizen", 4.3),
    ("Samsung", "HD Ready", 32, 11990, 18900, "Tizen", 4.6),
    ("Samsung", "4K Ultra HD", 65, 84990, 119900, "Tizen", 4.7),
    ("Samsung", "Full HD", 43, 24990, 33900, "Tizen", 4.2),
    ("Samsung", "4K Ultra HD", 50, 41990, 64900, "Tizen", 4.6),
    ("LG", "4K Ultra HD", 43, 29990, 49990, "WebOS", 4.4),
    ("LG", "4K Ultra HD", 55, 46990, 79990, "WebOS", 4.5),
    ("LG", "HD Ready", 32, 12990, 21990, "WebOS", 4.8),
    ("LG", "4K Ultra HD", 65, 89990, 139990, "WebOS", 4.6),
    ("LG", "Full HD", 43, 22990, 34990, "WebOS", 4.1),
    ("LG", "4K Ultra HD", 50, 37990, 59990, "WebOS", 4.3),
    ("Sony", "4K Ultra HD", 55, 69990, 99900, "Android", 4.7),
    ("Sony", "4K Ultra HD", 65, 109990, 139900, "Android", 4.8),
    ("Sony", "Full HD", 43, 39990, 49900, "Android", 4.5),
    ("TCL", "4K Ultra HD", 55, 34990, 54990, "Google TV", 4.0),
    ("TCL", "HD Ready", 32, 9990, 16990, "", 3.9),
]

# Rows that break the pricing/rating assumptions
MESSY_ROWS = [
    ("A", "4K Ultra HD", 30, 10000, 12000, "X", 4.8),
    ("A", "4K Ultra HD", 50, 25000, 25000, "X", 4.2),
    ("B", "4K Ultra HD", 40, 20000, 15000, "Y", 4.5),
    ("C", "HD Ready", 24, 8000, 9000, "", 0),
    ("C", "HD Ready", 24, 8500, 9000, "", None),
]


def make_raw(rows, header=HEADER) -> pd.DataFrame:
    return pd.DataFrame(list(rows), columns=header)


@pytest.fixture
def settings():
    return default_settings()


@pytest.fixture
def catalogue_df():
    return make_raw(CATALOGUE_ROWS)


@pytest.fixture
def store(catalogue_df, settings):
    s = ListingStore.from_dataframe(catalogue_df, settings)
    yield s
    s.close()


@pytest.fixture
def messy_store(settings):
    s = ListingStore.from_dataframe(make_raw(MESSY_ROWS), settings)
    yield s
    s.close()


@pytest.fixture
def catalogue_csv(tmp_path, catalogue_df):
    path = tmp_path / "Ecommerce.csv"
    catalogue_df.to_csv(path, index=False)
    return path
