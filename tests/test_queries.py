"""
Tests for the query catalog against the sample listing tables
"""
import pandas as pd
import pytest

from tv_analytics.data.store import ListingStore
from tv_analytics.exceptions.errors import QueryExecutionError
from tv_analytics.queries.catalog import (
    get_query,
    list_queries,
    run_all,
    run_query,
)
from tv_analytics.queries.policy import QueryPolicy

from conftest import CATALOGUE_ROWS, make_raw


class TestCatalog:
    def test_ten_queries_numbered_in_order(self):
        defs = list_queries()
        assert [d.number for d in defs] == list(range(1, 11))
        assert len({d.name for d in defs}) == 10

    def test_lookup_by_number_and_name(self):
        assert get_query(7).name == "operating_system_summary"
        assert get_query("7").name == "operating_system_summary"
        assert get_query("best_value").number == 10

    def test_unknown_query(self):
        with pytest.raises(QueryExecutionError):
            get_query("cheapest_oled")
        with pytest.raises(QueryExecutionError):
            get_query(11)

    def test_run_all_returns_every_result(self, store):
        results = run_all(store)
        assert [r.number for r in results] == list(range(1, 11))
        assert results[7].df.empty


class TestAffordableTopRated:
    def test_filter_and_order(self, store):
        df = run_query(store, "affordable_top_rated").df
        assert list(df.columns) == ["Brand", "Resolution", "Size", "SellingPrice", "Rating"]
        assert list(df["Brand"]) == ["LG", "Samsung"]
        assert list(df["Rating"]) == [4.8, 4.6]
        assert (df["SellingPrice"] < 20000).all()
        assert (df["Rating"] > 4.5).all()

    def test_two_row_scenario(self, settings):
        rows = [
            ("A", "4K Ultra HD", 30, 10000, 12000, "X", 4.8),
            ("A", "4K Ultra HD", 50, 25000, 25000, "X", 4.2),
        ]
        with ListingStore.from_dataframe(make_raw(rows), settings) as s:
            df = run_query(s, 1).df
            assert len(df) == 1
            assert df.iloc[0]["SellingPrice"] == 10000
            assert df.iloc[0]["Size"] == 30

            sizes = run_query(s, "size_segments").df.set_index("size_category")
            assert sizes.loc["<=32", "total_models"] == 1
            assert sizes.loc["44-55", "total_models"] == 1
            assert set(sizes.index) == {"<=32", "44-55"}


class TestBrandSummary:
    def test_only_brands_with_more_than_five_models(self, store):
        df = run_query(store, "brand_summary").df
        assert list(df.columns) == ["Brand", "total_models", "avg_selling_price", "avg_rating"]
        assert list(df["Brand"]) == ["LG", "Samsung"]
        assert list(df["total_models"]) == [6, 7]
        assert df.iloc[0]["avg_selling_price"] == pytest.approx(40156.67)
        assert df.iloc[1]["avg_selling_price"] == pytest.approx(37632.86)
        assert df.iloc[1]["avg_rating"] == pytest.approx(4.47)

    def test_model_counts_are_conserved(self, store):
        df = run_query(store, "brand_summary").df
        counts = store.query("SELECT Brand, COUNT(*) AS n FROM ecommerce GROUP BY Brand")
        small = counts.loc[counts["n"] <= 5, "n"].sum()
        assert df["total_models"].sum() + small == store.row_count()

    def test_threshold_is_configurable(self, store):
        df = run_query(store, "brand_summary", QueryPolicy(brand_min_models=2)).df
        assert set(df["Brand"]) == {"LG", "Samsung", "Sony"}


class TestAboveBrandAverage:
    def test_matches_independent_oracle(self, store, catalogue_df):
        df = run_query(store, "above_brand_average").df

        base = catalogue_df.rename(columns={"Selling Price": "SellingPrice"})
        means = base.groupby("Brand")["SellingPrice"].mean()
        expected = base[base["SellingPrice"] > base["Brand"].map(means)]
        expected = expected.sort_values(["Brand", "SellingPrice"])

        assert len(df) == len(expected)
        assert list(df["Brand"]) == list(expected["Brand"])
        assert list(df["SellingPrice"]) == [float(v) for v in expected["SellingPrice"]]
        for _, row in df.iterrows():
            assert row["SellingPrice"] > means[row["Brand"]]

    def test_sorted_by_brand_then_price(self, store):
        df = run_query(store, 3).df
        assert df.equals(df.sort_values(["Brand", "SellingPrice"], kind="stable").reset_index(drop=True))


class TestBrandResolutionView:
    def test_view_contents(self, store):
        res = run_query(store, "brand_resolution_summary")
        df = res.df
        assert list(df.columns) == [
            "Brand", "Resolution", "total_models", "avg_selling_price", "avg_original_price", "avg_discount",
        ]
        sony = df[(df["Brand"] == "Sony") & (df["Resolution"] == "4K Ultra HD")].iloc[0]
        assert sony["total_models"] == 2
        assert sony["avg_selling_price"] == pytest.approx(89990.0)
        assert sony["avg_original_price"] == pytest.approx(119900.0)
        assert sony["avg_discount"] == pytest.approx(29910.0)
        assert store.view_exists(store.settings.view_name)

    def test_rereading_view_is_stable(self, store):
        run_query(store, 4)
        first = store.query("SELECT * FROM brand_resolution_summary ORDER BY Brand, Resolution")
        second = store.query("SELECT * FROM brand_resolution_summary ORDER BY Brand, Resolution")
        pd.testing.assert_frame_equal(first, second)

    def test_defining_view_twice(self, store):
        a = run_query(store, 4).df
        b = run_query(store, 4).df
        pd.testing.assert_frame_equal(a, b)
        assert a["total_models"].sum() == store.row_count()


class TestDiscountByBrandResolution:
    def test_groups_and_percentages(self, store):
        df = run_query(store, "discount_by_brand_resolution").df
        assert list(df.columns) == [
            "Brand", "Resolution", "total_models", "avg_selling_price", "avg_original_price", "discount_percentage",
        ]
        assert list(zip(df["Brand"], df["Resolution"])) == [("LG", "4K Ultra HD"), ("Samsung", "4K Ultra HD")]
        assert list(df["discount_percentage"]) == pytest.approx([37.88, 30.31])
        assert list(df["total_models"]) == [4, 4]

    def test_zero_original_price_groups_are_skipped(self, settings):
        rows = [("Z", "HD Ready", 32, 100, 0, "X", 4.5)] * 4 + [("Y", "HD Ready", 32, 100, 200, "X", 4.5)] * 4
        with ListingStore.from_dataframe(make_raw(rows), settings) as s:
            df = run_query(s, 5).df
            assert list(df["Brand"]) == ["Y"]
            assert df.iloc[0]["discount_percentage"] == pytest.approx(50.0)


class TestSegments:
    @pytest.mark.parametrize("name,label_col", [("size_segments", "size_category"), ("price_segments", "price_range")])
    def test_buckets_cover_every_row(self, store, name, label_col):
        df = run_query(store, name).df
        assert df["total_models"].sum() == store.row_count()
        assert df[label_col].is_unique

    def test_size_segments(self, store):
        df = run_query(store, "size_segments").df
        assert list(df.columns) == ["size_category", "total_models", "avg_selling_price", "avg_rating"]
        counts = dict(zip(df["size_category"], df["total_models"]))
        assert counts == {"<=32": 4, "33-43": 5, "44-55": 6, ">55": 3}
        assert df["avg_selling_price"].is_monotonic_increasing
        assert df.iloc[0]["size_category"] == "<=32"
        assert df.iloc[-1]["size_category"] == ">55"

    def test_price_segments(self, store):
        df = run_query(store, "price_segments").df
        assert list(df.columns) == ["price_range", "total_models", "avg_rating", "distinct_brands"]
        assert list(df["price_range"]) == ["30000-50000", ">50000", "<=15000", "15000-30000"]
        assert list(df["total_models"]) == [6, 5, 4, 3]
        assert df.iloc[0]["distinct_brands"] == 4

    @pytest.mark.parametrize(
        "size,label",
        [(32, "<=32"), (32.5, "33-43"), (43, "33-43"), (55, "44-55"), (55.5, ">55")],
    )
    def test_size_bucket_boundaries(self, settings, size, label):
        rows = [("Edge", "Full HD", size, 20000, 25000, "X", 4.2)]
        with ListingStore.from_dataframe(make_raw(rows), settings) as s:
            df = run_query(s, "size_segments").df
            assert list(df["size_category"]) == [label]

    @pytest.mark.parametrize(
        "price,label",
        [
            (15000, "<=15000"),
            (15000.5, "15000-30000"),
            (30000, "15000-30000"),
            (50000, "30000-50000"),
            (50000.5, ">50000"),
        ],
    )
    def test_price_bucket_boundaries(self, settings, price, label):
        rows = [("Edge", "Full HD", 43, price, 60000, "X", 4.2)]
        with ListingStore.from_dataframe(make_raw(rows), settings) as s:
            df = run_query(s, "price_segments").df
            assert list(df["price_range"]) == [label]

    def test_boundary_rows_split_across_buckets(self, settings):
        sizes = [32, 32.5, 43, 55, 55.5]
        prices = [15000, 15000.5, 30000, 50000, 50000.5]
        rows = [("Edge", "Full HD", sz, p, 60000, "X", 4.2) for sz, p in zip(sizes, prices)]
        with ListingStore.from_dataframe(make_raw(rows), settings) as s:
            size_df = run_query(s, 6).df
            price_df = run_query(s, 9).df
        assert dict(zip(size_df["size_category"], size_df["total_models"])) == {
            "<=32": 1, "33-43": 2, "44-55": 1, ">55": 1,
        }
        assert dict(zip(price_df["price_range"], price_df["total_models"])) == {
            "<=15000": 1, "15000-30000": 2, "30000-50000": 1, ">50000": 1,
        }


class TestOperatingSystemSummary:
    def test_null_os_excluded(self, store):
        df = run_query(store, "operating_system_summary").df
        assert list(df.columns) == [
            "OperatingSystem", "total_models", "avg_selling_price", "avg_rating", "distinct_brands",
        ]
        assert list(df["OperatingSystem"]) == ["Tizen", "WebOS", "Android", "Google TV"]
        assert df["total_models"].sum() == len(CATALOGUE_ROWS) - 1
        assert (df["distinct_brands"] == 1).all()


class TestBrandPriceIndex:
    def test_create_twice_is_benign(self, store):
        before = run_query(store, "brand_summary").df

        first = run_query(store, 8)
        assert first.df.empty
        assert "created" in first.message
        assert store.index_exists(store.settings.index_name)

        second = run_query(store, 8)
        assert "already exists" in second.message
        assert store.index_exists(store.settings.index_name)

        after = run_query(store, "brand_summary").df
        pd.testing.assert_frame_equal(before, after)
        assert store.row_count() == len(CATALOGUE_ROWS)


class TestBestValue:
    def test_top_ten_by_price_per_rating(self, store):
        df = run_query(store, "best_value").df
        assert list(df.columns) == ["Brand", "Resolution", "Size", "SellingPrice", "Rating", "price_to_rating"]
        assert len(df) == 10
        assert (df["Rating"] > 4).all()
        ratio = df["SellingPrice"] / df["Rating"]
        assert ratio.is_monotonic_increasing
        assert df.iloc[0]["Brand"] == "Samsung"
        assert df.iloc[0]["price_to_rating"] == pytest.approx(2606.52)

    def test_fewer_rows_than_limit(self, store):
        df = run_query(store, "best_value", QueryPolicy(best_value_min_rating=4.7)).df
        assert len(df) == 2

    def test_ties_follow_source_order(self, settings):
        rows = [
            ("First", "HD Ready", 32, 9000, 10000, "X", 4.5),
            ("Second", "HD Ready", 32, 9000, 10000, "X", 4.5),
            ("Third", "HD Ready", 32, 9000, 10000, "X", 4.5),
        ]
        with ListingStore.from_dataframe(make_raw(rows), settings) as s:
            df = run_query(s, 10).df
            assert list(df["Brand"]) == ["First", "Second", "Third"]
