import pandas as pd
import pytest

from prep import (build_baskets, drop_duplicate_purchases, load_baskets, load_groceries,
                  save_baskets)


def test_load_renames_and_builds_transaction_ids(groceries_csv):
    df = load_groceries(groceries_csv)
    assert list(df.columns) == ["member", "date", "item", "transaction"]
    assert len(df) == 10
    assert df.loc[0, "transaction"] == "1_2015-01-01"
    # day-first: 05-01-2015 is the fifth of January
    assert df["date"].max() == pd.Timestamp("2015-01-05")
    assert "yogurt" in set(df["item"])


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_groceries(tmp_path / "nope.csv")


def test_load_missing_columns(tmp_path):
    path = tmp_path / "bad.csv"
    pd.DataFrame({"Member_number": [1], "Date": ["01-01-2015"]}).to_csv(path, index=False)
    with pytest.raises(ValueError, match="itemDescription"):
        load_groceries(path)


def test_unparseable_dates_and_blank_items_dropped(tmp_path):
    path = tmp_path / "dirty.csv"
    pd.DataFrame({
        "Member_number": [1, 1, 2],
        "Date": ["01-01-2015", "not a date", "01-01-2015"],
        "itemDescription": ["soda", "soda", "   "],
    }).to_csv(path, index=False)
    df = load_groceries(path)
    assert len(df) == 1
    assert df.loc[0, "item"] == "soda"


def test_drop_duplicate_purchases(groceries_csv):
    df, removed = drop_duplicate_purchases(load_groceries(groceries_csv))
    assert removed == 1
    assert len(df) == 9
    assert not df.duplicated(["transaction", "item"]).any()


def test_build_baskets(baskets):
    assert len(baskets) == 4
    assert baskets["transaction"].tolist() == [
        "1_2015-01-01", "2_2015-01-01", "1_2015-01-02", "3_2015-01-05",
    ]
    assert baskets.loc[2, "items"] == ["rolls/buns", "whole milk", "yogurt"]


def test_duplicate_items_collapse_inside_basket(groceries_csv):
    # building straight from raw rows still yields unique items per basket
    baskets = build_baskets(load_groceries(groceries_csv))
    assert baskets.loc[0, "items"] == ["rolls/buns", "whole milk"]


def test_save_and_load_baskets(baskets, tmp_path):
    pq, csv = tmp_path / "out" / "baskets.parquet", tmp_path / "out" / "baskets.csv"
    save_baskets(baskets, pq, csv)
    expected = baskets["items"].tolist()
    assert load_baskets(csv) == expected
    assert load_baskets(pq) == expected


def test_load_baskets_requires_items_column(tmp_path):
    path = tmp_path / "x.csv"
    pd.DataFrame({"basket": [1]}).to_csv(path, index=False)
    with pytest.raises(ValueError):
        load_baskets(path)


def test_rows_without_member_number_dropped(tmp_path):
    path = tmp_path / "members.csv"
    pd.DataFrame({
        "Member_number": [1, None, 2],
        "Date": ["01-01-2015", "01-01-2015", "02-01-2015"],
        "itemDescription": ["soda", "yogurt", "whole milk"],
    }).to_csv(path, index=False)
    df = load_groceries(path)
    assert len(df) == 2
    assert pd.api.types.is_integer_dtype(df["member"])
    assert df["transaction"].tolist() == ["1_2015-01-01", "2_2015-01-02"]
    assert "yogurt" not in set(df["item"])


def test_explicit_date_format(tmp_path):
    path = tmp_path / "iso.csv"
    pd.DataFrame({
        "Member_number": [1, 2, 3],
        "Date": ["2015-07-21", "2015-01-05", "21-07-2015"],
        "itemDescription": ["soda", "yogurt", "whole milk"],
    }).to_csv(path, index=False)
    df = load_groceries(path, date_format="%Y-%m-%d")
    # the day-first value does not match the format and is dropped
    assert len(df) == 2
    assert df["date"].tolist() == [pd.Timestamp("2015-07-21"), pd.Timestamp("2015-01-05")]
    assert df["transaction"].tolist() == ["1_2015-07-21", "2_2015-01-05"]
