import pytest

from basket_stats import (basket_sizes, dataset_summary, item_frequency, items_per_member,
                          top_items, transactions_by_period)


def test_dataset_summary(purchases):
    s = dataset_summary(purchases, duplicates_removed=1)
    assert s["rows"] == 9
    assert s["duplicates_removed"] == 1
    assert s["members"] == 3
    assert s["transactions"] == 4
    assert s["items"] == 4
    assert s["first_date"] == "2015-01-01"
    assert s["last_date"] == "2015-01-05"
    assert s["mean_basket_size"] == pytest.approx(9 / 4)
    assert s["median_basket_size"] == 2.0


def test_basket_sizes(purchases):
    sizes = basket_sizes(purchases)
    assert sizes["1_2015-01-02"] == 3
    assert sorted(sizes.tolist()) == [2, 2, 2, 3]


def test_item_frequency_support_is_per_transaction(purchases):
    freq = item_frequency(purchases)
    assert freq["item"].tolist() == ["rolls/buns", "whole milk", "yogurt", "soda"]
    row = freq.set_index("item").loc["whole milk"]
    assert row["transactions"] == 3
    assert row["support"] == pytest.approx(0.75)


def test_top_items(purchases):
    assert top_items(purchases, n=2)["item"].tolist() == ["rolls/buns", "whole milk"]


def test_transactions_by_period(purchases):
    monthly = transactions_by_period(purchases, "M")
    assert monthly.to_dict() == {"2015-01": 4}

    weekly = transactions_by_period(purchases, "weekday")
    assert len(weekly) == 7
    # 2015-01-01 was a Thursday
    assert weekly["Thursday"] == 2
    assert weekly.sum() == 4


def test_transactions_by_period_rejects_unknown(purchases):
    with pytest.raises(ValueError):
        transactions_by_period(purchases, "Q")


def test_items_per_member(purchases):
    per_member = items_per_member(purchases)
    assert per_member.index[0] == 1
    assert per_member[1] == 3
