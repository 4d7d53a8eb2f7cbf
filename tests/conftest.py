import pandas as pd
import pytest

from mine_rules import encode_baskets
from prep import build_baskets, drop_duplicate_purchases, load_groceries

# Four transactions once member+date are combined:
#   1_2015-01-01: whole milk, rolls/buns   (whole milk listed twice)
#   2_2015-01-01: whole milk, yogurt
#   1_2015-01-02: rolls/buns, whole milk, yogurt
#   3_2015-01-05: rolls/buns, soda
RAW_ROWS = [
    (1, "01-01-2015", "whole milk"),
    (1, "01-01-2015", "rolls/buns"),
    (1, "01-01-2015", "whole milk"),
    (2, "01-01-2015", "whole milk"),
    (2, "01-01-2015", " yogurt "),
    (1, "02-01-2015", "whole milk"),
    (1, "02-01-2015", "yogurt"),
    (1, "02-01-2015", "rolls/buns"),
    (3, "05-01-2015", "soda"),
    (3, "05-01-2015", "rolls/buns"),
]


@pytest.fixture
def groceries_csv(tmp_path):
    path = tmp_path / "Groceries_dataset.csv"
    pd.DataFrame(RAW_ROWS, columns=["Member_number", "Date", "itemDescription"]).to_csv(path, index=False)
    return path


@pytest.fixture
def purchases(groceries_csv):
    df, _ = drop_duplicate_purchases(load_groceries(groceries_csv))
    return df


@pytest.fixture
def baskets(purchases):
    return build_baskets(purchases)


@pytest.fixture
def onehot(baskets):
    return encode_baskets(baskets["items"].tolist())
