import logging

import pandas as pd

log = logging.getLogger(__name__)

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def basket_sizes(df):
    return df.groupby("transaction")["item"].nunique().rename("basket_size")


def dataset_summary(df, duplicates_removed=0):
    sizes = basket_sizes(df)
    return {
        "rows": int(len(df)),
        "duplicates_removed": int(duplicates_removed),
        "members": int(df["member"].nunique()),
        "transactions": int(df["transaction"].nunique()),
        "items": int(df["item"].nunique()),
        "first_date": df["date"].min().strftime("%Y-%m-%d") if len(df) else None,
        "last_date": df["date"].max().strftime("%Y-%m-%d") if len(df) else None,
        "mean_basket_size": float(sizes.mean()) if len(sizes) else 0.0,
        "median_basket_size": float(sizes.median()) if len(sizes) else 0.0,
    }


def item_frequency(df):
    """Rows, distinct transactions and support per item.

    Support is computed against the number of transactions, not rows, so it
    matches what the rule miner reports for 1-itemsets.
    """
    n_tx = df["transaction"].nunique()
    freq = (df.groupby("item")
              .agg(rows=("transaction", "size"), transactions=("transaction", "nunique"))
              .reset_index())
    freq["support"] = freq["transactions"] / n_tx if n_tx else 0.0
    freq = freq.sort_values(["transactions", "item"], ascending=[False, True]).reset_index(drop=True)
    return freq


def top_items(df, n=20):
    return item_frequency(df).head(n)


def transactions_by_period(df, freq="M"):
    meta = df.drop_duplicates("transaction")
    if freq == "M":
        counts = meta.groupby(meta["date"].dt.to_period("M").astype(str))["transaction"].count()
        counts.index.name = "month"
    elif freq == "weekday":
        counts = (meta.groupby(meta["date"].dt.day_name())["transaction"].count()
                      .reindex(WEEKDAYS, fill_value=0))
        counts.index.name = "weekday"
    else:
        raise ValueError(f"Unsupported period {freq!r}; use 'M' or 'weekday'.")
    return counts.rename("transactions")


def items_per_member(df):
    return (df.groupby("member")["item"].nunique()
              .sort_values(ascending=False)
              .rename("unique_items"))
