# Build baskets from grocery purchase records

import argparse
import ast
import logging
from pathlib import Path

import pandas as pd

log = logging.getLogger(__name__)

RAW_COLUMNS = {"Member_number": "member", "Date": "date", "itemDescription": "item"}


def load_groceries(path, date_format=None):
    """Read the raw groceries CSV into clean (member, date, item, transaction) rows.

    A transaction is one member shopping on one day, so its id is built from
    the member number and the ISO date.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Could not find dataset at {path}.")

    df = pd.read_csv(path, low_memory=False)
    missing = [c for c in RAW_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns {missing} in {list(df.columns)}")

    df = df[list(RAW_COLUMNS)].rename(columns=RAW_COLUMNS)

    if date_format:
        df["date"] = pd.to_datetime(df["date"], format=date_format, errors="coerce")
    else:
        df["date"] = pd.to_datetime(df["date"], dayfirst=True, errors="coerce")
    bad_dates = int(df["date"].isna().sum())
    if bad_dates:
        log.warning("Dropping %d rows with unparseable dates", bad_dates)
        df = df.dropna(subset=["date"])

    df["member"] = pd.to_numeric(df["member"], errors="coerce")
    bad_members = int(df["member"].isna().sum())
    if bad_members:
        log.warning("Dropping %d rows without a member number", bad_members)
        df = df.dropna(subset=["member"])
    df["member"] = df["member"].astype(int)

    df = df.dropna(subset=["item"])
    df["item"] = df["item"].astype(str).str.strip()
    df = df[df["item"] != ""]

    df["transaction"] = df["member"].astype(str) + "_" + df["date"].dt.strftime("%Y-%m-%d")
    df = df.reset_index(drop=True)
    log.info("Loaded %d purchase rows from %s", len(df), path)
    return df


def drop_duplicate_purchases(df):
    """Collapse repeated (transaction, item) rows; returns the frame and the count removed."""
    before = len(df)
    out = df.drop_duplicates(subset=["transaction", "item"]).reset_index(drop=True)
    removed = before - len(out)
    log.info("Removed %d duplicate purchase rows", removed)
    return out, removed


def build_baskets(df):
    baskets = (df.groupby(["transaction", "member", "date"])["item"]
                 .apply(lambda s: sorted(set(s)))
                 .reset_index(name="items"))
    baskets = baskets.sort_values(["date", "transaction"]).reset_index(drop=True)
    return baskets


def save_baskets(baskets, out_parquet, out_csv):
    Path(out_parquet).parent.mkdir(parents=True, exist_ok=True)
    Path(out_csv).parent.mkdir(parents=True, exist_ok=True)
    baskets.to_parquet(out_parquet, index=False)
    baskets.to_csv(out_csv, index=False)
    log.info("Saved baskets to %s and %s", out_parquet, out_csv)


# This method loads baskets from a Parquet or CSV file and returns a list of baskets
def load_baskets(path):
    path = str(path)
    if path.endswith(".csv"):
        df = pd.read_csv(path)
    else:
        df = pd.read_parquet(path)

    if "items" not in df.columns:
        raise ValueError(f"No items column found in {list(df.columns)}")

    def as_list(x):
        if isinstance(x, str):
            return list(ast.literal_eval(x))
        return list(x)

    return df["items"].apply(as_list).tolist()


def main(input_csv, out_parquet, out_csv, date_format=None):
    df = load_groceries(input_csv, date_format=date_format)
    df, removed = drop_duplicate_purchases(df)
    baskets = build_baskets(df)
    save_baskets(baskets, out_parquet, out_csv)

    # Preview
    print(f"Baskets: {len(baskets)} (duplicates removed: {removed})")
    print(f"Saved: {out_parquet}")
    print(f"Also saved (CSV): {out_csv}")
    print(baskets.head(5).to_string(index=False))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)-8s  %(message)s",
                        datefmt="%H:%M:%S")
    ap = argparse.ArgumentParser()
    ap.add_argument("--input", default="../data/raw/Groceries_dataset.csv")
    ap.add_argument("--out_parquet", default="../data/processed/baskets.parquet")
    ap.add_argument("--out_csv", default="../data/processed/baskets.csv")
    ap.add_argument("--date_format", default=None, help="e.g. %%d-%%m-%%Y; day-first parsing if omitted")
    args = ap.parse_args()
    main(args.input, args.out_parquet, args.out_csv, args.date_format)
