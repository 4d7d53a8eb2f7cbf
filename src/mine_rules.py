import argparse
import logging
from pathlib import Path

import pandas as pd
from mlxtend.frequent_patterns import apriori, association_rules
from mlxtend.preprocessing import TransactionEncoder

from measures import MEASURES, add_interest_measures
from prep import load_baskets

log = logging.getLogger(__name__)

RULE_COLUMNS = [
    "antecedents", "consequents", "antecedent", "consequent",
    "antecedent_len", "consequent_len",
    "antecedent support", "consequent support", "support", "confidence", "lift",
    "leverage", "conviction", "cosine", "jaccard", "rule_power_factor",
]


def tup_to_str(t):
    return ", ".join(sorted(t))


def _as_itemset(items):
    if items is None:
        return None
    if isinstance(items, str):
        return frozenset([items])
    return frozenset(items)


def encode_baskets(baskets):
    te = TransactionEncoder()
    return pd.DataFrame(te.fit(baskets).transform(baskets), columns=te.columns_)


def frequent_itemsets(X, min_support, max_len=None):
    if not 0 < min_support <= 1:
        raise ValueError(f"min_support must be in (0, 1], got {min_support}")

    freq = apriori(X.astype(bool), min_support=min_support, use_colnames=True, max_len=max_len)
    if freq.empty:
        log.info("No itemsets reach min_support=%s", min_support)
        return pd.DataFrame(columns=["support", "itemsets", "length", "count"])

    freq["length"] = freq["itemsets"].apply(len)
    freq["count"] = (freq["support"] * len(X)).round().astype(int)
    freq = freq.sort_values(["support", "length"], ascending=[False, True]).reset_index(drop=True)
    log.info("Found %d frequent itemsets at min_support=%s", len(freq), min_support)
    return freq


def itemset_length_counts(freq):
    if freq.empty:
        return pd.Series(dtype=int, name="itemsets")
    return freq["length"].value_counts().sort_index().rename("itemsets")


def _empty_rules():
    return pd.DataFrame(columns=RULE_COLUMNS)


def mine_rules(freq, n_transactions, min_confidence=0.1, min_lift=None):
    """Derive rules from frequent itemsets and attach every interest measure.

    Rules come from mlxtend's ``association_rules`` filtered on confidence;
    ``min_lift`` optionally drops weak or negative associations afterwards.
    """
    if freq.empty:
        return _empty_rules()

    rules = association_rules(freq[["support", "itemsets"]], num_itemsets=n_transactions,
                              metric="confidence", min_threshold=min_confidence)
    if min_lift is not None:
        rules = rules[rules["lift"] >= min_lift]
    if rules.empty:
        log.info("No rules reach min_confidence=%s", min_confidence)
        return _empty_rules()

    rules = add_interest_measures(rules)
    rules["antecedent"] = rules["antecedents"].apply(tup_to_str)
    rules["consequent"] = rules["consequents"].apply(tup_to_str)
    rules["antecedent_len"] = rules["antecedents"].apply(len)
    rules["consequent_len"] = rules["consequents"].apply(len)

    rules = sort_rules(rules, by="lift")
    log.info("Mined %d rules at min_confidence=%s", len(rules), min_confidence)
    return rules[RULE_COLUMNS + [c for c in rules.columns if c not in RULE_COLUMNS]]


def sort_rules(rules, by="lift", top=None):
    keys = [by] if isinstance(by, str) else list(by)
    unknown = [k for k in keys if k not in MEASURES]
    if unknown:
        raise ValueError(f"Unknown measure(s) {unknown}; choose from {MEASURES}")

    for tie in ("confidence", "support"):
        if tie not in keys:
            keys.append(tie)
    out = rules.sort_values(keys, ascending=False, kind="mergesort").reset_index(drop=True)
    if top is not None:
        out = out.head(top)
    return out


def prune_redundant(rules):
    """Drop rules that a more general rule with the same consequent already explains.

    A rule is redundant when another rule has the same consequent, a strictly
    smaller antecedent and at least the same confidence.
    """
    if rules.empty:
        return rules.copy()

    keep = []
    for _, group in rules.groupby("consequents", sort=False):
        entries = list(zip(group.index, group["antecedents"], group["confidence"]))
        for idx, ante, conf in entries:
            redundant = any(
                other < ante and other_conf >= conf
                for _, other, other_conf in entries
            )
            if not redundant:
                keep.append(idx)

    out = rules.loc[sorted(keep)]
    log.info("Pruned %d redundant rules", len(rules) - len(out))
    return out


def subset_rules(rules, antecedent=None, consequent=None):
    ante = _as_itemset(antecedent)
    cons = _as_itemset(consequent)
    if rules.empty:
        return rules.copy()
    mask = pd.Series(True, index=rules.index)
    if ante is not None:
        mask &= rules["antecedents"].apply(lambda s: ante <= frozenset(s)).astype(bool)
    if cons is not None:
        mask &= rules["consequents"].apply(lambda s: cons <= frozenset(s)).astype(bool)
    return rules[mask]


def threshold_sweep(X, support_levels, confidence_levels, max_len=None):
    """Count rules for each (support, confidence) pair to help pick thresholds."""
    if not support_levels or not confidence_levels:
        raise ValueError("threshold_sweep needs at least one support and one confidence level")
    confidence_levels = sorted(confidence_levels)
    rows = []
    for s in sorted(support_levels):
        freq = frequent_itemsets(X, s, max_len=max_len)
        confidences = pd.Series(dtype=float)
        if not freq.empty:
            rules = association_rules(freq[["support", "itemsets"]], num_itemsets=len(X),
                                      metric="confidence", min_threshold=confidence_levels[0])
            confidences = rules["confidence"]
        for c in confidence_levels:
            rows.append({
                "support_level": s,
                "confidence_level": c,
                "frequent_itemsets": len(freq),
                "rules": int((confidences >= c).sum()),
            })
    return pd.DataFrame(rows)


def save_tables(freq, rules, out_dir):
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    freq_out = freq.copy()
    freq_out["itemsets"] = freq_out["itemsets"].apply(tup_to_str)
    rules_out = rules.drop(columns=["antecedents", "consequents"])

    freq_out.to_csv(out_dir / "frequent_itemsets.csv", index=False)
    rules_out.to_csv(out_dir / "rules.csv", index=False)
    return out_dir / "frequent_itemsets.csv", out_dir / "rules.csv"


def main(baskets_path, out_dir, min_support, min_conf, max_len):
    baskets = load_baskets(baskets_path)
    X = encode_baskets(baskets)

    freq = frequent_itemsets(X, min_support=min_support, max_len=max_len)
    rules = mine_rules(freq, len(X), min_confidence=min_conf)
    save_tables(freq, rules, out_dir)

    print(f"itemsets={len(freq)} | rules={len(rules)} -> {out_dir}")
    print(rules[["antecedent", "consequent", "support", "confidence", "lift"]]
          .head(10).to_string(index=False))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)-8s  %(message)s",
                        datefmt="%H:%M:%S")
    ap = argparse.ArgumentParser()
    ap.add_argument("--baskets", default="../data/processed/baskets.parquet")
    ap.add_argument("--out_dir", default="../outputs")
    ap.add_argument("--min_support", type=float, default=0.001)  # groceries baskets are small and sparse
    ap.add_argument("--min_conf", type=float, default=0.1)
    ap.add_argument("--max_len", type=int, default=3)
    args = ap.parse_args()
    main(args.baskets, args.out_dir, args.min_support, args.min_conf, args.max_len)
