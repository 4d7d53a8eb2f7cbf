# -*- coding: utf-8 -*-
"""
Groceries market-basket pipeline:
- LOAD & CLEAN (rename columns, drop duplicate purchases, member+date transactions)
- DESCRIPTIVE STATS (item frequencies, basket sizes, transactions per month)
- PARAMETER SWEEP (rule counts per support / confidence level)
- FREQUENT ITEMSETS & ASSOCIATION RULES (mlxtend apriori)
- INTEREST MEASURES (support, confidence, lift, cosine, jaccard, rule power factor)
- PLOTS + RULE GRAPH -> <out_dir>/plots/
- REPORT -> <out_dir>/report.html or report.md
"""

import argparse
import logging
from pathlib import Path

from basket_stats import (basket_sizes, dataset_summary, item_frequency,
                          transactions_by_period)
from mine_rules import (encode_baskets, frequent_itemsets, itemset_length_counts,
                        mine_rules, prune_redundant, save_tables, sort_rules,
                        subset_rules, threshold_sweep, tup_to_str)
from plots import (plot_basket_sizes, plot_rule_graph, plot_support_confidence,
                   plot_threshold_sweep, plot_top_items, plot_top_rules,
                   plot_transactions_by_period)
from prep import build_baskets, drop_duplicate_purchases, load_groceries, save_baskets
from report import build_context, write_report

log = logging.getLogger(__name__)

DEFAULT_INPUT = "data/raw/Groceries_dataset.csv"
DEFAULT_OUT_DIR = "outputs"
DEFAULT_MIN_SUPPORT = 0.001
DEFAULT_MIN_CONFIDENCE = 0.1
DEFAULT_MAX_LEN = 3
DEFAULT_TOP = 10
SUPPORT_LEVELS = [0.01, 0.005, 0.003, 0.001]
CONFIDENCE_LEVELS = [0.05, 0.1, 0.15, 0.2, 0.25, 0.3]
REPORT_MEASURES = ["support", "confidence", "lift"]
RULE_TABLE_COLUMNS = ["antecedent", "consequent", "support", "confidence", "lift",
                      "cosine", "jaccard", "rule_power_factor"]


def setup_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )


def run(input_csv=DEFAULT_INPUT, out_dir=DEFAULT_OUT_DIR,
        min_support=DEFAULT_MIN_SUPPORT, min_confidence=DEFAULT_MIN_CONFIDENCE,
        max_len=DEFAULT_MAX_LEN, top=DEFAULT_TOP,
        support_levels=None, confidence_levels=None,
        focus_item=None, report_format="html", date_format=None):
    out_dir = Path(out_dir)
    plots = out_dir / "plots"
    support_levels = support_levels or SUPPORT_LEVELS
    confidence_levels = confidence_levels or CONFIDENCE_LEVELS

    print("\nLOAD & CLEAN\n============")
    df = load_groceries(input_csv, date_format=date_format)
    df, removed = drop_duplicate_purchases(df)
    baskets = build_baskets(df)
    save_baskets(baskets, out_dir / "baskets.parquet", out_dir / "baskets.csv")

    summary = dataset_summary(df, duplicates_removed=removed)
    for k, v in summary.items():
        print(f"  {k:20s} {v}")

    print("\nDESCRIPTIVE STATS\n=================")
    item_freq = item_frequency(df)
    sizes = basket_sizes(df)
    by_month = transactions_by_period(df, "M")
    print("Basket size stats:\n", sizes.describe().to_string())
    print("\nTop items by transactions:\n", item_freq.head(top).to_string(index=False))

    figures = {
        "top_items": plot_top_items(item_freq, plots / "top_items.png", top=20),
        "basket_sizes": plot_basket_sizes(sizes, plots / "basket_sizes.png"),
        "by_month": plot_transactions_by_period(by_month, plots / "transactions_by_month.png"),
        "by_weekday": plot_transactions_by_period(transactions_by_period(df, "weekday"),
                                                  plots / "transactions_by_weekday.png",
                                                  title="Transactions per weekday"),
    }

    print("\nFREQUENT ITEMSETS & ASSOCIATION RULES\n=====================================")
    X = encode_baskets(baskets["items"].tolist())
    sweep = threshold_sweep(X, support_levels, confidence_levels, max_len=max_len)
    figures["sweep"] = plot_threshold_sweep(sweep, plots / "threshold_sweep.png")
    print("Rules per support / confidence level:\n", sweep.to_string(index=False))

    freq = frequent_itemsets(X, min_support=min_support, max_len=max_len)
    lengths = itemset_length_counts(freq)
    min_count = int(round(min_support * len(X)))
    print(f"\nUsing min_support={min_support:.2%} => min_count={min_count} of {len(X)} baskets")
    print("Frequent itemsets by length:", dict(lengths))

    rules = mine_rules(freq, len(X), min_confidence=min_confidence)
    pruned = prune_redundant(rules)
    tables_paths = save_tables(freq, rules, out_dir)
    print(f"Rules: {len(rules)} | after pruning redundant: {len(pruned)}")

    rule_tables = {}
    for measure in REPORT_MEASURES:
        rule_tables[measure] = sort_rules(pruned, by=measure, top=top)[RULE_TABLE_COLUMNS]
        figures[f"rules_top_{measure}"] = plot_top_rules(
            pruned, plots / f"rules_top_{measure}.png", measure=measure, top=top)
    print("\nTop rules (by lift):")
    print(rule_tables["lift"].to_string(index=False, float_format=lambda v: f"{float(v):.4f}"))

    figures["rules_scatter"] = plot_support_confidence(pruned, plots / "rules_support_confidence.png")
    figures["rules_graph"] = plot_rule_graph(pruned, plots / "rules_graph.png", top=top)

    focus = None
    if focus_item:
        focus = {
            "item": focus_item,
            "as_consequent": sort_rules(subset_rules(pruned, consequent=focus_item),
                                        top=top)[RULE_TABLE_COLUMNS],
            "as_antecedent": sort_rules(subset_rules(pruned, antecedent=focus_item),
                                        top=top)[RULE_TABLE_COLUMNS],
        }

    itemsets_table = freq.head(top).copy()
    itemsets_table["itemsets"] = itemsets_table["itemsets"].apply(tup_to_str)

    ext = "html" if report_format == "html" else "md"
    report_path = out_dir / f"report.{ext}"
    context = build_context(
        title="Market basket analysis of grocery transactions",
        params={"min_support": min_support, "min_confidence": min_confidence, "max_len": max_len},
        summary=summary,
        top_items=item_freq.head(top),
        sweep=sweep,
        itemset_lengths=lengths,
        itemsets=itemsets_table,
        rule_tables=rule_tables,
        rule_counts={"total": len(rules), "pruned": len(pruned)},
        figures=figures,
        focus=focus,
        fmt=report_format,
        base_dir=out_dir,
    )
    write_report(context, report_path, fmt=report_format)
    print(f"\n[DELIVERABLES] Tables, plots and report saved in {out_dir}/")

    return {
        "transactions": df,
        "baskets": baskets,
        "summary": summary,
        "item_frequency": item_freq,
        "sweep": sweep,
        "frequent_itemsets": freq,
        "rules": rules,
        "pruned_rules": pruned,
        "figures": figures,
        "tables": tables_paths,
        "report": report_path,
    }


def parse_levels(text):
    return [float(x) for x in text.split(",") if x.strip()]


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Association rule mining on grocery transactions")
    ap.add_argument("--input", default=DEFAULT_INPUT)
    ap.add_argument("--out_dir", default=DEFAULT_OUT_DIR)
    ap.add_argument("--min_support", type=float, default=DEFAULT_MIN_SUPPORT)
    ap.add_argument("--min_conf", type=float, default=DEFAULT_MIN_CONFIDENCE)
    ap.add_argument("--max_len", type=int, default=DEFAULT_MAX_LEN)
    ap.add_argument("--top", type=int, default=DEFAULT_TOP)
    ap.add_argument("--support_levels", type=parse_levels, default=None,
                    help="comma separated, e.g. 0.01,0.005,0.001")
    ap.add_argument("--confidence_levels", type=parse_levels, default=None)
    ap.add_argument("--focus_item", default=None, help="e.g. 'whole milk'")
    ap.add_argument("--report_format", choices=["html", "markdown"], default="html")
    ap.add_argument("--date_format", default=None)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    setup_logging(args.verbose)
    run(
        input_csv=args.input,
        out_dir=args.out_dir,
        min_support=args.min_support,
        min_confidence=args.min_conf,
        max_len=args.max_len,
        top=args.top,
        support_levels=args.support_levels,
        confidence_levels=args.confidence_levels,
        focus_item=args.focus_item,
        report_format=args.report_format,
        date_format=args.date_format,
    )
