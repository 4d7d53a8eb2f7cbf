"""Secondary interestingness measures for association rules.

mlxtend already reports support, confidence, lift, leverage and conviction.
The measures here are derived from the three support columns of a rule frame.
Recent mlxtend releases also return a ``jaccard`` column; it is recomputed
here from the same supports, so the value is identical and older releases
get it too.
"""
import numpy as np

SUPPORT_COLUMNS = ["antecedent support", "consequent support", "support"]

MEASURES = [
    "support", "confidence", "lift",
    "cosine", "jaccard", "rule_power_factor",
    "leverage", "conviction",
]


def cosine(s_ac, s_a, s_c):
    return s_ac / np.sqrt(s_a * s_c)


def jaccard(s_ac, s_a, s_c):
    return s_ac / (s_a + s_c - s_ac)


def rule_power_factor(s_ac, s_a):
    # equals support * confidence
    return s_ac ** 2 / s_a


def add_interest_measures(rules):
    missing = [c for c in SUPPORT_COLUMNS if c not in rules.columns]
    if missing:
        raise ValueError(f"Rule frame lacks support columns {missing}")

    out = rules.copy()
    s_a = out["antecedent support"].astype(float)
    s_c = out["consequent support"].astype(float)
    s_ac = out["support"].astype(float)

    out["cosine"] = cosine(s_ac, s_a, s_c)
    out["jaccard"] = jaccard(s_ac, s_a, s_c)
    out["rule_power_factor"] = rule_power_factor(s_ac, s_a)
    return out
