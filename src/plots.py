import logging
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import networkx as nx
import numpy as np

log = logging.getLogger(__name__)

RANDOM_STATE = 42

# -------------------------
# Plot utils
# -------------------------

def figsav(path, tight=True):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if tight:
        plt.tight_layout()
    plt.savefig(path, dpi=140)
    log.info("[PLOT] %s", path.name)
    plt.close()
    return path


def rule_label(antecedent, consequent):
    return f"{antecedent} → {consequent}"

# -------------------------
# Descriptive plots
# -------------------------

def plot_top_items(item_freq, path, top=20, column="transactions"):
    topdf = item_freq.head(top)
    if topdf.empty:
        return None
    plt.figure(figsize=(8.5, 4.2 + 0.12 * len(topdf)))
    (topdf.sort_values(column)
          .set_index("item")[column]
          .plot(kind="barh"))
    plt.xlabel(column.replace("_", " ").capitalize())
    plt.ylabel("")
    plt.title(f"Top-{len(topdf)} items by {column}")
    return figsav(path)


def plot_basket_sizes(sizes, path):
    if len(sizes) == 0:
        return None
    plt.figure(figsize=(6.8, 3.6))
    bins = np.arange(sizes.min(), sizes.max() + 2) - 0.5
    sizes.plot(kind="hist", bins=bins)
    plt.xlabel("Unique items per basket")
    plt.ylabel("Frequency")
    plt.title("Basket size distribution")
    return figsav(path)


def plot_transactions_by_period(counts, path, title="Transactions per month"):
    if len(counts) == 0:
        return None
    plt.figure(figsize=(8.4, 3.6))
    counts.plot(kind="bar")
    plt.xlabel(counts.index.name or "")
    plt.ylabel("Transactions")
    plt.title(title)
    plt.xticks(rotation=45, ha="right")
    return figsav(path)

# -------------------------
# Rule plots
# -------------------------

def plot_top_rules(rules, path, measure="lift", top=10):
    topdf = rules.sort_values(measure, ascending=False, kind="mergesort").head(top)
    if topdf.empty:
        return None
    plt.figure(figsize=(7.8, 4.2))
    y = [rule_label(a, b) for a, b in zip(topdf["antecedent"], topdf["consequent"])]
    plt.barh(range(len(topdf)), topdf[measure].astype(float).values)
    plt.yticks(range(len(topdf)), y)
    plt.xlabel(measure.replace("_", " ").capitalize())
    plt.title(f"Top rules by {measure}")
    plt.gca().invert_yaxis()
    return figsav(path)


def plot_threshold_sweep(sweep, path):
    if sweep.empty:
        return None
    plt.figure(figsize=(6.8, 3.8))
    for s, grp in sweep.groupby("support_level"):
        plt.plot(grp["confidence_level"], grp["rules"], marker="o", label=f"support {s:g}")
    plt.xlabel("Confidence level")
    plt.ylabel("Number of rules")
    plt.title("Rules found per support / confidence level")
    plt.legend(frameon=False)
    return figsav(path)


def plot_support_confidence(rules, path):
    if rules.empty:
        return None
    plt.figure(figsize=(6.8, 4.4))
    sc = plt.scatter(rules["support"].astype(float), rules["confidence"].astype(float),
                     c=rules["lift"].astype(float), cmap="viridis", s=24)
    plt.colorbar(sc, label="Lift")
    plt.xlabel("Support")
    plt.ylabel("Confidence")
    plt.title(f"{len(rules)} rules: support vs confidence")
    return figsav(path)

# -------------------------
# Rule graph
# -------------------------

def build_rule_graph(rules, top=20):
    """Items and rules as nodes: antecedent item -> rule -> consequent item."""
    G = nx.DiGraph()
    topdf = rules.sort_values("lift", ascending=False, kind="mergesort").head(top)
    for i, (_, r) in enumerate(topdf.iterrows(), start=1):
        # tuple keys keep rule nodes apart from item names
        rid = ("rule", i)
        G.add_node(rid, kind="rule", name=f"R{i}",
                   label=rule_label(r["antecedent"], r["consequent"]),
                   support=float(r["support"]), confidence=float(r["confidence"]),
                   lift=float(r["lift"]))
        for it in sorted(r["antecedents"]):
            G.add_node(it, kind="item")
            G.add_edge(it, rid)
        for it in sorted(r["consequents"]):
            G.add_node(it, kind="item")
            G.add_edge(rid, it)
    return G


def plot_rule_graph(rules, path, top=20):
    G = build_rule_graph(rules, top=top)
    if G.number_of_nodes() == 0:
        return None

    rule_nodes = [n for n, d in G.nodes(data=True) if d["kind"] == "rule"]
    item_nodes = [n for n, d in G.nodes(data=True) if d["kind"] == "item"]
    supports = np.array([G.nodes[n]["support"] for n in rule_nodes])
    lifts = [G.nodes[n]["lift"] for n in rule_nodes]
    # scale rule markers by support relative to the largest one drawn
    sizes = 80 + 620 * supports / supports.max()

    pos = nx.spring_layout(G, seed=RANDOM_STATE, k=0.8)
    plt.figure(figsize=(9, 7))
    nx.draw_networkx_edges(G, pos, arrows=True, arrowstyle="-|>", arrowsize=10,
                           edge_color="#999999", width=0.8)
    nodes = nx.draw_networkx_nodes(G, pos, nodelist=rule_nodes, node_size=sizes,
                                   node_color=lifts, cmap=plt.cm.Reds)
    nx.draw_networkx_nodes(G, pos, nodelist=item_nodes, node_size=30, node_color="#4c72b0")
    nx.draw_networkx_labels(G, pos, labels={n: n for n in item_nodes}, font_size=8)
    plt.colorbar(nodes, label="Lift")
    plt.title(f"Graph for {len(rule_nodes)} rules (size: support, colour: lift)")
    plt.axis("off")
    return figsav(path)
