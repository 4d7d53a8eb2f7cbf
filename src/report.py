import base64
import logging
from numbers import Integral, Real
from pathlib import Path

import pandas as pd
from jinja2 import DictLoader, Environment, select_autoescape

log = logging.getLogger(__name__)

FORMATS = ("markdown", "html")

MARKDOWN_TEMPLATE = """\
# {{ title }}

## Dataset

{{ tables.summary }}

## Most frequent items

{{ tables.top_items }}
{% if figures.top_items %}
![Top items]({{ figures.top_items }})
{% endif %}
{% if figures.basket_sizes %}
![Basket sizes]({{ figures.basket_sizes }})
{% endif %}
{% if figures.by_month %}
![Transactions per month]({{ figures.by_month }})
{% endif %}
{% if figures.by_weekday %}
![Transactions per weekday]({{ figures.by_weekday }})
{% endif %}
## Choosing support and confidence

{{ tables.sweep }}
{% if figures.sweep %}
![Threshold sweep]({{ figures.sweep }})
{% endif %}
Mining with min_support={{ params.min_support }}, min_confidence={{ params.min_confidence }}, max_len={{ params.max_len }}.

## Frequent itemsets

{{ tables.itemset_lengths }}

{{ tables.itemsets }}

## Rules

{{ rule_counts.total }} rules, {{ rule_counts.pruned }} after removing redundant ones.
{% for measure, table in rule_tables.items() %}
### Top rules by {{ measure }}

{{ table }}
{% endfor %}
{% if focus %}
### Rules involving {{ focus.item }}

Bought before {{ focus.item }}:

{{ focus.as_consequent }}

Bought with {{ focus.item }}:

{{ focus.as_antecedent }}
{% endif %}
{% for name, fig in figures.items() if name.startswith("rules_") and fig %}
![{{ name }}]({{ fig }})
{% endfor %}
"""

HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
body { font-family: sans-serif; max-width: 1100px; margin: 2em auto; }
table { border-collapse: collapse; margin: 1em 0; }
th, td { border: 1px solid #ccc; padding: 3px 8px; text-align: left; }
img { max-width: 100%; }
</style>
</head>
<body>
<h1>{{ title }}</h1>
<h2>Dataset</h2>
{{ tables.summary | safe }}
<h2>Most frequent items</h2>
{{ tables.top_items | safe }}
{% for name in ["top_items", "basket_sizes", "by_month", "by_weekday"] if figures[name] %}
<img src="{{ figures[name] }}" alt="{{ name }}">
{% endfor %}
<h2>Choosing support and confidence</h2>
{{ tables.sweep | safe }}
{% if figures.sweep %}<img src="{{ figures.sweep }}" alt="sweep">{% endif %}
<p>Mining with min_support={{ params.min_support }}, min_confidence={{ params.min_confidence }}, max_len={{ params.max_len }}.</p>
<h2>Frequent itemsets</h2>
{{ tables.itemset_lengths | safe }}
{{ tables.itemsets | safe }}
<h2>Rules</h2>
<p>{{ rule_counts.total }} rules, {{ rule_counts.pruned }} after removing redundant ones.</p>
{% for measure, table in rule_tables.items() %}
<h3>Top rules by {{ measure }}</h3>
{{ table | safe }}
{% endfor %}
{% if focus %}
<h3>Rules involving {{ focus.item }}</h3>
<p>Bought before {{ focus.item }}:</p>
{{ focus.as_consequent | safe }}
<p>Bought with {{ focus.item }}:</p>
{{ focus.as_antecedent | safe }}
{% endif %}
{% for name, fig in figures.items() if name.startswith("rules_") and fig %}
<img src="{{ fig }}" alt="{{ name }}">
{% endfor %}
</body>
</html>
"""

env = Environment(
    loader=DictLoader({"report.md": MARKDOWN_TEMPLATE, "report.html": HTML_TEMPLATE}),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    trim_blocks=True,
    lstrip_blocks=True,
)


def _cell(v, floatfmt):
    if isinstance(v, (frozenset, set, tuple, list)):
        return ", ".join(sorted(str(x) for x in v))
    if isinstance(v, bool):
        return str(v)
    if isinstance(v, Real) and not isinstance(v, Integral):
        return f"{float(v):.{floatfmt}f}"
    return str(v)


def _to_frame(obj):
    if isinstance(obj, pd.DataFrame):
        return obj
    if isinstance(obj, pd.Series):
        return obj.reset_index()
    if isinstance(obj, dict):
        return pd.DataFrame({"metric": list(obj.keys()), "value": list(obj.values())})
    if isinstance(obj, list) and all(isinstance(r, dict) for r in obj):
        return pd.DataFrame(obj)
    raise TypeError(f"Cannot format object of type {type(obj).__name__} as a table")


def format_table(obj, fmt="markdown", floatfmt=4):
    """Render a DataFrame, Series, dict or list of dicts as a Markdown or HTML table."""
    if fmt not in FORMATS:
        raise ValueError(f"Unknown table format {fmt!r}; choose from {FORMATS}")

    df = _to_frame(obj)
    cells = df.apply(lambda col: col.map(lambda v: _cell(v, floatfmt))) if len(df) else df.astype(str)
    cells = cells.copy()
    cells.columns = [str(c) for c in df.columns]

    if fmt == "html":
        return cells.to_html(index=False, border=0, escape=True)

    if len(cells):
        cells = cells.apply(lambda col: col.str.replace("|", "\\|", regex=False))
    # cells are already formatted strings; keep tabulate from re-parsing numbers
    return cells.to_markdown(index=False, tablefmt="pipe", disable_numparse=True)


def _embed_png(path):
    data = Path(path).read_bytes()
    return "data:image/png;base64," + base64.b64encode(data).decode("utf-8")


def render_report(context, fmt="html"):
    if fmt not in FORMATS:
        raise ValueError(f"Unknown report format {fmt!r}; choose from {FORMATS}")
    template = env.get_template("report.html" if fmt == "html" else "report.md")
    return template.render(**context)


def build_context(title, params, summary, top_items, sweep, itemset_lengths, itemsets,
                  rule_tables, rule_counts, figures, focus=None, fmt="html", base_dir=None):
    """Turn result frames into the strings the report template expects.

    Figures are embedded as base64 in HTML and linked relative to
    ``base_dir`` in Markdown.
    """
    def fig_ref(p):
        if p is None:
            return None
        if fmt == "html":
            return _embed_png(p)
        p = Path(p)
        return p.relative_to(base_dir).as_posix() if base_dir else p.as_posix()

    ctx = {
        "title": title,
        "params": params,
        "tables": {
            "summary": format_table(summary, fmt),
            "top_items": format_table(top_items, fmt),
            "sweep": format_table(sweep, fmt),
            "itemset_lengths": format_table(itemset_lengths, fmt),
            "itemsets": format_table(itemsets, fmt),
        },
        "rule_tables": {m: format_table(t, fmt) for m, t in rule_tables.items()},
        "rule_counts": rule_counts,
        "figures": {name: fig_ref(p) for name, p in figures.items()},
        "focus": None,
    }
    if focus is not None:
        ctx["focus"] = {
            "item": focus["item"],
            "as_consequent": format_table(focus["as_consequent"], fmt),
            "as_antecedent": format_table(focus["as_antecedent"], fmt),
        }
    return ctx


def write_report(context, path, fmt=None):
    path = Path(path)
    if fmt is None:
        suffix = path.suffix.lower()
        if suffix in (".html", ".htm"):
            fmt = "html"
        elif suffix == ".md":
            fmt = "markdown"
        else:
            raise ValueError(f"Cannot infer report format from {path.name}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_report(context, fmt), encoding="utf-8")
    log.info("Report written to %s", path)
    return path
