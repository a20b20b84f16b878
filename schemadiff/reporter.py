"""Markdown and HTML reports describing a schema diff."""

from __future__ import annotations

from schemadiff.diff_model import DiffResult, TableDiff
from schemadiff.schema_model import CheckConstraint, Constraint, UniqueConstraint

_NONE = "- Aucune"
_DESTRUCTIVE_MD = " ⚠ DESTRUCTIF"

_CODE = '<code class="rounded bg-slate-100 px-1.5 py-0.5 text-slate-800">{}</code>'
_DESTRUCTIVE_HTML = '<span class="text-xs font-semibold text-rose-700">DESTRUCTIF</span>'
_BADGES = {
    "RENAME": "bg-violet-100 px-2 py-0.5 text-xs font-semibold text-violet-800",
    "ADD": "bg-emerald-100 px-2 py-0.5 text-xs font-semibold text-emerald-800",
    "DROP": "bg-rose-100 px-2 py-0.5 text-xs font-semibold text-rose-800",
    "ALTER": "bg-amber-100 px-2 py-0.5 text-xs font-semibold text-amber-800",
}


def _flag(value: bool) -> str:
    return "true" if value else "false"


def format_constraint(constraint: Constraint) -> str:
    """Human-readable form of a UNIQUE or CHECK constraint."""
    if isinstance(constraint, UniqueConstraint):
        return f"UNIQUE ({', '.join(constraint.columns)})"
    if isinstance(constraint, CheckConstraint):
        return f"CHECK ({constraint.expression})"
    raise TypeError(f"unsupported constraint: {constraint!r}")


def escape_html(value: str) -> str:
    """Escape &, <, >, double and single quotes for HTML text and attributes."""
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def _table_lines_markdown(td: TableDiff) -> list[str]:
    lines = [f"### Table `{td.table_name}`"]
    lines.extend(
        f"  - ↩ Colonne `{r.old_name}` renommee en `{r.new_name}` ({r.data_type}) *(heuristique)*"
        for r in td.renamed_columns
    )
    lines.extend(f"  - + Colonne `{c.name}` ({c.data_type})" for c in td.added_columns)
    lines.extend(
        f"  - - Colonne `{c.name}` ({c.data_type}){_DESTRUCTIVE_MD}" for c in td.removed_columns
    )
    for change in td.modified_columns:
        mark = _DESTRUCTIVE_MD if change.destructive else ""
        lines.append(
            f"  - ~ Colonne `{change.old.name}`: type `{change.old.data_type}` -> "
            f"`{change.new.data_type}`, not_null {_flag(change.old.not_null)} -> "
            f"{_flag(change.new.not_null)}{mark}"
        )
    lines.extend(
        f"  - + Index `{idx.name}` [{', '.join(idx.columns)}]{' UNIQUE' if idx.unique else ''}"
        for idx in td.added_indexes
    )
    lines.extend(
        f"  - - Index `{idx.name}` [{', '.join(idx.columns)}]" for idx in td.removed_indexes
    )
    lines.extend(
        f"  - ~ Index `{m.old.name}`: [{', '.join(m.old.columns)}] -> [{', '.join(m.new.columns)}]"
        for m in td.modified_indexes
    )
    lines.extend(
        f"  - + FK `{fk.name}`: ({', '.join(fk.columns)}) -> `{fk.referenced_table}`"
        f"({', '.join(fk.referenced_columns)})"
        for fk in td.added_foreign_keys
    )
    lines.extend(
        f"  - - FK `{fk.name}`: ({', '.join(fk.columns)}) -> `{fk.referenced_table}`"
        f"({', '.join(fk.referenced_columns)}){_DESTRUCTIVE_MD}"
        for fk in td.removed_foreign_keys
    )
    lines.extend(f"  - ~ FK `{m.old.name}` modifiee ⚠" for m in td.modified_foreign_keys)
    lines.extend(
        f"  - + Contrainte `{name}`: {format_constraint(c)}" for name, c in td.added_constraints
    )
    lines.extend(
        f"  - - Contrainte `{name}`: {format_constraint(c)}{_DESTRUCTIVE_MD}"
        for name, c in td.removed_constraints
    )
    lines.extend(
        f"  - ~ Contrainte `{m.name}`: {format_constraint(m.old)} -> {format_constraint(m.new)}"
        for m in td.modified_constraints
    )
    return lines


def render_diff_markdown(diff: DiffResult) -> str:
    """A Markdown report of added, removed and altered tables plus destructive warnings."""
    out = ["# Rapport de differences de schema", "", "## Tables ajoutees"]
    out.extend([f"- `{t}`" for t in diff.added_tables] or [_NONE])
    out.extend(["", "## Tables supprimees"])
    out.extend([f"- `{t}`{_DESTRUCTIVE_MD}" for t in diff.removed_tables] or [_NONE])
    out.extend(["", "## Modifications de tables"])
    if diff.altered_tables:
        for td in diff.altered_tables:
            out.extend(_table_lines_markdown(td))
    else:
        out.append(_NONE)
    out.extend(["", "## Alertes destructives"])
    out.extend([f"- ⚠ {w}" for w in diff.destructive_warnings] or [_NONE])
    return "\n".join(out)


def _item(badge: str, kind: str, name: str, detail: str = "", suffix: str = "") -> str:
    badge_html = (
        f'<span class="inline-block min-w-6 rounded {_BADGES[badge]}">{badge}</span>'
    )
    return (
        f'<li class="py-1">{badge_html} {kind} {_CODE.format(escape_html(name))}'
        f"{detail}{suffix}</li>"
    )


def _muted(text: str) -> str:
    return f' <span class="text-slate-500">{text}</span>'


def _fk_detail(fk) -> str:
    return _muted(
        f"({escape_html(', '.join(fk.columns))}) -&gt; {escape_html(fk.referenced_table)}"
        f"({escape_html(', '.join(fk.referenced_columns))})"
    )


def _table_items_html(td: TableDiff) -> str:
    items: list[str] = []
    destructive = f" {_DESTRUCTIVE_HTML}"
    for r in td.renamed_columns:
        items.append(
            _item(
                "RENAME",
                "colonne",
                r.old_name,
                f' <span class="text-slate-500">-&gt;</span> {_CODE.format(escape_html(r.new_name))}'
                ' <span class="text-xs text-slate-400">(heuristique)</span>',
            )
        )
    items.extend(
        _item("ADD", "colonne", c.name, _muted(f"({escape_html(c.data_type)})"))
        for c in td.added_columns
    )
    items.extend(
        _item("DROP", "colonne", c.name, _muted(f"({escape_html(c.data_type)})"), destructive)
        for c in td.removed_columns
    )
    for change in td.modified_columns:
        items.append(
            _item(
                "ALTER",
                "colonne",
                change.old.name,
                _muted(
                    f"type {escape_html(change.old.data_type)} -&gt; "
                    f"{escape_html(change.new.data_type)} | not_null "
                    f"{_flag(change.old.not_null)} -&gt; {_flag(change.new.not_null)}"
                ),
                destructive if change.destructive else "",
            ).replace("</span> <span class=\"text-xs font-semibold", "</span><span class=\"text-xs font-semibold", 0)
        )
    items.extend(
        _item("ADD", "index", idx.name, _muted(f"[{escape_html(', '.join(idx.columns))}]"))
        for idx in td.added_indexes
    )
    items.extend(
        _item("DROP", "index", idx.name, _muted(f"[{escape_html(', '.join(idx.columns))}]"))
        for idx in td.removed_indexes
    )
    items.extend(
        _item(
            "ALTER",
            "index",
            m.old.name,
            _muted(
                f"[{escape_html(', '.join(m.old.columns))}] -&gt; "
                f"[{escape_html(', '.join(m.new.columns))}]"
            ),
        )
        for m in td.modified_indexes
    )
    items.extend(_item("ADD", "fk", fk.name, _fk_detail(fk)) for fk in td.added_foreign_keys)
    items.extend(
        _item("DROP", "fk", fk.name, _fk_detail(fk), destructive) for fk in td.removed_foreign_keys
    )
    items.extend(_item("ALTER", "fk", m.old.name) for m in td.modified_foreign_keys)
    items.extend(
        _item("ADD", "contrainte", name, _muted(escape_html(format_constraint(c))))
        for name, c in td.added_constraints
    )
    items.extend(
        _item("DROP", "contrainte", name, _muted(escape_html(format_constraint(c))), destructive)
        for name, c in td.removed_constraints
    )
    items.extend(_item("ALTER", "contrainte", m.name) for m in td.modified_constraints)
    return "".join(items) or '<li class="py-1 text-slate-500">Aucune modification</li>'


def _table_card(td: TableDiff) -> str:
    return (
        '<section class="rounded-xl border border-slate-200 bg-white p-5 shadow-sm">\n'
        '  <h3 class="mb-3 text-base font-semibold text-slate-900">Table '
        f'<code class="rounded bg-slate-100 px-1.5 py-0.5">{escape_html(td.table_name)}</code></h3>\n'
        f'  <ul class="text-sm text-slate-700">{_table_items_html(td)}</ul>\n'
        "</section>"
    )


def render_diff_html(diff: DiffResult) -> str:
    """A standalone HTML page presenting the diff."""
    table_cards = "".join(_table_card(td) for td in diff.altered_tables) or (
        '<section class="rounded-xl border border-slate-200 bg-white p-5 shadow-sm text-sm '
        'text-slate-500">Aucune modification de table.</section>'
    )
    none_item = '<li class="text-slate-500">Aucune</li>'
    added_tables = "".join(
        f"<li>{_CODE.format(escape_html(t))}</li>" for t in diff.added_tables
    ) or none_item
    removed_tables = "".join(
        f"<li>{_CODE.format(escape_html(t))} {_DESTRUCTIVE_HTML}</li>" for t in diff.removed_tables
    ) or none_item
    warnings = "".join(
        '<li class="rounded-lg border border-rose-200 bg-rose-50 px-3 py-2 text-rose-900">'
        f"{escape_html(w)}</li>"
        for w in diff.destructive_warnings
    ) or '<li class="text-slate-500">Aucune alerte destructive.</li>'

    return f"""<!doctype html>
<html lang="fr">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>Rapport Diff de schema</title>
  <script src="https://cdn.tailwindcss.com"></script>
</head>
<body class="min-h-screen bg-slate-100 text-slate-900">
  <main class="mx-auto max-w-7xl px-6 py-8">
    <header class="mb-6 rounded-2xl border border-slate-300 bg-white px-6 py-5 shadow-sm">
      <h1 class="text-2xl font-semibold tracking-tight">Rapport de differences de schema</h1>
      <p class="mt-2 text-sm text-slate-600">Comparaison source vers cible.</p>
      <div class="mt-4 grid gap-3 sm:grid-cols-3">
        <div class="rounded-lg border border-slate-200 bg-slate-50 px-4 py-3">
          <p class="text-xs font-medium uppercase text-slate-500">Tables ajoutees</p>
          <p class="mt-1 text-2xl font-semibold">{len(diff.added_tables)}</p>
        </div>
        <div class="rounded-lg border border-slate-200 bg-slate-50 px-4 py-3">
          <p class="text-xs font-medium uppercase text-slate-500">Tables supprimees</p>
          <p class="mt-1 text-2xl font-semibold">{len(diff.removed_tables)}</p>
        </div>
        <div class="rounded-lg border border-slate-200 bg-slate-50 px-4 py-3">
          <p class="text-xs font-medium uppercase text-slate-500">Tables modifiees</p>
          <p class="mt-1 text-2xl font-semibold">{len(diff.altered_tables)}</p>
        </div>
      </div>
    </header>

    <section class="mb-6 grid gap-4 lg:grid-cols-2">
      <article class="rounded-xl border border-slate-200 bg-white p-5 shadow-sm">
        <h2 class="mb-3 text-base font-semibold">Tables ajoutees</h2>
        <ul class="space-y-2 text-sm">{added_tables}</ul>
      </article>
      <article class="rounded-xl border border-slate-200 bg-white p-5 shadow-sm">
        <h2 class="mb-3 text-base font-semibold">Tables supprimees</h2>
        <ul class="space-y-2 text-sm">{removed_tables}</ul>
      </article>
    </section>

    <section class="mb-6">
      <h2 class="mb-4 text-lg font-semibold">Details des modifications</h2>
      <div class="grid gap-4">{table_cards}</div>
    </section>

    <section class="rounded-xl border border-rose-300 bg-white p-5 shadow-sm">
      <h2 class="mb-3 text-base font-semibold text-rose-900">Operations destructives</h2>
      <ul class="space-y-2 text-sm">{warnings}</ul>
    </section>
  </main>
</body>
</html>"""