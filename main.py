#!/usr/bin/env python3
# main.py — StatusDigest
# - CSV status reports (or raw notes) -> max 5 Task/Blocker/Win/Risk items
# - Optional auto-summary sentences, priority scores, signal buckets
# - Views: summary, slide, priority, signals -> report.md / report.html / report.json
from __future__ import annotations

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Template

from llm import ServiceError, ToneAdjusterConfig, fetch_demo_csv, pick_tone_adjuster
from processor import (
    ProcessedReport,
    error_report,
    generate_slide,
    process_report_data,
    quick_analysis,
    rewrite_items,
)
from reports import parse_csv_records

APP_TITLE = "StatusDigest"
VIEWS = ("summary", "slide", "priority", "signals")
FETCH_ERROR_TEXT = "Error fetching demo CSV data. Please check the URL and try again."

TYPE_ICONS = {"Risk": "🔴", "Blocker": "⛔", "Win": "🏆", "Task": "✅"}

SIGNAL_LABELS = [
    ("tasks_done", "Tasks", "No tasks found"),
    ("blockers", "Blockers", "No blockers found"),
    ("wins", "Wins", "No wins found"),
    ("risks", "Risks", "No risks found"),
]


# -------------------------
# IO
# -------------------------
def load_input(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")
    return path.read_text(encoding="utf-8", errors="ignore")


def looks_like_csv(path: Path, force: bool = False) -> bool:
    return force or path.suffix.lower() == ".csv"


# -------------------------
# Rendering
# -------------------------
def priority_badges(p: Dict[str, Any]) -> List[str]:
    badges = []
    if p.get("urgency", 0) > 3:
        badges.append("Urgent")
    if p.get("impact", 0) > 3:
        badges.append("High Impact")
    if p.get("votes", 0) > 0:
        badges.append("Voted")
    return badges


def render_markdown(report: Dict[str, Any], views=VIEWS) -> str:
    generated = report.get("generated", "")

    lines: List[str] = []
    lines.append(f"# {APP_TITLE}")
    lines.append(f"_Generated: {generated}_")
    lines.append("")
    lines.append(f"**{report.get('status_line', '')}**")
    lines.append("")

    if "summary" in views:
        title = "Executive Summary (auto-summarized)" if report.get("auto_summarized") else "Executive Summary"
        lines.append(f"## {title}")
        items = report.get("items") or []
        if not items:
            lines.append("_None_")
        for it in items:
            icon = TYPE_ICONS.get(it.get("type"), "-")
            flag = " **CRITICAL**" if it.get("critical") else ""
            extra = []
            if it.get("date"):
                extra.append(it["date"])
            if it.get("priority") is not None:
                extra.append(f"score {it['priority']:.1f}")
            tail = f"  _({', '.join(extra)})_" if extra else ""
            lines.append(f"- {icon} **{it.get('type')}**{flag}: {it.get('content', '')}{tail}")
        lines.append("")

    if "slide" in views:
        lines.append("## Slide")
        for b in report.get("slide") or []:
            lines.append(f"- {b}")
        lines.append("")

    prioritized = report.get("prioritized_reports")
    if "priority" in views and prioritized is not None:
        lines.append(f"## Prioritized Signals (Top {len(prioritized)})")
        for i, p in enumerate(prioritized, start=1):
            badges = " ".join(f"`{b}`" for b in priority_badges(p))
            lines.append(
                f"{i}. **{p.get('Section', '')}**: {p.get('Feedback', '') or '_no feedback_'} "
                f"(score {p.get('priority_score', 0):.1f}; urgency {p.get('urgency')}, "
                f"impact {p.get('impact')}, {p.get('days_since')} days ago) {badges}".rstrip()
            )
        lines.append("")

    signals = report.get("categorized_signals")
    if "signals" in views and signals is not None:
        lines.append("## Categorized Signals")
        for key, label, empty in SIGNAL_LABELS:
            arr = signals.get(key) or []
            lines.append(f"### {label} ({len(arr)})")
            if not arr:
                lines.append(f"_{empty}_")
            for x in arr:
                lines.append(f"- {x}")
            lines.append("")

    return "\n".join(lines)


def render_slide_markdown(report: Dict[str, Any]) -> str:
    lines = ["# Weekly Executive Update", ""]
    for b in report.get("slide") or []:
        lines.append(f"- {b}")
    lines.append("")
    lines.append(f"_{report.get('status_line', '')}_")
    return "\n".join(lines)


HTML_TEMPLATE = Template(
    """
<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <title>{{ app }}</title>
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, Segoe UI, Roboto, Arial, sans-serif; margin: 40px; }
    h1 { margin: 0 0 6px 0; }
    .muted { color: #666; }
    .card { border: 1px solid #eee; border-radius: 14px; padding: 18px; margin: 14px 0; }
    ul { margin: 10px 0 0 18px; }
    li { margin: 10px 0; line-height: 1.35; }
    .critical { color: #b00020; font-weight: 600; }
    .badge { background: #f2f2f2; border-radius: 8px; font-size: 12px; padding: 2px 6px; margin-left: 6px; }
    .cols { display: grid; grid-template-columns: 1fr 1fr; gap: 14px; }
    @media (max-width: 980px) { .cols { grid-template-columns: 1fr; } }
  </style>
</head>
<body>
  <h1>{{ app }}</h1>
  <div class="muted">Generated: {{ generated }}</div>
  <p><b>{{ status_line }}</b></p>

  {% if "summary" in views %}
  <div class="card">
    <h2 style="margin-top:0;">Executive Summary{% if auto_summarized %} (auto-summarized){% endif %}</h2>
    <ul>
      {% if items|length == 0 %}<li class="muted">None</li>{% endif %}
      {% for it in items %}
        <li{% if it.critical %} class="critical"{% endif %}>
          {{ it.icon }} <b>{{ it.type }}</b>: {{ it.content }}
          {% if it.date %}<span class="badge">{{ it.date }}</span>{% endif %}
          {% if it.priority is not none %}<span class="badge">score {{ "%.1f"|format(it.priority) }}</span>{% endif %}
        </li>
      {% endfor %}
    </ul>
  </div>
  {% endif %}

  {% if "slide" in views %}
  <div class="card">
    <h2 style="margin-top:0;">Slide</h2>
    <ul>
      {% for b in slide %}<li>{{ b }}</li>{% endfor %}
    </ul>
  </div>
  {% endif %}

  {% if "priority" in views and prioritized is not none %}
  <div class="card">
    <h2 style="margin-top:0;">Prioritized Signals <span class="badge">Top {{ prioritized|length }}</span></h2>
    <ol>
      {% for p in prioritized %}
        <li>
          <b>{{ p.Section }}</b>: {{ p.Feedback or "no feedback" }}
          <span class="badge">Score: {{ "%.1f"|format(p.priority_score) }}</span>
          {% for b in p.badges %}<span class="badge">{{ b }}</span>{% endfor %}
          <div class="muted">Urgency: {{ p.urgency }} · Impact: {{ p.impact }} · {{ p.days_since }} days ago</div>
        </li>
      {% endfor %}
    </ol>
  </div>
  {% endif %}

  {% if "signals" in views and signals is not none %}
  <div class="cols">
    {% for key, label, empty in signal_labels %}
    <div class="card" style="margin:0;">
      <h3 style="margin-top:0;">{{ label }} ({{ signals[key]|length }})</h3>
      <ul>
        {% if signals[key]|length == 0 %}<li class="muted">{{ empty }}</li>{% endif %}
        {% for x in signals[key] %}<li>{{ x }}</li>{% endfor %}
      </ul>
    </div>
    {% endfor %}
  </div>
  {% endif %}

</body>
</html>
    """
)


def render_html(report: Dict[str, Any], views=VIEWS) -> str:
    def pack_item(it: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "icon": TYPE_ICONS.get(it.get("type"), ""),
            "type": it.get("type", ""),
            "content": it.get("content", ""),
            "critical": bool(it.get("critical")),
            "date": it.get("date"),
            "priority": it.get("priority"),
        }

    def pack_priority(p: Dict[str, Any]) -> Dict[str, Any]:
        return dict(p, badges=priority_badges(p))

    prioritized = report.get("prioritized_reports")
    payload = {
        "app": APP_TITLE,
        "generated": report.get("generated", ""),
        "status_line": report.get("status_line", ""),
        "auto_summarized": report.get("auto_summarized"),
        "views": list(views),
        "items": [pack_item(x) for x in (report.get("items") or [])],
        "slide": report.get("slide") or [],
        "prioritized": [pack_priority(p) for p in prioritized] if prioritized is not None else None,
        "signals": report.get("categorized_signals"),
        "signal_labels": SIGNAL_LABELS,
    }
    return HTML_TEMPLATE.render(**payload)


# -------------------------
# Pipeline
# -------------------------
def build_report(args) -> ProcessedReport:
    if args.url:
        try:
            text = fetch_demo_csv(args.url, timeout=args.timeout)
        except ServiceError as e:
            print(f"[warn] {e}")
            return error_report(FETCH_ERROR_TEXT)
        is_csv = True
    else:
        path = Path(args.input)
        text = load_input(path)
        is_csv = looks_like_csv(path, force=args.csv)

    result = process_report_data(
        text,
        is_csv=is_csv,
        use_auto_summarize=not args.no_auto_summarize,
        use_priority_scoring=not args.no_priority_scoring,
        top_n=args.top_n,
    )

    if args.rewrite:
        adjuster = pick_tone_adjuster(ToneAdjusterConfig(
            mode=args.llm, model=args.ollama_model, base_url=args.ollama_url, timeout=args.timeout,
        ))
        result.items = rewrite_items(result.items, adjuster)
        result.slide = generate_slide(result.items)

    if args.analyze and is_csv:
        analysis = quick_analysis(parse_csv_records(text))
        print("Report Analysis Summary:")
        print("----------------------")
        for title in ("Top Tasks", "Key Blockers", "Significant Wins", "Critical Risks"):
            print(f"\n{title}:")
            for x in analysis[title]:
                print(f"- {x}")
        print(f"\nReport Status: {analysis['status']}")

    return result


# -------------------------
# Main
# -------------------------
def main():
    ap = argparse.ArgumentParser(f"{APP_TITLE} (Leadership status digest)")
    ap.add_argument("--input", default="inputs_demo/reports.csv", help="CSV or raw text file")
    ap.add_argument("--csv", action="store_true", help="Treat --input as CSV regardless of suffix")
    ap.add_argument("--url", default=None, help="Fetch a demo CSV from this URL instead of --input")
    ap.add_argument("--output", default="outputs", help="Output folder")
    ap.add_argument("--view", default="all", choices=list(VIEWS) + ["all"], help="Which view(s) to render")
    ap.add_argument("--no-auto-summarize", action="store_true", help="Template items directly from rows")
    ap.add_argument("--no-priority-scoring", action="store_true", help="Skip priority scores and signal buckets")
    ap.add_argument("--top-n", type=int, default=10, help="How many prioritized records to keep")
    ap.add_argument("--analyze", action="store_true", help="Also print the quick console analysis")
    ap.add_argument("--rewrite", action="store_true", help="Rewrite item text for a leadership audience")
    ap.add_argument("--llm", default="none", choices=["none", "ollama"], help="Rewrite backend")
    ap.add_argument("--ollama-model", default="phi3:mini", help="Ollama model name")
    ap.add_argument("--ollama-url", default="http://localhost:11434", help="Ollama base url")
    ap.add_argument("--timeout", type=int, default=30, help="Network timeout seconds")
    args = ap.parse_args()

    out_dir = Path(args.output)
    out_dir.mkdir(parents=True, exist_ok=True)

    views = VIEWS if args.view == "all" else (args.view,)

    result = build_report(args)
    report = result.to_dict()
    report["app"] = APP_TITLE
    report["generated"] = datetime.now().isoformat(timespec="seconds")

    (out_dir / "report.json").write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")
    (out_dir / "report.md").write_text(render_markdown(report, views=views), encoding="utf-8")
    (out_dir / "report.html").write_text(render_html(report, views=views), encoding="utf-8")
    (out_dir / "slide.md").write_text(render_slide_markdown(report), encoding="utf-8")

    print(f"\n{report['status_line']}")
    print("\n[ok] Outputs:")
    print(" -", out_dir / "report.md")
    print(" -", out_dir / "report.html")
    print(" -", out_dir / "report.json")
    print(" -", out_dir / "slide.md")


if __name__ == "__main__":
    main()
