# processor.py
from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from functools import cmp_to_key
from typing import Any, Dict, List, Optional

from llm import ServiceError, ToneAdjuster, adjust_text
from reports import ReportRecord, ReportStats, get_report_stats, parse_csv_records
from scoring import CategorizedSignals, PrioritizedRecord, categorize_signals, prioritize_signals
from summarizer import auto_summarize

MAX_ITEMS = 5
MAX_BULLETS = 5
TYPE_ORDER = {"Risk": 0, "Win": 1, "Blocker": 2, "Task": 3}
FALLBACK_STATUS_LINE = "37/60 reports reviewed by leadership this week."
CSV_ERROR_TEXT = "Error processing CSV data. Please check the format and try again."


@dataclass(frozen=True)
class DisplayItem:
    type: str  # Task|Blocker|Win|Risk
    content: str
    critical: bool = False
    date: Optional[str] = None
    priority: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type, "content": self.content}
        if self.critical:
            out["critical"] = True
        if self.date:
            out["date"] = self.date
        if self.priority is not None:
            out["priority"] = self.priority
        return out


@dataclass
class ProcessedReport:
    items: List[DisplayItem]
    status_line: str
    auto_summarized: bool = False
    stats: Optional[ReportStats] = None
    prioritized_reports: Optional[List[PrioritizedRecord]] = None
    categorized_signals: Optional[CategorizedSignals] = None
    slide: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [it.to_dict() for it in self.items],
            "status_line": self.status_line,
            "auto_summarized": self.auto_summarized,
            "stats": self.stats.to_dict() if self.stats else None,
            "prioritized_reports": (
                [p.to_dict() for p in self.prioritized_reports] if self.prioritized_reports is not None else None
            ),
            "categorized_signals": self.categorized_signals.to_dict() if self.categorized_signals else None,
            "slide": list(self.slide),
        }


# Raw-text fallback when no line can be classified
EXAMPLE_ITEMS: List[DisplayItem] = [
    DisplayItem("Risk", "Security audit identified 3 critical vulnerabilities requiring immediate patching", critical=True),
    DisplayItem("Risk", "Q2 revenue projections 15% below target due to delayed product launch", critical=True),
    DisplayItem("Blocker", "API integration with payment processor blocked by missing documentation"),
    DisplayItem("Win", "Customer retention increased 12% following new onboarding implementation"),
    DisplayItem("Task", "Sprint velocity improved 8% this quarter through process optimization"),
]


# -------------------------
# Raw text
# -------------------------
def classify_line(line: str) -> Optional[DisplayItem]:
    low = line.lower()
    if "task" in low or "complete" in low:
        return DisplayItem("Task", line)
    if "block" in low or "delay" in low:
        return DisplayItem("Blocker", line)
    if "win" in low or "success" in low:
        return DisplayItem("Win", line)
    if "risk" in low or "issue" in low:
        return DisplayItem("Risk", line, critical=True)
    return None


def parse_raw_text(text: str) -> List[DisplayItem]:
    items: List[DisplayItem] = []
    for line in (text or "").split("\n"):
        if not line.strip():
            continue
        it = classify_line(line)
        if it is not None:
            items.append(it)
    if not items:
        return list(EXAMPLE_ITEMS)
    return items


# -------------------------
# CSV -> items
# -------------------------
def _record_item(r: ReportRecord) -> DisplayItem:
    section = r.section.lower()
    feedback = r.feedback.lower()
    content = f"{r.section}: {r.feedback}"

    if "risk" in section or "risk" in feedback:
        return DisplayItem("Risk", content, critical=True, date=r.report_date)
    if "blocker" in section or "block" in feedback:
        return DisplayItem("Blocker", content, date=r.report_date)
    if "win" in section or "achievement" in section or "success" in feedback:
        return DisplayItem("Win", content, date=r.report_date)
    return DisplayItem("Task", content, date=r.report_date)


def items_from_records(records: List[ReportRecord]) -> List[DisplayItem]:
    """
    Unread + changed records first; if that gives fewer than 5 items,
    top up with read + changed records as Tasks.
    """
    items = [
        _record_item(r) for r in records
        if r.leadership_viewed == "No" and r.changed_since_last_week != "No"
    ]

    if len(items) < MAX_ITEMS:
        backfill = [
            r for r in records
            if r.changed_since_last_week != "No" and r.leadership_viewed == "Yes"
        ][:MAX_ITEMS - len(items)]
        for r in backfill:
            items.append(DisplayItem("Task", f"{r.section}: {r.feedback}", date=r.report_date))

    return items


def _summary_item(summary: str) -> DisplayItem:
    low = summary.lower()
    if "blocker" in low:
        return DisplayItem("Blocker", summary)
    if "risk" in low:
        return DisplayItem("Risk", summary, critical=True)
    if "win" in low or "success" in low:
        return DisplayItem("Win", summary)
    return DisplayItem("Task", summary)


def items_from_summaries(records: List[ReportRecord]) -> List[DisplayItem]:
    return [_summary_item(s) for s in auto_summarize(records)]


# -------------------------
# Priority merge + ordering
# -------------------------
def _priority_key(section: str, feedback: str) -> str:
    return f"{section}:{feedback}"


def attach_priorities(items: List[DisplayItem], scored: List[PrioritizedRecord]) -> List[DisplayItem]:
    """
    Match items back to scored records via "Section: Feedback" content.
    Items whose content does not split that way keep no priority.
    """
    priority_map: Dict[str, float] = {}
    for p in scored:
        priority_map[_priority_key(p.section, p.feedback)] = p.priority_score

    out: List[DisplayItem] = []
    for it in items:
        section, sep, feedback = it.content.partition(":")
        if sep:
            score = priority_map.get(_priority_key(section.strip(), feedback.strip()))
            if score:
                out.append(replace(it, priority=score))
                continue
        out.append(it)
    return out


def _compare_by_priority(a: DisplayItem, b: DisplayItem) -> int:
    if a.priority is not None and b.priority is not None:
        return (b.priority > a.priority) - (b.priority < a.priority)
    return 0


def _compare_items(a: DisplayItem, b: DisplayItem) -> int:
    if a.priority is not None and b.priority is not None:
        return _compare_by_priority(a, b)
    if a.critical and not b.critical:
        return -1
    if b.critical and not a.critical:
        return 1
    return TYPE_ORDER[a.type] - TYPE_ORDER[b.type]


def order_items(items: List[DisplayItem]) -> List[DisplayItem]:
    return sorted(items, key=cmp_to_key(_compare_items))


# -------------------------
# Orchestration
# -------------------------
def status_line_for(stats: Optional[ReportStats]) -> str:
    if stats is None:
        return FALLBACK_STATUS_LINE
    return f"{stats.read}/{stats.total} reports reviewed by leadership ({stats.read_percentage}%)."


def process_report_data(
    text: str,
    is_csv: bool = False,
    use_auto_summarize: bool = False,
    use_priority_scoring: bool = False,
    top_n: int = 10,
    delay: float = 0.0,
) -> ProcessedReport:
    """
    Build the digest for one input. Never raises for CSV input: any
    failure becomes a single critical Risk item.
    """
    if delay > 0:
        time.sleep(delay)

    items: List[DisplayItem] = []
    stats: Optional[ReportStats] = None
    prioritized: Optional[List[PrioritizedRecord]] = None
    signals: Optional[CategorizedSignals] = None

    if is_csv:
        try:
            records = parse_csv_records(text)
            stats = get_report_stats(records)

            if use_priority_scoring:
                prioritized = prioritize_signals(records, top_n=top_n)
                signals = categorize_signals(records)

            if use_auto_summarize:
                items = items_from_summaries(records)
            else:
                items = items_from_records(records)

            if prioritized:
                items = attach_priorities(items, prioritized)
                items = sorted(items, key=cmp_to_key(_compare_by_priority))
        except Exception as e:
            print(f"[warn] CSV processing failed: {e}")
            items = [DisplayItem("Risk", CSV_ERROR_TEXT, critical=True)]
    else:
        items = parse_raw_text(text)

    items = order_items(items)[:MAX_ITEMS]

    return ProcessedReport(
        items=items,
        status_line=status_line_for(stats),
        auto_summarized=is_csv and use_auto_summarize,
        stats=stats,
        prioritized_reports=prioritized,
        categorized_signals=signals,
        slide=generate_slide(items),
    )


def error_report(message: str) -> ProcessedReport:
    items = [DisplayItem("Risk", message, critical=True)]
    return ProcessedReport(items=items, status_line=FALLBACK_STATUS_LINE, slide=generate_slide(items))


def rewrite_items(items: List[DisplayItem], adjuster: ToneAdjuster) -> List[DisplayItem]:
    out: List[DisplayItem] = []
    for it in items:
        try:
            out.append(replace(it, content=adjust_text(adjuster, it.content)))
        except ServiceError as e:
            print(f"[warn] rewrite failed, keeping original text: {e}")
            out.append(it)
    return out


# -------------------------
# Slide
# -------------------------
def generate_slide(items: List[DisplayItem]) -> List[str]:
    by_type: Dict[str, List[str]] = {"Task": [], "Blocker": [], "Win": [], "Risk": []}
    for it in items:
        by_type.setdefault(it.type, []).append(it.content)

    bullets: List[str] = []
    if by_type["Blocker"]:
        bullets.append(f"Biggest Blocker: {by_type['Blocker'][0]}")
    if by_type["Risk"]:
        bullets.append(f"Top Risk: {by_type['Risk'][0]}")
    for task in by_type["Task"][:2]:
        bullets.append(f"Task Completed: {task}")
    for win in by_type["Win"][:2]:
        bullets.append(f"Major Win: {win}")
    return bullets[:MAX_BULLETS]


# -------------------------
# Quick console analysis
# -------------------------
def quick_analysis(records: List[ReportRecord], per_category: int = 3) -> Dict[str, Any]:
    """
    Case-sensitive keyword filters; a record may appear in several lists.
    """
    def line(r: ReportRecord) -> str:
        return f"{r.section}: {r.feedback}"

    tasks = [r for r in records if "task" in r.section or "task" in r.feedback]
    blockers = [r for r in records if "blocker" in r.section or "block" in r.feedback]
    wins = [r for r in records if "win" in r.section or "success" in r.feedback]
    risks = [r for r in records if "risk" in r.section or "risk" in r.feedback]

    total = len(records)
    unread = sum(1 for r in records if r.leadership_viewed == "No")

    return {
        "Top Tasks": [line(r) for r in tasks[:per_category]],
        "Key Blockers": [line(r) for r in blockers[:per_category]],
        "Significant Wins": [line(r) for r in wins[:per_category]],
        "Critical Risks": [line(r) for r in risks[:per_category]],
        "status": f"{total - unread}/{total} reports reviewed by leadership.",
    }
