# summarizer.py
from __future__ import annotations

from typing import Callable, List, Tuple

from reports import ReportRecord

# (name, predicate(feedback_lower, section_lower), template)
# Templates get: section, feedback, change. First match wins, order matters.
SummaryRule = Tuple[str, Callable[[str, str], bool], str]


def _has_any(s: str, keywords: Tuple[str, ...]) -> bool:
    return any(k in s for k in keywords)


BLOCKER_WORDS = ("blocker", "blocked")
WIN_WORDS = ("win", "success", "achievement")


SUMMARY_RULES: List[SummaryRule] = [
    (
        "empty_feedback",
        lambda fb, sec: not fb,
        "Update in '{section}': content was {change}.",
    ),
    (
        "duplicate",
        lambda fb, sec: "duplicate" in fb,
        "'{section}' flagged for duplicate content. Needs review.",
    ),
    (
        "blocker",
        lambda fb, sec: _has_any(fb, BLOCKER_WORDS) or _has_any(sec, BLOCKER_WORDS),
        "Blocker identified in '{section}': {feedback}.",
    ),
    (
        "risk",
        lambda fb, sec: "risk" in fb or "risk" in sec,
        "Risk noted in '{section}': {feedback}.",
    ),
    (
        "win",
        lambda fb, sec: _has_any(fb, WIN_WORDS) or _has_any(sec, WIN_WORDS),
        "Big win in '{section}': {feedback}.",
    ),
    (
        "task",
        lambda fb, sec: _has_any(sec, ("task", "milestone", "progress")),
        "Task update: '{section}' - {feedback}.",
    ),
    (
        "generic",
        lambda fb, sec: True,
        "'{section}' updated: {feedback}.",
    ),
]


def match_summary_rule(record: ReportRecord) -> SummaryRule:
    fb = record.feedback.lower()
    sec = record.section.lower()
    for rule in SUMMARY_RULES:
        if rule[1](fb, sec):
            return rule
    return SUMMARY_RULES[-1]


def summarize_record(record: ReportRecord) -> str:
    _name, _pred, template = match_summary_rule(record)
    return template.format(
        section=record.section,
        feedback=record.feedback,
        change=record.changed_since_last_week.lower(),
    )


def auto_summarize(records: List[ReportRecord]) -> List[str]:
    """One templated sentence per changed record, input order kept."""
    return [summarize_record(r) for r in records if r.changed_since_last_week != "No"]
