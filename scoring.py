# scoring.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from reports import ReportRecord

THUMBS_UP = "👍"
RECENCY_HORIZON_DAYS = 14
DEFAULT_IMPACT = 3

# Exact-case keys: "Sprint Velocity" does NOT hit "Sprint velocity".
DEFAULT_IMPACT_MAPPING: Dict[str, int] = {
    "Sprint velocity": 5,
    "Hiring pipeline": 4,
    "Marketing campaigns": 3,
    "Design progress": 3,
    "Tech Debt": 4,
    "Product Launches": 5,
    "Customer Feedback": 4,
    "Support Issues": 4,
    "Internal Operations": 3,
    "Sales Performance": 5,
}

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d.%m.%Y", "%Y/%m/%d")


@dataclass
class PriorityWeights:
    urgency: float = 0.4
    impact: float = 0.3
    recency: float = 0.2
    votes: float = 0.1


@dataclass(frozen=True)
class PrioritizedRecord:
    record: ReportRecord
    urgency: int
    impact: int
    votes: int
    days_since: int
    recency_score: float
    priority_score: float

    @property
    def section(self) -> str:
        return self.record.section

    @property
    def feedback(self) -> str:
        return self.record.feedback

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = self.record.to_dict()
        out.update({
            "urgency": self.urgency,
            "impact": self.impact,
            "votes": self.votes,
            "days_since": self.days_since,
            "recency_score": self.recency_score,
            "priority_score": self.priority_score,
        })
        return out


@dataclass
class CategorizedSignals:
    tasks_done: List[str] = field(default_factory=list)
    blockers: List[str] = field(default_factory=list)
    wins: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return asdict(self)


# -------------------------
# Priority scoring
# -------------------------
def parse_report_date(value: str) -> Optional[date]:
    s = (value or "").strip()
    if not s:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def urgency_for(record: ReportRecord) -> int:
    # only an exact "Yes" counts; "Barely"/"Reworded" do not
    return 5 if record.changed_since_last_week == "Yes" else 2


def impact_for(record: ReportRecord, mapping: Dict[str, int]) -> int:
    return mapping.get(record.section) or DEFAULT_IMPACT


def votes_for(record: ReportRecord) -> int:
    return 1 if (record.feedback or "").strip() == THUMBS_UP else 0


def recency_score_for(days_since: int) -> float:
    return max(0.5, 1 - days_since / RECENCY_HORIZON_DAYS)


def prioritize_signals(
    records: List[ReportRecord],
    top_n: int = 10,
    weights: Optional[PriorityWeights] = None,
    impact_mapping: Optional[Dict[str, int]] = None,
) -> List[PrioritizedRecord]:
    """
    Score every record and return the top_n, highest first.

    Recency is measured against the most recent date in `records`,
    never the wall clock, so the same input always scores the same.
    """
    w = weights or PriorityWeights()
    mapping = impact_mapping if impact_mapping is not None else DEFAULT_IMPACT_MAPPING

    dates = [parse_report_date(r.report_date) for r in records]
    known = [d for d in dates if d is not None]
    max_date = max(known) if known else None

    scored: List[PrioritizedRecord] = []
    for r, d in zip(records, dates):
        urgency = urgency_for(r)
        impact = impact_for(r, mapping)
        votes = votes_for(r)
        days_since = (max_date - d).days if (d is not None and max_date is not None) else 0
        recency = recency_score_for(days_since)
        score = (
            w.urgency * urgency
            + w.impact * impact
            + w.recency * recency * 5
            + w.votes * votes * 5
        )
        scored.append(PrioritizedRecord(
            record=r,
            urgency=urgency,
            impact=impact,
            votes=votes,
            days_since=days_since,
            recency_score=recency,
            priority_score=score,
        ))

    scored.sort(key=lambda p: p.priority_score, reverse=True)
    return scored[:max(top_n, 0)]


# -------------------------
# Signal buckets
# -------------------------
BLOCKER_FEEDBACK = ("needs clarity", "why is this", "not relevant", "who owns this")
WIN_FEEDBACK = ("looks good",)
RISK_FEEDBACK = ("duplicate info", "remove this", "update next week")

# (bucket, predicate(change, feedback)); first match wins.
SignalRule = Tuple[str, Callable[[str, str], bool]]

SIGNAL_RULES: List[SignalRule] = [
    ("tasks_done", lambda ch, fb: ch in ("yes", "reworded")),
    ("blockers", lambda ch, fb: ch == "barely" or any(k in fb for k in BLOCKER_FEEDBACK)),
    ("wins", lambda ch, fb: any(k in fb for k in WIN_FEEDBACK)),
    # "barely" never reaches here: the blockers rule takes it first.
    ("risks", lambda ch, fb: ch in ("no", "barely") or any(k in fb for k in RISK_FEEDBACK)),
]


def signal_line(record: ReportRecord) -> str:
    change = (record.changed_since_last_week or "").strip().lower()
    feedback = (record.feedback or "").strip().lower()
    section = (record.section or "").strip() or "Unknown"
    return f"Section: {section} | Change: {change} | Feedback: {feedback}"


def classify_signal(record: ReportRecord) -> Optional[str]:
    change = (record.changed_since_last_week or "").strip().lower()
    feedback = (record.feedback or "").strip().lower()
    for bucket, pred in SIGNAL_RULES:
        if pred(change, feedback):
            return bucket
    return None


def _dedupe(lines: List[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for x in lines:
        if not x.strip() or x in seen:
            continue
        seen.add(x)
        out.append(x)
    return out


def categorize_signals(records: List[ReportRecord]) -> CategorizedSignals:
    buckets: Dict[str, List[str]] = {name: [] for name, _ in SIGNAL_RULES}
    for r in records:
        bucket = classify_signal(r)
        if bucket is None:
            continue
        buckets[bucket].append(signal_line(r))
    return CategorizedSignals(**{k: _dedupe(v) for k, v in buckets.items()})
