# reports.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List

# Header name -> record attribute
CANONICAL_COLUMNS = {
    "Report_Date": "report_date",
    "Section": "section",
    "Submitted_By": "submitted_by",
    "Leadership_Viewed": "leadership_viewed",
    "Feedback": "feedback",
    "Changed_Since_Last_Week": "changed_since_last_week",
}


@dataclass(frozen=True)
class ReportRecord:
    report_date: str = ""
    section: str = ""
    submitted_by: str = ""
    leadership_viewed: str = ""
    feedback: str = ""
    changed_since_last_week: str = ""
    extra: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, str]:
        out = {header: getattr(self, attr) for header, attr in CANONICAL_COLUMNS.items()}
        out.update(self.extra)
        return out


@dataclass(frozen=True)
class ReportStats:
    total: int
    read: int
    unread: int
    changed: int
    read_percentage: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "read": self.read,
            "unread": self.unread,
            "changed": self.changed,
            "read_percentage": self.read_percentage,
        }


# -------------------------
# Parsing
# -------------------------
def _split_lines(text: str) -> List[str]:
    return [line.rstrip("\r") for line in (text or "").strip().split("\n")]


def _build_record(headers: List[str], values: List[str]) -> ReportRecord:
    fields: Dict[str, str] = {attr: "" for attr in CANONICAL_COLUMNS.values()}
    extra: Dict[str, str] = {}
    for i, header in enumerate(headers):
        if i >= len(values):
            break
        attr = CANONICAL_COLUMNS.get(header)
        if attr:
            fields[attr] = values[i]
        else:
            extra[header] = values[i]
    return ReportRecord(extra=extra, **fields)


def parse_csv_records(text: str, strict: bool = True) -> List[ReportRecord]:
    """
    Comma-split CSV -> records. No quoting support: a comma inside a
    quoted field splits the field.

    strict=True drops rows whose value count differs from the header.
    strict=False keeps them: canonical fields default to "" and surplus
    values are ignored.
    """
    lines = _split_lines(text)
    if not lines or not lines[0].strip():
        return []

    headers = [h.strip() for h in lines[0].split(",")]
    records: List[ReportRecord] = []
    for line in lines[1:]:
        values = line.split(",")
        if strict and len(values) != len(headers):
            continue
        records.append(_build_record(headers, values))
    return records


# -------------------------
# Stats
# -------------------------
def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def get_report_stats(records: List[ReportRecord]) -> ReportStats:
    total = len(records)
    unread = sum(1 for r in records if r.leadership_viewed == "No")
    read = total - unread
    changed = sum(1 for r in records if r.changed_since_last_week != "No")
    pct = round_half_up(100 * read / total) if total else 0
    return ReportStats(total=total, read=read, unread=unread, changed=changed, read_percentage=pct)
