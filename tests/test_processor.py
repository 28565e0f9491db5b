import pytest

import processor
from llm import KeywordToneAdjuster, ServiceError
from processor import (
    CSV_ERROR_TEXT,
    EXAMPLE_ITEMS,
    FALLBACK_STATUS_LINE,
    DisplayItem,
    attach_priorities,
    error_report,
    generate_slide,
    items_from_records,
    order_items,
    parse_raw_text,
    process_report_data,
    quick_analysis,
    rewrite_items,
)
from reports import parse_csv_records
from scoring import prioritize_signals

HEADER = "Report_Date,Section,Submitted_By,Leadership_Viewed,Feedback,Changed_Since_Last_Week"


def _csv(*rows: str) -> str:
    return "\n".join((HEADER,) + rows)


# -------------------------
# End to end
# -------------------------
def test_single_row_scenario() -> None:
    text = _csv("2023-04-10,Sprint Velocity,Alice,No,looks good,Yes")

    result = process_report_data(text, is_csv=True, use_auto_summarize=True, use_priority_scoring=True)

    assert result.stats.to_dict() == {"total": 1, "read": 0, "unread": 1, "changed": 1, "read_percentage": 0}
    assert result.status_line == "0/1 reports reviewed by leadership (0%)."
    assert result.categorized_signals.tasks_done == [
        "Section: Sprint Velocity | Change: yes | Feedback: looks good"
    ]
    assert result.categorized_signals.wins == []
    [p] = result.prioritized_reports
    assert p.urgency == 5
    # "Sprint Velocity" is not the mapped "Sprint velocity"
    assert p.impact == 3
    assert result.auto_summarized is True
    assert [it.content for it in result.items] == ["'Sprint Velocity' updated: looks good."]


def test_direct_templating_attaches_priorities_and_sorts_by_them() -> None:
    text = _csv(
        "2023-04-03,Marketing campaigns,Bob,No,new copy,Reworded",
        "2023-04-10,Sprint velocity,Alice,No,faster,Yes",
    )

    result = process_report_data(text, is_csv=True, use_priority_scoring=True)

    assert [it.content for it in result.items] == ["Sprint velocity: faster", "Marketing campaigns: new copy"]
    assert all(it.priority is not None for it in result.items)
    assert result.items[0].priority > result.items[1].priority
    assert result.items[0].date == "2023-04-10"


def test_without_priority_scoring_no_scores_or_signals() -> None:
    result = process_report_data(_csv("2023-04-10,Tech Debt,Chen,No,blocked,Yes"), is_csv=True)

    assert result.prioritized_reports is None
    assert result.categorized_signals is None
    assert result.items[0].priority is None
    assert result.auto_summarized is False


def test_empty_csv_gives_zero_stats() -> None:
    result = process_report_data(HEADER, is_csv=True, use_auto_summarize=True, use_priority_scoring=True)

    assert result.items == []
    assert result.stats.total == 0
    assert result.status_line == "0/0 reports reviewed by leadership (0%)."
    assert result.prioritized_reports == []


def test_items_truncated_to_five_with_critical_first() -> None:
    rows = [f"2023-04-10,Section {i},X,No,plain update {i},Yes" for i in range(6)]
    rows.append("2023-04-10,Vendor risk,X,No,slipping,Yes")

    result = process_report_data(_csv(*rows), is_csv=True)

    assert len(result.items) == 5
    assert result.items[0].type == "Risk"
    assert result.items[0].critical is True


def test_csv_failure_becomes_single_critical_risk(monkeypatch) -> None:
    def boom(_records):
        raise RuntimeError("bad row")

    monkeypatch.setattr(processor, "get_report_stats", boom)

    result = process_report_data(_csv("2023-04-10,A,B,No,x,Yes"), is_csv=True)

    assert len(result.items) == 1
    assert result.items[0].type == "Risk"
    assert result.items[0].critical is True
    assert result.items[0].content == CSV_ERROR_TEXT
    assert result.status_line == FALLBACK_STATUS_LINE


def test_delay_hook_sleeps(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(processor.time, "sleep", lambda s: calls.append(s))

    process_report_data("anything", delay=0.25)
    process_report_data("anything")

    assert calls == [0.25]


# -------------------------
# CSV item building
# -------------------------
def test_items_from_records_classifies_unread_changed_rows() -> None:
    records = parse_csv_records(_csv(
        "2023-04-10,Vendor risk,A,No,x,Yes",
        "2023-04-10,Infra,A,No,blocking deploys,Barely",
        "2023-04-10,Q1 achievements,A,No,shipped,Yes",
        "2023-04-10,Sales,A,No,huge success,Reworded",
        "2023-04-10,Docs,A,No,updated,Yes",
        "2023-04-10,Skipped,A,No,unchanged,No",
    ))

    items = items_from_records(records)

    assert [(it.type, it.critical) for it in items] == [
        ("Risk", True),
        ("Blocker", False),
        ("Win", False),
        ("Win", False),
        ("Task", False),
    ]
    assert items[4].content == "Docs: updated"


def test_items_from_records_backfills_with_read_changed_rows() -> None:
    records = parse_csv_records(_csv(
        "2023-04-10,Vendor risk,A,No,x,Yes",
        "2023-04-10,Read one,A,Yes,done,Yes",
        "2023-04-10,Read unchanged,A,Yes,done,No",
        "2023-04-10,Read two,A,Yes,risk ahead,Barely",
    ))

    items = items_from_records(records)

    assert [it.content for it in items] == ["Vendor risk: x", "Read one: done", "Read two: risk ahead"]
    # backfilled rows are always Tasks
    assert items[2].type == "Task"


def test_auto_summary_items_are_typed_from_sentence() -> None:
    text = _csv(
        "2023-04-10,Tech Debt,A,No,blocked on infra,Yes",
        "2023-04-10,Vendor,A,No,risk of delay,Yes",
        "2023-04-10,Sales,A,No,big success,Yes",
        "2023-04-10,Docs,A,No,duplicate page,Yes",
    )

    result = process_report_data(text, is_csv=True, use_auto_summarize=True)

    types = {it.content: (it.type, it.critical) for it in result.items}
    assert types["Risk noted in 'Vendor': risk of delay."] == ("Risk", True)
    assert types["Blocker identified in 'Tech Debt': blocked on infra."] == ("Blocker", False)
    assert types["Big win in 'Sales': big success."] == ("Win", False)
    assert types["'Docs' flagged for duplicate content. Needs review."] == ("Task", False)
    assert [it.type for it in result.items] == ["Risk", "Win", "Blocker", "Task"]


# -------------------------
# Priority merge + ordering
# -------------------------
def test_attach_priorities_matches_on_section_and_feedback() -> None:
    records = parse_csv_records(_csv("2023-04-10,Tech Debt,A,No,note: with colon,Yes"))
    scored = prioritize_signals(records)
    items = [
        DisplayItem("Task", "Tech Debt: note: with colon"),
        DisplayItem("Task", "Something else entirely"),
    ]

    out = attach_priorities(items, scored)

    assert out[0].priority == pytest.approx(scored[0].priority_score)
    assert out[1].priority is None
    # inputs are left alone
    assert items[0].priority is None


def test_order_items_critical_then_type_order() -> None:
    items = [
        DisplayItem("Task", "t"),
        DisplayItem("Blocker", "b"),
        DisplayItem("Win", "w"),
        DisplayItem("Risk", "r"),
        DisplayItem("Task", "critical task", critical=True),
    ]

    assert [it.content for it in order_items(items)] == ["critical task", "r", "w", "b", "t"]


def test_order_items_by_priority_when_all_scored() -> None:
    items = [
        DisplayItem("Risk", "low", critical=True, priority=1.0),
        DisplayItem("Task", "high", priority=4.0),
    ]

    assert [it.content for it in order_items(items)] == ["high", "low"]


# -------------------------
# Raw text
# -------------------------
def test_raw_text_lines_are_classified() -> None:
    text = "\n".join([
        "Completed the billing migration task",
        "Vendor delay on the release",
        "",
        "Big success with the pilot",
        "New compliance issue",
        "Coffee machine replaced",
    ])

    result = process_report_data(text)

    assert [(it.type, it.content) for it in result.items] == [
        ("Risk", "New compliance issue"),
        ("Win", "Big success with the pilot"),
        ("Blocker", "Vendor delay on the release"),
        ("Task", "Completed the billing migration task"),
    ]
    assert result.status_line == FALLBACK_STATUS_LINE
    assert result.stats is None
    assert result.auto_summarized is False


def test_raw_text_without_keywords_falls_back_to_examples() -> None:
    assert parse_raw_text("hello\nworld") == EXAMPLE_ITEMS
    assert parse_raw_text("") == EXAMPLE_ITEMS


def test_raw_text_keeps_every_classified_line() -> None:
    lines = [f"task {i} complete" for i in range(6)] + ["security risk found"]

    assert len(parse_raw_text("\n".join(lines))) == 7


def test_raw_text_late_risk_survives_truncation() -> None:
    lines = [f"task {i} complete" for i in range(6)] + ["security risk found"]

    result = process_report_data("\n".join(lines))

    assert len(result.items) == 5
    assert result.items[0].type == "Risk"
    assert result.items[0].content == "security risk found"
    assert [it.type for it in result.items[1:]] == ["Task"] * 4


def test_raw_text_blocker_before_risk_keyword() -> None:
    [it] = parse_raw_text("risk: blocked by legal")

    assert it.type == "Blocker"


# -------------------------
# Slide
# -------------------------
def test_slide_order_and_limits() -> None:
    items = [
        DisplayItem("Task", "t1"),
        DisplayItem("Win", "w1"),
        DisplayItem("Task", "t2"),
        DisplayItem("Task", "t3"),
        DisplayItem("Risk", "r1"),
        DisplayItem("Blocker", "b1"),
        DisplayItem("Blocker", "b2"),
        DisplayItem("Win", "w2"),
    ]

    assert generate_slide(items) == [
        "Biggest Blocker: b1",
        "Top Risk: r1",
        "Task Completed: t1",
        "Task Completed: t2",
        "Major Win: w1",
    ]


def test_slide_without_blocker_or_risk_starts_with_tasks() -> None:
    items = [DisplayItem("Win", "w1"), DisplayItem("Task", "t1")]

    assert generate_slide(items) == ["Task Completed: t1", "Major Win: w1"]


def test_slide_empty() -> None:
    assert generate_slide([]) == []


def test_processed_report_carries_slide() -> None:
    result = process_report_data("Completed the launch task")

    assert result.slide == ["Task Completed: Completed the launch task"]


# -------------------------
# Collaborator fallbacks
# -------------------------
def test_error_report_is_single_critical_risk() -> None:
    result = error_report("could not fetch")

    assert [it.to_dict() for it in result.items] == [{"type": "Risk", "content": "could not fetch", "critical": True}]
    assert result.slide == ["Top Risk: could not fetch"]


def test_rewrite_items_uses_adjuster() -> None:
    items = [DisplayItem("Task", "Finished the backend migration", date="2023-04-10")]

    [out] = rewrite_items(items, KeywordToneAdjuster())

    assert out.content == "Backend API successfully deployed with enhanced authentication protocols."
    assert out.date == "2023-04-10"


def test_rewrite_items_goes_through_adjust_text(monkeypatch) -> None:
    calls = []

    def fake_adjust(adjuster, text):
        calls.append(text)
        return text.upper()

    monkeypatch.setattr(processor, "adjust_text", fake_adjust)

    [out] = rewrite_items([DisplayItem("Win", "shipped")], KeywordToneAdjuster())

    assert calls == ["shipped"]
    assert out.content == "SHIPPED"


def test_rewrite_failure_keeps_original_text() -> None:
    class Broken:
        def rewrite(self, text: str) -> str:
            raise ServiceError("down")

    items = [DisplayItem("Risk", "keep me", critical=True)]

    assert rewrite_items(items, Broken()) == items


# -------------------------
# Quick analysis
# -------------------------
def test_quick_analysis_is_case_sensitive_and_capped() -> None:
    records = parse_csv_records(_csv(
        "2023-04-10,task board,A,Yes,ok,Yes",
        "2023-04-10,Task board,A,No,ok,Yes",
        "2023-04-10,Infra,A,No,block on vpn,Yes",
        "2023-04-10,risk log,A,No,risk,Yes",
        "2023-04-10,Sales,A,Yes,success,Yes",
        "2023-04-10,x,A,Yes,task 1,Yes",
        "2023-04-10,y,A,Yes,task 2,Yes",
        "2023-04-10,z,A,Yes,task 3,Yes",
    ))

    out = quick_analysis(records)

    assert out["Top Tasks"] == ["task board: ok", "x: task 1", "y: task 2"]
    assert out["Key Blockers"] == ["Infra: block on vpn"]
    assert out["Significant Wins"] == ["Sales: success"]
    assert out["Critical Risks"] == ["risk log: risk"]
    assert out["status"] == "5/8 reports reviewed by leadership."
