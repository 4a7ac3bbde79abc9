# tests/test_report.py
from io import BytesIO

import pandas as pd
import pytest

from b2b_scheduler.config import DEFAULT_CONFIG
from b2b_scheduler.domain.models import PreferenceBook
from b2b_scheduler.domain.schedule import initialize
from b2b_scheduler.reporting.export_xlsx import export_result_bytes, export_result_xlsx
from b2b_scheduler.reporting.report import (
    build_buyer_summary,
    build_conflict_table,
    build_result_sheets,
    build_schedule_table,
    build_seller_meetings,
    build_seller_summary,
    meetings_to_frame,
    suggest_seller_names,
)
from b2b_scheduler.validation.conflicts import detect_conflicts


@pytest.fixture
def sch(buyers, sessions):
    return initialize(buyers, sessions).with_cells({
        ("b1", "M_s2"): "S1",
        ("b1", "M_s1"): "S2",
        ("b2", "M_s1"): "S1",
        ("b3", "A_s1"): "S1",
        # 午後バイヤーの午前セル（ブロック外）は数えない
        ("b3", "M_s2"): "S3",
    })


def test_schedule_table(sch, buyers, sellers, sessions):
    df = build_schedule_table(sch, buyers, sellers, sessions)
    assert list(df.columns[:3]) == ["Buyer Name", "Buyer Country", "Session Block"]
    assert df.shape == (3, 7)
    assert df.iloc[0]["M-Session 1 (09:30-10:00)"] == "Seller 2"
    assert df.iloc[2]["A-Session 2 (14:05-14:35)"] == ""


def test_seller_meetings_lookup(sch, buyers, sellers, sessions):
    meetings = build_seller_meetings(sch, buyers, sellers, sessions, "  seller 1 ")
    assert [(m.buyer.bid, m.session.sid) for m in meetings] == [
        ("b2", "M_s1"),
        ("b1", "M_s2"),
        ("b3", "A_s1"),
    ]
    df = meetings_to_frame(meetings)
    assert df.iloc[0]["start_time"] == "09:30"
    assert df.iloc[1]["buyer_name"] == "Alpha"


def test_seller_meetings_out_of_block_ignored(sch, buyers, sellers, sessions):
    assert build_seller_meetings(sch, buyers, sellers, sessions, "Seller 3") == []


@pytest.mark.parametrize("query", ["", "   ", "Seller", "Nobody"])
def test_seller_meetings_no_match(sch, buyers, sellers, sessions, query):
    assert build_seller_meetings(sch, buyers, sellers, sessions, query) == []


def test_empty_meetings_frame_has_columns():
    df = meetings_to_frame([])
    assert df.empty
    assert "buyer_name" in df.columns


def test_suggest_seller_names(sch, sellers):
    assert suggest_seller_names(sch, sellers, "seller") == ["Seller 1", "Seller 2", "Seller 3"]
    assert suggest_seller_names(sch, sellers, "2") == ["Seller 2"]
    assert suggest_seller_names(sch, sellers, "") == []


def test_buyer_summary(sch, buyers, sessions):
    prefs = PreferenceBook.from_mapping({"b1": ["S1", "", "", "", "", "", "S2"]})
    df = build_buyer_summary(sch, buyers, sessions, prefs).set_index("buyer_name")
    assert df.loc["Alpha", "slots"] == 2
    assert df.loc["Alpha", "filled"] == 2
    assert df.loc["Alpha", "primary_hits"] == 1
    assert df.loc["Alpha", "backup_hits"] == 1
    assert df.loc["Bravo", "other"] == 1
    assert df.loc["Charlie", "filled"] == 1


def test_seller_summary(sch, buyers, sellers, sessions):
    df = build_seller_summary(sch, buyers, sellers, sessions)
    top = df.iloc[0]
    assert top["seller_name"] == "Seller 1"
    assert (top["total_meetings"], top["morning"], top["afternoon"]) == (3, 2, 1)
    counts = dict(zip(df["seller_name"], df["total_meetings"]))
    assert counts["Seller 3"] == 0
    assert len(df) == len(sellers)


def test_conflict_table(buyers, sellers, sessions):
    dup = initialize(buyers, sessions).with_cells({("b1", "M_s1"): "S1", ("b2", "M_s1"): "S1"})
    df = build_conflict_table(detect_conflicts(dup, buyers, sessions), sellers, sessions)
    assert df.to_dict("records") == [
        dict(session="M-Session 1 (09:30-10:00)", block="morning", seller_name="Seller 1"),
    ]


def test_export_xlsx_roundtrip(tmp_path, sch, buyers, sellers, sessions):
    sheets = build_result_sheets(
        sch, buyers, sellers, sessions, PreferenceBook(), detect_conflicts(sch, buyers, sessions),
    )
    out = export_result_xlsx(str(tmp_path / "nested" / "out.xlsx"), sheets, DEFAULT_CONFIG)

    book = pd.read_excel(out, sheet_name=None)
    assert set(book) == {"schedule", "buyer_summary", "seller_summary", "conflicts", "meta"}
    assert book["schedule"].shape == (3, 7)
    meta = dict(zip(book["meta"]["key"], book["meta"]["value"].astype(str)))
    assert meta["morning_start"] == "09:30"
    assert "generated_at" in meta


def test_export_bytes(sch, buyers, sellers, sessions):
    sheets = build_result_sheets(
        sch, buyers, sellers, sessions, PreferenceBook(), detect_conflicts(sch, buyers, sessions),
    )
    data = export_result_bytes(sheets, DEFAULT_CONFIG)
    assert data[:2] == b"PK"
    book = pd.read_excel(BytesIO(data), sheet_name="schedule")
    assert list(book.columns[:3]) == ["Buyer Name", "Buyer Country", "Session Block"]
