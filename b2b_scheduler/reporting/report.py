# b2b_scheduler/reporting/report.py
from __future__ import annotations

from typing import Dict, List, Sequence

import pandas as pd

from b2b_scheduler.domain.models import Buyer, MeetingSlot, PreferenceBook, Seller, Session, block_order
from b2b_scheduler.domain.schedule import Schedule
from b2b_scheduler.domain.timegrid import sort_sessions
from b2b_scheduler.io_layer.text_io import CSV_HEADER, seller_display_name
from b2b_scheduler.validation.conflicts import Conflicts


def build_schedule_table(
    schedule: Schedule,
    buyers: Sequence[Buyer],
    sellers: Sequence[Seller],
    sessions: Sequence[Session],
) -> pd.DataFrame:
    """CSV出力と同じ形（バイヤー行 × セッション列、セルはセラー名）"""
    seller_names = {s.sid: s.name for s in sellers}
    ordered = sort_sessions(list(sessions))
    columns = CSV_HEADER + [s.label for s in ordered]

    rows = []
    for b in buyers:
        row = [b.name, b.country, b.block]
        row += [seller_display_name(schedule.lookup(b.bid, s.sid), seller_names) for s in ordered]
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def build_seller_meetings(
    schedule: Schedule,
    buyers: Sequence[Buyer],
    sellers: Sequence[Seller],
    sessions: Sequence[Session],
    seller_name: str,
) -> List[MeetingSlot]:
    """
    セラー名（大文字小文字無視の完全一致）で会議一覧を引く。
    バイヤーのブロック外のセルは数えない。ブロック -> 開始時刻順。
    """
    query = seller_name.strip().lower()
    if not query:
        return []
    found = next((s for s in sellers if s.name.lower() == query), None)
    if found is None:
        return []

    meetings: List[MeetingSlot] = []
    for b in buyers:
        for s in sessions:
            if b.block == s.block and schedule.lookup(b.bid, s.sid) == found.sid:
                meetings.append(MeetingSlot(buyer=b, seller=found, session=s))
    meetings.sort(key=lambda m: (block_order(m.session.block), m.session.start_minutes))
    return meetings


def meetings_to_frame(meetings: Sequence[MeetingSlot]) -> pd.DataFrame:
    rows = [dict(
        session=m.session.name,
        block=m.session.block,
        start_time=m.session.start_time,
        end_time=m.session.end_time,
        buyer_name=m.buyer.name,
        buyer_country=m.buyer.country,
    ) for m in meetings]
    return pd.DataFrame(rows, columns=["session", "block", "start_time", "end_time", "buyer_name", "buyer_country"])


def suggest_seller_names(schedule: Schedule, sellers: Sequence[Seller], query: str) -> List[str]:
    """スケジュールに登場するセラー名のうち query を含むもの（部分一致・大文字小文字無視）"""
    if not query:
        return []
    seller_names = {s.sid: s.name for s in sellers}
    scheduled = sorted({seller_names[v] for _, _, v in schedule.assigned_cells() if v in seller_names})
    q = query.lower()
    return [nm for nm in scheduled if q in nm.lower()]


def build_buyer_summary(
    schedule: Schedule,
    buyers: Sequence[Buyer],
    sessions: Sequence[Session],
    prefs: PreferenceBook,
) -> pd.DataFrame:
    rows = []
    for b in buyers:
        slots = [s for s in sessions if s.block == b.block]
        assigned = [schedule.lookup(b.bid, s.sid) for s in slots]
        assigned = [v for v in assigned if v]
        primary = set(prefs.primary(b.bid))
        backup = set(prefs.backup(b.bid))
        rows.append(dict(
            buyer_name=b.name,
            country=b.country,
            block=b.block,
            slots=len(slots),
            filled=len(assigned),
            primary_hits=sum(1 for v in assigned if v in primary),
            backup_hits=sum(1 for v in assigned if v in backup),
            # 手動編集で希望外のセラーが入ることもある
            other=sum(1 for v in assigned if v not in primary and v not in backup),
        ))
    return pd.DataFrame(rows, columns=[
        "buyer_name", "country", "block", "slots", "filled", "primary_hits", "backup_hits", "other",
    ])


def build_seller_summary(
    schedule: Schedule,
    buyers: Sequence[Buyer],
    sellers: Sequence[Seller],
    sessions: Sequence[Session],
) -> pd.DataFrame:
    blocks = {b.bid: b.block for b in buyers}
    session_blocks = {s.sid: s.block for s in sessions}
    counts: Dict[str, Dict[str, int]] = {s.sid: dict(total=0, morning=0, afternoon=0) for s in sellers}

    for bid, sid, seller_id in schedule.assigned_cells():
        if seller_id not in counts or blocks.get(bid) != session_blocks.get(sid):
            continue
        counts[seller_id]["total"] += 1
        counts[seller_id][session_blocks[sid]] += 1

    rows = [dict(
        seller_name=s.name,
        total_meetings=counts[s.sid]["total"],
        morning=counts[s.sid]["morning"],
        afternoon=counts[s.sid]["afternoon"],
    ) for s in sellers]
    df = pd.DataFrame(rows, columns=["seller_name", "total_meetings", "morning", "afternoon"])
    if not df.empty:
        df = df.sort_values(["total_meetings", "seller_name"], ascending=[False, True]).reset_index(drop=True)
    return df


def build_conflict_table(
    conflicts: Conflicts,
    sellers: Sequence[Seller],
    sessions: Sequence[Session],
) -> pd.DataFrame:
    seller_names = {s.sid: s.name for s in sellers}
    rows = []
    for s in sort_sessions(list(sessions)):
        for seller_id in conflicts.get(s.sid, ()):
            rows.append(dict(
                session=s.label,
                block=s.block,
                seller_name=seller_display_name(seller_id, seller_names),
            ))
    return pd.DataFrame(rows, columns=["session", "block", "seller_name"])


def build_result_sheets(
    schedule: Schedule,
    buyers: Sequence[Buyer],
    sellers: Sequence[Seller],
    sessions: Sequence[Session],
    prefs: PreferenceBook,
    conflicts: Conflicts,
) -> Dict[str, pd.DataFrame]:
    return {
        "schedule": build_schedule_table(schedule, buyers, sellers, sessions),
        "buyer_summary": build_buyer_summary(schedule, buyers, sessions, prefs),
        "seller_summary": build_seller_summary(schedule, buyers, sellers, sessions),
        "conflicts": build_conflict_table(conflicts, sellers, sessions),
    }
