# b2b_scheduler/io_layer/text_io.py
from __future__ import annotations

import re
import uuid
from typing import List, Mapping, Optional, Sequence, Tuple

from b2b_scheduler.domain.models import Buyer, Seller, Session
from b2b_scheduler.domain.schedule import Schedule
from b2b_scheduler.domain.timegrid import sort_sessions

UNKNOWN_SELLER = "Unknown Seller"
CSV_HEADER = ["Buyer Name", "Buyer Country", "Session Block"]


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _plain(value: str) -> str:
    # 区切り文字を含むときだけ囲む
    if any(c in value for c in (",", '"', "\r", "\n")):
        return _quote(value)
    return value


def seller_display_name(seller_id: Optional[str], seller_names: Mapping[str, str]) -> str:
    """存在しないセラーIDは "Unknown Seller"、割当なしは空文字"""
    if not seller_id:
        return ""
    return seller_names.get(seller_id, UNKNOWN_SELLER)


def export_schedule_csv(
    schedule: Schedule,
    buyers: Sequence[Buyer],
    sellers: Sequence[Seller],
    sessions: Sequence[Session],
) -> str:
    """
    バイヤー1行 × セッション1列の表をCSV文字列で返す。
    列はブロック -> 開始時刻順。セラー名のセルは常にダブルクォートで囲む。
    バイヤー名・国はカンマ等を含むときだけ囲む。
    """
    seller_names = {s.sid: s.name for s in sellers}
    ordered = sort_sessions(list(sessions))

    header = CSV_HEADER + [s.label for s in ordered]
    lines = [",".join(header)]
    for b in buyers:
        row = [_plain(b.name), _plain(b.country), b.block]
        for s in ordered:
            row.append(_quote(seller_display_name(schedule.lookup(b.bid, s.sid), seller_names)))
        lines.append(",".join(row))
    return "\r\n".join(lines) + "\r\n"


def parse_seller_names(text: str) -> List[str]:
    """
    1行1セラー名のテキストを読む。
    - 空行は無視
    - 先頭行に "name"（大文字小文字無視）を含めばヘッダとして飛ばす
    - 前後空白を除き、外側のダブルクォートを1段外して "" を " に戻す
    """
    lines = [ln for ln in re.split(r"\r\n|\n", text) if ln.strip()]
    start = 1 if lines and "name" in lines[0].lower() else 0

    names: List[str] = []
    for ln in lines[start:]:
        name = ln.strip()
        if name.startswith('"') and name.endswith('"'):
            name = name[1:-1].replace('""', '"')
        if name:
            names.append(name)
    return names


def new_seller_id() -> str:
    return f"s_{uuid.uuid4().hex[:12]}"


def parse_imported_sellers(text: str, existing: Sequence[Seller]) -> Tuple[List[Seller], int]:
    """
    取り込んだ名前を Seller にする。既存名簿と同名のもの（取り込み内の重複も含む）は除外。
    戻り値: (新規セラー, 除外件数)
    """
    seen = {s.name for s in existing}
    out: List[Seller] = []
    skipped = 0
    for name in parse_seller_names(text):
        if name in seen:
            skipped += 1
            continue
        seen.add(name)
        out.append(Seller(sid=new_seller_id(), name=name))
    return out, skipped
