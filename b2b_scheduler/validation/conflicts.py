# b2b_scheduler/validation/conflicts.py
from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Mapping, Sequence, Tuple

from b2b_scheduler.domain.models import Buyer, Session
from b2b_scheduler.domain.schedule import Schedule

Conflicts = Dict[str, Tuple[str, ...]]  # session_id -> 二重ブッキングされた seller_id 群


@lru_cache(maxsize=64)
def _detect(
    schedule: Schedule,
    buyers: Tuple[Buyer, ...],
    sessions: Tuple[Session, ...],
) -> Tuple[Tuple[str, Tuple[str, ...]], ...]:
    out: List[Tuple[str, Tuple[str, ...]]] = []
    for s in sessions:
        counts: Dict[str, int] = {}
        for b in buyers:
            # ブロック外のセルは表示対象外なので数えない
            if b.block != s.block:
                continue
            seller_id = schedule.lookup(b.bid, s.sid)
            if seller_id:
                counts[seller_id] = counts.get(seller_id, 0) + 1
        out.append((s.sid, tuple(sorted(sid for sid, n in counts.items() if n > 1))))
    return tuple(out)


def detect_conflicts(
    schedule: Schedule,
    buyers: Sequence[Buyer],
    sessions: Sequence[Session],
) -> Conflicts:
    """
    セッションごとに、同じセラーが2名以上のバイヤーのセルに入っているものを返す。
    全セッション分のキーを返す（衝突なしは空タプル）。
    自動割当の出力では常に空。手動編集で作られた二重ブッキングを拾うためのもの。
    """
    return dict(_detect(schedule, tuple(buyers), tuple(sessions)))


def conflicting_sessions(conflicts: Mapping[str, Tuple[str, ...]]) -> Conflicts:
    return {sid: sellers for sid, sellers in conflicts.items() if sellers}


def is_conflicting(conflicts: Mapping[str, Tuple[str, ...]], session_id: str, seller_id: str) -> bool:
    return seller_id in conflicts.get(session_id, ())


def count_conflicts(conflicts: Mapping[str, Tuple[str, ...]]) -> int:
    return sum(len(v) for v in conflicts.values())
