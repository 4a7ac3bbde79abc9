# b2b_scheduler/domain/schedule.py
from __future__ import annotations

from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from b2b_scheduler.domain.models import Buyer, Session

EMPTY: Optional[str] = None  # 割当なし（セル自体は存在する）

Cell = Tuple[str, str]  # (buyer_id, session_id)


class Schedule:
    """
    buyer_id -> session_id -> seller_id | EMPTY の二段テーブル。

    - 生成後は変更しない。更新は with_cells で新しい Schedule を返す
      （履歴スナップショットと現在値が同じ dict を共有しないように）。
    - 「空」(EMPTY) と「存在しない」は区別する。存在しないセルは get で KeyError。
    - 行・セルの追加/削除は initialize / reconcile だけが行う。
    """

    __slots__ = ("_rows", "_hash")

    def __init__(self, rows: Optional[Mapping[str, Mapping[str, Optional[str]]]] = None):
        self._rows: Dict[str, Dict[str, Optional[str]]] = {
            bid: dict(cells) for bid, cells in (rows or {}).items()
        }
        self._hash: Optional[int] = None

    # --- 参照 ---
    def buyer_ids(self) -> List[str]:
        return list(self._rows.keys())

    def has_cell(self, bid: str, sid: str) -> bool:
        return bid in self._rows and sid in self._rows[bid]

    def get(self, bid: str, sid: str) -> Optional[str]:
        return self._rows[bid][sid]

    def lookup(self, bid: str, sid: str) -> Optional[str]:
        """表示・出力用。存在しないセルも割当なしとして扱う"""
        return self._rows.get(bid, {}).get(sid, EMPTY)

    def row(self, bid: str) -> Dict[str, Optional[str]]:
        return dict(self._rows[bid])

    def assigned_cells(self) -> Iterator[Tuple[str, str, str]]:
        for bid, cells in self._rows.items():
            for sid, seller_id in cells.items():
                if seller_id is not EMPTY:
                    yield bid, sid, seller_id

    def seller_ids_for_buyer(self, bid: str) -> List[str]:
        return [v for v in self._rows.get(bid, {}).values() if v is not EMPTY]

    def filled_count(self) -> int:
        return sum(1 for _ in self.assigned_cells())

    def as_dict(self) -> Dict[str, Dict[str, Optional[str]]]:
        return {bid: dict(cells) for bid, cells in self._rows.items()}

    # --- 更新（新しい Schedule を返す） ---
    def with_cells(self, updates: Mapping[Cell, Optional[str]]) -> "Schedule":
        rows = self.as_dict()
        for (bid, sid), seller_id in updates.items():
            if not self.has_cell(bid, sid):
                raise KeyError((bid, sid))
            rows[bid][sid] = seller_id
        return Schedule(rows)

    # --- 値としての比較 ---
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schedule):
            return NotImplemented
        return self._rows == other._rows

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(
                (bid, sid, v) for bid, cells in self._rows.items() for sid, v in cells.items()
            ))
        return self._hash

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"Schedule(buyers={len(self._rows)}, filled={self.filled_count()})"


def initialize(buyers: Sequence[Buyer], sessions: Sequence[Session]) -> Schedule:
    """全 (buyer, session) を EMPTY で作る"""
    return Schedule({b.bid: {s.sid: EMPTY for s in sessions} for b in buyers})


def reconcile(old: Schedule, buyers: Sequence[Buyer], sessions: Sequence[Session]) -> Schedule:
    """
    名簿・セッション構成の変更後に呼ぶ。
    両方とも残っているセルは値を引き継ぎ、新規セルは EMPTY、
    消えたバイヤー行・セッション列は捨てる。
    """
    rows: Dict[str, Dict[str, Optional[str]]] = {}
    for b in buyers:
        rows[b.bid] = {
            s.sid: (old.get(b.bid, s.sid) if old.has_cell(b.bid, s.sid) else EMPTY)
            for s in sessions
        }
    return Schedule(rows)


def clear_seller(schedule: Schedule, seller_id: str) -> Tuple[Schedule, bool]:
    """seller_id が入っているセルを全て EMPTY に戻す。変更有無も返す"""
    updates = {
        (bid, sid): EMPTY
        for bid, sid, v in schedule.assigned_cells()
        if v == seller_id
    }
    if not updates:
        return schedule, False
    return schedule.with_cells(updates), True
