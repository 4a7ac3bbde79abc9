# b2b_scheduler/domain/models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

MORNING = "morning"
AFTERNOON = "afternoon"
BLOCKS: Tuple[str, str] = (MORNING, AFTERNOON)  # この順で並べる

UNSET = ""  # 希望リストの未設定スロット


def block_order(block: str) -> int:
    return BLOCKS.index(block)


def format_minutes(total_minutes: int) -> str:
    """分 -> "HH:MM"。24時を超えても折り返さない（"24:30" のまま）"""
    hh = total_minutes // 60
    mm = total_minutes % 60
    return f"{hh:02d}:{mm:02d}"


@dataclass(frozen=True)
class Buyer:
    bid: str
    name: str
    country: str
    block: str  # "morning" | "afternoon"


@dataclass(frozen=True)
class Seller:
    sid: str
    name: str


@dataclass(frozen=True)
class Session:
    """生成されたセッション枠。時刻は分単位で保持し、表示用文字列は導出する"""
    sid: str             # 例: "M_s1", "A_s3"
    name: str            # 例: "M-Session 1"
    block: str
    index: int           # ブロック内の連番（1始まり）
    start_minutes: int
    end_minutes: int

    @property
    def start_time(self) -> str:
        return format_minutes(self.start_minutes)

    @property
    def end_time(self) -> str:
        return format_minutes(self.end_minutes)

    @property
    def label(self) -> str:
        return f"{self.name} ({self.start_time}-{self.end_time})"


@dataclass(frozen=True)
class MeetingSlot:
    """セラー検索で返す1件分の会議"""
    buyer: Buyer
    seller: Seller
    session: Session


@dataclass
class RosterData:
    buyers: List[Buyer]
    sellers: List[Seller]
    preferences: Dict[str, List[str]]  # buyer_id -> seller_id（未設定は UNSET）


@dataclass(frozen=True)
class PreferenceBook:
    """
    バイヤーごとの希望セラーリスト（buyer_id -> 長さ total のタプル）。
    先頭 primary_count 個が第一希望、残りが予備希望。未設定は UNSET。
    保存時に長さを揃える（短ければ UNSET で埋め、長ければ切り詰める）。
    """
    entries: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    primary_count: int = 6
    total_count: int = 10

    @classmethod
    def from_mapping(
        cls,
        prefs: Mapping[str, Sequence[str]],
        primary_count: int = 6,
        total_count: int = 10,
    ) -> "PreferenceBook":
        items = tuple(
            (bid, _pad(seq, total_count)) for bid, seq in prefs.items()
        )
        return cls(entries=items, primary_count=primary_count, total_count=total_count)

    def as_dict(self) -> Dict[str, Tuple[str, ...]]:
        return dict(self.entries)

    def get(self, bid: str) -> Tuple[str, ...]:
        return self.as_dict().get(bid, tuple([UNSET] * self.total_count))

    def primary(self, bid: str) -> Tuple[str, ...]:
        return tuple(s for s in self.get(bid)[: self.primary_count] if s != UNSET)

    def backup(self, bid: str) -> Tuple[str, ...]:
        return tuple(s for s in self.get(bid)[self.primary_count:] if s != UNSET)

    def with_buyer(self, bid: str, seq: Sequence[str]) -> "PreferenceBook":
        d = self.as_dict()
        d[bid] = _pad(seq, self.total_count)
        return PreferenceBook(tuple(d.items()), self.primary_count, self.total_count)

    def without_buyer(self, bid: str) -> "PreferenceBook":
        return PreferenceBook(
            tuple((b, seq) for b, seq in self.entries if b != bid),
            self.primary_count,
            self.total_count,
        )

    def without_seller(self, sid: str) -> Tuple["PreferenceBook", bool]:
        """全バイヤーの希望から sid を未設定に戻す。変更があったかも返す"""
        changed = False
        out = []
        for bid, seq in self.entries:
            new_seq = tuple(UNSET if s == sid else s for s in seq)
            if new_seq != seq:
                changed = True
            out.append((bid, new_seq))
        return PreferenceBook(tuple(out), self.primary_count, self.total_count), changed


def _pad(seq: Iterable[Optional[str]], total: int) -> Tuple[str, ...]:
    vals = [(s or UNSET).strip() for s in list(seq)[:total]]
    vals += [UNSET] * (total - len(vals))
    return tuple(vals)
