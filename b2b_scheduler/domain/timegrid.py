# b2b_scheduler/domain/timegrid.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List

from b2b_scheduler.config import SessionSettings
from b2b_scheduler.domain.models import AFTERNOON, BLOCKS, MORNING, Session, block_order

_PREFIX = {MORNING: "M", AFTERNOON: "A"}


def parse_hhmm(text: str) -> int:
    """"HH:MM" -> 0時からの分"""
    hh, mm = text.strip().split(":")
    return int(hh) * 60 + int(mm)


@dataclass(frozen=True)
class TimeGrid:
    """ブロック×セッション番号（設定値から等間隔に生成）を扱う"""
    settings: SessionSettings

    def block_start_minutes(self, block: str) -> int:
        if block == MORNING:
            return parse_hhmm(self.settings.morning_start)
        if block == AFTERNOON:
            return parse_hhmm(self.settings.afternoon_start)
        raise ValueError(f"未知のブロックです: {block}")

    def session_start(self, block: str, index: int) -> int:
        """index は1始まり。前セッション終了 + 休憩 が次の開始"""
        step = self.settings.duration_minutes + self.settings.break_minutes
        return self.block_start_minutes(block) + (index - 1) * step

    def block_sessions(self, block: str) -> List[Session]:
        prefix = _PREFIX[block]
        out: List[Session] = []
        for i in range(1, self.settings.count + 1):
            start = self.session_start(block, i)
            out.append(Session(
                sid=f"{prefix}_s{i}",
                name=f"{prefix}-Session {i}",
                block=block,
                index=i,
                start_minutes=start,
                end_minutes=start + self.settings.duration_minutes,
            ))
        return out

    def all_sessions(self) -> List[Session]:
        sessions: List[Session] = []
        for block in BLOCKS:
            sessions.extend(self.block_sessions(block))
        return sort_sessions(sessions)


def sort_sessions(sessions: List[Session]) -> List[Session]:
    # 午前 -> 午後、ブロック内は開始時刻順
    return sorted(sessions, key=lambda s: (block_order(s.block), s.start_minutes))


def build_block_sessions(settings: SessionSettings, block: str) -> List[Session]:
    return TimeGrid(settings).block_sessions(block)


def build_all_sessions(settings: SessionSettings) -> List[Session]:
    return TimeGrid(settings).all_sessions()
