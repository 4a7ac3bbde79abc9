# b2b_scheduler/editing/history.py
from __future__ import annotations

from collections import deque
from typing import Deque, Optional

from b2b_scheduler.domain.schedule import Schedule


class ScheduleHistory:
    """
    確定したスケジュールの線形 undo/redo 履歴（スナップショット列 + カーソル）。

    commit は自動割当・手動編集・セラー削除など「確定した変更」のときだけ呼ぶ。
    undo 後に commit すると、それより先（redo 可能だった分）は捨てる。
    上限を超えたら古いものから落とす。
    """

    def __init__(self, max_size: int = 200):
        if max_size < 1:
            raise ValueError("max_size は1以上にしてください。")
        self._snapshots: Deque[Schedule] = deque(maxlen=max_size)
        self._cursor = -1

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Optional[Schedule]:
        if self._cursor < 0:
            return None
        return self._snapshots[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._snapshots) - 1

    def __len__(self) -> int:
        return len(self._snapshots)

    def commit(self, schedule: Schedule) -> None:
        # redo 側を切り捨て
        while len(self._snapshots) > self._cursor + 1:
            self._snapshots.pop()
        self._snapshots.append(schedule)
        self._cursor = len(self._snapshots) - 1

    def commit_baseline(self, schedule: Schedule) -> bool:
        """最初の1件だけ無条件に積む"""
        if self._snapshots:
            return False
        self.commit(schedule)
        return True

    def undo(self) -> Optional[Schedule]:
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._snapshots[self._cursor]

    def redo(self) -> Optional[Schedule]:
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._snapshots[self._cursor]
