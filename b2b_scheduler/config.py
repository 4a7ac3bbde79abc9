# b2b_scheduler/config.py
from dataclasses import dataclass


@dataclass(frozen=True)
class SessionSettings:
    """ブロック（午前/午後）ごとのセッション枠設定"""
    count: int = 6                 # 1ブロックあたりのセッション数
    duration_minutes: int = 30
    break_minutes: int = 5
    morning_start: str = "09:30"
    afternoon_start: str = "13:30"


@dataclass(frozen=True)
class RosterLimits:
    """バイヤー名簿の上限（名簿編集側で強制する）"""
    max_buyers_per_block: int = 20
    max_countries_per_block: int = 2


@dataclass(frozen=True)
class PreferenceConfig:
    primary_count: int = 6   # 第一希望
    backup_count: int = 4    # 予備希望

    @property
    def total_count(self) -> int:
        return self.primary_count + self.backup_count


@dataclass(frozen=True)
class HistoryConfig:
    max_snapshots: int = 200  # undo/redo に保持するスナップショット数の上限


@dataclass(frozen=True)
class AppConfig:
    sessions: SessionSettings = SessionSettings()
    roster: RosterLimits = RosterLimits()
    preferences: PreferenceConfig = PreferenceConfig()
    history: HistoryConfig = HistoryConfig()

    # 出力ファイルの生成日時表示用
    timezone_name: str = "Asia/Taipei"


DEFAULT_CONFIG = AppConfig()
