# b2b_scheduler/editing/workspace.py
from __future__ import annotations

import uuid
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from b2b_scheduler.config import DEFAULT_CONFIG, AppConfig, SessionSettings
from b2b_scheduler.domain.models import Buyer, PreferenceBook, RosterData, Seller, Session
from b2b_scheduler.domain.schedule import Schedule, clear_seller, initialize, reconcile
from b2b_scheduler.domain.timegrid import build_all_sessions
from b2b_scheduler.editing.history import ScheduleHistory
from b2b_scheduler.editing.manual_edit import MoveRequest, apply_move
from b2b_scheduler.io_layer.text_io import export_schedule_csv, new_seller_id, parse_imported_sellers
from b2b_scheduler.optimization.greedy import Shuffler, auto_schedule
from b2b_scheduler.validation.conflicts import Conflicts, detect_conflicts
from b2b_scheduler.validation.validator import (
    ValidationWarning,
    validate_auto_schedule_inputs,
    validate_new_buyer,
    validate_new_seller,
    validate_preferences,
    validate_session_settings,
)


def _new_buyer_id() -> str:
    return f"b_{uuid.uuid4().hex[:12]}"


class SchedulingWorkspace:
    """
    管理画面1セッション分の状態（名簿・希望・現在のスケジュール・履歴）。

    スケジュールは常に丸ごと差し替える。履歴に積むのは確定した変更
    （自動割当、手動編集、セラー削除でセルが消えたとき）だけで、
    名簿やセッション構成の変更に伴う reconcile は積まない。
    拒否（ValidationError）のときは何も変更しない。
    """

    def __init__(self, cfg: AppConfig = DEFAULT_CONFIG):
        validate_session_settings(cfg.sessions)
        self.cfg = cfg
        self.buyers: List[Buyer] = []
        self.sellers: List[Seller] = []
        self.preferences = PreferenceBook(
            primary_count=cfg.preferences.primary_count,
            total_count=cfg.preferences.total_count,
        )
        self.sessions: List[Session] = build_all_sessions(cfg.sessions)
        self.schedule: Schedule = initialize(self.buyers, self.sessions)
        self.history = ScheduleHistory(max_size=cfg.history.max_snapshots)
        self.history.commit_baseline(self.schedule)

    # --- 内部 ---
    def _reconcile(self) -> None:
        self.schedule = reconcile(self.schedule, self.buyers, self.sessions)

    def _commit(self, schedule: Schedule) -> None:
        self.schedule = schedule
        self.history.commit(schedule)

    def buyer(self, bid: str) -> Optional[Buyer]:
        return next((b for b in self.buyers if b.bid == bid), None)

    def seller(self, sid: str) -> Optional[Seller]:
        return next((s for s in self.sellers if s.sid == sid), None)

    # --- セッション設定 ---
    def update_settings(self, settings: SessionSettings) -> None:
        validate_session_settings(settings)
        self.cfg = replace(self.cfg, sessions=settings)
        self.sessions = build_all_sessions(settings)
        self._reconcile()

    # --- 名簿 ---
    def load_roster(self, data: RosterData) -> None:
        """
        読み込んだ名簿を入れる。名簿ルール（ブロック上限・国数）と希望の重複は
        1件ずつ同じ検証を通す。1件でも拒否されたら何も反映しない。
        """
        buyers: List[Buyer] = []
        for b in data.buyers:
            validate_new_buyer(b.name, b.country, b.block, buyers, self.cfg.roster)
            buyers.append(b)
        sellers: List[Seller] = []
        for s in data.sellers:
            validate_new_seller(s.name, sellers)
            sellers.append(s)
        prefs = PreferenceBook(
            primary_count=self.cfg.preferences.primary_count,
            total_count=self.cfg.preferences.total_count,
        )
        for bid, seq in data.preferences.items():
            validate_preferences(bid, seq, buyers, sellers, self.cfg.preferences)
            prefs = prefs.with_buyer(bid, seq)

        self.buyers = buyers
        self.sellers = sellers
        self.preferences = prefs
        self._reconcile()

    def add_buyer(self, name: str, country: str, block: str) -> Buyer:
        validate_new_buyer(name, country, block, self.buyers, self.cfg.roster)
        b = Buyer(bid=_new_buyer_id(), name=name.strip(), country=country.strip(), block=block)
        self.buyers.append(b)
        self._reconcile()
        return b

    def remove_buyer(self, bid: str) -> bool:
        if self.buyer(bid) is None:
            return False
        self.buyers = [b for b in self.buyers if b.bid != bid]
        self.preferences = self.preferences.without_buyer(bid)
        self._reconcile()
        return True

    def add_seller(self, name: str) -> Seller:
        validate_new_seller(name, self.sellers)
        s = Seller(sid=new_seller_id(), name=name.strip())
        self.sellers.append(s)
        return s

    def remove_seller(self, sid: str) -> bool:
        """名簿・希望・スケジュールからセラーを消す。スケジュールが変わったら履歴に積む"""
        if self.seller(sid) is None:
            return False
        self.sellers = [s for s in self.sellers if s.sid != sid]
        self.preferences, _ = self.preferences.without_seller(sid)
        cleared, changed = clear_seller(self.schedule, sid)
        if changed:
            self._commit(cleared)
        return True

    def import_sellers(self, text: str) -> Tuple[List[Seller], int]:
        added, skipped = parse_imported_sellers(text, self.sellers)
        self.sellers.extend(added)
        return added, skipped

    # --- 希望 ---
    def save_preferences(self, bid: str, prefs: Sequence[str]) -> None:
        validate_preferences(bid, prefs, self.buyers, self.sellers, self.cfg.preferences)
        self.preferences = self.preferences.with_buyer(bid, prefs)

    # --- 割当 ---
    def run_auto_schedule(self, rng: Optional[Shuffler] = None) -> List[ValidationWarning]:
        warnings = validate_auto_schedule_inputs(self.buyers, self.sessions, self.preferences)
        result = auto_schedule(
            self.buyers,
            self.sessions,
            self.preferences,
            rng=rng,
            known_seller_ids=[s.sid for s in self.sellers],
        )
        self._commit(result.schedule)
        # 実行前チェックと重複する警告は1件にまとめる
        seen = {w.message for w in warnings}
        warnings.extend(w for w in result.warnings if w.message not in seen)
        return warnings

    def move(self, req: MoveRequest) -> Schedule:
        new_schedule = apply_move(self.schedule, req, self.buyers, self.sessions)
        if new_schedule != self.schedule:
            self._commit(new_schedule)
        return new_schedule

    # --- 履歴 ---
    def undo(self) -> bool:
        snap = self.history.undo()
        if snap is None:
            return False
        # 履歴は名簿変更前のものかもしれないので現在の名簿に合わせる
        self.schedule = reconcile(snap, self.buyers, self.sessions)
        return True

    def redo(self) -> bool:
        snap = self.history.redo()
        if snap is None:
            return False
        self.schedule = reconcile(snap, self.buyers, self.sessions)
        return True

    # --- 参照 ---
    def conflicts(self) -> Conflicts:
        return detect_conflicts(self.schedule, self.buyers, self.sessions)

    def export_csv(self) -> str:
        return export_schedule_csv(self.schedule, self.buyers, self.sellers, self.sessions)
