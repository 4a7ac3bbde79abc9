# b2b_scheduler/optimization/greedy.py
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set

from b2b_scheduler.domain.models import Buyer, PreferenceBook, Session
from b2b_scheduler.domain.schedule import EMPTY, Schedule, initialize
from b2b_scheduler.validation.validator import ValidationWarning


class Shuffler(Protocol):
    def shuffle(self, x: list) -> None: ...


@dataclass
class AutoScheduleResult:
    schedule: Schedule
    warnings: List[ValidationWarning] = field(default_factory=list)
    placed_count: int = 0


def _place_tier(
    sessions: Sequence[Session],
    pool: List[str],
    cells: Dict[str, Optional[str]],
    occupancy: Dict[str, Set[str]],
    used: Set[str],
) -> int:
    """
    1ティア分の貪欲割当（バックトラックなし）。
    セッションを順に見て、そのセッションで他に入っておらず
    このバイヤーにもまだ割り当てていない最初のセラーを置く。
    置いたセラーは pool から外す。
    """
    placed = 0
    for s in sessions:
        if cells[s.sid] is not EMPTY:
            continue
        for i, seller_id in enumerate(pool):
            if seller_id in occupancy[s.sid] or seller_id in used:
                continue
            cells[s.sid] = seller_id
            occupancy[s.sid].add(seller_id)
            used.add(seller_id)
            del pool[i]
            placed += 1
            break
    return placed


def auto_schedule(
    buyers: Sequence[Buyer],
    sessions: Sequence[Session],
    prefs: PreferenceBook,
    rng: Optional[Shuffler] = None,
    known_seller_ids: Optional[Iterable[str]] = None,
) -> AutoScheduleResult:
    """
    ランダム化した2段階の貪欲割当。

    - バイヤーの処理順、各バイヤーの自ブロックのセッション順、
      第一希望・予備希望それぞれのセラー順をシャッフルする。
    - 第一希望で全セッションを一巡してから、空いたセッションだけ予備希望で埋める。
    - 同一セッションに同じセラーは1回まで（occupancy）、同じバイヤーに同じセラーは1回まで（used）。
      どちらも配置前に必ず確認するので、出力はこの2つを破らない。
    - 最適性・全枠充足は保証しない。

    rng は shuffle(list) を持つもの（random.Random 等）。テストでは固定順を渡す。
    入力は変更しない。
    """
    rng = rng if rng is not None else random.Random()
    known = set(known_seller_ids) if known_seller_ids is not None else None

    base = initialize(buyers, sessions)
    result = AutoScheduleResult(schedule=base)
    if not buyers:
        return result

    # この呼び出しの間だけ使う占有表
    occupancy: Dict[str, Set[str]] = {s.sid: set() for s in sessions}
    rows: Dict[str, Dict[str, Optional[str]]] = base.as_dict()

    order = list(buyers)
    rng.shuffle(order)

    for buyer in order:
        block_sessions = [s for s in sessions if s.block == buyer.block]
        if not block_sessions:
            result.warnings.append(ValidationWarning(
                f"バイヤー {buyer.name} のブロック（{buyer.block}）にセッションがないためスキップしました。",
                buyer_id=buyer.bid,
            ))
            continue

        primary = list(prefs.primary(buyer.bid))
        backup = list(prefs.backup(buyer.bid))
        if known is not None:
            primary = [sid for sid in primary if sid in known]
            backup = [sid for sid in backup if sid in known]
        if not primary and not backup:
            result.warnings.append(ValidationWarning(
                f"バイヤー {buyer.name} に希望セラーがないためスキップしました。",
                buyer_id=buyer.bid,
            ))
            continue

        rng.shuffle(block_sessions)
        rng.shuffle(primary)
        rng.shuffle(backup)

        used: Set[str] = set()
        cells = rows[buyer.bid]
        result.placed_count += _place_tier(block_sessions, primary, cells, occupancy, used)
        if any(cells[s.sid] is EMPTY for s in block_sessions):
            result.placed_count += _place_tier(block_sessions, backup, cells, occupancy, used)

    result.schedule = Schedule(rows)
    return result
