# b2b_scheduler/editing/manual_edit.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence

from b2b_scheduler.domain.models import Buyer, Session
from b2b_scheduler.domain.schedule import EMPTY, Schedule
from b2b_scheduler.validation.validator import ValidationError


@dataclass(frozen=True)
class MoveRequest:
    """(source_buyer, source_session) のセラーを (target_buyer, target_session) へ移す要求"""
    seller_id: str
    source_buyer_id: str
    source_session_id: str
    target_buyer_id: str
    target_session_id: str


def apply_move(
    schedule: Schedule,
    req: MoveRequest,
    buyers: Sequence[Buyer],
    sessions: Sequence[Session],
) -> Schedule:
    """
    手動の移動/入れ替え。成功時は新しい Schedule を返し、拒否時は ValidationError。

    - 移動先セッションのブロックが移動先バイヤーのブロックと違えば拒否。
    - 移動先にセラーがいて、それを戻す先（移動元）のブロックが移動元バイヤーと違えば拒否。
    - それ以外は2方向の入れ替え。移動元には移動先にあったもの（空なら空）が入る。
    同一セッション内のセラー重複はここでは見ない（衝突検出で表示する）。
    """
    buyer_map: Dict[str, Buyer] = {b.bid: b for b in buyers}
    session_map: Dict[str, Session] = {s.sid: s for s in sessions}

    target_buyer = buyer_map.get(req.target_buyer_id)
    target_session = session_map.get(req.target_session_id)
    if target_buyer is None or target_session is None:
        raise ValidationError("移動先のバイヤーまたはセッションが見つかりません。")
    if not schedule.has_cell(req.source_buyer_id, req.source_session_id):
        raise ValidationError("移動元のセルが見つかりません。")
    if not schedule.has_cell(req.target_buyer_id, req.target_session_id):
        raise ValidationError("移動先のセルが見つかりません。")

    current = schedule.get(req.source_buyer_id, req.source_session_id)
    if current is EMPTY:
        raise ValidationError("移動元のセルに割り当てがありません。")
    if current != req.seller_id:
        raise ValidationError("移動元のセルの割り当てが変更されています。画面を更新してください。")

    if target_session.block != target_buyer.block:
        raise ValidationError(
            f"バイヤー {target_buyer.name} のブロック（{target_buyer.block}）外のセッションには移動できません。"
        )

    displaced = schedule.get(req.target_buyer_id, req.target_session_id)
    source_buyer = buyer_map.get(req.source_buyer_id)
    source_session = session_map.get(req.source_session_id)
    if (
        displaced is not EMPTY
        and source_buyer is not None
        and source_session is not None
        and source_session.block != source_buyer.block
    ):
        raise ValidationError(
            f"入れ替えできません: 移動先のセラーをバイヤー {source_buyer.name} の"
            "ブロック外のセルへ戻すことになります。"
        )

    if (req.source_buyer_id, req.source_session_id) == (req.target_buyer_id, req.target_session_id):
        return schedule

    return schedule.with_cells({
        (req.target_buyer_id, req.target_session_id): req.seller_id,
        (req.source_buyer_id, req.source_session_id): displaced,
    })
