# b2b_scheduler/validation/validator.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from b2b_scheduler.config import PreferenceConfig, RosterLimits, SessionSettings
from b2b_scheduler.domain.models import BLOCKS, UNSET, Buyer, PreferenceBook, Seller, Session

_HHMM = re.compile(r"^\d{1,2}:\d{2}$")


@dataclass(eq=False)
class ValidationError(Exception):
    """入力拒否。状態は一切変更しない"""
    message: str

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass(frozen=True)
class ValidationWarning:
    """処理は続行するが利用者に知らせる注意"""
    message: str
    buyer_id: Optional[str] = None


def validate_session_settings(settings: SessionSettings) -> None:
    if settings.count < 1:
        raise ValidationError("1ブロックあたりのセッション数は1以上にしてください。")
    if settings.duration_minutes < 1:
        raise ValidationError("セッション時間（分）は1以上にしてください。")
    if settings.break_minutes < 0:
        raise ValidationError("休憩時間（分）は0以上にしてください。")
    for label, value in (("午前", settings.morning_start), ("午後", settings.afternoon_start)):
        if not _HHMM.match(value.strip()):
            raise ValidationError(f"{label}の開始時刻は HH:MM 形式で指定してください: {value}")
        mm = int(value.strip().split(":")[1])
        if mm >= 60:
            raise ValidationError(f"{label}の開始時刻の分が不正です: {value}")


def validate_new_buyer(
    name: str,
    country: str,
    block: str,
    buyers: Sequence[Buyer],
    limits: RosterLimits,
) -> None:
    if not name.strip() or not country.strip():
        raise ValidationError("バイヤー名と国は必須です。")
    if block not in BLOCKS:
        raise ValidationError(f"ブロックは morning / afternoon のいずれかです: {block}")

    in_block = [b for b in buyers if b.block == block]
    if len(in_block) >= limits.max_buyers_per_block:
        raise ValidationError(
            f"{block} ブロックのバイヤーは {limits.max_buyers_per_block} 名までです。"
        )

    # 国は大文字小文字・前後空白を無視して数える
    countries = {b.country.strip().lower() for b in in_block}
    if country.strip().lower() not in countries and len(countries) >= limits.max_countries_per_block:
        raise ValidationError(
            f"{block} ブロックには既に {limits.max_countries_per_block} か国のバイヤーがいます。"
            "新しい国のバイヤーは追加できません。"
        )


def validate_new_seller(name: str, sellers: Sequence[Seller]) -> None:
    if not name.strip():
        raise ValidationError("セラー名は必須です。")
    if any(s.name == name.strip() for s in sellers):
        raise ValidationError(f"同名のセラーが既に登録されています: {name.strip()}")


def validate_preferences(
    bid: str,
    prefs: Sequence[str],
    buyers: Sequence[Buyer],
    sellers: Sequence[Seller],
    cfg: PreferenceConfig,
) -> None:
    if not any(b.bid == bid for b in buyers):
        raise ValidationError(f"バイヤーが存在しません: {bid}")
    if len(prefs) > cfg.total_count:
        raise ValidationError(f"希望セラーは最大 {cfg.total_count} 件です。")

    filled = [(s or UNSET).strip() for s in prefs if (s or UNSET).strip() != UNSET]
    if len(set(filled)) != len(filled):
        raise ValidationError("第一希望・予備希望のセラーは重複しないように指定してください。")

    known = {s.sid for s in sellers}
    for sid in filled:
        if sid not in known:
            raise ValidationError(f"セラーが存在しません: {sid}")


def validate_auto_schedule_inputs(
    buyers: Sequence[Buyer],
    sessions: Sequence[Session],
    prefs: PreferenceBook,
) -> List[ValidationWarning]:
    """自動割当の実行前チェック。バイヤー0名は実行不可、それ以外は警告止まり"""
    if not buyers:
        raise ValidationError("自動割当の前にバイヤーを追加してください。")

    warnings: List[ValidationWarning] = []
    for b in buyers:
        if not prefs.primary(b.bid):
            warnings.append(ValidationWarning(
                f"バイヤー {b.name} に第一希望セラーが設定されていません。"
                "割当が偏る可能性があります。",
                buyer_id=b.bid,
            ))
        if not any(s.block == b.block for s in sessions):
            warnings.append(ValidationWarning(
                f"バイヤー {b.name} のブロック（{b.block}）にセッションがありません。",
                buyer_id=b.bid,
            ))
    return warnings
