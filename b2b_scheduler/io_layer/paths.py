# b2b_scheduler/io_layer/paths.py
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class InputPaths:
    """
    roster_file: 名簿 xlsx（buyers / sellers / preferences シート）
    sellers_text_file: セラー名の追加取り込み用テキスト（1行1社、任意）
    """
    roster_file: str
    sellers_text_file: Optional[str] = None

    # シート名（運用で変えるならここだけ）
    buyers_sheet_name: str = "buyers"
    sellers_sheet_name: str = "sellers"
    preferences_sheet_name: str = "preferences"
