# b2b_scheduler/reporting/export_xlsx.py
from __future__ import annotations

from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Dict, Union

import pandas as pd
from dateutil import tz

from b2b_scheduler.config import AppConfig


def _meta_frame(cfg: AppConfig) -> pd.DataFrame:
    now = datetime.now(tz=tz.gettz(cfg.timezone_name))
    s = cfg.sessions
    return pd.DataFrame([
        dict(key="generated_at", value=now.strftime("%Y-%m-%d %H:%M %Z")),
        dict(key="sessions_per_block", value=str(s.count)),
        dict(key="duration_minutes", value=str(s.duration_minutes)),
        dict(key="break_minutes", value=str(s.break_minutes)),
        dict(key="morning_start", value=s.morning_start),
        dict(key="afternoon_start", value=s.afternoon_start),
    ])


def _write(target: Union[str, BinaryIO], sheets: Dict[str, pd.DataFrame], cfg: AppConfig) -> None:
    with pd.ExcelWriter(target, engine="openpyxl") as w:
        # "schedule" シートが CSV 出力と同じ表
        for name, df in sheets.items():
            df.to_excel(w, sheet_name=name, index=False)
        _meta_frame(cfg).to_excel(w, sheet_name="meta", index=False)


def export_result_xlsx(out_path: str, sheets: Dict[str, pd.DataFrame], cfg: AppConfig) -> str:
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    _write(out_path, sheets, cfg)
    return out_path


def export_result_bytes(sheets: Dict[str, pd.DataFrame], cfg: AppConfig) -> bytes:
    """Streamlitダウンロード用にxlsxをメモリに書き出す"""
    buf = BytesIO()
    _write(buf, sheets, cfg)
    return buf.getvalue()
