# main_cli.py
from __future__ import annotations

import argparse
import random
from dataclasses import replace
from pathlib import Path

from b2b_scheduler.config import DEFAULT_CONFIG
from b2b_scheduler.editing.workspace import SchedulingWorkspace
from b2b_scheduler.io_layer.paths import InputPaths
from b2b_scheduler.io_layer.xlsx_reader import XlsxReader
from b2b_scheduler.reporting.export_xlsx import export_result_xlsx
from b2b_scheduler.reporting.report import build_result_sheets
from b2b_scheduler.validation.conflicts import conflicting_sessions, count_conflicts
from b2b_scheduler.validation.validator import ValidationError


def parse_args(argv=None):
    d = DEFAULT_CONFIG.sessions
    p = argparse.ArgumentParser(description="バイヤー×セラー商談スケジュールの自動割当")
    p.add_argument("--roster", required=True, help="名簿 xlsx（buyers / sellers / preferences シート）")
    p.add_argument("--sellers-text", default=None, help="追加で取り込むセラー名テキスト（1行1社）")
    p.add_argument("--out", default="assets/output/schedule.xlsx", help="出力xlsx")
    p.add_argument("--csv", default=None, help="CSVも出力する場合のパス")
    p.add_argument("--seed", type=int, default=None, help="乱数シード（同じ入力で同じ結果にしたいとき）")
    p.add_argument("--sessions", type=int, default=d.count, help="1ブロックあたりのセッション数")
    p.add_argument("--duration", type=int, default=d.duration_minutes, help="セッション時間（分）")
    p.add_argument("--break", dest="break_minutes", type=int, default=d.break_minutes, help="休憩（分）")
    p.add_argument("--morning-start", default=d.morning_start, help="午前開始 HH:MM")
    p.add_argument("--afternoon-start", default=d.afternoon_start, help="午後開始 HH:MM")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    cfg = replace(DEFAULT_CONFIG, sessions=replace(
        DEFAULT_CONFIG.sessions,
        count=args.sessions,
        duration_minutes=args.duration,
        break_minutes=args.break_minutes,
        morning_start=args.morning_start,
        afternoon_start=args.afternoon_start,
    ))

    paths = InputPaths(roster_file=args.roster, sellers_text_file=args.sellers_text)
    reader = XlsxReader(cfg=cfg)

    try:
        ws = SchedulingWorkspace(cfg)
        ws.load_roster(reader.build_roster(paths))
        if paths.sellers_text_file:
            text = Path(paths.sellers_text_file).read_text(encoding="utf-8")
            added, skipped = ws.import_sellers(text)
            print(f"[INFO] セラー取り込み: 追加 {len(added)} 件 / 重複 {skipped} 件")
        warnings = ws.run_auto_schedule(rng=random.Random(args.seed))
    except ValidationError as e:
        print(f"[ERROR] {e.message}")
        return 1
    except (ValueError, FileNotFoundError) as e:
        print(f"[ERROR] {e}")
        return 1

    for w in warnings:
        print(f"[WARN] {w.message}")

    conflicts = ws.conflicts()
    for sid, sellers in sorted(conflicting_sessions(conflicts).items()):
        print(f"[WARN] セッション {sid} でセラーが重複しています: {', '.join(sellers)}")
    n_conflicts = count_conflicts(conflicts)
    if n_conflicts:
        print(f"[WARN] 重複 {n_conflicts} 件（conflicts シートを確認してください）")

    sheets = build_result_sheets(ws.schedule, ws.buyers, ws.sellers, ws.sessions, ws.preferences, conflicts)
    out_path = export_result_xlsx(args.out, sheets, cfg)
    if args.csv:
        Path(args.csv).parent.mkdir(parents=True, exist_ok=True)
        with open(args.csv, "w", encoding="utf-8", newline="") as f:
            f.write(ws.export_csv())

    filled = ws.schedule.filled_count()
    print(f"[RESULT] OK: {out_path}（割当 {filled} 件）")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
