# b2b_scheduler/gui/app.py
from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import sys

import pandas as pd
import streamlit as st

# 日本語コメント: Streamlitは実行ディレクトリが変わるため、リポジトリルートをパスに追加する。
ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from b2b_scheduler.config import DEFAULT_CONFIG
from b2b_scheduler.domain.models import BLOCKS, UNSET
from b2b_scheduler.editing.manual_edit import MoveRequest
from b2b_scheduler.editing.workspace import SchedulingWorkspace
from b2b_scheduler.reporting.export_xlsx import export_result_bytes
from b2b_scheduler.reporting.report import (
    build_conflict_table,
    build_result_sheets,
    build_schedule_table,
    build_seller_meetings,
    meetings_to_frame,
    suggest_seller_names,
)
from b2b_scheduler.validation.conflicts import conflicting_sessions, is_conflicting
from b2b_scheduler.validation.validator import ValidationError

APP_TITLE = "商談スケジューラ（バイヤー × セラー）"


def _workspace() -> SchedulingWorkspace:
    if "workspace" not in st.session_state:
        st.session_state["workspace"] = SchedulingWorkspace(DEFAULT_CONFIG)
    return st.session_state["workspace"]


def _settings_sidebar(ws: SchedulingWorkspace) -> None:
    s = ws.cfg.sessions
    st.sidebar.header("セッション設定")
    count = st.sidebar.number_input("1ブロックのセッション数", min_value=1, max_value=20, value=s.count)
    duration = st.sidebar.number_input("セッション時間（分）", min_value=1, max_value=240, value=s.duration_minutes)
    brk = st.sidebar.number_input("休憩（分）", min_value=0, max_value=120, value=s.break_minutes)
    m_start = st.sidebar.text_input("午前開始（HH:MM）", value=s.morning_start)
    a_start = st.sidebar.text_input("午後開始（HH:MM）", value=s.afternoon_start)

    if st.sidebar.button("設定を反映"):
        try:
            ws.update_settings(replace(
                s,
                count=int(count),
                duration_minutes=int(duration),
                break_minutes=int(brk),
                morning_start=m_start.strip(),
                afternoon_start=a_start.strip(),
            ))
            st.sidebar.success("セッション構成を更新しました。")
        except ValidationError as e:
            st.sidebar.error(e.message)


def _buyers_tab(ws: SchedulingWorkspace) -> None:
    limits = ws.cfg.roster
    counts = {blk: sum(1 for b in ws.buyers if b.block == blk) for blk in BLOCKS}
    st.caption(" | ".join(f"{blk}: {counts[blk]}/{limits.max_buyers_per_block}" for blk in BLOCKS))

    with st.form("add_buyer", clear_on_submit=True):
        name = st.text_input("バイヤー名")
        country = st.text_input("国")
        block = st.selectbox("ブロック", BLOCKS)
        if st.form_submit_button("追加"):
            try:
                ws.add_buyer(name, country, block)
            except ValidationError as e:
                st.error(e.message)

    for b in ws.buyers:
        c1, c2 = st.columns([5, 1])
        c1.write(f"{b.name}（{b.country}, {b.block}）")
        if c2.button("削除", key=f"del_buyer_{b.bid}"):
            ws.remove_buyer(b.bid)
            st.rerun()


def _sellers_tab(ws: SchedulingWorkspace) -> None:
    with st.form("add_seller", clear_on_submit=True):
        name = st.text_input("セラー名")
        if st.form_submit_button("追加"):
            try:
                ws.add_seller(name)
            except ValidationError as e:
                st.error(e.message)

    uploaded = st.file_uploader("セラー名の取り込み（1行1社、CSV/TXT）", type=["csv", "txt"])
    if uploaded is not None and st.button("取り込む"):
        text = uploaded.getvalue().decode("utf-8-sig")
        added, skipped = ws.import_sellers(text)
        st.success(f"{len(added)} 件追加しました。重複 {skipped} 件は無視しました。")

    for s in ws.sellers:
        c1, c2 = st.columns([5, 1])
        c1.write(s.name)
        if c2.button("削除", key=f"del_seller_{s.sid}"):
            ws.remove_seller(s.sid)
            st.rerun()


def _preferences_tab(ws: SchedulingWorkspace) -> None:
    if not ws.buyers:
        st.info("希望セラーを設定するには先にバイヤーを追加してください。")
        return

    pcfg = ws.cfg.preferences
    labels = {b.bid: f"{b.name}（{b.country}, {b.block}）" for b in ws.buyers}
    bid = st.selectbox("バイヤー", list(labels.keys()), format_func=labels.get)

    options = [UNSET] + [s.sid for s in ws.sellers]
    names = {s.sid: s.name for s in ws.sellers}
    names[UNSET] = "（未設定）"
    current = ws.preferences.get(bid)

    picked = []
    st.subheader(f"第一希望（{pcfg.primary_count}）")
    for i in range(pcfg.total_count):
        if i == pcfg.primary_count:
            st.subheader(f"予備希望（{pcfg.backup_count}）")
        value = current[i] if current[i] in options else UNSET
        picked.append(st.selectbox(
            f"希望 {i + 1}", options, index=options.index(value),
            format_func=names.get, key=f"pref_{bid}_{i}",
        ))

    if st.button("希望を保存"):
        try:
            ws.save_preferences(bid, picked)
            st.success("希望セラーを保存しました。")
        except ValidationError as e:
            st.error(e.message)


def _schedule_tab(ws: SchedulingWorkspace) -> None:
    c1, c2, c3 = st.columns(3)
    if c1.button("自動割当"):
        try:
            for w in ws.run_auto_schedule():
                st.warning(w.message)
        except ValidationError as e:
            st.error(e.message)
    if c2.button("元に戻す", disabled=not ws.history.can_undo):
        ws.undo()
        st.rerun()
    if c3.button("やり直す", disabled=not ws.history.can_redo):
        ws.redo()
        st.rerun()

    if not ws.buyers or not ws.sessions:
        st.info("バイヤーとセッションを設定すると表が表示されます。")
        return

    conflicts = ws.conflicts()
    bad = conflicting_sessions(conflicts)
    if bad:
        st.error(f"重複のあるセッション: {', '.join(sorted(bad))}")
        st.dataframe(build_conflict_table(conflicts, ws.sellers, ws.sessions), use_container_width=True)
    else:
        st.success("重複はありません。")

    df = build_schedule_table(ws.schedule, ws.buyers, ws.sellers, ws.sessions)
    session_by_label = {s.label: s for s in ws.sessions}
    buyer_rows = list(ws.buyers)

    def _highlight(data: pd.DataFrame) -> pd.DataFrame:
        styles = pd.DataFrame("", index=data.index, columns=data.columns)
        for i, b in enumerate(buyer_rows):
            for col, s in session_by_label.items():
                if s.block != b.block:
                    styles.loc[i, col] = "background-color: #f0f0f0"
                elif is_conflicting(conflicts, s.sid, ws.schedule.lookup(b.bid, s.sid) or ""):
                    styles.loc[i, col] = "background-color: #fecaca"
        return styles

    st.dataframe(df.style.apply(_highlight, axis=None), use_container_width=True)

    # 日本語コメント: ドラッグ＆ドロップの代わりに、移動元・移動先をセレクトで選ぶ。
    st.subheader("手動で移動 / 入れ替え")
    buyer_labels = {b.bid: f"{b.name}（{b.block}）" for b in ws.buyers}
    session_labels = {s.sid: s.label for s in ws.sessions}
    with st.form("move"):
        c1, c2 = st.columns(2)
        src_b = c1.selectbox("移動元バイヤー", list(buyer_labels), format_func=buyer_labels.get)
        src_s = c1.selectbox("移動元セッション", list(session_labels), format_func=session_labels.get)
        dst_b = c2.selectbox("移動先バイヤー", list(buyer_labels), format_func=buyer_labels.get)
        dst_s = c2.selectbox("移動先セッション", list(session_labels), format_func=session_labels.get)
        if st.form_submit_button("移動"):
            seller_id = ws.schedule.lookup(src_b, src_s)
            try:
                ws.move(MoveRequest(
                    seller_id=seller_id or "",
                    source_buyer_id=src_b,
                    source_session_id=src_s,
                    target_buyer_id=dst_b,
                    target_session_id=dst_s,
                ))
                st.rerun()
            except ValidationError as e:
                st.error(e.message)

    sheets = build_result_sheets(ws.schedule, ws.buyers, ws.sellers, ws.sessions, ws.preferences, conflicts)
    d1, d2 = st.columns(2)
    d1.download_button(
        label="CSVをダウンロード",
        data=ws.export_csv().encode("utf-8"),
        file_name="meeting_schedule.csv",
        mime="text/csv",
    )
    d2.download_button(
        label="xlsxをダウンロード",
        data=export_result_bytes(sheets, ws.cfg),
        file_name="meeting_schedule.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def _seller_search_tab(ws: SchedulingWorkspace) -> None:
    query = st.text_input("会社名を入力してください", placeholder="例: Seller Company 1")
    suggestions = suggest_seller_names(ws.schedule, ws.sellers, query)
    if suggestions:
        st.caption("候補: " + " / ".join(suggestions[:10]))
    if not st.button("会議を検索"):
        return

    meetings = build_seller_meetings(ws.schedule, ws.buyers, ws.sellers, ws.sessions, query)
    if meetings:
        st.dataframe(meetings_to_frame(meetings), use_container_width=True)
    else:
        st.warning(f"「{query}」の会議が見つかりません。会社名を確認するか主催者に連絡してください。")


def main():
    st.title(APP_TITLE)
    ws = _workspace()
    _settings_sidebar(ws)

    tabs = st.tabs(["バイヤー", "セラー", "希望セラー", "スケジュール", "セラー検索"])
    with tabs[0]:
        _buyers_tab(ws)
    with tabs[1]:
        _sellers_tab(ws)
    with tabs[2]:
        _preferences_tab(ws)
    with tabs[3]:
        _schedule_tab(ws)
    with tabs[4]:
        _seller_search_tab(ws)


if __name__ == "__main__":
    main()
