# b2b_scheduler/io_layer/xlsx_reader.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

import pandas as pd
from openpyxl import load_workbook

from b2b_scheduler.config import AppConfig
from b2b_scheduler.domain.models import BLOCKS, UNSET, Buyer, RosterData, Seller
from b2b_scheduler.io_layer.paths import InputPaths


def _cell_str(v) -> str:
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return ""
    return str(v).strip()


def _require_columns(df: pd.DataFrame, cols: List[str], file_path: str, sheet: str) -> None:
    for c in cols:
        if c not in df.columns:
            raise ValueError(f"{file_path}:{sheet} に列 {c} がありません。")


@dataclass(frozen=True)
class XlsxReader:
    cfg: AppConfig

    def read_buyers(self, file_path: str, sheet_name: str) -> List[Buyer]:
        """
        buyersシート想定列（ヘッダあり）: name, country, block
        block は morning / afternoon（大文字小文字は問わない）。
        ID は行順に b001, b002, ... を振る。
        希望シートは名前で引くので、バイヤー名の重複はエラー。
        """
        df = pd.read_excel(file_path, sheet_name=sheet_name)
        _require_columns(df, ["name", "country", "block"], file_path, sheet_name)

        buyers: List[Buyer] = []
        seen = set()
        for i, (_, row) in enumerate(df.iterrows(), start=1):
            name = _cell_str(row["name"])
            if not name:
                continue
            if name in seen:
                raise ValueError(f"{file_path}:{sheet_name} にバイヤー名 {name} が重複しています。")
            seen.add(name)
            raw_block = _cell_str(row["block"])
            block = raw_block.lower()
            if block not in BLOCKS:
                raise ValueError(f"バイヤー {name} のブロックが不正です: {raw_block}")
            buyers.append(Buyer(bid=f"b{i:03d}", name=name, country=_cell_str(row["country"]), block=block))
        return buyers

    def read_sellers(self, file_path: str, sheet_name: str) -> List[Seller]:
        """sellersシート想定列: name。同名は先勝ち"""
        df = pd.read_excel(file_path, sheet_name=sheet_name)
        _require_columns(df, ["name"], file_path, sheet_name)

        sellers: List[Seller] = []
        seen = set()
        for i, v in enumerate(df["name"].tolist(), start=1):
            name = _cell_str(v)
            if not name or name in seen:
                continue
            seen.add(name)
            sellers.append(Seller(sid=f"s{i:03d}", name=name))
        return sellers

    def read_preferences(
        self,
        file_path: str,
        sheet_name: str,
        buyers: List[Buyer],
        sellers: List[Seller],
    ) -> Dict[str, List[str]]:
        """
        preferencesシート想定列: buyer_name, pref1 .. pref{N}
        pref1..pref{primary} が第一希望、残りが予備希望（セラー名で指定）。
        """
        total = self.cfg.preferences.total_count
        df = pd.read_excel(file_path, sheet_name=sheet_name)
        _require_columns(df, ["buyer_name"], file_path, sheet_name)

        buyer_by_name = {b.name: b.bid for b in buyers}
        seller_by_name = {s.name: s.sid for s in sellers}
        pref_cols = [f"pref{i}" for i in range(1, total + 1)]

        out: Dict[str, List[str]] = {}
        for _, row in df.iterrows():
            bname = _cell_str(row["buyer_name"])
            if not bname:
                continue
            if bname not in buyer_by_name:
                raise ValueError(f"希望シートのバイヤー名が名簿にありません: {bname}")
            if buyer_by_name[bname] in out:
                raise ValueError(f"{file_path}:{sheet_name} にバイヤー {bname} の行が複数あります。")
            prefs: List[str] = []
            for c in pref_cols:
                nm = _cell_str(row[c]) if c in df.columns else ""
                if not nm:
                    prefs.append(UNSET)
                    continue
                if nm not in seller_by_name:
                    raise ValueError(f"バイヤー {bname} の希望セラーが名簿にありません: {nm}")
                prefs.append(seller_by_name[nm])
            out[buyer_by_name[bname]] = prefs
        return out

    def build_roster(self, paths: InputPaths) -> RosterData:
        wb = load_workbook(paths.roster_file, read_only=True)
        sheetnames = list(wb.sheetnames)
        wb.close()
        for required in (paths.buyers_sheet_name, paths.sellers_sheet_name):
            if required not in sheetnames:
                raise ValueError(f"{paths.roster_file} に '{required}' シートが見つかりません。")

        buyers = self.read_buyers(paths.roster_file, paths.buyers_sheet_name)
        sellers = self.read_sellers(paths.roster_file, paths.sellers_sheet_name)

        # 希望シートは任意
        prefs: Dict[str, List[str]] = {}
        if paths.preferences_sheet_name in sheetnames:
            prefs = self.read_preferences(paths.roster_file, paths.preferences_sheet_name, buyers, sellers)

        return RosterData(buyers=buyers, sellers=sellers, preferences=prefs)
