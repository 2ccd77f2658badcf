from __future__ import annotations

import datetime as dt
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from .money import CASH_SYMBOLS, Money
from .report_builder import ReportBuilder

LABELS = {
    "sheet": {
        "disposals": "Disposals",
        "summary": "Yearly Summary",
        "groups": "Groups",
        "diagnostics": "Diagnostics",
    },
    "disposals": {
        "time": "Time",
        "id": "ID",
        "asset": "Asset",
        "type": "Type",
        "qty": "Quantity",
        "currency": "Currency",
        "proceeds": "Proceeds",
        "cost_basis": "Cost Basis",
        "gain": "Realized Gain/Loss",
        "gain_target_tpl": "Realized Gain/Loss ({cur})",
        "lots_json": "Matched Lots (JSON)",
    },
    "summary": {
        "year": "Year",
        "asset": "Asset",
        "first_buy": "First Buy",
        "last_sell": "Last Sell",
        "currency": "Currency",
        "cost_basis": "Cost Basis",
        "cost_basis_target_tpl": "Cost Basis ({cur})",
        "proceeds": "Proceeds",
        "proceeds_target_tpl": "Proceeds ({cur})",
        "gain_target_tpl": "Gain ({cur})",
        "total": "Total",
    },
    "groups": {
        "group": "Group",
        "currency": "Currency",
        "remaining_qty": "Remaining Quantity",
        "year": "Year",
        "gain": "Gain/Loss",
        "gain_target_tpl": "Gain/Loss ({cur})",
    },
    "diagnostics": {
        "severity": "Severity",
        "message": "Message",
        "error": "ERROR",
        "warning": "WARNING",
    },
}


class ReportSink(Protocol):
    def write(self, report: ReportBuilder) -> Path:  # returns written file path
        ...


def _excel_time(value: dt.datetime | None) -> dt.datetime | None:
    # Excel cells cannot hold timezone-aware datetimes
    if value is None:
        return None
    return value.replace(tzinfo=None)


def _amount(value: Money) -> float:
    return float(value.amount)


@dataclass
class ExcelReportSink:
    out_path: Path

    def write(self, report: ReportBuilder) -> Path:
        out_path = Path(self.out_path)
        wb = Workbook()

        # Remove the default sheet
        ws_default = wb.active
        wb.remove(ws_default)

        target = report.target_currency
        time_fmt = "YYYY-MM-DD HH:MM:SS"
        date_fmt = "YYYY-MM-DD"
        qty_fmt = "0.########"

        def money_fmt_for_currency(ccy: str) -> str:
            cur = (ccy or "").upper()
            sym = CASH_SYMBOLS.get(cur)
            if sym and sym != cur:
                return f'"{sym}"#,##0.00'
            return f'"{cur}" #,##0.00'

        # Disposals sheet
        labels = LABELS["disposals"]
        ws = wb.create_sheet(title=LABELS["sheet"]["disposals"])
        ws.append(
            [
                labels["time"],
                labels["id"],
                labels["asset"],
                labels["type"],
                labels["qty"],
                labels["currency"],
                labels["proceeds"],
                labels["cost_basis"],
                labels["gain"],
                labels["gain_target_tpl"].format(cur=target),
                labels["lots_json"],
            ]
        )
        for line in report.disposal_lines():
            t = line.transaction
            lots = [
                {
                    "id": report.transactions[a.acquisition_index].id,
                    "time": report.transactions[a.acquisition_index].time.isoformat(),
                    "qty": str(a.quantity),
                }
                for a in line.allocations
            ]
            ws.append(
                [
                    _excel_time(t.time),
                    t.id,
                    t.asset,
                    t.type.value,
                    float(t.quantity),
                    t.total.currency,
                    _amount(t.total),
                    _amount(line.cost_basis),
                    _amount(line.realized),
                    _amount(line.realized.convert(t.time, report.provider)),
                    json.dumps(lots),
                ]
            )
            r = ws.max_row
            ws.cell(row=r, column=1).number_format = time_fmt
            ws.cell(row=r, column=5).number_format = qty_fmt
            for c in (7, 8, 9):
                ws.cell(row=r, column=c).number_format = money_fmt_for_currency(
                    t.total.currency
                )
            ws.cell(row=r, column=10).number_format = money_fmt_for_currency(target)

        # Yearly summary sheet
        labels = LABELS["summary"]
        ws = wb.create_sheet(title=LABELS["sheet"]["summary"])
        ws.append(
            [
                labels["year"],
                labels["asset"],
                labels["first_buy"],
                labels["last_sell"],
                labels["currency"],
                labels["cost_basis"],
                labels["cost_basis_target_tpl"].format(cur=target),
                labels["proceeds"],
                labels["proceeds_target_tpl"].format(cur=target),
                labels["gain_target_tpl"].format(cur=target),
            ]
        )
        for ys in report.year_summaries():
            for a in ys.assets:
                ws.append(
                    [
                        ys.year,
                        a.asset,
                        _excel_time(a.first_buy),
                        _excel_time(a.last_sell),
                        a.proceeds.currency,
                        _amount(a.cost_basis),
                        _amount(a.cost_basis_target),
                        _amount(a.proceeds),
                        _amount(a.proceeds_target),
                        _amount(a.gain_target),
                    ]
                )
                r = ws.max_row
                ws.cell(row=r, column=3).number_format = date_fmt
                ws.cell(row=r, column=4).number_format = date_fmt
                for c in (6, 8):
                    ws.cell(row=r, column=c).number_format = money_fmt_for_currency(
                        a.proceeds.currency
                    )
                for c in (7, 9, 10):
                    ws.cell(row=r, column=c).number_format = money_fmt_for_currency(
                        target
                    )
            ws.append(
                [
                    ys.year,
                    labels["total"],
                    None,
                    None,
                    target,
                    None,
                    _amount(ys.cost_basis_target),
                    None,
                    _amount(ys.proceeds_target),
                    _amount(ys.gain_target),
                ]
            )
            r = ws.max_row
            for c in (7, 9, 10):
                ws.cell(row=r, column=c).number_format = money_fmt_for_currency(target)

        # Groups sheet
        labels = LABELS["groups"]
        ws = wb.create_sheet(title=LABELS["sheet"]["groups"])
        ws.append(
            [
                labels["group"],
                labels["currency"],
                labels["remaining_qty"],
                labels["year"],
                labels["gain"],
                labels["gain_target_tpl"].format(cur=target),
            ]
        )
        for gs in report.group_summaries():
            years = [
                y
                for y in sorted(gs.gain_by_year)
                if report.year is None or y == report.year
            ]
            remaining = float(gs.remaining_quantity)
            if not years:
                ws.append([gs.key, gs.currency, remaining, None, None, None])
                ws.cell(row=ws.max_row, column=3).number_format = qty_fmt
                continue
            for y in years:
                ws.append(
                    [
                        gs.key,
                        gs.currency,
                        remaining,
                        y,
                        _amount(gs.gain_by_year[y]),
                        _amount(gs.gain_by_year_target[y]),
                    ]
                )
                r = ws.max_row
                ws.cell(row=r, column=3).number_format = qty_fmt
                ws.cell(row=r, column=5).number_format = money_fmt_for_currency(
                    gs.currency
                )
                ws.cell(row=r, column=6).number_format = money_fmt_for_currency(target)

        # Diagnostics sheet
        labels = LABELS["diagnostics"]
        ws = wb.create_sheet(title=LABELS["sheet"]["diagnostics"])
        ws.append([labels["severity"], labels["message"]])
        for msg in report.errors:
            ws.append([labels["error"], msg])
        for msg in report.warnings:
            ws.append([labels["warning"], msg])

        def autosize(sheet, max_width: int = 60, min_width: int = 10) -> None:
            header_values = [cell.value for cell in sheet[1]] if sheet.max_row else []
            for col in range(1, sheet.max_column + 1):
                max_len = 0
                for row in range(1, sheet.max_row + 1):
                    v = sheet.cell(row=row, column=col).value
                    if v is None:
                        continue
                    # Approximate display width using string conversion
                    if hasattr(v, "strftime"):
                        s = v.strftime("%Y-%m-%d %H:%M:%S")
                    else:
                        s = str(v)
                    if len(s) > max_len:
                        max_len = len(s)
                header = (
                    header_values[col - 1] if col - 1 < len(header_values) else None
                )
                if header:
                    max_len = max(max_len, len(str(header)))
                width = min(max_width, max(min_width, max_len + 2))
                if header and "JSON" in str(header):
                    width = min(width, 50)
                sheet.column_dimensions[get_column_letter(col)].width = width

        for _ws in wb.worksheets:
            autosize(_ws)

        out_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(out_path)
        return out_path
