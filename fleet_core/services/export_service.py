# =============================================================================
# fleet_core/services/export_service.py
# CSV Export and Printable HTML Reports
# =============================================================================

from __future__ import annotations
import html
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from fleet_core.services.base_service import BaseService, ServiceResult


@dataclass(frozen=True)
class ExportColumn:
    key: str
    label: str
    type: str = "text"     # text | number | currency | date


ColumnSpec = Union[ExportColumn, str]


# =============================================================================
# FORMATTERS (es-CL)
# =============================================================================

def _group_thousands(digits: str) -> str:
    return f"{int(digits):,}".replace(",", ".")


def format_number(value: Any, decimals: int = 3) -> str:
    """``1234567.5`` -> ``"1.234.567,5"`` (trailing zeros trimmed)."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    sign = "-" if number < 0 else ""
    integer, _, fraction = f"{abs(number):.{decimals}f}".partition(".")
    fraction = fraction.rstrip("0")
    text = _group_thousands(integer)
    return f"{sign}{text},{fraction}" if fraction else f"{sign}{text}"


def format_clp(value: Any) -> str:
    """Chilean pesos without decimals: ``1234567`` -> ``"$1.234.567"``."""
    try:
        number = round(float(value))
    except (TypeError, ValueError):
        return str(value)
    sign = "-" if number < 0 else ""
    return f"{sign}${_group_thousands(str(abs(int(number))))}"


def format_date(value: Any) -> str:
    """ISO date or datetime -> ``dd/mm/yyyy``; unparseable values pass through."""
    if value is None or value == "N/A":
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%d/%m/%Y")
    parsed = pd.to_datetime(str(value), errors="coerce", format="ISO8601")
    if pd.isna(parsed):
        return str(value)
    return parsed.strftime("%d/%m/%Y")


def format_value(value: Any, value_type: str) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    if value_type == "currency":
        return format_clp(value)
    if value_type == "date":
        return format_date(value)
    if value_type == "number":
        return format_number(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def stat_label(key: str) -> str:
    """``lowStockParts`` -> ``"low Stock Parts"``; snake_case keys get spaces."""
    return re.sub(r"([A-Z])", r" \1", key).replace("_", " ").strip()


def stat_value(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 1000:
        return f"{value / 1000:.1f}K"
    return str(value)


def _columns(columns: Sequence[ColumnSpec]) -> List[ExportColumn]:
    return [c if isinstance(c, ExportColumn) else ExportColumn(key=c, label=c) for c in columns]


# =============================================================================
# SERVICE
# =============================================================================

REPORT_STYLE = """
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; font-size: 11pt; color: #333; margin: 24px; }
h1 { color: #1e3a8a; font-size: 18pt; margin-bottom: 4px; }
.generated { color: #6b7280; font-size: 9pt; margin-bottom: 16px; }
.stats-section { display: flex; flex-wrap: wrap; gap: 16px; margin-bottom: 16px; }
.stat-item { background: #f1f5f9; border-radius: 6px; padding: 8px 12px; }
.stat-label { color: #475569; margin-right: 4px; text-transform: capitalize; }
.stat-value { font-weight: 600; }
table.report { border-collapse: collapse; width: 100%; }
table.report th { background: #1e3a8a; color: #fff; padding: 6px; text-align: left; }
table.report td { border-bottom: 1px solid #e5e7eb; padding: 6px; }
table.report tr:nth-child(even) td { background: #f8fafc; }
"""


class ExportService(BaseService):
    """
    Tabular exports of entity lists.

    Usage:
        exporter = ExportService()
        result = exporter.to_csv(orders, [ExportColumn("id", "N° OT"), ...])
        st.download_button("CSV", result.data, "ordenes.csv")
    """

    def frame(self, rows: Iterable[Mapping[str, Any]], columns: Sequence[ColumnSpec]) -> pd.DataFrame:
        """Formatted DataFrame with one column per ``ExportColumn`` label."""
        cols = _columns(columns)
        data = [
            {c.label: format_value(row.get(c.key), c.type) for c in cols}
            for row in rows
        ]
        return pd.DataFrame(data, columns=[c.label for c in cols])

    def to_csv(self, rows: Iterable[Mapping[str, Any]], columns: Sequence[ColumnSpec]) -> ServiceResult:
        """
        CSV text with a header row of column labels.

        Values are the raw values (not the es-CL display format) so the file
        can be re-imported; None becomes an empty cell.
        """
        def build() -> str:
            cols = _columns(columns)
            data = [
                {c.label: format_value(row.get(c.key), "text") for c in cols}
                for row in rows
            ]
            return pd.DataFrame(data, columns=[c.label for c in cols]).to_csv(
                index=False, lineterminator="\n"
            )

        return self.safe_execute("Exporting CSV", build)

    def report_html(
        self,
        title: str,
        rows: Iterable[Mapping[str, Any]],
        columns: Sequence[ColumnSpec],
        stats: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """Standalone HTML document with a stats strip and the formatted table."""
        def build() -> str:
            table = self.frame(rows, columns).to_html(index=False, classes="report", border=0, escape=True)
            stats_html = ""
            if stats:
                items = "".join(
                    f'<div class="stat-item"><span class="stat-label">{html.escape(stat_label(k))}:</span>'
                    f'<span class="stat-value">{html.escape(stat_value(v))}</span></div>'
                    for k, v in stats.items()
                )
                stats_html = f'<div class="stats-section">{items}</div>'
            generated = datetime.now().strftime("%d/%m/%Y %H:%M")
            return (
                "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
                f"<title>{html.escape(title)}</title>\n<style>{REPORT_STYLE}</style>\n</head>\n<body>\n"
                f"<h1>{html.escape(title)}</h1>\n<div class=\"generated\">Generado el {generated}</div>\n"
                f"{stats_html}\n{table}\n</body>\n</html>\n"
            )

        return self.safe_execute("Building HTML report", build)
