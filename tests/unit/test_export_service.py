# =============================================================================
# tests/unit/test_export_service.py
# Unit Tests for CSV Export and HTML Reports
# =============================================================================

from datetime import date

import pytest

from fleet_core.services.export_service import (
    ExportColumn,
    ExportService,
    format_clp,
    format_date,
    format_number,
    stat_label,
    stat_value,
)

COLUMNS = [
    ExportColumn("id", "N° OT"),
    ExportColumn("client_name", "Cliente"),
    ExportColumn("total_cost", "Costo", "currency"),
    ExportColumn("start_date", "Inicio", "date"),
]

ROWS = [
    {"id": "OT-2025-001", "client_name": "Agrícola Los Robles", "total_cost": 1234567, "start_date": "2025-06-01"},
    {"id": "OT-2025-002", "client_name": None, "total_cost": 0, "start_date": None},
]


class TestFormatters:
    @pytest.mark.parametrize("value,expected", [
        (1234567, "1.234.567"),
        (1234567.5, "1.234.567,5"),
        (2.0, "2"),
        (-1500.25, "-1.500,25"),
        ("n/a", "n/a"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (1234567, "$1.234.567"),
        (999.6, "$1.000"),
        (-1500, "-$1.500"),
        (0, "$0"),
    ])
    def test_format_clp(self, value, expected):
        assert format_clp(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("2025-06-01", "01/06/2025"),
        ("2025-06-01T12:00:00+00:00", "01/06/2025"),
        (date(2024, 12, 31), "31/12/2024"),
        (None, ""),
        ("N/A", ""),
        ("pronto", "pronto"),
    ])
    def test_format_date(self, value, expected):
        assert format_date(value) == expected

    def test_stat_helpers(self):
        assert stat_label("lowStockParts") == "low Stock Parts"
        assert stat_label("total_cost") == "total cost"
        assert stat_value(1500) == "1.5K"
        assert stat_value(12) == "12"


class TestExportService:
    def test_frame_uses_display_format(self):
        df = ExportService().frame(ROWS, COLUMNS)

        assert list(df.columns) == ["N° OT", "Cliente", "Costo", "Inicio"]
        assert df.iloc[0]["Costo"] == "$1.234.567"
        assert df.iloc[0]["Inicio"] == "01/06/2025"
        assert df.iloc[1]["Cliente"] == ""

    def test_csv_has_label_header_and_raw_values(self):
        result = ExportService().to_csv(ROWS, COLUMNS)

        lines = result.data.splitlines()
        assert result.success
        assert lines[0] == "N° OT,Cliente,Costo,Inicio"
        assert lines[1] == "OT-2025-001,Agrícola Los Robles,1234567,2025-06-01"
        assert lines[2] == "OT-2025-002,,0,"

    def test_csv_accepts_plain_keys(self):
        result = ExportService().to_csv([{"code": "MQ-1"}], ["code"])
        assert result.data.splitlines() == ["code", "MQ-1"]

    def test_report_html_escapes(self):
        rows = [{"id": "<script>alert(1)</script>", "client_name": "A & B"}]
        result = ExportService().report_html("<b>Órdenes</b>", rows, COLUMNS, stats={"totalCost": 1500})

        page = result.data
        assert "<title>&lt;b&gt;Órdenes&lt;/b&gt;</title>" in page
        assert "<script>" not in page
        assert "A &amp; B" in page
        assert '<span class="stat-value">1.5K</span>' in page
        assert "Generado el" in page
