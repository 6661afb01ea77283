"""
tests/core/audit/test_audit_export.py - 감사 보고서 Excel 출력 테스트
"""

from datetime import datetime, timezone

from openpyxl import load_workbook

from core.audit.export import FINDING_COLUMNS, write_report_xlsx
from core.audit.types import AuditReport, EngineType, Finding, FindingSet, GroupKind, ResourceKind, ResourceReference


def make_report():
    ts = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    bad = FindingSet(
        resource=ResourceReference(ResourceKind.PARAMETER_GROUP, "cpg-a", group_kind=GroupKind.CLUSTER),
        engine=EngineType.AURORA_MYSQL,
        findings=(Finding.violation("issue one"), Finding.violation("issue two")),
        associated=frozenset({"cl-2", "cl-1"}),
    )
    good = FindingSet(resource=ResourceReference(ResourceKind.PARAMETER_GROUP, "pg-ok"), engine=EngineType.MYSQL)
    return AuditReport.build([bad, good], timestamp=ts)


class TestWriteReportXlsx:
    """write_report_xlsx 테스트"""

    def test_sheets_and_rows(self, tmp_path):
        path = write_report_xlsx(make_report(), tmp_path / "nested" / "audit.xlsx", region="ap-northeast-2")

        assert path.exists()
        wb = load_workbook(path)
        assert wb.sheetnames == ["Summary", "Findings"]

        summary = {row[0]: row[1] for row in wb["Summary"].iter_rows(min_row=2, values_only=True)}
        assert summary["리전"] == "ap-northeast-2"
        assert summary["평가한 파라미터 그룹"] == 2
        assert summary["위반 파라미터 그룹"] == 1

        rows = list(wb["Findings"].iter_rows(values_only=True))
        assert list(rows[0]) == [header for header, _ in FINDING_COLUMNS]
        assert rows[1] == (
            "cpg-a",
            "cluster-parameter-group",
            "aurora-mysql",
            "NON_COMPLIANT",
            "cl-1, cl-2",
            "issue one\nissue two",
        )
        assert len(rows) == 2

    def test_header_style(self, tmp_path):
        path = write_report_xlsx(make_report(), tmp_path / "audit.xlsx")

        ws = load_workbook(path)["Findings"]
        assert ws["A1"].font.bold
        assert ws["A1"].fill.start_color.rgb.endswith("4472C4")
        assert ws.freeze_panes == "A2"

    def test_empty_report(self, tmp_path):
        path = write_report_xlsx(AuditReport.build([]), str(tmp_path / "empty.xlsx"))

        ws = load_workbook(path)["Findings"]
        assert ws.max_row == 1
