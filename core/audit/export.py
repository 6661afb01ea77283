"""
core/audit/export.py - 감사 보고서 Excel 출력

스윕 보고서(AuditReport)를 Summary / Findings 두 시트로 저장합니다.
openpyxl은 실제 저장 시점에만 로드합니다.

Example:
    from core.audit.export import write_report_xlsx

    path = write_report_xlsx(report, "output/rds-audit.xlsx")
"""

from __future__ import annotations

from pathlib import Path

from .types import AuditReport

# 색상 상수
COLOR_HEADER_BG = "4472C4"  # 헤더 배경 (파란색)
COLOR_HEADER_FG = "FFFFFF"  # 헤더 글자 (흰색)
COLOR_DANGER = "FFC7CE"  # 위반 (연한 빨강)
COLOR_DANGER_FG = "9C0006"  # 위반 글자 (진한 빨강)

# (헤더, 너비)
SUMMARY_COLUMNS = [("항목", 24), ("값", 40)]
FINDING_COLUMNS = [
    ("파라미터 그룹", 36),
    ("종류", 22),
    ("엔진", 18),
    ("판정", 16),
    ("연관 리소스", 36),
    ("이슈", 100),
]


def _write_header(ws, columns: list[tuple[str, int]]) -> None:
    from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
    from openpyxl.utils import get_column_letter

    thin = Side(style="thin", color="D9D9D9")
    for index, (header, width) in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=index, value=header)
        cell.font = Font(bold=True, color=COLOR_HEADER_FG)
        cell.fill = PatternFill(start_color=COLOR_HEADER_BG, end_color=COLOR_HEADER_BG, fill_type="solid")
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = Border(left=thin, right=thin, top=thin, bottom=thin)
        ws.column_dimensions[get_column_letter(index)].width = width
    ws.freeze_panes = "A2"


def write_report_xlsx(report: AuditReport, path: str | Path, region: str | None = None) -> Path:
    """AuditReport를 xlsx 파일로 저장

    Args:
        report: 스윕 보고서
        path: 저장 경로 (상위 디렉토리는 자동 생성)
        region: 요약 시트에 표시할 리전

    Returns:
        저장된 파일 경로
    """
    from openpyxl import Workbook
    from openpyxl.styles import Alignment, Font, PatternFill

    wb = Workbook()

    summary = wb.active
    summary.title = "Summary"
    _write_header(summary, SUMMARY_COLUMNS)
    for row in (
        ("보고서 시각", report.timestamp.isoformat()),
        ("리전", region or "-"),
        ("평가한 파라미터 그룹", report.evaluated),
        ("위반 파라미터 그룹", report.total),
    ):
        summary.append(list(row))

    findings = wb.create_sheet("Findings")
    _write_header(findings, FINDING_COLUMNS)
    danger_fill = PatternFill(start_color=COLOR_DANGER, end_color=COLOR_DANGER, fill_type="solid")
    wrap = Alignment(horizontal="left", vertical="top", wrap_text=True)

    for result in report.results:
        findings.append(
            [
                result.resource.identifier,
                result.resource.label.split("/", 1)[0],
                result.engine.value,
                result.compliance.value,
                ", ".join(sorted(result.associated)) or "-",
                "\n".join(f.message for f in result.violations),
            ]
        )
        row_num = findings.max_row
        verdict = findings.cell(row=row_num, column=4)
        verdict.fill = danger_fill
        verdict.font = Font(color=COLOR_DANGER_FG)
        findings.cell(row=row_num, column=6).alignment = wrap

    if report.results:
        findings.auto_filter.ref = findings.dimensions

    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    wb.save(output)
    return output
