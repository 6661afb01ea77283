"""
cli/ui/console.py - Rich 콘솔 유틸리티

CLI 출력(메시지, 테이블, JSON)과 RichHandler 로깅 설정을 제공합니다.
"""

import json
import logging
import platform

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from core.audit.types import AuditReport, Compliance, FindingSet
from core.log import quiet_noisy_loggers


def get_console() -> Console:
    """Rich Console 인스턴스를 생성하고 반환합니다."""
    is_windows = platform.system().lower() == "windows"

    return Console(
        color_system="auto",
        highlight=True,
        soft_wrap=True,
        markup=True,
        emoji=not is_windows,
    )


# 전역 콘솔 인스턴스
console = get_console()


def get_logger(name: str = "core", level: int = logging.INFO) -> logging.Logger:
    """Rich 핸들러가 설정된 logger를 반환합니다.

    Args:
        name: logger 이름 (기본값: "core" - 감사 엔진 전체)
        level: 로깅 레벨

    Returns:
        logging.Logger: 설정된 logger 인스턴스
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    quiet_noisy_loggers()

    # 이미 핸들러가 설정되어 있으면 반환
    if logger.handlers:
        return logger

    handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


# =============================================================================
# 표준 출력 스타일 (이모지 없이 Rich 스타일만 사용)
# =============================================================================

SYMBOL_SUCCESS = "✓"
SYMBOL_ERROR = "✗"
SYMBOL_WARNING = "!"
SYMBOL_INFO = "•"

_COMPLIANCE_STYLES = {
    Compliance.COMPLIANT: "green",
    Compliance.NON_COMPLIANT: "red",
    Compliance.NOT_APPLICABLE: "dim",
}


def print_success(message: str) -> None:
    """성공 메시지 출력 (초록색 체크마크)"""
    console.print(f"[green]{SYMBOL_SUCCESS} {escape(message)}[/green]")


def print_error(message: str) -> None:
    """에러 메시지 출력 (빨간색 X)"""
    console.print(f"[red]{SYMBOL_ERROR} {escape(message)}[/red]")


def print_warning(message: str) -> None:
    """경고 메시지 출력 (노란색 경고)"""
    console.print(f"[yellow]{SYMBOL_WARNING} {escape(message)}[/yellow]")


def print_info(message: str) -> None:
    """정보 메시지 출력 (파란색 정보)"""
    console.print(f"[blue]{SYMBOL_INFO} {escape(message)}[/blue]")


def print_table(
    title: str,
    columns: list[str],
    rows: list[list],
) -> None:
    """테이블 형식으로 데이터를 출력합니다.

    Args:
        title: 테이블 제목
        columns: 컬럼 헤더 리스트
        rows: 행 데이터 리스트
    """
    table = Table(title=title, show_header=True, header_style="bold magenta")

    for column in columns:
        table.add_column(column)

    for row in rows:
        table.add_row(*[str(cell) for cell in row])

    console.print(table)


def print_json(data: object) -> None:
    """JSON 출력 (파이프/리다이렉트용으로 Rich 마크업 없이 출력)"""
    click.echo(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def compliance_label(compliance: Compliance) -> str:
    style = _COMPLIANCE_STYLES[compliance]
    return f"[{style}]{compliance.value}[/{style}]"


def print_finding_set(finding_set: FindingSet) -> None:
    """단일 리소스 평가 결과 출력"""
    resource = finding_set.resource
    console.print()
    label = escape(resource.label)
    console.print(f"[bold]{label}[/bold] ({finding_set.engine.value}) {compliance_label(finding_set.compliance)}")
    if finding_set.associated:
        console.print(f"  [dim]연관 리소스: {', '.join(sorted(finding_set.associated))}[/dim]")

    for finding in finding_set.findings:
        if finding.is_violation:
            console.print(f"  [red]{SYMBOL_ERROR}[/red] {escape(finding.message)}", highlight=False)
        else:
            console.print(f"  [green]{SYMBOL_SUCCESS}[/green] {escape(finding.message)}", highlight=False)


def print_report(report: AuditReport) -> None:
    """스윕 보고서 출력"""
    if not report.has_issues:
        print_success(f"위반 없음 (파라미터 그룹 {report.evaluated}개 평가)")
        return

    rows = [
        [
            escape(r.resource.label),
            r.engine.value,
            ", ".join(sorted(r.associated)) or "-",
            "\n".join(escape(f.message) for f in r.violations),
        ]
        for r in report.results
    ]
    print_table(
        f"위반 파라미터 그룹 {report.total}개 / 평가 {report.evaluated}개",
        ["파라미터 그룹", "엔진", "연관 리소스", "이슈"],
        rows,
    )
