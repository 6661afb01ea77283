# cli/ui - 콘솔 출력 컴포넌트 (rich)
"""
CLI 출력 모듈

감사 결과(FindingSet, AuditReport)와 규칙 카탈로그를 Rich 콘솔로 출력합니다.
"""

from .console import (
    SYMBOL_ERROR,
    SYMBOL_INFO,
    SYMBOL_SUCCESS,
    SYMBOL_WARNING,
    console,
    get_console,
    get_logger,
    print_error,
    print_finding_set,
    print_info,
    print_json,
    print_report,
    print_success,
    print_table,
    print_warning,
)

__all__: list[str] = [
    "console",
    "get_console",
    "get_logger",
    # 표준 출력 심볼
    "SYMBOL_SUCCESS",
    "SYMBOL_ERROR",
    "SYMBOL_WARNING",
    "SYMBOL_INFO",
    # 메시지 출력
    "print_success",
    "print_error",
    "print_warning",
    "print_info",
    "print_table",
    "print_json",
    # 감사 결과
    "print_finding_set",
    "print_report",
]
