"""
handlers/violation_summary.py - Config 위반 이벤트 요약 (Step Functions)

Config 위반 이벤트를 다음 단계(notify)가 보낼 {subject, message}로 변환합니다.
API 호출 없음.
"""

from __future__ import annotations

from typing import Any

from core.audit.notifier import render_violation


def handler(event: dict[str, Any], context: Any) -> dict[str, str]:
    detail = (event or {}).get("detail") or {}
    notification = render_violation(
        rule_name=detail.get("configRuleName") or "UnknownRule",
        resource_id=detail.get("resourceId") or "UnknownResource",
        compliance=(detail.get("newEvaluationResult") or {}).get("complianceType") or "NON_COMPLIANT",
    )
    return {"subject": notification.subject, "message": notification.body}
