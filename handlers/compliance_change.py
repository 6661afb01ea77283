"""
handlers/compliance_change.py - Config 규칙 준수 상태 변경 이벤트 처리

EventBridge "Config Rules Compliance Change" 이벤트를 받아 NON_COMPLIANT인 경우에만
리소스를 상세 점검(POSTURE 카탈로그 기본)하고 결과를 SNS로 알립니다.

알림 전송 실패(PublishError)는 다시 발생시켜 Lambda 재시도/DLQ로 넘깁니다.
"""

from __future__ import annotations

import logging
from typing import Any

from core.audit.notifier import SnsNotifier, render_finding_set
from core.audit.service import ComplianceAuditor, RuleContext
from core.config import AuditConfig

from .runtime import build_auditor, build_notifier, load_config

logger = logging.getLogger(__name__)


def process(
    event: dict[str, Any],
    auditor: ComplianceAuditor,
    notifier: SnsNotifier,
    config: AuditConfig,
) -> dict[str, Any]:
    """준수 상태 변경 이벤트 처리

    Args:
        event: EventBridge 이벤트
        auditor: ComplianceAuditor
        notifier: SnsNotifier
        config: 감사 설정

    Returns:
        처리 결과 요약

    Raises:
        PublishError: 알림 전송 실패
    """
    detail = event.get("detail") or {}
    compliance_type = (detail.get("newEvaluationResult") or {}).get("complianceType")

    if compliance_type != "NON_COMPLIANT":
        logger.info(f"준수 상태이므로 건너뜁니다: {compliance_type}")
        return {"status": "skipped", "reason": f"complianceType={compliance_type}"}

    resource_id = detail.get("resourceId", "")
    resource_type = detail.get("resourceType", "")
    rule_name = detail.get("configRuleName")
    logger.info(f"비준수 리소스 처리: {resource_type} {resource_id} (rule={rule_name})")

    result = auditor.evaluate_one(resource_id, resource_type, RuleContext(rule_name=rule_name))
    if result is None:
        return {"status": "skipped", "reason": f"unsupported resourceType={resource_type}"}

    if result.findings:
        notifier.send(render_finding_set(result, rule_name=rule_name, region=config.region))

    logger.info(f"처리 완료: {resource_id} ({result.compliance.value}, 위반 {len(result.violations)}건)")
    return {
        "status": "notified" if result.findings else "clean",
        "resourceId": resource_id,
        "compliance": result.compliance.value,
        "issues": len(result.violations),
    }


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    config = load_config()
    logger.info(f"요청 시작: {getattr(context, 'aws_request_id', '-')}")
    logger.debug(f"수신 이벤트: {event}")
    return process(event, build_auditor(config), build_notifier(config), config)
