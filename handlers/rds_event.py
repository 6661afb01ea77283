"""
handlers/rds_event.py - RDS EventBridge 이벤트 처리

RDS 이벤트(SourceType: DB_INSTANCE / DB_CLUSTER / DB_PARAMETER_GROUP / DB_CLUSTER_PARAMETER_GROUP)의
대상 리소스를 ENCRYPTION 카탈로그로 점검하고, 위반이 있으면 SNS로 알립니다.
"""

from __future__ import annotations

import logging
from typing import Any

from core.audit.catalog import Purpose
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
    """RDS 이벤트 처리

    Raises:
        PublishError: 알림 전송 실패
    """
    detail = event.get("detail") or {}
    source_type = detail.get("SourceType")
    source_id = detail.get("SourceIdentifier")

    if not source_type or not source_id:
        logger.info("SourceType 또는 SourceIdentifier가 없어 건너뜁니다")
        return {"status": "skipped", "reason": "missing source"}

    logger.info(f"RDS 이벤트 처리: {source_type} {source_id}")
    result = auditor.evaluate_one(
        source_id,
        source_type,
        RuleContext(engine=detail.get("Engine"), purpose=Purpose.ENCRYPTION),
    )
    if result is None:
        return {"status": "skipped", "reason": f"unsupported SourceType={source_type}"}

    if not result.violations:
        logger.info(f"암호화 위반 없음: {source_id}")
        return {"status": "clean", "resourceId": source_id, "compliance": result.compliance.value}

    notifier.send(render_finding_set(result, region=config.region))
    logger.info(f"{source_id}: 위반 {len(result.violations)}건 알림 전송")
    return {
        "status": "notified",
        "resourceId": source_id,
        "compliance": result.compliance.value,
        "issues": len(result.violations),
    }


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    config = load_config()
    logger.debug(f"수신 이벤트: {event}")
    return process(event, build_auditor(config), build_notifier(config), config)
