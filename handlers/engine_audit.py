"""
handlers/engine_audit.py - 엔진별 필수 파라미터 점검 (Step Functions)

입력: {"engine": "...", "instance": {DescribeDBInstances 1건}}
출력: {"subject": ..., "message": ..., "compliance": ...} (다음 단계 notify 입력)

인스턴스 식별자가 있으면 BASELINE 카탈로그로 실제 파라미터를 점검하고,
없으면 해당 엔진의 필수 항목 목록만 보고합니다.
"""

from __future__ import annotations

import logging
from typing import Any

from core.audit.catalog import Purpose, rules_for
from core.audit.classifier import resolve_engine
from core.audit.service import ComplianceAuditor, RuleContext
from core.config import AuditConfig

from .runtime import build_auditor, load_config

logger = logging.getLogger(__name__)


def process(event: dict[str, Any], auditor: ComplianceAuditor, config: AuditConfig) -> dict[str, Any]:
    instance = event.get("instance") or {}
    engine = resolve_engine(instance.get("Engine"), event.get("engine"), config.default_engine)
    checks = [rule.parameter for rule in rules_for(engine, Purpose.BASELINE)]
    subject = f"RDS Engine ({engine.value}) Parameter Audit"
    logger.info(f"엔진 점검 시작: {engine.value} (checks={','.join(checks)})")

    instance_id = instance.get("DBInstanceIdentifier")
    if not instance_id:
        message = f"Engine specific audit executed for {engine.value}. (checks={','.join(checks) or 'none'})"
        return {"subject": subject, "message": message, "compliance": "NOT_APPLICABLE"}

    result = auditor.evaluate_one(
        instance_id,
        "AWS::RDS::DBInstance",
        RuleContext(engine=event.get("engine"), purpose=Purpose.BASELINE),
    )
    if result is None:
        message = f"Instance {instance_id} was not evaluated."
        return {"subject": subject, "message": message, "compliance": "NOT_APPLICABLE"}

    lines = [f"Engine specific audit executed for {result.engine.value} ({instance_id}).", ""]
    if result.violations:
        lines.append("Issues:")
        lines += [f"  - {f.message}" for f in result.violations]
    else:
        lines.append(f"All baseline parameters are compliant. (checks={','.join(checks) or 'none'})")

    return {"subject": subject, "message": "\n".join(lines), "compliance": result.compliance.value}


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    config = load_config()
    logger.debug(f"수신 이벤트: {event}")
    return process(event, build_auditor(config), config)
