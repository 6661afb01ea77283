"""
handlers/custom_rule.py - Config 커스텀 규칙 (기대값 모드)

ruleParameters({파라미터: 기대값})와 파라미터 그룹의 실제 값을 비교해
PutEvaluations로 결과를 보냅니다. 전송 실패는 로그만 남깁니다.

이벤트 형식:
    - EventBridge 경유: event["detail"]에 invokingEvent / ruleParameters / resultToken
    - Config 직접 호출: event 최상위에 같은 키
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from core.audit.evaluator import MAX_ANNOTATION_LENGTH, annotation, parse_expected_values
from core.audit.notifier import ConfigEvaluationSink
from core.audit.service import ComplianceAuditor
from core.audit.types import Compliance
from core.exceptions import EvaluationError

from .runtime import build_auditor, build_evaluation_sink, load_config

logger = logging.getLogger(__name__)

NOT_EVALUATED_ANNOTATION = "Resource type is not evaluated by this rule."


def _capture_time(value: str | None) -> datetime:
    if value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"configurationItemCaptureTime 형식 오류: {value}")
    return datetime.now(timezone.utc)


def process(event: dict[str, Any], auditor: ComplianceAuditor, sink: ConfigEvaluationSink) -> dict[str, Any]:
    """커스텀 규칙 평가

    Returns:
        전송한 평가 (compliance, annotation, submitted)
    """
    detail = event.get("detail") or event
    invoking_event = detail.get("invokingEvent") or "{}"
    if isinstance(invoking_event, str):
        invoking_event = json.loads(invoking_event)

    item = invoking_event.get("configurationItem") or {}
    resource_type = item.get("resourceType", "")
    resource_id = item.get("resourceId", "")

    try:
        expected = parse_expected_values(detail.get("ruleParameters"))
        result = auditor.evaluate_expected_one(resource_id, resource_type, expected)
    except EvaluationError as e:
        logger.error(f"ruleParameters 오류: {e}")
        compliance = Compliance.NON_COMPLIANT
        text = f"Parameter check error: {e}"[:MAX_ANNOTATION_LENGTH]
    else:
        if result is None:
            compliance, text = Compliance.NOT_APPLICABLE, NOT_EVALUATED_ANNOTATION
        else:
            compliance, text = result.compliance, annotation(result)

    submitted = sink.put_evaluation(
        resource_type,
        resource_id,
        compliance,
        text,
        _capture_time(item.get("configurationItemCaptureTime")),
        detail.get("resultToken", ""),
    )
    logger.info(f"{resource_id}: {compliance.value} - {text}")
    return {"compliance": compliance.value, "annotation": text, "submitted": submitted}


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    config = load_config()
    logger.debug(f"수신 이벤트: {event}")
    return process(event, build_auditor(config), build_evaluation_sink(config))
