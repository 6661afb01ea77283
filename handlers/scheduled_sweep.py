"""
handlers/scheduled_sweep.py - 스케줄 스윕

전체 파라미터 그룹을 스윕하고 위반이 있으면 JSON 보고서를 SNS로 보냅니다.

- 보고서 전송 실패는 로그만 남기고 계산된 보고서를 그대로 반환합니다.
- 스윕 자체가 실패하면 오류 알림을 보낸 뒤 예외를 다시 발생시킵니다 (다음 스케줄에서 처음부터 재실행).
"""

from __future__ import annotations

import logging
from typing import Any

from core.audit.notifier import SnsNotifier, render_error, render_report
from core.audit.service import ComplianceAuditor
from core.config import AuditConfig
from core.exceptions import PublishError

from .runtime import build_auditor, build_notifier, load_config

logger = logging.getLogger(__name__)


def process(auditor: ComplianceAuditor, notifier: SnsNotifier, config: AuditConfig) -> dict[str, Any]:
    """스윕 실행 및 보고

    Returns:
        보고서 요약 (evaluated, total, notified)

    Raises:
        Exception: 스윕 실패 (오류 알림 전송 후 재발생)
    """
    try:
        report = auditor.run_sweep()
    except Exception as e:
        logger.error(f"스윕 실패: {e}")
        try:
            notifier.send(render_error(e, region=config.region))
        except PublishError as publish_error:
            logger.error(f"오류 알림 전송 실패: {publish_error}")
        raise

    notified = False
    if report.has_issues:
        try:
            notified = notifier.send(render_report(report, region=config.region)) is not None
        except PublishError as e:
            # 보고서는 이미 계산됨 - 재집계하지 않음
            logger.error(f"보고서 전송 실패: {e}")
    else:
        logger.info("암호화 위반이 있는 파라미터 그룹이 없습니다")

    return {"evaluated": report.evaluated, "total": report.total, "notified": notified}


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    config = load_config()
    logger.info("스케줄 스윕 시작")
    logger.debug(f"수신 이벤트: {event}")
    return process(build_auditor(config), build_notifier(config), config)
