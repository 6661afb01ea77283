"""
handlers/notify.py - 알림 전송 (Step Functions 마지막 단계)

이전 단계가 만든 {subject, message}를 SNS로 보냅니다.
토픽이 설정되지 않았으면 오류 로그만 남기고, 전송 실패는 다시 발생시킵니다.
"""

from __future__ import annotations

import logging
from typing import Any

from core.audit.notifier import SnsNotifier

from .runtime import build_notifier, load_config

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "RDS Config Violation"
DEFAULT_MESSAGE = "Config violation detected"


def process(event: dict[str, Any], notifier: SnsNotifier) -> dict[str, Any]:
    """알림 전송

    Raises:
        PublishError: 전송 실패
    """
    event = event or {}
    if not notifier.topic_arn:
        logger.error("SNS_TOPIC_ARN is not set")
        return {"published": False}

    message_id = notifier.publish(event.get("subject") or DEFAULT_SUBJECT, event.get("message") or DEFAULT_MESSAGE)
    return {"published": True, "messageId": message_id}


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    config = load_config()
    return process(event, build_notifier(config))
