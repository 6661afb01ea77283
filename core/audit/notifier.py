"""
core/audit/notifier.py - 알림/평가 결과 전송 어댑터

- render_*: FindingSet / AuditReport / 치명적 오류를 (subject, body)로 변환
- SnsNotifier: SNS Publish (실패 시 PublishError)
- ConfigEvaluationSink: AWS Config PutEvaluations (실패 시 SubmitError)

본문은 항상 리소스 식별자, 엔진(알려진 경우), 순서가 유지된 이슈 메시지, 시각을 포함합니다.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import PublishError, SubmitError, format_error_for_user

from .types import AuditReport, Compliance, EngineType, FindingSet, ResourceKind

logger = logging.getLogger(__name__)

# SNS Subject 최대 길이
MAX_SUBJECT_LENGTH = 100

_VIOLATION = "[NG]"
_CONFIRMATION = "[OK]"

_CONSOLE_PATHS = {
    ResourceKind.INSTANCE: "dbinstance:id={id}",
    ResourceKind.CLUSTER: "dbcluster:id={id}",
    ResourceKind.PARAMETER_GROUP: "parameter-groups",
}


@dataclass(frozen=True)
class Notification:
    """렌더링된 알림"""

    subject: str
    body: str


def trim_subject(subject: str, limit: int = MAX_SUBJECT_LENGTH) -> str:
    """SNS Subject 제약에 맞게 정리 (줄바꿈 제거, 길이 제한)"""
    single_line = " ".join(subject.split())
    if len(single_line) > limit:
        return single_line[: limit - 3] + "..."
    return single_line


def _timestamp(value: datetime | None = None) -> str:
    return (value or datetime.now(timezone.utc)).isoformat()


def render_finding_set(
    finding_set: FindingSet,
    rule_name: str | None = None,
    region: str | None = None,
) -> Notification:
    """단일 리소스 평가 결과 알림"""
    resource = finding_set.resource
    lines = [
        "RDS encryption audit detected configuration issues.",
        "",
        "Details:",
        f"  Resource: {resource.identifier} ({resource.kind.value})",
    ]
    if finding_set.engine != EngineType.UNKNOWN:
        lines.append(f"  Engine: {finding_set.engine.value}")
    if rule_name:
        lines.append(f"  Rule: {rule_name}")
    lines.append(f"  Compliance: {finding_set.compliance.value}")
    lines.append(f"  Timestamp: {_timestamp(finding_set.evaluated_at)}")
    if region:
        lines.append(f"  Region: {region}")
    if finding_set.associated:
        lines.append(f"  Associated resources: {', '.join(sorted(finding_set.associated))}")

    lines += ["", "Findings:"]
    for finding in finding_set.findings:
        mark = _VIOLATION if finding.is_violation else _CONFIRMATION
        lines.append(f"  {mark} {finding.message}")

    if region:
        path = _CONSOLE_PATHS[resource.kind].format(id=resource.identifier)
        lines += ["", "Console:", f"  https://console.aws.amazon.com/rds/home?region={region}#{path}"]

    return Notification(
        subject=trim_subject(f"RDS Encryption Audit Alert - {resource.identifier}"),
        body="\n".join(lines),
    )


def render_report(report: AuditReport, region: str | None = None) -> Notification:
    """스윕 보고서 알림 (JSON 본문)"""
    body = {
        "reportType": "Scheduled RDS Parameter Group Audit",
        "region": region,
        **report.to_dict(),
    }
    subject = f"[SECURITY AUDIT] RDS Parameter Group Encryption Issues Detected ({report.total} groups affected)"
    return Notification(subject=trim_subject(subject), body=json.dumps(body, indent=2, ensure_ascii=False))


def render_error(error: Exception, region: str | None = None) -> Notification:
    """스윕 실패 알림 (JSON 본문)"""
    body = {
        "reportType": "RDS Parameter Group Audit Error",
        "timestamp": _timestamp(),
        "region": region,
        "error": format_error_for_user(error),
        "errorType": error.__class__.__name__,
    }
    return Notification(
        subject="[ERROR] RDS Parameter Group Audit Failed",
        body=json.dumps(body, indent=2, ensure_ascii=False),
    )


def render_violation(rule_name: str, resource_id: str, compliance: str) -> Notification:
    """Config 위반 이벤트 요약 알림 (Step Functions 경로)"""
    body = "\n".join(
        [
            "RDS parameter group encryption setting violation detected.",
            f"Rule: {rule_name}",
            f"Resource: {resource_id}",
            f"Compliance: {compliance}",
        ]
    )
    return Notification(subject=trim_subject(f"RDS Parameter Group Compliance Violation: {resource_id}"), body=body)


class SnsNotifier:
    """SNS 알림 전송기

    Args:
        sns: boto3 SNS client
        topic_arn: 대상 토픽. None이면 전송하지 않고 경고만 남깁니다.
    """

    def __init__(self, sns: Any, topic_arn: str | None):
        self._sns = sns
        self.topic_arn = topic_arn

    def publish(self, subject: str, body: str) -> str | None:
        """알림 전송

        Returns:
            SNS MessageId. 토픽이 설정되지 않았으면 None

        Raises:
            PublishError: 전송 실패
        """
        if not self.topic_arn:
            logger.warning("SNS_TOPIC_ARN이 설정되지 않아 알림을 생략합니다")
            return None

        try:
            response = self._sns.publish(TopicArn=self.topic_arn, Subject=trim_subject(subject), Message=body)
        except (ClientError, BotoCoreError) as e:
            raise PublishError(self.topic_arn, format_error_for_user(e), cause=e) from e

        message_id = response.get("MessageId")
        logger.info(f"SNS 알림 전송 완료: {message_id}")
        return message_id

    def send(self, notification: Notification) -> str | None:
        return self.publish(notification.subject, notification.body)


class ConfigEvaluationSink:
    """AWS Config 평가 결과 전송기 (커스텀 규칙용)

    전송 실패는 로그만 남기고 호출자에게 전파하지 않습니다.

    Args:
        config_client: boto3 Config client
    """

    def __init__(self, config_client: Any):
        self._config = config_client

    def put_evaluation(
        self,
        resource_type: str,
        resource_id: str,
        compliance: Compliance,
        annotation: str,
        ordering_timestamp: datetime,
        result_token: str,
    ) -> bool:
        """평가 결과 1건 전송

        Returns:
            전송 성공 여부
        """
        try:
            self.submit(resource_type, resource_id, compliance, annotation, ordering_timestamp, result_token)
        except SubmitError as e:
            logger.error(f"평가 결과 전송 실패: {e}")
            return False
        return True

    def submit(
        self,
        resource_type: str,
        resource_id: str,
        compliance: Compliance,
        annotation: str,
        ordering_timestamp: datetime,
        result_token: str,
    ) -> None:
        """평가 결과 1건 전송

        Raises:
            SubmitError: 전송 실패
        """
        try:
            self._config.put_evaluations(
                Evaluations=[
                    {
                        "ComplianceResourceType": resource_type,
                        "ComplianceResourceId": resource_id,
                        "ComplianceType": compliance.value,
                        "Annotation": annotation,
                        "OrderingTimestamp": ordering_timestamp,
                    }
                ],
                ResultToken=result_token,
            )
        except (ClientError, BotoCoreError) as e:
            raise SubmitError(resource_id, format_error_for_user(e), cause=e) from e
        logger.info(f"평가 결과 전송 완료: {resource_id} = {compliance.value}")
