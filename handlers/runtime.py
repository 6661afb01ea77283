"""
handlers/runtime.py - Lambda 공용 초기화

호출마다 환경 변수에서 설정을 읽고 client를 생성합니다.
모듈 전역 client를 두지 않으므로 각 핸들러의 process()는 주입된 객체만 사용합니다.
"""

from __future__ import annotations

import boto3

from core.audit.notifier import ConfigEvaluationSink, SnsNotifier
from core.audit.service import ComplianceAuditor
from core.config import AuditConfig
from core.log import configure_logging
from core.parallel import get_client


def load_config() -> AuditConfig:
    """환경 변수에서 설정을 읽고 로깅 레벨을 맞춤"""
    config = AuditConfig.from_env()
    configure_logging(config.log_level)
    return config


def create_session(config: AuditConfig) -> boto3.Session:
    return boto3.Session(region_name=config.region)


def build_auditor(config: AuditConfig, session: boto3.Session | None = None) -> ComplianceAuditor:
    return ComplianceAuditor.from_session(session or create_session(config), config)


def build_notifier(config: AuditConfig, session: boto3.Session | None = None) -> SnsNotifier:
    sns = get_client(session or create_session(config), "sns", config=config)
    return SnsNotifier(sns, config.sns_topic_arn)


def build_evaluation_sink(config: AuditConfig, session: boto3.Session | None = None) -> ConfigEvaluationSink:
    return ConfigEvaluationSink(get_client(session or create_session(config), "config", config=config))
