"""
core/config.py - 감사 실행 설정

Lambda 환경 변수 또는 CLI 옵션에서 감사 설정을 구성합니다.

Usage:
    from core.config import AuditConfig

    config = AuditConfig.from_env()
    if config.sns_topic_arn:
        ...

환경 변수:
    SNS_TOPIC_ARN: 알림 대상 SNS 토픽 (없으면 알림 생략)
    LOG_LEVEL: DEBUG / INFO / WARNING / ERROR (기본: INFO)
    ENGINE: 엔진을 알 수 없을 때 사용할 기본 엔진 (기본: unknown)
    AWS_REGION: 리전 (알림 본문의 콘솔 링크용)
    AUDIT_MAX_WORKERS: 스윕 동시 평가 수 (기본: 1 = 순차)
    AUDIT_SWEEP_PURPOSE: 스윕 규칙 카탈로그 (기본: encryption)
    AUDIT_CHECK_PURPOSE: 단일 리소스 점검 카탈로그 (기본: posture)
    AUDIT_INCLUDE_CLUSTER_GROUPS: 클러스터 파라미터 그룹 스윕 포함 여부 (기본: true)
    AUDIT_CONNECT_TIMEOUT / AUDIT_READ_TIMEOUT: API 호출 타임아웃 (초)
    AUDIT_MAX_ATTEMPTS: API 호출 최대 시도 횟수
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from core.audit.catalog import Purpose
from core.exceptions import ConfigError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

_VERSION_FILE = Path(__file__).resolve().parent.parent / "version.txt"


def get_version() -> str:
    """version.txt에서 버전 문자열을 읽어 반환"""
    try:
        return _VERSION_FILE.read_text(encoding="utf-8").strip() or "0.0.0"
    except OSError:
        return "0.0.0"


@dataclass
class AuditConfig:
    """감사 실행 설정

    Attributes:
        sns_topic_arn: 알림 대상 SNS 토픽 ARN
        log_level: 로깅 레벨
        default_engine: 엔진 정보가 없을 때 사용할 기본 엔진
        region: AWS 리전
        max_workers: 스윕 동시 평가 수 (1이면 순차)
        sweep_purpose: 스윕에 사용할 규칙 카탈로그
        check_purpose: 단일 리소스 점검에 사용할 규칙 카탈로그
        include_cluster_groups: 클러스터 파라미터 그룹 스윕 포함 여부
        connect_timeout: API 연결 타임아웃 (초)
        read_timeout: API 읽기 타임아웃 (초)
        max_attempts: API 최대 시도 횟수
    """

    sns_topic_arn: str | None = None
    log_level: str = "INFO"
    default_engine: str = "unknown"
    region: str | None = None
    max_workers: int = 1
    sweep_purpose: Purpose = Purpose.ENCRYPTION
    check_purpose: Purpose = Purpose.POSTURE
    include_cluster_groups: bool = True
    connect_timeout: int = 10
    read_timeout: int = 30
    max_attempts: int = 5

    def __post_init__(self) -> None:
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError("LOG_LEVEL", f"지원하지 않는 레벨: {self.log_level}")
        if self.max_workers < 1:
            raise ConfigError("AUDIT_MAX_WORKERS", f"1 이상이어야 합니다: {self.max_workers}")
        # core/parallel과 동일한 상한
        if self.max_workers > 100:
            self.max_workers = 100
        for key, value in (
            ("AUDIT_CONNECT_TIMEOUT", self.connect_timeout),
            ("AUDIT_READ_TIMEOUT", self.read_timeout),
            ("AUDIT_MAX_ATTEMPTS", self.max_attempts),
        ):
            if value < 1:
                raise ConfigError(key, f"1 이상이어야 합니다: {value}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AuditConfig:
        """환경 변수에서 AuditConfig 생성

        Args:
            environ: 환경 변수 매핑 (None이면 os.environ)

        Returns:
            AuditConfig 인스턴스

        Raises:
            ConfigError: 값 형식이 잘못된 경우
        """
        env = os.environ if environ is None else environ

        return cls(
            sns_topic_arn=env.get("SNS_TOPIC_ARN") or None,
            log_level=env.get("LOG_LEVEL", "INFO"),
            default_engine=env.get("ENGINE") or "unknown",
            region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or None,
            max_workers=_int(env, "AUDIT_MAX_WORKERS", 1),
            sweep_purpose=_purpose(env, "AUDIT_SWEEP_PURPOSE", Purpose.ENCRYPTION),
            check_purpose=_purpose(env, "AUDIT_CHECK_PURPOSE", Purpose.POSTURE),
            include_cluster_groups=_bool(env, "AUDIT_INCLUDE_CLUSTER_GROUPS", True),
            connect_timeout=_int(env, "AUDIT_CONNECT_TIMEOUT", 10),
            read_timeout=_int(env, "AUDIT_READ_TIMEOUT", 30),
            max_attempts=_int(env, "AUDIT_MAX_ATTEMPTS", 5),
        )


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(key, f"정수가 아닙니다: {raw!r}", cause=e) from e


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(key, f"불리언 값이 아닙니다: {raw!r}")


def _purpose(env: Mapping[str, str], key: str, default: Purpose) -> Purpose:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return Purpose(raw.strip().lower())
    except ValueError as e:
        choices = ", ".join(p.value for p in Purpose)
        raise ConfigError(key, f"{raw!r} (선택: {choices})", cause=e) from e
