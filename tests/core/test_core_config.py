"""
tests/core/test_core_config.py - core/config.py 테스트
"""

import dataclasses

import pytest

from core.audit.catalog import Purpose
from core.config import AuditConfig, get_version
from core.exceptions import ConfigError


class TestGetVersion:
    """get_version 함수 테스트"""

    def test_version_format(self):
        """버전 형식 확인 (semantic versioning)"""
        parts = get_version().split(".")

        assert len(parts) >= 2, "버전은 최소 x.y 형식이어야 함"
        for part in parts:
            assert part.isdigit(), f"버전 파트는 숫자여야 함: {part}"


class TestAuditConfigDefaults:
    """AuditConfig 기본값 테스트"""

    def test_default_values(self):
        config = AuditConfig()

        assert config.sns_topic_arn is None
        assert config.log_level == "INFO"
        assert config.default_engine == "unknown"
        assert config.max_workers == 1
        assert config.sweep_purpose == Purpose.ENCRYPTION
        assert config.check_purpose == Purpose.POSTURE
        assert config.include_cluster_groups is True

    def test_from_empty_env(self):
        """환경 변수가 없으면 기본값"""
        config = AuditConfig.from_env({})

        assert config == AuditConfig()

    def test_replace_revalidates(self):
        """dataclasses.replace도 검증을 거침"""
        with pytest.raises(ConfigError):
            dataclasses.replace(AuditConfig(), max_workers=0)


class TestAuditConfigFromEnv:
    """AuditConfig.from_env 테스트"""

    def test_all_values(self):
        env = {
            "SNS_TOPIC_ARN": "arn:aws:sns:ap-northeast-2:123456789012:audit",
            "LOG_LEVEL": "debug",
            "ENGINE": "postgres",
            "AWS_REGION": "ap-northeast-2",
            "AUDIT_MAX_WORKERS": "8",
            "AUDIT_SWEEP_PURPOSE": "POSTURE",
            "AUDIT_CHECK_PURPOSE": "baseline",
            "AUDIT_INCLUDE_CLUSTER_GROUPS": "no",
            "AUDIT_CONNECT_TIMEOUT": "5",
            "AUDIT_READ_TIMEOUT": "15",
            "AUDIT_MAX_ATTEMPTS": "3",
        }

        config = AuditConfig.from_env(env)

        assert config.sns_topic_arn == env["SNS_TOPIC_ARN"]
        assert config.log_level == "DEBUG"
        assert config.default_engine == "postgres"
        assert config.region == "ap-northeast-2"
        assert config.max_workers == 8
        assert config.sweep_purpose == Purpose.POSTURE
        assert config.check_purpose == Purpose.BASELINE
        assert config.include_cluster_groups is False
        assert (config.connect_timeout, config.read_timeout, config.max_attempts) == (5, 15, 3)

    def test_default_region_fallback(self):
        assert AuditConfig.from_env({"AWS_DEFAULT_REGION": "us-west-2"}).region == "us-west-2"

    def test_empty_topic_is_none(self):
        assert AuditConfig.from_env({"SNS_TOPIC_ARN": ""}).sns_topic_arn is None

    def test_max_workers_capped(self):
        assert AuditConfig.from_env({"AUDIT_MAX_WORKERS": "500"}).max_workers == 100

    def test_uses_os_environ(self, monkeypatch):
        monkeypatch.setenv("ENGINE", "mysql")

        assert AuditConfig.from_env().default_engine == "mysql"

    @pytest.mark.parametrize(
        "key,value",
        [
            ("LOG_LEVEL", "TRACE"),
            ("AUDIT_MAX_WORKERS", "many"),
            ("AUDIT_MAX_WORKERS", "0"),
            ("AUDIT_SWEEP_PURPOSE", "cost"),
            ("AUDIT_INCLUDE_CLUSTER_GROUPS", "maybe"),
            ("AUDIT_READ_TIMEOUT", "-1"),
        ],
    )
    def test_invalid_values(self, key, value):
        with pytest.raises(ConfigError) as exc_info:
            AuditConfig.from_env({key: value})

        assert exc_info.value.config_key == key
