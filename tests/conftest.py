"""
tests/conftest.py - pytest 공통 픽스처

AWS API 모킹과 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(mock_rds_client, make_fetcher):
        # mock_rds_client: 페이지네이터가 설정된 RDS client MagicMock
        # make_fetcher: 페이지 응답으로 ParameterFetcher 생성
        pass
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock, patch

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


# =============================================================================
# 환경 설정
# =============================================================================

_AUDIT_ENV_KEYS = (
    "SNS_TOPIC_ARN",
    "LOG_LEVEL",
    "ENGINE",
    "AUDIT_MAX_WORKERS",
    "AUDIT_SWEEP_PURPOSE",
    "AUDIT_CHECK_PURPOSE",
    "AUDIT_INCLUDE_CLUSTER_GROUPS",
    "AUDIT_CONNECT_TIMEOUT",
    "AUDIT_READ_TIMEOUT",
    "AUDIT_MAX_ATTEMPTS",
)


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """테스트 환경 설정"""
    # 테스트용 환경 변수 설정
    monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-northeast-2")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")

    # 실행 환경의 감사 설정이 테스트에 섞이지 않도록 제거
    for key in _AUDIT_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)

    yield


# =============================================================================
# AWS 모킹 픽스처
# =============================================================================


@pytest.fixture
def mock_boto3_session():
    """boto3.Session 모킹"""
    with patch("boto3.Session") as mock_session_class:
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session

        # 기본 클라이언트 설정
        mock_session.client.return_value = MagicMock()
        mock_session.region_name = "ap-northeast-2"

        yield mock_session


def set_paginated(client: MagicMock, pages_by_operation: Dict[str, List[Dict[str, Any]]]) -> MagicMock:
    """get_paginator(operation).paginate()가 operation별 페이지 목록을 반환하도록 설정

    각 호출마다 전달된 kwargs는 client.paginate_calls[operation]에 기록됩니다.
    """
    calls: Dict[str, List[Dict[str, Any]]] = {}

    def get_paginator(operation: str):
        paginator = MagicMock()

        def paginate(**kwargs):
            calls.setdefault(operation, []).append(kwargs)
            return iter(pages_by_operation.get(operation, [{}]))

        paginator.paginate.side_effect = paginate
        return paginator

    client.get_paginator.side_effect = get_paginator
    client.paginate_calls = calls
    return client


@pytest.fixture
def mock_rds_client():
    """RDS 클라이언트 모킹 (페이지네이터는 빈 페이지 1개)"""
    return set_paginated(MagicMock(), {})


@pytest.fixture
def make_fetcher():
    """페이지 응답으로 ParameterFetcher를 만드는 팩토리"""
    from core.audit.fetcher import ParameterFetcher

    def _make(pages: Optional[Dict[str, List[Dict[str, Any]]]] = None, kms: Any = None, **single: Any):
        rds = set_paginated(MagicMock(), pages or {})
        for operation, response in single.items():
            getattr(rds, operation).return_value = response
        return ParameterFetcher(rds, kms=kms)

    return _make


# =============================================================================
# 유틸리티 함수
# =============================================================================


def create_mock_client_error(
    error_code: str,
    error_message: str = "Test error",
    operation_name: str = "TestOperation",
) -> Exception:
    """ClientError 생성 헬퍼"""
    from botocore.exceptions import ClientError

    return ClientError(
        {
            "Error": {
                "Code": error_code,
                "Message": error_message,
            }
        },
        operation_name,
    )


@pytest.fixture
def client_error():
    """ClientError 팩토리"""
    return create_mock_client_error


# =============================================================================
# moto 통합 (선택적)
# =============================================================================

try:
    import moto

    HAS_MOTO = True

    @pytest.fixture
    def aws_credentials(monkeypatch):
        """moto 사용 시 AWS 자격 증명 설정"""
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
        monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
        monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-northeast-2")

    @pytest.fixture
    def moto_rds(aws_credentials):
        """moto를 사용한 RDS 모킹"""
        with moto.mock_aws():
            import boto3

            rds = boto3.client("rds", region_name="ap-northeast-2")
            yield rds

    @pytest.fixture
    def moto_sns(aws_credentials):
        """moto를 사용한 SNS 모킹 (토픽 1개 생성)"""
        with moto.mock_aws():
            import boto3

            sns = boto3.client("sns", region_name="ap-northeast-2")
            topic_arn = sns.create_topic(Name="rds-audit")["TopicArn"]
            yield sns, topic_arn

except ImportError:
    HAS_MOTO = False

    # moto가 설치되지 않은 경우 더미 픽스처
    @pytest.fixture
    def moto_rds():
        pytest.skip("moto not installed")

    @pytest.fixture
    def moto_sns():
        pytest.skip("moto not installed")
