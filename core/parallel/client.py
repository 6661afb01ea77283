"""
core/parallel/client.py - boto3 client 생성 헬퍼

Retry(adaptive 모드) + 타임아웃이 설정된 boto3 client를 생성합니다.
모든 외부 호출은 이 헬퍼로 만든 client를 통하므로, 응답이 없는 호출은
botocore 타임아웃 예외로 끝나고 FetchError로 변환됩니다.

Example:
    from core.parallel.client import get_client

    rds = get_client(session, "rds", region_name="ap-northeast-2", config=audit_config)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, cast

if TYPE_CHECKING:
    import boto3

    from core.config import AuditConfig

# Retry mode 타입 (botocore TypedDict와 호환)
RetryMode = Literal["legacy", "standard", "adaptive"]

DEFAULT_RETRY_MODE: RetryMode = "adaptive"  # adaptive: 동적 조정, standard: 고정
DEFAULT_MAX_POOL_CONNECTIONS = 25  # AUDIT_MAX_WORKERS 이상 권장


def get_client(
    session: boto3.Session,
    service_name: str,
    region_name: str | None = None,
    config: AuditConfig | None = None,
    retry_mode: RetryMode = DEFAULT_RETRY_MODE,
    **kwargs: Any,
) -> Any:
    """Retry/타임아웃이 적용된 boto3 client 생성

    Args:
        session: boto3 Session
        service_name: AWS 서비스 이름 (rds, sns, config, kms)
        region_name: 리전 (None이면 config.region, 그것도 없으면 세션 기본값)
        config: 감사 설정 (타임아웃/최대 시도 횟수). None이면 기본값
        retry_mode: 재시도 모드 ('adaptive' 또는 'standard')
        **kwargs: session.client()에 전달할 추가 인자

    Returns:
        boto3 client
    """
    from botocore.config import Config

    from core.config import AuditConfig

    settings = config or AuditConfig()
    max_pool_connections = max(DEFAULT_MAX_POOL_CONNECTIONS, settings.max_workers)

    botocore_config = Config(
        retries={"max_attempts": settings.max_attempts, "mode": retry_mode},  # pyright: ignore[reportArgumentType]
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
        max_pool_connections=max_pool_connections,
    )

    # cast to Any to bypass boto3-stubs Literal type requirements
    return session.client(  # pyright: ignore[reportCallIssue]
        cast(Any, service_name),
        region_name=region_name or settings.region,
        config=botocore_config,
        **kwargs,
    )
