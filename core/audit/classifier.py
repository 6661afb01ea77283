"""
core/audit/classifier.py - 리소스 분류기

트리거(Config 규칙 이벤트, RDS EventBridge 이벤트)가 전달하는 리소스 타입 문자열을
ResourceKind(+ 파라미터 그룹 종류)로 매핑하고, 평가에 사용할 엔진을 결정합니다.

알 수 없는 리소스 타입은 None을 반환하며, 호출자는 이를 "평가 생략"으로 처리합니다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType

from .types import EngineType, GroupKind, ResourceKind, ResourceReference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Classification:
    """리소스 타입 분류 결과

    Attributes:
        kind: 리소스 종류
        group_kind: 파라미터 그룹인 경우 인스턴스용/클러스터용
    """

    kind: ResourceKind
    group_kind: GroupKind | None = None

    def reference(self, identifier: str, engine: EngineType | None = None) -> ResourceReference:
        return ResourceReference(kind=self.kind, identifier=identifier, engine=engine, group_kind=self.group_kind)


_INSTANCE = Classification(ResourceKind.INSTANCE)
_CLUSTER = Classification(ResourceKind.CLUSTER)
_INSTANCE_GROUP = Classification(ResourceKind.PARAMETER_GROUP, GroupKind.INSTANCE)
_CLUSTER_GROUP = Classification(ResourceKind.PARAMETER_GROUP, GroupKind.CLUSTER)

_RESOURCE_TYPES: MappingProxyType[str, Classification] = MappingProxyType(
    {
        # AWS Config resourceType
        "aws::rds::dbinstance": _INSTANCE,
        "aws::rds::dbcluster": _CLUSTER,
        "aws::rds::dbparametergroup": _INSTANCE_GROUP,
        "aws::rds::dbclusterparametergroup": _CLUSTER_GROUP,
        # RDS 이벤트 SourceType
        "db_instance": _INSTANCE,
        "db_cluster": _CLUSTER,
        "db_parameter_group": _INSTANCE_GROUP,
        "db_cluster_parameter_group": _CLUSTER_GROUP,
    }
)


def classify(resource_type: str | None) -> Classification | None:
    """리소스 타입 문자열 분류

    Args:
        resource_type: AWS::RDS::DBInstance, DB_PARAMETER_GROUP 등 (대소문자 무시)

    Returns:
        Classification. 지원하지 않는 타입이면 None
    """
    if not resource_type:
        return None
    result = _RESOURCE_TYPES.get(resource_type.strip().lower())
    if result is None:
        logger.debug(f"분류 대상 아님: {resource_type}")
    return result


def resolve_engine(
    instance_engine: str | None = None,
    event_engine: str | None = None,
    default: str | None = None,
) -> EngineType:
    """평가에 사용할 엔진 결정

    우선순위: 인스턴스 설명의 Engine > 이벤트 페이로드의 engine > 환경 변수 기본값.
    값은 소문자로 정규화한 뒤 EngineType으로 변환합니다.
    """
    for candidate in (instance_engine, event_engine, default):
        if candidate and candidate.strip():
            return EngineType.parse(candidate.strip().lower())
    return EngineType.UNKNOWN
