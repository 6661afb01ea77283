"""
core/audit/fetcher.py - RDS 인벤토리/파라미터 조회

파라미터 그룹의 사용자 설정 파라미터, 파라미터 그룹/인스턴스/클러스터 목록,
그리고 파라미터 그룹 -> 사용 리소스 역조회를 제공합니다.

목록 조회는 boto3 paginator 기반 제너레이터로 필요할 때마다 한 페이지씩 가져오며,
Marker가 더 이상 반환되지 않으면 종료됩니다. 빈 페이지도 그대로 건너뜁니다.

모든 botocore 예외(ClientError, 타임아웃 등)는 FetchError로 변환됩니다.

Example:
    fetcher = ParameterFetcher(get_client(session, "rds", config=config))

    for group in fetcher.iter_parameter_groups(GroupKind.INSTANCE):
        params = fetcher.fetch_parameters(group.name, group.kind)
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from core.exceptions import FetchError

from .types import (
    ClusterDescription,
    EngineType,
    GroupKind,
    InstanceDescription,
    Parameter,
    ParameterGroupInfo,
    ResourceReference,
)

logger = logging.getLogger(__name__)

# 기본 AWS 관리형 RDS 키 별칭
AWS_MANAGED_RDS_ALIAS = "alias/aws/rds"

# GroupKind별 API 이름 / 응답 키 / 요청 파라미터 이름
_GROUP_APIS: dict[GroupKind, dict[str, str]] = {
    GroupKind.INSTANCE: {
        "list": "describe_db_parameter_groups",
        "list_key": "DBParameterGroups",
        "params": "describe_db_parameters",
        "name_arg": "DBParameterGroupName",
    },
    GroupKind.CLUSTER: {
        "list": "describe_db_cluster_parameter_groups",
        "list_key": "DBClusterParameterGroups",
        "params": "describe_db_cluster_parameters",
        "name_arg": "DBClusterParameterGroupName",
    },
}


class ParameterFetcher:
    """RDS API 조회기

    rds client(필수)와 kms client(선택)를 주입받습니다.
    모듈 전역 client를 만들지 않으므로 테스트에서는 MagicMock을 넘기면 됩니다.

    Args:
        rds: boto3 RDS client
        kms: boto3 KMS client (None이면 KMS 키 관리 주체 조회를 생략)
    """

    def __init__(self, rds: Any, kms: Any = None):
        self._rds = rds
        self._kms = kms

    # -------------------------------------------------------------------------
    # 공통
    # -------------------------------------------------------------------------

    def _paginate(
        self,
        operation: str,
        result_key: str,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> Iterator[Any]:
        try:
            paginator = self._rds.get_paginator(operation)
            for page in paginator.paginate(**kwargs):
                yield from page.get(result_key) or []
        except (ClientError, BotoCoreError) as e:
            raise FetchError.from_client_error(operation, e, resource_id=resource_id) from e

    # -------------------------------------------------------------------------
    # 파라미터
    # -------------------------------------------------------------------------

    def fetch_parameters(
        self,
        group_name: str,
        group_kind: GroupKind = GroupKind.INSTANCE,
        source: str | None = "user",
    ) -> list[Parameter]:
        """파라미터 그룹의 파라미터 조회

        기본값은 사용자가 변경한 파라미터(Source=user)만 조회합니다.
        설정되지 않은 파라미터는 엔진 기본값이며, 규칙별 정책에 따라 평가됩니다.

        Args:
            group_name: 파라미터 그룹 이름
            group_kind: 인스턴스용 / 클러스터용
            source: user, engine-default, system 중 하나. None이면 전체

        Returns:
            Parameter 목록 (API 순서 유지)

        Raises:
            FetchError: API 호출 실패
        """
        api = _GROUP_APIS[group_kind]
        kwargs: dict[str, Any] = {api["name_arg"]: group_name}
        if source:
            kwargs["Source"] = source

        parameters = [
            Parameter.from_api(item)
            for item in self._paginate(api["params"], "Parameters", resource_id=group_name, **kwargs)
        ]
        logger.debug(f"{group_name}: 파라미터 {len(parameters)}개 조회 (source={source or 'all'})")
        return parameters

    def iter_parameter_groups(self, group_kind: GroupKind = GroupKind.INSTANCE) -> Iterator[ParameterGroupInfo]:
        """파라미터 그룹 목록 (페이지 단위 지연 조회)

        Raises:
            FetchError: API 호출 실패
        """
        api = _GROUP_APIS[group_kind]
        for item in self._paginate(api["list"], api["list_key"]):
            info = ParameterGroupInfo.from_api(item, group_kind)
            if info.name:
                yield info

    def describe_parameter_group(
        self,
        group_name: str,
        group_kind: GroupKind = GroupKind.INSTANCE,
    ) -> ParameterGroupInfo:
        """파라미터 그룹 1건 조회

        Raises:
            FetchError: API 호출 실패 또는 그룹 없음
        """
        api = _GROUP_APIS[group_kind]
        kwargs = {api["name_arg"]: group_name}
        for item in self._paginate(api["list"], api["list_key"], resource_id=group_name, **kwargs):
            return ParameterGroupInfo.from_api(item, group_kind)
        raise FetchError(api["list"], group_name, "DBParameterGroupNotFound", "parameter group not found")

    # -------------------------------------------------------------------------
    # 인스턴스 / 클러스터
    # -------------------------------------------------------------------------

    def iter_instances(self) -> Iterator[InstanceDescription]:
        """전체 DB 인스턴스 (페이지 단위 지연 조회)"""
        for db in self._paginate("describe_db_instances", "DBInstances"):
            yield InstanceDescription.from_api(db)

    def iter_clusters(self) -> Iterator[ClusterDescription]:
        """전체 DB 클러스터 (페이지 단위 지연 조회)"""
        for cluster in self._paginate("describe_db_clusters", "DBClusters"):
            yield ClusterDescription.from_api(cluster)

    def describe_instance(self, instance_id: str) -> InstanceDescription:
        """DB 인스턴스 1건 조회

        Raises:
            FetchError: API 호출 실패 또는 인스턴스 없음
        """
        try:
            response = self._rds.describe_db_instances(DBInstanceIdentifier=instance_id)
        except (ClientError, BotoCoreError) as e:
            raise FetchError.from_client_error("describe_db_instances", e, resource_id=instance_id) from e

        instances = response.get("DBInstances") or []
        if not instances:
            raise FetchError("describe_db_instances", instance_id, "DBInstanceNotFound", "instance not found")
        return InstanceDescription.from_api(instances[0])

    def describe_cluster(self, cluster_id: str) -> ClusterDescription:
        """DB 클러스터 1건 조회

        Raises:
            FetchError: API 호출 실패 또는 클러스터 없음
        """
        try:
            response = self._rds.describe_db_clusters(DBClusterIdentifier=cluster_id)
        except (ClientError, BotoCoreError) as e:
            raise FetchError.from_client_error("describe_db_clusters", e, resource_id=cluster_id) from e

        clusters = response.get("DBClusters") or []
        if not clusters:
            raise FetchError("describe_db_clusters", cluster_id, "DBClusterNotFoundFault", "cluster not found")
        return ClusterDescription.from_api(clusters[0])

    def associated_resources(
        self,
        group_name: str,
        group_kind: GroupKind = GroupKind.INSTANCE,
    ) -> list[ResourceReference]:
        """파라미터 그룹을 사용하는 인스턴스/클러스터 역조회

        호출할 때마다 인벤토리 전체를 선형 탐색합니다 (역인덱스 캐시 없음).
        인스턴스 수 x 인스턴스당 그룹 수에 비례하므로 수천 대 이상의 계정에서는 느려질 수 있습니다.

        Args:
            group_name: 파라미터 그룹 이름
            group_kind: INSTANCE면 인스턴스, CLUSTER면 클러스터를 탐색

        Returns:
            ResourceReference 목록 (인벤토리 순서)

        Raises:
            FetchError: 인벤토리 조회 실패
        """
        if group_kind == GroupKind.CLUSTER:
            return [
                cluster.to_reference(EngineType.parse(cluster.engine))
                for cluster in self.iter_clusters()
                if cluster.parameter_group == group_name
            ]
        return [
            db.to_reference(EngineType.parse(db.engine))
            for db in self.iter_instances()
            if group_name in db.parameter_groups
        ]

    # -------------------------------------------------------------------------
    # KMS
    # -------------------------------------------------------------------------

    def is_aws_managed_key(self, key_id: str | None) -> bool:
        """저장 데이터 암호화 키가 AWS 관리형 키인지 확인

        키 ID가 없거나 alias/aws/rds이면 AWS 관리형으로 봅니다.
        kms client가 있으면 DescribeKey의 KeyManager로 확인합니다.

        Raises:
            FetchError: KMS 조회 실패
        """
        if not key_id or AWS_MANAGED_RDS_ALIAS in key_id:
            return True
        if self._kms is None:
            return False

        try:
            metadata = self._kms.describe_key(KeyId=key_id).get("KeyMetadata", {})
        except (ClientError, BotoCoreError) as e:
            raise FetchError.from_client_error("kms.describe_key", e, resource_id=key_id) from e
        return metadata.get("KeyManager") == "AWS"
