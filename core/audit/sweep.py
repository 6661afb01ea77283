"""
core/audit/sweep.py - 전체 파라미터 그룹 스윕

계정/리전의 모든 파라미터 그룹을 열거하여 평가하고,
NON_COMPLIANT 결과만 모아 AuditReport를 만듭니다.

- 중간 재개 상태가 없는 단일 패스입니다. 실패하면 다음 실행에서 처음부터 다시 수행합니다.
- 그룹 단위 조회/평가 오류는 해당 그룹의 NON_COMPLIANT 결과로 변환되어 보고서에 포함됩니다.
- 그룹 목록 자체를 가져오지 못하면 FetchError가 그대로 전파됩니다 (호출 전체 실패).
- max_workers > 1이면 그룹을 병렬 평가하되 보고서 순서는 열거 순서를 따릅니다.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime

from core.exceptions import FetchError
from core.parallel import ordered_map

from .catalog import RuleCatalog
from .evaluator import evaluate, failure
from .fetcher import ParameterFetcher
from .types import AuditReport, FindingSet, GroupKind, ParameterGroupInfo, ResourceKind, ResourceReference

logger = logging.getLogger(__name__)


def _group_reference(group: ParameterGroupInfo) -> ResourceReference:
    return ResourceReference(
        kind=ResourceKind.PARAMETER_GROUP,
        identifier=group.name,
        engine=group.engine,
        group_kind=group.kind,
    )


class SweepAggregator:
    """파라미터 그룹 스윕 실행기

    Args:
        fetcher: ParameterFetcher
        catalog: 적용할 규칙 카탈로그 (보통 ENCRYPTION)
        include_cluster_groups: 클러스터 파라미터 그룹도 평가할지 여부
        max_workers: 동시 평가 수 (1이면 순차)
    """

    def __init__(
        self,
        fetcher: ParameterFetcher,
        catalog: RuleCatalog,
        include_cluster_groups: bool = True,
        max_workers: int = 1,
    ):
        self.fetcher = fetcher
        self.catalog = catalog
        self.include_cluster_groups = include_cluster_groups
        self.max_workers = max_workers

    def iter_groups(self) -> Iterator[ParameterGroupInfo]:
        """평가 대상 파라미터 그룹 열거 (인스턴스용 -> 클러스터용 순)"""
        yield from self.fetcher.iter_parameter_groups(GroupKind.INSTANCE)
        if self.include_cluster_groups:
            yield from self.fetcher.iter_parameter_groups(GroupKind.CLUSTER)

    def evaluate_group(self, group: ParameterGroupInfo) -> FindingSet:
        """파라미터 그룹 1건 평가

        조회 실패는 예외로 올리지 않고 진단 메시지를 담은 NON_COMPLIANT 결과로 반환합니다.
        """
        resource = _group_reference(group)
        # 패밀리에서 한 번만 분류
        engine = group.engine

        try:
            associated = [ref.identifier for ref in self.fetcher.associated_resources(group.name, group.kind)]
            parameters = self.fetcher.fetch_parameters(group.name, group.kind)
        except FetchError as e:
            logger.warning(f"{resource.label} 조회 실패: {e}")
            return failure(resource, engine, e)

        return evaluate(resource, engine, parameters, self.catalog, associated=associated)

    def run(self, timestamp: datetime | None = None) -> AuditReport:
        """스윕 실행

        Args:
            timestamp: 보고서 시각 (None이면 현재 UTC)

        Returns:
            NON_COMPLIANT 결과만 담긴 AuditReport

        Raises:
            FetchError: 파라미터 그룹 목록 조회 실패
        """
        groups = list(self.iter_groups())
        logger.info(f"스윕 시작: 파라미터 그룹 {len(groups)}개 ({self.catalog.purpose.value})")

        finding_sets: list[FindingSet] = []
        for group, result in zip(groups, ordered_map(self.evaluate_group, groups, max_workers=self.max_workers)):
            if result.success and result.data is not None:
                finding_sets.append(result.data)
            else:
                error = result.error or RuntimeError("unknown error")
                logger.error(f"{group.name} 평가 중 예외: {error}")
                finding_sets.append(failure(_group_reference(group), group.engine, error))

        report = AuditReport.build(finding_sets, timestamp=timestamp)
        logger.info(f"스윕 완료: {report.evaluated}개 평가, 위반 {report.total}개")
        return report
