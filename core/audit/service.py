"""
core/audit/service.py - 감사 진입점

ComplianceAuditor는 트리거(Lambda 핸들러, CLI)가 호출하는 세 가지 진입점을 제공합니다.

- evaluate_one: 단일 리소스(인스턴스/클러스터/파라미터 그룹) 점검
- evaluate_expected_one: 기대값 모드 점검 (Config 커스텀 규칙)
- run_sweep: 전체 파라미터 그룹 스윕

외부 client는 모두 생성자 인자로 주입됩니다. from_session()은 boto3 Session과
AuditConfig로 client를 만들어 주는 편의 생성자입니다.

Example:
    auditor = ComplianceAuditor.from_session(boto3.Session(), AuditConfig.from_env())
    result = auditor.evaluate_one("my-db", "AWS::RDS::DBInstance")
    if result is not None:
        print(result.compliance)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.config import AuditConfig
from core.exceptions import FetchError
from core.parallel import get_client

from .catalog import Purpose, RuleCatalog, get_catalog
from .classifier import Classification, classify, resolve_engine
from .evaluator import evaluate, evaluate_expected, evaluate_storage, failure
from .fetcher import ParameterFetcher
from .sweep import SweepAggregator
from .types import (
    AuditReport,
    ClusterDescription,
    EngineType,
    Finding,
    FindingSet,
    GroupKind,
    InstanceDescription,
    ResourceKind,
    ResourceReference,
)

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleContext:
    """트리거가 전달하는 부가 정보

    Attributes:
        rule_name: Config 규칙 이름
        engine: 이벤트 페이로드의 엔진 (인스턴스 설명에 없을 때 사용)
        purpose: 사용할 카탈로그 (None이면 설정의 check_purpose)
    """

    rule_name: str | None = None
    engine: str | None = None
    purpose: Purpose | None = None


def _prefixed(prefix: str, finding_set: FindingSet) -> list[Finding]:
    return [Finding(f"{prefix}: {f.message}", f.is_violation) for f in finding_set.findings]


class ComplianceAuditor:
    """RDS 준수 감사기

    Args:
        fetcher: ParameterFetcher
        config: 감사 설정 (None이면 기본값)
    """

    def __init__(self, fetcher: ParameterFetcher, config: AuditConfig | None = None):
        self.fetcher = fetcher
        self.config = config or AuditConfig()

    @classmethod
    def from_session(cls, session: boto3.Session, config: AuditConfig | None = None) -> ComplianceAuditor:
        """boto3 Session으로 rds/kms client를 만들어 생성"""
        config = config or AuditConfig()
        fetcher = ParameterFetcher(
            rds=get_client(session, "rds", config=config),
            kms=get_client(session, "kms", config=config),
        )
        return cls(fetcher, config)

    # -------------------------------------------------------------------------
    # 단일 리소스
    # -------------------------------------------------------------------------

    def evaluate_one(
        self,
        resource_id: str,
        resource_type: str,
        rule_context: RuleContext | None = None,
    ) -> FindingSet | None:
        """단일 리소스 점검

        Args:
            resource_id: 인스턴스/클러스터 식별자 또는 파라미터 그룹 이름
            resource_type: AWS::RDS::DBInstance, DB_PARAMETER_GROUP 등
            rule_context: 규칙 이름, 이벤트 엔진, 카탈로그 목적

        Returns:
            FindingSet. 지원하지 않는 리소스 타입이면 None (평가 생략)
        """
        classification = classify(resource_type)
        if classification is None:
            logger.info(f"평가 대상이 아닌 리소스 타입: {resource_type} ({resource_id})")
            return None

        context = rule_context or RuleContext()
        catalog = get_catalog(context.purpose or self.config.check_purpose)
        logger.info(f"{classification.kind.value}/{resource_id} 점검 시작 ({catalog.purpose.value})")

        if classification.kind == ResourceKind.INSTANCE:
            return self._evaluate_instance(resource_id, context, catalog)
        if classification.kind == ResourceKind.CLUSTER:
            return self._evaluate_cluster(resource_id, context, catalog)
        return self._evaluate_group(resource_id, classification, context, catalog)

    def _fallback_engine(self, context: RuleContext) -> EngineType:
        return resolve_engine(None, context.engine, self.config.default_engine)

    def _storage_findings(
        self,
        description: InstanceDescription | ClusterDescription,
        purpose: Purpose,
    ) -> list[Finding]:
        if purpose == Purpose.BASELINE:
            return []
        try:
            return evaluate_storage(description, purpose, self.fetcher.is_aws_managed_key)
        except FetchError as e:
            logger.warning(f"{description.identifier} KMS 키 조회 실패: {e}")
            return evaluate_storage(description, purpose) + [Finding.violation(f"KMS key lookup failed: {e}")]

    def _evaluate_attached(
        self,
        resource: ResourceReference,
        engine: EngineType,
        storage: list[Finding],
        groups: tuple[str, ...],
        group_kind: GroupKind,
        catalog: RuleCatalog,
        associated: frozenset[str],
    ) -> FindingSet:
        findings = list(storage)
        applicable = bool(storage)

        for group_name in groups:
            group_ref = ResourceReference(
                kind=ResourceKind.PARAMETER_GROUP,
                identifier=group_name,
                engine=engine,
                group_kind=group_kind,
            )
            try:
                parameters = self.fetcher.fetch_parameters(group_name, group_kind)
            except FetchError as e:
                logger.warning(f"{group_ref.label} 조회 실패: {e}")
                result = failure(group_ref, engine, e)
            else:
                result = evaluate(group_ref, engine, parameters, catalog)
            applicable = applicable or result.applicable
            findings += _prefixed(group_name, result)

        return FindingSet(
            resource=resource,
            engine=engine,
            findings=tuple(findings),
            applicable=applicable,
            associated=associated,
        )

    def _evaluate_instance(self, instance_id: str, context: RuleContext, catalog: RuleCatalog) -> FindingSet:
        try:
            description = self.fetcher.describe_instance(instance_id)
        except FetchError as e:
            logger.error(f"인스턴스 조회 실패: {e}")
            engine = self._fallback_engine(context)
            return failure(ResourceReference(ResourceKind.INSTANCE, instance_id, engine), engine, e)

        engine = resolve_engine(description.engine, context.engine, self.config.default_engine)
        associated = frozenset([description.cluster_identifier]) if description.cluster_identifier else frozenset()
        return self._evaluate_attached(
            description.to_reference(engine),
            engine,
            self._storage_findings(description, catalog.purpose),
            description.parameter_groups,
            GroupKind.INSTANCE,
            catalog,
            associated,
        )

    def _evaluate_cluster(self, cluster_id: str, context: RuleContext, catalog: RuleCatalog) -> FindingSet:
        try:
            description = self.fetcher.describe_cluster(cluster_id)
        except FetchError as e:
            logger.error(f"클러스터 조회 실패: {e}")
            engine = self._fallback_engine(context)
            return failure(ResourceReference(ResourceKind.CLUSTER, cluster_id, engine), engine, e)

        engine = resolve_engine(description.engine, context.engine, self.config.default_engine)
        return self._evaluate_attached(
            description.to_reference(engine),
            engine,
            self._storage_findings(description, catalog.purpose),
            (description.parameter_group,) if description.parameter_group else (),
            GroupKind.CLUSTER,
            catalog,
            frozenset(description.members),
        )

    def _evaluate_group(
        self,
        group_name: str,
        classification: Classification,
        context: RuleContext,
        catalog: RuleCatalog,
    ) -> FindingSet:
        group_kind = classification.group_kind or GroupKind.INSTANCE
        engine = self._fallback_engine(context)
        resource = classification.reference(group_name, engine)

        try:
            info = self.fetcher.describe_parameter_group(group_name, group_kind)
            # 패밀리가 인스턴스 설명의 Engine 역할
            engine = resolve_engine(info.family, context.engine, self.config.default_engine)
            resource = classification.reference(group_name, engine)
            associated = [ref.identifier for ref in self.fetcher.associated_resources(group_name, group_kind)]
            parameters = self.fetcher.fetch_parameters(group_name, group_kind)
        except FetchError as e:
            logger.error(f"{resource.label} 조회 실패: {e}")
            return failure(resource, engine, e)

        return evaluate(resource, engine, parameters, catalog, associated=associated)

    # -------------------------------------------------------------------------
    # 기대값 모드
    # -------------------------------------------------------------------------

    def evaluate_expected_one(
        self,
        resource_id: str,
        resource_type: str,
        expected: Mapping[str, str],
    ) -> FindingSet | None:
        """기대값 모드 점검 (파라미터 그룹 전용)

        엔진 기본값 파라미터도 비교해야 하므로 Source 필터 없이 전체 파라미터를 조회합니다.

        Returns:
            FindingSet. 파라미터 그룹이 아니면 None
        """
        classification = classify(resource_type)
        if classification is None or classification.kind != ResourceKind.PARAMETER_GROUP:
            logger.info(f"기대값 평가 대상이 아님: {resource_type} ({resource_id})")
            return None

        resource = classification.reference(resource_id)
        if not expected:
            return evaluate_expected(resource, [], expected)

        group_kind = classification.group_kind or GroupKind.INSTANCE
        try:
            parameters = self.fetcher.fetch_parameters(resource_id, group_kind, source=None)
        except FetchError as e:
            logger.error(f"{resource.label} 조회 실패: {e}")
            return failure(resource, EngineType.UNKNOWN, e)

        return evaluate_expected(resource, parameters, expected)

    # -------------------------------------------------------------------------
    # 스윕
    # -------------------------------------------------------------------------

    def sweep_aggregator(self, purpose: Purpose | None = None) -> SweepAggregator:
        return SweepAggregator(
            self.fetcher,
            get_catalog(purpose or self.config.sweep_purpose),
            include_cluster_groups=self.config.include_cluster_groups,
            max_workers=self.config.max_workers,
        )

    def run_sweep(self, purpose: Purpose | None = None) -> AuditReport:
        """전체 파라미터 그룹 스윕

        Raises:
            FetchError: 파라미터 그룹 목록 조회 실패
        """
        return self.sweep_aggregator(purpose).run()
