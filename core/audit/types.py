"""
core/audit/types.py - 감사 엔진 데이터 타입

엔진 분류, 리소스 참조, Finding/FindingSet, 감사 보고서를 정의합니다.
평가 결과 객체는 모두 frozen dataclass이며, 판정(compliance)은
Finding 목록과 규칙 적용 여부로부터 계산되는 파생 속성입니다.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EngineType(str, Enum):
    """DB 엔진 계열

    규칙 카탈로그 조회 키로 사용됩니다. 입력은 대소문자를 구분하지 않으며
    parse()로 한 번만 정규화합니다.
    """

    MYSQL = "mysql"
    MARIADB = "mariadb"
    POSTGRES = "postgres"
    AURORA_MYSQL = "aurora-mysql"
    AURORA_POSTGRESQL = "aurora-postgresql"
    ORACLE = "oracle"
    SQLSERVER = "sqlserver"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> EngineType:
        """엔진 이름 또는 파라미터 그룹 패밀리를 EngineType으로 변환

        RDS 엔진명(mysql, aurora-postgresql, sqlserver-se, oracle-ee 등)과
        패밀리(mysql8.0, postgres14, aurora5.6, sqlserver-ee-15.0 등)를 모두 받습니다.

        Args:
            value: 엔진명 또는 패밀리 문자열

        Returns:
            매칭되는 EngineType. 알 수 없으면 UNKNOWN.
        """
        if not value:
            return cls.UNKNOWN

        normalized = value.strip().lower()
        for prefix, engine in _ENGINE_PREFIXES:
            if normalized.startswith(prefix):
                return engine
        return cls.UNKNOWN

    @property
    def is_postgres_family(self) -> bool:
        return self in (EngineType.POSTGRES, EngineType.AURORA_POSTGRESQL)

    @property
    def is_mysql_family(self) -> bool:
        return self in (EngineType.MYSQL, EngineType.MARIADB, EngineType.AURORA_MYSQL)


# 순서 중요: 긴 접두어가 먼저 (aurora-postgresql > aurora-mysql > aurora)
_ENGINE_PREFIXES: tuple[tuple[str, EngineType], ...] = (
    ("aurora-postgresql", EngineType.AURORA_POSTGRESQL),
    ("aurora-mysql", EngineType.AURORA_MYSQL),
    ("aurora", EngineType.AURORA_MYSQL),  # aurora5.6 = MySQL 5.6 호환
    ("mariadb", EngineType.MARIADB),
    ("mysql", EngineType.MYSQL),
    ("postgres", EngineType.POSTGRES),
    ("oracle", EngineType.ORACLE),
    ("sqlserver", EngineType.SQLSERVER),
)


class ResourceKind(Enum):
    """감사 대상 리소스 종류"""

    INSTANCE = "instance"
    CLUSTER = "cluster"
    PARAMETER_GROUP = "parameter-group"


class GroupKind(Enum):
    """파라미터 그룹 종류 (DB 인스턴스용 / DB 클러스터용)"""

    INSTANCE = "instance"
    CLUSTER = "cluster"


class Compliance(Enum):
    """준수 판정 (AWS Config ComplianceType과 동일한 값)"""

    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    NOT_APPLICABLE = "NOT_APPLICABLE"


@dataclass(frozen=True)
class Parameter:
    """파라미터 그룹의 단일 파라미터

    Attributes:
        name: 파라미터 이름
        value: 설정 값. None이면 엔진 기본값 사용 중
    """

    name: str
    value: str | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> Parameter:
        """DescribeDBParameters 응답 항목에서 생성"""
        value = item.get("ParameterValue")
        return cls(name=item.get("ParameterName", ""), value=None if value is None else str(value))


@dataclass(frozen=True)
class ResourceReference:
    """감사 대상 리소스 참조

    Attributes:
        kind: 리소스 종류
        identifier: 인스턴스/클러스터 식별자 또는 파라미터 그룹 이름
        engine: 엔진 (알려진 경우)
        parameter_groups: 인스턴스/클러스터가 참조하는 파라미터 그룹 이름 (순서 유지)
        group_kind: 파라미터 그룹인 경우 그룹 종류
    """

    kind: ResourceKind
    identifier: str
    engine: EngineType | None = None
    parameter_groups: tuple[str, ...] = ()
    group_kind: GroupKind | None = None

    @property
    def label(self) -> str:
        if self.kind == ResourceKind.PARAMETER_GROUP and self.group_kind == GroupKind.CLUSTER:
            return f"cluster-parameter-group/{self.identifier}"
        return f"{self.kind.value}/{self.identifier}"


@dataclass(frozen=True)
class Finding:
    """평가된 단일 사실

    위반(violation) Finding만 판정에 영향을 주며,
    확인(confirmation) Finding은 통과 항목을 알리기 위해서만 기록됩니다.
    """

    message: str
    is_violation: bool = True

    @classmethod
    def violation(cls, message: str) -> Finding:
        return cls(message=message, is_violation=True)

    @classmethod
    def confirmation(cls, message: str) -> Finding:
        return cls(message=message, is_violation=False)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "is_violation": self.is_violation}


@dataclass(frozen=True)
class FindingSet:
    """리소스 1건의 평가 결과

    Attributes:
        resource: 평가 대상 리소스
        engine: 평가에 사용된 엔진
        findings: Finding 목록 (규칙 순서 유지)
        applicable: 적용 가능한 규칙(또는 기대값)이 있었는지 여부
        associated: 연관 리소스 식별자 (그룹을 사용하는 인스턴스 등)
        evaluated_at: 평가 시각 (UTC)
    """

    resource: ResourceReference
    engine: EngineType
    findings: tuple[Finding, ...] = ()
    applicable: bool = True
    associated: frozenset[str] = frozenset()
    evaluated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)

    @property
    def compliance(self) -> Compliance:
        if not self.applicable:
            return Compliance.NOT_APPLICABLE
        if any(f.is_violation for f in self.findings):
            return Compliance.NON_COMPLIANT
        return Compliance.COMPLIANT

    @property
    def violations(self) -> tuple[Finding, ...]:
        return tuple(f for f in self.findings if f.is_violation)

    @property
    def confirmations(self) -> tuple[Finding, ...]:
        return tuple(f for f in self.findings if not f.is_violation)

    @property
    def messages(self) -> list[str]:
        return [f.message for f in self.findings]

    def to_dict(self) -> dict[str, Any]:
        """알림/JSON 출력용 딕셔너리"""
        return {
            "resource_id": self.resource.identifier,
            "resource_kind": self.resource.kind.value,
            "engine": self.engine.value,
            "compliance": self.compliance.value,
            "associated_resources": sorted(self.associated),
            "issues": [f.message for f in self.violations],
            "findings": [f.to_dict() for f in self.findings],
            "evaluated_at": self.evaluated_at.isoformat(),
        }


@dataclass(frozen=True)
class AuditReport:
    """스윕 1회의 감사 보고서

    NON_COMPLIANT 결과만 포함하며 생성 후 변경되지 않습니다.

    Attributes:
        timestamp: 보고서 생성 시각 (UTC)
        results: NON_COMPLIANT FindingSet 목록 (평가 순서 유지)
        evaluated: 평가한 파라미터 그룹 수
    """

    timestamp: datetime
    results: tuple[FindingSet, ...] = ()
    evaluated: int = 0

    @classmethod
    def build(
        cls,
        finding_sets: Iterable[FindingSet],
        timestamp: datetime | None = None,
    ) -> AuditReport:
        """평가 결과에서 NON_COMPLIANT 항목만 골라 보고서 생성"""
        evaluated = 0
        results = []
        for finding_set in finding_sets:
            evaluated += 1
            if finding_set.compliance == Compliance.NON_COMPLIANT:
                results.append(finding_set)
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            results=tuple(results),
            evaluated=evaluated,
        )

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def has_issues(self) -> bool:
        return bool(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "evaluated": self.evaluated,
            "total": self.total,
            "results": [r.to_dict() for r in self.results],
        }


# =============================================================================
# RDS API 응답 파싱 결과
# =============================================================================


@dataclass(frozen=True)
class ParameterGroupInfo:
    """파라미터 그룹 메타데이터 (DescribeDBParameterGroups / DescribeDBClusterParameterGroups)"""

    name: str
    family: str
    kind: GroupKind
    description: str = ""

    @property
    def engine(self) -> EngineType:
        return EngineType.parse(self.family)

    @classmethod
    def from_api(cls, item: dict[str, Any], kind: GroupKind) -> ParameterGroupInfo:
        if kind == GroupKind.CLUSTER:
            return cls(
                name=item.get("DBClusterParameterGroupName", ""),
                family=item.get("DBParameterGroupFamily", ""),
                kind=kind,
                description=item.get("Description", ""),
            )
        return cls(
            name=item.get("DBParameterGroupName", ""),
            family=item.get("DBParameterGroupFamily", ""),
            kind=kind,
            description=item.get("Description", ""),
        )


@dataclass(frozen=True)
class InstanceDescription:
    """DB 인스턴스 설명 (DescribeDBInstances 1건)"""

    identifier: str
    engine: str = ""
    storage_encrypted: bool = False
    kms_key_id: str | None = None
    deletion_protection: bool = False
    parameter_groups: tuple[str, ...] = ()
    cluster_identifier: str | None = None

    @classmethod
    def from_api(cls, db: dict[str, Any]) -> InstanceDescription:
        groups = tuple(
            pg["DBParameterGroupName"] for pg in db.get("DBParameterGroups", []) if pg.get("DBParameterGroupName")
        )
        return cls(
            identifier=db.get("DBInstanceIdentifier", ""),
            engine=db.get("Engine", ""),
            storage_encrypted=bool(db.get("StorageEncrypted", False)),
            kms_key_id=db.get("KmsKeyId") or None,
            deletion_protection=bool(db.get("DeletionProtection", False)),
            parameter_groups=groups,
            cluster_identifier=db.get("DBClusterIdentifier") or None,
        )

    def to_reference(self, engine: EngineType | None = None) -> ResourceReference:
        return ResourceReference(
            kind=ResourceKind.INSTANCE,
            identifier=self.identifier,
            engine=engine,
            parameter_groups=self.parameter_groups,
        )


@dataclass(frozen=True)
class ClusterDescription:
    """DB 클러스터 설명 (DescribeDBClusters 1건)"""

    identifier: str
    engine: str = ""
    storage_encrypted: bool = False
    kms_key_id: str | None = None
    deletion_protection: bool = False
    parameter_group: str | None = None
    members: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, cluster: dict[str, Any]) -> ClusterDescription:
        members = tuple(
            m["DBInstanceIdentifier"] for m in cluster.get("DBClusterMembers", []) if m.get("DBInstanceIdentifier")
        )
        return cls(
            identifier=cluster.get("DBClusterIdentifier", ""),
            engine=cluster.get("Engine", ""),
            storage_encrypted=bool(cluster.get("StorageEncrypted", False)),
            kms_key_id=cluster.get("KmsKeyId") or None,
            deletion_protection=bool(cluster.get("DeletionProtection", False)),
            parameter_group=cluster.get("DBClusterParameterGroup") or None,
            members=members,
        )

    def to_reference(self, engine: EngineType | None = None) -> ResourceReference:
        return ResourceReference(
            kind=ResourceKind.CLUSTER,
            identifier=self.identifier,
            engine=engine,
            parameter_groups=(self.parameter_group,) if self.parameter_group else (),
        )
