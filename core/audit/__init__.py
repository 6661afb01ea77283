"""
core/audit - RDS 준수 평가 엔진

구성 요소 (의존 방향: 위 -> 아래):
    types       데이터 모델 (EngineType, FindingSet, AuditReport 등)
    catalog     목적별 규칙 카탈로그 (POSTURE / ENCRYPTION / BASELINE)
    fetcher     RDS API 조회 (파라미터, 인벤토리, 역조회)
    evaluator   판정식 / 기대값 평가
    classifier  리소스 타입 분류, 엔진 결정
    sweep       전체 파라미터 그룹 스윕
    notifier    SNS / Config 결과 전송
    export      스윕 보고서 Excel 출력 (openpyxl 지연 로드)
    service     진입점 (ComplianceAuditor) - core.config에 의존하므로 여기서 import하지 않음

Example:
    from core.audit import EngineType, Parameter, Purpose, evaluate, get_catalog

    result = evaluate(ref, EngineType.MYSQL, [Parameter("require_secure_transport", "OFF")],
                      get_catalog(Purpose.ENCRYPTION))
"""

from .catalog import Purpose, Rule, RuleCatalog, get_catalog, rules_for
from .classifier import Classification, classify, resolve_engine
from .evaluator import (
    annotation,
    evaluate,
    evaluate_expected,
    evaluate_storage,
    failure,
    parse_expected_values,
)
from .export import write_report_xlsx
from .fetcher import ParameterFetcher
from .notifier import ConfigEvaluationSink, Notification, SnsNotifier
from .sweep import SweepAggregator
from .types import (
    AuditReport,
    Compliance,
    EngineType,
    Finding,
    FindingSet,
    GroupKind,
    Parameter,
    ResourceKind,
    ResourceReference,
)

__all__: list[str] = [
    # types
    "AuditReport",
    "Compliance",
    "EngineType",
    "Finding",
    "FindingSet",
    "GroupKind",
    "Parameter",
    "ResourceKind",
    "ResourceReference",
    # catalog
    "Purpose",
    "Rule",
    "RuleCatalog",
    "get_catalog",
    "rules_for",
    # classifier
    "Classification",
    "classify",
    "resolve_engine",
    # evaluator
    "annotation",
    "evaluate",
    "evaluate_expected",
    "evaluate_storage",
    "failure",
    "parse_expected_values",
    # fetcher / sweep / notifier
    "ParameterFetcher",
    "SweepAggregator",
    "ConfigEvaluationSink",
    "Notification",
    "SnsNotifier",
    # export
    "write_report_xlsx",
]
