"""
core/audit/evaluator.py - 규칙 평가기

두 가지 평가 모드를 제공합니다.

- 판정식 모드 (evaluate): 엔진별 규칙 카탈로그를 파라미터에 적용
- 기대값 모드 (evaluate_expected): {파라미터: 기대값} 매핑과 문자열 비교 (Config 커스텀 규칙용)

그 외:
- evaluate_storage: 인스턴스/클러스터의 저장 데이터 암호화, KMS 키, 삭제 보호 확인
- failure: 조회 실패를 위반 Finding을 가진 FindingSet으로 변환
- parse_expected_values / annotation: 커스텀 규칙 입력 파싱과 주석 생성

모든 함수는 입력만으로 결과가 결정되며 (evaluate_storage의 KMS 조회 제외) 부작용이 없습니다.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from core.exceptions import EvaluationError, format_error_for_user

from .catalog import DEFAULT_SENTINEL, Purpose, RuleCatalog
from .types import (
    ClusterDescription,
    EngineType,
    Finding,
    FindingSet,
    InstanceDescription,
    Parameter,
    ResourceReference,
)

logger = logging.getLogger(__name__)

# AWS Config PutEvaluations Annotation 최대 길이
MAX_ANNOTATION_LENGTH = 256

ALL_COMPLIANT_ANNOTATION = "All required parameters are compliant."
NO_EXPECTED_VALUES_ANNOTATION = "No rule parameters were provided to evaluate."


def _index(parameters: Iterable[Parameter]) -> dict[str, str | None]:
    return {p.name: p.value for p in parameters}


# =============================================================================
# 판정식 모드
# =============================================================================


def evaluate(
    resource: ResourceReference,
    engine: EngineType,
    parameters: Iterable[Parameter],
    catalog: RuleCatalog,
    associated: Iterable[str] = (),
) -> FindingSet:
    """엔진별 규칙으로 파라미터 평가

    규칙이 없는 엔진은 즉시 NOT_APPLICABLE을 반환합니다.
    파라미터가 없거나 값이 비어 있으면 "default"로 간주하고 평가합니다.
    단, applies_when_absent=False 규칙은 파라미터가 없으면 건너뜁니다.

    Args:
        resource: 평가 대상 리소스
        engine: 분류된 엔진 (평가 중 재분류하지 않음)
        parameters: 조회된 파라미터
        catalog: 적용할 규칙 카탈로그
        associated: 연관 리소스 식별자

    Returns:
        FindingSet
    """
    rules = catalog.rules_for(engine)
    if not rules:
        logger.debug(f"{resource.label}: {engine.value} 엔진 규칙 없음 ({catalog.purpose.value})")
        return FindingSet(resource=resource, engine=engine, applicable=False, associated=frozenset(associated))

    values = _index(parameters)
    findings: list[Finding] = []

    for rule in rules:
        actual = values.get(rule.parameter)
        if not actual:
            if not rule.applies_when_absent:
                continue
            actual = DEFAULT_SENTINEL

        if rule.violates(actual):
            findings.append(Finding.violation(rule.render(actual)))
        elif catalog.emit_confirmations:
            findings.append(Finding.confirmation(f"{rule.parameter} = {actual} (OK)"))

    return FindingSet(
        resource=resource,
        engine=engine,
        findings=tuple(findings),
        associated=frozenset(associated),
    )


# =============================================================================
# 기대값 모드
# =============================================================================


def evaluate_expected(
    resource: ResourceReference,
    parameters: Iterable[Parameter],
    expected: Mapping[str, str],
    engine: EngineType = EngineType.UNKNOWN,
) -> FindingSet:
    """기대값 매핑과 문자열 비교로 평가

    "0"과 "00"은 다른 값입니다 (타입을 고려하지 않는 문자열 비교).

    Args:
        resource: 평가 대상 (보통 파라미터 그룹)
        parameters: 조회된 파라미터
        expected: {파라미터 이름: 기대값}
        engine: 엔진 (알려진 경우)

    Returns:
        FindingSet. expected가 비어 있으면 NOT_APPLICABLE
    """
    if not expected:
        return FindingSet(resource=resource, engine=engine, applicable=False)

    values = _index(parameters)
    findings: list[Finding] = []

    for name, want in expected.items():
        if name not in values:
            findings.append(Finding.violation(f"Parameter '{name}' was not found."))
        elif values[name] != want:
            actual = "(unset)" if values[name] is None else values[name]
            findings.append(Finding.violation(f"Parameter '{name}' is '{actual}' but expected '{want}'."))

    if not findings:
        findings.append(Finding.confirmation(ALL_COMPLIANT_ANNOTATION))

    return FindingSet(resource=resource, engine=engine, findings=tuple(findings))


def parse_expected_values(raw: str | Mapping[str, Any] | None) -> dict[str, str]:
    """Config 규칙 ruleParameters를 {이름: 문자열 기대값}으로 변환

    JSON 스칼라는 문자열로 정규화합니다 (true -> "true", 1 -> "1").
    null, 배열, 객체 값은 비교할 수 없으므로 오류입니다.

    Args:
        raw: JSON 문자열 또는 이미 파싱된 매핑. None/빈 문자열이면 빈 dict

    Returns:
        {파라미터 이름: 기대값}

    Raises:
        EvaluationError: JSON 형식 오류 또는 스칼라가 아닌 값
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return {}

    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise EvaluationError("ruleParameters is not valid JSON", raw=raw, cause=e) from e
    else:
        data = raw

    if not isinstance(data, Mapping):
        raise EvaluationError("ruleParameters must be a JSON object", raw=str(raw))

    result: dict[str, str] = {}
    for name, value in data.items():
        if value is None or isinstance(value, (list, dict)):
            raise EvaluationError(f"expected value for '{name}' must be a scalar", raw=str(raw))
        result[str(name)] = value if isinstance(value, str) else json.dumps(value)
    return result


def annotation(finding_set: FindingSet, limit: int = MAX_ANNOTATION_LENGTH) -> str:
    """Config 평가 주석 생성

    위반 메시지를 공백으로 이어 붙입니다. 위반이 없으면 확인 메시지를 사용합니다.
    Config 제한(256자)을 넘으면 말줄임표로 자릅니다.
    """
    if not finding_set.applicable:
        text = NO_EXPECTED_VALUES_ANNOTATION
    elif finding_set.violations:
        text = " ".join(f.message for f in finding_set.violations)
    else:
        text = " ".join(finding_set.messages) or ALL_COMPLIANT_ANNOTATION

    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


# =============================================================================
# 저장 데이터 암호화 / 실패 변환
# =============================================================================


def evaluate_storage(
    description: InstanceDescription | ClusterDescription,
    purpose: Purpose = Purpose.POSTURE,
    is_aws_managed_key: Callable[[str | None], bool] | None = None,
) -> list[Finding]:
    """인스턴스/클러스터 설명에서 저장 데이터 관련 Finding 생성

    ENCRYPTION 목적은 저장 데이터 암호화만 확인합니다.
    POSTURE 목적은 KMS 키 관리 주체와 삭제 보호까지 확인하고 통과 항목도 기록합니다.

    Args:
        description: InstanceDescription 또는 ClusterDescription
        purpose: 적용 목적
        is_aws_managed_key: key_id -> bool 함수 (None이면 alias/aws/rds만 AWS 관리형으로 판단)

    Returns:
        Finding 목록
    """
    findings: list[Finding] = []
    posture = purpose == Purpose.POSTURE

    if not description.storage_encrypted:
        findings.append(Finding.violation("Storage encryption is disabled (StorageEncrypted=false)"))
    else:
        if posture:
            findings.append(Finding.confirmation("Storage encryption is enabled"))
            if is_aws_managed_key is not None:
                aws_managed = is_aws_managed_key(description.kms_key_id)
            else:
                aws_managed = not description.kms_key_id or "alias/aws/rds" in description.kms_key_id
            if aws_managed:
                findings.append(
                    Finding.violation(
                        "Storage uses the default AWS managed key (KmsKeyId); a customer managed key is recommended"
                    )
                )
            else:
                findings.append(Finding.confirmation("Storage uses a customer managed KMS key"))

    if posture:
        if description.deletion_protection:
            findings.append(Finding.confirmation("Deletion protection is enabled"))
        else:
            findings.append(Finding.violation("Deletion protection is disabled (DeletionProtection=false)"))

    return findings


def failure(
    resource: ResourceReference,
    engine: EngineType,
    error: Exception,
    associated: Iterable[str] = (),
) -> FindingSet:
    """조회/평가 실패를 NON_COMPLIANT FindingSet으로 변환

    실패는 조용히 무시하지 않고 진단 메시지가 담긴 위반 Finding으로 보고합니다.
    """
    message = f"Failed to evaluate {resource.label}: {format_error_for_user(error)}"
    return FindingSet(
        resource=resource,
        engine=engine,
        findings=(Finding.violation(message),),
        associated=frozenset(associated),
    )
