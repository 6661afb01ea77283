"""
tests/core/audit/test_audit_evaluator.py - 규칙 평가기 테스트

판정식 모드(evaluate), 기대값 모드(evaluate_expected), 저장 데이터 점검,
커스텀 규칙 입력 파싱과 주석 생성을 검증합니다.
"""

from unittest.mock import MagicMock

import pytest

from core.audit.catalog import Purpose, get_catalog
from core.audit.evaluator import (
    ALL_COMPLIANT_ANNOTATION,
    MAX_ANNOTATION_LENGTH,
    NO_EXPECTED_VALUES_ANNOTATION,
    annotation,
    evaluate,
    evaluate_expected,
    evaluate_storage,
    failure,
    parse_expected_values,
)
from core.audit.types import (
    ClusterDescription,
    Compliance,
    EngineType,
    Finding,
    FindingSet,
    GroupKind,
    InstanceDescription,
    Parameter,
    ResourceKind,
    ResourceReference,
)
from core.exceptions import EvaluationError, FetchError

GROUP = ResourceReference(ResourceKind.PARAMETER_GROUP, "pg-test", group_kind=GroupKind.INSTANCE)

POSTURE = get_catalog(Purpose.POSTURE)
ENCRYPTION = get_catalog(Purpose.ENCRYPTION)
BASELINE = get_catalog(Purpose.BASELINE)


def params(**values):
    return [Parameter(name.replace("__", "."), value) for name, value in values.items()]


# =============================================================================
# 판정식 모드
# =============================================================================


class TestEvaluateExamples:
    """대표 시나리오"""

    def test_mysql_secure_transport_off(self):
        """mysql + require_secure_transport=OFF -> 위반 1건"""
        result = evaluate(GROUP, EngineType.MYSQL, [Parameter("require_secure_transport", "OFF")], ENCRYPTION)

        assert result.compliance == Compliance.NON_COMPLIANT
        assert len(result.violations) == 1
        assert "require_secure_transport" in result.violations[0].message

    def test_postgres_with_pgcrypto_is_compliant(self):
        """postgres + ssl=on + pgcrypto 포함 -> COMPLIANT"""
        parameters = [
            Parameter("ssl", "on"),
            Parameter("shared_preload_libraries", "pg_stat_statements,pgcrypto"),
            Parameter("rds.force_ssl", "1"),
        ]

        result = evaluate(GROUP, EngineType.POSTGRES, parameters, ENCRYPTION)

        assert result.compliance == Compliance.COMPLIANT
        assert result.violations == ()

    def test_sqlserver_contained_authentication(self):
        """sqlserver + contained database authentication=1 -> 보안 위험"""
        parameters = [Parameter("contained database authentication", "1"), Parameter("rds.force_ssl", "1")]

        result = evaluate(GROUP, EngineType.SQLSERVER, parameters, ENCRYPTION)

        assert result.compliance == Compliance.NON_COMPLIANT
        assert len(result.violations) == 1
        assert "security risk" in result.violations[0].message
        assert "contained database authentication" in result.violations[0].message

    @pytest.mark.parametrize("catalog", [POSTURE, ENCRYPTION, BASELINE])
    def test_unknown_engine_not_applicable(self, catalog):
        """알 수 없는 엔진 -> NOT_APPLICABLE, Finding 없음"""
        engine = EngineType.parse("unknown-engine-xyz")

        result = evaluate(GROUP, engine, [Parameter("require_secure_transport", "OFF")], catalog)

        assert result.compliance == Compliance.NOT_APPLICABLE
        assert result.findings == ()


class TestEvaluateAbsence:
    """파라미터가 없거나 비어 있는 경우"""

    def test_absent_parameter_uses_default_sentinel(self):
        """설정되지 않은 파라미터는 "default"로 평가 (BASELINE은 위반)"""
        result = evaluate(GROUP, EngineType.MYSQL, [], BASELINE)

        messages = [f.message for f in result.violations]
        assert any("require_secure_transport" in m and "'default'" in m for m in messages)

    def test_empty_value_treated_as_absent(self):
        result = evaluate(GROUP, EngineType.MYSQL, [Parameter("require_secure_transport", "")], BASELINE)

        assert any("'default'" in f.message for f in result.violations)

    def test_absent_value_not_violating_encryption(self):
        """ENCRYPTION 규칙은 default를 비활성 값으로 보지 않음"""
        result = evaluate(GROUP, EngineType.MYSQL, [], ENCRYPTION)

        assert result.compliance == Compliance.COMPLIANT

    def test_rule_skipped_when_absent(self):
        """applies_when_absent=False 규칙은 파라미터가 없으면 평가하지 않음"""
        result = evaluate(GROUP, EngineType.POSTGRES, [Parameter("ssl", "1")], ENCRYPTION)

        assert not any("shared_preload_libraries" in f.message for f in result.findings)
        assert result.compliance == Compliance.COMPLIANT

    def test_missing_library_violates_when_present(self):
        result = evaluate(
            GROUP,
            EngineType.POSTGRES,
            [Parameter("shared_preload_libraries", "pg_stat_statements")],
            ENCRYPTION,
        )

        assert [f for f in result.violations if "shared_preload_libraries" in f.message]


class TestEvaluatePosture:
    """POSTURE 카탈로그 (확인 Finding 포함)"""

    def test_confirmations_emitted(self):
        parameters = params(require_secure_transport="ON", general_log="1", slow_query_log="1")

        result = evaluate(GROUP, EngineType.AURORA_MYSQL, parameters, POSTURE)

        assert result.compliance == Compliance.COMPLIANT
        assert "require_secure_transport = ON (OK)" in result.messages

    def test_force_ssl_force_is_compliant(self):
        """rds.force_ssl=FORCE 는 위반이 아님"""
        result = evaluate(GROUP, EngineType.POSTGRES, [Parameter("rds.force_ssl", "FORCE")], ENCRYPTION)

        assert not any("rds.force_ssl" in f.message for f in result.violations)

    def test_findings_follow_rule_order(self):
        parameters = params(slow_query_log="0", general_log="0", require_secure_transport="OFF")

        result = evaluate(GROUP, EngineType.MYSQL, parameters, POSTURE)

        parameters_in_order = [m.split(" (")[1] for m in (f.message for f in result.violations)][:3]
        assert parameters_in_order == ["require_secure_transport=OFF)", "general_log=0)", "slow_query_log=0)"]


class TestEvaluateProperties:
    """일반 성질"""

    def test_idempotent(self):
        parameters = [Parameter("require_secure_transport", "OFF"), Parameter("innodb_encrypt_tables", "ON")]

        first = evaluate(GROUP, EngineType.MYSQL, parameters, ENCRYPTION)
        second = evaluate(GROUP, EngineType.MYSQL, parameters, ENCRYPTION)

        assert first.compliance == second.compliance
        assert first.messages == second.messages

    @pytest.mark.parametrize("engine", [e for e in EngineType if e != EngineType.UNKNOWN])
    def test_every_violation_names_parameter(self, engine):
        """위반 메시지에는 해당 파라미터 이름이 포함됨"""
        for rule in ENCRYPTION.rules_for(engine):
            result = evaluate(GROUP, engine, [Parameter(rule.parameter, "OFF")], ENCRYPTION)
            for finding in result.violations:
                assert any(r.parameter in finding.message for r in ENCRYPTION.rules_for(engine))

    def test_associated_resources_carried(self):
        result = evaluate(GROUP, EngineType.MYSQL, [], ENCRYPTION, associated=["db-1", "db-2"])

        assert result.associated == frozenset({"db-1", "db-2"})


# =============================================================================
# 기대값 모드
# =============================================================================


class TestEvaluateExpected:
    """기대값 모드 테스트"""

    def test_missing_parameter(self):
        """기대값 파라미터가 없으면 NON_COMPLIANT + 'was not found'"""
        result = evaluate_expected(GROUP, [], {"require_secure_transport": "ON"})

        assert result.compliance == Compliance.NON_COMPLIANT
        assert "was not found" in annotation(result)
        assert "require_secure_transport" in annotation(result)

    def test_value_mismatch(self):
        result = evaluate_expected(GROUP, [Parameter("rds.force_ssl", "0")], {"rds.force_ssl": "1"})

        assert result.compliance == Compliance.NON_COMPLIANT
        assert result.violations[0].message == "Parameter 'rds.force_ssl' is '0' but expected '1'."

    def test_unset_value_mismatch(self):
        result = evaluate_expected(GROUP, [Parameter("ssl", None)], {"ssl": "1"})

        assert "'(unset)'" in result.violations[0].message

    def test_identical_values_compliant(self):
        parameters = [Parameter("ssl", "1"), Parameter("rds.force_ssl", "1")]

        result = evaluate_expected(GROUP, parameters, {"ssl": "1", "rds.force_ssl": "1"})

        assert result.compliance == Compliance.COMPLIANT
        assert annotation(result) == ALL_COMPLIANT_ANNOTATION

    def test_string_comparison_is_exact(self):
        """"0"과 "00"은 다른 값"""
        result = evaluate_expected(GROUP, [Parameter("x", "00")], {"x": "0"})

        assert result.compliance == Compliance.NON_COMPLIANT

    def test_empty_expected_not_applicable(self):
        result = evaluate_expected(GROUP, [Parameter("ssl", "1")], {})

        assert result.compliance == Compliance.NOT_APPLICABLE
        assert annotation(result) == NO_EXPECTED_VALUES_ANNOTATION


class TestParseExpectedValues:
    """ruleParameters 파싱 테스트"""

    def test_json_string(self):
        assert parse_expected_values('{"rds.force_ssl": "1"}') == {"rds.force_ssl": "1"}

    def test_scalars_normalized(self):
        """JSON 스칼라는 문자열로 정규화"""
        assert parse_expected_values({"a": 1, "b": True, "c": 1.5}) == {"a": "1", "b": "true", "c": "1.5"}

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty(self, raw):
        assert parse_expected_values(raw) == {}

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"text"', '{"a": null}', '{"a": [1]}', '{"a": {"b": 1}}'])
    def test_invalid(self, raw):
        with pytest.raises(EvaluationError):
            parse_expected_values(raw)


class TestAnnotation:
    """Config 주석 생성 테스트"""

    def test_joins_violations(self):
        fs = FindingSet(GROUP, EngineType.MYSQL, (Finding.violation("a."), Finding.violation("b.")))

        assert annotation(fs) == "a. b."

    def test_truncated_to_limit(self):
        fs = FindingSet(GROUP, EngineType.MYSQL, (Finding.violation("x" * 400),))

        text = annotation(fs)

        assert len(text) == MAX_ANNOTATION_LENGTH
        assert text.endswith("...")


# =============================================================================
# 저장 데이터 / 실패 변환
# =============================================================================


class TestEvaluateStorage:
    """evaluate_storage 테스트"""

    def test_unencrypted_instance(self):
        desc = InstanceDescription("db-1", storage_encrypted=False, deletion_protection=True)

        findings = evaluate_storage(desc, Purpose.ENCRYPTION)

        assert findings == [Finding.violation("Storage encryption is disabled (StorageEncrypted=false)")]

    def test_encryption_purpose_checks_only_encryption(self):
        desc = InstanceDescription("db-1", storage_encrypted=True, deletion_protection=False)

        assert evaluate_storage(desc, Purpose.ENCRYPTION) == []

    def test_posture_default_key_and_deletion_protection(self):
        desc = ClusterDescription("cl-1", storage_encrypted=True, kms_key_id=None, deletion_protection=False)

        findings = evaluate_storage(desc, Purpose.POSTURE)
        violations = [f.message for f in findings if f.is_violation]

        assert any("AWS managed key" in m for m in violations)
        assert any("Deletion protection is disabled" in m for m in violations)

    def test_posture_customer_managed_key(self):
        desc = InstanceDescription("db-1", storage_encrypted=True, kms_key_id="key-1", deletion_protection=True)
        lookup = MagicMock(return_value=False)

        findings = evaluate_storage(desc, Purpose.POSTURE, lookup)

        lookup.assert_called_once_with("key-1")
        assert all(not f.is_violation for f in findings)
        assert Finding.confirmation("Storage uses a customer managed KMS key") in findings


class TestFailure:
    """failure 테스트"""

    def test_failure_is_non_compliant(self):
        error = FetchError("describe_db_parameters", "pg-test", "AccessDenied", "not allowed")

        result = failure(GROUP, EngineType.MYSQL, error, associated=["db-1"])

        assert result.compliance == Compliance.NON_COMPLIANT
        assert result.violations[0].message.startswith("Failed to evaluate parameter-group/pg-test: ")
        assert "AccessDenied" in result.violations[0].message
        assert result.associated == frozenset({"db-1"})
