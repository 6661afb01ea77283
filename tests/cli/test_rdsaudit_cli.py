"""
tests/cli/test_rdsaudit_cli.py - cli/app.py 테스트

감사 엔진은 _create_auditor를 패치하여 MagicMock으로 대체합니다.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from cli.app import cli
from core.audit.catalog import Purpose
from core.audit.evaluator import evaluate_expected
from core.audit.types import (
    AuditReport,
    EngineType,
    Finding,
    FindingSet,
    GroupKind,
    Parameter,
    ResourceKind,
    ResourceReference,
)
from core.config import AuditConfig
from core.exceptions import FetchError

GROUP = ResourceReference(ResourceKind.PARAMETER_GROUP, "pg-a", group_kind=GroupKind.INSTANCE)


@pytest.fixture
def runner():
    """Click CliRunner"""
    return CliRunner()


@pytest.fixture
def auditor():
    mock = MagicMock()
    mock.config = AuditConfig(region="ap-northeast-2")
    with patch("cli.app._create_auditor", return_value=mock) as create:
        mock.create = create
        yield mock


def make_result(*findings):
    return FindingSet(
        resource=ResourceReference(ResourceKind.INSTANCE, "db-1"),
        engine=EngineType.MYSQL,
        findings=tuple(findings),
    )


def make_report(with_issue=True):
    findings = (Finding.violation("require_secure_transport is OFF"),) if with_issue else ()
    result = FindingSet(resource=GROUP, engine=EngineType.MYSQL, findings=findings, associated=frozenset({"db-1"}))
    return AuditReport.build([result])


class TestCLIGroup:
    """CLI 그룹 테스트"""

    def test_version_option(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "rdsaudit" in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("check", "sweep", "rules", "expect"):
            assert command in result.output


class TestRulesCommand:
    """rules 명령어 (AWS 호출 없음)"""

    def test_json_output(self, runner):
        result = runner.invoke(cli, ["rules", "--purpose", "encryption", "--json"])

        assert result.exit_code == 0
        rows = json.loads(result.output)
        assert any(r["engine"] == "postgres" and r["parameter"] == "rds.force_ssl" for r in rows)
        assert all(set(r) == {"engine", "parameter", "violates_when", "applies_when_absent"} for r in rows)

    def test_engine_filter(self, runner):
        result = runner.invoke(cli, ["rules", "-e", "mysql", "--purpose", "baseline", "--json"])

        rows = json.loads(result.output)
        assert {r["engine"] for r in rows} == {"mysql"}
        assert [r["parameter"] for r in rows] == ["require_secure_transport", "tls_version"]

    def test_table_output(self, runner):
        result = runner.invoke(cli, ["rules", "-e", "mysql"])

        assert result.exit_code == 0
        assert "posture 규칙" in result.output

    def test_no_rules(self, runner):
        result = runner.invoke(cli, ["rules", "-e", "oracle", "--purpose", "baseline"])

        assert result.exit_code == 0
        assert "규칙 없음" in result.output

    def test_invalid_engine(self, runner):
        result = runner.invoke(cli, ["rules", "-e", "db2"])

        assert result.exit_code == 2


class TestCheckCommand:
    """check 명령어 테스트"""

    def test_json_output(self, runner, auditor):
        auditor.evaluate_one.return_value = make_result(Finding.violation("Storage encryption is disabled"))

        result = runner.invoke(cli, ["check", "db-1", "-f", "json", "--purpose", "encryption", "-e", "mysql"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["resource_id"] == "db-1"
        assert data["compliance"] == "NON_COMPLIANT"
        resource_id, resource_type, context = auditor.evaluate_one.call_args.args
        assert (resource_id, resource_type) == ("db-1", "AWS::RDS::DBInstance")
        assert context.purpose == Purpose.ENCRYPTION
        assert context.engine == "mysql"

    def test_console_output(self, runner, auditor):
        auditor.evaluate_one.return_value = make_result(Finding.confirmation("Storage encryption is enabled"))

        result = runner.invoke(cli, ["check", "cl-1", "-t", "cluster"])

        assert result.exit_code == 0
        assert "Storage encryption is enabled" in result.output
        assert auditor.evaluate_one.call_args.args[1] == "AWS::RDS::DBCluster"

    def test_strict_exit_code(self, runner, auditor):
        """--strict: NON_COMPLIANT이면 종료 코드 2"""
        auditor.evaluate_one.return_value = make_result(Finding.violation("bad"))

        result = runner.invoke(cli, ["check", "db-1", "--strict"])

        assert result.exit_code == 2

    def test_strict_compliant(self, runner, auditor):
        auditor.evaluate_one.return_value = make_result(Finding.confirmation("ok"))

        result = runner.invoke(cli, ["check", "db-1", "--strict"])

        assert result.exit_code == 0

    def test_not_evaluated(self, runner, auditor):
        auditor.evaluate_one.return_value = None

        result = runner.invoke(cli, ["check", "db-1"])

        assert result.exit_code == 0
        assert "평가 대상이 아닙니다" in result.output

    def test_audit_error(self, runner, auditor):
        auditor.evaluate_one.side_effect = FetchError("describe_db_instances", "db-1", "AccessDenied", "denied")

        result = runner.invoke(cli, ["check", "db-1"])

        assert result.exit_code == 1
        assert "AccessDenied" in result.output

    def test_region_passed_to_factory(self, runner, auditor):
        auditor.evaluate_one.return_value = None

        runner.invoke(cli, ["-r", "eu-west-1", "-p", "dev", "check", "db-1"])

        ctx = auditor.create.call_args.args[0]
        assert ctx.obj == {"profile": "dev", "region": "eu-west-1"}


class TestSweepCommand:
    """sweep 명령어 테스트"""

    def test_json_output(self, runner, auditor):
        auditor.run_sweep.return_value = make_report()

        result = runner.invoke(cli, ["sweep", "-f", "json", "-w", "4", "--no-cluster-groups", "--purpose", "posture"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["evaluated"] == 1
        assert data["results"][0]["resource_id"] == "pg-a"
        assert auditor.create.call_args.kwargs == {"max_workers": 4, "include_cluster_groups": False}
        auditor.run_sweep.assert_called_once_with(Purpose.POSTURE)

    def test_console_no_issues(self, runner, auditor):
        auditor.run_sweep.return_value = make_report(with_issue=False)

        result = runner.invoke(cli, ["sweep", "--strict"])

        assert result.exit_code == 0
        assert "위반 없음" in result.output

    def test_strict_with_issues(self, runner, auditor):
        auditor.run_sweep.return_value = make_report()

        result = runner.invoke(cli, ["sweep", "-f", "json", "--strict"])

        assert result.exit_code == 2

    def test_excel_output(self, runner, auditor, tmp_path):
        auditor.run_sweep.return_value = make_report()
        path = tmp_path / "reports" / "audit.xlsx"

        result = runner.invoke(cli, ["sweep", "-f", "excel", "-o", str(path)])

        assert result.exit_code == 0
        assert path.exists()
        assert "보고서 저장" in result.output

    def test_invalid_workers(self, runner):
        result = runner.invoke(cli, ["sweep", "-w", "0"])

        assert result.exit_code == 2

    def test_notify_without_topic(self, runner, auditor):
        auditor.run_sweep.return_value = make_report()

        result = runner.invoke(cli, ["sweep", "-f", "json", "--notify"])

        assert result.exit_code == 0
        assert "SNS_TOPIC_ARN" in result.output

    def test_notify_sends_report(self, runner, auditor):
        auditor.config = AuditConfig(region="ap-northeast-2", sns_topic_arn="arn:aws:sns:ap-northeast-2:1:audit")
        auditor.run_sweep.return_value = make_report()
        sns = MagicMock()
        sns.publish.return_value = {"MessageId": "m-1"}

        with patch("core.parallel.get_client", return_value=sns):
            result = runner.invoke(cli, ["sweep", "-f", "json", "--notify"])

        assert result.exit_code == 0
        assert "알림 전송 완료: m-1" in result.output
        assert sns.publish.call_args.kwargs["TopicArn"] == "arn:aws:sns:ap-northeast-2:1:audit"

    def test_enumeration_failure(self, runner, auditor):
        auditor.run_sweep.side_effect = FetchError("describe_db_parameter_groups", error_code="Throttling")

        result = runner.invoke(cli, ["sweep"])

        assert result.exit_code == 1


class TestExpectCommand:
    """expect 명령어 테스트"""

    def test_pairs(self, runner, auditor):
        auditor.evaluate_expected_one.side_effect = lambda name, rtype, expected: evaluate_expected(
            GROUP, [Parameter("require_secure_transport", "ON")], expected
        )

        result = runner.invoke(cli, ["expect", "pg-a", "-x", "require_secure_transport=ON", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["compliance"] == "COMPLIANT"
        assert data["annotation"] == "All required parameters are compliant."
        auditor.evaluate_expected_one.assert_called_once_with(
            "pg-a", "AWS::RDS::DBParameterGroup", {"require_secure_transport": "ON"}
        )

    def test_params_json_merged_with_pairs(self, runner, auditor):
        """--params의 JSON 스칼라는 문자열로 정규화되고 -x 값이 우선"""
        auditor.evaluate_expected_one.side_effect = lambda name, rtype, expected: evaluate_expected(GROUP, [], expected)

        result = runner.invoke(
            cli,
            ["expect", "cpg-a", "--cluster", "--params", '{"ssl": 1, "tls_version": "TLSv1.2"}', "-x", "ssl=2"],
        )

        assert result.exit_code == 0
        name, resource_type, expected = auditor.evaluate_expected_one.call_args.args
        assert resource_type == "AWS::RDS::DBClusterParameterGroup"
        assert expected == {"ssl": "2", "tls_version": "TLSv1.2"}
        assert "was not found" in result.output

    def test_bad_pair(self, runner, auditor):
        result = runner.invoke(cli, ["expect", "pg-a", "-x", "no-equals-sign"])

        assert result.exit_code == 2
        auditor.evaluate_expected_one.assert_not_called()

    def test_bad_params_json(self, runner, auditor):
        result = runner.invoke(cli, ["expect", "pg-a", "--params", "{oops"])

        assert result.exit_code == 1
        assert "ruleParameters is not valid JSON" in result.output
