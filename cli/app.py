"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반의 RDS 암호화 감사 CLI입니다. Lambda 핸들러와 같은 감사 엔진을
로컬 자격 증명(프로파일)으로 실행합니다.

명령어 구조:
    rdsaudit --version                          # 버전 표시
    rdsaudit check <resource-id> -t <type>      # 단일 리소스 점검
    rdsaudit sweep                              # 전체 파라미터 그룹 스윕
    rdsaudit rules [-e <engine>] [--purpose]    # 규칙 카탈로그 조회 (AWS 호출 없음)
    rdsaudit expect <group> -x name=value       # 기대값 모드 점검

    공통 옵션:
    -p, --profile   AWS 프로파일
    -r, --region    리전
    -v, --verbose   감사 엔진 로그 출력

Usage:
    $ rdsaudit check my-db -t instance
    $ rdsaudit sweep --purpose encryption -f excel -o output/audit.xlsx
    $ rdsaudit expect my-params -x require_secure_transport=ON
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from typing import Any

import click
from click import Context

from core.audit.catalog import Purpose, get_catalog
from core.audit.evaluator import annotation, parse_expected_values
from core.audit.types import Compliance, EngineType
from core.config import AuditConfig, get_version
from core.exceptions import AuditError, format_error_for_user

from cli.ui.console import (
    get_logger,
    print_error,
    print_finding_set,
    print_info,
    print_json,
    print_report,
    print_success,
    print_table,
    print_warning,
)

# WARNING 레벨로 설정하여 INFO 로그가 도구 출력에 섞이지 않도록 함
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

VERSION = get_version()

# CLI 리소스 타입 -> AWS Config resourceType
RESOURCE_TYPES = {
    "instance": "AWS::RDS::DBInstance",
    "cluster": "AWS::RDS::DBCluster",
    "parameter-group": "AWS::RDS::DBParameterGroup",
    "cluster-parameter-group": "AWS::RDS::DBClusterParameterGroup",
}

PURPOSE_CHOICE = click.Choice([p.value for p in Purpose])
ENGINE_CHOICE = click.Choice([e.value for e in EngineType if e != EngineType.UNKNOWN])


def _create_auditor(ctx: Context, **overrides: Any):
    """프로파일/리전 옵션과 환경 변수로 ComplianceAuditor 생성"""
    import boto3

    from core.audit.service import ComplianceAuditor

    config = AuditConfig.from_env()
    region = ctx.obj.get("region")
    if region:
        overrides["region"] = region
    config = dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})

    session = boto3.Session(profile_name=ctx.obj.get("profile"), region_name=config.region)
    return ComplianceAuditor.from_session(session, config)


def _fail(error: Exception) -> None:
    print_error(format_error_for_user(error))
    sys.exit(1)


@click.group()
@click.version_option(VERSION, prog_name="rdsaudit")
@click.option("-p", "--profile", "profile", default=None, help="AWS 프로파일")
@click.option("-r", "--region", "region", default=None, help="리전 (기본: 세션/환경 변수)")
@click.option("-v", "--verbose", is_flag=True, help="감사 엔진 로그 출력")
@click.pass_context
def cli(ctx: Context, profile: str | None, region: str | None, verbose: bool) -> None:
    """RDS 암호화/보안 설정 감사 도구"""
    ctx.ensure_object(dict)
    ctx.obj.update(profile=profile, region=region)
    if verbose:
        get_logger("core", logging.DEBUG)


@cli.command("check")
@click.argument("resource_id")
@click.option(
    "-t",
    "--type",
    "resource_type",
    type=click.Choice(list(RESOURCE_TYPES)),
    default="instance",
    show_default=True,
    help="리소스 종류",
)
@click.option("--purpose", type=PURPOSE_CHOICE, default=None, help="규칙 카탈로그 (기본: AUDIT_CHECK_PURPOSE)")
@click.option("-e", "--engine", default=None, help="엔진 정보가 없을 때 사용할 엔진")
@click.option("-f", "--format", "output_format", type=click.Choice(["console", "json"]), default="console")
@click.option("--strict", is_flag=True, help="NON_COMPLIANT이면 종료 코드 2")
@click.pass_context
def check_command(
    ctx: Context,
    resource_id: str,
    resource_type: str,
    purpose: str | None,
    engine: str | None,
    output_format: str,
    strict: bool,
) -> None:
    """단일 리소스 점검"""
    from core.audit.service import RuleContext

    try:
        auditor = _create_auditor(ctx)
        result = auditor.evaluate_one(
            resource_id,
            RESOURCE_TYPES[resource_type],
            RuleContext(engine=engine, purpose=Purpose(purpose) if purpose else None),
        )
    except AuditError as e:
        _fail(e)
        return

    if result is None:
        print_warning(f"평가 대상이 아닙니다: {resource_type}")
        return

    if output_format == "json":
        print_json(result.to_dict())
    else:
        print_finding_set(result)

    if strict and result.compliance == Compliance.NON_COMPLIANT:
        sys.exit(2)


@cli.command("sweep")
@click.option("--purpose", type=PURPOSE_CHOICE, default=None, help="규칙 카탈로그 (기본: AUDIT_SWEEP_PURPOSE)")
@click.option("-w", "--workers", type=click.IntRange(1, 100), default=None, help="동시 평가 수")
@click.option("--cluster-groups/--no-cluster-groups", default=None, help="클러스터 파라미터 그룹 포함 여부")
@click.option("-f", "--format", "output_format", type=click.Choice(["console", "json", "excel"]), default="console")
@click.option("-o", "--output", default=None, help="출력 파일 경로 (excel)")
@click.option("--notify", is_flag=True, help="위반이 있으면 SNS_TOPIC_ARN으로 보고서 전송")
@click.option("--strict", is_flag=True, help="위반이 있으면 종료 코드 2")
@click.pass_context
def sweep_command(
    ctx: Context,
    purpose: str | None,
    workers: int | None,
    cluster_groups: bool | None,
    output_format: str,
    output: str | None,
    notify: bool,
    strict: bool,
) -> None:
    """전체 파라미터 그룹 스윕"""
    try:
        auditor = _create_auditor(ctx, max_workers=workers, include_cluster_groups=cluster_groups)
        report = auditor.run_sweep(Purpose(purpose) if purpose else None)
    except AuditError as e:
        _fail(e)
        return

    if output_format == "json":
        print_json(report.to_dict())
    elif output_format == "excel":
        from core.audit.export import write_report_xlsx

        path = write_report_xlsx(report, output or "rds-audit-report.xlsx", region=auditor.config.region)
        print_success(f"보고서 저장: {path}")
    else:
        print_report(report)

    if notify and report.has_issues:
        _publish_report(ctx, auditor.config, report)

    if strict and report.has_issues:
        sys.exit(2)


def _publish_report(ctx: Context, config: AuditConfig, report) -> None:
    import boto3

    from core.audit.notifier import SnsNotifier, render_report
    from core.parallel import get_client

    if not config.sns_topic_arn:
        print_warning("SNS_TOPIC_ARN이 설정되지 않아 알림을 생략합니다")
        return

    session = boto3.Session(profile_name=ctx.obj.get("profile"), region_name=config.region)
    notifier = SnsNotifier(get_client(session, "sns", config=config), config.sns_topic_arn)
    try:
        message_id = notifier.send(render_report(report, region=config.region))
    except AuditError as e:
        print_error(f"알림 전송 실패: {format_error_for_user(e)}")
        return
    print_info(f"알림 전송 완료: {message_id}")


@cli.command("rules")
@click.option("-e", "--engine", type=ENGINE_CHOICE, default=None, help="엔진 (생략 시 전체)")
@click.option("--purpose", type=PURPOSE_CHOICE, default=Purpose.POSTURE.value, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="JSON 형식으로 출력")
def rules_command(engine: str | None, purpose: str, as_json: bool) -> None:
    """규칙 카탈로그 조회"""
    catalog = get_catalog(purpose)
    engines = [EngineType(engine)] if engine else list(catalog.engines)

    rows = [
        {
            "engine": e.value,
            "parameter": rule.parameter,
            "violates_when": rule.predicate.describe(),
            "applies_when_absent": rule.applies_when_absent,
        }
        for e in engines
        for rule in catalog.rules_for(e)
    ]

    if as_json:
        print_json(rows)
        return

    if not rows:
        print_warning(f"규칙 없음: {engine} ({purpose})")
        return

    print_table(
        f"{purpose} 규칙 {len(rows)}개",
        ["엔진", "파라미터", "위반 조건", "미설정 시 평가"],
        [[r["engine"], r["parameter"], r["violates_when"], "O" if r["applies_when_absent"] else "-"] for r in rows],
    )


def _parse_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    expected: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"name=value 형식이어야 합니다: {pair}", param_hint="-x/--expect")
        expected[name.strip()] = value
    return expected


@cli.command("expect")
@click.argument("group_name")
@click.option("-x", "--expect", "pairs", multiple=True, help="기대값 (name=value, 다중 가능)")
@click.option("--params", "params_json", default=None, help='기대값 JSON (예: \'{"rds.force_ssl": "1"}\')')
@click.option("--cluster", is_flag=True, help="클러스터 파라미터 그룹")
@click.option("--json", "as_json", is_flag=True, help="JSON 형식으로 출력")
@click.pass_context
def expect_command(
    ctx: Context,
    group_name: str,
    pairs: tuple[str, ...],
    params_json: str | None,
    cluster: bool,
    as_json: bool,
) -> None:
    """기대값 모드 점검 (Config 커스텀 규칙과 동일한 판정)"""
    resource_type = RESOURCE_TYPES["cluster-parameter-group" if cluster else "parameter-group"]

    try:
        expected = parse_expected_values(params_json)
        expected.update(_parse_pairs(pairs))
        auditor = _create_auditor(ctx)
        result = auditor.evaluate_expected_one(group_name, resource_type, expected)
    except AuditError as e:
        _fail(e)
        return

    # 파라미터 그룹 타입이므로 항상 평가됨
    if result is None:
        return

    if as_json:
        print_json({"compliance": result.compliance.value, "annotation": annotation(result), **result.to_dict()})
        return

    print_finding_set(result)
    if result.compliance == Compliance.COMPLIANT:
        print_success(annotation(result))


if __name__ == "__main__":
    cli()
