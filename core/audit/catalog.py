"""
core/audit/catalog.py - 엔진별 파라미터 규칙 카탈로그

규칙은 (엔진 x 파라미터 x 판정식 x 목적) 태그가 붙은 불변 데이터이며,
목적(Purpose)별로 분리된 카탈로그로 노출됩니다. 목적이 다르면 같은 파라미터라도
판정이 달라지므로(예: general_log=0 은 posture 위반이지만 encryption 위반은 아님)
카탈로그를 합치지 않습니다.

목적:
    - POSTURE: SSL/TLS 강제, 감사 로그 활성화, 위험한 인증 옵션 (통과 항목도 보고)
    - ENCRYPTION: 저장 데이터/전송 구간 암호화 관련 파라미터 (위반만 보고)
    - BASELINE: 엔진별 필수 설정값 (값이 없거나 다르면 위반)

Example:
    from core.audit.catalog import Purpose, get_catalog
    from core.audit.types import EngineType

    catalog = get_catalog(Purpose.ENCRYPTION)
    for rule in catalog.rules_for(EngineType.POSTGRES):
        print(rule.parameter)
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Protocol

from .types import EngineType

# 파라미터가 설정되지 않았을 때(엔진 기본값) 판정식에 넘기는 값
DEFAULT_SENTINEL = "default"


class Purpose(Enum):
    """규칙 카탈로그 목적"""

    POSTURE = "posture"
    ENCRYPTION = "encryption"
    BASELINE = "baseline"


# =============================================================================
# 판정식 (값 -> 위반 여부)
# =============================================================================


class Predicate(Protocol):
    def __call__(self, value: str) -> bool: ...

    def describe(self) -> str: ...


@dataclass(frozen=True)
class OneOf:
    """값이 지정된 목록 중 하나이면 위반"""

    values: tuple[str, ...]
    case_sensitive: bool = False

    def __call__(self, value: str) -> bool:
        if self.case_sensitive:
            return value in self.values
        return value.lower() in {v.lower() for v in self.values}

    def describe(self) -> str:
        return "in (" + ", ".join(self.values) + ")"


@dataclass(frozen=True)
class NotOneOf:
    """값이 허용 목록에 없으면 위반"""

    allowed: tuple[str, ...]
    case_sensitive: bool = False

    def __call__(self, value: str) -> bool:
        if self.case_sensitive:
            return value not in self.allowed
        return value.lower() not in {v.lower() for v in self.allowed}

    def describe(self) -> str:
        return "not in (" + ", ".join(self.allowed) + ")"


@dataclass(frozen=True)
class MissingAny:
    """목록형 값에 필수 라이브러리가 하나도 없으면 위반 (대소문자 무시 부분 문자열)"""

    required: tuple[str, ...]

    def __call__(self, value: str) -> bool:
        lowered = value.lower()
        return not any(lib.lower() in lowered for lib in self.required)

    def describe(self) -> str:
        return "includes none of (" + ", ".join(self.required) + ")"


@dataclass(frozen=True)
class NotMatching:
    """값이 정규식과 매칭되지 않으면 위반"""

    pattern: str

    def __call__(self, value: str) -> bool:
        return re.search(self.pattern, value) is None

    def describe(self) -> str:
        return f"does not match /{self.pattern}/"


# =============================================================================
# 규칙 / 카탈로그
# =============================================================================


@dataclass(frozen=True)
class Rule:
    """엔진별 파라미터 규칙

    Attributes:
        engine: 적용 엔진
        parameter: 파라미터 이름
        predicate: 위반 판정식
        message: 위반 메시지 템플릿 ({parameter}, {value} 치환)
        purpose: 소속 카탈로그
        applies_when_absent: False면 파라미터가 설정되지 않은 경우 평가하지 않음
    """

    engine: EngineType
    parameter: str
    predicate: Predicate
    message: str
    purpose: Purpose
    applies_when_absent: bool = True

    def violates(self, value: str) -> bool:
        return self.predicate(value)

    def render(self, value: str) -> str:
        return self.message.format(parameter=self.parameter, value=value)


class RuleCatalog:
    """목적별 규칙 카탈로그 (읽기 전용)

    엔진 -> 규칙 튜플 매핑을 MappingProxyType으로 보관합니다.
    알 수 없는 엔진은 빈 튜플을 반환합니다.
    """

    def __init__(self, purpose: Purpose, rules: Iterable[Rule], emit_confirmations: bool = False):
        self.purpose = purpose
        self.emit_confirmations = emit_confirmations

        index: dict[EngineType, list[Rule]] = {}
        for rule in rules:
            if rule.purpose != purpose:
                raise ValueError(f"rule {rule.parameter} ({rule.purpose.value}) does not belong to {purpose.value}")
            index.setdefault(rule.engine, []).append(rule)
        self._rules = MappingProxyType({engine: tuple(items) for engine, items in index.items()})

    def rules_for(self, engine: EngineType) -> tuple[Rule, ...]:
        return self._rules.get(engine, ())

    @property
    def engines(self) -> tuple[EngineType, ...]:
        return tuple(self._rules)

    def __len__(self) -> int:
        return sum(len(rules) for rules in self._rules.values())

    def __repr__(self) -> str:
        return f"RuleCatalog(purpose={self.purpose.value}, rules={len(self)})"


def _rules(
    purpose: Purpose,
    engines: Iterable[EngineType],
    parameter: str,
    predicate: Predicate,
    message: str,
    applies_when_absent: bool = True,
) -> list[Rule]:
    return [
        Rule(
            engine=engine,
            parameter=parameter,
            predicate=predicate,
            message=message,
            purpose=purpose,
            applies_when_absent=applies_when_absent,
        )
        for engine in engines
    ]


_MYSQL = (EngineType.MYSQL, EngineType.MARIADB, EngineType.AURORA_MYSQL)
_MYSQL_RDS = (EngineType.MYSQL, EngineType.MARIADB)
_POSTGRES = (EngineType.POSTGRES, EngineType.AURORA_POSTGRESQL)

_OFF = OneOf(("OFF", "0", "false"))
_ON = OneOf(("ON", "1", "true"))

ENCRYPTION_LIBRARIES = ("pg_tde", "pg_crypt", "pgcrypto")
MONITORING_LIBRARIES = ("pg_stat_statements", "auto_explain")


# -----------------------------------------------------------------------------
# POSTURE
# -----------------------------------------------------------------------------

_P = Purpose.POSTURE

POSTURE_RULES: tuple[Rule, ...] = tuple(
    _rules(_P, _MYSQL, "require_secure_transport", _OFF, "SSL/TLS connections are not enforced ({parameter}={value})")
    + _rules(_P, _MYSQL, "general_log", _OFF, "General query logging is disabled ({parameter}={value})")
    + _rules(_P, _MYSQL, "slow_query_log", _OFF, "Slow query logging is disabled ({parameter}={value})")
    + _rules(
        _P,
        _MYSQL_RDS,
        "log_bin_trust_function_creators",
        _ON,
        "Binary log function creator restriction is disabled ({parameter}={value})",
    )
    + _rules(_P, _POSTGRES, "ssl", _OFF, "SSL is disabled ({parameter}={value})")
    + _rules(_P, _POSTGRES, "log_statement", OneOf(("none",)), "Statement logging is disabled ({parameter}={value})")
    + _rules(_P, _POSTGRES, "log_connections", _OFF, "Connection logging is disabled ({parameter}={value})")
    + _rules(
        _P,
        (EngineType.POSTGRES,),
        "log_disconnections",
        _OFF,
        "Disconnection logging is disabled ({parameter}={value})",
    )
    + _rules(
        _P,
        _POSTGRES,
        "shared_preload_libraries",
        MissingAny(MONITORING_LIBRARIES),
        "{parameter} should include security monitoring extensions "
        f"({', '.join(MONITORING_LIBRARIES)}), found '{{value}}'",
        applies_when_absent=False,
    )
    + _rules(
        _P,
        (EngineType.SQLSERVER,),
        "contained database authentication",
        _ON,
        "SQL Server contained database authentication is enabled - security risk ({parameter}={value})",
    )
    + _rules(
        _P,
        (EngineType.SQLSERVER,),
        "default trace enabled",
        _OFF,
        "SQL Server default trace is disabled ({parameter}={value})",
    )
    + _rules(
        _P,
        (EngineType.ORACLE,),
        "audit_trail",
        OneOf(("NONE", "FALSE")),
        "Oracle auditing is disabled ({parameter}={value})",
    )
    + _rules(
        _P,
        (EngineType.ORACLE,),
        "audit_sys_operations",
        OneOf(("FALSE",)),
        "Oracle SYS operation auditing is disabled ({parameter}={value})",
    )
)

# -----------------------------------------------------------------------------
# ENCRYPTION
# rds.force_ssl=FORCE 는 강제 상태이므로 비활성 값에 포함하지 않음
# -----------------------------------------------------------------------------

_E = Purpose.ENCRYPTION

_DISABLES = "Parameter '{parameter}' is set to '{value}' which disables"
_IN_TRANSIT = f"{_DISABLES} encryption in transit"

ENCRYPTION_RULES: tuple[Rule, ...] = tuple(
    _rules(_E, _MYSQL, "require_secure_transport", _OFF, _IN_TRANSIT)
    + _rules(_E, _MYSQL_RDS, "innodb_encrypt_tables", _OFF, f"{_DISABLES} table encryption")
    + _rules(_E, _MYSQL_RDS, "innodb_encrypt_log", _OFF, f"{_DISABLES} redo log encryption")
    + _rules(_E, _MYSQL_RDS, "innodb_encryption_threads", OneOf(("0",)), f"{_DISABLES} background encryption")
    + _rules(_E, _POSTGRES, "rds.force_ssl", _OFF, _IN_TRANSIT)
    + _rules(_E, _POSTGRES, "ssl", _OFF, _IN_TRANSIT)
    + _rules(
        _E,
        _POSTGRES,
        "shared_preload_libraries",
        MissingAny(ENCRYPTION_LIBRARIES),
        "PostgreSQL {parameter} does not include encryption extensions "
        f"({', '.join(ENCRYPTION_LIBRARIES)}), found '{{value}}'",
        applies_when_absent=False,
    )
    + _rules(_E, (EngineType.SQLSERVER,), "rds.force_ssl", _OFF, _IN_TRANSIT)
    + _rules(
        _E,
        (EngineType.SQLSERVER,),
        "contained database authentication",
        _ON,
        "SQL Server contained database authentication is enabled - security risk ({parameter}={value})",
    )
    + _rules(
        _E,
        (EngineType.ORACLE,),
        "tde_configuration",
        OneOf(("NONE", "OFF")),
        f"{_DISABLES} transparent data encryption",
    )
)

# -----------------------------------------------------------------------------
# BASELINE
# -----------------------------------------------------------------------------

_B = Purpose.BASELINE

BASELINE_RULES: tuple[Rule, ...] = tuple(
    _rules(
        _B,
        _MYSQL,
        "require_secure_transport",
        NotOneOf(("ON", "1")),
        "Required parameter '{parameter}' must be ON, found '{value}'",
    )
    + _rules(
        _B,
        (EngineType.MYSQL, EngineType.AURORA_MYSQL),
        "tls_version",
        NotMatching(r"^(TLSv1\.[23])(,\s*TLSv1\.[23])*$"),
        "Required parameter '{parameter}' must allow only TLSv1.2/TLSv1.3, found '{value}'",
    )
    + _rules(
        _B,
        _POSTGRES,
        "rds.force_ssl",
        NotOneOf(("1", "on")),
        "Required parameter '{parameter}' must be 1, found '{value}'",
    )
    + _rules(
        _B,
        (EngineType.POSTGRES,),
        "log_min_duration_statement",
        NotMatching(r"^-?[0-9]+$"),
        "Required parameter '{parameter}' must be set to a duration in milliseconds, found '{value}'",
    )
    + _rules(
        _B,
        (EngineType.SQLSERVER,),
        "rds.tls_version",
        NotMatching(r"TLS1_2"),
        "Required parameter '{parameter}' must enforce TLS1_2, found '{value}'",
    )
)


_CATALOGS: MappingProxyType[Purpose, RuleCatalog] = MappingProxyType(
    {
        Purpose.POSTURE: RuleCatalog(Purpose.POSTURE, POSTURE_RULES, emit_confirmations=True),
        Purpose.ENCRYPTION: RuleCatalog(Purpose.ENCRYPTION, ENCRYPTION_RULES),
        Purpose.BASELINE: RuleCatalog(Purpose.BASELINE, BASELINE_RULES),
    }
)


def get_catalog(purpose: Purpose | str) -> RuleCatalog:
    """목적별 카탈로그 반환

    Args:
        purpose: Purpose 또는 그 값 문자열 ("posture", "encryption", "baseline")

    Returns:
        RuleCatalog
    """
    return _CATALOGS[Purpose(purpose)]


def rules_for(engine: EngineType, purpose: Purpose | str = Purpose.POSTURE) -> tuple[Rule, ...]:
    return get_catalog(purpose).rules_for(engine)
