# core/__init__.py
"""
core - RDS 암호화 감사 엔진

리소스 분류, 파라미터 조회, 규칙 평가, 스윕 집계를 담당하는 최상위 패키지입니다.

아키텍처:
    core/
    ├── audit/          # 감사 엔진 (catalog, fetcher, evaluator, classifier, sweep, notifier, service)
    ├── parallel/       # boto3 client 생성, 순서 보존 병렬 실행
    ├── config.py       # 환경 변수 기반 설정
    ├── exceptions.py   # 통합 예외 계층
    └── log.py          # Lambda/CLI 공용 로깅 설정

Usage:
    # 설정
    from core.config import AuditConfig
    config = AuditConfig.from_env()

    # 감사
    from core.audit.service import ComplianceAuditor
    auditor = ComplianceAuditor.from_session(boto3.Session(), config)
    report = auditor.run_sweep()

    # 예외 처리
    from core.exceptions import FetchError, is_access_denied
    try:
        params = fetcher.fetch_parameters("my-group")
    except FetchError as e:
        if is_access_denied(e):
            print("권한이 없습니다")
"""

# audit가 config보다 먼저 (config -> audit.catalog 의존)
from core import audit, config, exceptions, log, parallel

__all__: list[str] = [
    # 서브패키지
    "audit",
    "parallel",
    # 모듈
    "config",
    "exceptions",
    "log",
]
