"""
core/parallel - client 생성 및 병렬 처리 모듈

주요 구성 요소:
- get_client: retry/타임아웃이 설정된 boto3 client 생성
- ordered_map: 입력 순서를 유지하는 병렬 map
- ParallelConfig / TaskResult: 병렬 실행 설정과 결과

Example:
    from core.parallel import get_client, ordered_map

    rds = get_client(session, "rds", config=audit_config)
    results = ordered_map(lambda name: fetch(rds, name), names, max_workers=4)
"""

from .client import get_client
from .executor import ParallelConfig, TaskResult, ordered_map

__all__: list[str] = [
    "get_client",
    "ordered_map",
    "ParallelConfig",
    "TaskResult",
]
