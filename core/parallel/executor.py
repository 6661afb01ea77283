"""
core/parallel/executor.py - 순서 보존 병렬 실행기

파라미터 그룹처럼 서로 독립적인 작업을 동시 실행 수 제한 하에 처리합니다.
ThreadPoolExecutor 기반이며, 결과는 입력 순서대로 반환됩니다.

주요 구성 요소:
- ParallelConfig: 병렬 실행 설정 (워커 수)
- TaskResult: 작업 1건의 실행 결과
- ordered_map: 입력 순서를 유지하는 병렬 map

Example:
    from core.parallel import ordered_map

    results = ordered_map(evaluate_group, groups, max_workers=4)
    for r in results:
        if r.success:
            print(r.data)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def _clear_exception_chain(e: BaseException) -> None:
    """traceback + chained exception 메모리 누수 방지"""
    e.__traceback__ = None
    if e.__context__ is not None:
        e.__context__.__traceback__ = None
    if e.__cause__ is not None:
        e.__cause__.__traceback__ = None


@dataclass
class ParallelConfig:
    """병렬 실행 설정

    Attributes:
        max_workers: 최대 동시 스레드 수 (1~100, 1이면 호출 스레드에서 순차 실행)
    """

    max_workers: int = 1

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_workers > 100:
            self.max_workers = 100


@dataclass(frozen=True)
class TaskResult(Generic[T]):
    """작업 1건의 실행 결과

    Attributes:
        index: 입력 순서상 위치
        success: 성공 여부
        data: 성공 시 반환값
        error: 실패 시 예외
        duration_ms: 실행 시간 (밀리초)
    """

    index: int
    success: bool
    data: T | None = None
    error: Exception | None = None
    duration_ms: float = 0.0


def _run_single(func: Callable[[T], R], index: int, item: T) -> TaskResult[R]:
    start_time = time.monotonic()
    try:
        data = func(item)
    except Exception as e:
        logger.debug(f"작업 {index} 실패: {e}")
        _clear_exception_chain(e)
        return TaskResult(
            index=index,
            success=False,
            error=e,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
    return TaskResult(
        index=index,
        success=True,
        data=data,
        duration_ms=(time.monotonic() - start_time) * 1000,
    )


def ordered_map(
    func: Callable[[T], R],
    items: Iterable[T],
    max_workers: int = 1,
) -> list[TaskResult[R]]:
    """입력 순서를 유지하는 병렬 map

    max_workers가 1이면 스레드 풀 없이 호출 스레드에서 순차 실행합니다.
    개별 작업의 예외는 TaskResult.error로 담기며 다른 작업을 중단시키지 않습니다.

    Args:
        func: 항목 1건을 처리하는 함수
        items: 처리할 항목 (한 번 순회하여 목록으로 고정)
        max_workers: 최대 동시 스레드 수

    Returns:
        입력 순서와 같은 TaskResult 목록
    """
    config = ParallelConfig(max_workers=max_workers)
    materialized = list(items)

    if not materialized:
        return []

    start_time = time.monotonic()

    if config.max_workers == 1 or len(materialized) == 1:
        results = [_run_single(func, i, item) for i, item in enumerate(materialized)]
    else:
        workers = min(config.max_workers, len(materialized))
        logger.info(f"병렬 실행 시작: {len(materialized)}개 작업, max_workers={workers}")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            # Executor.map은 입력 순서대로 결과를 돌려줌
            results = list(executor.map(lambda pair: _run_single(func, *pair), enumerate(materialized)))

    total_time = (time.monotonic() - start_time) * 1000
    failed = sum(1 for r in results if not r.success)
    logger.info(f"실행 완료: 성공 {len(results) - failed}, 실패 {failed}, 총 {total_time:.0f}ms")

    return results
