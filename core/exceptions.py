"""
core/exceptions.py - 통합 예외 계층 구조

감사 엔진 전체에서 사용되는 예외 클래스들을 정의합니다.
일관된 예외 처리와 에러 메시지를 제공합니다.

예외 계층 구조:
    AuditError (베이스)
    ├── FetchError (인벤토리/파라미터 조회 실패)
    ├── EvaluationError (규칙 파라미터 형식 오류)
    ├── PublishError (SNS 알림 전송 실패)
    ├── SubmitError (Config 평가 결과 전송 실패)
    └── ConfigError (설정 관련)

리소스 타입 분류 실패(ClassificationMiss)는 예외가 아니라 None 반환으로 표현합니다.

Usage:
    from core.exceptions import FetchError

    try:
        response = rds.describe_db_parameters(DBParameterGroupName=name)
    except ClientError as e:
        raise FetchError.from_client_error("describe_db_parameters", e, resource_id=name)
"""

from typing import Any, Dict, Optional

# =============================================================================
# 베이스 예외
# =============================================================================


class AuditError(Exception):
    """RDS 감사 기본 예외 클래스

    모든 커스텀 예외의 베이스 클래스입니다.

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# 조회/평가 관련 예외
# =============================================================================


class FetchError(AuditError):
    """인벤토리 또는 파라미터 조회 실패

    네트워크, 권한, 리소스 없음, 타임아웃을 모두 포함합니다.
    평가 단계에서 위반 Finding으로 변환되며 형제 리소스 평가를 중단시키지 않습니다.
    """

    def __init__(
        self,
        operation: str,
        resource_id: Optional[str] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        # "kms.describe_key" 처럼 서비스가 붙어 있으면 그대로 사용
        message = operation if "." in operation else f"rds.{operation}"
        if resource_id:
            message = f"{message} [{resource_id}]"
        if error_code:
            message = f"{message} failed ({error_code})"
        else:
            message = f"{message} failed"
        if error_message:
            message = f"{message}: {error_message}"

        super().__init__(message, cause)
        self.operation = operation
        self.resource_id = resource_id
        self.error_code = error_code
        self.error_message = error_message
        self.details.update(
            {
                "operation": operation,
                "resource_id": resource_id,
                "error_code": error_code,
            }
        )

    def __str__(self) -> str:
        # ClientError 메시지는 error_message에 이미 포함됨
        if self.error_code or self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"

    @classmethod
    def from_client_error(
        cls,
        operation: str,
        client_error: Exception,
        resource_id: Optional[str] = None,
    ) -> "FetchError":
        """botocore 예외로부터 생성

        ClientError는 응답의 Code/Message를 추출하고,
        BotoCoreError(타임아웃, 연결 실패 등)는 원인 예외로만 보관합니다.

        Args:
            operation: API 작업 이름 (RDS 외 서비스는 "kms.describe_key" 형식)
            client_error: ClientError 또는 BotoCoreError 예외
            resource_id: 조회 대상 리소스 식별자

        Returns:
            FetchError 인스턴스
        """
        error_code = None
        error_message = None

        response = getattr(client_error, "response", None)
        if isinstance(response, dict):
            error_info = response.get("Error", {})
            error_code = error_info.get("Code")
            error_message = error_info.get("Message")

        return cls(
            operation=operation,
            resource_id=resource_id,
            error_code=error_code,
            error_message=error_message,
            cause=client_error,
        )


class EvaluationError(AuditError):
    """규칙 파라미터 형식 오류

    Config 규칙의 ruleParameters가 JSON 객체가 아니거나
    값이 스칼라가 아닌 경우 발생합니다. COMPLIANT로 취급하지 않고
    NON_COMPLIANT + 에러 주석으로 복구됩니다.
    """

    def __init__(
        self,
        message: str,
        raw: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, cause)
        self.raw = raw
        if raw is not None:
            self.details["raw"] = raw


# =============================================================================
# 외부 전송 관련 예외
# =============================================================================


class PublishError(AuditError):
    """SNS 알림 전송 실패"""

    def __init__(
        self,
        topic_arn: Optional[str],
        message: str,
        cause: Optional[Exception] = None,
    ):
        super().__init__(f"SNS publish failed [{topic_arn or '-'}]: {message}", cause)
        self.topic_arn = topic_arn
        self.details["topic_arn"] = topic_arn


class SubmitError(AuditError):
    """AWS Config PutEvaluations 전송 실패"""

    def __init__(
        self,
        resource_id: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        super().__init__(f"Config put_evaluations failed [{resource_id}]: {message}", cause)
        self.resource_id = resource_id
        self.details["resource_id"] = resource_id


# =============================================================================
# 설정 관련 예외
# =============================================================================


class ConfigError(AuditError):
    """설정 관련 예외"""

    def __init__(
        self,
        key: str,
        message: str,
        cause: Optional[Exception] = None,
    ):
        full_message = f"설정 오류 [{key}]: {message}"
        super().__init__(full_message, cause)
        self.config_key = key
        self.details["config_key"] = key


# =============================================================================
# 예외 유틸리티 함수
# =============================================================================


def _error_code(error: Exception) -> Optional[str]:
    if isinstance(error, FetchError):
        return error.error_code
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return response.get("Error", {}).get("Code", "")
    return None


def is_access_denied(error: Exception) -> bool:
    """액세스 거부 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        액세스 거부 오류이면 True
    """
    return _error_code(error) in (
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedAccess",
    )


def is_throttling(error: Exception) -> bool:
    """스로틀링 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        스로틀링 오류이면 True
    """
    throttling_codes = {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "RateExceeded",
    }
    return _error_code(error) in throttling_codes


def is_not_found(error: Exception) -> bool:
    """리소스를 찾을 수 없는 오류인지 확인

    Args:
        error: 확인할 예외

    Returns:
        리소스 없음 오류이면 True
    """
    not_found_codes = {
        "DBInstanceNotFound",
        "DBInstanceNotFoundFault",
        "DBClusterNotFoundFault",
        "DBParameterGroupNotFound",
        "DBParameterGroupNotFoundFault",
        "DBClusterParameterGroupNotFound",
        "DBClusterParameterGroupNotFoundFault",
        "NotFoundException",
    }
    return _error_code(error) in not_found_codes


def format_error_for_user(error: Exception) -> str:
    """사용자에게 표시할 에러 메시지 포맷팅

    Args:
        error: 예외

    Returns:
        알림/주석에 넣을 수 있는 한 줄 메시지
    """
    if isinstance(error, AuditError):
        # 커스텀 예외는 이미 포맷팅됨
        return str(error)

    # boto3 ClientError (타임아웃 예외는 response=None)
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        error_info = response.get("Error", {})
        code = error_info.get("Code", "UnknownError")
        message = error_info.get("Message", str(error))
        return f"{code}: {message}"

    return str(error) or error.__class__.__name__
