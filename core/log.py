"""
core/log.py - 로깅 설정

Lambda 런타임은 루트 logger에 자체 핸들러를 미리 붙여 두므로,
핸들러를 추가하지 않고 레벨과 포맷만 맞춥니다. 로컬 실행(핸들러 없음)에서는
logging.basicConfig로 기본 핸들러를 만듭니다.

CLI는 cli/ui/console.py의 RichHandler 설정을 사용합니다.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# botocore / urllib3 노이즈 로그 제한
NOISY_LOGGERS = (
    "botocore",
    "botocore.httpchecksum",
    "botocore.credentials",
    "botocore.loaders",
    "botocore.session",
    "boto3",
    "urllib3",
)


def quiet_noisy_loggers(level: int = logging.WARNING) -> None:
    """AWS SDK 로거를 지정 레벨 이상으로 제한"""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """루트 logger 레벨/포맷 설정

    Args:
        level: DEBUG / INFO / WARNING / ERROR

    Returns:
        루트 logger
    """
    root = logging.getLogger()
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if root.handlers:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        for handler in root.handlers:
            handler.setFormatter(formatter)
    else:
        logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT)

    root.setLevel(numeric_level)
    quiet_noisy_loggers()
    return root
