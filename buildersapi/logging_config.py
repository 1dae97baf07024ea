import logging.config
import sys


def setup_logging(log_level: str = "INFO"):
    """buildersapi 로거 설정 (Lambda/CloudWatch 는 stdout 만 수집)"""
    log_level = log_level.upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "simple": {
                    "format": "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "formatter": "simple",
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                },
            },
            "loggers": {
                # buildersapi.* 모듈 로거가 모두 여기로 모임
                "buildersapi": {
                    "handlers": ["console"],
                    "level": log_level,
                    "propagate": False,
                },
            },
        }
    )
