import logging

from buildersapi.logging_config import setup_logging


def test_setup_logging_configures_app_logger():
    setup_logging("debug")

    app_logger = logging.getLogger("buildersapi")
    assert app_logger.level == logging.DEBUG
    assert app_logger.propagate is False
    assert [type(h) for h in app_logger.handlers] == [logging.StreamHandler]

    setup_logging("INFO")
    assert app_logger.level == logging.INFO
    assert len(app_logger.handlers) == 1
