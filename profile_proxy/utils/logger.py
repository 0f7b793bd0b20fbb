# profile_proxy/utils/logger.py
import logging
import os

LOGGER_NAME = "profile_proxy"
LEVELS = {"ERROR": 40, "WARN": 30, "INFO": 20, "DEBUG": 10, "NONE": 100}
LOG_LEVEL = LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), 20)

_log = logging.getLogger(LOGGER_NAME)
_log.setLevel(LOG_LEVEL)


def get_logger() -> logging.Logger:
    return _log

def debug(msg): _log.debug(msg)
def info(msg):  _log.info(msg)
def warn(msg):  _log.warning(msg)
def error(msg): _log.error(msg)
