from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    PlanningSystemError, ValidationError, NotFoundError, SchedulingError, ForecastError
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'PlanningSystemError',
    'ValidationError',
    'NotFoundError',
    'SchedulingError',
    'ForecastError'
]
