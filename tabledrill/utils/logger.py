import os
import sys
import logging
import pathlib
import contextvars
from logging.handlers import RotatingFileHandler
from typing import Optional
from pythonjsonlogger import jsonlogger

_request_ctx_var = contextvars.ContextVar('request_ctx', default={})


def set_request_context(request_id: str, client_id: str = None):
    _request_ctx_var.set({'request_id': request_id, 'client_id': client_id})


def get_request_context():
    return _request_ctx_var.get()


def _inject_request_context(record):
    # values passed through `extra` win over the request context
    ctx = get_request_context()
    if not getattr(record, 'request_id', None):
        record.request_id = ctx.get('request_id')
    if not getattr(record, 'client_id', None):
        record.client_id = ctx.get('client_id')
    return True


def get_logger(name: str = 'tabledrill'):
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')
    # relative to the working directory unless absolute
    LOG_FILE_PATH = os.getenv('LOG_FILE_PATH', 'logs')
    LOG_MAX_SIZE = int(os.getenv('LOG_MAX_SIZE', str(10 * 1024 * 1024)))
    LOG_MAX_FILES = int(os.getenv('LOG_MAX_FILES', '7'))

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL.upper())
    log_path = pathlib.Path(LOG_FILE_PATH)
    if not log_path.is_absolute():
        log_path = pathlib.Path(os.getcwd()) / log_path
    log_path.mkdir(parents=True, exist_ok=True)

    ch = logging.StreamHandler(sys.stdout)
    if LOG_FORMAT == 'json':
        fmt = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s')
    else:
        fmt = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    combined = RotatingFileHandler(log_path / 'combined.log', maxBytes=LOG_MAX_SIZE, backupCount=LOG_MAX_FILES)
    combined.setFormatter(fmt)
    logger.addHandler(combined)

    errors = RotatingFileHandler(log_path / 'error.log', maxBytes=LOG_MAX_SIZE, backupCount=LOG_MAX_FILES)
    errors.setLevel(logging.ERROR)
    errors.setFormatter(fmt)
    logger.addHandler(errors)

    f = logging.Filter()
    f.filter = _inject_request_context
    logger.addFilter(f)

    logging.captureWarnings(True)

    return logger


def log_request(request_id: str, method: str, path: str, status_code: int, duration_ms: float, ip: str = None):
    logger = get_logger()
    logger.info('http_request', extra={'request_id': request_id, 'method': method, 'path': path, 'status_code': status_code, 'duration_ms': duration_ms, 'ip': ip})


def log_error(error: Exception, context: dict = None):
    logger = get_logger()
    logger.exception('error', exc_info=True, extra=context or {})


def log_round_selection(request_id: Optional[str], dataset_identity: str, total_rows: int, selected_count: int, hidden_count: int, selection_case: str, memory_written: bool = False):
    logger = get_logger()
    logger.info('round_selection', extra={
        'request_id': request_id,
        'dataset_identity': dataset_identity,
        'total_rows': total_rows,
        'selected_count': selected_count,
        'hidden_count': hidden_count,
        'selection_case': selection_case,
        'memory_written': memory_written,
    })


def log_blank_generation(request_id: Optional[str], row_count: int, blank_count: int, attempts: int, rate: float):
    logger = get_logger()
    logger.info('blank_generation', extra={
        'request_id': request_id,
        'row_count': row_count,
        'blank_count': blank_count,
        'attempts': attempts,
        'rate': rate,
    })


def log_grading(request_id: Optional[str], correct_count: int, total_count: int, outcome: str, duration_ms: float):
    logger = get_logger()
    logger.info('grading', extra={
        'request_id': request_id,
        'correct_count': correct_count,
        'total_count': total_count,
        'outcome': outcome,
        'duration_ms': duration_ms,
    })
