"""Utility subpackage for tabledrill"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	set_request_context,
	get_request_context,
	log_round_selection,
	log_blank_generation,
	log_grading,
)

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'set_request_context',
	'get_request_context',
	'log_round_selection',
	'log_blank_generation',
	'log_grading',
]
