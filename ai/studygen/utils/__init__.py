"""Utility subpackage for the study generation service"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	log_llm_call,
	log_retry,
	log_generation,
	set_request_context,
	get_request_context,
)

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'log_llm_call',
	'log_retry',
	'log_generation',
	'set_request_context',
	'get_request_context',
]
