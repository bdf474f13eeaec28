import logging
import sys

import structlog

from flagstream.core.config import Settings


def configure_logging(settings: Settings) -> None:
	"""
	Configure structured logging for the application.
	Integrates standard python logging with structlog.
	"""
	shared_processors = [
		structlog.contextvars.merge_contextvars,
		structlog.stdlib.add_logger_name,
		structlog.stdlib.add_log_level,
		structlog.stdlib.PositionalArgumentsFormatter(),
		structlog.processors.TimeStamper(fmt='iso'),
		structlog.processors.StackInfoRenderer(),
	]

	if settings.is_production:
		# JSON logs for production log aggregators
		render_processors = [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
	else:
		# Pretty console logs for development
		render_processors = [structlog.dev.ConsoleRenderer()]

	structlog.configure(
		processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
		logger_factory=structlog.stdlib.LoggerFactory(),
		wrapper_class=structlog.stdlib.BoundLogger,
		cache_logger_on_first_use=True,
	)

	# Stdlib loggers (uvicorn, redis, our logging.getLogger users) share the same renderer
	formatter = structlog.stdlib.ProcessorFormatter(
		foreign_pre_chain=shared_processors,
		processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render_processors],
	)

	handler = logging.StreamHandler(sys.stdout)
	handler.setFormatter(formatter)

	root_logger = logging.getLogger()
	root_logger.handlers = [handler]
	root_logger.setLevel(settings.get_log_level())

	for name in ('uvicorn', 'uvicorn.error', 'uvicorn.access'):
		uvicorn_logger = logging.getLogger(name)
		uvicorn_logger.handlers = []
		uvicorn_logger.propagate = True

	# Set levels for noisy libraries
	for name in ('httpx', 'httpcore', 'hpack', 'urllib3'):
		logging.getLogger(name).setLevel(logging.WARNING)
