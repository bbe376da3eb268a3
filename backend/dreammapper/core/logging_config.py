"""
Logging setup for the service.

One call to LoggingConfig.configure() installs a console handler (and an
optional daily-rotated file handler), each with a SensitiveDataFilter so
astronomy API keys and bearer tokens never reach a log sink. In JSON mode
every line also carries the request context bound by the middleware
(request_id, session_id, method, path) plus whatever was passed in extra=.
"""
import json
import logging
import re
import sys
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from dreammapper.core.config import get_settings

# Per-request fields merged into JSON log lines
request_context: ContextVar[Dict[str, Any]] = ContextVar('request_context', default={})

# Attributes of a bare LogRecord; anything else arrived through extra=
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}

_TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class SensitiveDataFilter(logging.Filter):
    """Masks credentials in messages and string args"""

    PATTERNS = [
        # Astronomy API query string
        (re.compile(r'(accesskey|secretkey)=[^\s&"]+', re.IGNORECASE), r'\1=***'),
        (re.compile(r'(password|token|secret|api[_-]?key)(["\']?\s*[:=]\s*["\']?)[^"\'\s&,]+', re.IGNORECASE), r'\1\2***'),
        (re.compile(r'Bearer\s+[^\s"]+'), 'Bearer ***'),
    ]

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def mask(self, value: str) -> str:
        for pattern, replacement in self.PATTERNS:
            value = pattern.sub(replacement, value)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if self.enabled:
            if isinstance(record.msg, str):
                record.msg = self.mask(record.msg)
            if isinstance(record.args, tuple):
                record.args = tuple(self.mask(a) if isinstance(a, str) else a for a in record.args)
        return True


class ContextualFormatter(logging.Formatter):
    """One JSON object per line: base fields, request context, then extra="""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f'{record.module}:{record.funcName}:{record.lineno}',
        }
        entry.update(request_context.get({}))

        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS:
                entry[key] = value

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class LoggingConfig:
    """Process-wide logging configuration"""

    _configured = False
    _module_levels: Dict[str, str] = {}
    _log_metrics: Dict[str, int] = dict.fromkeys(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], 0)

    @staticmethod
    def _default_levels(settings) -> Dict[str, str]:
        return {
            'dreammapper': settings.log_level,
            'httpx': 'WARNING',
            'httpcore': 'WARNING',
            'sqlalchemy.engine': 'INFO' if settings.log_sqlalchemy else 'WARNING',
            'sqlalchemy.pool': 'WARNING',
            'uvicorn.access': 'INFO' if settings.log_uvicorn_access else 'WARNING',
            'uvicorn.error': 'INFO',
        }

    @staticmethod
    def _log_file(settings) -> Path:
        path = Path(settings.log_file_path)
        if not path.is_absolute():
            # Relative paths are anchored at the repository root
            path = Path(__file__).resolve().parents[3] / path
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    @classmethod
    def _handlers(cls, settings) -> List[logging.Handler]:
        if settings.log_format.lower() == 'json':
            formatter = ContextualFormatter(datefmt=_DATE_FORMAT)
        else:
            formatter = logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT)

        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        if settings.log_file_enabled:
            handlers.append(TimedRotatingFileHandler(
                filename=str(cls._log_file(settings)),
                when='midnight',
                backupCount=settings.log_file_retention,
                encoding='utf-8',
            ))

        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(SensitiveDataFilter(enabled=not settings.log_sensitive_data))
        return handlers

    @classmethod
    def configure(cls, module_levels: Optional[Dict[str, str]] = None):
        """Install handlers and per-module levels; later calls are no-ops"""
        if cls._configured:
            return

        settings = get_settings()
        levels = cls._default_levels(settings)
        if settings.log_module_levels:
            try:
                levels.update(json.loads(settings.log_module_levels))
            except (json.JSONDecodeError, TypeError):
                print(f"Ignoring invalid LOG_MODULE_LEVELS: {settings.log_module_levels!r}", file=sys.stderr)
        levels.update(module_levels or {})

        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper()),
            handlers=cls._handlers(settings),
            force=True,
        )
        for name, level in levels.items():
            logging.getLogger(name).setLevel(getattr(logging, level.upper()))
        cls._module_levels = levels

        counter = cls._MetricsHandler()
        counter.setLevel(logging.DEBUG)
        logging.getLogger().addHandler(counter)

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Logger for a module, configuring logging on first use"""
        cls.configure()
        return logging.getLogger(name)

    @classmethod
    def set_module_level(cls, module: str, level: str):
        logging.getLogger(module).setLevel(getattr(logging, level.upper()))
        cls._module_levels[module] = level

    @classmethod
    def set_context(cls, **kwargs):
        """Bind fields to every JSON log line of the current request"""
        request_context.set({**request_context.get({}), **kwargs})

    @classmethod
    def clear_context(cls):
        request_context.set({})

    @classmethod
    def get_metrics(cls) -> Dict[str, int]:
        """Number of records emitted per level since start (or last reset)"""
        return dict(cls._log_metrics)

    @classmethod
    def reset_metrics(cls):
        cls._log_metrics.update(dict.fromkeys(cls._log_metrics, 0))

    class _MetricsHandler(logging.Handler):
        """Counts records per level"""

        def emit(self, record: logging.LogRecord):
            if record.levelname in LoggingConfig._log_metrics:
                LoggingConfig._log_metrics[record.levelname] += 1
