"""Log sanitization filter to keep credentials and PII out of logs.

Redacts, before a record is emitted:
- LLM provider API keys (OpenAI, Anthropic)
- Bearer tokens, Authorization headers and JWTs
- Webhook signatures and signing secrets
- Password, secret and token fields
- Email addresses

Usage:
    from compilestrength.utils.log_sanitizer import install_log_sanitizer

    install_log_sanitizer()
"""

import logging
import re
from typing import Any, List, Optional, Tuple


class LogSanitizationFilter(logging.Filter):
    """Logging filter that redacts sensitive information from log records."""

    # More specific patterns come before general ones
    PATTERNS: List[Tuple[re.Pattern, str]] = [
        # Anthropic keys must match before the OpenAI pattern
        (re.compile(r'\bsk-ant-[a-zA-Z0-9-]{20,}'), '[REDACTED_ANTHROPIC_KEY]'),
        (re.compile(r'\bsk-(?:proj-)?[a-zA-Z0-9_-]{20,}'), '[REDACTED_OPENAI_KEY]'),

        # JWTs before Bearer
        (re.compile(r'\beyJ[a-zA-Z0-9_-]+\.eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+'), '[REDACTED_JWT]'),
        (re.compile(r'Bearer\s+[a-zA-Z0-9_\-\.]+', re.IGNORECASE), 'Bearer [REDACTED_TOKEN]'),
        (re.compile(r'(Authorization["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),

        # Webhook signature header
        (re.compile(r'(X-Signature["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),

        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r'(secret["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r'(api_key["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r'(access_token["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r'(token["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),

        (re.compile(r'\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b'), '[REDACTED_EMAIL]'),

        # Long hex strings (HMAC digests, raw tokens)
        (re.compile(r'\b[a-fA-F0-9]{32,}\b'), '[REDACTED_HEX_TOKEN]'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = self._sanitize(str(record.msg))
        if record.args:
            record.args = self._sanitize_args(record.args)
        return True

    def _sanitize(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _sanitize_args(self, args: Any) -> Any:
        """Recursively sanitize log arguments."""
        if isinstance(args, str):
            return self._sanitize(args)
        elif isinstance(args, tuple):
            return tuple(self._sanitize_args(arg) for arg in args)
        elif isinstance(args, list):
            return [self._sanitize_args(arg) for arg in args]
        elif isinstance(args, dict):
            return {k: self._sanitize_args(v) for k, v in args.items()}
        else:
            str_val = str(args)
            sanitized = self._sanitize(str_val)
            # Keep non-string args untouched unless they carried a secret
            return sanitized if sanitized != str_val else args


def install_log_sanitizer(logger_name: Optional[str] = None) -> LogSanitizationFilter:
    """Install the sanitization filter.

    Args:
        logger_name: Install only on this logger. When None, install on the
            root logger and its existing handlers.

    Returns:
        The installed filter
    """
    sanitizer = LogSanitizationFilter()

    if logger_name:
        logging.getLogger(logger_name).addFilter(sanitizer)
    else:
        root_logger = logging.getLogger()
        root_logger.addFilter(sanitizer)
        for handler in root_logger.handlers:
            handler.addFilter(sanitizer)

    return sanitizer


def sanitize_string(text: str) -> str:
    """Sanitize a string outside the logging system (e.g. error messages)."""
    return LogSanitizationFilter()._sanitize(text)
