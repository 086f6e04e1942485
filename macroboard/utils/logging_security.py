"""
Credential redaction for log lines
Purpose: Keep provider API keys out of logs when request URLs are logged
"""
import re
from typing import Any, Mapping, Set
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

REDACTED = "***"


class SecureLogger:
    """
    Redaction helpers for anything that may carry an API key

    FRED takes ``api_key`` and FMP takes ``apikey`` as query parameters, so a
    plain ``logger.info(url)`` would leak them.
    """

    # Query parameters that should be redacted
    SENSITIVE_PARAMS: Set[str] = {
        'password',
        'secret',
        'token',
        'api_key',
        'apikey',
        'access_token',
        'client_secret',
        'key',
    }

    # API keys embedded in free text, e.g. exception messages that echo a URL
    INLINE_KEY_PATTERN = re.compile(
        r'((?:api_?key|apikey|token)=)[^&\s"\']+', re.IGNORECASE
    )

    @classmethod
    def is_sensitive(cls, name: str) -> bool:
        return name.lower().strip() in cls.SENSITIVE_PARAMS

    @classmethod
    def _mask(cls, key: str, value: Any) -> Any:
        return REDACTED if cls.is_sensitive(key) and value else value

    @classmethod
    def sanitize_params(cls, params: Any) -> Any:
        """
        Redact sensitive query parameters

        Args:
            params: Original query parameters, a mapping or a list of pairs

        Returns:
            Copy of the parameters safe for logging, in the same shape
        """
        if not params:
            return {}
        if isinstance(params, Mapping):
            return {key: cls._mask(key, value) for key, value in params.items()}
        return [(key, cls._mask(key, value)) for key, value in params]

    @classmethod
    def redact_url(cls, url: str) -> str:
        """Mask sensitive query parameters inside a full URL."""
        parts = urlsplit(str(url))
        if not parts.query:
            return str(url)
        pairs = [
            (key, REDACTED if cls.is_sensitive(key) else value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
        ]
        return urlunsplit(parts._replace(query=urlencode(pairs, safe="*")))

    @classmethod
    def redact_text(cls, text: str) -> str:
        """Mask ``api_key=...`` fragments inside arbitrary text."""
        return cls.INLINE_KEY_PATTERN.sub(rf"\g<1>{REDACTED}", str(text))


def redact_url(url: str) -> str:
    return SecureLogger.redact_url(url)


def redact_text(text: str) -> str:
    return SecureLogger.redact_text(text)
