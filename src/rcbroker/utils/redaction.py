from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

SECRET_QUERY_KEYS = frozenset({"p", "password", "pwd", "token", "access_token"})
MASK = "***"


@dataclass
class Redactor:
    enabled: bool = True

    def redact_secret(self, value: str | None) -> str:
        if value is None:
            return ""
        if not self.enabled or not value:
            return value
        if len(value) <= 8:
            return MASK
        return f"{value[:4]}{MASK}"

    def redact_url(self, url: str) -> str:
        if not self.enabled or "?" not in url:
            return url
        parts = urlsplit(url)
        query = parse_qsl(parts.query, keep_blank_values=True)
        if not any(key.lower() in SECRET_QUERY_KEYS for key, _ in query):
            return url
        masked = [
            (key, MASK if key.lower() in SECRET_QUERY_KEYS else value)
            for key, value in query
        ]
        return urlunsplit(parts._replace(query=urlencode(masked, safe="*")))
