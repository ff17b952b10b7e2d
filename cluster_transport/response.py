import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import TransportError


class RequestMethod(Enum):
    HEAD = "HEAD"
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @classmethod
    def coerce(cls, value: Union[str, "RequestMethod"]) -> "RequestMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError as exc:
            raise ValueError(f"Unsupported request method '{value}'.") from exc


@dataclass(frozen=True)
class Response:
    """An HTTP result: status code plus the raw body, parsed on demand."""

    status: int
    body: Optional[bytes] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def has_body(self) -> bool:
        return bool(self.body)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace") if self.body else ""

    def json(self) -> Any:
        """Parse the body as JSON. An absent body parses to an empty dict."""
        if not self.body:
            return {}
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise TransportError.invalid_json_response(self.body, cause=exc) from exc


# Every request outcome is exactly one of these.
Result = Union[Response, TransportError]
