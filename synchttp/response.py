from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class ResponseMetadata:
    """What a transport reports about an HTTP response, besides its body."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    reason: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class HTTPResponse:
    status_code: int
    data: Optional[bytes] = None

    @property
    def ok(self) -> bool:
        """True if status code is in the 200-299 range."""
        return 200 <= self.status_code < 300

    def text(self, encoding: str = "utf-8", errors: str = "replace") -> str:
        if not self.data:
            return ""
        return self.data.decode(encoding, errors=errors)
