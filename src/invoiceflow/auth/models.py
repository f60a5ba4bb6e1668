"""Data models for OAuth credentials."""
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, List

from invoiceflow.utils.exceptions import DecodeError


@dataclass(frozen=True)
class Credential:
    """OAuth2 token bundle as returned by the token endpoint."""
    access_token: str
    expires_in: int
    scope: str
    token_type: str
    refresh_token: str = ""

    @property
    def scopes(self) -> List[str]:
        return self.scope.split()

    @classmethod
    def from_token_response(cls, data: Any) -> "Credential":
        """Parse a token endpoint (or stored) JSON object."""
        if not isinstance(data, dict):
            raise DecodeError(f"Expected a JSON object, got {type(data).__name__}")

        try:
            return cls(
                access_token=_require_str(data, "access_token"),
                expires_in=int(data["expires_in"]),
                scope=_require_str(data, "scope"),
                token_type=_require_str(data, "token_type"),
                refresh_token=data.get("refresh_token") or ""
            )
        except KeyError as e:
            raise DecodeError(f"Token response is missing field {e}") from e
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Token response has an invalid field: {e}") from e

    def renewed_by(self, refreshed: "Credential") -> "Credential":
        """Take a refresh result, keeping our refresh token when it omits one."""
        if refreshed.refresh_token:
            return refreshed
        return replace(refreshed, refresh_token=self.refresh_token)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __repr__(self) -> str:
        return (
            f"Credential(token_type={self.token_type!r}, expires_in={self.expires_in}, "
            f"scope={self.scope!r}, has_refresh_token={bool(self.refresh_token)})"
        )


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string")
    return value
