"""Exceptions raised outside the rendering and pricing core."""

import json


class QuotaError(Exception):
    """Base class for opencode-quota errors."""


class JsoncDecodeError(QuotaError, ValueError):
    """A JSON or JSONC document could not be parsed."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)

    @classmethod
    def from_json_error(cls, exc: json.JSONDecodeError, path: str | None = None) -> "JsoncDecodeError":
        return cls(f"{exc.msg} (line {exc.lineno}, column {exc.colno})", path=path)


class ProviderError(QuotaError):
    """A quota provider failed in a way it wants reported verbatim."""

    def __init__(self, provider_id: str, message: str):
        self.provider_id = provider_id
        super().__init__(message)
