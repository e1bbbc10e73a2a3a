"""Adapter configuration."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError


class MerlinMongoOptions(BaseModel):
    """Connection settings for the MongoDB adapter.

    Accepts the ORM's camelCase ``databaseUrl`` as well as ``database_url``.
    When ``database`` is omitted the default database of the URL is used.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    database_url: str = Field(alias="databaseUrl", min_length=1)
    database: str | None = None
    server_selection_timeout_ms: int = Field(default=5000, gt=0)
    connect_timeout_ms: int = Field(default=10000, gt=0)
    client_options: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def coerce(cls, value: MerlinMongoOptions | Mapping[str, Any]) -> MerlinMongoOptions:
        """Validate *value*, re-raising pydantic errors as ``ValidationError``."""
        if isinstance(value, MerlinMongoOptions):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError({"opts": ["must be a mapping"]})
        try:
            return cls.model_validate(dict(value))
        except PydanticValidationError as e:
            errors: dict[str, list[str]] = {}
            for err in e.errors():
                loc = ".".join(str(p) for p in err["loc"])
                key = f"opts.{loc}" if loc else "opts"
                errors.setdefault(key, []).append(err["msg"])
            raise ValidationError(errors) from e
