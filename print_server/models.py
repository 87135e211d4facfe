"""
Data models
Print jobs, print settings and per-job results exchanged by the HTTP API and UI channel
"""

from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


class Duplex(str, Enum):
    SIMPLEX = "simplex"
    SHORT_EDGE = "short-edge"
    LONG_EDGE = "long-edge"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


# Wire values sent by existing web clients
DUPLEX_ALIASES = {
    "short": Duplex.SHORT_EDGE.value,
    "long": Duplex.LONG_EDGE.value,
}


class PrintSettings(BaseModel):
    """Print settings for one job; every field is optional"""

    model_config = ConfigDict(frozen=True)

    duplex: Optional[Duplex] = Field(None, description="simplex, short-edge or long-edge")
    copies: Optional[int] = Field(None, ge=1, description="Number of copies")
    orientation: Optional[Orientation] = Field(None, description="portrait or landscape")

    @field_validator("duplex", "orientation", "copies", mode="before")
    @classmethod
    def _empty_as_absent(cls, value: Any) -> Any:
        if value in ("", 0, None):
            return None
        return value

    @field_validator("duplex", mode="before")
    @classmethod
    def _normalize_duplex(cls, value: Any) -> Any:
        if isinstance(value, str):
            return DUPLEX_ALIASES.get(value.lower(), value.lower())
        return value


class PrintJob(BaseModel):
    """A request to print one document to one printer"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = Field("", description="URL to render when no inline content is given")
    printer: str = Field(..., min_length=1, description="Target printer name")
    settings: PrintSettings = Field(default_factory=PrintSettings, description="Print settings")
    inline_content: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("inline_content", "content"),
        description="Base64 encoded PDF",
    )

    @field_validator("settings", mode="before")
    @classmethod
    def _default_settings(cls, value: Any) -> Any:
        return {} if value is None else value

    @model_validator(mode="after")
    def _require_source(self) -> "PrintJob":
        if not self.url and not self.inline_content:
            raise ValueError("job needs either a url or inline content")
        return self


class JobResult(BaseModel):
    success: bool
    error: Optional[str] = None


class HttpsSettings(BaseModel):
    """TLS settings for the listener; cert and key are PEM text or file paths"""

    use_https: bool = Field(False, validation_alias=AliasChoices("use_https", "useHttps"))
    cert: str = Field("", validation_alias=AliasChoices("cert", "httpsCert"))
    key: str = Field("", validation_alias=AliasChoices("key", "httpsCertKey"))


def validation_message(error: ValidationError) -> str:
    """One-line summary of a validation error, e.g. ``printer: Field required``"""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)
