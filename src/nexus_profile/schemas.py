"""Shared pydantic building blocks.

The public API speaks camelCase; Python code uses snake_case attribute names.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, HttpUrl, TypeAdapter
from pydantic.alias_generators import to_camel

_http_url = TypeAdapter(HttpUrl)


def _url_or_empty(value: str) -> str:
    """Accept an absolute http(s) URL or the empty string, keep the text as sent."""
    if value == "":
        return value
    try:
        _http_url.validate_python(value)
    except ValueError:
        msg = "must be a valid URL or empty"
        raise ValueError(msg) from None
    return value


UrlOrEmpty = Annotated[str, AfterValidator(_url_or_empty)]


class CamelModel(BaseModel):
    """Base model: camelCase on the wire, readable from ORM rows."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
