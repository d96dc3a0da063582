"""
meta_crawler/records.py

Input record contract and line decoder.

Each input line is a JSON object ``{"url": str, "categories": [str, ...]}``.
``categories`` may be absent or null, which means the record belongs to
no category.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from meta_crawler.errors import DecodeError


class Record(BaseModel):
    """One decoded input entry: the URL to fetch and its category labels."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
    )

    url: str = Field(min_length=1)
    categories: tuple[str, ...] = ()

    @field_validator("url")
    @classmethod
    def _url_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("url must not be blank")
        return value

    @field_validator("categories", mode="before")
    @classmethod
    def _null_categories_are_empty(cls, value: object) -> object:
        return () if value is None else value

    def target_categories(self, unknown_category: str) -> tuple[str, ...]:
        """Categories to append to, falling back to the synthetic label."""
        return self.categories or (unknown_category,)


def _format_errors(exc: ValidationError) -> list[str]:
    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def decode_record(line: bytes | str) -> Record:
    """Decode one input line into a Record.

    Args:
        line: Raw line content without the trailing newline.

    Returns:
        The validated, immutable Record.

    Raises:
        DecodeError: If the line is not UTF-8, not JSON, not an object,
            or does not match the record shape.
    """
    if isinstance(line, bytes):
        try:
            text = line.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise DecodeError(
                line=line.decode("utf-8", errors="replace"),
                errors=[f"invalid utf-8: {exc}"],
            ) from exc
    else:
        text = line

    try:
        return Record.model_validate_json(text)
    except ValidationError as exc:
        raise DecodeError(line=text, errors=_format_errors(exc)) from exc
