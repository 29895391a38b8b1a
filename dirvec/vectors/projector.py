"""Derive the embeddable text for a record."""

from __future__ import annotations

from collections.abc import Sequence

from ..core.types import Record

DEFAULT_FIELDS = ("name", "email")
DEFAULT_SEPARATOR = ". "


class TextProjector:
    """
    Join a fixed, ordered list of record fields into one string.

    Missing, None and blank values are skipped. The result depends only on
    the projected fields, so an unchanged record always yields the same
    text. An empty result marks the record as ineligible for embedding.
    """

    def __init__(
        self,
        fields: Sequence[str] = DEFAULT_FIELDS,
        separator: str = DEFAULT_SEPARATOR,
    ):
        self.fields = tuple(fields)
        self.separator = separator

    def project(self, record: Record) -> str:
        parts = []
        for field in self.fields:
            value = record.get(field)
            if value is None:
                continue
            text = str(value)
            if text.strip():
                parts.append(text)
        return self.separator.join(parts)

    __call__ = project
