"""Shared base class for models persisted as camelCase documents."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Pydantic model that reads and writes the stored camelCase field names.

    Unknown fields are kept so documents written by newer clients survive a
    read-modify-write through this service.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow", use_enum_values=True
    )

    @classmethod
    def from_document(cls, data: Dict[str, Any], doc_id: Optional[str] = None):
        payload = dict(data)
        if doc_id is not None:
            payload["id"] = doc_id
        return cls.model_validate(payload)

    def to_document(self) -> Dict[str, Any]:
        """Dump for storage; the document id lives in the key, not the body."""

        return self.model_dump(by_alias=True, exclude_none=True, exclude={"id"})


__all__ = ["DocumentModel"]
