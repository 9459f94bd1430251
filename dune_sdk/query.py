"""
Data Classes Representing a saved Dune Query
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dune_sdk.types import QueryParameter


@dataclass
class QueryMeta:
    """
    Data class containing meta content about the query
    """

    description: str
    tags: list[str]
    version: int
    engine: str
    is_private: bool
    is_archived: bool
    is_unsaved: bool
    owner: str


@dataclass
class DuneQuery:
    """
    A saved query as returned by [Get] query/{query_id}
    """

    query_id: int
    name: str
    sql: str
    meta: QueryMeta
    params: list[QueryParameter] = field(default_factory=list)

    def url(self) -> str:
        """Link to the query on dune.com"""
        return f"https://dune.com/queries/{self.query_id}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DuneQuery:
        """Constructor from json object"""
        return cls(
            query_id=int(data["query_id"]),
            name=data["name"],
            sql=data["query_sql"],
            meta=QueryMeta(
                description=data.get("description", ""),
                tags=data.get("tags", []),
                version=data["version"],
                engine=data["query_engine"],
                is_private=data["is_private"],
                is_archived=data["is_archived"],
                is_unsaved=data["is_unsaved"],
                owner=data["owner"],
            ),
            params=[QueryParameter.from_dict(param) for param in data.get("parameters", [])],
        )
