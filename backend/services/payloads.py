"""Cached result shapes, one dataclass per kind of upstream answer.

Each payload serializes with a ``kind`` tag so a cache read can rebuild the
right type instead of handing back an untyped blob.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar


@dataclass
class ContentSearchResult:
    kind: ClassVar[str] = "content_search"

    topic: str
    timestamp: str
    posts: list[dict] = field(default_factory=list)

    @property
    def total_found(self) -> int:
        return len(self.posts)

    def to_response(self) -> dict:
        return {
            "topic": self.topic,
            "timestamp": self.timestamp,
            "reddit": {"posts": self.posts, "totalFound": self.total_found},
        }


@dataclass
class TimeSeriesResult:
    kind: ClassVar[str] = "time_series"

    keywords: list[str]
    data: Any

    def to_response(self) -> Any:
        return self.data


@dataclass
class RegionMapResult:
    kind: ClassVar[str] = "region_map"

    keywords: list[str]
    resolution: str
    data: Any

    def to_response(self) -> Any:
        return self.data


@dataclass
class RelatedListResult:
    kind: ClassVar[str] = "related_list"

    keywords: list[str]
    relation: str  # "queries" or "topics"
    data: Any

    def to_response(self) -> Any:
        return self.data


@dataclass
class TrendingKeywordsResult:
    kind: ClassVar[str] = "trending_keywords"

    country: str | None
    data: Any

    def to_response(self) -> Any:
        return self.data


Payload = ContentSearchResult | TimeSeriesResult | RegionMapResult | RelatedListResult | TrendingKeywordsResult

_KINDS: dict[str, type] = {
    cls.kind: cls
    for cls in (ContentSearchResult, TimeSeriesResult, RegionMapResult, RelatedListResult, TrendingKeywordsResult)
}


def dump_payload(payload: Payload) -> dict:
    return {"kind": payload.kind, **asdict(payload)}


def load_payload(raw: dict) -> Payload:
    fields = dict(raw)
    kind = fields.pop("kind", None)
    cls = _KINDS.get(kind)
    if cls is None:
        raise ValueError(f"Unknown cached payload kind: {kind!r}")
    return cls(**fields)
