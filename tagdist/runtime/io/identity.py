from __future__ import annotations

"""Resolve a dataset selector to the concrete source and tag to query."""

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from tagdist.runtime.sdk.exceptions import IdentityNotFoundError

from .datalist_client import DataListClient

logger = logging.getLogger(__name__)

_SOURCE_PREFIX = "Agent#selected:"
_TAG_SEPARATOR = ".tag."


@dataclass(frozen=True, slots=True)
class TagIdentity:
    agent_id: str
    source_id: str
    tag_slug: str


@dataclass(frozen=True, slots=True)
class TagSelector:
    source_slug: str
    tag_slug: str


class IdentityResolver(Protocol):
    async def resolve(self, selector: str) -> TagIdentity:
        ...


def parse_selector(selector: str) -> TagSelector:
    """Split ``Agent#selected:<source>.tag.<tag>`` into its slugs."""
    head, sep, tag_slug = selector.partition(_TAG_SEPARATOR)
    if not sep or not tag_slug:
        raise IdentityNotFoundError(f"selector {selector!r} does not name a tag")
    _, prefix, source_slug = head.partition(_SOURCE_PREFIX)
    if not prefix or not source_slug:
        raise IdentityNotFoundError(f"selector {selector!r} does not name a data source")
    return TagSelector(source_slug=source_slug, tag_slug=tag_slug)


def in_filters(**values: Sequence[str]) -> str:
    """Render ``&filters=in(prop,"a","b")`` query fragments."""
    parts = []
    for prop, items in values.items():
        quoted = '","'.join(items)
        parts.append(f'&filters=in({prop},"{quoted}")')
    return "".join(parts)


def _public_id(entry: Any, *path: str) -> str | None:
    node = entry
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node if isinstance(node, str) else None


class DataListIdentityResolver:
    """Look up data sources and tags of one agent over the REST API."""

    def __init__(self, client: DataListClient, agent_id: str) -> None:
        self.client = client
        self.agent_id = agent_id

    async def _list(self, path: str, query: str) -> list[dict[str, Any]]:
        url = self.client.config.url_for(path, agent_id=self.agent_id) + query
        payload = await self.client.get_json(url)
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            return []
        return [entry for entry in data if isinstance(entry, dict)]

    async def resolve(self, selector: str) -> TagIdentity:
        parsed = parse_selector(selector)
        cfg = self.client.config
        sources = await self._list(
            cfg.data_sources_path,
            f'?fields=*,publicId,agent.publicId&filters=eq(slug,"{parsed.source_slug}")',
        )
        tags = await self._list(
            cfg.data_tags_path,
            "?fields=*,source.publicId,agent.publicId" + in_filters(slug=[parsed.tag_slug]),
        )
        source_ids = {_public_id(source, "publicId") for source in sources}
        source_ids.discard(None)
        for tag in tags:
            source_id = _public_id(tag, "source", "publicId")
            if tag.get("slug") == parsed.tag_slug and source_id in source_ids:
                logger.debug(
                    "identity.resolved",
                    extra={"selector": selector, "source_id": source_id},
                )
                return TagIdentity(self.agent_id, source_id, parsed.tag_slug)
        raise IdentityNotFoundError(f"no data source/tag matches selector {selector!r}")


__all__ = [
    "DataListIdentityResolver",
    "IdentityResolver",
    "TagIdentity",
    "TagSelector",
    "in_filters",
    "parse_selector",
]
