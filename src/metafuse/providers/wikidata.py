"""Wikidata adapter (tier 3, structured knowledge base via SPARQL)."""

from typing import Dict, List, Optional

from metafuse.models.metadata import (
    AlbumData,
    AlbumQuery,
    ArtistData,
    ArtistQuery,
    Credit,
    Member,
)
from metafuse.models.sources import SOURCES, SourcedResult
from metafuse.providers.base import BaseProvider, provider_call

GROUP_QUERY = """
SELECT ?item ?description ?inception ?originLabel ?dissolved ?genreLabel ?memberLabel
WHERE {{
  ?item rdfs:label {name}@en.
  ?item wdt:P31/wdt:P279* wd:Q215380.
  OPTIONAL {{ ?item schema:description ?description. FILTER(LANG(?description) = "en") }}
  OPTIONAL {{ ?item wdt:P571 ?inception. }}
  OPTIONAL {{ ?item wdt:P576 ?dissolved. }}
  OPTIONAL {{ ?item wdt:P740 ?origin. }}
  OPTIONAL {{ ?item wdt:P136 ?genre. }}
  OPTIONAL {{ ?item wdt:P527 ?member. }}
  SERVICE wikibase:label {{ bd:serviceParam wikibase:language "en". }}
}}
LIMIT 20
"""

SOLO_QUERY = """
SELECT ?item ?description ?birthDate ?originLabel ?genreLabel
WHERE {{
  ?item rdfs:label {name}@en.
  ?item wdt:P31 wd:Q5.
  ?item wdt:P106/wdt:P279* wd:Q639669.
  OPTIONAL {{ ?item schema:description ?description. FILTER(LANG(?description) = "en") }}
  OPTIONAL {{ ?item wdt:P569 ?birthDate. }}
  OPTIONAL {{ ?item wdt:P19 ?origin. }}
  OPTIONAL {{ ?item wdt:P136 ?genre. }}
  SERVICE wikibase:label {{ bd:serviceParam wikibase:language "en". }}
}}
LIMIT 10
"""

ALBUM_QUERY = """
SELECT ?item ?description ?releaseDate ?genreLabel ?labelLabel ?producerLabel
WHERE {{
  ?item rdfs:label {title}@en.
  ?item wdt:P31/wdt:P279* wd:Q482994.
  ?item wdt:P175 ?artist.
  ?artist rdfs:label {artist}@en.
  OPTIONAL {{ ?item schema:description ?description. FILTER(LANG(?description) = "en") }}
  OPTIONAL {{ ?item wdt:P577 ?releaseDate. }}
  OPTIONAL {{ ?item wdt:P136 ?genre. }}
  OPTIONAL {{ ?item wdt:P264 ?label. }}
  OPTIONAL {{ ?item wdt:P162 ?producer. }}
  SERVICE wikibase:label {{ bd:serviceParam wikibase:language "en". }}
}}
LIMIT 10
"""


def sparql_literal(value: str) -> str:
    """Quote a string as a SPARQL literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _value(binding: Dict[str, dict], name: str) -> Optional[str]:
    return (binding.get(name) or {}).get("value") or None


def _date(binding: Dict[str, dict], name: str) -> Optional[str]:
    # xsd:dateTime values carry a midnight time component
    value = _value(binding, name)
    return value.split("T")[0] if value else None


def _distinct(bindings: List[Dict[str, dict]], name: str) -> List[str]:
    seen = []
    for binding in bindings:
        value = _value(binding, name)
        if value and value not in seen:
            seen.append(value)
    return seen


class WikidataProvider(BaseProvider):
    """Wikidata SPARQL endpoint client."""

    source = SOURCES.WIKIDATA
    key = "wikidata"

    async def sparql(self, query: str) -> List[Dict[str, dict]]:
        """Run a SPARQL query and return its result bindings."""
        data = await self._get_json(
            self.base_url,
            params={"query": query, "format": "json"},
            headers={"Accept": "application/sparql-results+json"},
        )
        return ((data or {}).get("results") or {}).get("bindings") or []

    @provider_call
    async def fetch_artist_data(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ArtistData]]:
        """Look the name up as a musical group, then as a solo musician."""
        name = sparql_literal(query.name)
        bindings = await self.sparql(GROUP_QUERY.format(name=name))

        if bindings:
            first = bindings[0]
            description = _value(first, "description")
            data = ArtistData(
                type="Group",
                origin=_value(first, "originLabel"),
                formed=_date(first, "inception"),
                disbanded=_date(first, "dissolved"),
                genres=_distinct(bindings, "genreLabel") or None,
                members=[Member(name=m) for m in _distinct(bindings, "memberLabel")] or None,
                bio=description,
                bio_summary=description,
            )
            return SourcedResult(data=data, source=self.source)

        bindings = await self.sparql(SOLO_QUERY.format(name=name))
        if not bindings:
            return None

        first = bindings[0]
        description = _value(first, "description")
        data = ArtistData(
            type="Person",
            origin=_value(first, "originLabel"),
            formed=_date(first, "birthDate"),
            genres=_distinct(bindings, "genreLabel") or None,
            bio=description,
            bio_summary=description,
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_album_data(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[AlbumData]]:
        bindings = await self.sparql(
            ALBUM_QUERY.format(
                title=sparql_literal(query.title), artist=sparql_literal(query.artist)
            )
        )
        if not bindings:
            return None

        first = bindings[0]
        description = _value(first, "description")
        data = AlbumData(
            description=description,
            description_summary=description,
            release_date=_date(first, "releaseDate"),
            genres=_distinct(bindings, "genreLabel") or None,
            label=_value(first, "labelLabel"),
            credits=[
                Credit(role="Producer", name=name)
                for name in _distinct(bindings, "producerLabel")
            ]
            or None,
        )
        return SourcedResult(data=data, source=self.source)
