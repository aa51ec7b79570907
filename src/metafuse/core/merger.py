"""Attribution-preserving merge of two provider results.

The policy for each field is read from the field's dataclass metadata, so a
new field on ArtistData or AlbumData must declare how it merges.
"""

from dataclasses import fields, replace
from typing import Any, List, Optional, TypeVar

from metafuse.models.metadata import MERGE_POLICY, MergePolicy
from metafuse.models.sources import SourcedResult, is_empty_value

T = TypeVar("T")


def _union(primary: Optional[List[Any]], secondary: Optional[List[Any]]) -> Optional[List[Any]]:
    if primary is None and secondary is None:
        return None
    merged: List[Any] = []
    for item in (primary or []) + (secondary or []):
        if item not in merged:
            merged.append(item)
    return merged


def _concat(primary: Optional[List[Any]], secondary: Optional[List[Any]]) -> Optional[List[Any]]:
    if primary is None and secondary is None:
        return None
    return list(primary or []) + list(secondary or [])


def merge_field(policy: MergePolicy, primary: Any, secondary: Any) -> Any:
    """Combine one field's values according to its policy."""
    if policy is MergePolicy.UNION:
        return _union(primary, secondary)
    if policy is MergePolicy.CONCAT:
        return _concat(primary, secondary)
    # OVERLAY and PRIMARY_WINS: whole-value fallback, never interleaved
    return secondary if is_empty_value(primary) else primary


def merge_data(primary: T, secondary: T) -> T:
    """Merge two records of the same type field by field.

    Raises:
        TypeError: If the records differ in type or a field has no policy
    """
    if type(primary) is not type(secondary):
        raise TypeError(
            f"Cannot merge {type(primary).__name__} with {type(secondary).__name__}"
        )

    values = {}
    for f in fields(primary):
        policy = f.metadata.get(MERGE_POLICY)
        if policy is None:
            raise TypeError(f"{type(primary).__name__}.{f.name} has no merge policy")
        values[f.name] = merge_field(policy, getattr(primary, f.name), getattr(secondary, f.name))
    return replace(primary, **values)


def merge(primary: SourcedResult[T], secondary: SourcedResult[T]) -> SourcedResult[T]:
    """Overlay ``primary`` on ``secondary``; attribution comes from ``primary``."""
    return SourcedResult(
        data=merge_data(primary.data, secondary.data),
        source=primary.source,
        fetched_at=primary.fetched_at,
    )


def fill_fields(result: SourcedResult[T], **values: Any) -> SourcedResult[T]:
    """Copy specific fields onto a result without touching its attribution."""
    return SourcedResult(
        data=replace(result.data, **values),
        source=result.source,
        fetched_at=result.fetched_at,
    )
