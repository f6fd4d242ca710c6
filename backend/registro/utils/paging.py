"""Page and sort handling for listings served from in-memory collections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Sequence


class PagingParamError(ValueError):
    """Raised when pagination or sort query parameters are invalid."""


@dataclass
class PagingParams:
    page: int
    page_size: int
    sort_field: str
    descending: bool = False

    @property
    def sort(self) -> str:
        return f"-{self.sort_field}" if self.descending else self.sort_field


def _int_arg(args: Mapping[str, str], name: str, default: int, *, maximum: int | None = None) -> int:
    raw = args.get(name)
    if raw is None or not raw.strip():
        return default
    if not raw.strip().isdigit():
        raise PagingParamError(f"{name} must be a positive integer.")

    value = int(raw)
    if value < 1:
        raise PagingParamError(f"{name} must be a positive integer.")
    if maximum is not None and value > maximum:
        raise PagingParamError(f"{name} must be at most {maximum}.")
    return value


def parse_paging_params(
    args: Mapping[str, str],
    *,
    sort_fields: Sequence[str],
    default_sort: str,
    default_page_size: int = 10,
    max_page_size: int = 100,
) -> PagingParams:
    """Read ``page``, ``page_size`` and ``sort`` (``field`` or ``-field``)."""

    sort = args.get("sort") or default_sort
    field = sort.lstrip("-")
    if field not in sort_fields or len(sort) - len(field) > 1:
        choices = ", ".join(f"{name}, -{name}" for name in sorted(sort_fields))
        raise PagingParamError(f"sort must be one of: {choices}.")

    return PagingParams(
        page=_int_arg(args, "page", 1),
        page_size=_int_arg(args, "page_size", default_page_size, maximum=max_page_size),
        sort_field=field,
        descending=sort.startswith("-"),
    )


def paginate(
    documents: Sequence[Dict[str, Any]],
    paging: PagingParams,
    *,
    sort_key: Callable[[Any], Any] | None = None,
) -> Dict[str, Any]:
    """Sort and slice documents, clamping the page into range."""

    key = sort_key or (lambda value: value)
    ordered = sorted(
        documents,
        key=lambda doc: key(doc.get(paging.sort_field)),
        reverse=paging.descending,
    )

    total = len(ordered)
    last_page = max(1, -(-total // paging.page_size))
    page = min(paging.page, last_page)
    offset = (page - 1) * paging.page_size

    return {
        "items": ordered[offset : offset + paging.page_size],
        "page": page,
        "page_size": paging.page_size,
        "total": total,
        "sort": paging.sort,
        "has_next": page < last_page,
        "has_prev": page > 1,
    }


__all__ = ["PagingParamError", "PagingParams", "parse_paging_params", "paginate"]
