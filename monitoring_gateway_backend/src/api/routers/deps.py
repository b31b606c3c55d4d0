from __future__ import annotations

from typing import Dict, Iterable, List, Tuple, Union

from fastapi import Request

from src.api.services.query_pipeline import QuerySpec


# PUBLIC_INTERFACE
def build_query_spec(items: Iterable[Tuple[str, str]], exclude: Iterable[str] = ()) -> QuerySpec:
    """
    Collapse (key, value) query pairs into a QuerySpec.

    A key supplied once maps to its string value; a repeated key maps to the
    list of its values in request order. Keys in `exclude` are dropped.
    """
    skip = set(exclude)
    collected: Dict[str, List[str]] = {}
    for key, value in items:
        if key in skip:
            continue
        collected.setdefault(key, []).append(value)

    spec: Dict[str, Union[str, List[str]]] = {}
    for key, values in collected.items():
        spec[key] = values[0] if len(values) == 1 else values
    return spec


def get_query_spec(request: Request) -> QuerySpec:
    """FastAPI dependency: QuerySpec of the current request."""
    return build_query_spec(request.query_params.multi_items())


def get_query_spec_without_filter(request: Request) -> QuerySpec:
    """QuerySpec minus Alertmanager's `filter` parameter, which is forwarded upstream instead."""
    return build_query_spec(request.query_params.multi_items(), exclude=("filter",))
