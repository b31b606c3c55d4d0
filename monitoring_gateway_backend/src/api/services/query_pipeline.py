from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from src.api.schemas.common import PageMetadata

Record = Mapping[str, Any]
QuerySpec = Mapping[str, Union[str, Sequence[str]]]

RESERVED_PARAMS = ("page", "sort", "limit", "fields")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100

_RANGE_RE = re.compile(r"^(gte|gt|lte|lt):(.+)$", re.DOTALL)
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
# Prometheus emits nanosecond precision; datetime takes exactly microseconds.
_FRACTION_RE = re.compile(r"\.(\d+)")


# PUBLIC_INTERFACE
def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 date/datetime into an aware UTC datetime.

    Only text starting with a YYYY-MM-DD date is considered, so plain numbers
    like "5" are never mistaken for timestamps. Returns None when unparsable.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not _ISO_DATE_RE.match(text):
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# PUBLIC_INTERFACE
def parse_number(value: Any) -> Optional[Union[int, float]]:
    """
    Parse int/float/bool or plain decimal text into a number; None when not numeric.

    Ints are returned as-is so arbitrarily large values compare exactly.
    Text must be a plain decimal literal ("1e3" is fine, "1_000" and "inf" are not).
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        num = value
    elif isinstance(value, str):
        text = value.strip()
        if not _NUMBER_RE.match(text):
            return None
        if text.lstrip("+-").isdigit():
            try:
                return int(text)
            except ValueError:
                # beyond the int-from-text digit limit
                pass
        num = float(text)
    else:
        return None
    return None if math.isnan(num) else num


# PUBLIC_INTERFACE
def loose_equals(field_value: Any, raw: str) -> bool:
    """
    Compare a non-text field value against a raw query string.

    Numbers compare numerically (5 matches "5" and "5.0"), booleans match
    "true"/"false" or their numeric form, nested values never match.
    """
    if isinstance(field_value, bool):
        lowered = raw.strip().lower()
        if lowered in ("true", "false"):
            return field_value == (lowered == "true")
        num = parse_number(raw)
        return num is not None and num == field_value
    if isinstance(field_value, (int, float)):
        num = parse_number(raw)
        return num is not None and num == field_value
    if isinstance(field_value, str):
        return field_value == raw
    return False


def _matches_text_or_equal(field_value: Any, raw: str) -> bool:
    if isinstance(field_value, str):
        return raw.lower() in field_value.lower()
    return loose_equals(field_value, raw)


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "gte":
        return left >= right
    if op == "gt":
        return left > right
    if op == "lte":
        return left <= right
    return left < right


def _match_range(field_value: Any, op: str, operand: str) -> bool:
    operand_ts = parse_timestamp(operand)
    field_ts = parse_timestamp(field_value)
    if operand_ts is not None and field_ts is not None:
        return _compare(op, field_ts, operand_ts)

    operand_num = parse_number(operand)
    field_num = parse_number(field_value)
    if operand_num is None or field_num is None:
        return False
    return _compare(op, field_num, operand_num)


# PUBLIC_INTERFACE
def match_condition(field_value: Any, raw: str) -> bool:
    """
    Evaluate one raw condition string against a field value.

    Resolution order:
      1) range operator (gte:/gt:/lte:/lt:) -> timestamp compare if both sides
         parse as timestamps, otherwise numeric compare, otherwise False
      2) OR-list (comma present) -> any trimmed alternative matches
      3) default -> case-insensitive substring for text, loose equality otherwise
    """
    m = _RANGE_RE.match(raw)
    if m:
        return _match_range(field_value, m.group(1), m.group(2))

    if "," in raw:
        alternatives = [part.strip() for part in raw.split(",")]
        return any(_matches_text_or_equal(field_value, alt) for alt in alternatives)

    return _matches_text_or_equal(field_value, raw)


def _conditions(query: QuerySpec) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for key, value in query.items():
        if key in RESERVED_PARAMS:
            continue
        if isinstance(value, str):
            out[key] = [value]
        else:
            out[key] = [str(v) for v in value]
    return out


# PUBLIC_INTERFACE
def filter_records(records: Iterable[Record], query: QuerySpec) -> List[Record]:
    """Keep records satisfying every non-reserved key of the query (AND across keys and repeated values)."""
    conditions = _conditions(query)
    if not conditions:
        return list(records)

    def _keep(record: Record) -> bool:
        for key, raws in conditions.items():
            field_value = record.get(key)
            if field_value is None:
                return False
            if not all(match_condition(field_value, raw) for raw in raws):
                return False
        return True

    return [r for r in records if _keep(r)]


def _sort_key(value: Any) -> Tuple[int, Any]:
    # None < numbers < NaN < text < everything else (by text form)
    if value is None:
        return (0, 0)
    if isinstance(value, float) and math.isnan(value):
        return (1.5, 0)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))


def _split_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


# PUBLIC_INTERFACE
def sort_records(records: Iterable[Record], sort: Optional[str]) -> List[Record]:
    """
    Stable multi-key sort. `sort` is a comma list of field names; a leading '-'
    marks a descending key. Records equal on every key keep their input order.
    """
    out = list(records)
    keys = _split_list(sort)
    # Python's sort is stable (also with reverse=True), so sorting by the
    # least significant key first yields a lexicographic multi-key order.
    for key in reversed(keys):
        descending = key.startswith("-")
        name = key[1:] if descending else key
        if not name:
            continue
        out.sort(key=lambda r, n=name: _sort_key(r.get(n)), reverse=descending)
    return out


# PUBLIC_INTERFACE
def project_records(records: Iterable[Record], fields: Optional[str]) -> List[Record]:
    """Reduce each record to the requested fields that it actually has."""
    wanted = _split_list(fields)
    if not wanted:
        return list(records)
    return [{f: r[f] for f in wanted if f in r} for r in records]


def _positive_int(raw: Any, default: int) -> int:
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = int(float(str(raw).strip()))
    except (ValueError, OverflowError):
        return default
    return max(1, value or default)


# PUBLIC_INTERFACE
def paginate(records: Sequence[Record], page: Any = None, limit: Any = None) -> Tuple[List[Record], PageMetadata]:
    """
    Slice one page out of records and compute metadata from the pre-slice count.

    Out-of-range pages yield an empty list; page/limit are defaulted to 1/100
    and never drop below 1.
    """
    page_n = _positive_int(page, DEFAULT_PAGE)
    limit_n = _positive_int(limit, DEFAULT_LIMIT)
    total = len(records)
    total_pages = math.ceil(total / limit_n)
    skip = (page_n - 1) * limit_n

    meta = PageMetadata(
        page=page_n,
        limit=limit_n,
        total=total,
        totalPages=total_pages,
        hasNextPage=page_n < total_pages,
        hasPrevPage=page_n > 1,
    )
    return list(records[skip : skip + limit_n]), meta


def _single(query: QuerySpec, key: str) -> Optional[str]:
    value = query.get(key)
    if value is None or isinstance(value, str):
        return value
    # Repeated reserved params: the last one wins.
    return value[-1] if value else None


# PUBLIC_INTERFACE
def run_pipeline(records: Iterable[Record], query: QuerySpec) -> Tuple[List[Record], PageMetadata]:
    """Apply filter -> sort -> project -> paginate and return (page, metadata)."""
    filtered = filter_records(records, query)
    ordered = sort_records(filtered, _single(query, "sort"))
    projected = project_records(ordered, _single(query, "fields"))
    return paginate(projected, _single(query, "page"), _single(query, "limit"))
