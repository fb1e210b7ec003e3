# ticketdesk/core/query.py
"""Grid query pipeline.

The grid's ``UrlAdaptor`` posts a ``DataManagerRequest`` describing the view it
wants. ``QueryPipeline.run`` applies it to the full record list in a fixed
order: search, filter, sort, count, then either group or page. Every step
takes a list and returns a new one, so each can be exercised on its own.
"""
import logging
import operator
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Sequence, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ticketdesk.core.exceptions import InvalidQueryError
from ticketdesk.core.timeutil import to_naive_utc

logger = logging.getLogger(__name__)

Predicate = Callable[[Any], bool]


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class SearchFilter(_RequestModel):
    fields: list[str] | None = None
    field: str | None = None
    key: Any = None
    operator: str | None = "contains"
    ignore_case: bool = True


class WhereFilter(_RequestModel):
    field: str | None = None
    operator: str | None = None
    value: Any = None
    ignore_case: bool = False
    is_complex: bool = False
    condition: str | None = "and"
    predicates: list["WhereFilter"] | None = None


class SortDescriptor(_RequestModel):
    name: str
    direction: str = "ascending"

    @field_validator("direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value: Any) -> str:
        if value is not None and not isinstance(value, str):
            raise ValueError(f"sort direction must be a string, got {value!r}")
        direction = (value or "ascending").lower()
        direction = {"asc": "ascending", "desc": "descending"}.get(direction, direction)
        if direction not in ("ascending", "descending"):
            raise ValueError(f"unknown sort direction: {value}")
        return direction


class DataManagerRequest(_RequestModel):
    search: list[SearchFilter] | None = None
    where: list[WhereFilter] | None = None
    sorted: list[SortDescriptor] | None = None
    group: list[str] | None = None
    skip: int = Field(default=0, ge=0)
    take: int = Field(default=0, ge=0)
    requires_counts: bool = False

    @field_validator("skip", "take", mode="before")
    @classmethod
    def _null_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: type


def _base_type(annotation: Any) -> type:
    args = [a for a in get_args(annotation) if a is not type(None)]
    return args[0] if args else annotation


class FieldMap:
    """Resolves field names from a request (wire alias or attribute name, any case)."""

    def __init__(self, model: type[BaseModel]):
        self.fields: dict[str, FieldSpec] = {}
        self._by_key: dict[str, FieldSpec] = {}
        for name, info in model.model_fields.items():
            spec = FieldSpec(name=name, type=_base_type(info.annotation))
            self.fields[name] = spec
            for key in (name, info.alias or name):
                self._by_key[key.lower()] = spec

    def resolve(self, field: str | None) -> FieldSpec:
        spec = self._by_key.get((field or "").lower())
        if spec is None:
            raise InvalidQueryError(f"Unknown field: {field}", details={"field": field})
        return spec

    @property
    def string_fields(self) -> list[FieldSpec]:
        return [spec for spec in self.fields.values() if spec.type is str]


_DATETIME = TypeAdapter(datetime)


def _coerce(value: Any, spec: FieldSpec) -> Any:
    if value is None:
        return None
    try:
        if spec.type is datetime:
            return to_naive_utc(_DATETIME.validate_python(value))
        if spec.type is int:
            return int(value)
        if spec.type is str:
            return str(value)
    except (TypeError, ValueError, ValidationError):
        raise InvalidQueryError(
            f"Value {value!r} is not valid for field {spec.name}",
            details={"field": spec.name},
        )
    return value


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _fold(value: Any, ignore_case: bool) -> Any:
    return value.casefold() if ignore_case and isinstance(value, str) else value


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    # Nothing orders against a null
    return lambda actual, expected: actual is not None and expected is not None and compare(actual, expected)


_TEXT_OPERATORS: dict[str, Callable[[str, str], bool]] = {
    "contains": lambda actual, expected: expected in actual,
    "doesnotcontain": lambda actual, expected: expected not in actual,
    "startswith": str.startswith,
    "doesnotstartwith": lambda actual, expected: not actual.startswith(expected),
    "endswith": str.endswith,
    "doesnotendwith": lambda actual, expected: not actual.endswith(expected),
}

_VALUE_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equal": operator.eq,
    "notequal": operator.ne,
    "greaterthan": _ordered(operator.gt),
    "greaterthanorequal": _ordered(operator.ge),
    "lessthan": _ordered(operator.lt),
    "lessthanorequal": _ordered(operator.le),
}

_NULL_OPERATORS: dict[str, Callable[[Any], bool]] = {
    "isnull": lambda actual: actual is None,
    "isnotnull": lambda actual: actual is not None,
    "isempty": lambda actual: actual is None or actual == "",
    "isnotempty": lambda actual: actual is not None and actual != "",
}

def _field_predicate(
    spec: FieldSpec,
    op: str | None,
    value: Any,
    ignore_case: bool,
    getter: Callable[[Any], Any] | None = None,
) -> Predicate:
    op = (op or "").lower()
    get = getter or operator.attrgetter(spec.name)

    if op in _NULL_OPERATORS:
        test = _NULL_OPERATORS[op]
        return lambda record: test(get(record))

    if op in _TEXT_OPERATORS:
        text_test = _TEXT_OPERATORS[op]
        expected_text = _fold(_text(value), ignore_case)
        return lambda record: text_test(_fold(_text(get(record)), ignore_case), expected_text)

    if op in _VALUE_OPERATORS:
        value_test = _VALUE_OPERATORS[op]
        expected = _fold(_coerce(value, spec), ignore_case)
        return lambda record: value_test(_fold(get(record), ignore_case), expected)

    raise InvalidQueryError(f"Unknown operator: {op or None}", details={"operator": op or None})


class QueryPipeline:
    def __init__(self, model: type[BaseModel], first_operator_governs: bool = False):
        self.fields = FieldMap(model)
        # When set, every predicate is evaluated with the first predicate's operator
        self.first_operator_governs = first_operator_governs

    # -- steps -------------------------------------------------------------

    def search(self, records: Sequence[Any], clauses: list[SearchFilter] | None) -> list[Any]:
        """Keep records where any clause matches any of its fields."""
        if not clauses:
            return list(records)

        tests: list[Predicate] = []
        for clause in clauses:
            names = clause.fields or ([clause.field] if clause.field else [])
            specs = [self.fields.resolve(name) for name in names] or self.fields.string_fields
            # Search compares text, whatever the column type
            tests.extend(
                _field_predicate(
                    FieldSpec(name=spec.name, type=str),
                    clause.operator or "contains",
                    _text(clause.key),
                    clause.ignore_case,
                    getter=_text_getter(spec.name),
                )
                for spec in specs
            )
        return [record for record in records if any(test(record) for test in tests)]

    def filter(self, records: Sequence[Any], where: list[WhereFilter] | None) -> list[Any]:
        """Keep records satisfying every top-level predicate."""
        if not where:
            return list(records)

        override = where[0].operator if self.first_operator_governs else None
        tests = [self._compile(predicate, override) for predicate in where]
        return [record for record in records if all(test(record) for test in tests)]

    def sort(self, records: Sequence[Any], sorts: list[SortDescriptor] | None) -> list[Any]:
        """Stable multi-key sort; the first descriptor is the most significant."""
        data = list(records)
        for descriptor in reversed(sorts or []):
            spec = self.fields.resolve(descriptor.name)
            data.sort(
                key=lambda record: _sort_key(getattr(record, spec.name)),
                reverse=descriptor.direction == "descending",
            )
        return data

    def group(self, records: Sequence[Any], keys: list[str]) -> list[dict[str, Any]]:
        """Partition by the first key in first-seen order, nesting the remaining keys."""
        field, rest = keys[0], keys[1:]
        spec = self.fields.resolve(field)

        buckets: dict[Any, list[Any]] = {}
        for record in records:
            buckets.setdefault(getattr(record, spec.name), []).append(record)

        return [
            {
                "key": key,
                "field": field,
                "count": len(items),
                "items": self.group(items, rest) if rest else items,
            }
            for key, items in buckets.items()
        ]

    def page(self, records: Sequence[Any], skip: int = 0, take: int = 0) -> list[Any]:
        data = list(records)
        if skip:
            data = data[skip:]
        if take:
            data = data[:take]
        return data

    # -- pipeline ----------------------------------------------------------

    def check(self, request: DataManagerRequest) -> None:
        """Resolve every field, operator and filter value in ``request`` without any records.

        Raises ``InvalidQueryError`` so a malformed request is rejected before the store is read.
        """
        self.search([], request.search)
        self.filter([], request.where)
        self.sort([], request.sorted)
        for key in request.group or []:
            self.fields.resolve(key)

    def run(self, records: Iterable[Any], request: DataManagerRequest) -> Union[list[Any], dict[str, Any]]:
        """Apply ``request`` and return the shape the grid expects.

        Grouped: ``{"result": groups, "count": n}``. With ``requiresCounts``:
        ``{"result": records, "count": n}``. Otherwise the bare record list.
        ``count`` is taken after search and filter, before grouping or paging.
        """
        data = list(records)
        data = self.search(data, request.search)
        data = self.filter(data, request.where)
        data = self.sort(data, request.sorted)
        count = len(data)

        if request.group:
            logger.debug("Grouped query", extra={"count": count, "group": request.group})
            return {"result": self.group(data, request.group), "count": count}

        data = self.page(data, request.skip, request.take)
        logger.debug("Paged query", extra={"count": count, "returned": len(data)})
        if request.requires_counts:
            return {"result": data, "count": count}
        return data

    def _compile(self, predicate: WhereFilter, override: str | None) -> Predicate:
        if predicate.is_complex:
            children = [self._compile(child, override) for child in predicate.predicates or []]
            if (predicate.condition or "and").lower() == "or":
                return lambda record: any(test(record) for test in children)
            return lambda record: all(test(record) for test in children)

        spec = self.fields.resolve(predicate.field)
        return _field_predicate(spec, override or predicate.operator, predicate.value, predicate.ignore_case)


def _text_getter(name: str) -> Callable[[Any], str]:
    get = operator.attrgetter(name)
    return lambda record: _text(get(record))


def _sort_key(value: Any) -> tuple:
    # None sorts first when ascending
    return (0,) if value is None else (1, value)
