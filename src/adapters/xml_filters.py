"""Element filters for MTConnect streams documents.

A filter maps an iterable of elements to another iterable of elements;
filters are applied in order starting from every element of the document.
Patterns are compared case-insensitively, and a pattern written as `/regex/`
is searched as a case-insensitive regular expression instead.
"""

from __future__ import annotations

import functools
import itertools
import re
import xml.etree.ElementTree as ET
from typing import Callable, Iterable, Iterator

from core.domain.models import Category, Document, local_name
from core.errors import FilterError

ElementFilter = Callable[[Iterable[ET.Element]], Iterable[ET.Element]]


def _is_regex(pattern: str) -> bool:
    return len(pattern) >= 2 and pattern.startswith("/") and pattern.endswith("/")


@functools.lru_cache(maxsize=64)
def _compile(expression: str) -> re.Pattern[str]:
    try:
        return re.compile(expression, re.IGNORECASE)
    except re.error as exc:
        raise FilterError(f"Invalid pattern /{expression}/: {exc}") from exc


def check_pattern(pattern: str) -> str:
    """Compile a `/regex/` pattern up front so a bad one fails before any request."""

    if _is_regex(pattern):
        _compile(pattern[1:-1])
    return pattern


def match_string(target: str | None, pattern: str | None) -> bool:
    if target is None or pattern is None:
        return target is None and pattern is None
    if target.strip() and _is_regex(pattern):
        return _compile(pattern[1:-1]).search(target) is not None
    return target.casefold() == pattern.casefold()


def element_text(element: ET.Element) -> str:
    return "".join(element.itertext())


def by_category(category: Category) -> ElementFilter:
    """Descendants of the `Samples`, `Events` or `Condition` containers."""

    def apply(elements: Iterable[ET.Element]) -> Iterator[ET.Element]:
        for element in elements:
            if match_string(local_name(element.tag), category.value):
                yield from itertools.islice(element.iter(), 1, None)

    return apply


def _where(predicate: Callable[[ET.Element], bool]) -> ElementFilter:
    def apply(elements: Iterable[ET.Element]) -> Iterator[ET.Element]:
        return (element for element in elements if predicate(element))

    return apply


def by_data_item_id(data_item_id: str) -> ElementFilter:
    check_pattern(data_item_id)
    return _where(lambda element: match_string(element.get("dataItemId"), data_item_id))


def by_data_item_name(name: str) -> ElementFilter:
    check_pattern(name)
    return _where(lambda element: match_string(element.get("name"), name))


def by_data_item_type(type_: str) -> ElementFilter:
    check_pattern(type_)
    return _where(lambda element: match_string(local_name(element.tag), type_))


def by_data_item_sub_type(sub_type: str) -> ElementFilter:
    check_pattern(sub_type)
    return _where(lambda element: match_string(element.get("subType"), sub_type))


def by_expression(expression: str) -> ElementFilter:
    """Filter from `key=value;key=value` (all must match).

    `tag` matches the element name, `value` its text, any other key the
    attribute of that name.
    """

    if not expression or not expression.strip():
        return lambda elements: elements

    predicates: list[Callable[[ET.Element], bool]] = []
    for token in expression.split(";"):
        key, sep, value = token.partition("=")
        if not sep:
            raise FilterError(f"Invalid filter: {token}")
        check_pattern(value)
        if match_string(key, "tag"):
            predicates.append(lambda element, value=value: match_string(local_name(element.tag), value))
        elif match_string(key, "value"):
            predicates.append(lambda element, value=value: match_string(element_text(element), value))
        else:
            predicates.append(lambda element, key=key, value=value: match_string(element.get(key), value))

    return _where(lambda element: all(predicate(element) for predicate in predicates))


def build_stream_filters(
    *,
    category: Category | None = None,
    data_item_id: str | None = None,
    data_item_name: str | None = None,
    data_item_type: str | None = None,
    data_item_sub_type: str | None = None,
    expression: str | None = None,
) -> list[ElementFilter]:
    """Filters for the options of the `Current`/`Sample` commands, in application order."""

    filters: list[ElementFilter] = []
    if category is not None:
        filters.append(by_category(category))
    if data_item_id and data_item_id.strip():
        filters.append(by_data_item_id(data_item_id))
    if data_item_name and data_item_name.strip():
        filters.append(by_data_item_name(data_item_name))
    if data_item_type and data_item_type.strip():
        filters.append(by_data_item_type(data_item_type))
    if data_item_sub_type and data_item_sub_type.strip():
        filters.append(by_data_item_sub_type(data_item_sub_type))
    if expression and expression.strip():
        filters.append(by_expression(expression))
    return filters


def apply_filters(document: Document, filters: Iterable[ElementFilter]) -> list[ET.Element]:
    elements: Iterable[ET.Element] = document.root.iter()
    for element_filter in filters:
        elements = element_filter(elements)
    return list(elements)
