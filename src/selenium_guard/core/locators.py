"""Locator value objects and conversion to Selenium ``By`` strategies."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Optional, Union

from selenium.webdriver.common.by import By

from .exceptions import UnknownLocatorKindError


# Map locator kinds to Selenium By constants
STRATEGY_MAP = {
    "css": By.CSS_SELECTOR,
    "xpath": By.XPATH,
    "id": By.ID,
    "name": By.NAME,
    "class": By.CLASS_NAME,
    "tag": By.TAG_NAME,
    "link_text": By.LINK_TEXT,
    "partial_link_text": By.PARTIAL_LINK_TEXT,
}

KIND_ALIASES = {
    "link": "link_text",
    "partial_link": "partial_link_text",
    "class_name": "class",
    "tag_name": "tag",
    "css_selector": "css",
}

# "kind=value" with an optional explicit kind
LOCATOR_PATTERN = re.compile(r"(?:([a-zA-Z_]+)\s*=\s*)?(.+)", re.DOTALL)
INDEXED_LOCATOR_PATTERN = re.compile(r"^#(\d+)#(.*)$", re.DOTALL)
IMPLICIT_XPATH_PREFIXES = ("./", "//", "(//", "(./")

Converter = Callable[[str], tuple[str, str]]


def normalize_kind(kind: str) -> str:
    kind = kind.strip().lower().replace("-", "_")
    return KIND_ALIASES.get(kind, kind)


def check_for_index(value: str) -> tuple[Optional[int], str]:
    """
    Split an ``#N#value`` locator value into its 1-based index and selector.

    Returns:
        Tuple of (index or None, selector without the index prefix)
    """
    match = INDEXED_LOCATOR_PATTERN.match(value)
    if match is None:
        return None, value
    return int(match.group(1)), match.group(2)


def detect_implicit_kind(value: str) -> str:
    """Guess the kind of a locator given without an explicit ``kind=`` prefix."""
    if value.startswith(IMPLICIT_XPATH_PREFIXES):
        return "xpath"
    return ""


@dataclass(frozen=True)
class Locator:
    """
    A single typed selector.

    ``index`` selects the Nth match (1-based) instead of the first one.
    ``frame`` marks a node that is a navigable context boundary: when it is
    not the last node of a chain, resolution switches into it.
    """

    kind: str
    value: str
    index: Optional[int] = None
    frame: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", normalize_kind(self.kind))
        if not self.value:
            raise ValueError("Locator value cannot be empty")
        if self.index is not None and self.index < 1:
            raise ValueError(f"Locator index must be positive, got {self.index}")

    @classmethod
    def parse(cls, locator: str, frame: bool = False) -> "Locator":
        """
        Parse a locator string such as ``css=.button`` or ``//div[@id='a']``.

        A leading ``#N#`` selects the Nth match, as in ``#2#css=.item``.

        Values without an explicit kind are treated as XPath when they look
        like one, otherwise the kind is left empty and fails on resolution.
        """
        text = locator.strip()
        if not text:
            raise ValueError("Locator string cannot be blank")

        index, text = check_for_index(text)
        match = LOCATOR_PATTERN.fullmatch(text)
        if match is None:
            raise ValueError(f"Locator string has no selector: {locator!r}")
        kind, value = match.group(1), match.group(2)
        if kind is None:
            kind = detect_implicit_kind(check_for_index(value)[1])
        return cls(kind=kind, value=value, index=index, frame=frame)

    def target(self) -> tuple[Optional[int], str]:
        """Return the effective (index, selector), honoring ``#N#`` syntax."""
        embedded_index, selector = check_for_index(self.value)
        return (self.index if self.index is not None else embedded_index), selector

    def as_frame(self) -> "Locator":
        return Locator(kind=self.kind, value=self.value, index=self.index, frame=True)

    def __str__(self) -> str:
        if self.index is not None:
            return f"{self.value} [{self.index}]"
        return self.value


LocatorLike = Union[Locator, str]


def _coerce(locator: LocatorLike) -> Locator:
    if isinstance(locator, Locator):
        return locator
    return Locator.parse(locator)


@dataclass(frozen=True)
class LocatorChain:
    """
    An ordered, non-empty sequence of locators.

    Equality and hashing are structural, so two chains built separately from
    the same locators share one element cache entry.
    """

    locators: tuple[Locator, ...]
    uses_context: bool = field(default=True)

    def __post_init__(self) -> None:
        object.__setattr__(self, "locators", tuple(self.locators))
        if not self.locators:
            raise ValueError("LocatorChain must contain at least one locator")

    @classmethod
    def of(cls, *locators: LocatorLike, uses_context: Optional[bool] = None) -> "LocatorChain":
        """
        Build a chain from locators or locator strings.

        Context lookup defaults to on for multi-node chains and chains
        containing a frame.
        """
        nodes = tuple(_coerce(loc) for loc in locators)
        if uses_context is None:
            uses_context = len(nodes) > 1 or any(node.frame for node in nodes)
        return cls(locators=nodes, uses_context=uses_context)

    @property
    def last(self) -> Locator:
        return self.locators[-1]

    def prefix(self, length: int) -> "LocatorChain":
        """Return the chain made of the first ``length`` locators."""
        return LocatorChain(locators=self.locators[:length], uses_context=self.uses_context)

    def child(self, locator: LocatorLike) -> "LocatorChain":
        return LocatorChain(
            locators=self.locators + (_coerce(locator),),
            uses_context=True,
        )

    def __len__(self) -> int:
        return len(self.locators)

    def __iter__(self) -> Iterator[Locator]:
        return iter(self.locators)

    def __str__(self) -> str:
        return " -> ".join(str(loc) for loc in self.locators)


class LocatorConverter:
    """
    Converts locators to Selenium ``(by, value)`` pairs.

    Converters are looked up by kind; extra kinds can be registered at runtime.
    """

    def __init__(self, converters: Optional[dict[str, Converter]] = None):
        self._converters: dict[str, Converter] = {
            kind: self._by_factory(by) for kind, by in STRATEGY_MAP.items()
        }
        if converters:
            for kind, converter in converters.items():
                self.register_converter(kind, converter)

    @staticmethod
    def _by_factory(by: str) -> Converter:
        return lambda value: (by, value)

    def register_converter(self, kind: str, converter: Converter) -> None:
        """Register (or replace) the converter for a locator kind."""
        self._converters[normalize_kind(kind)] = converter

    @property
    def kinds(self) -> list[str]:
        return sorted(self._converters)

    def supports(self, kind: str) -> bool:
        return normalize_kind(kind) in self._converters

    def to_by(self, locator: Locator) -> tuple[str, str]:
        """
        Convert a locator to a ``(by, value)`` pair, stripping any ``#N#`` prefix.

        Raises:
            UnknownLocatorKindError: If no converter is registered for the kind
        """
        converter = self._converters.get(locator.kind)
        if converter is None:
            raise UnknownLocatorKindError(locator.kind or repr(locator.value), self.kinds)
        _, selector = locator.target()
        return converter(selector)

    def validate(self, locators: Iterable[Locator]) -> None:
        """Fail fast if any locator in ``locators`` has an unknown kind."""
        for locator in locators:
            if locator.kind not in self._converters:
                raise UnknownLocatorKindError(locator.kind or repr(locator.value), self.kinds)


def by_id(value: str, index: Optional[int] = None) -> Locator:
    return Locator("id", value, index)


def by_name(value: str, index: Optional[int] = None) -> Locator:
    return Locator("name", value, index)


def by_css(value: str, index: Optional[int] = None) -> Locator:
    return Locator("css", value, index)


def by_xpath(value: str, index: Optional[int] = None) -> Locator:
    return Locator("xpath", value, index)


def by_tag(value: str, index: Optional[int] = None) -> Locator:
    return Locator("tag", value, index)


def by_class(value: str, index: Optional[int] = None) -> Locator:
    return Locator("class", value, index)


def by_link_text(value: str, index: Optional[int] = None) -> Locator:
    return Locator("link_text", value, index)


def by_partial_link_text(value: str, index: Optional[int] = None) -> Locator:
    return Locator("partial_link_text", value, index)


def frame(locator: LocatorLike) -> Locator:
    """Mark a locator as a frame boundary for context lookup."""
    return _coerce(locator).as_frame()
