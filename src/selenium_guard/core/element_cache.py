"""Cache of resolved element handles keyed by locator chain."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from selenium.webdriver.remote.webelement import WebElement

from .locators import LocatorChain

logger = logging.getLogger(__name__)


class ElementCache:
    """
    Maps locator chains (and their prefixes) to live WebElements.

    Keys compare structurally, so equal chains built separately share an
    entry. Every ``clear`` bumps a generation counter; writers pass the
    generation they started under and stale writes are dropped, so a
    resolve that raced a clear can never repopulate the cache.
    """

    def __init__(self):
        self._elements: Dict[LocatorChain, WebElement] = {}
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def get(self, chain: LocatorChain) -> Optional[WebElement]:
        return self._elements.get(chain)

    def put(
        self,
        chain: LocatorChain,
        element: WebElement,
        generation: Optional[int] = None,
    ) -> bool:
        """
        Store a resolved element.

        Args:
            chain: Locator chain the element was resolved from
            element: Resolved WebElement
            generation: Generation observed when resolution started

        Returns:
            True if stored, False if the cache was cleared in the meantime
        """
        if generation is not None and generation != self._generation:
            logger.debug(f"Dropped stale cache write for {chain}")
            return False
        self._elements[chain] = element
        return True

    def invalidate(self, chain: LocatorChain) -> int:
        """
        Drop ``chain`` and every cached chain it is a prefix of.

        Returns:
            Number of entries removed
        """
        size = len(chain)
        doomed = [
            key for key in self._elements
            if len(key) >= size and key.locators[:size] == chain.locators
        ]
        for key in doomed:
            del self._elements[key]
        return len(doomed)

    def clear(self) -> int:
        """Clear all cached elements. Returns count of cleared entries."""
        count = len(self._elements)
        self._elements.clear()
        self._generation += 1
        if count:
            logger.debug(f"Cleared {count} cached element(s)")
        return count

    def __contains__(self, chain: LocatorChain) -> bool:
        return chain in self._elements

    def __len__(self) -> int:
        return len(self._elements)
