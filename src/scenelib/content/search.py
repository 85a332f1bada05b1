"""Search mini-language for filtering items.

Rules, checked in order on the trimmed input:

- empty: matches everything
- ``#a #b c``: every token must equal one of the item's tags (case-insensitive)
- ``$term``: the item name contains ``term``
- anything else: the name or any single tag contains the term
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .models import Item

TAG_PREFIX = "#"
NAME_PREFIX = "$"


class SearchMode(str, Enum):
    NAME_ONLY = "name"
    TAG_ALL = "tags"
    MIXED = "mixed"


@dataclass(frozen=True)
class SearchQuery:
    """A parsed search. A query without terms matches every item."""

    mode: SearchMode = SearchMode.MIXED
    terms: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.terms

    def matches(self, item: Item) -> bool:
        if self.is_empty:
            return True

        name = item.name.casefold()
        if self.mode is SearchMode.NAME_ONLY:
            return self.terms[0] in name

        tags = [t.casefold() for t in item.tags]
        if self.mode is SearchMode.TAG_ALL:
            tag_set = set(tags)
            return all(token in tag_set for token in self.terms)

        # Substring on tags here, exact tokens in TAG_ALL mode.
        term = self.terms[0]
        return term in name or any(term in tag for tag in tags)

    def filter(self, items: Iterable[Item]) -> list[Item]:
        """Return the matching items, keeping their order."""
        return [item for item in items if self.matches(item)]


def parse_query(raw: str) -> SearchQuery:
    """Parse a raw search string into a SearchQuery."""
    text = (raw or "").strip()
    if not text:
        return SearchQuery()

    if text.startswith(TAG_PREFIX):
        tokens = []
        for token in text[len(TAG_PREFIX):].split():
            token = token.lstrip(TAG_PREFIX).casefold()
            if token:
                tokens.append(token)
        return SearchQuery(SearchMode.TAG_ALL, tuple(tokens))

    if text.startswith(NAME_PREFIX):
        term = text[len(NAME_PREFIX):].strip().casefold()
        return SearchQuery(SearchMode.NAME_ONLY, (term,) if term else ())

    return SearchQuery(SearchMode.MIXED, (text.casefold(),))
