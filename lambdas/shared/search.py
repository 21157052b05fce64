"""Fuzzy full-text search over the magic item catalog.

The index is built once from the loaded catalog and reused for every
query. Each item is scored per field (name, description, trait names,
trait descriptions); a field matches when it contains the query as a
substring (score 0) or when some run of words in it is close enough to
the query by difflib's ratio (score 1 - ratio, at most MATCH_THRESHOLD).
Field scores are combined as a weighted product, so a hit on a heavier
field, or on several fields, ranks higher. Scores only order results.
"""

import re
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import Enum

from aws_lambda_powertools import Logger

from .models import MagicItem, MagicItemRarity, MagicItemType

logger = Logger(child=True)

FIELD_WEIGHTS: tuple[tuple[str, float], ...] = (
    ("name", 0.4),
    ("description", 0.3),
    ("trait_names", 0.2),
    ("trait_descriptions", 0.1),
)
MATCH_THRESHOLD = 0.4
MIN_FUZZY_LENGTH = 3
MIN_SUGGESTION_LENGTH = 2
PERFECT_SCORE = sys.float_info.epsilon
STOP_WORDS = frozenset({"the", "of", "and", "a", "an", "with", "for"})

WORD_PATTERN = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")


def normalize(text: str) -> str:
    """Lower-case and collapse whitespace."""
    return " ".join((text or "").lower().split())


def tokenize(text: str) -> list[str]:
    """Split text into lower-case words."""
    return WORD_PATTERN.findall((text or "").lower())


@dataclass(frozen=True)
class SearchHit:
    """Matched item with its relevance score (lower is better)."""

    item: MagicItem
    score: float
    position: int


@dataclass(frozen=True)
class _Field:
    texts: tuple[str, ...]
    words: tuple[tuple[str, ...], ...]


def _index_field(values: Iterable[str]) -> _Field:
    texts = tuple(normalize(v) for v in values if v and v.strip())
    return _Field(texts=texts, words=tuple(tuple(tokenize(t)) for t in texts))


def _windows(words: tuple[str, ...], size: int) -> Iterable[str]:
    if len(words) <= size:
        if words:
            yield " ".join(words)
        return
    for start in range(len(words) - size + 1):
        yield " ".join(words[start:start + size])


class SearchIndex:
    """Weighted fuzzy index over an immutable item sequence."""

    def __init__(self, items: Sequence[MagicItem], threshold: float = MATCH_THRESHOLD) -> None:
        """Build the index.

        Args:
            items: Catalog items in catalog order
            threshold: Highest per-field score that still counts as a match
        """
        self.items = tuple(items)
        self.threshold = threshold
        self._fields = [
            {
                "name": _index_field([item.name]),
                "description": _index_field([item.description]),
                "trait_names": _index_field(t.name for t in item.traits),
                "trait_descriptions": _index_field(t.description for t in item.traits),
            }
            for item in self.items
        ]
        logger.debug("Search index built", extra={"item_count": len(self.items)})

    def __len__(self) -> int:
        return len(self.items)

    def _field_score(
        self, needle: str, query_text: str, query_len: int, field: _Field
    ) -> float | None:
        if not field.texts:
            return None
        if any(needle in text for text in field.texts):
            return 0.0
        if len(query_text) < MIN_FUZZY_LENGTH:
            return None

        cutoff = 1.0 - self.threshold
        best = 0.0
        matcher = SequenceMatcher(autojunk=False)
        matcher.set_seq2(query_text)
        for words in field.words:
            for window in _windows(words, query_len):
                floor = max(best, cutoff)
                matcher.set_seq1(window)
                if matcher.real_quick_ratio() < floor or matcher.quick_ratio() < floor:
                    continue
                ratio = matcher.ratio()
                if ratio >= floor:
                    best = ratio
        if best >= cutoff:
            return 1.0 - best
        return None

    def _score(self, position: int, needle: str, query_text: str, query_len: int) -> float | None:
        fields = self._fields[position]
        total = 1.0
        matched = False
        for key, weight in FIELD_WEIGHTS:
            field_score = self._field_score(needle, query_text, query_len, fields[key])
            if field_score is None:
                continue
            matched = True
            total *= (PERFECT_SCORE if field_score == 0 else field_score) ** weight
        return total if matched else None

    def search(self, query: str, limit: int | None = None) -> list[SearchHit]:
        """Find items matching a query, best first.

        Ties keep catalog order.

        Args:
            query: Free-text query
            limit: Optional maximum number of hits

        Returns:
            Ranked hits; empty when the query is blank or nothing matches
        """
        needle = normalize(query)
        if not needle:
            return []
        query_words = tokenize(needle)
        query_text = " ".join(query_words)
        query_len = max(1, len(query_words))

        hits = []
        for position, item in enumerate(self.items):
            score = self._score(position, needle, query_text, query_len)
            if score is not None:
                hits.append(SearchHit(item=item, score=score, position=position))

        hits.sort(key=lambda hit: (hit.score, hit.position))
        return hits if limit is None else hits[:limit]

    def suggestions(self, query: str, limit: int = 5) -> list[str]:
        """Autocomplete names for a partial query.

        Item and trait names that literally contain the query are taken
        from the fuzzy hits, in rank order, without duplicates.

        Args:
            query: Partial query
            limit: Maximum suggestions

        Returns:
            Up to ``limit`` names
        """
        needle = normalize(query)
        if len(needle) < MIN_SUGGESTION_LENGTH:
            return []

        suggestions: list[str] = []
        for hit in self.search(needle, limit=limit * 2):
            candidates = [hit.item.name, *(trait.name for trait in hit.item.traits)]
            for name in candidates:
                if needle in normalize(name) and name not in suggestions:
                    suggestions.append(name)
        return suggestions[:limit]

    def similar(self, item: MagicItem, limit: int = 5) -> list[MagicItem]:
        """Find items resembling the given one by name and trait names.

        Each significant name word and each trait name is searched on its
        own. Items matching more terms rank first, then by best score.

        Args:
            item: Reference item
            limit: Maximum results

        Returns:
            Similar items, excluding the reference item
        """
        terms = [
            word
            for word in tokenize(item.name)
            if word not in STOP_WORDS and len(word) >= MIN_FUZZY_LENGTH
        ]
        terms.extend(normalize(trait.name) for trait in item.traits if trait.name.strip())

        matches: dict[int, tuple[int, float]] = {}
        for term in dict.fromkeys(terms):
            for hit in self.search(term):
                if hit.item.slug == item.slug:
                    continue
                count, best = matches.get(hit.position, (0, 1.0))
                matches[hit.position] = (count + 1, min(best, hit.score))

        ranked = sorted(matches.items(), key=lambda entry: (-entry[1][0], entry[1][1], entry[0]))
        return [self.items[position] for position, _ in ranked[:limit]]


# =============================================================================
# RESULT ORDERING - applied on top of the query engine's output
# =============================================================================


class SortField(str, Enum):
    """Orderings offered to clients."""

    RELEVANCE = "relevance"
    NAME = "name"
    TYPE = "type"
    RARITY = "rarity"


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


RARITY_RANK = {rarity: rank for rank, rarity in enumerate(MagicItemRarity)}


def sort_items(
    items: Sequence[MagicItem],
    sort_by: SortField = SortField.RELEVANCE,
    order: SortOrder = SortOrder.ASC,
) -> list[MagicItem]:
    """Order query results.

    Relevance keeps the incoming order (ranked for text queries, catalog
    order otherwise); descending relevance reverses it.

    Args:
        items: Query results
        sort_by: Field to order by
        order: Direction

    Returns:
        New ordered list
    """
    reverse = order == SortOrder.DESC
    if sort_by == SortField.NAME:
        return sorted(items, key=lambda item: item.name.casefold(), reverse=reverse)
    if sort_by == SortField.TYPE:
        return sorted(items, key=lambda item: item.type.value, reverse=reverse)
    if sort_by == SortField.RARITY:
        return sorted(items, key=lambda item: RARITY_RANK[item.rarity], reverse=reverse)
    return list(reversed(items)) if reverse else list(items)


def paginate(
    items: Sequence[MagicItem], limit: int | None = None, offset: int = 0
) -> list[MagicItem]:
    """Slice a page out of ordered results."""
    if limit is None:
        return list(items[offset:])
    return list(items[offset:offset + limit])


def facet_counts(items: Iterable[MagicItem]) -> dict[str, dict[str, int]]:
    """Count items per type and rarity.

    Every enumeration value is present, zero when unused.

    Args:
        items: Items to count

    Returns:
        {"types": {...}, "rarities": {...}}
    """
    types = {item_type.value: 0 for item_type in MagicItemType}
    rarities = {rarity.value: 0 for rarity in MagicItemRarity}
    for item in items:
        types[item.type.value] += 1
        rarities[item.rarity.value] += 1
    return {"types": types, "rarities": rarities}
