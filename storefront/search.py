from __future__ import annotations

"""
In-memory relevance search over catalog candidates.

Used by both the customer-facing search (``STOREFRONT``) and the admin
product search (``ADMIN``). The two differ only in which secondary fields
count per query word and in the default result size.

Scoring is additive across independent signals:

- full query found in name / category (phrase match)
- each query word found in name, category and profile-specific fields
- fuzzy similarity of the full query against name / category, counted only
  above ``FUZZY_THRESHOLD``

Candidates scoring 0 are dropped, the rest are stably sorted by score
(ties keep catalog order) and truncated. Scores never leave this module.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from . import config
from .normalize import normalize_field, normalize_query, tokenize_query
from .similarity import similarity


@dataclass(frozen=True)
class CandidateItem:
    """A catalog entry eligible for matching in one search call."""

    id: str
    name: str
    category: str
    description: Optional[str] = None
    materials: Optional[str] = None
    colors: Tuple[str, ...] = field(default_factory=tuple)
    rating: float = 0.0
    review_count: int = 0
    stock: Optional[int] = None


@dataclass(frozen=True)
class ScoringProfile:
    name: str
    description_weight: int = 0
    materials_weight: int = 0
    identifier_weight: int = 0
    color_weight: int = 0
    default_limit: int = config.STOREFRONT_SEARCH_LIMIT


STOREFRONT = ScoringProfile(
    name="storefront",
    description_weight=config.WORD_DESCRIPTION_WEIGHT,
    materials_weight=config.WORD_MATERIALS_WEIGHT,
    color_weight=config.WORD_COLOR_WEIGHT,
    default_limit=config.STOREFRONT_SEARCH_LIMIT,
)

ADMIN = ScoringProfile(
    name="admin",
    identifier_weight=config.WORD_IDENTIFIER_WEIGHT,
    default_limit=config.ADMIN_SEARCH_LIMIT,
)


@dataclass
class ScoredCandidate:
    item: CandidateItem
    score: int


def _fuzzy_bonus(query: str, value: str, weight: int) -> int:
    sim = similarity(query, value)
    if sim > config.FUZZY_THRESHOLD:
        return math.floor(sim * weight)
    return 0


def score_candidate(
    query: str,
    words: Sequence[str],
    item: CandidateItem,
    profile: ScoringProfile = STOREFRONT,
) -> int:
    """
    Score one candidate. ``query`` must already be trimmed and lower-cased,
    ``words`` is its whitespace tokenisation.
    """
    name = normalize_field(item.name)
    category = normalize_field(item.category)
    description = normalize_field(item.description)
    materials = normalize_field(item.materials)
    identifier = normalize_field(item.id)
    colors = [normalize_field(c) for c in item.colors]

    score = 0

    # 1) phrase matches
    if query in name:
        score += config.PHRASE_NAME_WEIGHT
    if query in category:
        score += config.PHRASE_CATEGORY_WEIGHT

    # 2) per-word matches
    for word in words:
        if word in name:
            score += config.WORD_NAME_WEIGHT
        if word in category:
            score += config.WORD_CATEGORY_WEIGHT
        if profile.description_weight and word in description:
            score += profile.description_weight
        if profile.materials_weight and word in materials:
            score += profile.materials_weight
        if profile.identifier_weight and word in identifier:
            score += profile.identifier_weight
        if profile.color_weight and any(word in c for c in colors):
            score += profile.color_weight

    # 3) fuzzy matching for typos
    score += _fuzzy_bonus(query, name, config.FUZZY_NAME_WEIGHT)
    score += _fuzzy_bonus(query, category, config.FUZZY_CATEGORY_WEIGHT)

    return score


def filter_by_stock(candidates: Iterable[CandidateItem], stock: Optional[str]) -> List[CandidateItem]:
    """
    Admin pre-filter, applied before scoring.

    "low" keeps 0 < stock <= LOW_STOCK_THRESHOLD, "out" keeps stock == 0,
    anything else ("all", None, unknown values) keeps every candidate.
    """
    items = list(candidates)
    if stock == "low":
        return [c for c in items if c.stock is not None and 0 < c.stock <= config.LOW_STOCK_THRESHOLD]
    if stock == "out":
        return [c for c in items if c.stock == 0]
    return items


def rank_candidates(
    query: str,
    candidates: Iterable[CandidateItem],
    profile: ScoringProfile = STOREFRONT,
) -> List[ScoredCandidate]:
    """Score every candidate and return the positive ones, best first."""
    q = normalize_query(query)
    if not q:
        return []
    words = tokenize_query(q)

    scored = [ScoredCandidate(item=c, score=score_candidate(q, words, c, profile)) for c in candidates]
    kept = [s for s in scored if s.score > 0]
    # list.sort is stable: equal scores keep catalog order
    kept.sort(key=lambda s: -s.score)
    return kept


def search(
    query: str,
    candidates: Iterable[CandidateItem],
    limit: Optional[int] = None,
    profile: ScoringProfile = STOREFRONT,
) -> List[CandidateItem]:
    """
    Rank ``candidates`` against ``query`` and return at most ``limit`` items.

    An empty or whitespace-only query yields []. Never raises for
    zero-match input.
    """
    if limit is None:
        limit = profile.default_limit
    if limit <= 0:
        return []

    ranked = rank_candidates(query, candidates, profile)
    results = [s.item for s in ranked[:limit]]
    if ranked:
        logger.info(
            "{} search '{}': {} matches, returning {}",
            profile.name,
            query.strip(),
            len(ranked),
            len(results),
        )
    return results
