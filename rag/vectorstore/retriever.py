"""
Hybrid retrieval: cosine similarity blended with a lexical keyword score.

The ranking functions are pure and operate on a snapshot of chunks; the
Retriever class only pulls that snapshot from the document store.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..exceptions import DimensionMismatchError
from ..models.schemas import Chunk

logger = logging.getLogger(__name__)

WORD_PATTERN = re.compile(r"\b\w+\b")
NUMBER_PATTERN = re.compile(r"\d+[.,]?\d*")


@dataclass(frozen=True)
class ScoringWeights:
    """Tunables for keyword and hybrid scoring (empirically chosen)."""

    # Final keyword score = coverage * coverage_weight + strength * strength_weight
    coverage_weight: float = 0.6
    strength_weight: float = 0.4
    strength_normalizer: float = 3.0

    # Share of the hybrid score taken by cosine similarity
    semantic_weight: float = 0.7
    numeric_semantic_weight: float = 0.5

    # Per-keyword multipliers
    digit_multiplier: float = 2.0
    long_keyword_multiplier: float = 1.5
    long_keyword_length: int = 5
    base_multiplier: float = 1.0

    # Words of this length or shorter are not keywords
    short_word_length: int = 2


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass
class ScoredChunk:
    """A chunk with the scores it was ranked by."""

    chunk: Chunk
    score: float
    semantic_score: float
    keyword_score: float = 0.0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(f"Vectors must have the same length ({len(a)} != {len(b)})")

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    magnitude = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if magnitude == 0:
        return 0.0
    return float(np.dot(va, vb)) / magnitude


def is_numeric_keyword(keyword: str) -> bool:
    return keyword.isdecimal()


def extract_keywords(text: str, weights: ScoringWeights = DEFAULT_WEIGHTS) -> list[str]:
    """
    Extract search keywords from a query.

    Word tokens longer than short_word_length come first, followed by
    numeric tokens (digits with an optional decimal separator), with
    duplicates removed in first-seen order.
    """
    words = [
        w for w in WORD_PATTERN.findall(text.lower())
        if len(w) > weights.short_word_length
    ]
    numbers = NUMBER_PATTERN.findall(text)
    return list(dict.fromkeys(words + numbers))


def keyword_weight(keyword: str, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    if is_numeric_keyword(keyword):
        return weights.digit_multiplier
    if len(keyword) > weights.long_keyword_length:
        return weights.long_keyword_multiplier
    return weights.base_multiplier


def keyword_score(
    content: str,
    keywords: Sequence[str],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """
    Score how well a chunk's text covers the query keywords, in [0, 1].

    Each keyword found contributes ln(1 + occurrences) times its weight;
    the result blends the share of keywords matched with the average
    contribution of the matched ones.
    """
    if not keywords:
        return 0.0

    content_lower = content.lower()
    matched = 0
    total_weight = 0.0

    for keyword in keywords:
        count = content_lower.count(keyword.lower())
        if count > 0:
            matched += 1
            total_weight += math.log(1 + count) * keyword_weight(keyword, weights)

    coverage = matched / len(keywords)
    avg_weight = total_weight / matched if matched else 0.0
    strength = min(1.0, avg_weight / weights.strength_normalizer)

    return min(1.0, coverage * weights.coverage_weight + strength * weights.strength_weight)


def semantic_weight_for(keywords: Sequence[str], weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Numbers in the query shift weight from semantic to keyword matching."""
    if any(is_numeric_keyword(k) for k in keywords):
        return weights.numeric_semantic_weight
    return weights.semantic_weight


def rank_semantic(
    chunks: Sequence[Chunk],
    query_embedding: Sequence[float],
    top_k: int,
) -> list[ScoredChunk]:
    """Rank embedded chunks by cosine similarity alone."""
    scored = []
    for chunk in chunks:
        if not chunk.embedding:
            continue
        similarity = cosine_similarity(query_embedding, chunk.embedding)
        scored.append(ScoredChunk(chunk=chunk, score=similarity, semantic_score=similarity))

    scored.sort(key=lambda s: s.score, reverse=True)
    return scored[:top_k]


def rank_hybrid(
    chunks: Sequence[Chunk],
    query_embedding: Sequence[float],
    query_text: str,
    top_k: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ScoredChunk]:
    """
    Rank embedded chunks by blended semantic and keyword score.

    Ties keep the chunks' original relative order.
    """
    keywords = extract_keywords(query_text, weights)
    semantic_weight = semantic_weight_for(keywords, weights)
    keyword_weight_share = 1.0 - semantic_weight

    scored = []
    for chunk in chunks:
        if not chunk.embedding:
            continue
        semantic = cosine_similarity(query_embedding, chunk.embedding)
        lexical = keyword_score(chunk.content, keywords, weights)
        scored.append(ScoredChunk(
            chunk=chunk,
            score=semantic * semantic_weight + lexical * keyword_weight_share,
            semantic_score=semantic,
            keyword_score=lexical,
        ))

    scored.sort(key=lambda s: s.score, reverse=True)
    return scored[:top_k]


class Retriever:
    """Ranks the document store's chunks against a query."""

    def __init__(self, document_store, weights: Optional[ScoringWeights] = None):
        """
        Initialize the retriever.

        Args:
            document_store: DocumentStore providing the chunk snapshot.
            weights: Scoring tunables. Uses the defaults if not provided.
        """
        self.document_store = document_store
        self.weights = weights or DEFAULT_WEIGHTS

    def search(self, query_embedding: Sequence[float], top_k: int) -> list[Chunk]:
        """Return the top_k chunks by cosine similarity."""
        chunks = self.document_store.all_chunks()
        if not chunks:
            logger.warning("No chunks available for search")
            return []

        results = rank_semantic(chunks, query_embedding, top_k)
        logger.info(f"Found {len(results)} relevant chunks")
        return [r.chunk for r in results]

    def hybrid_search(
        self,
        query_embedding: Sequence[float],
        query_text: str,
        top_k: int,
    ) -> list[Chunk]:
        """Return the top_k chunks by hybrid score."""
        return [r.chunk for r in self.hybrid_search_scored(query_embedding, query_text, top_k)]

    def hybrid_search_scored(
        self,
        query_embedding: Sequence[float],
        query_text: str,
        top_k: int,
    ) -> list[ScoredChunk]:
        """Like hybrid_search, but keep the per-chunk scores."""
        chunks = self.document_store.all_chunks()
        if not chunks:
            logger.warning("No chunks available for hybrid search")
            return []

        results = rank_hybrid(chunks, query_embedding, query_text, top_k, self.weights)
        logger.info(f"Hybrid search found {len(results)} relevant chunks")
        for r in results:
            logger.debug(
                f"chunk {r.chunk.document_id}#{r.chunk.chunk_index}: score={r.score:.4f} "
                f"semantic={r.semantic_score:.4f} keyword={r.keyword_score:.4f}"
            )
        return results
