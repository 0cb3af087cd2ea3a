"""
Similarity strategies.

Each strategy is a pure function over a same-kind list of declarations and
is independently toggled and thresholded by the engine. Grouping strategies
(exact name, structural signature) emit one candidate per group; pairwise
strategies (name similarity, member/value overlap) work on index ranges of
the upper triangle so the engine can spread them over workers.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

import numpy as np

from ..core.issues import SimilarityCandidate, Strategy
from ..core.types import DeclarationKind, TypeDeclaration
from ..utils.parallel import upper_triangle_pairs
from .signatures import (
    STRUCTURAL_KINDS,
    member_set_signature,
    structural_member_count,
    structural_signature,
    value_set_signature,
)

logger = logging.getLogger(__name__)


def levenshtein_distance(s1: str, s2: str) -> int:
    """Levenshtein edit distance, one vectorised DP row per character of ``s1``.

    Within a row the insertion step is a running minimum, computed as
    ``minimum.accumulate(row - j) + j``.
    """
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)
    if len(s2) == 0:
        return len(s1)

    target = np.frombuffer(s2.encode("utf-32-le"), dtype=np.uint32)
    offsets = np.arange(len(s2) + 1)
    previous_row = offsets.copy()

    for i, c1 in enumerate(s1):
        cost = (target != ord(c1)).astype(np.int64)
        current_row = np.empty_like(previous_row)
        current_row[0] = i + 1
        # Deletion or substitution, before insertions are folded in
        current_row[1:] = np.minimum(previous_row[1:] + 1, previous_row[:-1] + cost)
        previous_row = np.minimum.accumulate(current_row - offsets) + offsets

    return int(previous_row[-1])


def name_similarity(name_a: str, name_b: str) -> Tuple[float, int]:
    """``1 - distance / max(len)`` over case-folded names, with the distance."""
    a, b = name_a.lower(), name_b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0, 0
    distance = levenshtein_distance(a, b)
    return 1.0 - distance / longest, distance


def overlap_score(set_a: FrozenSet[str], set_b: FrozenSet[str]) -> Tuple[float, FrozenSet[str]]:
    """``|A & B| / min(|A|, |B|)`` and the common elements; 0 when either is empty."""
    smaller = min(len(set_a), len(set_b))
    if smaller == 0:
        return 0.0, frozenset()
    common = set_a & set_b
    return len(common) / smaller, common


def exact_name_candidates(declarations: Sequence[TypeDeclaration]) -> List[SimilarityCandidate]:
    """Short names declared in two or more distinct modules."""
    groups: Dict[str, List[TypeDeclaration]] = defaultdict(list)
    for declaration in declarations:
        groups[declaration.name].append(declaration)

    candidates = []
    for name in sorted(groups):
        group = groups[name]
        modules = sorted({d.module for d in group})
        if len(modules) < 2:
            continue
        candidates.append(SimilarityCandidate(
            declarations=tuple(group),
            strategy=Strategy.EXACT_NAME,
            score=1.0,
            evidence={"name": name, "modules": modules},
        ))
    return candidates


def structural_candidates(declarations: Sequence[TypeDeclaration]) -> List[SimilarityCandidate]:
    """Classes and structs whose non-empty data-member sets are identical."""
    groups: Dict[str, List[TypeDeclaration]] = defaultdict(list)
    for declaration in declarations:
        if declaration.kind not in STRUCTURAL_KINDS:
            continue
        # Empty marker types all share the empty signature
        if structural_member_count(declaration) == 0:
            continue
        groups[structural_signature(declaration)].append(declaration)

    candidates = []
    for signature in sorted(groups):
        group = groups[signature]
        if len({d.qualified_name for d in group}) < 2:
            continue
        candidates.append(SimilarityCandidate(
            declarations=tuple(group),
            strategy=Strategy.STRUCTURAL,
            score=1.0,
            evidence={"signature": signature},
        ))
    return candidates


def name_similarity_chunk(
    declarations: Sequence[TypeDeclaration],
    start: int,
    stop: int,
    threshold: float,
) -> List[SimilarityCandidate]:
    """Name-similarity candidates for rows ``start..stop`` of the upper triangle."""
    candidates = []
    count = len(declarations)
    for i, j in upper_triangle_pairs(start, stop, count):
        a, b = declarations[i], declarations[j]
        # Identical names belong to the exact-name strategy
        if a.name == b.name:
            continue
        score, distance = name_similarity(a.name, b.name)
        if score >= threshold:
            candidates.append(SimilarityCandidate(
                declarations=(a, b),
                strategy=Strategy.NAME_SIMILARITY,
                score=score,
                evidence={"distance": distance, "names": sorted([a.name, b.name])},
            ))
    return candidates


def overlap_chunk(
    declarations: Sequence[TypeDeclaration],
    start: int,
    stop: int,
    threshold: float,
    min_common: int,
    signature: Callable[[TypeDeclaration], FrozenSet[str]],
) -> List[SimilarityCandidate]:
    """Member/value overlap candidates for rows ``start..stop``.

    A pair needs both the ratio and the common-count floor.
    """
    candidates = []
    count = len(declarations)
    for i, j in upper_triangle_pairs(start, stop, count):
        a, b = declarations[i], declarations[j]
        score, common = overlap_score(signature(a), signature(b))
        if len(common) < min_common or len(common) == 0:
            continue
        if score >= threshold:
            candidates.append(SimilarityCandidate(
                declarations=(a, b),
                strategy=Strategy.OVERLAP,
                score=score,
                evidence={"common": sorted(common), "common_count": len(common)},
            ))
    return candidates


def overlap_signature_for(kind: DeclarationKind) -> Optional[Callable[[TypeDeclaration], FrozenSet[str]]]:
    """Set signature compared by the overlap strategy for a kind, if any."""
    if kind is DeclarationKind.INTERFACE:
        return member_set_signature
    if kind is DeclarationKind.ENUM:
        return value_set_signature
    return None
