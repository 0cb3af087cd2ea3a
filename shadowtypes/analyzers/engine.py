"""
Similarity Engine.

Partitions declarations by kind, with classes and structs sharing one
partition, runs every enabled strategy inside each partition and returns
the candidates in a stable order. A pair flagged by several strategies
yields one candidate per strategy; a symmetric duplicate of the same
strategy is dropped.
"""

import logging
from functools import partial
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..config import StrategyConfig
from ..core.issues import SimilarityCandidate, Strategy
from ..core.types import DeclarationKind, TypeDeclaration
from ..utils.parallel import index_ranges, ordered_map
from .signatures import STRUCTURAL_KINDS
from .strategies import (
    exact_name_candidates,
    name_similarity_chunk,
    overlap_chunk,
    overlap_signature_for,
    structural_candidates,
)

logger = logging.getLogger(__name__)

# Row ranges per worker; extra ranges even out the triangular workload
CHUNKS_PER_WORKER = 4


def partition_key(kind: DeclarationKind) -> DeclarationKind:
    """Partition a kind is compared in; classes and structs share one."""
    if kind in STRUCTURAL_KINDS:
        return DeclarationKind.CLASS
    return kind


def partition_by_kind(
    declarations: Sequence[TypeDeclaration],
) -> Dict[DeclarationKind, List[TypeDeclaration]]:
    partitions: Dict[DeclarationKind, List[TypeDeclaration]] = {}
    for kind in DeclarationKind:
        partitions.setdefault(partition_key(kind), [])
    for declaration in declarations:
        partitions[partition_key(declaration.kind)].append(declaration)
    return partitions



class SimilarityEngine:
    """
    Runs the four comparison strategies.

    Args:
        config: Strategy toggles and thresholds
        max_workers: Worker threads for the pairwise strategies
    """

    def __init__(self, config: Optional[StrategyConfig] = None, max_workers: int = 1):
        self.config = config or StrategyConfig()
        self.max_workers = max_workers

    def run(self, declarations: Sequence[TypeDeclaration]) -> List[SimilarityCandidate]:
        """Produce de-duplicated candidates for a canonical declaration list."""
        candidates: List[SimilarityCandidate] = []

        for kind, partition in partition_by_kind(declarations).items():
            if len(partition) < 2:
                continue
            found = self._run_partition(kind, partition)
            logger.debug(f"{kind.value}: {len(found)} candidates from {len(partition)} declarations")
            candidates.extend(found)

        return self._deduplicate(candidates)

    def _run_partition(
        self, kind: DeclarationKind, partition: List[TypeDeclaration]
    ) -> List[SimilarityCandidate]:
        cfg = self.config
        found: List[SimilarityCandidate] = []

        if cfg.exact_name:
            found.extend(exact_name_candidates(partition))

        if cfg.structural:
            found.extend(structural_candidates(partition))

        if cfg.name_similarity:
            found.extend(self._pairwise(
                partition,
                partial(name_similarity_chunk, threshold=cfg.name_threshold),
            ))

        signature = overlap_signature_for(kind)
        if cfg.overlap and signature is not None:
            if kind is DeclarationKind.ENUM:
                threshold, floor = cfg.value_threshold, cfg.value_min_common
            else:
                threshold, floor = cfg.member_threshold, cfg.member_min_common
            found.extend(self._pairwise(
                partition,
                partial(overlap_chunk, threshold=threshold, min_common=floor, signature=signature),
            ))

        return found

    def _pairwise(self, partition: List[TypeDeclaration], chunk) -> List[SimilarityCandidate]:
        ranges = index_ranges(len(partition), max(1, self.max_workers) * CHUNKS_PER_WORKER)
        results = ordered_map(
            lambda bounds: chunk(partition, bounds[0], bounds[1]),
            ranges,
            self.max_workers,
        )
        return [candidate for chunk_result in results for candidate in chunk_result]

    def _deduplicate(self, candidates: List[SimilarityCandidate]) -> List[SimilarityCandidate]:
        """Drop repeated (strategy, declaration set) candidates, keeping the first."""
        seen: Set[Tuple[Strategy, frozenset]] = set()
        unique = []
        for candidate in candidates:
            identity = (candidate.strategy, candidate.key)
            if identity in seen:
                continue
            seen.add(identity)
            unique.append(candidate)
        return unique
