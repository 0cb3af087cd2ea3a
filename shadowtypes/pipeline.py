"""
End-to-end run: extract, compare, classify, whitelist, report.

The whole pipeline is one forward pass with no state kept between runs, so
the same corpus and configuration always produce the same report.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .analyzers.classifier import Classifier
from .analyzers.conventions import ConventionChecker
from .analyzers.engine import SimilarityEngine
from .analyzers.forwarding import ForwardingDetector
from .analyzers.layout import LayoutChecker
from .analyzers.signatures import clear_signature_cache
from .analyzers.whitelist import WhitelistResolver
from .config import EngineConfig
from .core.issues import ALL_CONCEPTS, Violation
from .core.reporting import ViolationReport, ViolationReporter
from .core.types import DeclarationSource, TypeDeclaration
from .extraction.base import DeclarationExtractor, create_source
from .utils.logging_setup import log_operation

logger = logging.getLogger(__name__)


def analyze_declarations(
    declarations: Sequence[TypeDeclaration],
    config: Optional[EngineConfig] = None,
) -> List[Violation]:
    """Similarity strategies plus classification for an in-memory declaration list."""
    config = config or EngineConfig()
    engine = SimilarityEngine(config.strategies, max_workers=config.max_workers)
    candidates = engine.run(declarations)
    logger.debug(f"Similarity engine produced {len(candidates)} candidates")
    return Classifier(config, declarations).classify_all(candidates)


class ShadowTypeDetector:
    """
    Runs the shadow-type analysis over one corpus.

    Args:
        config: Engine configuration; defaults when omitted
        source: Declaration source override; built from ``config.source``
            when omitted
    """

    def __init__(self, config: Optional[EngineConfig] = None, source: Optional[DeclarationSource] = None):
        self.config = config or EngineConfig()
        self.source = source

    def run(self, root: Union[str, Path], concepts: Optional[Iterable[str]] = None) -> ViolationReport:
        """
        Analyze the corpus under ``root``.

        Args:
            root: Corpus root directory
            concepts: Restrict the report to these concepts

        Raises:
            ThresholdMisconfigured: If the configuration is invalid
            CorpusUnavailable: If the root cannot be listed
        """
        root = Path(root)
        config = self.config
        config.validate()
        selected = list(concepts) if concepts is not None else list(ALL_CONCEPTS)
        log_operation(logger, "scan", root=str(root), source=config.source, concepts=selected)

        clear_signature_cache()
        source = self.source or create_source(config.source, root=root, event_types=config.event_types)
        extractor = DeclarationExtractor(
            root,
            source,
            include=config.include,
            exclude=config.exclude,
            max_workers=config.max_workers,
        )
        extraction = extractor.extract()
        declarations = extraction.declarations

        violations = analyze_declarations(declarations, config)
        violations.extend(ConventionChecker(config).check(declarations))
        violations.extend(LayoutChecker(config).check(declarations))
        if config.forwarding.enabled and source.name == "ast":
            violations.extend(ForwardingDetector(root, config).check(declarations))

        violations = [v for v in violations if v.concept in selected]
        surviving, suppressed = WhitelistResolver(config.whitelist).resolve(violations)

        report = ViolationReporter(config.severities, selected).build(
            surviving,
            skipped=extraction.skipped,
            suppressed=suppressed,
            files_scanned=extraction.files_scanned,
            declarations_scanned=len(declarations),
            source=source.name,
        )
        logger.info(
            f"Scan finished: {len(report.violations)} violations, "
            f"{len(report.suppressed)} suppressed, passed={report.passed}"
        )
        return report


def scan(
    root: Union[str, Path],
    config: Optional[EngineConfig] = None,
    concepts: Optional[Iterable[str]] = None,
) -> ViolationReport:
    """Convenience wrapper around ``ShadowTypeDetector.run``."""
    return ShadowTypeDetector(config).run(root, concepts=concepts)
