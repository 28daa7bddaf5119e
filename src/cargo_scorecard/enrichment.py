"""
Concurrent enrichment pipeline.

Runs, for every dependency, a repository lookup followed by a scorecard
lookup. Items run concurrently; a failure in one item never affects the
others, and results always come back in input order.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from .dependency import DependencyRef
from .error_handling import BatchItemError, DependencyLookupError, log_lookup_error
from .registry_clients import RepositoryResolver, SecurityScorer
from .structured_logging import (
    get_enrichment_logger,
    log_enrichment_complete,
    log_enrichment_start,
)


@dataclass(frozen=True)
class EnrichmentResult:
    """A dependency augmented with its repository and scorecard score."""

    name: str
    version: str
    repository: Optional[str] = None
    security_score: Optional[float] = None
    error: Optional[str] = None  # set only when the item's pipeline crashed


# Outcome of the repository lookup


@dataclass(frozen=True)
class Found:
    url: str


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Failed:
    error: DependencyLookupError


ResolveOutcome = Union[Found, NotFound, Failed]


# Outcome of the scorecard lookup


@dataclass(frozen=True)
class Scored:
    score: float


@dataclass(frozen=True)
class Unscored:
    pass


ScoreOutcome = Union[Scored, Unscored, Failed]


@dataclass(frozen=True)
class EnrichmentReport:
    """Results of one enrichment run plus diagnostics."""

    results: List[EnrichmentResult]
    duration_ms: int = 0
    errors: List[BatchItemError] = field(default_factory=list)

    @property
    def total_dependencies(self) -> int:
        return len(self.results)

    @property
    def scored_results(self) -> List[EnrichmentResult]:
        return [r for r in self.results if r.security_score is not None]

    @property
    def missing_repository(self) -> List[EnrichmentResult]:
        return [r for r in self.results if r.repository is None]

    @property
    def failed_items(self) -> List[EnrichmentResult]:
        return [r for r in self.results if r.error is not None]

    @property
    def average_score(self) -> Optional[float]:
        scores = [r.security_score for r in self.scored_results]
        if not scores:
            return None
        return sum(scores) / len(scores)


class DependencyEnricher:
    """
    Enriches a batch of dependencies with repository URLs and scorecard scores.

    The resolver and scorer are expected to share one HTTP client; the
    enricher itself holds no per-run state, so a single instance can run
    any number of batches.
    """

    def __init__(self, resolver: RepositoryResolver, scorer: SecurityScorer):
        self.resolver = resolver
        self.scorer = scorer

    async def enrich(self, dependencies: Sequence[DependencyRef]) -> List[EnrichmentResult]:
        """
        Enrich every dependency, concurrently, preserving input order.

        Args:
            dependencies: Dependencies to enrich

        Returns:
            List[EnrichmentResult]: One result per input dependency
        """
        results, _ = await self._enrich(dependencies)
        return results

    async def run(self, dependencies: Sequence[DependencyRef]) -> EnrichmentReport:
        """Enrich a batch and collect timing and per-item diagnostics."""
        start_time = time.monotonic()
        log_enrichment_start(f"run_{uuid.uuid4().hex[:12]}", len(dependencies))

        results, errors = await self._enrich(dependencies)

        report = EnrichmentReport(
            results=results,
            duration_ms=int((time.monotonic() - start_time) * 1000),
            errors=errors,
        )
        log_enrichment_complete(
            report.duration_ms,
            scored=len(report.scored_results),
            missing_repository=len(report.missing_repository),
            error_count=len(errors) + len(report.failed_items),
        )
        return report

    async def _enrich(
        self, dependencies: Sequence[DependencyRef]
    ) -> Tuple[List[EnrichmentResult], List[BatchItemError]]:
        if not dependencies:
            return [], []

        outcomes = await asyncio.gather(
            *(self._enrich_one(dep) for dep in dependencies),
            return_exceptions=True,
        )

        results: List[EnrichmentResult] = []
        errors: List[BatchItemError] = []
        for dep, outcome in zip(dependencies, outcomes):
            if isinstance(outcome, Exception):
                get_enrichment_logger().error(
                    "enrichment_item_crashed",
                    dependency=dep.name,
                    exception=type(outcome).__name__,
                    detail=str(outcome),
                )
                results.append(
                    EnrichmentResult(
                        name=dep.name,
                        version=dep.version,
                        error=f"{type(outcome).__name__}: {outcome}",
                    )
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result, item_errors = outcome
                results.append(result)
                errors.extend(item_errors)

        return results, errors

    async def _enrich_one(
        self, dependency: DependencyRef
    ) -> Tuple[EnrichmentResult, List[BatchItemError]]:
        """Resolve, then score if a repository was found."""
        errors: List[BatchItemError] = []
        repository: Optional[str] = None
        security_score: Optional[float] = None

        resolved = await self._resolve(dependency.name)
        if isinstance(resolved, Found):
            repository = resolved.url
            scored = await self._score(repository)
            if isinstance(scored, Scored):
                security_score = scored.score
            elif isinstance(scored, Failed):
                errors.append(self._record(dependency, "score", scored.error))
            elif not isinstance(scored, Unscored):
                raise TypeError(f"Unexpected score outcome: {scored!r}")
        elif isinstance(resolved, Failed):
            errors.append(self._record(dependency, "resolve", resolved.error))
        elif not isinstance(resolved, NotFound):
            raise TypeError(f"Unexpected resolve outcome: {resolved!r}")

        result = EnrichmentResult(
            name=dependency.name,
            version=dependency.version,
            repository=repository,
            security_score=security_score,
        )
        return result, errors

    async def _resolve(self, name: str) -> ResolveOutcome:
        try:
            url = await self.resolver.resolve(name)
        except DependencyLookupError as e:
            return Failed(e)
        return NotFound() if url is None else Found(url)

    async def _score(self, repository_url: str) -> ScoreOutcome:
        try:
            score = await self.scorer.score(repository_url)
        except DependencyLookupError as e:
            return Failed(e)
        return Unscored() if score is None else Scored(score)

    @staticmethod
    def _record(
        dependency: DependencyRef, stage: str, error: DependencyLookupError
    ) -> BatchItemError:
        log_lookup_error(error, stage, dependency.name, "enrichment", f"_{stage}")
        return BatchItemError(dependency=dependency.name, stage=stage, error=error)
