"""
Batch orchestration of profile checks.

The orchestrator visits every identifier, turns each page into a
``LastSeenResult`` and returns the results in input order. A failure for one
identifier is recorded as ``fetch_error`` at its position and never stops
the batch.
"""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from lastseen.config import get_settings
from lastseen.models import LastSeenResult, ProfileState, RunReport, RunStatus
from lastseen.scraper.classifier import classify
from lastseen.scraper.extractor import extract_timestamps
from lastseen.scraper.fetcher import ProfileFetcher
from lastseen.utils.errors import ProfileTimeoutError
from lastseen.utils.logging import get_logger, log_context

logger = get_logger(__name__)

Clock = Callable[[], datetime]


class BatchOrchestrator:
    """Run the fetch, extract and classify pipeline over an identifier list."""

    def __init__(
        self,
        fetcher: ProfileFetcher,
        clock: Optional[Clock] = None,
        fetch_timeout_seconds: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        max_scan_chars: Optional[int] = None,
        max_matches: Optional[int] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            fetcher: Profile fetcher; started and closed around each run
            clock: Source of the reference time (defaults to ``datetime.now``)
            fetch_timeout_seconds: Upper bound for one fetch
            max_concurrency: Fetches allowed in flight at once (1 = sequential)
            max_scan_chars: Extraction limit on page text length
            max_matches: Extraction limit on timestamps per page
        """
        settings = get_settings()
        self.fetcher = fetcher
        self.clock = clock or datetime.now
        self.fetch_timeout_seconds = (
            settings.fetch_timeout_seconds if fetch_timeout_seconds is None else fetch_timeout_seconds
        )
        self.max_concurrency = settings.max_concurrency if max_concurrency is None else max_concurrency
        self.max_scan_chars = settings.max_scan_chars if max_scan_chars is None else max_scan_chars
        self.max_matches = settings.max_matches if max_matches is None else max_matches

        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be positive")
        if self.max_scan_chars < 0 or self.max_matches < 0:
            raise ValueError("extraction limits must not be negative")

    async def run(self, identifiers: Sequence[str]) -> List[LastSeenResult]:
        """
        Process ``identifiers`` and return one result per identifier.

        Args:
            identifiers: Profile identifiers in record store order

        Returns:
            Results where entry ``i`` belongs to ``identifiers[i]``
        """
        identifiers = list(identifiers)
        results: List[Optional[LastSeenResult]] = [None] * len(identifiers)

        if not identifiers:
            logger.info("No identifiers to process")
            return []

        async with self.fetcher:
            if self.max_concurrency == 1:
                for index, identifier in enumerate(identifiers):
                    results[index] = await self.process_one(index, identifier)
            else:
                semaphore = asyncio.Semaphore(self.max_concurrency)

                async def _bounded(index: int, identifier: str) -> None:
                    async with semaphore:
                        results[index] = await self.process_one(index, identifier)

                await asyncio.gather(
                    *(_bounded(index, identifier) for index, identifier in enumerate(identifiers))
                )

        return results  # type: ignore[return-value]

    async def run_report(self, identifiers: Sequence[str]) -> RunReport:
        """Process ``identifiers`` and wrap the results in a ``RunReport``."""
        report = RunReport(
            status=RunStatus.RUNNING,
            identifiers=list(identifiers),
            identifiers_count=len(identifiers),
            started_at=datetime.now(),
        )
        report.results = await self.run(identifiers)
        report.status = RunStatus.COMPLETED
        report.finished_at = datetime.now()
        return report

    async def process_one(self, index: int, identifier: str) -> LastSeenResult:
        """Fetch, extract and classify a single identifier."""
        state = ProfileState.PENDING

        with log_context(identifier=identifier, position=index):
            try:
                state = ProfileState.FETCHING
                logger.info(f"Checking {identifier}")
                text = await self._fetch(identifier)

                state = ProfileState.EXTRACTING
                timestamps = extract_timestamps(
                    text,
                    max_scan_chars=self.max_scan_chars,
                    max_matches=self.max_matches,
                )
                result = classify(timestamps, self.clock())

                state = ProfileState.CLASSIFIED
                logger.debug(
                    f"Classified {identifier}: {result.render()}",
                    extra={"state": state.value, "timestamps": len(timestamps)},
                )
                return result

            except Exception as e:
                logger.error(
                    f"Failed for {identifier}: {e}",
                    extra={"state": ProfileState.FAILED.value, "failed_in": state.value},
                )
                return LastSeenResult.fetch_error(str(e))

    async def _fetch(self, identifier: str) -> str:
        try:
            return await asyncio.wait_for(
                self.fetcher.fetch(identifier),
                timeout=self.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ProfileTimeoutError(identifier, self.fetch_timeout_seconds)
