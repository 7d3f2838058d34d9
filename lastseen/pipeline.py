"""
End-to-end last-seen run.

Reads identifiers from the record store, checks every profile through the
batch orchestrator and writes all results back in a single update. Record
store failures abort the run before anything is written.
"""

from datetime import datetime
from typing import Optional

from lastseen.config import Settings, get_settings
from lastseen.google_sheets.client import GoogleSheetsClient
from lastseen.models import RunReport, RunStatus
from lastseen.orchestrator import BatchOrchestrator
from lastseen.scraper.fetcher import ProfileFetcher
from lastseen.utils.logging import get_logger, log_performance

logger = get_logger(__name__)


class LastSeenPipeline:
    """Wire the record store, profile fetcher and orchestrator into one run."""

    def __init__(
        self,
        sheets_client: GoogleSheetsClient,
        fetcher: ProfileFetcher,
        orchestrator: Optional[BatchOrchestrator] = None,
    ) -> None:
        self.sheets_client = sheets_client
        self.fetcher = fetcher
        self.orchestrator = orchestrator or BatchOrchestrator(fetcher)
        self.last_report: Optional[RunReport] = None

    @log_performance
    async def run(self) -> RunReport:
        """
        Execute one full run.

        Returns:
            Report with results in identifier order

        Raises:
            RecordStoreError: If reading or writing the sheet fails
            PlaywrightError: If the browser session cannot be started
        """
        report = RunReport(status=RunStatus.RUNNING, started_at=datetime.now())
        self.last_report = report

        try:
            await self.sheets_client.connect()
            identifiers = await self.sheets_client.read_identifiers()
            report.identifiers = identifiers
            report.identifiers_count = len(identifiers)

            report.results = await self.orchestrator.run(identifiers)
            report.rows_written = await self.sheets_client.write_results(report.rendered())

        except Exception as e:
            report.status = RunStatus.FAILED
            report.error_message = str(e)
            report.finished_at = datetime.now()
            logger.error(f"Run failed: {e}")
            raise

        report.status = RunStatus.COMPLETED
        report.finished_at = datetime.now()
        logger.info(
            "All done!",
            extra={
                "identifiers": report.identifiers_count,
                "formatted": report.formatted_count,
                "no_dates": report.no_dates_count,
                "errors": report.error_count,
            },
        )
        return report


def create_pipeline(settings: Optional[Settings] = None) -> LastSeenPipeline:
    """
    Create a pipeline with default components.

    Args:
        settings: Settings to use (defaults to the global settings)

    Returns:
        Configured pipeline
    """
    from lastseen.google_sheets.auth import ServiceAccountAuth
    from lastseen.scraper.fetcher import PlaywrightProfileFetcher

    settings = settings or get_settings()

    sheets_client = GoogleSheetsClient(
        auth_manager=ServiceAccountAuth(settings.service_account_path),
        spreadsheet_id=settings.spreadsheet_id,
        sheet_name=settings.sheet_name,
        identifier_column=settings.identifier_column,
        result_column=settings.result_column,
        start_row=settings.start_row,
    )
    fetcher = PlaywrightProfileFetcher(
        url_template=settings.profile_url_template,
        navigation_timeout=settings.navigation_timeout_seconds,
        settle_delay=settings.settle_delay_seconds,
        headless=settings.headless,
    )
    orchestrator = BatchOrchestrator(
        fetcher,
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
        max_concurrency=settings.max_concurrency,
        max_scan_chars=settings.max_scan_chars,
        max_matches=settings.max_matches,
    )
    return LastSeenPipeline(sheets_client, fetcher, orchestrator)
