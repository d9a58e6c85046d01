"""
Result and report stores backed by the SQL database.

Stores convert between the dataclasses in models and the ORM records in
database. JSON columns hold the serialized ssl_info and scan_results.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select

from .database import Database, ReportRecord, ResultRecord
from .models import MonitoringReport, MonitoringResult, ScanResults, SSLInfo

logger = logging.getLogger(__name__)


def _to_db_time(value: Optional[datetime]) -> Optional[datetime]:
    """Naive UTC, as stored in the database."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ResultStore:
    """Persistence for monitoring results."""

    def __init__(self, database: Database):
        self.database = database

    @staticmethod
    def _to_record(result: MonitoringResult) -> ResultRecord:
        return ResultRecord(
            website_url=result.website_url,
            checked_at=_to_db_time(result.checked_at),
            status=result.status,
            status_code=result.status_code,
            response_time_ms=result.response_time_ms,
            error_message=result.error_message,
            headers=result.headers,
            content_hash=result.content_hash,
            content_changed=result.content_changed,
            ssl_info=result.ssl_info.to_dict() if result.ssl_info else None,
            domain_expires_at=result.domain_expires_at,
            domain_days_until_expiry=result.domain_days_until_expiry,
            scan_results=result.scan_results.to_dict() if result.scan_results else None,
            screenshot_path=result.screenshot_path,
        )

    @staticmethod
    def _from_record(record: ResultRecord) -> MonitoringResult:
        return MonitoringResult(
            id=record.id,
            website_url=record.website_url,
            checked_at=_from_db_time(record.checked_at),
            status=record.status,
            status_code=record.status_code,
            response_time_ms=record.response_time_ms,
            error_message=record.error_message,
            headers=record.headers,
            content_hash=record.content_hash,
            content_changed=bool(record.content_changed),
            ssl_info=SSLInfo.from_dict(record.ssl_info) if record.ssl_info else None,
            domain_expires_at=record.domain_expires_at,
            domain_days_until_expiry=record.domain_days_until_expiry,
            scan_results=ScanResults.from_dict(record.scan_results) if record.scan_results else None,
            screenshot_path=record.screenshot_path,
        )

    async def add(self, result: MonitoringResult) -> MonitoringResult:
        """Persist a result and assign its id."""
        async with self.database.session() as session:
            record = self._to_record(result)
            session.add(record)
            await session.commit()
            result.id = record.id

        logger.debug(f"Stored result {result.id} for {result.website_url} ({result.status})")
        return result

    async def get(self, result_id: int) -> Optional[MonitoringResult]:
        async with self.database.session() as session:
            record = await session.get(ResultRecord, result_id)
            return self._from_record(record) if record else None

    async def latest_for(self, website_url: str) -> Optional[MonitoringResult]:
        """Most recent stored result for a website."""
        async with self.database.session() as session:
            stmt = (
                select(ResultRecord)
                .where(ResultRecord.website_url == website_url)
                .order_by(ResultRecord.checked_at.desc(), ResultRecord.id.desc())
                .limit(1)
            )
            record = (await session.execute(stmt)).scalars().first()
            return self._from_record(record) if record else None

    async def since(self, since: datetime, website_url: Optional[str] = None) -> List[MonitoringResult]:
        """
        Results checked at or after a point in time, oldest first.

        Args:
            since: Lower bound on checked_at
            website_url: Restrict to one website

        Returns:
            List of MonitoringResult
        """
        async with self.database.session() as session:
            stmt = select(ResultRecord).where(ResultRecord.checked_at >= _to_db_time(since))
            if website_url:
                stmt = stmt.where(ResultRecord.website_url == website_url)
            stmt = stmt.order_by(ResultRecord.checked_at, ResultRecord.id)
            records = (await session.execute(stmt)).scalars().all()
            return [self._from_record(record) for record in records]


class ReportStore:
    """Persistence for monitoring reports."""

    def __init__(self, database: Database):
        self.database = database

    @staticmethod
    def _apply(record: ReportRecord, report: MonitoringReport) -> None:
        record.recipient = report.recipient
        record.subject = report.subject
        record.body_html = report.body_html
        record.summary = report.summary
        record.status = report.status
        record.error_message = report.error_message
        record.sent_at = _to_db_time(report.sent_at)
        record.triggered_by = report.triggered_by
        record.created_at = _to_db_time(report.created_at)

    @staticmethod
    def _from_record(record: ReportRecord) -> MonitoringReport:
        return MonitoringReport(
            id=record.id,
            recipient=record.recipient,
            subject=record.subject,
            summary=record.summary or {},
            body_html=record.body_html or "",
            status=record.status,
            error_message=record.error_message,
            sent_at=_from_db_time(record.sent_at),
            triggered_by=record.triggered_by,
            created_at=_from_db_time(record.created_at),
        )

    async def add(self, report: MonitoringReport) -> MonitoringReport:
        """Persist a new report and assign its id."""
        async with self.database.session() as session:
            record = ReportRecord()
            self._apply(record, report)
            session.add(record)
            await session.commit()
            report.id = record.id

        logger.debug(f"Stored report {report.id} for {report.recipient}")
        return report

    async def update(self, report: MonitoringReport) -> MonitoringReport:
        """
        Write the report's current state to its existing record.

        Raises:
            ValueError: If the report was never stored
        """
        if report.id is None:
            raise ValueError("Cannot update a report that has not been stored")

        async with self.database.session() as session:
            record = await session.get(ReportRecord, report.id)
            if record is None:
                raise ValueError(f"Report {report.id} not found")
            self._apply(record, report)
            await session.commit()

        return report

    async def get(self, report_id: int) -> Optional[MonitoringReport]:
        async with self.database.session() as session:
            record = await session.get(ReportRecord, report_id)
            return self._from_record(record) if record else None

    async def list_recent(self, limit: int = 10) -> List[MonitoringReport]:
        """Most recently created reports, newest first."""
        async with self.database.session() as session:
            stmt = (
                select(ReportRecord)
                .order_by(ReportRecord.created_at.desc(), ReportRecord.id.desc())
                .limit(limit)
            )
            records = (await session.execute(stmt)).scalars().all()
            return [self._from_record(record) for record in records]
