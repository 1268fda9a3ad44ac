"""Job entry point for the Netflix Top 10 scraper.

This is the thin orchestration layer that ties everything together. It
runs only when invoked (AWS Lambda, a scheduler, or main.py), never as a
side effect of importing or starting a process, and:

    1. Loads config from environment variables
    2. Builds the HTTP session, IMDb client, MongoDB client and repository
    3. Scrapes the requested Top 10 list (live page or static sample)
    4. Enriches every row with its IMDb record
    5. Upserts the snapshot in MongoDB
    6. Validates the result and logs an audit record of the run

All logging is structured JSON for CloudWatch readability.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pymongo.errors import PyMongoError

from src.config import load_config
from src.enrichment.imdb_client import ImdbClient
from src.enrichment.orchestrator import EnrichmentOrchestrator
from src.errors import ExtractionTimeout, PersistenceFailure, SourceLoadFailure
from src.fetchers.http_client import create_session
from src.models import ScrapeRun
from src.pipeline import ScrapeOptions, Top10Pipeline, default_engine_factory
from src.storage.mongo_client import create_client, get_database
from src.storage.repository import SnapshotRepository
from src.validation.validators import validate_result

logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())


class _JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON for CloudWatch."""

    def format(self, record: logging.LogRecord) -> str:
        """Serialize the log record to a JSON string."""
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


_handler = logging.StreamHandler()
_handler.setFormatter(_JSONFormatter())
if not logger.handlers:
    logger.addHandler(_handler)


def parse_event(event: Optional[dict[str, Any]]) -> ScrapeOptions:
    """Build ScrapeOptions from an invocation event.

    Recognised keys: country, category, use_sample, sample_path,
    timeout_ms. Missing keys take the ScrapeOptions defaults.
    """
    event = event or {}
    defaults = ScrapeOptions()
    timeout_ms = event.get("timeout_ms")
    return ScrapeOptions(
        country=str(event.get("country") or defaults.country),
        category=str(event.get("category") or defaults.category),
        use_sample=bool(event.get("use_sample", False)),
        sample_path=event.get("sample_path"),
        timeout_ms=int(timeout_ms) if timeout_ms is not None else None,
    )


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Scrape, enrich and store one Top 10 list.

    Called by EventBridge on a schedule, manually via the Lambda console,
    or by main.py. The context parameter is not used but required by the
    Lambda interface.

    Pipeline: load config -> scrape -> enrich -> store -> validate -> audit log

    Returns:
        Dict with statusCode (200 or 500) and JSON body containing
        run_id, status, snapshot_id, row count, and any errors.
    """
    run_id = str(uuid.uuid4())
    started_at = datetime.now(timezone.utc)
    errors: list[str] = []

    logger.info("Starting scrape run %s", run_id)

    try:
        config = load_config()
        options = parse_event(event)
    except (ValueError, TypeError) as exc:
        logger.error("Configuration error: %s", exc)
        return {
            "statusCode": 500,
            "body": json.dumps({"error": str(exc)}),
        }

    session = create_session(config.netflix, config.imdb)
    client = ImdbClient(session, config.imdb, timeout=config.netflix.request_timeout)
    orchestrator = EnrichmentOrchestrator(client, config.imdb.stagger_seconds)
    mongo_client = create_client(config.mongo)
    repo = SnapshotRepository(get_database(mongo_client, config.mongo), config.mongo)
    pipeline = Top10Pipeline(
        config.netflix,
        default_engine_factory(config.netflix),
        orchestrator,
        repo,
    )

    try:
        try:
            repo.ensure_indexes()
        except PyMongoError as exc:
            logger.warning("Could not ensure indexes: %s", exc)

        try:
            result, outcome = pipeline.scrape_and_save(options)
        except SourceLoadFailure as exc:
            logger.error("Source load failed: %s", exc)
            errors.append(f"Source load failed: {exc}")
            return _finish_run(repo, run_id, started_at, "failure", None, 0, errors)
        except ExtractionTimeout as exc:
            logger.error("Extraction failed: %s", exc)
            errors.append(f"Extraction failed: {exc}")
            return _finish_run(repo, run_id, started_at, "failure", None, 0, errors)
        except PersistenceFailure as exc:
            logger.error("Storage failed: %s", exc)
            errors.append(f"Storage failed: {exc}")
            return _finish_run(repo, run_id, started_at, "failure", None, 0, errors)
        except ValueError as exc:
            logger.error("Invalid scrape options: %s", exc)
            errors.append(f"Invalid scrape options: {exc}")
            return _finish_run(repo, run_id, started_at, "failure", None, 0, errors)

        validation = validate_result(result)
        errors.extend(validation.errors)

        status = "partial_failure" if errors else "success"
        return _finish_run(
            repo,
            run_id,
            started_at,
            status,
            outcome.snapshot_id,
            result.meta.row_count,
            errors,
        )
    finally:
        mongo_client.close()
        session.close()


def _finish_run(
    repo: SnapshotRepository,
    run_id: str,
    started_at: datetime,
    status: str,
    snapshot_id: Optional[str],
    row_count: int,
    errors: list[str],
) -> dict[str, Any]:
    """Record the scrape run to MongoDB and return the Lambda response.

    Called at every exit point (success, partial failure, or failure)
    to ensure the audit trail is always written, even when the main
    pipeline fails. If the audit write itself fails, it's logged but
    doesn't change the response.

    Args:
        repo: Repository holding the scrape_runs collection.
        run_id: UUID for this invocation.
        started_at: When the job started executing.
        status: "success", "partial_failure", or "failure".
        snapshot_id: Identity of the stored snapshot, None on failure.
        row_count: Number of rows stored.
        errors: Accumulated error messages from the pipeline.

    Returns:
        Lambda response dict with statusCode and JSON body.
    """
    completed_at = datetime.now(timezone.utc)

    run = ScrapeRun(
        run_id=run_id,
        started_at=started_at,
        completed_at=completed_at,
        status=status,
        snapshot_id=snapshot_id,
        row_count=row_count,
        errors=tuple(errors),
    )

    try:
        repo.save_scrape_run(run)
    except PyMongoError as exc:
        logger.error("Failed to save scrape run: %s", exc)

    logger.info(
        "Run %s completed: status=%s, snapshot=%s, rows=%d, errors=%d",
        run_id, status, snapshot_id, row_count, len(errors),
    )

    return {
        "statusCode": 200 if status != "failure" else 500,
        "body": json.dumps({
            "run_id": run_id,
            "status": status,
            "snapshot_id": snapshot_id,
            "rows": row_count,
            "errors": list(errors),
        }),
    }
