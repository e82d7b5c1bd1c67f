"""
CSV intake/output, notifications and GCS processing for deduction enrichment
"""
from __future__ import annotations

import logging
from datetime import datetime
from io import StringIO
from typing import Dict, List, Optional, Sequence

import aiohttp
import pandas as pd
from google.cloud import storage

from rules import BaseRule
from .errors import FileFormatError, ProcessingError, RuleValidationError
from .processor import BatchProcessor
from .schema import BatchResult, CsvRecord, InsuranceRule, LoadSummary, Notification

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (BaseRule.DEDUCTION, BaseRule.BI_WEEKLY_AMOUNT)


class WebhookClient:
    """Lightweight client for posting processing notifications to a webhook."""
    def __init__(self, url: str | None, headers: Dict[str, str] | None = None, timeout_sec: int = 30):
        self.url = (url or "").strip()
        self.headers = {"Content-Type": "application/json", "User-Agent": "selerix-etl-service/1.0"}
        if headers:
            self.headers.update(headers)
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)

    def is_configured(self) -> bool:
        return bool(self.url)

    async def notify(self, notification: Notification) -> None:
        if not self.is_configured():
            logger.warning("Webhook not configured; skipping notification '%s'", notification.title)
            return

        payload = to_webhook_schema(notification)
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, json=payload, headers=self.headers) as resp:
                    text = await resp.text()
                    if 200 <= resp.status < 300:
                        logger.info("Webhook notified (%s, status=%s)", notification.type, resp.status)
                    else:
                        logger.error("Webhook ERROR status=%s body=%s", resp.status, text[:200])
        except Exception as e:
            logger.error("Webhook notify FAILED: %s", e, exc_info=True)


def to_webhook_schema(n: Notification) -> dict:
    """Map internal model -> webhook schema."""
    return {
        "title": n.title,
        "message": n.message,
        "type": n.type,
        "source": n.source,
        "details": n.details,
        "sentAt": datetime.utcnow().isoformat(),
    }


def read_records(csv_bytes: bytes) -> List[CsvRecord]:
    """
    Decode and read a deduction export. Headers and values are trimmed; blank
    lines and rows whose fields are all empty are dropped. Cells past the last
    header are ignored; short rows are padded with "".
    """
    text = csv_bytes.decode("utf-8-sig", errors="replace")
    if not text.strip():
        raise FileFormatError("CSV file is empty")

    options = dict(header=None, dtype=str, keep_default_na=False, skip_blank_lines=True, engine="python")
    try:
        width = pd.read_csv(StringIO(text), nrows=1, **options).shape[1]
        df = pd.read_csv(
            StringIO(text),
            on_bad_lines=lambda fields: fields[:width],
            **options,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise FileFormatError(f"Could not parse CSV: {e}") from e

    df = df.fillna("")
    headers = [str(h).strip() for h in df.iloc[0]]
    missing = [c for c in REQUIRED_COLUMNS if c not in headers]
    if missing:
        raise FileFormatError(
            f"Missing required columns: {', '.join(missing)}",
            details={"missing": missing, "columns": headers},
        )

    records = []
    for values in df.iloc[1:].itertuples(index=False, name=None):
        cells = [str(v).strip() for v in values]
        if all(cell == "" for cell in cells):
            continue
        records.append(CsvRecord.from_pairs(zip(headers, cells)))
    return records


def summarize_records(records: Sequence[CsvRecord]) -> LoadSummary:
    """Unique deduction codes and bi-weekly amounts, in first-seen order."""
    deductions = pd.Series([r.get(BaseRule.DEDUCTION, "") for r in records], dtype=str)
    amounts = pd.Series([r.get(BaseRule.BI_WEEKLY_AMOUNT, "") for r in records], dtype=str)
    unique_deductions = deductions[deductions != ""].unique().tolist()
    unique_amounts = amounts[amounts != ""].unique().tolist()
    return LoadSummary(
        rows=len(records),
        deductions=unique_deductions,
        amounts=unique_amounts,
        message=f"Loaded {len(records)} rows with {len(unique_deductions)} unique deductions",
    )


def _quote(value: str) -> str:
    # Commas are wrapped; embedded quotes are left as-is
    return f'"{value}"' if "," in value else value


def render_csv(records: Sequence[CsvRecord]) -> str:
    """
    Serialize output rows with the first row's column order. Columns with a
    blank header and rows with no values are left out.
    """
    if not records:
        return ""

    headers = [h for h in records[0].columns if h.strip() != ""]
    lines = [",".join(headers)]
    for record in records:
        if record.is_empty():
            continue
        lines.append(",".join(_quote(record.get(h, "") or "") for h in headers))
    return "\n".join(line for line in lines if line.strip() != "")


async def process_csv_from_bytes(
    csv_bytes: bytes,
    *,
    rules: Sequence[InsuranceRule],
    webhook: WebhookClient,
    source: Optional[str] = None,
) -> BatchResult:
    """
    Read a CSV already in memory, enrich it against a snapshot of the rules and
    notify the webhook of the outcome. Raises FileFormatError or
    RuleValidationError (after notifying) when nothing could be produced.
    """
    rules = tuple(rules)
    try:
        records = read_records(csv_bytes)
        logger.info("CSV loaded: %d rows from %s", len(records), source or "upload")

        result = BatchProcessor().process_all(records, rules)
        if not result.ok:
            raise RuleValidationError(result.message, failures=result.failures)
    except ProcessingError as e:
        logger.error("Processing failed for %s: %s", source or "upload", e.message)
        await webhook.notify(Notification(title="Error", message=e.message, type="error", source=source))
        raise

    await webhook.notify(
        Notification(
            title="Success",
            message=result.message,
            source=source,
            details={
                "rows": len(result.rows),
                "matched": result.matched,
                "unmatched": result.unmatched,
                "row_issues": len(result.row_issues),
            },
        )
    )
    return result


async def process_csv_from_gcs(
    *,
    gcs_path: str,
    gcs_bucket: str,
    rules: Sequence[InsuranceRule],
    webhook: WebhookClient,
    output_prefix: str = "processed/",
    storage_client: storage.Client | None = None,
) -> Optional[str]:
    """
    Download one CSV from GCS, enrich it and upload the result under
    output_prefix. Returns the output object name, or None on failure.
    """
    source = f"gs://{gcs_bucket}/{gcs_path}"
    try:
        storage_client = storage_client or storage.Client()
        bucket = storage_client.bucket(gcs_bucket)
        csv_text = bucket.blob(gcs_path).download_as_text()

        result = await process_csv_from_bytes(
            csv_text.encode("utf-8"),
            rules=rules,
            webhook=webhook,
            source=source,
        )

        output_name = f"{output_prefix}{gcs_path.split('/')[-1]}"
        bucket.blob(output_name).upload_from_string(render_csv(result.rows), content_type="text/csv")
        logger.info("Enriched CSV written to gs://%s/%s", gcs_bucket, output_name)
        return output_name

    except ProcessingError:
        # already logged and notified
        return None
    except Exception as e:
        logger.exception("Failed GCS processing %s: %s", gcs_path, e)
        await webhook.notify(Notification(title="Error", message=f"Processing failed: {e}", type="error", source=source))
        return None
