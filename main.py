from __future__ import annotations
import json
import logging
from datetime import datetime
from typing import Optional
from fastapi import FastAPI, File, UploadFile, HTTPException, BackgroundTasks, Body, Response
from pydantic_settings import BaseSettings
from pydantic import field_validator, Field

from rules import BaseRule, RuleSet
from stream.errors import ProcessingError, RuleIndexError
from stream.schema import BatchResult, InsuranceRule, RuleEdit
from stream.processor import BatchProcessor
from stream.util import (
    WebhookClient,
    process_csv_from_bytes,
    process_csv_from_gcs,
    read_records,
    render_csv,
    summarize_records,
)
from intake.handlers import backup_upload, read_csv_upload

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)s  %(name)s  %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("selerix-etl")
logger.info("🚀 Starting Selerix ETL Service")

# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
class Settings(BaseSettings):
    gcs_bucket: Optional[str] = Field(default=None, alias="GCS_BUCKET")  # e.g., "selerix-inbox"
    intake_prefix: str = Field(default="intake/", alias="INTAKE_PREFIX")
    output_prefix: str = Field(default="processed/", alias="OUTPUT_PREFIX")
    output_filename: str = Field(default="processed_selerix_data.csv", alias="OUTPUT_FILENAME")
    webhook_url: Optional[str] = Field(default=None, alias="WEBHOOK_URL")
    webhook_headers: dict = Field(default={}, alias="WEBHOOK_HEADERS")

    @field_validator("webhook_headers", mode="before")
    @classmethod
    def _parse_headers(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except Exception:
                logging.warning("WEBHOOK_HEADERS not valid JSON; ignoring")
                return {}
        return v

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()

logger.info("📦 GCS Bucket: %s", settings.gcs_bucket or "Not configured")
logger.info("🔗 Webhook URL: %s", (settings.webhook_url[:64] + "…") if settings.webhook_url else "Not configured")

# Single webhook client instance
webhook_client = WebhookClient(settings.webhook_url, settings.webhook_headers)

# FastAPI app
app = FastAPI(title="Selerix ETL Service", version="1.0.0")

# Rule table lives in memory only; each change swaps in a new RuleSet
app.state.rule_set = RuleSet.default()


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def current_rules() -> RuleSet:
    return app.state.rule_set


def _http_error(e: ProcessingError) -> HTTPException:
    status = 404 if isinstance(e, RuleIndexError) else 422
    return HTTPException(status_code=status, detail=e.to_dict())


def _rules_payload(rule_set: RuleSet) -> dict:
    warnings = {w.index: w.warnings for w in BatchProcessor().lint_rules(rule_set.rules)}
    return {
        "count": len(rule_set),
        "rules": [
            {
                "index": i,
                "position": i + 1,
                "rule": entry.rule.model_dump(),
                "errors": list(entry.errors),
                "warnings": warnings.get(i, []),
            }
            for i, entry in enumerate(rule_set.entries)
        ],
    }


async def _process_upload(file: UploadFile) -> BatchResult:
    contents = await read_csv_upload(file)
    backup_upload(contents, file.filename, settings.gcs_bucket, settings.intake_prefix)
    try:
        return await process_csv_from_bytes(
            contents,
            rules=current_rules().rules,
            webhook=webhook_client,
            source=file.filename,
        )
    except ProcessingError as e:
        raise _http_error(e)


# -----------------------------------------------------------------------------
# Rules
# -----------------------------------------------------------------------------
@app.get("/rules")
def list_rules():
    return _rules_payload(current_rules())


@app.post("/rules")
def add_rule(rule: Optional[InsuranceRule] = Body(default=None)):
    """Append a rule; a blank one when no body is sent."""
    app.state.rule_set = current_rules().add_rule(rule)
    return _rules_payload(app.state.rule_set)


@app.delete("/rules/{index}")
def remove_rule(index: int):
    try:
        app.state.rule_set = current_rules().remove_rule(index)
    except ProcessingError as e:
        raise _http_error(e)
    return _rules_payload(app.state.rule_set)


@app.patch("/rules/{index}")
def edit_rule(index: int, edit: RuleEdit):
    """Change one field of one rule; only that rule is re-validated."""
    try:
        app.state.rule_set, errors = current_rules().edit_rule(index, edit.field, edit.value)
    except ProcessingError as e:
        raise _http_error(e)
    return {
        "index": index,
        "rule": app.state.rule_set.entries[index].rule.model_dump(),
        "errors": errors,
    }


@app.post("/rules/reset")
def reset_rules():
    app.state.rule_set = RuleSet.default()
    return _rules_payload(app.state.rule_set)


# -----------------------------------------------------------------------------
# Processing
# -----------------------------------------------------------------------------
@app.post("/inspect")
async def inspect_csv(file: UploadFile = File(...)):
    """Load a CSV and list the deduction codes and amounts it contains."""
    contents = await read_csv_upload(file)
    try:
        records = read_records(contents)
    except ProcessingError as e:
        raise _http_error(e)
    summary = summarize_records(records)
    logger.info(summary.message)
    return summary.model_dump()


@app.post("/process")
async def process_csv(file: UploadFile = File(...)):
    """Enrich an uploaded CSV and return it as a download."""
    result = await _process_upload(file)
    return Response(
        content=render_csv(result.rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{settings.output_filename}"'},
    )


@app.post("/process/preview")
async def preview_csv(file: UploadFile = File(...)):
    """Same processing as /process, returned as JSON with the first five rows."""
    result = await _process_upload(file)
    return {
        "status": "ok",
        "message": result.message,
        "rows": len(result.rows),
        "matched": result.matched,
        "unmatched": result.unmatched,
        "row_issues": [issue.model_dump() for issue in result.row_issues],
        "warnings": [w.model_dump() for w in result.warnings],
        "columns": list(result.rows[0].columns) if result.rows else [],
        "preview": [row.to_dict() for row in result.rows[:5]],
    }


@app.post("/process-csv")
async def process_csv_file(
    background_tasks: BackgroundTasks,
    gcs_path: str = Body(..., embed=True),
):
    """
    Enqueue background processing for an already-uploaded GCS CSV.
    """
    if not settings.gcs_bucket:
        raise HTTPException(status_code=503, detail="GCS_BUCKET is not configured")

    background_tasks.add_task(
        process_csv_from_gcs,
        gcs_path=gcs_path,
        gcs_bucket=settings.gcs_bucket,
        rules=current_rules().rules,
        webhook=webhook_client,
        output_prefix=settings.output_prefix,
    )
    return {
        "status": "accepted",
        "message": f"Processing started for {gcs_path}",
        "timestamp": datetime.utcnow().isoformat(),
    }


# -----------------------------------------------------------------------------
# Utilities
# -----------------------------------------------------------------------------
@app.get("/")
@app.head("/")
def root():
    return {"status": "ok", "service": "selerix-etl"}

@app.get("/health")
@app.head("/health")
def health_check():
    """
    Lightweight health probe. Reports configuration only; no GCS I/O.
    """
    return {
        "status": "healthy",
        "rules": len(current_rules()),
        "required_columns": [BaseRule.DEDUCTION, BaseRule.BI_WEEKLY_AMOUNT],
        "bucket": settings.gcs_bucket,
        "webhook_configured": webhook_client.is_configured(),
    }
