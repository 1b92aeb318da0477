"""
Bulk report generation -- one artifact file from the stored records.

The whole report is a single unit (``total_items = 1``).  The file is
``batch-report-<jobId>.json`` or ``.csv`` under the configured output
directory.  JSON carries the records plus aggregate statistics; CSV carries
one row per record.
"""

from __future__ import annotations

import csv
import json
from collections import Counter
from pathlib import Path
from typing import Any

from sentiment_engines.scoring import COMPONENT_NAMES, SentimentLevel

from sentiment_batch.domain.parameters import JobParameters
from sentiment_batch.domain.types import JobType, OutputFormat, ResultType
from sentiment_batch.models.sentiment import SentimentRecordModel
from sentiment_batch.services.records import SentimentRecordRepository
from sentiment_batch.tasks.base import HandlerOutcome, JobContext, UnitHandler, WorkUnit

_EXTENSIONS = {OutputFormat.JSON: "json", OutputFormat.CSV: "csv"}


def report_statistics(records: list[SentimentRecordModel]) -> dict[str, Any]:
    values = [r.value for r in records]
    distribution = Counter(r.level for r in records)
    return {
        "count": len(values),
        "average": round(sum(values) / len(values), 2) if values else None,
        "min": min(values, default=None),
        "max": max(values, default=None),
        "levelDistribution": {
            level.value: distribution.get(level.value, 0) for level in SentimentLevel
        },
    }


def _record_row(record: SentimentRecordModel) -> dict[str, Any]:
    row: dict[str, Any] = {
        "date": record.record_date.isoformat(),
        "value": record.value,
        "level": record.level,
        "confidence": record.confidence,
    }
    row.update({name: getattr(record, name) for name in COMPONENT_NAMES})
    return row


class BulkReportHandler(UnitHandler[dict]):
    job_type = JobType.BULK_REPORT_GENERATION
    description = "Write a report artifact over the stored index"
    result_type = ResultType.REPORT_ARTIFACT

    def __init__(self, output_dir: Path = Path("reports")):
        self._output_dir = Path(output_dir)

    def prepare_units(
        self, parsed: JobParameters, context: JobContext,
    ) -> tuple[WorkUnit, ...]:
        return (WorkUnit(index=0, key="report"),)

    def new_state(self, parsed: JobParameters) -> dict[str, Any]:
        return {"recordCount": 0, "filePath": None, "generatedAt": None, "statistics": None}

    def report_path(self, context: JobContext, output_format: OutputFormat) -> Path:
        return self._output_dir / f"batch-report-{context.job_id}.{_EXTENSIONS[output_format]}"

    def process_unit(
        self,
        unit: WorkUnit,
        parsed: JobParameters,
        state: dict[str, Any],
        context: JobContext,
    ) -> None:
        records = SentimentRecordRepository(context.session).in_range(parsed.date_range)
        statistics = report_statistics(records)
        generated_at = context.clock.now().isoformat()
        path = self.report_path(context, parsed.output_format)
        path.parent.mkdir(parents=True, exist_ok=True)

        rows = [_record_row(r) for r in records]
        if parsed.output_format == OutputFormat.CSV:
            with open(path, "w", newline="") as f:
                writer = csv.DictWriter(
                    f, fieldnames=["date", "value", "level", "confidence", *COMPONENT_NAMES],
                )
                writer.writeheader()
                writer.writerows(rows)
        else:
            document = {
                "jobId": str(context.job_id),
                "reportType": parsed.report_type.value,
                "generatedAt": generated_at,
                "dateRange": parsed.date_range.to_payload() if parsed.date_range else None,
                "statistics": statistics,
                "records": rows,
            }
            with open(path, "w") as f:
                json.dump(document, f, indent=2)

        state["recordCount"] = len(records)
        state["filePath"] = str(path)
        state["generatedAt"] = generated_at
        state["statistics"] = statistics

    def build_result(
        self, parsed: JobParameters, state: dict[str, Any], context: JobContext,
    ) -> HandlerOutcome:
        return HandlerOutcome(
            result_data={
                "reportType": parsed.report_type.value,
                "outputFormat": parsed.output_format.value,
                "generatedAt": state["generatedAt"],
                "recordCount": state["recordCount"],
                "filePath": state["filePath"],
                "statistics": state["statistics"],
            },
            file_path=state["filePath"],
        )
