"""
sentiment_batch -- Batch job engine for the sentiment index.

Provides a durable job queue for long-running, date-range workloads
(historical backfill, index recalculation, data validation, bulk
reports): submission, priority dispatch, an atomic claim, per-unit
execution through registered handlers, and progress tracking with
partial-failure accounting.

Architecture:
    sentiment_batch/ is a top-level package.  Nothing in sentiment_kernel,
    sentiment_engines, or sentiment_config imports from sentiment_batch.

Invariants:
    - processed_items + failed_items <= total_items at every instant
    - progress_percentage never decreases while a job is RUNNING
    - Only the allowed status edges are ever written
    - At most one worker holds a job (conditional UPDATE on claim)
    - A unit failure is counted and logged, never fatal to the job
    - All timestamps come from the injected Clock
"""
