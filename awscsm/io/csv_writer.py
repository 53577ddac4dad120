"""CSV sink for decoded CSM events."""
from __future__ import annotations

import csv
from typing import Callable, TextIO, Tuple

from ..telemetry.message import CsmEvent

CSV_HEADER: Tuple[str, ...] = (
    "Type",
    "Region",
    "Service",
    "Api",
    "XAmznRequestId",
    "Attempts",
    "Latency",
    "Timestamp",
    "Version",
    "HttpStatusCode",
    "FinalHttpStatusCode",
    "MaxRetriesExceeded",
)


def event_to_row(event: CsmEvent) -> Tuple[str, ...]:
    """Return the CSV cells of ``event`` in ``CSV_HEADER`` order."""

    return (
        event.type,
        event.region,
        event.service,
        event.api,
        event.request_id,
        str(event.attempts),
        str(event.latency),
        str(event.timestamp),
        str(event.version),
        str(event.http_status_code),
        str(event.final_http_status_code),
        str(event.max_retries_exceeded),
    )


def make_csv_handler(stream: TextIO) -> Callable[[CsmEvent], None]:
    """Write the header to ``stream`` and return a handler emitting one row per event.

    Rows are flushed as they are written so the output can be tailed while
    the receiver runs.
    """

    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    stream.flush()

    def write_event(event: CsmEvent) -> None:
        writer.writerow(event_to_row(event))
        stream.flush()

    return write_event
