"""Application constants."""

USER_AGENT = "storemap/0.3 (+competitor-map; contact: configured-email)"
COMMANDS = (
    "fetch",
    "summarize",
    "serve",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20

REASON_MISSING_NAME = "missing name"
REASON_MISSING_COORDINATE = "missing coordinate field"
REASON_UNPARSEABLE_COORDINATE = "unparseable coordinate"
REASON_NON_FINITE_COORDINATE = "non-finite coordinate"
REASON_AMBIGUOUS_COORDINATE = "ambiguous coordinate"

NOTE_AMBIGUOUS_AXIS_ORDER = "AMBIGUOUS_AXIS_ORDER"

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
