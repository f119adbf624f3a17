"""Application constants."""

USER_AGENT = "UK-Fuel-Price-Comparison/1.0"
FUEL_GRADES = ("E5", "E10", "B7", "SDV")
EXIT_SUCCESS = 0
EXIT_HARD_FAIL = 20
WGS84_SRID = 4326
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "retailer",
    "event",
    "status",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "level",
    "message",
)
