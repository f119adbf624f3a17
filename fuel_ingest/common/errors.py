"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised for failures scoped to a single source or batch."""

    error_code = "STAGE_ERROR"


class TransportError(StageError):
    """Network failure, timeout or non-2xx response from a retailer feed."""

    error_code = "TRANSPORT_FAILURE"


class UnsupportedFormatError(StageError):
    """Retailer answered with something other than JSON (usually an HTML page)."""

    error_code = "UNSUPPORTED_FORMAT"


class StructuralAnomalyError(StageError):
    """Decoded JSON has no recognisable station list."""

    error_code = "STRUCTURAL_ANOMALY"


class RecordInvalidError(StageError):
    error_code = "RECORD_INVALID"


class PersistenceError(StageError):
    """The store rejected a batch or the averages row."""

    error_code = "PERSISTENCE_FAILURE"
