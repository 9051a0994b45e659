"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class ContractError(PipelineError):
    """Raised when the emitted GeoJSON breaks its contract with the map client."""

    error_code = "CONTRACT_ERROR"


class StageError(PipelineError):
    """Raised when a pipeline stage cannot produce its output."""

    error_code = "STAGE_ERROR"


class SourceTableError(StageError):
    """Raised when the inspection table is unreachable or lacks required columns."""

    error_code = "SOURCE_TABLE_ERROR"
