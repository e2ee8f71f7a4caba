"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for converter failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class SourceError(PipelineError):
    """Raised when a source document cannot be resolved or opened."""

    error_code = "SOURCE_ERROR"


class JsonParseError(PipelineError):
    """Raised for malformed JSON; aborts the run."""

    error_code = "JSON_PARSE_ERROR"


class ContractError(PipelineError):
    """Raised when written CSV output breaks its column/row contract."""

    error_code = "CONTRACT_ERROR"


class StageError(PipelineError):
    """Raised for exporter failures."""

    error_code = "STAGE_ERROR"
