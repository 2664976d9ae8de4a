"""
Exceptions raised by the somatic merge-and-filter pipeline.

Everything here is fatal for the run: the pipeline aborts on the first error
and keeps no partial output. Data anomalies (odd alleles, unplaced contigs,
threshold breaches) are not errors; they end up as filter tags.
"""


class SomaticPipelineError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(SomaticPipelineError, ValueError):
    """Missing/unreadable input, bad configuration value or unexpected header."""


class RecordParseError(SomaticPipelineError, ValueError):
    """A variant file line could not be parsed into a record."""


class GenotypeDecodeError(SomaticPipelineError, ValueError):
    """A genotype value string does not match its FORMAT schema."""


class ExternalToolError(SomaticPipelineError, RuntimeError):
    """An external tool (caller, splitter, normalizer, ...) failed."""

    def __init__(self, tool: str, returncode: int, stderr: str = ""):
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        message = f"{tool} failed with exit code {returncode}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)
