"""
Somatic Variant Merge-and-Filter - Core Library

Functions for turning raw Strelka2 tumor/normal output into an
analysis-ready call set:
- Typed variant records and the tab-separated variant file reader/writer
- Merging of the SNV and indel result files
- Depth/frequency decoding of Strelka2 genotype fields
- Rule-based filter classification

The caller run and the external normalization tools are wrapped in
``somavar.external``; ``somavar.pipeline`` chains all stages.
"""

from .errors import (
    SomaticPipelineError,
    ConfigurationError,
    RecordParseError,
    GenotypeDecodeError,
    ExternalToolError,
)

from .records import (
    Record,
    RecordStream,
    read_vcf,
    write_vcf,
    PASS,
)

from .header import (
    reconcile_sample_columns,
    sample_name_from_path,
)

from .genotype import (
    SampleStats,
    decode_snv,
    decode_indel,
    snv_postcall,
)

from .merge import (
    COMMENT_RECONCILIATION,
    merge_streams,
    sort_comments,
)

from .filters import (
    FilterTag,
    FilterThresholds,
    FilterClassifier,
    filter_stream,
    is_standard_chromosome,
)

__version__ = "1.0.0"

__all__ = [
    # Errors
    "SomaticPipelineError",
    "ConfigurationError",
    "RecordParseError",
    "GenotypeDecodeError",
    "ExternalToolError",
    # Records
    "Record",
    "RecordStream",
    "read_vcf",
    "write_vcf",
    "PASS",
    # Header
    "reconcile_sample_columns",
    "sample_name_from_path",
    # Genotype
    "SampleStats",
    "decode_snv",
    "decode_indel",
    "snv_postcall",
    # Merge
    "COMMENT_RECONCILIATION",
    "merge_streams",
    "sort_comments",
    # Filter
    "FilterTag",
    "FilterThresholds",
    "FilterClassifier",
    "filter_stream",
    "is_standard_chromosome",
]
