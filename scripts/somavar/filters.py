"""
Somatic Variant Filter Classifier

Assigns filter tags to merged, normalized Strelka2 calls based on tumor and
normal read depth and allele frequency.

Processing per record:
---------------------
1. Unless low-quality calls are kept, records whose caller FILTER is not
   exactly PASS are dropped (not emitted at all).
2. Caller tags other than PASS form the base tag set.
3. all-unknown:        ALT contains anything other than A/C/G/T
4. special-chromosome: contig is not 1-22/X/Y (with or without 'chr')
5. SNVs with a resolvable ALT are decoded and expanded with post-call
   alleles; indels are decoded directly. Each call then gets, in order:

   lt-3-reads   tumor supporting reads < tumor_min_supporting_reads
   depth-tum    tumor depth            < tumor_min_depth
   depth-nor    normal depth           < normal_min_depth
   freq-tum     tumor frequency        < tumor_min_frequency
   freq-nor     normal frequency       > normal_max_relative_frequency * tumor frequency

6. A call without tags is PASS; PASS never appears with another tag.
"""

import logging
import re
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from .errors import ConfigurationError, GenotypeDecodeError
from .genotype import SampleStats, decode_indel, decode_snv, snv_postcall
from .merge import sort_comments
from .records import PASS, Record, RecordStream

logger = logging.getLogger(__name__)

_NUCLEOTIDES = re.compile(r"^[ACGTacgt]*$")
_STANDARD_CHROMOSOMES = frozenset([str(i) for i in range(1, 23)] + ["X", "Y"])


class FilterTag(str, Enum):
    """Filter tags derived by the classifier (value = serialized ID)."""
    UNRESOLVED_ALLELE = "all-unknown"
    NON_STANDARD_CHROMOSOME = "special-chromosome"
    TOO_FEW_SUPPORTING_READS = "lt-3-reads"
    TUMOR_DEPTH_LOW = "depth-tum"
    NORMAL_DEPTH_LOW = "depth-nor"
    TUMOR_FREQ_LOW = "freq-tum"
    NORMAL_FREQ_HIGH = "freq-nor"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FilterThresholds:
    """Depth/frequency cutoffs of the classifier."""
    tumor_min_depth: int = 20
    tumor_min_frequency: float = 0.05
    tumor_min_supporting_reads: int = 3
    normal_min_depth: int = 20
    normal_max_relative_frequency: float = 1 / 6

    @classmethod
    def from_config(cls, section: Optional[Dict[str, Any]]) -> "FilterThresholds":
        """
        Build thresholds from the ``filter`` section of the configuration.

        Missing keys keep their defaults.

        Raises:
            ConfigurationError: On unknown keys, non-numeric or negative values
        """
        if not section:
            return cls()
        if not isinstance(section, dict):
            raise ConfigurationError(f"filter section must be a mapping, got {section!r}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            raise ConfigurationError(f"Unknown filter threshold(s): {', '.join(unknown)}")

        values = {}
        for name, value in section.items():
            if value is None:
                continue
            cast = int if name in ("tumor_min_depth", "tumor_min_supporting_reads", "normal_min_depth") else float
            try:
                values[name] = cast(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"filter.{name} must be a number, got {value!r}") from None
            if values[name] < 0:
                raise ConfigurationError(f"filter.{name} must be >= 0, got {value!r}")
        return cls(**values)


def is_standard_chromosome(chrom: str) -> bool:
    """
    Check for a canonical human autosome or sex chromosome.

    Examples:
        >>> is_standard_chromosome("chr7"), is_standard_chromosome("X")
        (True, True)
        >>> is_standard_chromosome("chrUn_random"), is_standard_chromosome("chrM")
        (False, False)
    """
    name = chrom.strip()
    if name[:3].lower() == "chr":
        name = name[3:]
    return name.upper() in _STANDARD_CHROMOSOMES


def filter_definitions(thresholds: FilterThresholds) -> List[str]:
    """FILTER comment lines describing the classifier's tags."""
    t = thresholds
    descriptions = [
        (FilterTag.UNRESOLVED_ALLELE, "Allele unknown"),
        (FilterTag.NON_STANDARD_CHROMOSOME, "Special chromosome"),
        (FilterTag.TUMOR_DEPTH_LOW, f"Sequencing depth in tumor is too low (< {t.tumor_min_depth})"),
        (FilterTag.TUMOR_FREQ_LOW, f"Allele frequency in tumor < {t.tumor_min_frequency}"),
        (FilterTag.NORMAL_DEPTH_LOW, f"Sequencing depth in normal is too low (< {t.normal_min_depth})"),
        (FilterTag.NORMAL_FREQ_HIGH,
         f"Allele frequency in normal > {t.normal_max_relative_frequency:.2f} * allele frequency in tumor"),
        (FilterTag.TOO_FEW_SUPPORTING_READS, f"Less than {t.tumor_min_supporting_reads} supporting tumor reads"),
    ]
    return [f'##FILTER=<ID={tag.value},Description="{text}">' for tag, text in descriptions]


@dataclass(frozen=True)
class Call:
    """One record to emit together with its decoded statistics."""
    record: Record
    tumor: SampleStats
    normal: SampleStats


class FilterClassifier:
    """
    Classify single records against fixed thresholds.

    Args:
        thresholds: Depth/frequency cutoffs
        tumor_index: Index of the tumor sample in ``Record.samples``
        normal_index: Index of the normal sample in ``Record.samples``
        keep_low_quality: Keep records the caller did not PASS
    """

    def __init__(
        self,
        thresholds: FilterThresholds,
        tumor_index: int,
        normal_index: int,
        keep_low_quality: bool = False,
    ):
        self.thresholds = thresholds
        self.tumor_index = tumor_index
        self.normal_index = normal_index
        self.keep_low_quality = keep_low_quality

    def base_tags(self, record: Record) -> List[str]:
        """Caller tags plus allele/chromosome tags shared by all calls of a record."""
        tags = [tag for tag in record.filters if tag != PASS]
        if not _NUCLEOTIDES.match(record.alt):
            tags.append(FilterTag.UNRESOLVED_ALLELE.value)
        if not is_standard_chromosome(record.chrom):
            tags.append(FilterTag.NON_STANDARD_CHROMOSOME.value)
        return list(dict.fromkeys(tags))

    def expand(self, record: Record) -> List[Call]:
        """
        Decode a record into the calls to emit.

        SNVs yield the reported allele plus any post-call alleles; indels
        yield one call. SNVs with an unresolvable allele yield nothing.
        """
        tumor_value = record.samples[self.tumor_index]
        normal_value = record.samples[self.normal_index]

        if record.variant_type == "INDEL":
            tumor = decode_indel(record.format, tumor_value)
            normal = decode_indel(record.format, normal_value)
            return [Call(record, tumor, normal)]

        if not _NUCLEOTIDES.match(record.alt):
            return []

        tumor = decode_snv(record.format, tumor_value, record.alt)
        normal = decode_snv(record.format, normal_value, record.alt)
        calls = [Call(record, tumor, normal)]
        for base, stats in snv_postcall(
            record.format, tumor_value, record.ref, record.alt, self.thresholds.tumor_min_frequency
        ):
            calls.append(Call(replace(record, alt=base), stats, normal))
        return calls

    def statistic_tags(self, tumor: SampleStats, normal: SampleStats) -> List[str]:
        """Depth/frequency tags of one call, in output order."""
        t = self.thresholds
        tags = []
        if tumor.supporting < t.tumor_min_supporting_reads:
            tags.append(FilterTag.TOO_FEW_SUPPORTING_READS.value)
        if tumor.depth < t.tumor_min_depth:
            tags.append(FilterTag.TUMOR_DEPTH_LOW.value)
        if normal.depth < t.normal_min_depth:
            tags.append(FilterTag.NORMAL_DEPTH_LOW.value)
        if tumor.frequency < t.tumor_min_frequency:
            tags.append(FilterTag.TUMOR_FREQ_LOW.value)
        if normal.frequency > t.normal_max_relative_frequency * tumor.frequency:
            tags.append(FilterTag.NORMAL_FREQ_HIGH.value)
        return tags

    def classify(self, record: Record) -> List[Record]:
        """
        Classify one record.

        Returns:
            Records to emit with resolved FILTER tags; empty when the record
            is dropped as low quality

        Raises:
            GenotypeDecodeError: If the genotype fields cannot be decoded
        """
        if not self.keep_low_quality and not record.is_pass:
            return []

        base = self.base_tags(record)
        try:
            calls = self.expand(record)
        except GenotypeDecodeError as e:
            raise GenotypeDecodeError(f"{record.chrom}:{record.pos} {record.ref}>{record.alt}: {e}") from e

        if not calls:
            return [record.with_filters(base or [PASS])]

        out = []
        for call in calls:
            tags = list(base)
            for tag in self.statistic_tags(call.tumor, call.normal):
                if tag not in tags:
                    tags.append(tag)
            out.append(call.record.with_filters(tags or [PASS]))
        return out


def filter_stream(
    stream: RecordStream,
    thresholds: FilterThresholds,
    tumor_column: str,
    normal_column: str,
    keep_low_quality: bool = False,
    summary=None,
) -> RecordStream:
    """
    Classify every record of a stream.

    Args:
        stream: Merged, normalized record stream
        thresholds: Classifier thresholds
        tumor_column: Header name of the tumor sample column
        normal_column: Header name of the normal sample column
        keep_low_quality: Keep records the caller did not PASS
        summary: Optional FilterSummary collecting per-tag counts

    Returns:
        New RecordStream with FILTER definitions added to its comments and
        lazily classified records
    """
    classifier = FilterClassifier(
        thresholds,
        tumor_index=stream.sample_index(tumor_column),
        normal_index=stream.sample_index(normal_column),
        keep_low_quality=keep_low_quality,
    )

    def _classified() -> Iterator[Record]:
        for record in stream.records:
            emitted = classifier.classify(record)
            if not emitted:
                logger.debug(f"Dropped low-quality call {record.chrom}:{record.pos} ({record.filter_text})")
            if summary is not None:
                summary.add(record, emitted)
            yield from emitted

    return RecordStream(
        comments=sort_comments(list(stream.comments) + filter_definitions(thresholds)),
        header=list(stream.header),
        records=_classified(),
    )
