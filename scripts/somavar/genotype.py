"""
Genotype Statistics Decoders for Strelka2 Somatic Calls

Strelka2 does not report a plain allele frequency. Depth and frequency have
to be reconstructed from the per-sample read-count sub-fields of the FORMAT
column, and SNVs and indels use different sub-fields.

SNV sub-fields:
--------------
    AU, CU, GU, TU   "tier1,tier2" read counts supporting each base

    depth      = AU + CU + GU + TU          (tier1)
    frequency  = <ALT>U / depth              (tier1)

Indel sub-fields:
----------------
    TAR   "tier1,tier2" reads strongly supporting the reference
    TIR   "tier1,tier2" reads strongly supporting the indel

    depth      = TAR + TIR                   (tier1)
    frequency  = TIR / depth                 (tier1)

Post-call expansion:
-------------------
An SNV line carries counts for all four bases, so a tri-allelic site that the
caller reported as bi-allelic can be recovered: every other non-reference base
whose tumor frequency reaches the minimum tumor frequency is reported as an
additional candidate allele.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .errors import GenotypeDecodeError

# Base order used by Strelka2 for the per-base count sub-fields
BASE_ORDER: Tuple[str, ...] = ("A", "C", "G", "T")

INDEL_REF_KEY = "TAR"
INDEL_ALT_KEY = "TIR"


@dataclass(frozen=True)
class SampleStats:
    """Depth and supporting read count of one allele in one sample."""
    depth: int
    supporting: int

    @property
    def frequency(self) -> float:
        if self.depth == 0:
            return 0.0
        return self.supporting / self.depth


def _genotype_fields(format_keys: Sequence[str], value: str) -> Dict[str, str]:
    values = value.split(":")
    if len(values) != len(format_keys):
        raise GenotypeDecodeError(
            f"Genotype '{value}' has {len(values)} sub-fields, FORMAT has {len(format_keys)}"
        )
    return dict(zip(format_keys, values))


def _tier1_count(fields: Dict[str, str], key: str) -> int:
    if key not in fields:
        raise GenotypeDecodeError(f"Sub-field {key} missing from genotype")
    raw = fields[key].split(",")[0]
    try:
        count = int(raw)
    except ValueError:
        raise GenotypeDecodeError(f"Sub-field {key} is not an integer: {fields[key]!r}") from None
    if count < 0:
        raise GenotypeDecodeError(f"Sub-field {key} is negative: {fields[key]!r}")
    return count


def _base_counts(format_keys: Sequence[str], value: str) -> Dict[str, int]:
    fields = _genotype_fields(format_keys, value)
    return {base: _tier1_count(fields, base + "U") for base in BASE_ORDER}


def decode_snv(format_keys: Sequence[str], value: str, alt: str) -> SampleStats:
    """
    Decode depth and frequency of an SNV allele in one sample.

    Args:
        format_keys: FORMAT sub-field keys of the record
        value: Genotype value string of the sample
        alt: Alternate base (case-insensitive)

    Returns:
        SampleStats for the alternate base

    Raises:
        GenotypeDecodeError: On sub-field count mismatch, missing or
            non-numeric sub-fields, or an alternate that is not A/C/G/T

    Examples:
        >>> keys = ("DP", "AU", "CU", "GU", "TU")
        >>> stats = decode_snv(keys, "30:18,18:0,0:12,12:0,0", "G")
        >>> stats.depth, stats.frequency
        (30, 0.4)
    """
    base = alt.upper()
    if base not in BASE_ORDER:
        raise GenotypeDecodeError(f"Cannot resolve SNV allele '{alt}' against {'/'.join(BASE_ORDER)}")
    counts = _base_counts(format_keys, value)
    return SampleStats(depth=sum(counts.values()), supporting=counts[base])


def snv_postcall(
    format_keys: Sequence[str],
    tumor_value: str,
    ref: str,
    alt: str,
    min_frequency: float,
) -> List[Tuple[str, SampleStats]]:
    """
    Find additional alternate bases supported in the tumor sample.

    Args:
        format_keys: FORMAT sub-field keys of the record
        tumor_value: Genotype value string of the tumor sample
        ref: Reference base
        alt: Alternate base reported by the caller
        min_frequency: Minimum tumor frequency for a base to be reported

    Returns:
        List of (base, tumor SampleStats) in A/C/G/T order; every entry has
        a frequency >= min_frequency

    Examples:
        >>> keys = ("AU", "CU", "GU", "TU")
        >>> [(b, s.frequency) for b, s in snv_postcall(keys, "10,10:0,0:6,6:4,4", "A", "G", 0.05)]
        [('T', 0.2)]
    """
    counts = _base_counts(format_keys, tumor_value)
    depth = sum(counts.values())
    skip = {ref.upper(), alt.upper()}

    found = []
    for base in BASE_ORDER:
        if base in skip:
            continue
        stats = SampleStats(depth=depth, supporting=counts[base])
        if stats.frequency >= min_frequency:
            found.append((base, stats))
    return found


def decode_indel(format_keys: Sequence[str], value: str) -> SampleStats:
    """
    Decode depth and frequency of an indel in one sample.

    Examples:
        >>> decode_indel(("DP", "TAR", "TIR"), "40:30,31:10,11").frequency
        0.25
    """
    fields = _genotype_fields(format_keys, value)
    ref_reads = _tier1_count(fields, INDEL_REF_KEY)
    alt_reads = _tier1_count(fields, INDEL_ALT_KEY)
    return SampleStats(depth=ref_reads + alt_reads, supporting=alt_reads)
