"""
SNV/Indel Stream Merging

Strelka2 writes somatic SNVs and indels to two separate files with slightly
different metadata. This module unifies them into one record stream:

- Comment lines are unioned (exact-text de-duplication), then the
  reconciliation rules below resolve field definitions that both files
  declare with different descriptions.
- The header is taken from the SNV stream.
- SNV records come first, then indel records, both in their original order.
  Coordinate sorting is left to the external sort step.
- Indel alleles are stripped of '.' padding characters.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .records import Record, RecordStream

logger = logging.getLogger(__name__)

# Strelka2 pads alleles of some long indels with '.' at either end
ALLELE_PADDING = "."


@dataclass(frozen=True)
class CommentRule:
    """Drop ``obsolete`` comment lines and add ``replacement`` instead."""
    name: str
    obsolete: Tuple[str, ...]
    replacement: Optional[str] = None


COMMENT_RECONCILIATION: Tuple[CommentRule, ...] = (
    CommentRule(
        name="FORMAT/DP",
        obsolete=(
            '##FORMAT=<ID=DP,Number=1,Type=Integer,Description="Read depth for tier1 (used+filtered)">',
        ),
    ),
    CommentRule(
        name="INFO/QSI_NT",
        obsolete=(
            '##INFO=<ID=QSI_NT,Number=1,Type=Integer,Description="Quality score reflecting the joint probability of a somatic variant and NT">',
        ),
        replacement='##INFO=<ID=QSI_NT,Number=1,Type=Integer,Description="Quality score reflecting the joint probability of a somatic variant (indels) and NT">',
    ),
)

# Group order of the canonical comment sort; unknown keys go last
_COMMENT_KEY_ORDER = ("fileformat", "fileDate", "source", "reference", "contig", "INFO", "FILTER", "FORMAT")


def _comment_key(line: str) -> str:
    return line.lstrip("#").split("=", 1)[0]


def sort_comments(comments: Iterable[str]) -> List[str]:
    """
    Canonical comment order: de-duplicated, ``##fileformat`` first, then
    grouped by key, lexicographic inside each group.

    Examples:
        >>> sort_comments(['##INFO=<ID=B>', '##fileformat=VCFv4.1', '##INFO=<ID=A>', '##INFO=<ID=A>'])
        ['##fileformat=VCFv4.1', '##INFO=<ID=A>', '##INFO=<ID=B>']
    """
    def rank(line: str) -> Tuple[int, str, str]:
        key = _comment_key(line)
        if key in _COMMENT_KEY_ORDER:
            return _COMMENT_KEY_ORDER.index(key), "", line
        return len(_COMMENT_KEY_ORDER), key, line

    return sorted(set(comments), key=rank)


def reconcile_comments(
    comments: Iterable[str],
    rules: Sequence[CommentRule] = COMMENT_RECONCILIATION,
) -> List[str]:
    """
    Union comment lines and apply reconciliation rules.

    A rule fires only when at least one of its obsolete lines is present.

    Returns:
        Canonically sorted comment list
    """
    merged = list(dict.fromkeys(comments))
    for rule in rules:
        hits = [line for line in merged if line in rule.obsolete]
        if not hits:
            continue
        merged = [line for line in merged if line not in rule.obsolete]
        if rule.replacement is not None and rule.replacement not in merged:
            merged.append(rule.replacement)
        logger.debug(f"Comment rule {rule.name}: replaced {len(hits)} line(s)")
    return sort_comments(merged)


def strip_allele_padding(record: Record) -> Record:
    """
    Remove '.' padding from both ends of the reference and alternate allele.

    Examples:
        >>> strip_allele_padding(Record("chr1", 10, "ATG", "A..")).alt
        'A'
    """
    ref = record.ref.strip(ALLELE_PADDING)
    alt = record.alt.strip(ALLELE_PADDING)
    if ref == record.ref and alt == record.alt:
        return record
    return replace(record, ref=ref, alt=alt)


def merge_streams(
    snvs: RecordStream,
    indels: RecordStream,
    rules: Sequence[CommentRule] = COMMENT_RECONCILIATION,
) -> RecordStream:
    """
    Merge an SNV stream and an indel stream into one stream.

    Args:
        snvs: SNV record stream (its header is used for the output)
        indels: Indel record stream
        rules: Comment reconciliation rules

    Returns:
        Merged RecordStream; no filtering or statistics are applied

    Raises:
        ConfigurationError: If the two streams define different sample columns
    """
    if indels.header and indels.sample_names != snvs.sample_names:
        raise ConfigurationError(
            f"SNV and indel files have different sample columns: "
            f"{snvs.sample_names} vs {indels.sample_names}"
        )

    records: List[Record] = list(snvs.records)
    n_snvs = len(records)

    padded = 0
    for record in indels.records:
        cleaned = strip_allele_padding(record)
        if cleaned is not record:
            padded += 1
        records.append(cleaned)

    if padded:
        logger.warning(
            f"Stripped '{ALLELE_PADDING}' allele padding from {padded} indel record(s); "
            "check the caller version if this count changes unexpectedly"
        )
    logger.info(f"Merged {n_snvs} SNV and {len(records) - n_snvs} indel records")

    return RecordStream(
        comments=reconcile_comments(list(snvs.comments) + list(indels.comments), rules),
        header=list(snvs.header),
        records=records,
    )
