"""
Sample column reconciliation.

Strelka2 labels its two sample columns with fixed role names (TUMOR, NORMAL).
The final call set uses the real sample identifiers instead, derived from the
tumor/normal input file names.
"""

from pathlib import Path
from typing import List, Sequence

from .errors import ConfigurationError

TUMOR_LABEL = "TUMOR"
NORMAL_LABEL = "NORMAL"


def sample_name_from_path(path: str) -> str:
    """
    Derive a sample identifier from an input file path.

    Examples:
        >>> sample_name_from_path("/data/bams/DX001_01.bam")
        'DX001_01'
    """
    return Path(path).stem


def reconcile_sample_columns(
    header: Sequence[str],
    tumor_name: str,
    normal_name: str,
    tumor_label: str = TUMOR_LABEL,
    normal_label: str = NORMAL_LABEL,
) -> List[str]:
    """
    Replace the caller's role labels with sample identifiers.

    Column order and all other column names are preserved.

    Args:
        header: Header column names
        tumor_name: Identifier for the tumor column
        normal_name: Identifier for the normal column
        tumor_label: Role label used by the caller for the tumor column
        normal_label: Role label used by the caller for the normal column

    Returns:
        New header list

    Raises:
        ConfigurationError: If either role label is missing from the header

    Examples:
        >>> reconcile_sample_columns(["CHROM", "FORMAT", "NORMAL", "TUMOR"], "t1", "n1")
        ['CHROM', 'FORMAT', 'n1', 't1']
    """
    missing = [label for label in (tumor_label, normal_label) if label not in header]
    if missing:
        raise ConfigurationError(
            f"Sample column(s) {', '.join(missing)} not found in header: {', '.join(header)}"
        )

    renamed = {tumor_label: tumor_name, normal_label: normal_name}
    return [renamed.get(col, col) for col in header]
