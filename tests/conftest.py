"""
Pytest configuration and fixtures for the somatic pipeline tests.
"""

import sys
import tempfile
from pathlib import Path

import pytest

# Add scripts directory to path for imports
scripts_dir = Path(__file__).parent.parent / "scripts"
sys.path.insert(0, str(scripts_dir))

from somavar.records import Record


SNV_FORMAT = ("DP", "FDP", "SDP", "SUBDP", "AU", "CU", "GU", "TU")
INDEL_FORMAT = ("DP", "DP2", "TAR", "TIR", "TOR", "DP50", "FDP50", "SUBDP50", "BCN50")


def snv_genotype(a=0, c=0, g=0, t=0):
    """Strelka2 SNV genotype value string with tier1 == tier2 counts."""
    dp = a + c + g + t
    return f"{dp}:0:0:0:{a},{a}:{c},{c}:{g},{g}:{t},{t}"


def indel_genotype(tar=0, tir=0):
    """Strelka2 indel genotype value string."""
    dp = tar + tir
    return f"{dp}:{dp}:{tar},{tar}:{tir},{tir}:0,0:{dp}.00:0.00:0.00:0.00"


def make_snv(ref="A", alt="G", tumor=None, normal=None, chrom="chr1", pos=100, filters=("PASS",)):
    """SNV record with samples in Strelka2 order (NORMAL, TUMOR)."""
    tumor = tumor or {}
    normal = normal or {}
    return Record(
        chrom=chrom,
        pos=pos,
        ref=ref,
        alt=alt,
        filters=tuple(filters),
        format=SNV_FORMAT,
        samples=(snv_genotype(**normal), snv_genotype(**tumor)),
        info="SOMATIC;QSS=40",
    )


def make_indel(ref="ATG", alt="A", tumor=(30, 10), normal=(30, 0), chrom="chr1", pos=200, filters=("PASS",)):
    """Indel record with samples in Strelka2 order (NORMAL, TUMOR)."""
    return Record(
        chrom=chrom,
        pos=pos,
        ref=ref,
        alt=alt,
        filters=tuple(filters),
        format=INDEL_FORMAT,
        samples=(indel_genotype(*normal), indel_genotype(*tumor)),
        info="SOMATIC;QSI=40",
    )


# Strelka2 order: NORMAL column before TUMOR column
NORMAL_INDEX = 0
TUMOR_INDEX = 1


# ============================================================================
# Path Fixtures
# ============================================================================

@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# Variant File Fixtures
# ============================================================================

@pytest.fixture
def vcf_header_line():
    return "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tNORMAL\tTUMOR"


@pytest.fixture
def snv_vcf_content(vcf_header_line):
    """Split Strelka2 somatic SNV output."""
    lines = [
        "##fileformat=VCFv4.1",
        "##source=strelka",
        "##contig=<ID=chr1,length=249250621>",
        '##INFO=<ID=SOMATIC,Number=0,Type=Flag,Description="Somatic mutation">',
        '##FORMAT=<ID=DP,Number=1,Type=Integer,Description="Read depth for tier1 (used+filtered)">',
        '##FORMAT=<ID=AU,Number=2,Type=Integer,Description="Number of \'A\' alleles used in tiers 1,2">',
        '##FILTER=<ID=LowEVS,Description="Somatic Empirical Variant Score (SomaticEVS) is below threshold">',
        vcf_header_line,
        "\t".join(["chr1", "100", ".", "A", "G", ".", "PASS", "SOMATIC", ":".join(SNV_FORMAT),
                   snv_genotype(a=25), snv_genotype(a=18, g=12)]),
        "\t".join(["chr1", "150", ".", "C", "T", ".", "LowEVS", "SOMATIC", ":".join(SNV_FORMAT),
                   snv_genotype(c=30), snv_genotype(c=20, t=10)]),
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def indel_vcf_content(vcf_header_line):
    """Split Strelka2 somatic indel output, including an allele padding artifact."""
    lines = [
        "##fileformat=VCFv4.1",
        "##source=strelka",
        "##contig=<ID=chr1,length=249250621>",
        '##INFO=<ID=SOMATIC,Number=0,Type=Flag,Description="Somatic mutation">',
        '##INFO=<ID=QSI_NT,Number=1,Type=Integer,Description="Quality score reflecting the joint probability of a somatic variant and NT">',
        '##FORMAT=<ID=DP,Number=1,Type=Integer,Description="Read depth for tier1">',
        vcf_header_line,
        "\t".join(["chr1", "120", ".", "ATG", "A..", ".", "PASS", "SOMATIC", ":".join(INDEL_FORMAT),
                   indel_genotype(40, 0), indel_genotype(49, 1)]),
        "\t".join(["chr1", "90", ".", "C", "CTT", ".", "PASS", "SOMATIC", ":".join(INDEL_FORMAT),
                   indel_genotype(40, 0), indel_genotype(30, 10)]),
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def snv_vcf_file(temp_dir, snv_vcf_content):
    path = temp_dir / "somatic.snvs.split.vcf"
    path.write_text(snv_vcf_content)
    return path


@pytest.fixture
def indel_vcf_file(temp_dir, indel_vcf_content):
    path = temp_dir / "somatic.indels.split.vcf"
    path.write_text(indel_vcf_content)
    return path


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def reference_fasta(temp_dir):
    fasta = temp_dir / "GRCh37.fa"
    fasta.write_text(">chr1\nACGTACGTACGT\n")
    return fasta


@pytest.fixture
def sample_config(reference_fasta):
    """Provide a sample configuration dictionary."""
    return {
        "genomes": {
            "GRCh37": str(reference_fasta),
        },
        "filter": {
            "tumor_min_depth": 20,
            "tumor_min_frequency": 0.05,
            "tumor_min_supporting_reads": 3,
            "normal_min_depth": 20,
        },
    }
