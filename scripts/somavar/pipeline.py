"""
Somatic SNV/indel calling pipeline (tumor/normal pair, Strelka2).

Stages, each consuming the previous stage's file:

    1. Strelka2 somatic workflow            (external)
    2. Split multi-allelic records          (external, per SNV/indel file)
    3. Merge SNVs and indels                (merge.merge_streams)
    4. Left-align indels, sort by position  (external)
    5. Rename sample columns, classify      (header, filters)
    6. Flag off-target records              (external, optional)
    7. bgzip + tabix                        (pysam)

The first failure aborts the run; intermediate files live in a temporary
directory that is removed afterwards. Only the Strelka2 run directory is kept
when an analysis directory is given.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from utils.config_parser import get_nested, validate_config

from . import external
from .errors import ConfigurationError
from .filters import FilterThresholds, filter_stream
from .header import reconcile_sample_columns, sample_name_from_path
from .merge import merge_streams
from .records import RecordStream, read_vcf, write_vcf
from .summary import FilterSummary

logger = logging.getLogger(__name__)


@dataclass
class PipelineOptions:
    """Run options (mirrors the command-line interface)."""
    tumor_bam: str
    normal_bam: str
    out: str
    small_indels: Optional[str] = None
    target: Optional[str] = None
    build: str = "GRCh37"
    wgs: bool = False
    strelka_config: Optional[str] = None
    keep_low_quality: bool = False
    analysis_dir: Optional[str] = None
    debug_region: Optional[str] = None
    threads: int = 4
    thresholds: FilterThresholds = field(default_factory=FilterThresholds)
    summary_out: Optional[str] = None


def check_inputs(options: PipelineOptions, config: Dict[str, Any]) -> str:
    """
    Validate input files and configuration before anything runs.

    Returns:
        Reference FASTA path of the selected genome build

    Raises:
        ConfigurationError: Listing every problem found
    """
    errors = []
    for label, path in (
        ("tumor BAM", options.tumor_bam),
        ("normal BAM", options.normal_bam),
        ("indel candidates", options.small_indels),
        ("target region", options.target),
    ):
        if path is not None and not os.path.isfile(path):
            errors.append(f"{label} file not found: {path}")

    is_valid, config_errors = validate_config(config, build=options.build)
    if not is_valid:
        errors.extend(config_errors)

    if options.threads < 1:
        errors.append(f"threads must be >= 1, got {options.threads}")

    if errors:
        raise ConfigurationError("; ".join(errors))

    return get_nested(config, f"genomes.{options.build}")


def merge_files(snv_vcf: str, indel_vcf: str, out_vcf: str) -> int:
    """Merge split SNV and indel files; returns the number of records written."""
    merged = merge_streams(read_vcf(snv_vcf), read_vcf(indel_vcf))
    return write_vcf(merged, out_vcf)


def filter_file(
    in_vcf: str,
    out_vcf: str,
    tumor_name: str,
    normal_name: str,
    thresholds: FilterThresholds,
    keep_low_quality: bool = False,
    summary: Optional[FilterSummary] = None,
) -> int:
    """
    Rename the TUMOR/NORMAL columns and classify all records.

    Returns:
        Number of records written
    """
    variants = read_vcf(in_vcf)
    renamed = RecordStream(
        comments=variants.comments,
        header=reconcile_sample_columns(variants.header, tumor_name, normal_name),
        records=variants.records,
    )
    filtered = filter_stream(
        renamed,
        thresholds,
        tumor_column=tumor_name,
        normal_column=normal_name,
        keep_low_quality=keep_low_quality,
        summary=summary,
    )
    return write_vcf(filtered, out_vcf)


def run_pipeline(options: PipelineOptions, config: Dict[str, Any]) -> FilterSummary:
    """
    Run the complete pipeline for one tumor/normal pair.

    Args:
        options: Run options
        config: Parsed YAML configuration (tools, genomes, filter)

    Returns:
        FilterSummary of the classification step

    Raises:
        ConfigurationError: Bad inputs or configuration (before any processing)
        ExternalToolError: Any external tool failed
        GenotypeDecodeError: A record's genotype fields could not be decoded
    """
    reference = check_inputs(options, config)
    tools = external.ExternalTools.from_config(config)
    tumor_name = sample_name_from_path(options.tumor_bam)
    normal_name = sample_name_from_path(options.normal_bam)

    if tumor_name == normal_name:
        raise ConfigurationError(f"Tumor and normal sample share the name '{tumor_name}'")

    with tempfile.TemporaryDirectory(prefix="somavar_") as tmp:
        tmp_dir = Path(tmp)
        run_dir = options.analysis_dir or str(tmp_dir / "strelkaAnalysis")

        logger.info(f"Tumor: {tumor_name}  Normal: {normal_name}  Build: {options.build}")
        logger.info(f"Strelka2 run directory: {run_dir}")

        somatic_snvs, somatic_indels = external.run_strelka(
            tools,
            options.tumor_bam,
            options.normal_bam,
            reference,
            run_dir,
            config_file=options.strelka_config,
            wgs=options.wgs,
            indel_candidates=options.small_indels,
            debug_region=options.debug_region,
            threads=options.threads,
        )

        split_snvs = str(tmp_dir / "somatic.snvs.split.vcf")
        split_indels = str(tmp_dir / "somatic.indels.split.vcf")
        external.split_multiallelic(tools, somatic_snvs, split_snvs)
        external.split_multiallelic(tools, somatic_indels, split_indels)

        vcf_merged = str(tmp_dir / "merged.vcf")
        merge_files(split_snvs, split_indels, vcf_merged)

        vcf_aligned = str(tmp_dir / "aligned.vcf")
        vcf_sorted = str(tmp_dir / "sorted.vcf")
        external.left_normalize(tools, vcf_merged, vcf_aligned, reference)
        external.sort_vcf(tools, vcf_aligned, vcf_sorted)

        summary = FilterSummary()
        vcf_filtered = str(tmp_dir / "filtered.vcf")
        filter_file(
            vcf_sorted,
            vcf_filtered,
            tumor_name,
            normal_name,
            options.thresholds,
            keep_low_quality=options.keep_low_quality,
            summary=summary,
        )
        logger.info(f"Filtering: {summary.log_line()}")

        final = vcf_filtered
        if options.target:
            vcf_offtarget = str(tmp_dir / "filtered_offtarget.vcf")
            external.flag_off_target(tools, vcf_filtered, vcf_offtarget, options.target)
            final = vcf_offtarget

        external.compress_and_index(final, options.out)

    if options.summary_out:
        summary.write(options.summary_out)
        logger.info(f"Filter summary saved to: {options.summary_out}")

    logger.info(f"Output: {options.out}")
    return summary
