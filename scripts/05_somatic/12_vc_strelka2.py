#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Strelka2 Somatic Variant Calling, Merging and Filtering
=======================================================

Purpose:
    Call somatic SNVs and indels for one tumor/normal pair with Strelka2 and
    turn the raw output into one filtered, analysis-ready VCF.

Required Environment:
    - Strelka2, vcflib (vcfbreakmulti), ngs-bits (VcfLeftNormalize, VcfSort,
      VariantFilterRegions); locations are read from the YAML config
    - pandas, pysam, PyYAML

Input:
    - Tumor and normal BAM files
    - YAML config with tool directories and genome build -> FASTA mapping

Output:
    - {OUT} - bgzip-compressed VCF with FILTER tags
    - {OUT}.tbi - tabix index
    - Optional filter tag summary (--summary)

Filter Tags:
    all-unknown         ALT allele contains non-ACGT characters
    special-chromosome  contig is not 1-22/X/Y
    lt-3-reads          too few supporting tumor reads
    depth-tum           tumor depth below minimum
    depth-nor           normal depth below minimum
    freq-tum            tumor allele frequency below minimum
    freq-nor            normal allele frequency too high relative to tumor

Usage:
    # Exome pair with default thresholds
    python 12_vc_strelka2.py --t-bam T.bam --n-bam N.bam --out T-N_var.vcf.gz --config config.yaml

    # WGS, keep Strelka2 low-quality calls, keep run directory
    python 12_vc_strelka2.py --t-bam T.bam --n-bam N.bam --out out.vcf.gz --config config.yaml \\
        --wgs --keep-lq --analysis-dir strelka_run

Version: 1.0
"""

import argparse
import logging
import os
import sys

_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(_SCRIPT_DIR))

import yaml

from somavar.errors import SomaticPipelineError
from somavar.filters import FilterThresholds
from somavar.pipeline import PipelineOptions, run_pipeline
from utils.config_parser import load_config

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, log_dir: str = None) -> None:
    handlers = [logging.StreamHandler()]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, "vc_strelka2.log")))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def build_thresholds(config: dict, args: argparse.Namespace) -> FilterThresholds:
    """Config thresholds, overridden by any command-line values."""
    section = config.get("filter") or {}
    overrides = {
        "tumor_min_depth": args.min_tumor_depth,
        "tumor_min_frequency": args.min_tumor_freq,
        "tumor_min_supporting_reads": args.min_tumor_support,
        "normal_min_depth": args.min_normal_depth,
        "normal_max_relative_frequency": args.max_normal_rel_freq,
    }
    if isinstance(section, dict):
        section = dict(section, **{k: v for k, v in overrides.items() if v is not None})
    return FilterThresholds.from_config(section)


def main():
    parser = argparse.ArgumentParser(
        description="Call somatic variants with Strelka2, merge SNVs/indels and apply filters",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--t-bam", dest="t_bam", required=True, help="Tumor sample BAM file")
    parser.add_argument("--n-bam", dest="n_bam", required=True, help="Normal sample BAM file")
    parser.add_argument("--out", required=True, help="Output VCF (bgzipped and tabix indexed)")
    parser.add_argument("--config", required=True, help="YAML config (tools, genomes, filter)")
    parser.add_argument("--small-indels", dest="small_indels",
                        help="Indel candidates for improved indel calling (e.g. from Manta)")
    parser.add_argument("--target", help="Enrichment target BED file; off-target calls are flagged")
    parser.add_argument("--build", default="GRCh37", help="Genome build (default: GRCh37)")
    parser.add_argument("--wgs", action="store_true", help="Treat input as WGS samples")
    parser.add_argument("--strelka-config", dest="strelka_config", help="Config file for Strelka2")
    parser.add_argument("--keep-lq", dest="keep_lq", action="store_true",
                        help="Keep variants flagged as low quality by Strelka2")
    parser.add_argument("--analysis-dir", dest="analysis_dir", help="Keep Strelka2 analysis files in this directory")
    parser.add_argument("--debug-region", dest="debug_region", help="Limit analysis to one region (debugging)")
    parser.add_argument("--threads", type=int, default=4, help="Number of threads for Strelka2 (default: 4)")
    parser.add_argument("--summary", help="Write filter tag counts to this TSV file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    # threshold overrides
    parser.add_argument("--min-tumor-depth", dest="min_tumor_depth", type=int, help="Minimum tumor depth (default: 20)")
    parser.add_argument("--min-tumor-freq", dest="min_tumor_freq", type=float, help="Minimum tumor AF (default: 0.05)")
    parser.add_argument("--min-tumor-support", dest="min_tumor_support", type=int,
                        help="Minimum supporting tumor reads (default: 3)")
    parser.add_argument("--min-normal-depth", dest="min_normal_depth", type=int, help="Minimum normal depth (default: 20)")
    parser.add_argument("--max-normal-rel-freq", dest="max_normal_rel_freq", type=float,
                        help="Maximum normal AF relative to tumor AF (default: 1/6)")
    args = parser.parse_args()

    setup_logging(args.verbose, args.analysis_dir)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML: {e}")
        sys.exit(1)

    try:
        options = PipelineOptions(
            tumor_bam=args.t_bam,
            normal_bam=args.n_bam,
            out=args.out,
            small_indels=args.small_indels,
            target=args.target,
            build=args.build,
            wgs=args.wgs,
            strelka_config=args.strelka_config,
            keep_low_quality=args.keep_lq,
            analysis_dir=args.analysis_dir,
            debug_region=args.debug_region,
            threads=args.threads,
            thresholds=build_thresholds(config, args),
            summary_out=args.summary,
        )

        logger.info("=" * 60)
        logger.info("Strelka2 somatic pipeline v1.0")
        logger.info(f"Tumor: {args.t_bam}")
        logger.info(f"Normal: {args.n_bam}")
        logger.info(f"Mode: {'WGS' if args.wgs else 'exome'}  Keep LQ: {args.keep_lq}")
        logger.info(f"Thresholds: {options.thresholds}")
        logger.info("=" * 60)

        summary = run_pipeline(options, config)
    except SomaticPipelineError as e:
        logger.error(str(e))
        sys.exit(1)

    print("\nComplete!")
    print(f"  Input records: {summary.input_records}")
    print(f"  Dropped (low quality): {summary.dropped_low_quality}")
    print(f"  Emitted: {summary.emitted} ({summary.derived} post-call)")
    print(f"  PASS: {summary.passed}")
    print(f"  Output: {args.out}")


if __name__ == "__main__":
    main()
