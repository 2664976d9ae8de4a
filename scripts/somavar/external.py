"""
External tool wrappers.

The variant caller, multi-allelic splitter, left-normalizer, sorter and
region flagger are separate command-line programs; this module only builds
their command lines and runs them. Every call blocks until the tool exits
and any failure raises ExternalToolError. There are no retries: a failed run
is simply rerun as a whole.

Tools:
    Strelka2   configureStrelkaSomaticWorkflow.py, <runDir>/runWorkflow.py
    vcflib     vcfbreakmulti
    ngs-bits   VcfLeftNormalize, VcfSort, VariantFilterRegions
    htslib     bgzip/tabix (through pysam)
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pysam

from .errors import ConfigurationError, ExternalToolError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExternalTools:
    """Install locations of the external tools; empty means 'on PATH'."""
    strelka2_dir: str = ""
    vcflib_dir: str = ""
    ngs_bits_dir: str = ""

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ExternalTools":
        tools = config.get("tools") or {}
        return cls(
            strelka2_dir=tools.get("strelka2") or "",
            vcflib_dir=tools.get("vcflib") or "",
            ngs_bits_dir=tools.get("ngs_bits") or "",
        )

    @staticmethod
    def _path(tool_dir: str, name: str) -> str:
        return os.path.join(tool_dir, name) if tool_dir else name

    def strelka2(self, name: str) -> str:
        return self._path(self.strelka2_dir, name)

    def vcflib(self, name: str) -> str:
        return self._path(self.vcflib_dir, name)

    def ngs_bits(self, name: str) -> str:
        return self._path(self.ngs_bits_dir, name)

    @property
    def strelka_default_config(self) -> str:
        return self.strelka2("configureStrelkaSomaticWorkflow.py.ini")


def run_tool(cmd: List[str], stdout=None) -> None:
    """
    Run one external command and wait for it.

    Args:
        cmd: Command and arguments
        stdout: Optional open file receiving the tool's standard output

    Raises:
        ExternalToolError: If the tool cannot be started or exits non-zero
    """
    tool = os.path.basename(cmd[0])
    logger.info(f"Running: {' '.join(cmd)}")
    try:
        subprocess.run(cmd, stdout=stdout, stderr=subprocess.PIPE, check=True)
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode("utf-8", errors="ignore") if e.stderr else ""
        raise ExternalToolError(tool, e.returncode, stderr) from e
    except OSError as e:
        raise ExternalToolError(tool, 127, str(e)) from e


def run_strelka(
    tools: ExternalTools,
    tumor_bam: str,
    normal_bam: str,
    reference_fasta: str,
    run_dir: str,
    config_file: Optional[str] = None,
    wgs: bool = False,
    indel_candidates: Optional[str] = None,
    debug_region: Optional[str] = None,
    threads: int = 4,
) -> Tuple[str, str]:
    """
    Configure and run the Strelka2 somatic workflow.

    Returns:
        Paths of the somatic SNV and indel result files

    Raises:
        ConfigurationError: If the Strelka2 config file does not exist
        ExternalToolError: If configuration or the workflow fails
    """
    config_file = config_file or tools.strelka_default_config
    if not os.path.isfile(config_file):
        raise ConfigurationError(f"Could not find strelka config file '{config_file}'")

    args = [
        tools.strelka2("configureStrelkaSomaticWorkflow.py"),
        "--tumor", os.path.realpath(tumor_bam),
        "--normal", os.path.realpath(normal_bam),
        "--referenceFasta", reference_fasta,
        "--runDir", run_dir,
        "--config", config_file,
    ]
    if not wgs:
        args.append("--exome")
    if indel_candidates:
        args.extend(["--indelCandidates", indel_candidates])
    if debug_region:
        args.extend(["--region", debug_region])

    run_tool(args)
    run_tool([os.path.join(run_dir, "runWorkflow.py"), "-m", "local", "-j", str(threads), "-g", "4"])

    results = os.path.join(run_dir, "results", "variants")
    return (
        os.path.join(results, "somatic.snvs.vcf.gz"),
        os.path.join(results, "somatic.indels.vcf.gz"),
    )


def split_multiallelic(tools: ExternalTools, in_vcf_gz: str, out_vcf: str) -> None:
    """Decompose multi-allelic records: zcat <in> | vcfbreakmulti > <out>."""
    cmd_zcat = ["zcat", in_vcf_gz]
    cmd_split = [tools.vcflib("vcfbreakmulti")]
    logger.info(f"Running: {' '.join(cmd_zcat)} | {' '.join(cmd_split)} > {out_vcf}")

    try:
        with open(out_vcf, "w") as out:
            p1 = subprocess.Popen(cmd_zcat, stdout=subprocess.PIPE)
            p2 = subprocess.Popen(cmd_split, stdin=p1.stdout, stdout=out, stderr=subprocess.PIPE)
            p1.stdout.close()
            _, stderr = p2.communicate()
            p1_ret = p1.wait()
    except OSError as e:
        raise ExternalToolError(os.path.basename(cmd_split[0]), 127, str(e)) from e

    if p1_ret != 0:
        raise ExternalToolError("zcat", p1_ret)
    if p2.returncode != 0:
        raise ExternalToolError(
            os.path.basename(cmd_split[0]), p2.returncode, stderr.decode("utf-8", errors="ignore")
        )


def left_normalize(tools: ExternalTools, in_vcf: str, out_vcf: str, reference_fasta: str) -> None:
    """Left-align indels against the reference."""
    run_tool([tools.ngs_bits("VcfLeftNormalize"), "-in", in_vcf, "-out", out_vcf, "-ref", reference_fasta])


def sort_vcf(tools: ExternalTools, in_vcf: str, out_vcf: str) -> None:
    """Sort records by genomic coordinate."""
    run_tool([tools.ngs_bits("VcfSort"), "-in", in_vcf, "-out", out_vcf])


def flag_off_target(tools: ExternalTools, in_vcf: str, out_vcf: str, target_bed: str) -> None:
    """Mark (not remove) records outside the target regions with 'off-target'."""
    run_tool([
        tools.ngs_bits("VariantFilterRegions"),
        "-in", in_vcf, "-mark", "off-target", "-reg", target_bed, "-out", out_vcf,
    ])


def compress_and_index(in_vcf: str, out_vcf_gz: str) -> str:
    """
    bgzip-compress a VCF and build its tabix index.

    Returns:
        Path of the index file
    """
    logger.info(f"Compressing and indexing {in_vcf} -> {out_vcf_gz}")
    try:
        pysam.tabix_compress(in_vcf, out_vcf_gz, force=True)
        pysam.tabix_index(out_vcf_gz, preset="vcf", force=True)
    except (OSError, ValueError) as e:
        raise ExternalToolError("bgzip/tabix", 1, str(e)) from e
    return out_vcf_gz + ".tbi"
