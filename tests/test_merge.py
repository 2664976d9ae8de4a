"""
Tests for SNV/indel stream merging and comment reconciliation.
"""

import logging
import sys
from pathlib import Path

import pytest

# Add scripts directory to path for imports
scripts_dir = Path(__file__).parent.parent / "scripts"
sys.path.insert(0, str(scripts_dir))

from somavar.errors import ConfigurationError
from somavar.merge import (
    COMMENT_RECONCILIATION,
    CommentRule,
    merge_streams,
    reconcile_comments,
    sort_comments,
    strip_allele_padding,
)
from somavar.records import Record, RecordStream, read_vcf

from conftest import make_indel, make_snv


OLD_QSI_NT = COMMENT_RECONCILIATION[1].obsolete[0]
NEW_QSI_NT = COMMENT_RECONCILIATION[1].replacement
SNV_DP = COMMENT_RECONCILIATION[0].obsolete[0]
INDEL_DP = '##FORMAT=<ID=DP,Number=1,Type=Integer,Description="Read depth for tier1">'


# ============================================================================
# Tests: Comment Sorting
# ============================================================================


class TestSortComments:
    """Tests for sort_comments function."""

    def test_fileformat_first(self):
        out = sort_comments(["##source=strelka", "##INFO=<ID=A>", "##fileformat=VCFv4.1"])
        assert out[0] == "##fileformat=VCFv4.1"

    def test_group_order(self):
        comments = [
            "##FORMAT=<ID=DP>",
            "##FILTER=<ID=LowEVS>",
            "##INFO=<ID=SOMATIC>",
            "##contig=<ID=chr1>",
            "##reference=file:///ref.fa",
            "##source=strelka",
            "##fileDate=20240101",
            "##fileformat=VCFv4.1",
        ]
        assert sort_comments(comments) == list(reversed(comments))

    def test_unknown_keys_last(self):
        out = sort_comments(["##startTime=Mon", "##INFO=<ID=A>", "##cmdline=x"])
        assert out == ["##INFO=<ID=A>", "##cmdline=x", "##startTime=Mon"]

    def test_deduplicated(self):
        assert sort_comments(["##INFO=<ID=A>", "##INFO=<ID=A>"]) == ["##INFO=<ID=A>"]

    def test_order_insensitive(self):
        comments = ["##INFO=<ID=B>", "##fileformat=VCFv4.1", "##FILTER=<ID=x>", "##INFO=<ID=A>"]
        assert sort_comments(comments) == sort_comments(reversed(comments))


# ============================================================================
# Tests: Comment Reconciliation
# ============================================================================


class TestReconcileComments:
    """Tests for reconcile_comments function."""

    def test_qsi_nt_replaced(self):
        out = reconcile_comments(["##fileformat=VCFv4.1", OLD_QSI_NT])
        assert OLD_QSI_NT not in out
        assert NEW_QSI_NT in out

    def test_snv_depth_dropped(self):
        out = reconcile_comments([SNV_DP, INDEL_DP])
        assert out == [INDEL_DP]

    def test_rule_without_hit_adds_nothing(self):
        """
        The QSI_NT replacement is added only when the obsolete description is
        present; an SNV-only or already reconciled comment set gets no
        unconditional INFO line.
        """
        out = reconcile_comments(["##fileformat=VCFv4.1"])
        assert out == ["##fileformat=VCFv4.1"]

    def test_idempotent(self):
        once = reconcile_comments([SNV_DP, INDEL_DP, OLD_QSI_NT])
        assert reconcile_comments(once) == once

    def test_custom_rules(self):
        rule = CommentRule(name="x", obsolete=("##x=1",), replacement="##x=2")
        assert reconcile_comments(["##x=1", "##y=1"], rules=[rule]) == ["##x=2", "##y=1"]


# ============================================================================
# Tests: Allele Padding
# ============================================================================


class TestStripAllelePadding:

    def test_trailing(self):
        assert strip_allele_padding(Record("chr1", 1, "ATG", "A..")).alt == "A"

    def test_leading(self):
        assert strip_allele_padding(Record("chr1", 1, "..A", "ATG")).ref == "A"

    def test_unchanged_returns_same_object(self):
        rec = Record("chr1", 1, "ATG", "A")
        assert strip_allele_padding(rec) is rec

    def test_only_ends_stripped(self):
        assert strip_allele_padding(Record("chr1", 1, "A", "A.T.")).alt == "A.T"


# ============================================================================
# Tests: Stream Merging
# ============================================================================


class TestMergeStreams:
    """Tests for merge_streams function."""

    def test_snvs_then_indels(self, snv_vcf_file, indel_vcf_file):
        merged = merge_streams(read_vcf(snv_vcf_file), read_vcf(indel_vcf_file))
        assert [(r.pos, r.variant_type) for r in merged.records] == [
            (100, "SNV"), (150, "SNV"), (120, "INDEL"), (90, "INDEL"),
        ]

    def test_no_padding_left(self, snv_vcf_file, indel_vcf_file):
        merged = merge_streams(read_vcf(snv_vcf_file), read_vcf(indel_vcf_file))
        for rec in merged.records:
            assert not rec.ref.startswith(".") and not rec.ref.endswith(".")
            assert not rec.alt.startswith(".") and not rec.alt.endswith(".")

    def test_padding_warning(self, snv_vcf_file, indel_vcf_file, caplog):
        with caplog.at_level(logging.WARNING):
            merge_streams(read_vcf(snv_vcf_file), read_vcf(indel_vcf_file))
        assert "1 indel record" in caplog.text

    def test_comments_reconciled(self, snv_vcf_file, indel_vcf_file):
        merged = merge_streams(read_vcf(snv_vcf_file), read_vcf(indel_vcf_file))
        assert merged.comments[0] == "##fileformat=VCFv4.1"
        assert SNV_DP not in merged.comments
        assert INDEL_DP in merged.comments
        assert OLD_QSI_NT not in merged.comments
        assert NEW_QSI_NT in merged.comments
        assert merged.comments.count("##source=strelka") == 1

    def test_header_from_snvs(self, snv_vcf_file, indel_vcf_file):
        snvs = read_vcf(snv_vcf_file)
        merged = merge_streams(snvs, read_vcf(indel_vcf_file))
        assert merged.header == snvs.header

    def test_empty_indel_stream(self, snv_vcf_file):
        """Merging with an empty indel stream gives back the SNV stream."""
        snvs = read_vcf(snv_vcf_file)
        merged = merge_streams(snvs, RecordStream())
        assert list(merged.records) == list(snvs.records)
        assert merged.header == snvs.header
        assert merged.comments == reconcile_comments(snvs.comments)

    def test_sample_mismatch(self):
        base = ["CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO", "FORMAT"]
        snvs = RecordStream(header=base + ["NORMAL", "TUMOR"], records=[make_snv()])
        indels = RecordStream(header=base + ["TUMOR", "NORMAL"], records=[make_indel()])
        with pytest.raises(ConfigurationError, match="sample columns"):
            merge_streams(snvs, indels)

    def test_no_filtering(self):
        """Merging keeps records of any status unchanged."""
        base = ["CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO", "FORMAT", "NORMAL", "TUMOR"]
        snv = make_snv(filters=("LowEVS",))
        indel = make_indel(filters=())
        merged = merge_streams(RecordStream(header=base, records=[snv]), RecordStream(header=base, records=[indel]))
        assert list(merged.records) == [snv, indel]
