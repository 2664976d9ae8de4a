"""
Variant Records and Record Streams

This module provides the typed record model used by every stage of the
somatic pipeline and the reader/writer for the tab-separated variant files
that Strelka2 and the normalization tools exchange.

File Layout:
    ##key=value ...          comment lines (order-insensitive metadata)
    #CHROM POS ID REF ...    exactly one header line
    chr1   100 .  A   G ...  data lines, one alternate allele per line

Columns:
    Col 1:  Chromosome
    Col 2:  Position (1-based)
    Col 3:  ID
    Col 4:  Reference allele
    Col 5:  Alternate allele
    Col 6:  QUAL
    Col 7:  FILTER (tags separated by ';', PASS or '.')
    Col 8:  INFO
    Col 9:  FORMAT (genotype sub-field keys separated by ':')
    Col 10+: One genotype value string per sample (tumor and normal)

Sample columns are addressed by name through the stream header, never by a
fixed offset.
"""

import gzip
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError, RecordParseError

PASS = "PASS"
MISSING = "."
COMMENT_PREFIX = "##"
HEADER_PREFIX = "#"

# Number of fixed columns before the first sample column
FIXED_COLUMNS = 9


@dataclass(frozen=True)
class Record:
    """One single-allele variant call."""
    chrom: str
    pos: int
    ref: str
    alt: str
    filters: Tuple[str, ...] = ()
    format: Tuple[str, ...] = ()
    samples: Tuple[str, ...] = ()
    id: str = MISSING
    qual: str = MISSING
    info: str = MISSING

    @property
    def variant_type(self) -> str:
        """'SNV' for single-base alleles, 'INDEL' otherwise."""
        if len(self.ref) == 1 and len(self.alt) == 1:
            return "SNV"
        return "INDEL"

    @property
    def is_pass(self) -> bool:
        """True when the FILTER column is exactly PASS."""
        return self.filters == (PASS,)

    @property
    def filter_text(self) -> str:
        return ";".join(self.filters) if self.filters else MISSING

    def with_filters(self, filters: Sequence[str]) -> "Record":
        return replace(self, filters=tuple(filters))

    @classmethod
    def from_line(cls, line: str) -> "Record":
        """
        Parse one tab-separated data line.

        Args:
            line: Data line, with or without trailing newline

        Returns:
            Record

        Raises:
            RecordParseError: If the line has too few columns or a bad position

        Examples:
            >>> rec = Record.from_line("chr1\\t100\\t.\\tA\\tG\\t.\\tPASS\\t.\\tDP\\t10\\t12")
            >>> rec.alt, rec.filters, rec.samples
            ('G', ('PASS',), ('10', '12'))
        """
        parts = line.rstrip("\r\n").split("\t")
        if len(parts) < FIXED_COLUMNS + 1:
            raise RecordParseError(
                f"Expected at least {FIXED_COLUMNS + 1} columns, got {len(parts)}: {line.strip()!r}"
            )
        try:
            pos = int(parts[1])
        except ValueError:
            raise RecordParseError(f"Invalid position {parts[1]!r} in line: {line.strip()!r}") from None

        filt = parts[6]
        filters = () if filt in ("", MISSING) else tuple(filt.split(";"))
        fmt = () if parts[8] in ("", MISSING) else tuple(parts[8].split(":"))

        return cls(
            chrom=parts[0],
            pos=pos,
            id=parts[2],
            ref=parts[3],
            alt=parts[4],
            qual=parts[5],
            filters=filters,
            info=parts[7],
            format=fmt,
            samples=tuple(parts[FIXED_COLUMNS:]),
        )

    def to_line(self) -> str:
        """Serialize back to a tab-separated data line (no newline)."""
        fmt = ":".join(self.format) if self.format else MISSING
        cols = [
            self.chrom, str(self.pos), self.id, self.ref, self.alt,
            self.qual, self.filter_text, self.info, fmt,
        ]
        cols.extend(self.samples)
        return "\t".join(cols)


@dataclass
class RecordStream:
    """
    Records plus the comment set and header they were read with.

    ``records`` may be a list or a lazy iterable; stages that only pass over
    the records once keep it lazy.
    """
    comments: List[str] = field(default_factory=list)
    header: List[str] = field(default_factory=list)
    records: Iterable[Record] = field(default_factory=list)

    @property
    def sample_names(self) -> List[str]:
        return self.header[FIXED_COLUMNS:]

    def column_index(self, name: str) -> int:
        """
        Index of a header column.

        Raises:
            ConfigurationError: If the column is not in the header
        """
        try:
            return self.header.index(name)
        except ValueError:
            raise ConfigurationError(
                f"Column '{name}' not found in header: {', '.join(self.header)}"
            ) from None

    def sample_index(self, name: str) -> int:
        """Index of a sample column within ``Record.samples``."""
        idx = self.column_index(name)
        if idx < FIXED_COLUMNS:
            raise ConfigurationError(f"Column '{name}' is not a sample column")
        return idx - FIXED_COLUMNS


def _open_text(path: Union[str, Path], mode: str = "rt"):
    path = str(path)
    opener = gzip.open if path.endswith(".gz") else open
    return opener(path, mode)


def read_vcf(path: Union[str, Path]) -> RecordStream:
    """
    Read a (optionally gzipped) variant file into a RecordStream.

    Args:
        path: Path to the variant file (.vcf or .vcf.gz)

    Returns:
        RecordStream with all records loaded

    Raises:
        ConfigurationError: If the file does not exist
        RecordParseError: If the header line is missing or a line is malformed
    """
    if not Path(path).is_file():
        raise ConfigurationError(f"Variant file not found: {path}")

    comments: List[str] = []
    header: Optional[List[str]] = None
    records: List[Record] = []

    with _open_text(path) as fh:
        for lineno, line in enumerate(fh, 1):
            if line.startswith(COMMENT_PREFIX):
                comments.append(line.rstrip("\r\n"))
            elif line.startswith(HEADER_PREFIX):
                header = line.rstrip("\r\n")[1:].split("\t")
            elif line.strip():
                if header is None:
                    raise RecordParseError(f"{path}:{lineno}: data line before header line")
                try:
                    record = Record.from_line(line)
                except RecordParseError as e:
                    raise RecordParseError(f"{path}:{lineno}: {e}") from e
                n_samples = len(header) - FIXED_COLUMNS
                if len(record.samples) != n_samples:
                    raise RecordParseError(
                        f"{path}:{lineno}: {len(record.samples)} sample column(s), "
                        f"header defines {n_samples}"
                    )
                records.append(record)

    if header is None:
        raise RecordParseError(f"No header line found in {path}")

    return RecordStream(comments=comments, header=header, records=records)


def write_vcf(stream: RecordStream, path: Union[str, Path]) -> int:
    """
    Write a RecordStream to a plain-text variant file.

    Args:
        stream: Stream to write; records may be lazy
        path: Output path

    Returns:
        Number of records written
    """
    n = 0
    with open(path, "w") as out:
        for comment in stream.comments:
            out.write(comment + "\n")
        out.write(HEADER_PREFIX + "\t".join(stream.header) + "\n")
        for record in stream.records:
            out.write(record.to_line() + "\n")
            n += 1
    return n
