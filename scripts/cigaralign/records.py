"""
Alignment Record Sources

Supplies (CIGAR, reference, query, start) inputs for reconstruction from
standard files:

- Reference FASTA (plain or .gz), read with Biopython
- SAM/BAM/CRAM alignments, read with pysam

Coordinates:
    pysam reports reference_start as 0-based; AlignmentRecord stores the
    1-based SAM POS expected by reconstruct_literal.
"""

import gzip
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

import pysam
from Bio import SeqIO

logger = logging.getLogger(__name__)


NUCLEOTIDE_ALPHABETS: Dict[str, frozenset] = {
    "dna": frozenset("ACGTN"),
    "rna": frozenset("ACGUN"),
    "iupac": frozenset("ACGTURYSWKMBDHVN"),
}


@dataclass
class AlignmentRecord:
    """One alignment to reconstruct."""
    read_name: str
    reference_name: str
    cigar: str
    reference: str
    query: str
    reference_start_position: int  # 1-based


def check_nucleotides(sequence: str, alphabet: str = "dna") -> bool:
    """
    Check that a sequence only uses letters of a nucleotide alphabet.

    Args:
        sequence: Sequence to check (case-insensitive)
        alphabet: One of 'dna', 'rna', 'iupac'

    Returns:
        True if every character belongs to the alphabet

    Raises:
        ValueError: If the alphabet name is unknown

    Examples:
        >>> check_nucleotides("acgtn")
        True
        >>> check_nucleotides("ACGU")
        False
        >>> check_nucleotides("ACGU", alphabet="rna")
        True
    """
    try:
        allowed = NUCLEOTIDE_ALPHABETS[alphabet]
    except KeyError:
        raise ValueError(
            f"Unknown alphabet '{alphabet}', expected one of "
            f"{sorted(NUCLEOTIDE_ALPHABETS)}"
        ) from None
    return set(sequence.upper()) <= allowed


def load_reference_sequences(fasta_path: str) -> Dict[str, str]:
    """
    Load all sequences of a FASTA file.

    Args:
        fasta_path: Path to FASTA file (supports .gz)

    Returns:
        Dictionary mapping sequence ID to upper-cased sequence

    Raises:
        FileNotFoundError: If the file does not exist
    """
    opener = gzip.open if str(fasta_path).endswith('.gz') else open

    references: Dict[str, str] = {}
    with opener(fasta_path, 'rt') as handle:
        for record in SeqIO.parse(handle, "fasta"):
            references[record.id] = str(record.seq).upper()

    logger.info(f"Loaded {len(references)} reference sequence(s) from {fasta_path}")
    return references


def _open_alignment_file(
    alignment_path: str,
    reference_filename: Optional[str] = None,
) -> pysam.AlignmentFile:
    path = str(alignment_path)
    if path.endswith('.bam'):
        return pysam.AlignmentFile(path, "rb")
    if path.endswith('.cram'):
        # CRAM decoding needs the reference the file was compressed against
        if reference_filename is None:
            raise ValueError(f"{path}: CRAM input requires a reference FASTA")
        return pysam.AlignmentFile(path, "rc", reference_filename=str(reference_filename))
    return pysam.AlignmentFile(path, "r")


def iter_alignment_records(
    alignment_path: str,
    references: Optional[Dict[str, str]] = None,
    skip_secondary: bool = True,
    skip_supplementary: bool = False,
    min_mapq: int = 0,
    reference_filename: Optional[str] = None,
) -> Iterator[AlignmentRecord]:
    """
    Yield reconstructable alignments from a SAM/BAM/CRAM file.

    Args:
        alignment_path: Path to SAM, BAM or CRAM file
        references: Reference sequences by name. If None, records carry an
            empty reference (enough for pseudo mode)
        skip_secondary: Skip secondary alignments (flag 0x100)
        skip_supplementary: Skip supplementary alignments (flag 0x800)
        min_mapq: Minimum mapping quality
        reference_filename: FASTA used to decode CRAM input (required for
            .cram, ignored otherwise)

    Yields:
        AlignmentRecord objects in file order

    Skipped:
        Unmapped reads, reads without CIGAR or stored SEQ, reads below
        min_mapq and reads on references missing from `references`.
    """
    skipped: Counter = Counter()
    yielded = 0

    with _open_alignment_file(alignment_path, reference_filename) as alignments:
        for read in alignments:
            if read.is_unmapped:
                skipped['unmapped'] += 1
                continue
            if skip_secondary and read.is_secondary:
                skipped['secondary'] += 1
                continue
            if skip_supplementary and read.is_supplementary:
                skipped['supplementary'] += 1
                continue
            if read.mapping_quality < min_mapq:
                skipped['low_mapq'] += 1
                continue
            if not read.cigarstring:
                skipped['no_cigar'] += 1
                continue
            if read.query_sequence is None:
                skipped['no_sequence'] += 1
                continue

            if references is None:
                reference = ""
            elif read.reference_name in references:
                reference = references[read.reference_name]
            else:
                skipped['missing_reference'] += 1
                logger.debug(
                    f"{read.query_name}: reference {read.reference_name} not in FASTA"
                )
                continue

            yielded += 1
            yield AlignmentRecord(
                read_name=read.query_name,
                reference_name=read.reference_name,
                cigar=read.cigarstring,
                reference=reference,
                query=read.query_sequence,
                reference_start_position=read.reference_start + 1,
            )

    logger.info(f"{alignment_path}: {yielded} record(s) selected")
    if skipped:
        details = ", ".join(f"{reason}={count}" for reason, count in sorted(skipped.items()))
        if skipped.get('missing_reference'):
            logger.warning(f"{alignment_path}: skipped records ({details})")
        else:
            logger.info(f"{alignment_path}: skipped records ({details})")
