"""
Alignment Reconstruction from CIGAR Strings

Turns a CIGAR string into two equal-length tracks, one for the reference and
one for the query, in either of two modes:

Pseudo mode (no sequence data):
    "2S3M1I2M1D"  ->  reference  "..MMM-MMD"
                      query      "SSMMMIMM-"

Literal mode (actual bases, sliced by 1-based cursors):
    cigar "2M1I2M", reference "ACGT", query "ACXGT", start 1
                  ->  reference  "AC-GT"
                      query      "ACXGT"

Track symbols:
    '-'  gap (the other track consumed a base, or padding)
    '.'  clip placeholder (soft/hard clip on the reference, hard clip on both)
    ' '  reference flank not described by the CIGAR (literal, untruncated)

Cursor rules (literal mode):
    The reference cursor starts at the 1-based leftmost mapping position
    (SAM POS) and the query cursor at 1. A unit of length n advances each
    cursor by n only if its operation consumes that sequence.
"""

import operator
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from .cigar_ops import (
    AlignmentLengthMismatchError,
    CigarOperation,
    CigarUnit,
    OutOfRangeStartError,
    SequenceTooShortError,
    parse_cigar_units,
)


# Pseudo-mode symbols per operation: (reference symbol, query symbol)
PSEUDO_SYMBOLS: Dict[CigarOperation, Tuple[str, str]] = {
    CigarOperation.ALIGNMENT_MATCH: ("M", "M"),
    CigarOperation.SEQUENCE_MATCH: ("=", "="),
    CigarOperation.SEQUENCE_MISMATCH: ("X", "X"),
    CigarOperation.INSERTION: ("-", "I"),
    CigarOperation.DELETION: ("D", "-"),
    CigarOperation.SKIPPED_REGION: ("N", "-"),
    CigarOperation.SOFT_CLIP: (".", "S"),
    CigarOperation.HARD_CLIP: (".", "."),
    CigarOperation.PADDING: ("-", "-"),
}

# Literal-mode fill symbols for tracks the operation does not consume.
# None means the track is sliced from the sequence instead.
LITERAL_FILL: Dict[CigarOperation, Tuple[Optional[str], Optional[str]]] = {
    CigarOperation.ALIGNMENT_MATCH: (None, None),
    CigarOperation.SEQUENCE_MATCH: (None, None),
    CigarOperation.SEQUENCE_MISMATCH: (None, None),
    CigarOperation.INSERTION: ("-", None),
    CigarOperation.DELETION: (None, "-"),
    CigarOperation.SKIPPED_REGION: (None, "-"),
    CigarOperation.SOFT_CLIP: (".", None),
    CigarOperation.HARD_CLIP: (".", "."),
    CigarOperation.PADDING: (".", "."),
}

FLANK_SYMBOL = " "


@dataclass(frozen=True)
class AlignmentResult:
    """Reference and query tracks of a reconstructed alignment."""
    reference_track: str
    query_track: str

    def __iter__(self) -> Iterator[str]:
        yield self.reference_track
        yield self.query_track

    def __len__(self) -> int:
        return len(self.reference_track)

    def as_tuple(self) -> Tuple[str, str]:
        return (self.reference_track, self.query_track)


# ============================================================================
# Operation interpreter
# ============================================================================

def interpret_pseudo(unit: CigarUnit) -> Tuple[str, str]:
    """
    Symbolic fragments for one CIGAR unit.

    Examples:
        >>> interpret_pseudo(CigarUnit(3, CigarOperation.INSERTION))
        ('---', 'III')
    """
    ref_symbol, query_symbol = PSEUDO_SYMBOLS[unit.operation]
    return ref_symbol * unit.length, query_symbol * unit.length


def _slice(
    sequence: str,
    position: int,
    unit: CigarUnit,
    unit_index: int,
    sequence_name: str,
) -> str:
    # position is 1-based; the unit needs bases position .. position+n-1
    end = position + unit.length - 1
    if end > len(sequence):
        raise SequenceTooShortError(
            unit_index, unit.operation, sequence_name, end, len(sequence)
        )
    return sequence[position - 1:end]


def interpret_literal(
    unit: CigarUnit,
    reference: str,
    query: str,
    reference_position: int,
    query_position: int,
    unit_index: int = 0,
) -> Tuple[str, str, int, int]:
    """
    Literal fragments for one CIGAR unit and the advanced cursors.

    Args:
        unit: CIGAR unit to interpret
        reference: Full reference sequence
        query: Full query sequence (SAM SEQ, soft clips included)
        reference_position: 1-based reference cursor
        query_position: 1-based query cursor
        unit_index: Index of the unit in its CIGAR string, for error reports

    Returns:
        Tuple (reference_fragment, query_fragment,
               next_reference_position, next_query_position)

    Raises:
        SequenceTooShortError: If the unit runs past the end of a sequence
    """
    n = unit.length
    operation = unit.operation
    ref_fill, query_fill = LITERAL_FILL[operation]

    if operation.consumes_reference:
        ref_fragment = _slice(reference, reference_position, unit, unit_index, "reference")
        reference_position += n
    else:
        ref_fragment = ref_fill * n

    if operation.consumes_query:
        query_fragment = _slice(query, query_position, unit, unit_index, "query")
        query_position += n
    else:
        query_fragment = query_fill * n

    return ref_fragment, query_fragment, reference_position, query_position


# ============================================================================
# Reconstructor
# ============================================================================

def _check_lengths(reference_track: str, query_track: str) -> AlignmentResult:
    if len(reference_track) != len(query_track):
        raise AlignmentLengthMismatchError(
            f"Reference track length {len(reference_track)} != "
            f"query track length {len(query_track)}"
        )
    return AlignmentResult(reference_track, query_track)


def reconstruct_pseudo(cigar: str) -> AlignmentResult:
    """
    Reconstruct a symbolic alignment from a CIGAR string alone.

    Args:
        cigar: CIGAR string

    Returns:
        AlignmentResult with operation letters and gap/clip placeholders

    Raises:
        InvalidFormatError: If the CIGAR string is malformed
        EmptyCigarError: If no units were found

    Examples:
        >>> reconstruct_pseudo("6M").as_tuple()
        ('MMMMMM', 'MMMMMM')
        >>> reconstruct_pseudo("2S3M1D").as_tuple()
        ('..MMMD', 'SSMMM-')
    """
    units = parse_cigar_units(cigar)

    ref_parts: List[str] = []
    query_parts: List[str] = []
    for unit in units:
        ref_fragment, query_fragment = interpret_pseudo(unit)
        ref_parts.append(ref_fragment)
        query_parts.append(query_fragment)

    return _check_lengths("".join(ref_parts), "".join(query_parts))


def reconstruct_literal(
    cigar: str,
    reference: str,
    query: str,
    reference_start_position: int,
    truncate_reference: bool = True,
) -> AlignmentResult:
    """
    Reconstruct the base-level alignment of `query` against `reference`.

    Args:
        cigar: CIGAR string
        reference: Reference sequence
        query: Query sequence as stored in SAM SEQ (soft clips included,
            hard clips absent)
        reference_start_position: 1-based leftmost reference position of
            the first reference-consuming unit (SAM POS)
        truncate_reference: If False, add the reference bases before the
            start and after the last consumed position, padded with blanks
            on the query track

    Returns:
        AlignmentResult with equal-length reference and query tracks

    Raises:
        InvalidFormatError: If the CIGAR string is malformed
        EmptyCigarError: If no units were found
        OutOfRangeStartError: If the start lies outside [1, len(reference)]
        SequenceTooShortError: If a unit runs past the end of a sequence
        TypeError: If the start is not an integer (bool included)

    Examples:
        >>> reconstruct_literal("3M", "ACGTTT", "ACG", 1).as_tuple()
        ('ACG', 'ACG')
        >>> reconstruct_literal("2M", "AAACGTT", "CG", 3, truncate_reference=False).as_tuple()
        ('AAACGTT', '  CG   ')
    """
    if isinstance(reference_start_position, bool):
        raise TypeError("reference_start_position must be an integer, got bool")
    # Accepts numpy and other integer types that implement __index__
    reference_start_position = operator.index(reference_start_position)

    units = parse_cigar_units(cigar)
    reference = reference.strip()
    query = query.strip()

    if reference_start_position < 1 or reference_start_position > len(reference):
        raise OutOfRangeStartError(
            f"reference_start_position ({reference_start_position}) is outside "
            f"[1, {len(reference)}]"
        )

    ref_parts: List[str] = []
    query_parts: List[str] = []
    ref_pos, query_pos = reference_start_position, 1
    for index, unit in enumerate(units):
        ref_fragment, query_fragment, ref_pos, query_pos = interpret_literal(
            unit, reference, query, ref_pos, query_pos, unit_index=index
        )
        ref_parts.append(ref_fragment)
        query_parts.append(query_fragment)

    if not truncate_reference:
        prefix = reference[:reference_start_position - 1]
        suffix = reference[ref_pos - 1:]
        ref_parts.insert(0, prefix)
        query_parts.insert(0, FLANK_SYMBOL * len(prefix))
        ref_parts.append(suffix)
        query_parts.append(FLANK_SYMBOL * len(suffix))

    return _check_lengths("".join(ref_parts), "".join(query_parts))


# ============================================================================
# Tuple-returning API
# ============================================================================

def parse_cigar_pseudo(cigar: str) -> Tuple[str, str]:
    """Pseudo-alignment of `cigar` as a (reference, query) tuple."""
    return reconstruct_pseudo(cigar).as_tuple()


def parse_cigar_literal(
    cigar: str,
    reference: str,
    query: str,
    reference_start_position: int,
    truncate_reference: bool = True,
) -> Tuple[str, str]:
    """Literal alignment of `query` on `reference` as a (reference, query) tuple."""
    return reconstruct_literal(
        cigar, reference, query, reference_start_position, truncate_reference
    ).as_tuple()
