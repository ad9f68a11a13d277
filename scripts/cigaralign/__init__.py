"""
cigaralign - CIGAR Alignment Reconstruction

A collection of functions for turning SAM/BAM CIGAR strings into per-base
alignments:
- CIGAR grammar validation and tokenization
- Pseudo (symbolic) and literal (base-level) alignment reconstruction
- SAM/BAM record extraction and batch reconstruction
"""

from .cigar_ops import (
    CigarOperation,
    CigarUnit,
    CigarError,
    InvalidFormatError,
    EmptyCigarError,
    OutOfRangeStartError,
    SequenceTooShortError,
    AlignmentLengthMismatchError,
    validate_cigar,
    is_valid_cigar,
    tokenize_cigar,
    parse_cigar_units,
    reference_length,
    query_length,
    format_cigar,
)

from .alignment import (
    AlignmentResult,
    reconstruct_pseudo,
    reconstruct_literal,
    parse_cigar_pseudo,
    parse_cigar_literal,
)

__version__ = "1.0.0"

__all__ = [
    # CIGAR operations
    "CigarOperation",
    "CigarUnit",
    "validate_cigar",
    "is_valid_cigar",
    "tokenize_cigar",
    "parse_cigar_units",
    "reference_length",
    "query_length",
    "format_cigar",
    # Errors
    "CigarError",
    "InvalidFormatError",
    "EmptyCigarError",
    "OutOfRangeStartError",
    "SequenceTooShortError",
    "AlignmentLengthMismatchError",
    # Alignment
    "AlignmentResult",
    "reconstruct_pseudo",
    "reconstruct_literal",
    "parse_cigar_pseudo",
    "parse_cigar_literal",
]
