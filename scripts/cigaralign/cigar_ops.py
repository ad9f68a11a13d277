"""
CIGAR String Grammar, Operations and Tokenization

A CIGAR string describes how a query sequence aligns against a reference as a
run of <length><operation> units, e.g. "5S20M2I10M3D15M".

Operations (SAM v1 specification):
    Code  Name                 Consumes reference  Consumes query
    M     alignment match      yes                 yes
    I     insertion            no                  yes
    D     deletion             yes                 no
    N     skipped region       yes                 no
    S     soft clip            no                  yes
    H     hard clip            no                  no
    P     padding              no                  no
    =     sequence match       yes                 yes
    X     sequence mismatch    yes                 yes

Grammar accepted by validate_cigar (whole string):
    [nH] [nS] (n{M,I,D,N,P,=,X})* [nS] [nH]

Clips may only appear at the ends, hard clips outside soft clips.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List


# Grammar and unit patterns, compiled once
CIGAR_CHARACTERS = frozenset("MIDNSHP=X0123456789")
CIGAR_GRAMMAR = re.compile(
    r"^([0-9]+H)?([0-9]+S)?([0-9]+[MIDNP=X])*([0-9]+S)?([0-9]+H)?$"
)
CIGAR_UNIT_PATTERN = re.compile(r"(\d+)([MIDNSHP=X])")


# ============================================================================
# Errors
# ============================================================================

class CigarError(Exception):
    """Base class for all CIGAR interpretation errors."""


class InvalidFormatError(CigarError, ValueError):
    """CIGAR string does not conform to the CIGAR grammar."""


class EmptyCigarError(CigarError, ValueError):
    """Tokenization produced no units."""


class OutOfRangeStartError(CigarError, ValueError):
    """Reference start position lies outside [1, len(reference)]."""


class SequenceTooShortError(CigarError, ValueError):
    """A unit needs more reference or query bases than are available."""

    def __init__(
        self,
        unit_index: int,
        operation: "CigarOperation",
        sequence_name: str,
        required: int,
        available: int,
    ):
        self.unit_index = unit_index
        self.operation = operation
        self.sequence_name = sequence_name
        self.required = required
        self.available = available
        super().__init__(
            f"CIGAR unit {unit_index} ({operation.code}) needs {sequence_name} "
            f"position {required}, but the {sequence_name} has only {available} bases"
        )


class AlignmentLengthMismatchError(CigarError, RuntimeError):
    """Reference and query tracks diverged in length (internal defect)."""


# ============================================================================
# Operations
# ============================================================================

class CigarOperation(Enum):
    """CIGAR operation with its (consumes_reference, consumes_query) profile."""

    ALIGNMENT_MATCH = ("M", True, True)
    INSERTION = ("I", False, True)
    DELETION = ("D", True, False)
    SKIPPED_REGION = ("N", True, False)
    SOFT_CLIP = ("S", False, True)
    HARD_CLIP = ("H", False, False)
    PADDING = ("P", False, False)
    SEQUENCE_MATCH = ("=", True, True)
    SEQUENCE_MISMATCH = ("X", True, True)

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def consumes_reference(self) -> bool:
        return self.value[1]

    @property
    def consumes_query(self) -> bool:
        return self.value[2]

    @classmethod
    def from_code(cls, code: str) -> "CigarOperation":
        """
        Look up an operation by its single-letter code.

        Raises:
            InvalidFormatError: If the code is not a CIGAR operation
        """
        try:
            return _OPERATIONS_BY_CODE[code]
        except KeyError:
            raise InvalidFormatError(f"Unknown CIGAR operation: {code!r}") from None


_OPERATIONS_BY_CODE = {op.code: op for op in CigarOperation}


@dataclass(frozen=True)
class CigarUnit:
    """One <length><operation> unit of a CIGAR string."""
    length: int
    operation: CigarOperation

    def __post_init__(self):
        if self.length < 1:
            raise InvalidFormatError(
                f"CIGAR unit length must be >= 1, got {self.length}"
            )

    def __str__(self) -> str:
        return f"{self.length}{self.operation.code}"


# ============================================================================
# Validation and tokenization
# ============================================================================

def validate_cigar(cigar: str) -> str:
    """
    Check a CIGAR string against the anchored CIGAR grammar.

    Surrounding whitespace is ignored.

    Args:
        cigar: Candidate CIGAR string

    Returns:
        The stripped CIGAR string

    Raises:
        InvalidFormatError: If the string is empty, contains characters
            outside [0-9MIDNSHP=X], or violates the unit/clip ordering

    Examples:
        >>> validate_cigar("5S20M2I10M")
        '5S20M2I10M'
        >>> validate_cigar("5M3Z")
        Traceback (most recent call last):
        ...
        cigaralign.cigar_ops.InvalidFormatError: CIGAR string contains invalid characters: 'Z'
    """
    if not isinstance(cigar, str):
        raise InvalidFormatError(
            f"CIGAR string must be str, got {type(cigar).__name__}"
        )

    cigar = cigar.strip()
    if not cigar:
        raise InvalidFormatError("CIGAR string is empty")

    bad_chars = sorted(set(cigar) - CIGAR_CHARACTERS)
    if bad_chars:
        raise InvalidFormatError(
            f"CIGAR string contains invalid characters: {''.join(bad_chars)!r}"
        )

    if CIGAR_GRAMMAR.match(cigar) is None:
        raise InvalidFormatError(f"Malformed CIGAR string: {cigar}")

    return cigar


def is_valid_cigar(cigar: str) -> bool:
    """Return True if `cigar` passes validate_cigar."""
    try:
        validate_cigar(cigar)
    except InvalidFormatError:
        return False
    return True


def tokenize_cigar(cigar: str) -> List[CigarUnit]:
    """
    Split a validated CIGAR string into CigarUnit objects, left to right.

    Args:
        cigar: CIGAR string already accepted by validate_cigar

    Returns:
        List of CigarUnit in alignment order

    Raises:
        EmptyCigarError: If no units were found

    Examples:
        >>> [str(u) for u in tokenize_cigar("2M1I2M")]
        ['2M', '1I', '2M']
    """
    units = [
        CigarUnit(int(m.group(1)), CigarOperation.from_code(m.group(2)))
        for m in CIGAR_UNIT_PATTERN.finditer(cigar)
    ]
    if not units:
        raise EmptyCigarError(f"No CIGAR units found in {cigar!r}")
    return units


def parse_cigar_units(cigar: str) -> List[CigarUnit]:
    """Validate and tokenize a CIGAR string in one step."""
    return tokenize_cigar(validate_cigar(cigar))


# ============================================================================
# Unit helpers
# ============================================================================

def reference_length(units: Iterable[CigarUnit]) -> int:
    """
    Number of reference bases covered by the units (M, D, N, =, X).

    Examples:
        >>> reference_length(parse_cigar_units("3S5M2D4M1I"))
        11
    """
    return sum(u.length for u in units if u.operation.consumes_reference)


def query_length(units: Iterable[CigarUnit]) -> int:
    """
    Number of stored query bases consumed by the units (M, I, S, =, X).

    Examples:
        >>> query_length(parse_cigar_units("3S5M2D4M1I"))
        13
    """
    return sum(u.length for u in units if u.operation.consumes_query)


def format_cigar(units: Iterable[CigarUnit], merge: bool = False) -> str:
    """
    Render units back into a CIGAR string.

    Args:
        units: CigarUnit objects in alignment order
        merge: Collapse adjacent units with the same operation

    Returns:
        CIGAR string

    Examples:
        >>> format_cigar([CigarUnit(2, CigarOperation.ALIGNMENT_MATCH),
        ...               CigarUnit(3, CigarOperation.ALIGNMENT_MATCH)], merge=True)
        '5M'
    """
    merged: List[CigarUnit] = []
    for unit in units:
        if merge and merged and merged[-1].operation is unit.operation:
            merged[-1] = CigarUnit(merged[-1].length + unit.length, unit.operation)
        else:
            merged.append(unit)
    return "".join(str(u) for u in merged)
