"""
Batch Reconstruction of Alignment Records

Runs the CIGAR reconstructor over many AlignmentRecord objects with a fixed
pool of worker processes and collects one ReconstructionResult per record.

Execution model:
    - Records are split into chunks of `chunk_size` and submitted in input
      order to a ProcessPoolExecutor with `processes` workers
    - Chunks complete out of order (as_completed); results are put back in
      input order before returning
    - processes == 1 runs inline without a pool

Per-record input errors (malformed CIGAR, short sequences, bad start, bad
alphabet) become error rows; AlignmentLengthMismatchError is a defect in
the reconstructor and is raised.
"""

import logging
from collections import Counter
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .alignment import reconstruct_literal, reconstruct_pseudo
from .cigar_ops import AlignmentLengthMismatchError, CigarError
from .records import AlignmentRecord, check_nucleotides

logger = logging.getLogger(__name__)

MODES = ("literal", "pseudo")

RESULT_COLUMNS = [
    "read_name",
    "reference_name",
    "reference_start_position",
    "cigar",
    "reference_track",
    "query_track",
    "status",
    "error_type",
    "error_message",
]


@dataclass
class ReconstructionResult:
    """Outcome of reconstructing one AlignmentRecord."""
    read_name: str
    reference_name: str
    reference_start_position: int
    cigar: str
    reference_track: Optional[str] = None
    query_track: Optional[str] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_type is None

    @property
    def status(self) -> str:
        return "OK" if self.ok else "FAILED"


def reconstruct_record(
    record: AlignmentRecord,
    mode: str = "literal",
    truncate_reference: bool = True,
    alphabet: Optional[str] = None,
) -> ReconstructionResult:
    """
    Reconstruct a single record, reporting input errors in the result.

    Args:
        record: AlignmentRecord to reconstruct
        mode: 'literal' or 'pseudo'
        truncate_reference: Drop reference flanks (literal mode only)
        alphabet: If set, reject queries with letters outside this
            nucleotide alphabet ('dna', 'rna', 'iupac')

    Returns:
        ReconstructionResult with tracks, or with error_type/error_message

    Raises:
        ValueError: If mode is unknown
        AlignmentLengthMismatchError: On an internal reconstruction defect
    """
    if mode not in MODES:
        raise ValueError(f"Unknown mode '{mode}', expected one of {MODES}")

    result = ReconstructionResult(
        read_name=record.read_name,
        reference_name=record.reference_name,
        reference_start_position=record.reference_start_position,
        cigar=record.cigar,
    )

    if alphabet and mode == "literal" and not check_nucleotides(record.query, alphabet):
        result.error_type = "InvalidAlphabet"
        result.error_message = f"Query contains letters outside the {alphabet} alphabet"
        return result

    try:
        if mode == "pseudo":
            alignment = reconstruct_pseudo(record.cigar)
        else:
            alignment = reconstruct_literal(
                record.cigar,
                record.reference,
                record.query,
                record.reference_start_position,
                truncate_reference=truncate_reference,
            )
    except AlignmentLengthMismatchError:
        raise
    except CigarError as e:
        result.error_type = type(e).__name__
        result.error_message = str(e)
        return result

    result.reference_track = alignment.reference_track
    result.query_track = alignment.query_track
    return result


def _reconstruct_chunk(
    start_index: int,
    records: List[AlignmentRecord],
    mode: str,
    truncate_reference: bool,
    alphabet: Optional[str],
) -> Tuple[int, List[ReconstructionResult]]:
    results = [
        reconstruct_record(record, mode, truncate_reference, alphabet)
        for record in records
    ]
    return start_index, results


def _chunked(
    records: Sequence[AlignmentRecord],
    chunk_size: int,
) -> Iterable[Tuple[int, List[AlignmentRecord]]]:
    for start in range(0, len(records), chunk_size):
        yield start, list(records[start:start + chunk_size])


def reconstruct_batch(
    records: Iterable[AlignmentRecord],
    mode: str = "literal",
    truncate_reference: bool = True,
    alphabet: Optional[str] = None,
    processes: int = 1,
    chunk_size: int = 500,
) -> List[ReconstructionResult]:
    """
    Reconstruct many records, optionally in parallel.

    Args:
        records: AlignmentRecord objects
        mode: 'literal' or 'pseudo'
        truncate_reference: Drop reference flanks (literal mode only)
        alphabet: Optional nucleotide alphabet check for queries
        processes: Number of worker processes (1 = run inline)
        chunk_size: Records per submitted task

    Returns:
        One ReconstructionResult per record, in input order

    Raises:
        ValueError: If mode, processes or chunk_size is invalid
    """
    if mode not in MODES:
        raise ValueError(f"Unknown mode '{mode}', expected one of {MODES}")
    if processes < 1:
        raise ValueError(f"processes must be >= 1, got {processes}")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    records = list(records)
    chunks = list(_chunked(records, chunk_size))
    logger.info(
        f"Reconstructing {len(records)} record(s) in {len(chunks)} chunk(s) "
        f"(mode: {mode}, processes: {processes})"
    )

    by_start: Dict[int, List[ReconstructionResult]] = {}

    if processes == 1 or len(chunks) <= 1:
        for start, chunk in chunks:
            by_start[start] = _reconstruct_chunk(
                start, chunk, mode, truncate_reference, alphabet
            )[1]
    else:
        with ProcessPoolExecutor(max_workers=processes) as executor:
            future_to_start = {
                executor.submit(
                    _reconstruct_chunk, start, chunk, mode, truncate_reference, alphabet
                ): start
                for start, chunk in chunks
            }

            completed = 0
            for future in as_completed(future_to_start):
                start, chunk_results = future.result()
                by_start[start] = chunk_results
                completed += 1
                logger.debug(f"Progress: {completed}/{len(chunks)} chunks")

    results: List[ReconstructionResult] = []
    for start in sorted(by_start):
        results.extend(by_start[start])

    for result in results:
        if not result.ok:
            logger.warning(
                f"{result.read_name} ({result.cigar}): "
                f"{result.error_type}: {result.error_message}"
            )

    return results


def results_to_dataframe(results: Iterable[ReconstructionResult]) -> pd.DataFrame:
    """
    Tabulate reconstruction results.

    Returns:
        DataFrame with RESULT_COLUMNS, one row per result
    """
    rows = [
        {
            "read_name": r.read_name,
            "reference_name": r.reference_name,
            "reference_start_position": r.reference_start_position,
            "cigar": r.cigar,
            "reference_track": r.reference_track,
            "query_track": r.query_track,
            "status": r.status,
            "error_type": r.error_type,
            "error_message": r.error_message,
        }
        for r in results
    ]
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def summarize_results(results: Iterable[ReconstructionResult]) -> Dict[str, int]:
    """
    Count successes and failures per error type.

    Examples:
        >>> summarize_results([])
        {'total': 0, 'ok': 0, 'failed': 0}
    """
    total = 0
    errors: Counter = Counter()
    for result in results:
        total += 1
        if not result.ok:
            errors[result.error_type] += 1

    failed = sum(errors.values())
    summary = {"total": total, "ok": total - failed, "failed": failed}
    for error_type, count in sorted(errors.items()):
        summary[error_type] = count
    return summary
