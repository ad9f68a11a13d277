#!/usr/bin/env python3
"""
Reconstruct a Single Alignment from a CIGAR String

Purpose:
    Print the reference and query tracks described by one CIGAR string.
    Without sequences the alignment is symbolic (pseudo mode); with
    --reference, --query and --start the actual bases are used.

Usage:
    python 1_parse_cigar.py 5S20M2I10M
    python 1_parse_cigar.py 2M1I2M --reference ACGT --query ACXGT --start 1
    python 1_parse_cigar.py 2M --reference AAACGTT --query CG --start 3 --no-truncate

Output:
    Two lines, reference track then query track. Flank blanks are kept, so
    redirect to a file or use --show-ends to see them.
"""

import argparse
import os
import sys

_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(_SCRIPT_DIR))

from cigaralign import CigarError, parse_cigar_literal, parse_cigar_pseudo  # noqa: E402


def main():
    parser = argparse.ArgumentParser(
        description="Reconstruct reference/query alignment tracks from a CIGAR string",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("cigar", help="CIGAR string, e.g. 5S20M2I10M")
    parser.add_argument("--reference", help="Reference sequence (literal mode)")
    parser.add_argument("--query", help="Query sequence as stored in SAM SEQ (literal mode)")
    parser.add_argument("--start", type=int, default=1,
                        help="1-based reference start position, SAM POS (default: 1)")
    parser.add_argument("--no-truncate", action="store_true",
                        help="Include unaligned reference flanks (literal mode)")
    parser.add_argument("--show-ends", action="store_true",
                        help="Mark the end of each track with '|'")
    args = parser.parse_args()

    literal = args.reference is not None or args.query is not None
    if literal and (args.reference is None or args.query is None):
        parser.error("--reference and --query must be given together")

    try:
        if literal:
            ref_track, query_track = parse_cigar_literal(
                args.cigar, args.reference, args.query, args.start,
                truncate_reference=not args.no_truncate,
            )
        else:
            ref_track, query_track = parse_cigar_pseudo(args.cigar)
    except CigarError as e:
        print(f"[ERROR] {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    end = "|" if args.show_ends else ""
    print(f"{ref_track}{end}")
    print(f"{query_track}{end}")


if __name__ == "__main__":
    main()
