#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Batch CIGAR Alignment Reconstruction
====================================

Purpose:
    Reconstruct the per-base alignment of every selected read in a SAM/BAM
    file from its CIGAR string, reference sequence and stored query, and
    write one row per read to a tab-separated table.

Required Environment:
    - pysam (SAM/BAM reading)
    - biopython (FASTA reading)
    - pandas (output table)
    - pyyaml (optional --config file)

Input:
    - Alignments: SAM/BAM/CRAM file (--alignments or input.alignments)
    - Reference:  FASTA with the sequences named in the alignment header
                  (--reference or input.reference; not needed with --mode pseudo)

Output:
    - {output}            : TSV with read_name, reference_name,
                            reference_start_position, cigar, reference_track,
                            query_track, status, error_type, error_message
    - {output}.summary.txt: Counts of reconstructed and failed records
    - {output}.log        : Run log

Adjustable Parameters:
    --mode: literal (default) or pseudo
    --no-truncate: keep reference flanks outside the aligned region
    --jobs: number of worker processes (default: from config, else 4)
    --alphabet: reject queries outside dna/rna/iupac letters

Priority of settings: command line > config file > environment variables
(CIGAR_ALIGNMENTS, CIGAR_REFERENCE, CIGAR_OUTPUT) > defaults.

Usage:
    python 2_reconstruct_alignments_batch.py --alignments sample.bam --reference ref.fasta -o out.tsv
    python 2_reconstruct_alignments_batch.py --config cigar.yaml --jobs 8
"""

import argparse
import logging
import os
import sys
from datetime import datetime

_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.dirname(_SCRIPT_DIR))

from cigaralign.batch import (  # noqa: E402
    reconstruct_batch,
    results_to_dataframe,
    summarize_results,
)
from cigaralign.records import (  # noqa: E402
    check_nucleotides,
    iter_alignment_records,
    load_reference_sequences,
)
from utils.config_parser import (  # noqa: E402
    DEFAULT_CONFIG,
    get_nested,
    load_config,
    merge_with_defaults,
    validate_config,
)

logger = logging.getLogger(__name__)

# ========== PATH CONFIGURATION ==========
ALIGNMENTS = os.environ.get("CIGAR_ALIGNMENTS")
REFERENCE = os.environ.get("CIGAR_REFERENCE")
OUTPUT = os.environ.get("CIGAR_OUTPUT")
# ========================================


def setup_logging(log_file, verbose=False):
    """Log to the console and to `log_file`."""
    handlers = [logging.StreamHandler()]
    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def build_config(args):
    """
    Combine config file, environment and command line into one config dict.
    """
    file_config = load_config(args.config) if args.config else {}
    config = merge_with_defaults(file_config, DEFAULT_CONFIG)

    # Environment variables fill only what the config file left unset
    env_defaults = [
        ("input", "alignments", ALIGNMENTS),
        ("input", "reference", REFERENCE),
        ("output", "path", OUTPUT),
    ]
    for section, key, value in env_defaults:
        if value and get_nested(file_config, f"{section}.{key}") in (None, ""):
            config[section][key] = value

    overrides = [
        ("input", "alignments", args.alignments),
        ("input", "reference", args.reference),
        ("output", "path", args.output),
        ("reconstruction", "mode", args.mode),
        ("reconstruction", "alphabet", args.alphabet),
        ("filters", "min_mapq", args.min_mapq),
        ("resources", "processes", args.jobs),
        ("resources", "chunk_size", args.chunk_size),
    ]
    for section, key, value in overrides:
        if value is not None:
            config[section][key] = value

    if args.no_truncate:
        config["reconstruction"]["truncate_reference"] = False
    if args.include_secondary:
        config["filters"]["skip_secondary"] = False

    return config


def write_summary(summary, summary_file, config):
    """Write run summary as plain text."""
    with open(summary_file, "w") as f:
        f.write(f"# CIGAR reconstruction summary ({datetime.now():%Y-%m-%d %H:%M:%S})\n")
        f.write(f"alignments\t{get_nested(config, 'input.alignments')}\n")
        f.write(f"reference\t{get_nested(config, 'input.reference')}\n")
        f.write(f"mode\t{get_nested(config, 'reconstruction.mode')}\n")
        for key, value in summary.items():
            f.write(f"{key}\t{value}\n")


def main():
    parser = argparse.ArgumentParser(
        description="Reconstruct per-base alignments from SAM/BAM CIGAR strings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--alignments", help="SAM/BAM/CRAM input")
    parser.add_argument("--reference", help="Reference FASTA")
    parser.add_argument("-o", "--output", help="Output TSV path")
    parser.add_argument("--mode", choices=["literal", "pseudo"], help="Reconstruction mode")
    parser.add_argument("--no-truncate", action="store_true",
                        help="Keep reference flanks outside the aligned region")
    parser.add_argument("--alphabet", choices=["dna", "rna", "iupac"],
                        help="Nucleotide alphabet check for queries and references")
    parser.add_argument("--min-mapq", type=int, help="Minimum mapping quality")
    parser.add_argument("--include-secondary", action="store_true",
                        help="Also reconstruct secondary alignments")
    parser.add_argument("-j", "--jobs", type=int, help="Worker processes")
    parser.add_argument("--chunk-size", type=int, help="Records per worker task")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    try:
        config = build_config(args)
    except FileNotFoundError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    output_path = get_nested(config, "output.path")
    setup_logging(f"{output_path}.log", verbose=args.verbose)

    is_valid, errors = validate_config(config)
    if not is_valid:
        for error in errors:
            logger.error(error)
        sys.exit(1)

    mode = get_nested(config, "reconstruction.mode")
    alphabet = get_nested(config, "reconstruction.alphabet")

    logger.info("=" * 60)
    logger.info("Batch CIGAR Alignment Reconstruction")
    logger.info(f"Alignments: {get_nested(config, 'input.alignments')}")
    logger.info(f"Reference: {get_nested(config, 'input.reference')}")
    logger.info(f"Mode: {mode}, truncate reference: "
                f"{get_nested(config, 'reconstruction.truncate_reference')}")
    logger.info(f"Output: {output_path}")
    logger.info("=" * 60)

    references = None
    if mode == "literal":
        references = load_reference_sequences(get_nested(config, "input.reference"))
        if alphabet:
            for name, sequence in references.items():
                if not check_nucleotides(sequence, alphabet):
                    logger.error(f"Reference {name} contains letters outside the {alphabet} alphabet")
                    sys.exit(1)

    records = list(iter_alignment_records(
        get_nested(config, "input.alignments"),
        references=references,
        skip_secondary=get_nested(config, "filters.skip_secondary"),
        skip_supplementary=get_nested(config, "filters.skip_supplementary"),
        min_mapq=int(get_nested(config, "filters.min_mapq")),
        reference_filename=get_nested(config, "input.reference"),
    ))

    if not records:
        logger.error("No alignment records selected")
        sys.exit(1)

    results = reconstruct_batch(
        records,
        mode=mode,
        truncate_reference=get_nested(config, "reconstruction.truncate_reference"),
        alphabet=alphabet,
        processes=int(get_nested(config, "resources.processes")),
        chunk_size=int(get_nested(config, "resources.chunk_size")),
    )

    df = results_to_dataframe(results)
    df.to_csv(output_path, sep="\t", index=False, na_rep="")
    logger.info(f"Alignment table saved to: {output_path}")

    summary = summarize_results(results)
    summary_file = f"{output_path}.summary.txt"
    write_summary(summary, summary_file, config)
    logger.info(f"Summary saved to: {summary_file}")

    logger.info(f"Reconstructed: {summary['ok']}/{summary['total']} records")
    if summary["failed"]:
        logger.warning(f"Failed: {summary['failed']} records")


if __name__ == "__main__":
    main()
