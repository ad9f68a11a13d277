"""
Pytest configuration and fixtures for cigaralign tests.
"""

import pytest
import tempfile
from pathlib import Path


# ============================================================================
# Path Fixtures
# ============================================================================

@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def scripts_dir(project_root):
    """Return the scripts directory."""
    return project_root / "scripts"


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# Sequence Fixtures
# ============================================================================

@pytest.fixture
def sample_reference_sequence():
    """Short reference used by the flank examples."""
    return "AAACGTT"


@pytest.fixture
def valid_cigars():
    """CIGAR strings accepted by the grammar."""
    return [
        "6M",
        "3M",
        "2M1I2M",
        "5S20M2I10M3D15M",
        "5H3S10M2I3D1N1P4=2X3S2H",
        "10H100M",
        "3S2S",
        "1H",
        "12=1X12=",
    ]


@pytest.fixture
def invalid_cigars():
    """CIGAR strings rejected by the grammar."""
    return [
        "5M3Z",       # unknown operation
        "3S5M2S3S",   # two trailing soft clips
        "M",          # missing length
        "5M3",        # dangling length
        "2M1H3M",     # hard clip inside the alignment
        "1S1H5M",     # soft clip outside the hard clip
        "3H3H5M",     # two leading hard clips
        "5m",         # lower case
        "5M 3M",      # inner whitespace
        "*",          # SAM "no CIGAR" placeholder
    ]


# ============================================================================
# File Fixtures
# ============================================================================

@pytest.fixture
def reference_fasta(temp_dir):
    """FASTA with one reference, chr1 = AAACGTT (lower case on disk)."""
    fasta_path = temp_dir / "reference.fasta"
    fasta_path.write_text(">chr1 test reference\naaacgtt\n")
    return fasta_path


@pytest.fixture
def sam_file(temp_dir):
    """
    SAM file with one record of each selection case.

    read1: chr1 POS 3, 2M, CG, MAPQ 60      -> selected
    read2: unmapped                          -> skipped
    read3: chr1, secondary                   -> skipped by default
    read4: chr2 (absent from the FASTA)      -> skipped with a reference
    read5: chr1 POS 1, 2S3M, TTAAA, MAPQ 5   -> selected unless min_mapq > 5
    """
    pysam = pytest.importorskip("pysam")

    sam_path = temp_dir / "alignments.sam"
    header = {
        "HD": {"VN": "1.6", "SO": "unsorted"},
        "SQ": [{"SN": "chr1", "LN": 7}, {"SN": "chr2", "LN": 10}],
    }

    reads = [
        # name, flag, reference_id, reference_start, cigar, sequence, mapq
        ("read1", 0, 0, 2, "2M", "CG", 60),
        ("read2", 4, -1, -1, None, "ACGT", 0),
        ("read3", 256, 0, 0, "3M", "AAA", 60),
        ("read4", 0, 1, 0, "4M", "ACGT", 60),
        ("read5", 0, 0, 0, "2S3M", "TTAAA", 5),
    ]

    with pysam.AlignmentFile(str(sam_path), "w", header=header) as out:
        for name, flag, ref_id, ref_start, cigar, sequence, mapq in reads:
            segment = pysam.AlignedSegment(out.header)
            segment.query_name = name
            segment.query_sequence = sequence
            segment.flag = flag
            segment.reference_id = ref_id
            segment.reference_start = ref_start
            segment.mapping_quality = mapq
            if cigar is not None:
                segment.cigarstring = cigar
            out.write(segment)

    return sam_path


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Provide a sample configuration dictionary."""
    return {
        "input": {
            "alignments": "/path/to/sample.bam",
            "reference": "/path/to/reference.fasta",
        },
        "output": {
            "path": "/tmp/test_results/alignments.tsv",
        },
        "reconstruction": {
            "mode": "literal",
            "truncate_reference": True,
            "alphabet": None,
        },
        "filters": {
            "min_mapq": 0,
            "skip_secondary": True,
        },
        "resources": {
            "processes": 4,
            "chunk_size": 500,
        },
    }
