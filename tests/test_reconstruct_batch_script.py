"""
Tests for settings resolution in the batch reconstruction script.
"""

import argparse
import importlib.util
import sys
from pathlib import Path

import pytest

pytest.importorskip("pysam")
pytest.importorskip("Bio")
pytest.importorskip("pandas")
pytest.importorskip("yaml")

# Add scripts directory to path for imports
scripts_dir = Path(__file__).parent.parent / "scripts"
sys.path.insert(0, str(scripts_dir))

SCRIPT_PATH = scripts_dir / "01_cigar" / "2_reconstruct_alignments_batch.py"


@pytest.fixture
def batch_script():
    """Load the numbered script as a module."""
    spec = importlib.util.spec_from_file_location("reconstruct_alignments_batch", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def make_args(**kwargs):
    """Namespace with the script's argument defaults."""
    values = dict(
        config=None,
        alignments=None,
        reference=None,
        output=None,
        mode=None,
        alphabet=None,
        min_mapq=None,
        jobs=None,
        chunk_size=None,
        no_truncate=False,
        include_secondary=False,
    )
    values.update(kwargs)
    return argparse.Namespace(**values)


def write_config(temp_dir, text):
    config_path = temp_dir / "cigar.yaml"
    config_path.write_text(text)
    return str(config_path)


# ============================================================================
# Tests: Settings Priority
# ============================================================================

class TestBuildConfig:
    """Tests for build_config priority: command line > config > environment."""

    @pytest.fixture(autouse=True)
    def environment(self, batch_script, monkeypatch):
        monkeypatch.setattr(batch_script, "ALIGNMENTS", "/env/sample.bam")
        monkeypatch.setattr(batch_script, "REFERENCE", "/env/reference.fasta")
        monkeypatch.setattr(batch_script, "OUTPUT", "/env/out.tsv")

    def test_defaults(self, batch_script, monkeypatch):
        for name in ["ALIGNMENTS", "REFERENCE", "OUTPUT"]:
            monkeypatch.setattr(batch_script, name, None)
        config = batch_script.build_config(make_args())
        assert config["output"]["path"] == "alignments.tsv"
        assert config["input"]["alignments"] is None
        assert config["reconstruction"]["mode"] == "literal"

    def test_environment_fills_missing(self, batch_script):
        config = batch_script.build_config(make_args())
        assert config["input"]["alignments"] == "/env/sample.bam"
        assert config["input"]["reference"] == "/env/reference.fasta"
        assert config["output"]["path"] == "/env/out.tsv"

    def test_config_beats_environment(self, batch_script, temp_dir):
        config_path = write_config(
            temp_dir,
            "input:\n"
            "  alignments: /cfg/sample.bam\n"
            "output:\n"
            "  path: alignments.tsv\n"
        )
        config = batch_script.build_config(make_args(config=config_path))
        assert config["input"]["alignments"] == "/cfg/sample.bam"
        # Same value as the built-in default, still set explicitly in the file
        assert config["output"]["path"] == "alignments.tsv"
        # Not set in the file
        assert config["input"]["reference"] == "/env/reference.fasta"

    def test_blank_config_value_uses_environment(self, batch_script, temp_dir):
        config_path = write_config(temp_dir, "output:\n  path: ''\n")
        config = batch_script.build_config(make_args(config=config_path))
        assert config["output"]["path"] == "/env/out.tsv"

    def test_command_line_beats_config(self, batch_script, temp_dir):
        config_path = write_config(
            temp_dir,
            "input:\n"
            "  alignments: /cfg/sample.bam\n"
            "reconstruction:\n"
            "  mode: literal\n"
            "resources:\n"
            "  processes: 2\n"
        )
        args = make_args(
            config=config_path,
            alignments="/cli/sample.bam",
            output="/cli/out.tsv",
            mode="pseudo",
            jobs=8,
        )
        config = batch_script.build_config(args)
        assert config["input"]["alignments"] == "/cli/sample.bam"
        assert config["output"]["path"] == "/cli/out.tsv"
        assert config["reconstruction"]["mode"] == "pseudo"
        assert config["resources"]["processes"] == 8

    def test_flags(self, batch_script, temp_dir):
        config_path = write_config(
            temp_dir,
            "reconstruction:\n"
            "  truncate_reference: true\n"
            "filters:\n"
            "  skip_secondary: true\n"
        )
        args = make_args(config=config_path, no_truncate=True, include_secondary=True)
        config = batch_script.build_config(args)
        assert config["reconstruction"]["truncate_reference"] is False
        assert config["filters"]["skip_secondary"] is False

    def test_missing_config_file(self, batch_script, temp_dir):
        with pytest.raises(FileNotFoundError):
            batch_script.build_config(make_args(config=str(temp_dir / "missing.yaml")))
