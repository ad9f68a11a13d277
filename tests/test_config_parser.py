"""
Tests for the YAML configuration layer.
"""

import sys
from pathlib import Path

import pytest

pytest.importorskip("yaml")

# Add scripts directory to path for imports
scripts_dir = Path(__file__).parent.parent / "scripts"
sys.path.insert(0, str(scripts_dir))

from utils.config_parser import (
    export_as_shell,
    flatten_config,
    get_nested,
    load_config,
    merge_with_defaults,
    to_shell_var_name,
    validate_config,
)


# ============================================================================
# Tests: Loading and Access
# ============================================================================

class TestLoadConfig:
    """Tests for load_config."""

    def test_load(self, temp_dir):
        config_path = temp_dir / "config.yaml"
        config_path.write_text(
            "input:\n"
            "  alignments: /data/sample.bam\n"
            "reconstruction:\n"
            "  mode: pseudo\n"
        )
        config = load_config(str(config_path))
        assert config["input"]["alignments"] == "/data/sample.bam"
        assert config["reconstruction"]["mode"] == "pseudo"

    def test_empty_file(self, temp_dir):
        config_path = temp_dir / "empty.yaml"
        config_path.write_text("")
        assert load_config(str(config_path)) == {}

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_config(str(temp_dir / "missing.yaml"))


class TestGetNested:
    """Tests for get_nested."""

    def test_existing_key(self, sample_config):
        assert get_nested(sample_config, "resources.processes") == 4

    def test_missing_key(self, sample_config):
        assert get_nested(sample_config, "resources.memory") is None
        assert get_nested(sample_config, "resources.memory", 8) == 8

    def test_path_through_scalar(self, sample_config):
        assert get_nested(sample_config, "resources.processes.x", "d") == "d"


class TestMergeWithDefaults:
    """Tests for merge_with_defaults."""

    def test_fills_missing(self):
        merged = merge_with_defaults({"resources": {"processes": 8}})
        assert merged["resources"]["processes"] == 8
        assert merged["resources"]["chunk_size"] == 500
        assert merged["reconstruction"]["mode"] == "literal"

    def test_keeps_false_values(self):
        merged = merge_with_defaults({"reconstruction": {"truncate_reference": False}})
        assert merged["reconstruction"]["truncate_reference"] is False

    def test_keeps_unknown_sections(self):
        merged = merge_with_defaults({"notes": {"owner": "lab"}})
        assert merged["notes"] == {"owner": "lab"}

    def test_empty(self):
        merged = merge_with_defaults({})
        assert merged["filters"]["skip_secondary"] is True


# ============================================================================
# Tests: Shell Export
# ============================================================================

class TestShellExport:
    """Tests for flatten_config, to_shell_var_name and export_as_shell."""

    def test_flatten(self):
        flat = flatten_config({
            "reconstruction": {"truncate_reference": True, "alphabet": None},
            "resources": {"processes": 2},
        })
        assert flat == {
            "reconstruction.truncate_reference": "true",
            "reconstruction.alphabet": "",
            "resources.processes": "2",
        }

    def test_shell_var_name(self):
        assert to_shell_var_name("input.alignments") == "CIGAR_INPUT_ALIGNMENTS"
        assert to_shell_var_name("output.path-name") == "CIGAR_OUTPUT_PATH_NAME"

    def test_export_quotes(self):
        output = export_as_shell({"output": {"path": "it's.tsv"}})
        assert output == "export CIGAR_OUTPUT_PATH='it'\"'\"'s.tsv'"


# ============================================================================
# Tests: Validation
# ============================================================================

class TestValidateConfig:
    """Tests for validate_config."""

    @pytest.fixture
    def real_config(self, sample_config, temp_dir):
        bam = temp_dir / "sample.bam"
        fasta = temp_dir / "reference.fasta"
        bam.touch()
        fasta.touch()
        sample_config["input"]["alignments"] = str(bam)
        sample_config["input"]["reference"] = str(fasta)
        return sample_config

    def test_valid(self, real_config):
        is_valid, errors = validate_config(real_config)
        assert is_valid
        assert errors == []

    def test_placeholders(self, sample_config):
        is_valid, errors = validate_config(sample_config)
        assert not is_valid
        assert any("input.alignments" in e for e in errors)
        assert any("input.reference" in e for e in errors)

    def test_pseudo_mode_needs_no_reference(self, real_config):
        real_config["reconstruction"]["mode"] = "pseudo"
        real_config["input"]["reference"] = None
        is_valid, errors = validate_config(real_config)
        assert is_valid, errors

    def test_invalid_mode(self, real_config):
        real_config["reconstruction"]["mode"] = "graph"
        is_valid, errors = validate_config(real_config)
        assert not is_valid
        assert any("reconstruction.mode" in e for e in errors)

    def test_invalid_alphabet(self, real_config):
        real_config["reconstruction"]["alphabet"] = "protein"
        is_valid, errors = validate_config(real_config)
        assert not is_valid

    @pytest.mark.parametrize("key,value", [
        ("processes", 0),
        ("processes", "many"),
        ("chunk_size", -1),
    ])
    def test_invalid_resources(self, real_config, key, value):
        real_config["resources"][key] = value
        is_valid, errors = validate_config(real_config)
        assert not is_valid
        assert any(f"resources.{key}" in e for e in errors)

    def test_missing_input_file(self, real_config, temp_dir):
        real_config["input"]["alignments"] = str(temp_dir / "missing.bam")
        is_valid, errors = validate_config(real_config)
        assert not is_valid
        assert any("not found" in e for e in errors)

    def test_cram_needs_reference_in_pseudo_mode(self, real_config, temp_dir):
        cram = temp_dir / "sample.cram"
        cram.touch()
        real_config["input"]["alignments"] = str(cram)
        real_config["reconstruction"]["mode"] = "pseudo"
        real_config["input"]["reference"] = None
        is_valid, errors = validate_config(real_config)
        assert not is_valid
        assert any("input.reference" in e for e in errors)
