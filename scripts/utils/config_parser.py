#!/usr/bin/env python3
"""
cigaralign Configuration Parser

Parses YAML configuration files for the batch reconstruction script and
exports values as shell-compatible variables.

Usage:
    # Get single value
    python config_parser.py config.yaml --get input.alignments

    # Export all as shell variables
    python config_parser.py config.yaml --export

    # Validate configuration
    python config_parser.py config.yaml --validate

    # As Python module
    from utils.config_parser import load_config, get_nested
    config = load_config("config.yaml")
    mode = get_nested(config, "reconstruction.mode", "literal")
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict

try:
    import yaml
except ImportError:
    print("Error: PyYAML is required. Install with: pip install pyyaml", file=sys.stderr)
    sys.exit(1)


VALID_MODES = ("literal", "pseudo")
VALID_ALPHABETS = ("dna", "rna", "iupac")
PLACEHOLDER_PREFIX = "/path/to"

DEFAULT_CONFIG: Dict[str, Any] = {
    "input": {
        "alignments": None,
        "reference": None,
    },
    "output": {
        "path": "alignments.tsv",
    },
    "reconstruction": {
        "mode": "literal",
        "truncate_reference": True,
        "alphabet": None,
    },
    "filters": {
        "min_mapq": 0,
        "skip_secondary": True,
        "skip_supplementary": False,
    },
    "resources": {
        "processes": 4,
        "chunk_size": 500,
    },
}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Dictionary containing configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, 'r') as f:
        config = yaml.safe_load(f)

    if config is None:
        return {}

    return config


def merge_with_defaults(config: Dict[str, Any], defaults: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Recursively fill missing keys of `config` from `defaults`.

    Examples:
        >>> merged = merge_with_defaults({"resources": {"processes": 8}})
        >>> merged["resources"]["processes"], merged["resources"]["chunk_size"]
        (8, 500)
    """
    if defaults is None:
        defaults = DEFAULT_CONFIG

    merged: Dict[str, Any] = {}
    for key, default_value in defaults.items():
        value = config.get(key) if isinstance(config, dict) else None
        if isinstance(default_value, dict):
            merged[key] = merge_with_defaults(value if isinstance(value, dict) else {}, default_value)
        else:
            merged[key] = default_value if value is None else value

    # Keep keys unknown to the defaults
    for key, value in (config or {}).items():
        if key not in merged:
            merged[key] = value

    return merged


def get_nested(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested value from config using dot notation.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path (e.g., "input.alignments")
        default: Default value if key not found

    Returns:
        Value at the specified path, or default if not found

    Examples:
        >>> config = {"input": {"alignments": "/data/sample.bam"}}
        >>> get_nested(config, "input.alignments")
        '/data/sample.bam'
        >>> get_nested(config, "input.missing", "default")
        'default'
    """
    keys = key_path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def flatten_config(config: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    """
    Flatten nested config into flat dictionary with dot-notation keys.

    Args:
        config: Nested configuration dictionary
        prefix: Current key prefix (used in recursion)

    Returns:
        Flat dictionary with dot-notation keys and string values

    Examples:
        >>> flatten_config({"reconstruction": {"truncate_reference": True}})
        {'reconstruction.truncate_reference': 'true'}
    """
    flat = {}

    for key, value in config.items():
        full_key = f"{prefix}.{key}" if prefix else key

        if isinstance(value, dict):
            flat.update(flatten_config(value, full_key))
        else:
            # Convert to string for shell compatibility
            if value is None:
                flat[full_key] = ""
            elif isinstance(value, bool):
                flat[full_key] = "true" if value else "false"
            else:
                flat[full_key] = str(value)

    return flat


def to_shell_var_name(key_path: str) -> str:
    """
    Convert dot-notation key to shell variable name.

    Examples:
        >>> to_shell_var_name("input.alignments")
        'CIGAR_INPUT_ALIGNMENTS'
    """
    return "CIGAR_" + key_path.upper().replace(".", "_").replace("-", "_")


def export_as_shell(config: Dict[str, Any]) -> str:
    """
    Export config as shell variable assignments.

    Args:
        config: Configuration dictionary

    Returns:
        String of shell export statements
    """
    flat = flatten_config(config)
    lines = []

    for key, value in sorted(flat.items()):
        var_name = to_shell_var_name(key)
        # Escape single quotes in value
        escaped_value = str(value).replace("'", "'\"'\"'")
        lines.append(f"export {var_name}='{escaped_value}'")

    return "\n".join(lines)


def _is_placeholder(value: Any) -> bool:
    return not value or str(value).startswith(PLACEHOLDER_PREFIX)


def validate_config(config: Dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate configuration for required fields and value ranges.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors = []

    mode = get_nested(config, "reconstruction.mode", "literal")
    if mode not in VALID_MODES:
        errors.append(f"reconstruction.mode must be one of {VALID_MODES}, got {mode}")

    # Required paths
    required_paths = [("input.alignments", "SAM/BAM alignments")]
    alignments = get_nested(config, "input.alignments")
    is_cram = isinstance(alignments, str) and alignments.endswith(".cram")
    if mode == "literal" or is_cram:
        required_paths.append(("input.reference", "Reference FASTA"))

    for key_path, description in required_paths:
        if _is_placeholder(get_nested(config, key_path)):
            errors.append(f"Missing or placeholder: {description} ({key_path})")

    alphabet = get_nested(config, "reconstruction.alphabet")
    if alphabet is not None and alphabet not in VALID_ALPHABETS:
        errors.append(
            f"reconstruction.alphabet must be one of {VALID_ALPHABETS} or null, got {alphabet}"
        )

    # Validate numeric ranges
    for key_path, minimum in [
        ("resources.processes", 1),
        ("resources.chunk_size", 1),
        ("filters.min_mapq", 0),
    ]:
        value = get_nested(config, key_path, minimum)
        try:
            if isinstance(value, bool) or int(value) < minimum:
                errors.append(f"{key_path} must be >= {minimum}, got {value}")
        except (ValueError, TypeError):
            errors.append(f"{key_path} must be an integer, got {value}")

    # Check input files exist
    for key_path in ["input.alignments", "input.reference"]:
        path = get_nested(config, key_path)
        if not _is_placeholder(path) and not Path(path).exists():
            errors.append(f"Input file not found: {path} ({key_path})")

    return len(errors) == 0, errors


def print_config_summary(config: Dict[str, Any]) -> None:
    """Print a human-readable config summary."""
    print("=" * 60)
    print("CIGAR Reconstruction Configuration Summary")
    print("=" * 60)

    sections = [
        ("Input", [
            ("input.alignments", "Alignments"),
            ("input.reference", "Reference FASTA"),
        ]),
        ("Output", [
            ("output.path", "Output Table"),
        ]),
        ("Reconstruction", [
            ("reconstruction.mode", "Mode"),
            ("reconstruction.truncate_reference", "Truncate Reference"),
            ("reconstruction.alphabet", "Alphabet Check"),
        ]),
        ("Filters", [
            ("filters.min_mapq", "Min MAPQ"),
            ("filters.skip_secondary", "Skip Secondary"),
            ("filters.skip_supplementary", "Skip Supplementary"),
        ]),
        ("Resources", [
            ("resources.processes", "Processes"),
            ("resources.chunk_size", "Chunk Size"),
        ]),
    ]

    for section_name, fields in sections:
        print(f"\n{section_name}:")
        for key_path, label in fields:
            value = get_nested(config, key_path, "not set")
            print(f"  {label}: {value}")

    print("\n" + "=" * 60)


def main():
    parser = argparse.ArgumentParser(
        description="cigaralign Configuration Parser",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "config",
        help="Path to YAML configuration file"
    )

    parser.add_argument(
        "--get",
        metavar="KEY",
        help="Get single value using dot notation (e.g., input.alignments)"
    )

    parser.add_argument(
        "--export",
        action="store_true",
        help="Export all config as shell variable assignments"
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and report errors"
    )

    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print configuration summary"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON (for --get with complex values)"
    )

    args = parser.parse_args()

    try:
        config = merge_with_defaults(load_config(args.config))
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error parsing YAML: {e}", file=sys.stderr)
        sys.exit(1)

    if args.get:
        value = get_nested(config, args.get)
        if value is None:
            print(f"Key not found: {args.get}", file=sys.stderr)
            sys.exit(1)
        if args.json:
            import json
            print(json.dumps(value))
        else:
            print(value)

    elif args.export:
        print(export_as_shell(config))

    elif args.validate:
        is_valid, errors = validate_config(config)
        if is_valid:
            print("Configuration is valid!")
            sys.exit(0)
        else:
            print("Configuration errors:", file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)
            sys.exit(1)

    else:
        print_config_summary(config)


if __name__ == "__main__":
    main()
