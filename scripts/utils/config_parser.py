#!/usr/bin/env python3
"""
Somatic Pipeline Configuration Parser

Parses the YAML configuration that tells the somatic pipeline where the
external tools and reference genomes live and which filter thresholds to use.

Configuration sections:
    tools:    strelka2 / vcflib / ngs_bits install directories
    genomes:  genome build -> reference FASTA path
    filter:   classifier thresholds (see somavar.filters.FilterThresholds)

Usage:
    # Get single value
    python config_parser.py config.yaml --get genomes.GRCh38

    # Validate configuration
    python config_parser.py config.yaml --validate

    # As Python module
    from utils.config_parser import load_config, get_nested
    config = load_config("config.yaml")
    fasta = get_nested(config, "genomes.GRCh38")
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

TOOL_KEYS = ("strelka2", "vcflib", "ngs_bits")

FILTER_KEYS = (
    "tumor_min_depth",
    "tumor_min_frequency",
    "tumor_min_supporting_reads",
    "normal_min_depth",
    "normal_max_relative_frequency",
)


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


def get_nested(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested value from config using dot notation.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path (e.g., "genomes.GRCh38")
        default: Default value if key not found

    Returns:
        Value at the specified path, or default if not found

    Examples:
        >>> config = {"genomes": {"GRCh38": "/ref/GRCh38.fa"}}
        >>> get_nested(config, "genomes.GRCh38")
        '/ref/GRCh38.fa'
        >>> get_nested(config, "genomes.GRCh37", "default")
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


def validate_config(config: Dict[str, Any], build: Optional[str] = None) -> tuple[bool, list[str]]:
    """
    Validate configuration for required fields.

    Args:
        config: Configuration dictionary
        build: Genome build that must have a reference FASTA (optional)

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors = []

    # Tool directories are optional (tools on PATH), but must exist when set
    for key in TOOL_KEYS:
        tool_dir = get_nested(config, f"tools.{key}")
        if tool_dir and not Path(tool_dir).is_dir():
            errors.append(f"Tool directory not found: {tool_dir} (tools.{key})")

    genomes = get_nested(config, "genomes", {})
    if not isinstance(genomes, dict):
        errors.append("genomes must be a mapping of build -> FASTA path")
        genomes = {}
    if build is not None:
        if not genomes.get(build):
            errors.append(f"No reference FASTA configured for build {build} (genomes.{build})")
        # Only the selected build has to be installed
        genomes = {build: genomes[build]} if genomes.get(build) else {}
    for name, fasta in genomes.items():
        if fasta and not Path(fasta).exists():
            errors.append(f"Reference file not found: {fasta} (genomes.{name})")

    # Validate numeric thresholds
    thresholds = get_nested(config, "filter", {}) or {}
    if not isinstance(thresholds, dict):
        errors.append("filter must be a mapping of threshold name -> value")
        thresholds = {}
    for key, value in thresholds.items():
        if key not in FILTER_KEYS:
            errors.append(f"Unknown filter threshold: filter.{key}")
            continue
        try:
            if float(value) < 0:
                errors.append(f"filter.{key} must be >= 0, got {value}")
        except (ValueError, TypeError):
            errors.append(f"filter.{key} must be a number, got {value}")

    return len(errors) == 0, errors


def print_config_summary(config: Dict[str, Any]) -> None:
    """Print a human-readable config summary."""
    print("=" * 60)
    print("Somatic Pipeline Configuration Summary")
    print("=" * 60)

    print("\nTools:")
    for key in TOOL_KEYS:
        print(f"  {key}: {get_nested(config, f'tools.{key}', 'on PATH')}")

    print("\nGenomes:")
    for build, fasta in (get_nested(config, "genomes", {}) or {}).items():
        print(f"  {build}: {fasta}")

    print("\nFilter:")
    for key in FILTER_KEYS:
        print(f"  {key}: {get_nested(config, f'filter.{key}', 'default')}")

    print("\n" + "=" * 60)


def main():
    parser = argparse.ArgumentParser(
        description="Somatic Pipeline Configuration Parser",
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
        help="Get single value using dot notation (e.g., genomes.GRCh38)"
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and report errors"
    )

    parser.add_argument(
        "--build",
        help="With --validate: also require a reference for this genome build"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON (for --get with complex values)"
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
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
            print(json.dumps(value))
        else:
            print(value)

    elif args.validate:
        is_valid, errors = validate_config(config, build=args.build)
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
