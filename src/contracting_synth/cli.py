"""CLI entrypoint for contracting-synth."""

import argparse
import logging
import sys
from pathlib import Path

from contracting_synth.config import ScalePreset, SynthConfig
from contracting_synth.errors import ConfigurationError

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def resolve_config(args: argparse.Namespace) -> SynthConfig:
    """Resolve configuration from either --preset or --config.

    Args:
        args: Parsed command line arguments.

    Returns:
        Resolved SynthConfig instance, with --seed and --model applied.

    Raises:
        SystemExit: If neither or both --preset and --config are specified.
    """
    if args.preset and args.config:
        print("Error: Cannot specify both --preset and --config", file=sys.stderr)
        sys.exit(1)

    if args.preset:
        config = SynthConfig.preset(args.preset)
    elif args.config:
        config_path = Path(args.config)
        if config_path.suffix == ".json":
            config = SynthConfig.from_json(config_path)
        else:
            config = SynthConfig.from_yaml(config_path)
    else:
        print("Error: Must specify either --preset or --config", file=sys.stderr)
        sys.exit(1)

    overrides = {}
    if getattr(args, "seed", None) is not None:
        overrides["seed"] = args.seed
    if getattr(args, "model", None):
        overrides["expansion"] = config.expansion.model_copy(update={"model": args.model})
    if overrides:
        config = config.model_copy(update=overrides)
    return config


def cmd_generate(args: argparse.Namespace) -> int:
    """Generate the dataset and export it as a bundle."""
    from contracting_synth.pipeline import GenerationPipeline
    from contracting_synth.transport import LocalDirectoryTransport

    try:
        config = resolve_config(args)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info("Configuration resolved.")

    transport = LocalDirectoryTransport(args.deliver_to) if args.deliver_to else None
    pipeline = GenerationPipeline(config, transport=transport)

    try:
        result = pipeline.run(args.out)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Failed to generate data: %s", e)
        return 1

    # Print summary
    print("\n" + "=" * 56)
    print("SYNTHETIC DATA GENERATION SUMMARY")
    print("=" * 56)
    print(f"Output Directory: {args.out}")
    print(f"Summary:          {result.summary_path}")
    print(f"Seed:             {config.seed}")
    if result.delivered_to:
        print(f"Delivered To:     {result.delivered_to}")
    print("-" * 56)
    for table_name, df in result.tables.items():
        strategy = result.strategies.get(table_name, "none")
        print(f"- {table_name:22} {len(df):>10,} rows  ({strategy})")
    print("-" * 56)
    print(f"Total Records:    {sum(len(df) for df in result.tables.values()):,}")
    if result.issues:
        print(f"Validation:       {len(result.issues)} issue(s)")
        for issue in result.issues:
            print(f"  - {issue}")
    else:
        print("Validation:       passed")
    print("=" * 56 + "\n")

    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate an exported bundle."""
    from contracting_synth.validate import REPORT_FILENAME, validate_bundle

    logger.info("Starting validation for bundle summary: %s", args.summary)
    result = validate_bundle(args.summary)

    if result.is_valid:
        print("\n✅ Validation PASSED")
    else:
        print("\n❌ Validation FAILED")
        for issue in result.issues:
            print(f"  - {issue}")

    report = Path(args.summary).parent / REPORT_FILENAME
    if report.exists():
        print(f"\nReport written to {report}")

    return 0 if result.is_valid else 1


def cmd_export_schema(args: argparse.Namespace) -> int:
    """Export the schema registry as YAML."""
    import yaml

    from contracting_synth.schema import schema_as_dict

    try:
        output_path = Path(args.out) / "schema.yaml"
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = schema_as_dict()
        with open(output_path, "w") as f:
            yaml.safe_dump(data, f, sort_keys=False)

        print(f"Exported schema to {output_path}")
        print(f"Tables: {len(data['tables'])}")
        return 0
    except OSError as e:
        logger.exception("Failed to export schema: %s", e)
        return 1


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="contracting-synth",
        description="Relational synthetic data generation for a web-contracting dataset",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # generate subcommand
    gen_parser = subparsers.add_parser(
        "generate",
        help="Generate the dataset from a configuration file or preset",
    )
    config_group = gen_parser.add_mutually_exclusive_group(required=True)
    config_group.add_argument(
        "--config",
        metavar="PATH",
        help="Path to the generation configuration file (YAML or JSON)",
    )
    config_group.add_argument(
        "--preset",
        choices=[p.value for p in ScalePreset],
        help="Use a built-in preset (small, standard, or large)",
    )
    gen_parser.add_argument(
        "--out",
        required=True,
        metavar="DIR",
        help="Output directory for the bundle",
    )
    gen_parser.add_argument(
        "--seed",
        type=int,
        metavar="N",
        help="Override the configured random seed",
    )
    gen_parser.add_argument(
        "--model",
        choices=["ctgan", "replication"],
        help="Override the expansion model",
    )
    gen_parser.add_argument(
        "--deliver-to",
        metavar="DIR",
        help="Copy the finished bundle into this directory",
    )
    gen_parser.set_defaults(func=cmd_generate)

    # validate subcommand
    val_parser = subparsers.add_parser(
        "validate",
        help="Validate an exported bundle",
    )
    val_parser.add_argument(
        "--summary",
        required=True,
        metavar="PATH",
        help="Path to the bundle's dataset_summary.json",
    )
    val_parser.set_defaults(func=cmd_validate)

    # export-schema subcommand
    schema_parser = subparsers.add_parser(
        "export-schema",
        help="Export the schema registry as schema.yaml",
    )
    schema_parser.add_argument(
        "--out",
        required=True,
        metavar="DIR",
        help="Output directory for schema.yaml",
    )
    schema_parser.set_defaults(func=cmd_export_schema)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
