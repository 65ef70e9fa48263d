#!/usr/bin/env python3
"""SES Event Infrastructure - Main Entry Point.

Command line entry point for provisioning the email event infrastructure
and for checking the AWS credentials used to provision it.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from ses_infra import __version__
from ses_infra.core.config import Configuration, ConfigurationError
from ses_infra.credentials.verifier import GRANTED, CredentialsValidator
from ses_infra.provisioning.context import DEFAULT_REGION
from ses_infra.provisioning.orchestrator import provision


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Argument list, defaults to sys.argv

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="ses-infra",
        description="SES Email Event Infrastructure Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s setup --project-name myapp       # Create queues, topic and configuration set
  %(prog)s setup --output aws-settings.yaml  # Write the resulting settings to a file
  %(prog)s verify                           # Check credentials
  %(prog)s permissions                      # Probe read permissions
        """,
    )

    parser.add_argument(
        "--config",
        help="Path to configuration file (default: auto-detect config.yaml)",
    )
    parser.add_argument(
        "--region", help="AWS region to use (overrides configuration file)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"SES Event Infrastructure v{__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    setup_parser = subparsers.add_parser("setup", help="Provision the email event infrastructure")
    setup_parser.add_argument("--project-name", help="Project name used as resource prefix")
    setup_parser.add_argument("--output", help="Write the resulting settings as YAML to this file")

    subparsers.add_parser("verify", help="Verify AWS credentials")
    subparsers.add_parser("regions", help="List available AWS regions")
    subparsers.add_parser("permissions", help="Check read permissions for SQS, SNS, SES and EC2")

    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # botocore is very chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def load_configuration(args: argparse.Namespace) -> Configuration:
    """Load configuration and apply command line overrides.

    Raises:
        ConfigurationError: When the configuration is invalid
    """
    config = Configuration(args.config)
    config.set("aws.region", args.region)
    config.set("project.name", getattr(args, "project_name", None))
    return config


def _credentials(config: Configuration):
    return (
        config.get("aws.access_key_id") or "",
        config.get("aws.secret_access_key") or "",
        config.get("aws.region") or DEFAULT_REGION,
    )


def run_setup(config: Configuration, output_path: Optional[str]) -> int:
    """Run the provisioning pipeline and report the outcome."""
    connect_timeout, read_timeout = config.get_timeouts()
    result = provision(
        config.to_pipeline_options(),
        connect_timeout=connect_timeout,
        timeout_seconds=read_timeout,
    )

    if not result.is_ok:
        print(f"❌ Setup failed at step '{result.kind}': {result.message}")
        print("   Resources created by earlier steps were left in place.")
        print("   Fix the problem and re-run setup; existing resources are reused.")
        return 1

    print("✅ Email event infrastructure ready")
    _print_mapping(result.value)

    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(result.value, f, default_flow_style=False, sort_keys=True)
        print(f"📄 Settings written to {output_path}")

    return 0


def run_verify(validator: CredentialsValidator, config: Configuration) -> int:
    """Verify credentials and print the caller identity."""
    result = validator.verify_credentials(*_credentials(config))

    if not result.is_ok:
        print(f"❌ {result.kind}: {result.message}")
        return 1

    print("✅ AWS credentials are valid")
    _print_mapping(result.value)
    return 0


def run_regions(validator: CredentialsValidator, config: Configuration) -> int:
    """Print the regions available to the credentials."""
    result = validator.list_regions(*_credentials(config))

    if not result.is_ok:
        print(f"❌ {result.kind}: {result.message}")
        return 1

    for region in result.value:
        print(region)
    return 0


def run_permissions(validator: CredentialsValidator, config: Configuration) -> int:
    """Print the permission report; exit non-zero if a required probe is denied."""
    result = validator.check_permissions(*_credentials(config))
    report = result.value

    required_ok = True
    for service, entry in report.items():
        optional = entry.get("optional", False)
        for operation, status in entry.items():
            if operation == "optional":
                continue
            symbol = "✅" if status == GRANTED else ("⚠️" if optional else "❌")
            suffix = " (optional)" if optional else ""
            print(f"{symbol} {service}:{operation} {status}{suffix}")
            if status != GRANTED and not optional:
                required_ok = False

    return 0 if required_ok else 1


def _print_mapping(values: Dict[str, Any]) -> None:
    for key in sorted(values):
        print(f"   {key}: {values[key]}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        args = parse_arguments(argv)
        configure_logging(args.verbose)

        try:
            config = load_configuration(args)
        except ConfigurationError as e:
            print(f"❌ Configuration error: {e}")
            return 1

        if config.config_path:
            print(f"📄 Using configuration file: {config.config_path}")

        if args.command == "setup":
            return run_setup(config, args.output)

        connect_timeout, read_timeout = config.get_timeouts()
        validator = CredentialsValidator(
            connect_timeout=connect_timeout, read_timeout=read_timeout
        )
        commands = {
            "verify": run_verify,
            "regions": run_regions,
            "permissions": run_permissions,
        }
        return commands[args.command](validator, config)

    except KeyboardInterrupt:
        print("\n\n👋 Operation cancelled by user.")
        return 130

    except Exception as e:
        print(f"\n❌ Unexpected error: {e}")
        print("   Please check your configuration and try again.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
