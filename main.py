#!/usr/bin/env python3
"""
Link Scout - Geo-aware Internal Link Engine

Main entry point and pipeline orchestrator. This module coordinates dataset
loading, validation, production link planning, and the policy sweep.
"""

import argparse
import json
import logging
import sys
from typing import Optional

from linkscout.config import Config, load_config, generate_example_config
from linkscout.doctor import DoctorReport, GeoDoctor
from linkscout.geodata import DatasetError, DatasetIntegrityError, GeoDataset, load_dataset
from linkscout.reporting import ReportGenerator
from linkscout.scorer import LinkPlanner, LinkSet
from linkscout.sweep import PolicySweeper, SweepReport


# Configure logging
def setup_logging(verbose: bool = False, log_file: Optional[str] = None, stream=None):
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    handlers = [logging.StreamHandler(stream or sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )

    # Reduce noise from external libraries
    logging.getLogger('geopy').setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


class LinkScoutPipeline:
    """
    Main pipeline orchestrator for Link Scout.

    Loads the geo datasets once and runs the requested stage against them.
    """

    def __init__(self, config: Config, dataset: Optional[GeoDataset] = None, strict: Optional[bool] = None):
        """
        Initialize the pipeline.

        Args:
            config: Application configuration.
            dataset: Pre-loaded dataset (loaded from config.datasets when omitted).
            strict: Override config.validation.strict for loading.
        """
        self.config = config
        if strict is None:
            strict = config.validation.strict

        logger.info("=" * 60)
        logger.info("Loading geo datasets")
        logger.info("=" * 60)
        self.dataset = dataset or load_dataset(
            config.datasets,
            proximity_limit=config.policies.proximity_limit,
            strict=strict,
        )

        self.planner = LinkPlanner(self.dataset, config.policies)
        self.reporter = ReportGenerator(config.reporting)

        logger.info("Link Scout pipeline initialized")

    def run_sweep(self, mode: Optional[str] = None, service: Optional[str] = None,
                  top: Optional[int] = None) -> SweepReport:
        """
        Run the policy sweep and write the ranking reports.

        Returns:
            The sweep report.
        """
        top = top or self.config.sweep.top

        logger.info("=" * 60)
        logger.info("Running policy sweep")
        logger.info("=" * 60)

        report = PolicySweeper(self.dataset, self.config).run(mode=mode, service=service)
        self.reporter.write_sweep_report(report, top=top)
        return report

    def build_links(self, services: Optional[list[str]] = None, include_self: bool = False) -> list[LinkSet]:
        """
        Plan production link lists with the baseline weights and write links.json.

        Args:
            services: Services to plan (defaults to every configured service).
            include_self: Keep each page's own suburb as its first link.
        """
        services = services or self.config.services

        logger.info("=" * 60)
        logger.info(f"Planning related links for {len(services)} services")
        logger.info("=" * 60)

        link_sets = self.planner.plan(self.planner.targets_for(services), include_self=include_self)
        self.reporter.write_link_sets(link_sets)
        logger.info(f"Planned {len(link_sets)} link sets")
        return link_sets

    def run_doctor(self) -> DoctorReport:
        """Examine the datasets and write the doctor report."""
        logger.info("=" * 60)
        logger.info("Running geo doctor")
        logger.info("=" * 60)

        report = GeoDoctor(self.dataset).check(strict=False)
        self.reporter.write_doctor_report(report)
        return report


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Link Scout - Geo-aware Internal Link Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          Run the policy sweep (small variants)
  %(prog)s --variants=medium        Sweep wider weight perturbations
  %(prog)s --service=spring-clean   Sweep pages of another service
  %(prog)s --json                   Also print the sweep payload to stdout
  %(prog)s --links                  Write production link lists
  %(prog)s --doctor --strict        Validate datasets, fail on any issue
  %(prog)s --init-config            Generate example config file
        """
    )

    parser.add_argument(
        '-c', '--config',
        default=None,
        help='Path to configuration file (default: linkscout.yaml)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--log-file',
        help='Write logs to file'
    )

    parser.add_argument(
        '--variants',
        choices=['small', 'medium'],
        help='Variant mode for the sweep (default from config: small)'
    )

    parser.add_argument(
        '--service',
        help='Service to sweep (default: first configured service)'
    )

    parser.add_argument(
        '--top',
        type=int,
        help='Number of variants shown in the Markdown/HTML report (default: 10)'
    )

    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the sweep payload to stdout as well as writing files'
    )

    parser.add_argument(
        '--links',
        action='store_true',
        help='Plan production link lists instead of sweeping'
    )

    parser.add_argument(
        '--include-self',
        action='store_true',
        help="With --links, keep each page's own suburb as its first link"
    )

    parser.add_argument(
        '--doctor',
        action='store_true',
        help='Validate the geo datasets and report graph statistics'
    )

    parser.add_argument(
        '--strict',
        action='store_true',
        help='Treat data-integrity issues as fatal'
    )

    parser.add_argument(
        '--init-config',
        action='store_true',
        help='Generate example configuration file'
    )

    args = parser.parse_args(argv)

    # Keep stdout clean for the JSON payload
    setup_logging(
        verbose=args.verbose,
        log_file=args.log_file,
        stream=sys.stderr if args.json else sys.stdout,
    )

    # Handle init-config separately
    if args.init_config:
        generate_example_config()
        return 0

    if args.top is not None and args.top < 1:
        logger.error("--top must be at least 1")
        return 1

    # Load configuration
    try:
        config = load_config(args.config)
        logger.info(f"Loaded configuration from: {args.config or 'defaults'}")
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    # The doctor loads leniently so it can report every issue before failing
    strict = args.strict or config.validation.strict

    try:
        pipeline = LinkScoutPipeline(config, strict=strict and not args.doctor)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except DatasetIntegrityError as e:
        logger.error(f"Data-integrity check failed: {e}")
        return 2
    except DatasetError as e:
        logger.error(f"Dataset error: {e}")
        return 1

    if args.doctor:
        report = pipeline.run_doctor()
        if strict and not report.ok:
            logger.error(f"Data-integrity check failed: {len(report.issues)} issue(s)")
            return 2
        return 0

    if args.links:
        link_sets = pipeline.build_links(include_self=args.include_self)
        if args.json:
            print(json.dumps([ls.to_dict() for ls in link_sets], indent=2))
        return 0

    report = pipeline.run_sweep(mode=args.variants, service=args.service, top=args.top)
    top = args.top or config.sweep.top

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        pipeline.reporter.print_summary(report, top=top)

    return 0


if __name__ == "__main__":
    sys.exit(main())
