"""
Command-line interface for the navigation layer.

Usage:
    python -m wayfarer.cli simulate scenarios/cold_plains.yaml --to 40 12
    python -m wayfarer.cli simulate scenarios/cold_plains.yaml --area stony_field
    python -m wayfarer.cli -l DEBUG simulate scenarios/cold_plains.yaml --to 40 12
"""

import argparse
import asyncio
import logging
import sys

from wayfarer.api.models import Position
from wayfarer.api.results import NavResult
from wayfarer.config import Config, load_config, setup_logging
from wayfarer.navigation import AreaTransitionManager, NavigationController
from wayfarer.sim import load_scenario

logger = logging.getLogger(__name__)


async def _simulate(args: argparse.Namespace, config: Config) -> NavResult:
    world = load_scenario(args.scenario)
    ctx = world.context(name="cli", character=config.character, navigation=config.navigation)
    if config.character.buff_on_new_area:
        ctx.on_area_entered.append(world.buff)

    if args.area:
        return await AreaTransitionManager(ctx).move_to_area(args.area)
    x, y = args.to
    return await NavigationController(ctx).move_to_coords(Position(x, y))


def cmd_simulate(args: argparse.Namespace, config: Config) -> int:
    """Run one navigation call against a simulated scenario."""
    if not args.area and not args.to:
        print("Error: give either --to X Y or --area AREA")
        return 2

    logger.info(f"Simulating {args.scenario}")
    try:
        result = asyncio.run(_simulate(args, config))
    except (OSError, ValueError) as e:
        logger.error(f"Could not run scenario {args.scenario}: {e}")
        print(f"Error: {e}")
        return 2

    if result.success:
        print("Arrived.")
        return 0
    print(f"Navigation failed: {result.kind.value}: {result.detail}")
    return 1


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="wayfarer - navigation and movement control loop",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level override",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Navigate inside a simulated scenario")
    simulate_parser.add_argument("scenario", type=str, help="Scenario YAML file")
    target = simulate_parser.add_mutually_exclusive_group()
    target.add_argument(
        "--to",
        type=int,
        nargs=2,
        metavar=("X", "Y"),
        default=None,
        help="Move to these coordinates",
    )
    target.add_argument(
        "--area",
        "-a",
        type=str,
        default=None,
        help="Move into this adjacent area",
    )
    simulate_parser.set_defaults(func=cmd_simulate)

    args = parser.parse_args()

    # Load config and set up logging
    config = load_config(args.config)
    if args.log_level:
        config.logging.level = args.log_level
    setup_logging(config.logging)

    if args.command is None:
        parser.print_help()
        return 1

    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
