"""
CLI entry point for image tournament system.

Parses arguments, validates config, and wires components.
"""

import argparse
import shutil
import sys
from argparse import Namespace
from pathlib import Path
from typing import TypedDict

from prettytable import PrettyTable

from .choosers.console_chooser import ConsoleChooser
from .choosers.dummy_chooser import DummyChooser
from .choosers.sim_chooser import SimulatedChooser
from .engine import EngineConfig, RankingEngine
from .exceptions import ConfigurationError, InvalidActionError
from .fetchers.directory_fetcher import DirectoryImageFetcher
from .interfaces import Chooser, ImageFetcher, ItemResult
from .logging_config import get_logger, setup_logging
from .orchestrator import Orchestrator, RunConfig
from .storage.jsonl_storage import JSONLStorage


class CLIArgs(TypedDict):
    """Typed representation of parsed CLI arguments."""
    images_dir: str
    images_pattern: str
    output_dir: str
    chooser: str
    budget: int
    progress_every: int
    noise: float
    skip_threshold: float | None
    seed: int | None
    finish_delay: float
    debug: bool
    log_level: str


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Image Tournament - Adaptive Preference Ranking"
    )

    _ = parser.add_argument(
        "--images-dir",
        required=True,
        help="Directory containing the images to rank"
    )
    _ = parser.add_argument(
        "--images-pattern",
        default="*",
        help="Glob pattern for image files, filtered by extension (default: *)"
    )
    _ = parser.add_argument(
        "--output-dir",
        required=True,
        help="Directory for the decision log, results and ranked symlinks"
    )
    _ = parser.add_argument(
        "--chooser",
        choices=["console", "simulated", "dummy"],
        default="console",
        help="Who picks the favourite in each group (default: console)"
    )
    _ = parser.add_argument(
        "--budget",
        type=int,
        default=500,
        help="Maximum choices + skips before finishing early (default: 500)"
    )
    _ = parser.add_argument(
        "--progress-every",
        type=int,
        default=10,
        help="Print progress every N actions (default: 10)"
    )
    _ = parser.add_argument(
        "--noise",
        type=float,
        default=0.1,
        help="Noise level for simulated chooser (0-1, default: 0.1)"
    )
    _ = parser.add_argument(
        "--skip-threshold",
        type=float,
        default=None,
        help="Simulated chooser skips groups whose best score is below this"
    )
    _ = parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for group selection and simulated noise"
    )
    _ = parser.add_argument(
        "--finish-delay",
        type=float,
        default=0.0,
        help="Pause in seconds between the end of a session and the results (default: 0)"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set console logging level (default: WARNING)"
    )

    return parser.parse_args(argv)


def args_to_typed(ns: Namespace) -> CLIArgs:
    """Convert argparse Namespace to typed CLIArgs."""
    return CLIArgs(
        images_dir=ns.images_dir,
        images_pattern=ns.images_pattern,
        output_dir=ns.output_dir,
        chooser=ns.chooser,
        budget=ns.budget,
        progress_every=ns.progress_every,
        noise=ns.noise,
        skip_threshold=ns.skip_threshold,
        seed=ns.seed,
        finish_delay=ns.finish_delay,
        debug=ns.debug,
        log_level=ns.log_level,
    )


def validate_config(args: CLIArgs) -> None:
    """Validate configuration parameters."""
    logger = get_logger("validate_config")

    images_dir = Path(args["images_dir"])
    if not images_dir.is_dir():
        logger.error(f"Images directory does not exist: {images_dir}")
        raise ConfigurationError(f"images directory does not exist: {images_dir}")

    if args["budget"] <= 0:
        raise ConfigurationError(f"budget must be positive, got {args['budget']}")

    if args["finish_delay"] < 0:
        raise ConfigurationError(f"finish_delay must be non-negative, got {args['finish_delay']}")

    output_dir = Path(args["output_dir"])
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Output directory: {output_dir}")


def build_chooser(args: CLIArgs, fetcher: ImageFetcher) -> Chooser:
    """Create the chooser selected on the command line."""
    if args["chooser"] == "console":
        return ConsoleChooser()
    if args["chooser"] == "dummy":
        return DummyChooser(mode="deterministic")
    if args["chooser"] == "simulated":
        # Without real preferences, later files in sort order are liked more
        sources = list(fetcher.list_images())
        ground_truth = {
            source.item_id: float(i + 1) / len(sources)
            for i, source in enumerate(sources)
        }
        return SimulatedChooser(
            ground_truth,
            noise=args["noise"],
            skip_threshold=args["skip_threshold"],
            seed=args["seed"],
        )
    raise ConfigurationError(f"Unknown chooser: {args['chooser']}")


def wire_components(args: CLIArgs) -> Orchestrator:
    """Wire dependency injection components."""
    logger = get_logger("wire_components")

    fetcher = DirectoryImageFetcher(Path(args["images_dir"]), pattern=args["images_pattern"])

    output_dir = Path(args["output_dir"])
    storage = JSONLStorage(output_dir / "decisions.jsonl", output_dir / "results.json")

    engine = RankingEngine(EngineConfig(finish_delay=args["finish_delay"], seed=args["seed"]))

    logger.info(f"Creating {args['chooser']} chooser")
    chooser = build_chooser(args, fetcher)

    config = RunConfig(budget=args["budget"], progress_every=args["progress_every"])

    return Orchestrator(
        fetcher=fetcher,
        chooser=chooser,
        storage=storage,
        engine=engine,
        config=config,
    )


def format_ranking(ranking: list[ItemResult]) -> PrettyTable:
    """Render the final ranking as a table."""
    table = PrettyTable()
    table.field_names = ["Rank", "Tier", "Image", "Status", "Elite", "Rating", "σ", "Effective", "Views", "Match"]
    for column in ("Rank", "Rating", "σ", "Effective", "Views", "Match"):
        table.align[column] = "r"

    for row in ranking:
        table.add_row([
            row["rank"],
            row["tier"],
            row["name"],
            row["status"],
            "" if row["elite_type"] == "none" else row["elite_type"],
            f"{row['rating']:.0f}",
            f"{row['sigma']:.0f}",
            f"{row['effective_rating']:.0f}",
            row["view_count"],
            f"{row['match_probability']}%",
        ])
    return table


def create_ranked_directory(ranking: list[ItemResult], output_dir: Path) -> None:
    """
    Create a ranked directory with symlinks to images in rank order.

    Args:
        ranking: Final ranking rows, best first
        output_dir: Output directory path
    """
    logger = get_logger("create_ranked_directory")

    ranked_dir = output_dir / "ranked"
    if ranked_dir.exists():
        shutil.rmtree(ranked_dir)
        logger.info(f"Cleared existing ranked directory: {ranked_dir}")

    ranked_dir.mkdir(parents=True)

    for row in ranking:
        symlink_path = ranked_dir / f"{row['rank']}_{row['tier']}_{row['name']}"
        symlink_path.symlink_to(Path(row["image_ref"]).resolve())
        logger.debug(f"Created symlink: {symlink_path.name} -> {row['image_ref']}")

    logger.info(f"Created {len(ranking)} ranked symlinks in {ranked_dir}")
    print(f"Created ranked directory with {len(ranking)} symlinks: {ranked_dir}")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    try:
        args = args_to_typed(parse_args(argv))

        setup_logging(level=args["log_level"], debug=args["debug"])
        logger = get_logger("main")

        logger.info("Starting Image Tournament - Adaptive Preference Ranking")
        validate_config(args)

        print("Image Tournament - Adaptive Preference Ranking")
        print("=" * 60)
        print(f"Images directory: {args['images_dir']}")
        print(f"Output directory: {args['output_dir']}")
        print(f"Chooser: {args['chooser']}")
        print(f"Budget: {args['budget']}")
        if args["chooser"] == "simulated":
            print(f"Noise level: {args['noise']}")
        print("=" * 60)

        orchestrator = wire_components(args)
        ranking = orchestrator.run()

        print("\nFinal Ranking:")
        print("-" * 40)
        print(format_ranking(ranking))

        create_ranked_directory(ranking, Path(args["output_dir"]))

        print("\nTournament completed successfully!")

    except (ConfigurationError, InvalidActionError) as e:
        get_logger("main").error(str(e))
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        get_logger("main").warning("Tournament interrupted by user")
        print("\nTournament interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    main()
