"""CLI entrypoints for promptscan commands."""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path

from .aggregator import Aggregator
from .config import ConfigError, load_config
from .logging import configure_logging


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptscan",
        description="Inventory LLM prompts and exposed credentials in a local repository.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan a checked-out repository and print the findings as JSON.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    scan_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    scan_parser.add_argument(
        "--narrative",
        action="store_true",
        help="Ask the configured LLM endpoint for a narrative summary of the findings.",
    )
    scan_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a .promptscan.yml file (defaults to ./.promptscan.yml).",
    )
    scan_parser.add_argument(
        "--max-files",
        type=int,
        default=None,
        help="Override the maximum number of files visited.",
    )
    scan_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the JSON result to this file instead of stdout.",
    )
    scan_parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation (0 for compact output).",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Expose the scanner over HTTP for an orchestration layer.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    serve_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a .promptscan.yml file applied to every scan (defaults to ./.promptscan.yml).",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for promptscan commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "scan":
        try:
            config = load_config(args.config)
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
        budget = config.budget
        if args.max_files is not None:
            budget = dataclasses.replace(budget, max_files=max(0, args.max_files))

        aggregator = Aggregator(config)
        try:
            result = aggregator.run(args.path, budget, use_narrative=bool(args.narrative))
        except (FileNotFoundError, NotADirectoryError, PermissionError) as exc:
            parser.exit(1, f"{exc}\n")

        indent = args.indent if args.indent > 0 else None
        rendered = json.dumps(result.to_dict(), indent=indent, sort_keys=True)
        if args.output is not None:
            args.output.write_text(rendered + "\n", encoding="utf-8")
            print(f"Results written to {_relativize(args.output)}")
        else:
            print(rendered)
    elif args.command == "serve":
        from .service import run_service

        try:
            run_service(
                host=args.host,
                port=args.port,
                config_path=args.config,
                verbose=bool(args.verbose),
            )
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
