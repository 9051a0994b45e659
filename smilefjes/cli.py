"""CLI entrypoint for the smilefjes map data pipeline."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from smilefjes.common.config_loader import load_pipeline_config
from smilefjes.common.constants import EXIT_HARD_FAIL, EXIT_SUCCESS
from smilefjes.common.errors import PipelineError
from smilefjes.common.logging import build_logger, log_event
from smilefjes.common.time_utils import generate_run_id
from smilefjes.pipeline.build import run_build
from smilefjes.pipeline.validate import run_validate

COMMANDS = ("build", "validate")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--output", default=None, help="GeoJSON path; defaults to output.geojson_path")
    parser.add_argument("--source", default=None, help="CSV URL or local path; defaults to source.url")
    parser.add_argument("--max-features", type=int, default=None, help="0 processes every entity")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    return parser.parse_args(argv)


def run_command(args: argparse.Namespace, **build_kwargs) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)

    try:
        overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
        cfg = load_pipeline_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)
        if args.max_features is not None:
            cfg["limits"]["max_features"] = max(args.max_features, 0)
        output_path = Path(args.output or cfg["output"]["geojson_path"])

        if args.command == "build":
            run_build(
                cfg,
                data_dir=data_dir,
                output_path=output_path,
                run_id=run_id,
                source=args.source,
                **build_kwargs,
            )
        else:
            result = run_validate(output_path)
            log_event(
                logger,
                f"{output_path} is valid",
                stage="validate",
                event="VALIDATE_OK",
                status="ok",
                rows_out=result["feature_count"],
            )
    except PipelineError as exc:
        log_event(
            logger,
            f"{args.command} failed: {exc}",
            level=logging.ERROR,
            event="RUN_FAIL",
            status="error",
            error_code=exc.error_code,
            exc_info=True,
        )
        return EXIT_HARD_FAIL
    except Exception as exc:
        log_event(
            logger,
            f"unexpected failure during {args.command}: {exc}",
            level=logging.ERROR,
            event="RUN_FAIL",
            status="error",
            error_code="UNEXPECTED_ERROR",
            exc_info=True,
        )
        return EXIT_HARD_FAIL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    return run_command(args)


if __name__ == "__main__":
    raise SystemExit(main())
