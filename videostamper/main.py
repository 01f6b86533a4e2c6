"""コマンドラインからスタンプ処理を実行するエントリポイント。"""

import argparse
import asyncio
import sys
import time
import traceback
from typing import List, Optional

from videostamper.exceptions import ValidationError
from videostamper.pipeline import run_project
from videostamper.utils.logger import (
    KVLogger,
    get_logger,
    set_verbosity,
    setup_logging,
    shutdown_logging,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="videostamper",
        description="Burn timestamps and subtitles into videos with FFmpeg drawtext.",
    )
    parser.add_argument(
        "project_path",
        type=str,
        help="Path to the project file (JSON or YAML).",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-i",
        "--info",
        dest="verbosity",
        action="store_const",
        const="info",
        help="Report progress per clip.",
    )
    verbosity.add_argument(
        "-v",
        "--verbose",
        dest="verbosity",
        action="store_const",
        const="verbose",
        help="Also print parsed metadata and generated filters.",
    )
    verbosity.add_argument(
        "-d",
        "--debug",
        dest="verbosity",
        action="store_const",
        const="debug",
        help="Also trace FFmpeg commands and overlap checks.",
    )
    parser.set_defaults(verbosity="none")
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Write one JSON object per log record.",
    )
    parser.add_argument(
        "--log-kv",
        action="store_true",
        help="Prefix log messages with [Key=Value] tags.",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Also write logs to a timestamped file in this directory.",
    )
    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    """コマンドライン引数を解析しスタンプ処理を実行する。終了コードを返す。"""
    args = build_parser().parse_args(argv)

    setup_logging(log_json=args.log_json, log_kv=args.log_kv, log_dir=args.log_dir)
    set_verbosity(args.verbosity)
    logger: KVLogger = get_logger()

    start_time = time.time()
    try:
        logger.kv_info("Stamping started.", kv_pairs={"Event": "StampStart"})
        result = await run_project(args.project_path)
        elapsed_time = time.time() - start_time
        if not result.success:
            logger.kv_error(
                f"Processing failed: {result.message}",
                kv_pairs={"Event": "PipelineError", "Message": result.message},
            )
            return 1
        logger.kv_info(
            f"Total execution time: {elapsed_time:.2f} seconds.",
            kv_pairs={
                "Event": "TotalExecutionTime",
                "Duration": f"{elapsed_time:.2f}s",
            },
        )
        return 0
    except ValidationError as e:
        logger.kv_error(
            f"Validation Error: {e.message}",
            kv_pairs={
                "Event": "ValidationError",
                "Message": e.message,
                "Line": e.line_number,
                "Column": e.column_number,
            },
        )
        return 1
    except Exception as e:
        logger.kv_error(
            f"An unexpected error occurred: {e}",
            kv_pairs={
                "Event": "UnexpectedError",
                "Message": str(e),
                "Traceback": traceback.format_exc(),
            },
        )
        return 1
    finally:
        shutdown_logging()


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
