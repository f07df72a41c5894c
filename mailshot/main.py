import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from .config import get_env, load_config, resolve_output_dir
from .jmap_client import JMAPClient, JMAPError
from .processing import ProcessingError, format_summary, process_emails
from .screenshot import ScreenshotGenerator


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError("must be 0 or greater")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mailshot",
        description="Render emails from a JMAP folder to images and archive them.",
    )
    parser.add_argument("--config", default=None, help="YAML config file (defaults are used when omitted)")
    parser.add_argument(
        "--limit", type=non_negative_int, default=0, help="Maximum emails to process (default: 0 = all)"
    )
    parser.add_argument("--dry-run", action="store_true", help="Preview operations without making changes")
    parser.add_argument("--source", default=None, help="Source folder name")
    parser.add_argument("--archive", default=None, help="Archive folder name")
    parser.add_argument("--output-dir", default=None, help="Directory for screenshots")
    parser.add_argument("--debug", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    config_path = Path(args.config) if args.config else None
    try:
        cfg = load_config(config_path)
    except (OSError, yaml.YAMLError) as exc:
        raise SystemExit(f"Failed to load config: {exc}")
    jmap_cfg = cfg["jmap"]
    shot_cfg = cfg["screenshot"]

    api_key_env = jmap_cfg["api_key_env"]
    api_key = get_env(api_key_env)
    if not api_key:
        raise SystemExit(f"{api_key_env} environment variable is required")

    source_folder = args.source or cfg["folders"]["source"]
    archive_folder = args.archive or cfg["folders"]["archive"]
    output_dir = Path(args.output_dir) if args.output_dir else resolve_output_dir(cfg, config_path)

    print("Starting email screenshot generator...")

    timeout = jmap_cfg.get("timeout_sec")
    try:
        client = JMAPClient(
            api_key,
            session_url=jmap_cfg["session_url"],
            timeout=float(timeout) if timeout else None,
        )
    except JMAPError as exc:
        raise SystemExit(f"Failed to create JMAP client: {exc}")
    print("✓ Connected to JMAP server")

    try:
        generator = ScreenshotGenerator(
            output_dir,
            int(shot_cfg["width"]),
            int(shot_cfg["height"]),
            timeout_sec=float(shot_cfg["timeout_sec"]),
            settle_ms=int(shot_cfg["settle_ms"]),
            image_format=str(shot_cfg["format"]),
            quality=int(shot_cfg["quality"]),
            headless=bool(shot_cfg["headless"]),
            cdp_url=str(shot_cfg.get("cdp_url") or "").strip(),
        )
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Failed to create screenshot generator: {exc}")

    with generator:
        try:
            result = process_emails(
                client,
                generator,
                source_folder,
                archive_folder,
                limit=args.limit,
                dry_run=args.dry_run,
                output=sys.stdout,
            )
        except ProcessingError as exc:
            raise SystemExit(f"Failed to process emails: {exc}")

    print()
    print(format_summary(result))


if __name__ == "__main__":
    main()
