"""Command line front end.

    liveness-detect face.jpg --skip-occlusion-check --debug

Prints the result as JSON. Exit status: 0 live, 1 not live, 2 on error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .api import build_pipeline, get_version
from .config import PipelineConfig, load_settings
from .errors import LivenessError
from .logging_context import setup_logging
from .pipeline.image import load_image

logger = logging.getLogger(__name__)

EXIT_LIVE = 0
EXIT_NOT_LIVE = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="liveness-detect", description="Passive face liveness check for one image")
    parser.add_argument("image", type=str, help="Path to the face image")
    parser.add_argument("--skip-quality-check", action="store_true", help="Disable the quality gate")
    parser.add_argument("--skip-occlusion-check", action="store_true", help="Disable the occlusion gate")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=str, default=None, help="YAML settings file")
    parser.add_argument("--models-dir", type=str, default=None, help="Directory holding the .onnx models")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug)

    config = PipelineConfig(
        skip_quality_check=args.skip_quality_check,
        skip_occlusion_check=args.skip_occlusion_check,
        debug_logging=args.debug,
    )

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, OSError) as e:
        logger.error("Failed to load settings: %s", e)
        print(json.dumps({"error": {"kind": "config", "message": str(e)}}, indent=2))
        return EXIT_ERROR
    if args.models_dir:
        settings = replace(settings, models_dir=str(Path(args.models_dir).expanduser().resolve()))

    try:
        image = load_image(args.image)
        with build_pipeline(config, settings) as pipeline:
            result = pipeline.run(image)
    except LivenessError as e:
        logger.error("Liveness check failed: %s", e)
        print(json.dumps({"error": e.to_dict()}, indent=2))
        return EXIT_ERROR

    print(json.dumps(result.to_dict(), indent=2))
    return EXIT_LIVE if result.is_live else EXIT_NOT_LIVE


if __name__ == "__main__":
    sys.exit(main())
