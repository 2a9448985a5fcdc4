"""
Command-line front-end.

Usage:
    cardreader photo.jpg --manifest templates/manifest.yaml
    cardreader photo.jpg --manifest templates/manifest.yaml --format json --save-dir out/

Exit codes: 0 serial found, 1 no serial found, 2 aborted or unreadable input.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from cardreader.common.errors import PipelineAbortError
from cardreader.ocr.config_loader import get_default_config
from cardreader.ocr.config_loader import load_config as load_ocr_config
from cardreader.pipeline.card_reader import CardReader
from cardreader.pipeline.config_loader import PipelineConfig
from cardreader.pipeline.config_loader import get_default_config as get_default_pipeline_config
from cardreader.pipeline.config_loader import load_config as load_pipeline_config
from cardreader.pipeline.types import ReadResult
from cardreader.utils.io import read_image, save_image, save_json
from cardreader.utils.logging_config import setup_logging
from cardreader.utils.visualization import draw_region, stack_side_by_side

logger = logging.getLogger(__name__)

EXIT_FOUND = 0
EXIT_NOT_FOUND = 1
EXIT_ABORTED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cardreader",
        description="Align a card photo to known templates and read its serial number",
    )
    parser.add_argument("image", type=Path, help="Captured image file")
    parser.add_argument("--manifest", type=Path, required=True, help="Template manifest YAML")
    parser.add_argument("--ocr-config", type=Path, default=None, help="OCR config YAML")
    parser.add_argument("--alignment-config", type=Path, default=None, help="Alignment config YAML")
    parser.add_argument("--pipeline-config", type=Path, default=None, help="Pipeline config YAML")
    parser.add_argument(
        "--require-nice",
        action="store_true",
        help="Only accept readings from geometrically plausible alignments",
    )
    parser.add_argument("--workers", type=int, default=None, help="Parallel template attempts")
    parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    parser.add_argument("--save-dir", type=Path, default=None, help="Write aligned/region images here")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def _save_artifacts(result: ReadResult, reader: CardReader, save_dir: Path) -> None:
    save_json(result.to_dict(), save_dir / "result.json")
    best = result.best
    if best is None:
        return
    template = reader.catalog.lookup(best.template_name)
    annotated = draw_region(best.aligned_image, template.region, label=best.text)
    save_image(annotated, save_dir / f"{best.template_name}_aligned.png")
    save_image(best.cropped_region_image, save_dir / f"{best.template_name}_region.png")
    # template on the left, warped capture on the right
    save_image(
        stack_side_by_side(template.image, annotated),
        save_dir / f"{best.template_name}_compare.png",
    )
    logger.info(f"Saved result and images to {save_dir}")


def _print_result(result: ReadResult, output_format: str) -> None:
    if output_format == "json":
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    if result.best is None:
        print("No serial number found")
    else:
        best = result.best
        verdict = "nice" if best.is_nice else "not nice"
        print(
            f"{best.text}  (confidence={best.confidence}, engine={best.engine_name}, "
            f"template={best.template_name}, {verdict})"
        )
    for attempt in result.attempts:
        print(
            f"  - {attempt.template_name}: {attempt.decision}"
            f"{'' if attempt.failure == 'None' else ' (' + attempt.failure + ')'}, "
            f"candidates={attempt.candidate_count}"
        )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    image = read_image(args.image)
    if image is None:
        print(f"Cannot read image: {args.image}", file=sys.stderr)
        return EXIT_ABORTED

    try:
        pipeline_config = (
            load_pipeline_config(args.pipeline_config)
            if args.pipeline_config
            else get_default_pipeline_config()
        )
        if args.workers is not None:
            pipeline_config = PipelineConfig.model_validate(
                {**pipeline_config.model_dump(), "max_workers": args.workers}
            )

        ocr_config = load_ocr_config(args.ocr_config) if args.ocr_config else get_default_config()
        if args.require_nice:
            ocr_config.ocr.selection.require_nice_homography = True

        reader = CardReader.from_manifest(
            args.manifest,
            alignment_config_path=args.alignment_config,
            ocr_config=ocr_config,
            pipeline_config=pipeline_config,
        )

        result = reader.read(image)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ABORTED
    except PipelineAbortError as e:
        print(f"Aborted: {e}", file=sys.stderr)
        return EXIT_ABORTED

    _print_result(result, args.format)
    if args.save_dir is not None:
        _save_artifacts(result, reader, args.save_dir)

    return EXIT_FOUND if result.is_found() else EXIT_NOT_FOUND


if __name__ == "__main__":
    sys.exit(main())
