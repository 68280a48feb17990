"""
idphoto command line.

Turns a portrait photo into a print-ready ID photo at an exact physical size,
plus an optional print sheet with as many copies as fit.

Usage:
  idphoto --input me.jpg
  idphoto --input me.jpg --size 2-inch --background "#538ED7" --paper a4
  idphoto --input me.jpg --margins 3 3 3 3 --required-dpi 0
  idphoto --input me.jpg --backend rembg --model u2net --save-model-preference
  idphoto --input me.jpg --backend heuristic --quick

Outputs are PNG files with embedded DPI, named
  id-photo_<size>_<dpi>dpi_<timestamp>.png
  print-layout_<size>_<dpi>dpi_<timestamp>.png
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from idphoto.app.settings import load_settings, save_settings
from idphoto.core.errors import IDPhotoError
from idphoto.core.models import PAPER_TYPES, PHOTO_SIZES, PaperMargins, ProcessingParams
from idphoto.export.files import build_filename, write_png
from idphoto.imaging.faces import MediaPipeFaceDetector
from idphoto.imaging.segmentation import MODEL_SPECS, load_segmenter
from idphoto.pipeline import ImageProcessingOrchestrator

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Generate a print-ready ID photo and print sheet from a portrait.")
    p.add_argument("--input", "-i", required=True, help="Path to input image (JPEG, PNG or WebP)")
    p.add_argument("--output-dir", "-o", default=".", help="Directory for the generated PNG files (default: .)")
    p.add_argument("--size", choices=sorted(PHOTO_SIZES), default="1-inch", help="Photo size (default: 1-inch)")
    p.add_argument("--background", default="#FFFFFF", help="Background color, hex or rgb() (default: #FFFFFF)")
    p.add_argument("--dpi", type=int, default=300, help="Output resolution (default: 300)")
    p.add_argument(
        "--required-dpi",
        type=int,
        default=300,
        help="Minimum resolution the source crop must reach; 0 disables the check (default: 300)",
    )
    p.add_argument("--paper", choices=sorted(PAPER_TYPES), default="6-inch", help="Print sheet (default: 6-inch)")
    p.add_argument(
        "--margins",
        nargs=4,
        type=float,
        metavar=("TOP", "BOTTOM", "LEFT", "RIGHT"),
        help="Printer margins in mm; the sheet is cropped to the printable area",
    )
    p.add_argument("--no-layout", action="store_true", help="Skip the print sheet")
    p.add_argument("--model", choices=sorted(MODEL_SPECS), help="Segmentation model (default: saved preference)")
    p.add_argument(
        "--backend",
        choices=("onnx", "rembg", "heuristic"),
        default="onnx",
        help="Segmentation backend (default: onnx)",
    )
    p.add_argument(
        "--quick",
        action="store_true",
        help="With --backend heuristic, treat very bright or very dark pixels as background",
    )
    p.add_argument("--model-dir", help="Directory with <model>.onnx files (default: $U2NET_HOME or ~/.u2net)")
    p.add_argument("--save-model-preference", action="store_true", help="Remember --model for later runs")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return p


def _params_from_args(args: argparse.Namespace) -> ProcessingParams:
    margins = PaperMargins(*args.margins) if args.margins else None
    return ProcessingParams(
        size_id=args.size,
        background_color=args.background,
        paper_type=args.paper,
        margins=margins,
        required_dpi=args.required_dpi or None,
        output_dpi=args.dpi,
        build_print_layout=not args.no_layout,
    )


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = load_settings()
    if args.model:
        settings = replace(settings, segmentation_model=args.model)
        if args.save_model_preference:
            path = save_settings(settings)
            logger.info(f"Saved model preference to {path}")

    try:
        segmenter = load_segmenter(
            settings.segmentation_model,
            backend=args.backend,
            model_dir=Path(args.model_dir) if args.model_dir else None,
            quick=args.quick,
        )
    except IDPhotoError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    orchestrator = ImageProcessingOrchestrator(face_detector=MediaPipeFaceDetector(), segmenter=segmenter)
    outcome = orchestrator.process_image(Path(args.input), _params_from_args(args))

    for warning in outcome.warnings:
        print(f"WARNING: {warning}", file=sys.stderr)

    if not outcome.ok:
        for err in outcome.errors:
            print(f"ERROR [{err.type}]: {err.message}", file=sys.stderr)
        return 2

    result = outcome.result
    stamp = datetime.now()
    out_dir = Path(args.output_dir)

    photo_path = write_png(result.photo_png, out_dir, build_filename("id-photo", args.size, args.dpi, stamp))
    print(f"Saved: {photo_path}")

    if result.print_layout_png is not None:
        sheet_name = build_filename("print-layout", args.size, args.dpi, stamp)
        sheet_path = write_png(result.print_layout_png, out_dir, sheet_name)
        print(f"Saved: {sheet_path} ({result.layout_plan.total_photos} photos)")

    orchestrator.reset()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
