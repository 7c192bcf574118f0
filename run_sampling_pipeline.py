from __future__ import annotations

import argparse
import json
import logging
import os
import random
import sys
from pathlib import Path
from typing import List, Optional, Sequence

PROJECT_ROOT = Path(__file__).resolve().parent
SRC_DIR = PROJECT_ROOT / "src"
if SRC_DIR.exists() and str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dotenv import load_dotenv
from PIL import Image
from tqdm import tqdm

from bbgt.dataset import DatasetIndex
from bbgt.ground_truth import GroundTruthParams, to_gt
from bbgt.sampling import SampleParams, sample_data

load_dotenv()

logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.INFO)
LOGGER = logging.getLogger("sampling")

DEFAULT_DATASET_ROOT = Path(os.environ.get("BBGT_DATA_ROOT", PROJECT_ROOT / "data"))


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sample positive training patches from bbGt annotations")
    parser.add_argument(
        "--dataset-root",
        default=DEFAULT_DATASET_ROOT,
        type=Path,
        help="Dataset root with images/ and annotations/ (defaults to $BBGT_DATA_ROOT)",
    )
    parser.add_argument("--split", default="train", help="Dataset split to process")
    parser.add_argument("--output-dir", default=Path("outputs/samples"), type=Path, help="Destination for patches")
    parser.add_argument("--labels", nargs="+", default=["person"], help="Object labels treated as positives")
    parser.add_argument("--height-range", type=float, nargs=2, default=None, metavar=("MIN", "MAX"))
    parser.add_argument("--width-range", type=float, nargs=2, default=None, metavar=("MIN", "MAX"))
    parser.add_argument("--area-range", type=float, nargs=2, default=None, metavar=("MIN", "MAX"))
    parser.add_argument("--aspect-ratio-range", type=float, nargs=2, default=None, metavar=("MIN", "MAX"))
    parser.add_argument("--visibility-range", type=float, nargs=2, default=None, metavar=("MIN", "MAX"))
    parser.add_argument("--max-count", type=int, default=100, help="Maximum patches sampled per image")
    parser.add_argument(
        "--target-dims",
        type=float,
        nargs="+",
        default=None,
        help="Aspect ratio (one value) or patch size as HEIGHT WIDTH",
    )
    parser.add_argument("--pad", type=float, default=0.0, help="Fraction of extra context around each patch")
    parser.add_argument("--pad-mode", default="replicate", help="replicate, symmetric, circular or a number")
    parser.add_argument("--seed", type=int, default=0, help="Seed for the subsampling step")
    return parser.parse_args(argv)


def build_gt_params(args: argparse.Namespace) -> GroundTruthParams:
    ranges = {
        name: tuple(getattr(args, name))
        for name in (
            "height_range",
            "width_range",
            "area_range",
            "aspect_ratio_range",
            "visibility_range",
        )
        if getattr(args, name) is not None
    }
    return GroundTruthParams(**ranges)


def _pad_mode(value: str):
    try:
        return float(value)
    except ValueError:
        return value


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    dataset = DatasetIndex(args.dataset_root, split=args.split)
    LOGGER.info("Loaded split '%s' with %d images", args.split, len(dataset))

    if args.target_dims is not None and len(args.target_dims) not in (1, 2):
        raise SystemExit("--target-dims takes one aspect ratio or HEIGHT WIDTH")
    target_dims = None
    if args.target_dims:
        target_dims = args.target_dims[0] if len(args.target_dims) == 1 else tuple(args.target_dims)

    gt_params = build_gt_params(args)
    rng = random.Random(args.seed)
    patches_dir = args.output_dir / "patches" / args.split
    summary_dir = args.output_dir / "summaries" / args.split
    patches_dir.mkdir(parents=True, exist_ok=True)
    summary_dir.mkdir(parents=True, exist_ok=True)

    total = 0
    for record in tqdm(dataset, desc="Sampling patches"):
        objects = record.load_annotations()
        gt_boxes, ids = to_gt(objects, args.labels, gt_params)
        if len(gt_boxes) == 0:
            continue

        image = record.load_image()
        params = SampleParams(
            max_count=args.max_count,
            candidate_boxes=gt_boxes,
            target_dims=target_dims,
            pad_fraction=args.pad,
            pad_mode=_pad_mode(args.pad_mode),
        )
        boxes, patches = sample_data(image, params, rng=rng)

        saved: List[str] = []
        for index, patch in enumerate(patches):
            patch_path = patches_dir / f"{record.image_id}_{index:03d}.png"
            Image.fromarray(patch).save(patch_path)
            saved.append(patch_path.name)
        total += len(saved)

        with open(summary_dir / f"{record.image_id}.json", "w", encoding="utf-8") as handle:
            json.dump(
                {
                    "image_id": record.image_id,
                    "ground_truth": gt_boxes.tolist(),
                    "object_ids": ids,
                    "samples": [
                        {"bbox": list(map(int, box[:4])), "patch": name}
                        for box, name in zip(boxes, saved)
                    ],
                },
                handle,
                indent=2,
            )

    LOGGER.info("Saved %d patches to %s", total, patches_dir)


if __name__ == "__main__":
    main()
