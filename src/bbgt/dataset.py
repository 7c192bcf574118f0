from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import numpy as np
from PIL import Image

from .annotation import AnnotationRecord
from .codec import bb_load

LOGGER = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".bmp"}


@dataclass(frozen=True)
class ImageRecord:
    """An image on disk and the bbGt text file annotating it, if any."""

    image_id: str
    image_path: Path
    annotation_path: Optional[Path]

    def load_image(self) -> np.ndarray:
        with Image.open(self.image_path) as image:
            return np.asarray(image.convert("RGB"), dtype=np.uint8)

    def load_annotations(self) -> List[AnnotationRecord]:
        if self.annotation_path is None:
            return []
        return bb_load(self.annotation_path)


def _resolve_directory(root: Path, candidates: Sequence[str]) -> Optional[Path]:
    for name in candidates:
        candidate = root / name
        if candidate.exists():
            return candidate
    return None


def discover_dataset(
    dataset_root: Path,
    *,
    images_subdir: Optional[str] = None,
    annotations_subdir: Optional[str] = None,
    splits_filename: Optional[str] = "splits.json",
) -> Dict[str, Optional[Path]]:
    """
    Locate the image and annotation folders of a dataset. Explicit subfolder
    names win, otherwise `images`/`JPEGImages` and `annotations`/`Annotations`
    are tried in that order.
    """

    dataset_root = Path(dataset_root).expanduser().resolve()
    if not dataset_root.exists():
        raise FileNotFoundError(f"Dataset root '{dataset_root}' does not exist")

    images_dir = (
        dataset_root / images_subdir
        if images_subdir
        else _resolve_directory(dataset_root, ("images", "JPEGImages"))
    )
    annotations_dir = (
        dataset_root / annotations_subdir
        if annotations_subdir
        else _resolve_directory(dataset_root, ("annotations", "Annotations"))
    )

    if images_dir is None or not images_dir.exists():
        raise FileNotFoundError(f"Could not locate the images directory inside {dataset_root}")
    if annotations_dir is None or not annotations_dir.exists():
        LOGGER.warning("Annotations directory was not found, images will have no objects")
        annotations_dir = None

    splits_path = dataset_root / splits_filename if splits_filename else None
    return {
        "root": dataset_root,
        "images": images_dir,
        "annotations": annotations_dir,
        "splits": splits_path,
    }


def load_split_ids(splits_path: Optional[Path], split_name: str) -> Optional[List[str]]:
    """Return the identifiers belonging to `split_name` from the JSON file."""

    if splits_path is None or not splits_path.exists():
        return None

    with open(splits_path, "r", encoding="utf-8") as handle:
        data = json.load(handle)

    split_data = data.get(split_name)
    if split_data is None:
        return None
    if isinstance(split_data, dict) and "images" in split_data:
        split_data = split_data["images"]
    if not isinstance(split_data, Iterable):
        return None

    return [Path(str(item)).stem for item in split_data]


class DatasetIndex:
    """Images of one split paired with their bbGt annotation files."""

    def __init__(
        self,
        dataset_root: Path,
        *,
        split: str = "train",
        images_subdir: Optional[str] = None,
        annotations_subdir: Optional[str] = None,
        splits_filename: Optional[str] = "splits.json",
    ):
        paths = discover_dataset(
            dataset_root,
            images_subdir=images_subdir,
            annotations_subdir=annotations_subdir,
            splits_filename=splits_filename,
        )
        self.root = paths["root"]
        self.images_dir = paths["images"]
        self.annotations_dir = paths["annotations"]
        self.splits_path = paths["splits"]
        self.split = split

        self.records = self._build_records()

    def _build_records(self) -> List[ImageRecord]:
        image_files = {
            image.stem: image
            for image in self.images_dir.glob("*")
            if image.suffix.lower() in IMAGE_SUFFIXES
        }

        selected_ids = load_split_ids(self.splits_path, self.split)
        if not selected_ids:
            LOGGER.warning(
                "Split '%s' missing in %s, using every discovered image",
                self.split,
                self.splits_path,
            )
            selected_ids = sorted(image_files.keys())

        records: List[ImageRecord] = []
        for image_id in selected_ids:
            image_path = image_files.get(image_id)
            if image_path is None:
                LOGGER.warning("Image '%s' from split not found on disk", image_id)
                continue
            records.append(
                ImageRecord(
                    image_id=image_id,
                    image_path=image_path,
                    annotation_path=self._find_annotation(image_id),
                )
            )
        return records

    def _find_annotation(self, image_id: str) -> Optional[Path]:
        if self.annotations_dir is None:
            return None
        txt_path = self.annotations_dir / f"{image_id}.txt"
        if txt_path.exists():
            return txt_path
        return None

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ImageRecord]:
        return iter(self.records)
