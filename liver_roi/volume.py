import os
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import SimpleITK as sitk
from scipy import ndimage

from .data_structures import Idx3d

logger = logging.getLogger(__name__)

# Label values of the LiTS annotation scheme
BACKGROUND = 0
LIVER = 1
TUMOR = 2
BOUNDARY = 3  # reserved for liver boundary pixels, never produced here


def is_liver(label) -> bool:
    return label == LIVER


def is_liver_or_tumor(label) -> bool:
    return label == LIVER or label == TUMOR


def is_foreground_label(label, include_tumor: bool = True) -> bool:
    """Foreground test used by ROI filtering: liver, plus tumor if requested"""
    if include_tumor:
        return is_liver_or_tumor(label)
    return is_liver(label)


class LabelVolume:
    """
    Read-only labeled CT volume.
    - `data` has shape (Z, H, W): slice, height (rows), width (columns)
    - `spacing` is (z_mm, height_mm, width_mm), i.e. SimpleITK spacing reversed
    """

    def __init__(self, data: np.ndarray, spacing: Sequence[float] = (1.0, 1.0, 1.0),
                 origin: Optional[Tuple[float, ...]] = None,
                 direction: Optional[Tuple[float, ...]] = None):
        """Wrap a label array

        Args:
            data: 3D (Z, H, W) label array, or a single 2D (H, W) slice
            spacing: Voxel size in mm, same axis order as `data`
            origin: Physical origin copied from the source image, if any
            direction: Direction cosines copied from the source image, if any
        """
        data = np.asarray(data)
        if data.size and (data.min() < 0 or data.max() > np.iinfo(np.uint8).max):
            raise ValueError(f"Label values must lie in [0, 255], got range "
                             f"[{data.min()}, {data.max()}]")
        data = np.array(data, dtype=np.uint8)
        spacing = tuple(float(s) for s in spacing)
        if data.ndim == 2:
            data = data[np.newaxis]
            if len(spacing) == 2:
                spacing = (1.0,) + spacing
        if data.ndim != 3:
            raise ValueError(f"Label data must be 2D or 3D, got {data.ndim} dimensions")
        if len(spacing) != 3:
            raise ValueError(f"Expected 3 spacing values, got {len(spacing)}")
        if any(not np.isfinite(s) or s <= 0 for s in spacing):
            raise ValueError(f"Voxel spacing must be positive, got {spacing}")

        data.flags.writeable = False
        self.data = data
        self.spacing: Tuple[float, float, float] = spacing
        self.origin = origin
        self.direction = direction

    @classmethod
    def from_image(cls, image: sitk.Image) -> 'LabelVolume':
        """Build a volume from a SimpleITK label image"""
        array = sitk.GetArrayFromImage(image)
        # ITK spacing is (x, y, z); the array is indexed (z, y, x)
        spacing = tuple(reversed(image.GetSpacing()))
        return cls(array, spacing, origin=image.GetOrigin(), direction=image.GetDirection())

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.data.shape

    @property
    def z_mm(self) -> float:
        return self.spacing[0]

    @property
    def height_mm(self) -> float:
        return self.spacing[1]

    @property
    def width_mm(self) -> float:
        return self.spacing[2]

    def is_isotropic(self) -> bool:
        z, h, w = self.spacing
        return z == h and z == w

    def in_bounds(self, pos: Idx3d) -> bool:
        z, h, w = self.shape
        return 0 <= pos[0] < z and 0 <= pos[1] < h and 0 <= pos[2] < w

    def label_at(self, pos: Idx3d) -> int:
        return int(self.data[pos])

    def _check_collect(self, candidates: Iterable[Idx3d]) -> List[Idx3d]:
        return [p for p in candidates if self.in_bounds(p)]

    def diamond_neighbours(self, pos: Idx3d) -> List[Idx3d]:
        """In-bounds 6-connected neighbours of `pos`"""
        z, h, w = pos
        return self._check_collect([
            (z - 1, h, w), (z + 1, h, w),
            (z, h - 1, w), (z, h + 1, w),
            (z, h, w - 1), (z, h, w + 1),
        ])

    def neighbours_z(self, pos: Idx3d) -> List[Idx3d]:
        """In-bounds neighbours on the adjacent slices"""
        z, h, w = pos
        return self._check_collect([(z - 1, h, w), (z + 1, h, w)])

    def neighbours_hw(self, pos: Idx3d) -> List[Idx3d]:
        """In-bounds 4-connected neighbours on the same slice"""
        z, h, w = pos
        return self._check_collect([
            (z, h - 1, w), (z, h + 1, w),
            (z, h, w - 1), (z, h, w + 1),
        ])

    def foreground_mask(self, include_tumor: bool = True) -> np.ndarray:
        if include_tumor:
            return (self.data == LIVER) | (self.data == TUMOR)
        return self.data == LIVER

    def statistics(self) -> List[int]:
        """Voxel counts as [background, liver, tumor]"""
        counts = np.bincount(self.data.ravel(), minlength=3)
        return [int(c) for c in counts[:3]]

    def to_mask_image(self, voxels: Iterable[Idx3d]) -> sitk.Image:
        """Rasterize a voxel set into a uint8 SimpleITK mask on this grid"""
        mask = np.zeros(self.shape, dtype=np.uint8)
        voxels = list(voxels)
        if voxels:
            mask[tuple(np.array(voxels).T)] = 1
        image = sitk.GetImageFromArray(mask)
        image.SetSpacing(tuple(reversed(self.spacing)))
        if self.origin is not None and len(self.origin) == 3:
            image.SetOrigin(self.origin)
        if self.direction is not None and len(self.direction) == 9:
            image.SetDirection(self.direction)
        return image


def read_label(path: str) -> LabelVolume:
    """Read a label file (NIfTI, NRRD, ...) into a LabelVolume"""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Label file not found: {path}")
    logger.info(f"Loading label volume from {path}")
    image = sitk.ReadImage(path)
    volume = LabelVolume.from_image(image)
    logger.info(f"Loaded label volume with shape {volume.shape}, spacing {volume.spacing}")
    return volume


def fill_background_hollow(volume: LabelVolume) -> Tuple[LabelVolume, bool]:
    """Fill enclosed background holes with liver.

    The six faces of the grid are first forced to background, which makes
    the per-slice outer background connected. Then on every slice, each
    4-connected background component other than the largest one is filled
    with LIVER.

    Args:
        volume: Input label volume (left untouched)

    Returns:
        filled: New label volume without enclosed background holes
        non_trivial: Whether any slice had more than one background component
    """
    data = volume.data.copy()
    data[0, :, :] = BACKGROUND
    data[-1, :, :] = BACKGROUND
    data[:, 0, :] = BACKGROUND
    data[:, -1, :] = BACKGROUND
    data[:, :, 0] = BACKGROUND
    data[:, :, -1] = BACKGROUND

    non_trivial = False
    filled_voxels = 0
    for z in range(data.shape[0]):
        # Default 2D structuring element is 4-connectivity
        labeled, num = ndimage.label(data[z] == BACKGROUND)
        if num <= 1:
            continue
        non_trivial = True
        sizes = np.bincount(labeled.ravel())
        sizes[0] = 0
        largest = int(np.argmax(sizes))
        holes = (labeled > 0) & (labeled != largest)
        filled_voxels += int(holes.sum())
        data[z][holes] = LIVER

    if non_trivial:
        logger.info(f"Filled {filled_voxels} enclosed background voxels")
    filled = LabelVolume(data, volume.spacing, origin=volume.origin, direction=volume.direction)
    return filled, non_trivial
