import os
import logging
from typing import Iterable, Optional, Tuple

import numpy as np
import SimpleITK as sitk

from .data_structures import Idx3d

logger = logging.getLogger(__name__)


def read_scan(path: str) -> np.ndarray:
    """Read a CT scan as a float32 (Z, H, W) array of HU values"""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Scan file not found: {path}")
    logger.info(f"Loading CT scan from {path}")
    return sitk.GetArrayFromImage(sitk.ReadImage(path)).astype(np.float32)


def mean_hu(scan: np.ndarray, voxels: Iterable[Idx3d]) -> Optional[float]:
    """Mean HU value of the scan over an ROI

    Args:
        scan: (Z, H, W) HU array on the same grid as the label volume
        voxels: (z, h, w) indices of the ROI

    Returns:
        Optional[float]: Mean attenuation, or None for an empty ROI
    """
    voxels = list(voxels)
    if not voxels:
        return None
    index = tuple(np.array(voxels).T)
    return float(np.mean(scan[index], dtype=np.float64))


def mean_hu_2d(scan: np.ndarray, z_index: int, pixels: Iterable[Tuple[int, int]]) -> Optional[float]:
    """Mean HU value over (h, w) pixels of slice `z_index`; None if empty"""
    return mean_hu(scan, [(z_index, h, w) for h, w in pixels])
