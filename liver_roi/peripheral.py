import logging
import math
from typing import List, Optional, Set

from .data_structures import Idx3d, UnitVec
from .erosion import find_center
from .roi import check_dims, check_radius, extract_roi
from .sector import LlsSectorPattern
from .volume import LabelVolume, is_liver_or_tumor

logger = logging.getLogger(__name__)

PERIPHERAL_NAMES = ('anterior', 'posterior', 'lateral')


def _round_half_away(value: float) -> int:
    return int(math.floor(value + 0.5))


def check_alpha(alpha: float) -> None:
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"alpha must lie in [0, 1], got {alpha}")


def check_center(volume: LabelVolume, center: Idx3d) -> Idx3d:
    """Validate a caller-supplied center: in bounds and liver or tumor"""
    center = tuple(int(c) for c in center)
    if not volume.in_bounds(center):
        raise ValueError(f"Center {center} is outside the volume of shape {volume.shape}")
    if not is_liver_or_tumor(volume.label_at(center)):
        raise ValueError(f"Center {center} is not a liver or tumor voxel")
    return center


def peripheral_center(volume: LabelVolume, center: Idx3d, direction: UnitVec, alpha: float) -> Idx3d:
    """Walk from `center` along `direction` on its slice and blend by `alpha`

    Steps are counted while the walker stays on liver or tumor; the result is
    `center + round(alpha * steps) * direction`.
    """
    steps = 0
    pos = center
    while volume.in_bounds(pos) and is_liver_or_tumor(volume.label_at(pos)):
        pos = direction.add_to_k(pos, 1)
        steps += 1
    return direction.add_to_k(center, _round_half_away(steps * alpha))


def peripheral_centers(volume: LabelVolume, center: Idx3d, orientation: LlsSectorPattern,
                       alpha: float) -> List[Idx3d]:
    """Anterior, posterior and lateral centers derived from the main center

    Args:
        volume: Label volume
        center: Main center, must be a liver or tumor voxel
        orientation: Orientation descriptor of the series
        alpha: Blend factor in [0, 1]; 0 keeps the main center

    Returns:
        List[Idx3d]: [anterior, posterior, lateral]
    """
    check_alpha(alpha)
    center = check_center(volume, center)
    return [peripheral_center(volume, center, d, alpha)
            for d in orientation.peripheral_unit_vectors()]


def peripheral_roi(volume: LabelVolume, orientation: LlsSectorPattern, radius_mm: float,
                   alpha: float, include_tumor: bool = True, dims: int = 3,
                   center: Optional[Idx3d] = None, anisotropic: bool = False) -> List[Set[Idx3d]]:
    """Three peripheral ROIs (anterior, posterior, lateral)

    Args:
        volume: Label volume
        orientation: Orientation descriptor of the series
        radius_mm: ROI radius in mm
        alpha: Blend factor in [0, 1]
        include_tumor: Keep tumor voxels in the ROIs
        dims: 3 for balls, 2 for discs on the center's slice
        center: Main center; located by erosion when omitted
        anisotropic: Erosion mode used when `center` is omitted

    Returns:
        List[Set[Idx3d]]: Three voxel sets; all empty if there is no foreground

    Raises:
        ValueError: On an invalid argument, or when a peripheral center falls
            outside the grid. That happens when the liver touches a grid face
            (with alpha close to 1); run `fill_background_hollow` first to
            clear the border.
    """
    check_radius(radius_mm)
    check_alpha(alpha)
    check_dims(dims)

    if center is None:
        center = find_center(volume, anisotropic)
        if center is None:
            return [set(), set(), set()]

    centers = peripheral_centers(volume, center, orientation, alpha)
    rois = []
    for name, c in zip(PERIPHERAL_NAMES, centers):
        roi = extract_roi(volume, c, radius_mm, include_tumor, dims)
        logger.info(f"{name.capitalize()} center {c}: {len(roi)} voxels")
        rois.append(roi)
    return rois


def center_roi(volume: LabelVolume, radius_mm: float, anisotropic: bool = False,
               include_tumor: bool = True, dims: int = 3) -> Set[Idx3d]:
    """ROI around the morphological center; empty if there is no foreground"""
    check_radius(radius_mm)
    check_dims(dims)
    center = find_center(volume, anisotropic)
    if center is None:
        return set()
    return extract_roi(volume, center, radius_mm, include_tumor, dims)
