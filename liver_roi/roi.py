import heapq
import logging
import math
from typing import Callable, List, Set

from .data_structures import Idx3d
from .volume import LabelVolume, is_foreground_label

logger = logging.getLogger(__name__)


def check_radius(radius: float) -> None:
    if not math.isfinite(radius) or radius < 0.0:
        raise ValueError(f"ROI radius must be a finite, non-negative number of mm, got {radius}")


def check_dims(dims: int) -> None:
    if dims not in (2, 3):
        raise ValueError(f"ROI dimensionality must be 2 or 3, got {dims}")


class RoiGenerator:
    """Collects the foreground voxels within a physical radius of a center"""

    def __init__(self, volume: LabelVolume, center: Idx3d):
        """
        Args:
            volume: Label volume (read only)
            center: (z, h, w) center voxel; must be in bounds, may be background
        """
        center = tuple(int(c) for c in center)
        if not volume.in_bounds(center):
            raise ValueError(f"ROI center {center} is outside the volume of shape {volume.shape}")
        self.volume = volume
        self.center = center

    def distance_squared_3d(self, pos: Idx3d) -> float:
        """Squared distance in mm^2 from the center, over all three axes"""
        z_mm, h_mm, w_mm = self.volume.spacing
        dz = (pos[0] - self.center[0]) * z_mm
        dh = (pos[1] - self.center[1]) * h_mm
        dw = (pos[2] - self.center[2]) * w_mm
        return dz * dz + dh * dh + dw * dw

    def distance_squared_2d(self, pos: Idx3d) -> float:
        """Squared in-plane distance in mm^2 from the center"""
        _, h_mm, w_mm = self.volume.spacing
        dh = (pos[1] - self.center[1]) * h_mm
        dw = (pos[2] - self.center[2]) * w_mm
        return dh * dh + dw * dw

    def _expand(self, radius: float, distance: Callable[[Idx3d], float],
                neighbours: Callable[[Idx3d], List[Idx3d]]) -> List[Idx3d]:
        # Closest voxel first. Expansion walks through background too so a
        # thin background ring cannot cut off foreground inside the radius.
        limit = radius * radius
        heap = [(0.0, self.center)]
        visited = set()
        accepted = []
        while heap:
            dist, pos = heapq.heappop(heap)
            if dist > limit:
                break
            if pos in visited:
                continue
            visited.add(pos)
            accepted.append(pos)
            for neigh in neighbours(pos):
                if neigh not in visited:
                    heapq.heappush(heap, (distance(neigh), neigh))
        return accepted

    def extract_roi_3d(self, radius: float, include_tumor: bool = True) -> Set[Idx3d]:
        """Foreground voxels inside the ball of `radius` mm around the center"""
        check_radius(radius)
        accepted = self._expand(radius, self.distance_squared_3d, self.volume.diamond_neighbours)
        return {p for p in accepted
                if is_foreground_label(self.volume.label_at(p), include_tumor)}

    def extract_roi_2d(self, radius: float, include_tumor: bool = True) -> Set[Idx3d]:
        """Foreground voxels inside the disc of `radius` mm on the center's slice"""
        check_radius(radius)
        accepted = self._expand(radius, self.distance_squared_2d, self.volume.neighbours_hw)
        return {p for p in accepted
                if is_foreground_label(self.volume.label_at(p), include_tumor)}


def extract_roi(volume: LabelVolume, center: Idx3d, radius_mm: float,
                include_tumor: bool = True, dims: int = 3) -> Set[Idx3d]:
    """Extract a radius-bounded ROI around `center`

    Args:
        volume: Label volume
        center: (z, h, w) center voxel
        radius_mm: Physical radius in mm (>= 0)
        include_tumor: Keep tumor voxels in the result
        dims: 3 for a ball, 2 for a disc on the center's slice

    Returns:
        Set[Idx3d]: Unordered (z, h, w) voxel indices
    """
    check_radius(radius_mm)
    check_dims(dims)
    generator = RoiGenerator(volume, center)
    if dims == 3:
        roi = generator.extract_roi_3d(radius_mm, include_tumor)
    else:
        roi = generator.extract_roi_2d(radius_mm, include_tumor)
    logger.debug(f"{dims}D ROI of radius {radius_mm}mm at {generator.center}: {len(roi)} voxels")
    return roi
