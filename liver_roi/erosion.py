import logging
from typing import Callable, Iterator, List, Optional, Set, Tuple

import numpy as np
from tqdm import tqdm

from .data_structures import ElemType, ErosionBookkeeping, Idx3d
from .volume import LabelVolume

logger = logging.getLogger(__name__)

# Returns the neighbours that shield a candidate during a restricted round
Shield = Callable[[Idx3d], List[Idx3d]]


def _adjacent_slices(axis: int):
    lo = [slice(None)] * 3
    hi = [slice(None)] * 3
    lo[axis] = slice(None, -1)
    hi[axis] = slice(1, None)
    return tuple(lo), tuple(hi)


def seed_bookkeeping(volume: LabelVolume) -> Tuple[ErosionBookkeeping, Set[int], int]:
    """Classify the volume once and collect the initial surface.

    Liver and tumor are both foreground. A foreground voxel is on the
    surface when one of its in-bounds diamond neighbours is background;
    those background neighbours are the only background voxels recorded.

    Args:
        volume: Label volume to erode

    Returns:
        book: Bookkeeping store with the seeded classification
        frontier: Flat keys of the surface voxels
        count: Number of foreground voxels
    """
    book = ErosionBookkeeping(volume.shape)
    fg = volume.foreground_mask(include_tumor=True)
    count = int(fg.sum())
    if count == 0:
        return book, set(), 0

    bg = ~fg
    surface = np.zeros_like(fg)
    touched = np.zeros_like(fg)
    for axis in range(3):
        lo, hi = _adjacent_slices(axis)
        surface[lo] |= fg[lo] & bg[hi]
        surface[hi] |= fg[hi] & bg[lo]
        touched[lo] |= bg[lo] & fg[hi]
        touched[hi] |= bg[hi] & fg[lo]

    book.classes.update(dict.fromkeys(np.flatnonzero(fg).tolist(), ElemType.FOREGROUND))
    book.classes.update(dict.fromkeys(np.flatnonzero(touched).tolist(), ElemType.BACKGROUND))
    frontier = set(np.flatnonzero(surface).tolist())

    logger.debug(f"Seeded {count} foreground voxels, {len(frontier)} on the surface")
    return book, frontier, count


def erosion_round(volume: LabelVolume, book: ErosionBookkeeping, candidates: Set[int],
                  shield: Optional[Shield] = None) -> Tuple[List[int], Set[int]]:
    """Run one erosion round over the current frontier

    Args:
        volume: Volume being eroded (read only)
        book: Bookkeeping store; visited marks are added here
        candidates: Current frontier, consumed by this round
        shield: For restricted rounds, returns the neighbours of a candidate
            that must all be foreground for it to be kept. None for a full round.

    Returns:
        eroded: Flat keys eroded in this round (still classified foreground)
        upcoming: Next frontier
    """
    eroded = []
    upcoming = set()
    for key in candidates:
        if book.is_visited(key):
            continue
        pos = book.decode(key)

        if shield is not None:
            guards = shield(pos)
            if all(book.is_foreground(book.encode(p)) for p in guards):
                # Covered on the restricted axis, retry next round
                upcoming.add(key)
                continue

        book.set_visited(key)
        eroded.append(key)
        for neigh in volume.diamond_neighbours(pos):
            neigh_key = book.encode(neigh)
            if not book.is_visited(neigh_key) and book.is_foreground(neigh_key):
                upcoming.add(neigh_key)

    return eroded, upcoming


class CenterLocator:
    """
    Erodes the liver + tumor region of a label volume down to its
    morphological center.

    Isotropic mode peels one diamond layer per round. Anisotropic mode
    alternates full rounds with rounds restricted to the finer axis so the
    surface retreats by the same distance in mm on every axis.
    """

    def __init__(self, volume: LabelVolume, anisotropic: bool = False,
                 show_progress: bool = False):
        """
        Initialize the locator

        Args:
            volume: Label volume; it must not contain enclosed background holes
            anisotropic: Compensate for unequal in-plane / slice spacing
            show_progress: Display a tqdm bar over erosion rounds
        """
        if anisotropic and volume.height_mm != volume.width_mm:
            raise ValueError(
                f"Anisotropic erosion needs equal in-plane spacing, got "
                f"height={volume.height_mm}mm, width={volume.width_mm}mm")
        self.volume = volume
        self.anisotropic = anisotropic
        self.show_progress = show_progress
        self.initial_count = 0
        self.eroded_counts: List[int] = []

    def _round_schedule(self) -> Iterator[Optional[Shield]]:
        """Yield the shield to use for each successive round (None = full round)"""
        volume = self.volume
        if not self.anisotropic or volume.is_isotropic():
            while True:
                yield None

        if volume.height_mm > volume.z_mm:
            step, barrier, shield = volume.z_mm, volume.height_mm, volume.neighbours_z
        else:
            step, barrier, shield = volume.height_mm, volume.z_mm, volume.neighbours_hw

        cur_step = 0.0
        while True:
            cur_step += step
            if cur_step >= barrier:
                cur_step -= barrier
                yield None
            else:
                yield shield

    def locate(self) -> Optional[Idx3d]:
        """Erode to the center

        Returns:
            Optional[Idx3d]: The center voxel, or None if there is no
            foreground. Among the voxels of the last round, the one with the
            smallest row-major index is returned.
        """
        book, frontier, remaining = seed_bookkeeping(self.volume)
        self.initial_count = remaining
        self.eroded_counts = []
        if remaining == 0:
            logger.warning("No liver or tumor voxels found, no center")
            return None

        logger.info(f"Eroding {remaining} foreground voxels "
                    f"({'anisotropic' if self.anisotropic else 'isotropic'})")
        schedule = self._round_schedule()
        with tqdm(desc="Erosion rounds", leave=False, disable=not self.show_progress) as pbar:
            while True:
                if not frontier:
                    raise ValueError("Foreground has no background neighbour to erode from; "
                                     "fill the volume border with background first")
                eroded, upcoming = erosion_round(self.volume, book, frontier, next(schedule))
                self.eroded_counts.append(len(eroded))

                if len(eroded) == remaining:
                    center = book.decode(min(eroded))
                    break

                book.set_background_batch(eroded)
                remaining -= len(eroded)
                frontier = upcoming

                logger.debug(f"Round {len(self.eroded_counts)}: eroded {len(eroded)}, "
                             f"{remaining} remaining")
                pbar.update(1)
                pbar.set_postfix({"remaining": remaining})

        logger.info(f"Center {center} found after {len(self.eroded_counts)} rounds")
        return center


def find_center(volume: LabelVolume, anisotropic: bool = False,
                show_progress: bool = False) -> Optional[Idx3d]:
    """Morphological center of the liver + tumor region, or None if there is none"""
    return CenterLocator(volume, anisotropic, show_progress).locate()
