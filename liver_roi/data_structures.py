from enum import Enum, auto
from typing import Dict, Iterable, Set, Tuple

Idx3d = Tuple[int, int, int]


class ElemType(Enum):
    """Binary voxel classification used while eroding"""
    FOREGROUND = auto()  # liver or tumor
    BACKGROUND = auto()

    def is_foreground(self) -> bool:
        return self is ElemType.FOREGROUND


class UnitVec(Enum):
    """Axis-aligned in-plane unit vectors on a (height, width) slice"""
    HEIGHT_POS1 = (1, 0)   # downwards on the slice
    HEIGHT_NEG1 = (-1, 0)  # upwards
    WIDTH_POS1 = (0, 1)    # right
    WIDTH_NEG1 = (0, -1)   # left

    def add_to_k(self, pos: Idx3d, k: int) -> Idx3d:
        """Return `pos + k * self`, keeping the slice index of `pos`

        Args:
            pos: (z, h, w) voxel index
            k: Number of unit steps

        Returns:
            Idx3d: Shifted voxel index
        """
        dh, dw = self.value
        return (pos[0], pos[1] + k * dh, pos[2] + k * dw)


class ErosionBookkeeping:
    """Transient state of a single center search.

    Voxels are keyed by their row-major flat index inside the volume, so the
    smallest key is also the first voxel in a C-order scan. The
    classification map only holds voxels touched while seeding (foreground
    voxels and the background voxels adjacent to them).
    """

    def __init__(self, shape: Tuple[int, int, int]):
        """Initialize an empty store

        Args:
            shape: (z, h, w) shape of the volume being eroded
        """
        self.shape = shape
        self.classes: Dict[int, ElemType] = {}
        self.visited: Set[int] = set()

    def encode(self, pos: Idx3d) -> int:
        _, h, w = self.shape
        return (pos[0] * h + pos[1]) * w + pos[2]

    def decode(self, key: int) -> Idx3d:
        _, h, w = self.shape
        zh, x = divmod(key, w)
        z, y = divmod(zh, h)
        return (z, y, x)

    def set_background_batch(self, keys: Iterable[int]) -> None:
        for key in keys:
            self.classes[key] = ElemType.BACKGROUND

    def get_val(self, key: int) -> ElemType:
        """Classification of a voxel. Raises KeyError for voxels never seeded."""
        return self.classes[key]

    def is_foreground(self, key: int) -> bool:
        return self.classes[key].is_foreground()

    def set_visited(self, key: int) -> None:
        self.visited.add(key)

    def is_visited(self, key: int) -> bool:
        return key in self.visited

    def __len__(self) -> int:
        return len(self.classes)
