"""Orientation descriptor of a CT series on the horizontal slice.

Slices are stored row-major, rows being "height" and columns "width".
Taking a slice pixel (10, 10) as origin:

1. (11, 10) lies in the HEIGHT_POS direction;
2. (9, 10) lies in the HEIGHT_NEG direction;
3. (10, 11) lies in the WIDTH_POS direction;
4. (10, 9) lies in the WIDTH_NEG direction.
"""
import logging
from enum import Enum, auto
from typing import Sequence, Tuple

import SimpleITK as sitk

from .data_structures import UnitVec

logger = logging.getLogger(__name__)


class AxisDirection(Enum):
    """Direction of the fixed ray of the left-lateral-sector pattern"""
    HEIGHT_POS = auto()
    HEIGHT_NEG = auto()
    WIDTH_POS = auto()
    WIDTH_NEG = auto()


class Orientation(Enum):
    """Rotational sense from the fixed ray to the free ray"""
    CLOCKWISE = auto()
    COUNTER_CLOCKWISE = auto()


# (anterior, posterior, lateral) unit vectors per known pattern
PERIPHERAL_DIRECTIONS = {
    (AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE):
        (UnitVec.HEIGHT_POS1, UnitVec.HEIGHT_NEG1, UnitVec.WIDTH_NEG1),
    (AxisDirection.HEIGHT_NEG, Orientation.CLOCKWISE):
        (UnitVec.HEIGHT_NEG1, UnitVec.HEIGHT_POS1, UnitVec.WIDTH_NEG1),
    (AxisDirection.HEIGHT_POS, Orientation.CLOCKWISE):
        (UnitVec.HEIGHT_POS1, UnitVec.HEIGHT_NEG1, UnitVec.WIDTH_POS1),
}

# (qform_code, (quatern_b, quatern_c, quatern_d)) -> pattern, as observed on LiTS
_HEADER_PATTERNS = {
    (0, (0, 0, 0)): (AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE),
    (1, (0, 1, 0)): (AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE),
    (2, (0, 1, 0)): (AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE),
    (2, (0, 0, 0)): (AxisDirection.HEIGHT_POS, Orientation.CLOCKWISE),
    (2, (0, 0, 1)): (AxisDirection.HEIGHT_NEG, Orientation.CLOCKWISE),
}


class MissingOrientationError(ValueError):
    """Raised when an image carries none of the NIfTI qform fields"""
    pass


def _to_axis_component(value: float) -> int:
    rounded = round(value)
    if abs(value - rounded) >= 1e-9:
        raise ValueError(f"Quaternion component {value} does not describe an axis vector")
    return int(rounded)


class LlsSectorPattern:
    """Orientation descriptor: fixed-ray direction plus rotational sense"""

    def __init__(self, axis: AxisDirection, orientation: Orientation):
        self.axis = axis
        self.orientation = orientation

    def __eq__(self, other):
        if not isinstance(other, LlsSectorPattern):
            return False
        return self.axis == other.axis and self.orientation == other.orientation

    def __hash__(self):
        return hash((self.axis, self.orientation))

    def __repr__(self):
        return f"LlsSectorPattern({self.axis.name}, {self.orientation.name})"

    @classmethod
    def from_header(cls, qform_code: int, quatern: Sequence[float]) -> 'LlsSectorPattern':
        """Build the pattern from NIfTI qform fields

        Args:
            qform_code: NIfTI qform_code
            quatern: (quatern_b, quatern_c, quatern_d)

        Returns:
            LlsSectorPattern: Pattern of the series

        Raises:
            ValueError: If the quaternion is not an axis vector or the
                combination is unknown
        """
        components = tuple(_to_axis_component(q) for q in quatern)
        key = (int(qform_code), components)
        if key not in _HEADER_PATTERNS:
            raise ValueError(f"Unknown orientation: qform_code={key[0]}, quatern_bcd={components}")
        return cls(*_HEADER_PATTERNS[key])

    @classmethod
    def from_image(cls, image: sitk.Image) -> 'LlsSectorPattern':
        """Build the pattern from the NIfTI metadata SimpleITK keeps on an image

        Raises:
            MissingOrientationError: If any qform key is absent (non-NIfTI input)
            ValueError: If the keys describe an unknown orientation
        """
        keys = ('qform_code', 'quatern_b', 'quatern_c', 'quatern_d')
        missing = [k for k in keys if not image.HasMetaDataKey(k)]
        if missing:
            raise MissingOrientationError(f"Image metadata lacks orientation keys: {', '.join(missing)}")
        qform_code = int(float(image.GetMetaData('qform_code')))
        quatern = [float(image.GetMetaData(k)) for k in keys[1:]]
        return cls.from_header(qform_code, quatern)

    def peripheral_unit_vectors(self) -> Tuple[UnitVec, UnitVec, UnitVec]:
        """Unit directions in the order (anterior, posterior, lateral)

        Raises:
            ValueError: For a pattern outside the known table
        """
        try:
            return PERIPHERAL_DIRECTIONS[(self.axis, self.orientation)]
        except KeyError:
            raise ValueError(f"No peripheral directions for {self!r}") from None
