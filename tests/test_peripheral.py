# tests/test_peripheral.py
import numpy as np
import pytest
import SimpleITK as sitk

from liver_roi.data_structures import UnitVec
from liver_roi.erosion import find_center
from liver_roi.peripheral import center_roi, peripheral_centers, peripheral_roi
from liver_roi.sector import AxisDirection, LlsSectorPattern, MissingOrientationError, Orientation
from liver_roi.volume import LabelVolume, fill_background_hollow

CCW_POS = LlsSectorPattern(AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE)


@pytest.mark.parametrize("axis, orientation, expected", [
    (AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE,
     (UnitVec.HEIGHT_POS1, UnitVec.HEIGHT_NEG1, UnitVec.WIDTH_NEG1)),
    (AxisDirection.HEIGHT_NEG, Orientation.CLOCKWISE,
     (UnitVec.HEIGHT_NEG1, UnitVec.HEIGHT_POS1, UnitVec.WIDTH_NEG1)),
    (AxisDirection.HEIGHT_POS, Orientation.CLOCKWISE,
     (UnitVec.HEIGHT_POS1, UnitVec.HEIGHT_NEG1, UnitVec.WIDTH_POS1)),
])
def test_direction_table(axis, orientation, expected):
    assert LlsSectorPattern(axis, orientation).peripheral_unit_vectors() == expected


@pytest.mark.parametrize("axis, orientation", [
    (AxisDirection.HEIGHT_NEG, Orientation.COUNTER_CLOCKWISE),
    (AxisDirection.WIDTH_POS, Orientation.CLOCKWISE),
    (AxisDirection.WIDTH_NEG, Orientation.COUNTER_CLOCKWISE),
])
def test_unknown_direction_pattern(axis, orientation, plate_labels):
    pattern = LlsSectorPattern(axis, orientation)
    with pytest.raises(ValueError):
        pattern.peripheral_unit_vectors()
    with pytest.raises(ValueError):
        peripheral_centers(LabelVolume(plate_labels), (1, 5, 5), pattern, 0.5)


@pytest.mark.parametrize("qform, quatern, axis, orientation", [
    (0, (0.0, 0.0, 0.0), AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE),
    (1, (0.0, 1.0, 0.0), AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE),
    (2, (0.0, 1.0, 0.0), AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE),
    (2, (0.0, 0.0, 0.0), AxisDirection.HEIGHT_POS, Orientation.CLOCKWISE),
    (2, (0.0, 0.0, 1.0), AxisDirection.HEIGHT_NEG, Orientation.CLOCKWISE),
])
def test_pattern_from_header(qform, quatern, axis, orientation):
    assert LlsSectorPattern.from_header(qform, quatern) == LlsSectorPattern(axis, orientation)


def test_pattern_from_header_errors():
    with pytest.raises(ValueError):
        LlsSectorPattern.from_header(2, (0.0, 0.5, 0.0))
    with pytest.raises(ValueError):
        LlsSectorPattern.from_header(1, (0.0, 0.0, 1.0))


def test_pattern_from_image_metadata():
    image = sitk.Image(4, 4, 4, sitk.sitkUInt8)
    image.SetMetaData('qform_code', '2')
    image.SetMetaData('quatern_b', '0')
    image.SetMetaData('quatern_c', '0')
    image.SetMetaData('quatern_d', '1')
    assert LlsSectorPattern.from_image(image) == LlsSectorPattern(
        AxisDirection.HEIGHT_NEG, Orientation.CLOCKWISE)

    with pytest.raises(MissingOrientationError):
        LlsSectorPattern.from_image(sitk.Image(4, 4, 4, sitk.sitkUInt8))


def test_pattern_from_image_unknown_combination():
    image = sitk.Image(4, 4, 4, sitk.sitkUInt8)
    for key, value in [('qform_code', '1'), ('quatern_b', '0'),
                       ('quatern_c', '0'), ('quatern_d', '1')]:
        image.SetMetaData(key, value)
    with pytest.raises(ValueError) as excinfo:
        LlsSectorPattern.from_image(image)
    assert not isinstance(excinfo.value, MissingOrientationError)


def test_peripheral_centers(plate_labels):
    volume = LabelVolume(plate_labels)
    # five liver voxels from the center to each edge; 0.5 * 5 rounds up
    assert peripheral_centers(volume, (1, 5, 5), CCW_POS, 0.5) == [(1, 8, 5), (1, 2, 5), (1, 5, 2)]
    assert peripheral_centers(volume, (1, 5, 5), CCW_POS, 0.0) == [(1, 5, 5)] * 3
    # alpha 1 lands on the first voxel past the liver
    assert peripheral_centers(volume, (1, 5, 5), CCW_POS, 1.0) == [(1, 10, 5), (1, 0, 5), (1, 5, 0)]


def test_peripheral_centers_other_orientation(plate_labels):
    volume = LabelVolume(plate_labels)
    pattern = LlsSectorPattern(AxisDirection.HEIGHT_POS, Orientation.CLOCKWISE)
    assert peripheral_centers(volume, (1, 3, 3), pattern, 1.0) == [(1, 10, 3), (1, 0, 3), (1, 3, 10)]


def test_peripheral_roi_zero_radius(plate_labels):
    volume = LabelVolume(plate_labels)
    rois = peripheral_roi(volume, CCW_POS, 0.0, 0.5, center=(1, 5, 5))
    assert rois == [{(1, 8, 5)}, {(1, 2, 5)}, {(1, 5, 2)}]
    rois_2d = peripheral_roi(volume, CCW_POS, 0.0, 0.5, dims=2, center=(1, 5, 5))
    assert rois_2d == rois


def test_peripheral_roi_radius(plate_labels):
    volume = LabelVolume(plate_labels)
    anterior, posterior, lateral = peripheral_roi(volume, CCW_POS, 1.0, 0.5, center=(1, 5, 5))
    # liver is a single slice, so the 3D ball reduces to the in-plane cross
    assert anterior == {(1, 8, 5), (1, 7, 5), (1, 9, 5), (1, 8, 4), (1, 8, 6)}
    assert len(posterior) == 5
    assert len(lateral) == 5


def test_peripheral_roi_locates_center(plate_labels):
    volume = LabelVolume(plate_labels)
    center = find_center(volume)
    assert peripheral_roi(volume, CCW_POS, 2.0, 0.3) == \
        peripheral_roi(volume, CCW_POS, 2.0, 0.3, center=center)


def test_peripheral_roi_no_foreground():
    volume = LabelVolume(np.zeros((4, 6, 6), np.uint8))
    assert peripheral_roi(volume, CCW_POS, 5.0, 0.5) == [set(), set(), set()]
    assert peripheral_roi(volume, CCW_POS, 5.0, 0.5, dims=2, anisotropic=True) == [set(), set(), set()]


def test_peripheral_contract_violations(plate_labels):
    volume = LabelVolume(plate_labels)
    with pytest.raises(ValueError):
        peripheral_roi(volume, CCW_POS, 1.0, 1.5, center=(1, 5, 5))
    with pytest.raises(ValueError):
        peripheral_roi(volume, CCW_POS, -1.0, 0.5, center=(1, 5, 5))
    with pytest.raises(ValueError):
        peripheral_roi(volume, CCW_POS, 1.0, 0.5, center=(0, 5, 5))
    with pytest.raises(ValueError):
        peripheral_centers(volume, (1, 5, 5), CCW_POS, -0.1)


def test_peripheral_roi_liver_on_grid_face():
    data = np.zeros((3, 11, 11), np.uint8)
    data[1, 1:10, 0:10] = 1
    volume = LabelVolume(data)
    # the lateral walk leaves the grid, so its ROI center is out of bounds
    assert peripheral_centers(volume, (1, 5, 5), CCW_POS, 1.0)[2] == (1, 5, -1)
    with pytest.raises(ValueError):
        peripheral_roi(volume, CCW_POS, 1.0, 1.0, center=(1, 5, 5))
    # after clearing the border the same call succeeds
    filled, _ = fill_background_hollow(volume)
    assert len(peripheral_roi(filled, CCW_POS, 1.0, 1.0, center=(1, 5, 5))) == 3


def test_center_roi(cube_labels):
    volume = LabelVolume(cube_labels)
    assert center_roi(volume, 0.0) == {(2, 2, 2)}
    assert center_roi(volume, 1.0, dims=2) == {(2, 2, 2), (2, 1, 2), (2, 3, 2), (2, 2, 1), (2, 2, 3)}
    assert center_roi(LabelVolume(np.zeros((3, 3, 3), np.uint8)), 2.0) == set()
