# tests/test_pipeline.py
import json
import os

import numpy as np
import pytest
import SimpleITK as sitk

from liver_roi.attenuation import mean_hu, mean_hu_2d, read_scan
from liver_roi.pipeline import RoiExtractionPipeline, case_name, run_roi_extraction
from liver_roi.sector import AxisDirection, LlsSectorPattern, Orientation


def write_volume(path, array, spacing=(1.0, 1.0, 1.0)):
    image = sitk.GetImageFromArray(array)
    image.SetSpacing(spacing)
    sitk.WriteImage(image, str(path))
    return str(path)


def liver_cube():
    data = np.zeros((7, 7, 7), np.uint8)
    data[1:6, 1:6, 1:6] = 1
    return data


def test_case_name():
    assert case_name("/data/segmentation-3.nii.gz") == "segmentation-3"
    assert case_name("case.nrrd") == "case"
    assert case_name("case.mha") == "case"


def test_mean_hu():
    scan = np.arange(27, dtype=np.float32).reshape(3, 3, 3)
    assert mean_hu(scan, set()) is None
    assert mean_hu(scan, {(0, 0, 0), (2, 2, 2)}) == pytest.approx(13.0)
    assert mean_hu_2d(scan, 1, [(0, 0), (0, 1)]) == pytest.approx(9.5)
    assert mean_hu_2d(scan, 1, []) is None


def test_read_scan(tmp_path):
    path = write_volume(tmp_path / "scan.nrrd", np.full((3, 4, 5), -100, np.int16))
    scan = read_scan(path)
    assert scan.dtype == np.float32
    assert scan.shape == (3, 4, 5)
    with pytest.raises(FileNotFoundError):
        read_scan(str(tmp_path / "missing.nrrd"))


def test_pipeline_center_only(tmp_path):
    label = write_volume(tmp_path / "case.nrrd", liver_cube())
    scan = write_volume(tmp_path / "scan.nrrd", np.full((7, 7, 7), 50, np.int16))
    out = tmp_path / "out"

    summary = RoiExtractionPipeline(label, str(out), scan_file=scan, radius_mm=1.0).process()

    assert summary['case'] == "case"
    assert summary['center'] == [3, 3, 3]
    # no qform metadata in NRRD headers, so only the center ROI is produced
    assert list(summary['rois']) == ['center']
    assert summary['rois']['center']['voxels'] == 7
    assert summary['rois']['center']['mean_hu'] == pytest.approx(50.0)
    assert (out / "center_roi.nrrd").exists()

    with open(out / "roi_summary.json") as f:
        assert json.load(f)['center'] == [3, 3, 3]

    mask = sitk.GetArrayFromImage(sitk.ReadImage(str(out / "center_roi.nrrd")))
    assert mask.sum() == 7
    assert mask[3, 3, 3] == 1


def test_pipeline_with_orientation(tmp_path):
    label = write_volume(tmp_path / "case.nrrd", liver_cube())
    pattern = LlsSectorPattern(AxisDirection.HEIGHT_POS, Orientation.COUNTER_CLOCKWISE)
    out = tmp_path / "out"

    summary = RoiExtractionPipeline(label, str(out), orientation=pattern,
                                    radius_mm=0.0, alpha=0.5).process()

    rois = summary['rois']
    assert rois['anterior']['center'] == [3, 5, 3]
    assert rois['posterior']['center'] == [3, 1, 3]
    assert rois['lateral']['center'] == [3, 3, 1]
    assert all(entry['voxels'] == 1 for entry in rois.values())
    assert 'mean_hu' not in rois['center']
    for name in ('center', 'anterior', 'posterior', 'lateral'):
        assert (out / f"{name}_roi.nrrd").exists()


def test_pipeline_unknown_nifti_orientation(tmp_path):
    # SimpleITK writes qform_code 1 with quatern (0, 0, 1) for an identity direction
    label = write_volume(tmp_path / "case.nii.gz", liver_cube())
    with pytest.raises(ValueError, match="Unknown orientation"):
        RoiExtractionPipeline(label, str(tmp_path / "out")).process()


def test_pipeline_scan_shape_mismatch(tmp_path):
    label = write_volume(tmp_path / "case.nrrd", liver_cube())
    scan = write_volume(tmp_path / "scan.nrrd", np.zeros((5, 5, 5), np.int16))
    with pytest.raises(ValueError):
        RoiExtractionPipeline(label, str(tmp_path / "out"), scan_file=scan).process()


def test_run_roi_extraction(tmp_path):
    labels = tmp_path / "labels"
    scans = tmp_path / "scans"
    labels.mkdir()
    scans.mkdir()
    write_volume(labels / "case_a.nrrd", liver_cube())
    write_volume(labels / "case_b.nrrd", np.zeros((4, 4, 4), np.uint8))
    write_volume(scans / "case_a.nrrd", np.full((7, 7, 7), 30, np.int16))
    out = tmp_path / "out"

    summaries = run_roi_extraction(str(labels), str(out), str(scans), radius_mm=1.0)

    assert [s['case'] for s in summaries] == ['case_a', 'case_b']
    assert summaries[0]['center'] == [3, 3, 3]
    assert summaries[0]['rois']['center']['mean_hu'] == pytest.approx(30.0)
    # an empty label volume has no center and no ROIs
    assert summaries[1]['center'] is None
    assert summaries[1]['rois'] == {}

    assert (out / "summary.json").exists()
    assert (out / "roi_extraction.log").exists()
    assert (out / "case_a" / "center_roi.nrrd").exists()
    assert (out / "case_b" / "roi_summary.json").exists()


def test_run_roi_extraction_default_output(tmp_path):
    write_volume(tmp_path / "case.nrrd", liver_cube())
    run_roi_extraction(str(tmp_path), radius_mm=2.0, dims=2)
    assert os.path.exists(tmp_path / "roi_extraction" / "case" / "center_roi.nrrd")
