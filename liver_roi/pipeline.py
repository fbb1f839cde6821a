import os
import json
import logging
from typing import Dict, List, Optional

import SimpleITK as sitk
from tqdm import tqdm

from . import parameters
from .attenuation import mean_hu, read_scan
from .erosion import CenterLocator
from .peripheral import PERIPHERAL_NAMES, peripheral_centers
from .roi import extract_roi
from .sector import LlsSectorPattern, MissingOrientationError
from .volume import LabelVolume, fill_background_hollow

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def case_name(path: str) -> str:
    """File name without any of the recognized label suffixes"""
    name = os.path.basename(path)
    for suffix in sorted(parameters.LABEL_SUFFIXES, key=len, reverse=True):
        if name.endswith(suffix):
            return name[:-len(suffix)]
    return os.path.splitext(name)[0]


class RoiExtractionPipeline:
    """
    Locates the liver center of one labeled CT volume and extracts the
    center and peripheral ROIs around it.
    """

    def __init__(self,
                 label_file: str,
                 output_dir: str,
                 scan_file: Optional[str] = None,
                 orientation: Optional[LlsSectorPattern] = None,
                 radius_mm: float = parameters.RADIUS_MM,
                 alpha: float = parameters.ALPHA,
                 anisotropic: bool = parameters.ANISOTROPIC,
                 include_tumor: bool = parameters.INCLUDE_TUMOR,
                 dims: int = parameters.ROI_DIMS,
                 fill_hollow: bool = parameters.FILL_HOLLOW):
        """
        Initialize the pipeline

        Args:
            label_file: Path to the label volume (0 background, 1 liver, 2 tumor)
            output_dir: Directory for ROI masks and the summary
            scan_file: Optional CT scan on the same grid, for mean HU values
            orientation: Orientation descriptor; read from the label's NIfTI
                metadata when omitted
            radius_mm: ROI radius in mm
            alpha: Peripheral blend factor in [0, 1]
            anisotropic: Use anisotropic erosion
            include_tumor: Keep tumor voxels in the ROIs
            dims: 3 for ball ROIs, 2 for disc ROIs on the center slice
            fill_hollow: Fill enclosed background holes before eroding
        """
        self.label_file = label_file
        self.output_dir = output_dir
        self.scan_file = scan_file
        self.orientation = orientation
        self.radius_mm = radius_mm
        self.alpha = alpha
        self.anisotropic = anisotropic
        self.include_tumor = include_tumor
        self.dims = dims
        self.fill_hollow = fill_hollow

        # Create output directory
        os.makedirs(output_dir, exist_ok=True)

    def _resolve_orientation(self, image: sitk.Image) -> Optional[LlsSectorPattern]:
        if self.orientation is not None:
            return self.orientation
        try:
            return LlsSectorPattern.from_image(image)
        except MissingOrientationError as e:
            logger.warning(f"Skipping peripheral ROIs: {str(e)}")
            return None

    def _save_roi(self, volume: LabelVolume, roi, name: str) -> str:
        path = os.path.join(self.output_dir, f'{name}_roi.nrrd')
        sitk.WriteImage(volume.to_mask_image(roi), path)
        return path

    def process(self) -> Dict:
        """Run center location and ROI extraction, returning the summary"""
        logger.info(f"Processing {self.label_file}...")

        # Step 1: Load label volume
        if not os.path.exists(self.label_file):
            raise FileNotFoundError(f"Label file not found: {self.label_file}")
        image = sitk.ReadImage(self.label_file)
        volume = LabelVolume.from_image(image)
        orientation = self._resolve_orientation(image)
        background, liver, tumor = volume.statistics()
        logger.info(f"Shape {volume.shape}, spacing {volume.spacing}, "
                    f"liver={liver}, tumor={tumor}")

        # Step 2: Remove enclosed background holes
        if self.fill_hollow:
            volume, changed = fill_background_hollow(volume)
            if changed:
                logger.info("Filled enclosed background holes")

        summary = {
            'case': case_name(self.label_file),
            'shape': list(volume.shape),
            'spacing': list(volume.spacing),
            'anisotropic': self.anisotropic,
            'radius_mm': self.radius_mm,
            'alpha': self.alpha,
            'dims': self.dims,
            'include_tumor': self.include_tumor,
            'center': None,
            'rois': {}
        }

        # Step 3: Erode to the center
        locator = CenterLocator(volume, anisotropic=self.anisotropic, show_progress=True)
        center = locator.locate()
        summary['erosion_rounds'] = len(locator.eroded_counts)
        if center is None:
            logger.warning(f"No liver in {self.label_file}, nothing to extract")
            self._write_summary(summary)
            return summary
        summary['center'] = list(center)

        # Step 4: Extract ROIs
        rois = {'center': (center, extract_roi(volume, center, self.radius_mm,
                                                self.include_tumor, self.dims))}
        if orientation is not None:
            centers = peripheral_centers(volume, center, orientation, self.alpha)
            for name, c in zip(PERIPHERAL_NAMES, centers):
                rois[name] = (c, extract_roi(volume, c, self.radius_mm,
                                             self.include_tumor, self.dims))

        # Step 5: Attenuation and outputs
        scan = read_scan(self.scan_file) if self.scan_file else None
        if scan is not None and scan.shape != volume.shape:
            raise ValueError(f"Scan shape {scan.shape} does not match label shape {volume.shape}")

        for name, (roi_center, roi) in rois.items():
            entry = {
                'center': list(roi_center),
                'voxels': len(roi),
                'mask': os.path.basename(self._save_roi(volume, roi, name))
            }
            if scan is not None:
                entry['mean_hu'] = mean_hu(scan, roi)
            summary['rois'][name] = entry
            logger.info(f"{name} ROI: {len(roi)} voxels")

        self._write_summary(summary)
        return summary

    def _write_summary(self, summary: Dict) -> None:
        with open(os.path.join(self.output_dir, 'roi_summary.json'), 'w') as f:
            json.dump(summary, f, indent=2)


def _find_scan(scan_dir: Optional[str], label_path: str) -> Optional[str]:
    """Scan matching a label file: same name, or LiTS 'segmentation' -> 'volume'"""
    if scan_dir is None:
        return None
    name = os.path.basename(label_path)
    for candidate in (name, name.replace('segmentation', 'volume')):
        path = os.path.join(scan_dir, candidate)
        if os.path.exists(path):
            return path
    logger.warning(f"No scan found for {name} in {scan_dir}")
    return None


def run_roi_extraction(input_dir: str, output_dir: str = None, scan_dir: str = None,
                       **params) -> List[Dict]:
    """Run the ROI extraction pipeline on every label volume in a directory

    Args:
        input_dir: Directory containing label volumes
        output_dir: Directory to save results (default: input_dir/roi_extraction)
        scan_dir: Optional directory of matching CT scans for mean HU values
        **params: Forwarded to RoiExtractionPipeline (radius_mm, alpha, ...)

    Returns:
        List[Dict]: Per-case summaries
    """
    logger.info("Starting ROI extraction...")

    # Set up output directory
    if output_dir is None:
        output_dir = os.path.join(input_dir, "roi_extraction")
    os.makedirs(output_dir, exist_ok=True)

    # Set up logging to file
    log_file = os.path.join(output_dir, "roi_extraction.log")
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logging.getLogger().addHandler(file_handler)

    try:
        label_files = sorted(
            os.path.join(input_dir, f) for f in os.listdir(input_dir)
            if f.endswith(parameters.LABEL_SUFFIXES)
        )
        logger.info(f"Found {len(label_files)} label volumes")

        summaries = []
        for label_file in tqdm(label_files, desc="Extracting ROIs", unit="cases"):
            pipeline = RoiExtractionPipeline(
                label_file=label_file,
                output_dir=os.path.join(output_dir, case_name(label_file)),
                scan_file=_find_scan(scan_dir, label_file),
                **params
            )
            summaries.append(pipeline.process())

        with open(os.path.join(output_dir, 'summary.json'), 'w') as f:
            json.dump(summaries, f, indent=2)

        logger.info("ROI extraction completed successfully.")
        return summaries

    except Exception as e:
        logger.error(f"Error during ROI extraction: {str(e)}")
        raise
    finally:
        logging.getLogger().removeHandler(file_handler)
        file_handler.close()
