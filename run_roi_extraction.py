#!/usr/bin/env python3

import os
import argparse
import logging
from liver_roi import parameters
from liver_roi.pipeline import run_roi_extraction

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def main():
    """Main entry point for liver ROI extraction"""
    parser = argparse.ArgumentParser(
        description="Locate the liver center by erosion and extract center/peripheral ROIs"
    )
    parser.add_argument(
        "--input-folder",
        required=True,
        help="Directory containing liver label volumes"
    )
    parser.add_argument(
        "--output-folder",
        help="Directory for output files (default: input_folder/roi_extraction)"
    )
    parser.add_argument(
        "--scan-folder",
        help="Directory containing the matching CT scans, for mean HU values"
    )
    parser.add_argument(
        "--radius",
        type=float,
        default=parameters.RADIUS_MM,
        help=f"ROI radius in mm (default: {parameters.RADIUS_MM})"
    )
    parser.add_argument(
        "--alpha",
        type=float,
        default=parameters.ALPHA,
        help=f"Peripheral blend factor in [0, 1] (default: {parameters.ALPHA})"
    )
    parser.add_argument(
        "--dims",
        type=int,
        choices=[2, 3],
        default=parameters.ROI_DIMS,
        help=f"ROI dimensionality (default: {parameters.ROI_DIMS})"
    )
    parser.add_argument(
        "--isotropic",
        action="store_true",
        help="Erode isotropically, ignoring voxel spacing"
    )
    parser.add_argument(
        "--include-tumor",
        action="store_true",
        help="Keep tumor voxels in the ROIs"
    )
    parser.add_argument(
        "--no-fill-hollow",
        action="store_true",
        help="Do not fill enclosed background holes before eroding"
    )

    args = parser.parse_args()

    # Set default output folder if not specified
    if args.output_folder is None:
        args.output_folder = os.path.join(args.input_folder, "roi_extraction")

    logger.info("Step 1: Verifying input folder...")
    if not os.path.isdir(args.input_folder):
        raise NotADirectoryError(f"Input folder does not exist: {args.input_folder}")

    logger.info("Step 2: Starting ROI extraction using input from: %s", args.input_folder)
    run_roi_extraction(
        input_dir=args.input_folder,
        output_dir=args.output_folder,
        scan_dir=args.scan_folder,
        radius_mm=args.radius,
        alpha=args.alpha,
        dims=args.dims,
        anisotropic=not args.isotropic,
        include_tumor=args.include_tumor or parameters.INCLUDE_TUMOR,
        fill_hollow=not args.no_fill_hollow
    )

    logger.info("Step 3: Processing completed. Results saved to: %s", args.output_folder)

if __name__ == "__main__":
    main()
