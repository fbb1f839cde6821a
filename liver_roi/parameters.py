# ROI Extraction Parameter Summary
# This file documents the default parameters used by the ROI extraction
# pipeline and explains their effects on the results.

#------------------------------------------------------------------------------
# Center Location Parameters
#------------------------------------------------------------------------------

# Whether erosion compensates for unequal in-plane / slice spacing
ANISOTROPIC = True
# Effect: True makes the surface retreat at the same rate in mm on every axis
# False peels one voxel layer per round, biasing the center toward the coarser axis

# Fill enclosed background holes before eroding
FILL_HOLLOW = True
# Effect: Erosion assumes no background void is enclosed by liver
# Disable only for labels that are already hole-free

#------------------------------------------------------------------------------
# ROI Parameters
#------------------------------------------------------------------------------

# ROI radius (in mm)
RADIUS_MM = 15.0
# Effect: Larger values average attenuation over more tissue
# Smaller values stay clear of vessels and the liver boundary

# ROI dimensionality
ROI_DIMS = 3
# Effect: 3 collects a ball across slices, 2 a disc on the center slice only

# Whether tumor voxels belong to the ROI
INCLUDE_TUMOR = False
# Effect: Tumor is always treated as liver during erosion
# Excluding it keeps attenuation estimates on healthy parenchyma

#------------------------------------------------------------------------------
# Peripheral ROI Parameters
#------------------------------------------------------------------------------

# Blend factor between the center and the liver boundary
ALPHA = 0.5
# Effect: 0 keeps peripheral ROIs at the center, 1 moves them to the first
# voxel past the liver boundary

#------------------------------------------------------------------------------
# Input Parameters
#------------------------------------------------------------------------------

# File suffixes recognized as label volumes
LABEL_SUFFIXES = ('.nii', '.nii.gz', '.nrrd')
