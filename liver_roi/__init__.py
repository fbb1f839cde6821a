from .volume import LabelVolume, read_label, fill_background_hollow
from .sector import AxisDirection, Orientation, LlsSectorPattern, MissingOrientationError
from .erosion import CenterLocator, find_center
from .roi import RoiGenerator, extract_roi
from .peripheral import peripheral_centers, peripheral_roi, center_roi
