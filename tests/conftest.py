# tests/conftest.py
# Ensure project root is importable as a module during pytest runs
import pathlib
import sys

import numpy as np
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def cube_labels():
    """5x5x5 grid, background border, 3x3x3 liver block"""
    data = np.zeros((5, 5, 5), np.uint8)
    data[1:4, 1:4, 1:4] = 1
    return data


@pytest.fixture
def plate_labels():
    """Single-slice 9x9 liver plate in a (3, 11, 11) grid"""
    data = np.zeros((3, 11, 11), np.uint8)
    data[1, 1:10, 1:10] = 1
    return data
