"""Central module containing types, enums and default settings for curve handling."""

from __future__ import annotations

from enum import Enum, IntEnum, auto
from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

###############################################################################
# Types
###############################################################################


Vec3Like = Union[Sequence[float], NDArray[np.float64]]  # (x, y) or (x, y, z)


###############################################################################
# Enums and Consts
###############################################################################


class AnchorPointType(Enum):
    """Enum to define how the handles of an anchor point behave."""

    NONE = auto()  # no effective handles, adjoining segments degrade
    CONNECTED = auto()  # handles mirrored through the anchor
    BROKEN = auto()  # handles independent


class SegmentDegree(IntEnum):
    """Degree of the Bezier polynomial used for one curve segment."""

    LINEAR = 1
    QUADRATIC = 2
    CUBIC = 3


DEFAULT_SAMPLE_RATE: int = 30
DEFAULT_CLOSED: bool = True
DEFAULT_POINT_NAME: str = "Point"
DEFAULT_HANDLE1_OFFSET: tuple[float, float, float] = (-2.0, 0.0, 0.0)
DEFAULT_HANDLE2_OFFSET: tuple[float, float, float] = (2.0, 0.0, 0.0)
DEFAULT_RIBBON_WIDTH: float = 0.5

# Lengths below this value are treated as degenerate (coincident points)
LENGTH_EPS: float = 1.0e-12

ZERO_VEC3: NDArray[np.float64] = np.zeros(3, dtype=np.float64)
ZERO_VEC3.flags.writeable = False


###############################################################################
# Functions
###############################################################################


def as_vec3(value: Vec3Like) -> NDArray[np.float64]:
    """Convert a 2D or 3D coordinate into a fresh float64 array of shape (3,).

    2D input is placed in the XY plane (z = 0).

    Args:
        value: Sequence or array with 2 or 3 components

    Returns:
        NDArray[np.float64]: New array of shape (3,)

    Raises:
        ValueError: If value does not have 2 or 3 components
    """
    arr = np.array(value, dtype=np.float64).reshape(-1)
    if arr.shape[0] == 3:
        return arr
    if arr.shape[0] == 2:
        return np.array([arr[0], arr[1], 0.0], dtype=np.float64)
    raise ValueError(f"Expected 2 or 3 coordinates, got {arr.shape[0]}: {value!r}")


def readonly_view(arr: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return a read-only view sharing memory with arr."""
    view = arr.view()
    view.flags.writeable = False
    return view


def normalized(vec: NDArray[np.float64]) -> NDArray[np.float64]:
    """Unit vector in the direction of vec, or a zero vector if vec is degenerate."""
    norm = float(np.linalg.norm(vec))
    if norm <= LENGTH_EPS:
        return np.zeros(3, dtype=np.float64)
    return vec / norm
