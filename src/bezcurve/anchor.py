"""Anchor points of a Bezier curve: position, handles and point type in curve-local space."""

from __future__ import annotations

import logging
import weakref
from typing import TYPE_CHECKING, Optional

import numpy as np
from numpy.typing import NDArray

from bezcurve.common import (
    DEFAULT_POINT_NAME,
    AnchorPointType,
    Vec3Like,
    as_vec3,
    normalized,
    readonly_view,
)

if TYPE_CHECKING:
    from bezcurve.curve import Curve

logger = logging.getLogger(__name__)


###############################################################################
# AnchorPoint
###############################################################################
class AnchorPoint:
    """
    A named node the curve passes through, with two handles shaping the curve around it.

    Position and handle offsets are stored relative to the origin of the owning curve:
        world position        = local_position + curve.origin
        world handle position = handle_offset + world position

    An anchor is owned by exactly one Curve. It keeps only a weak reference to that curve,
    used to resolve the origin and to report changes. World-space accessors of an anchor
    that is not attached to a curve raise ValueError.

    Attributes:
        name (str): Display name, renamed to "Point {n}" when added to a curve.
    """

    name: str
    _point_type: AnchorPointType
    _local_position: NDArray[np.float64]
    _handle1: NDArray[np.float64]
    _handle2: NDArray[np.float64]
    _curve_ref: Optional[weakref.ReferenceType]

    def __init__(
        self,
        position: Vec3Like,
        handle1: Vec3Like,
        handle2: Vec3Like,
        name: str = DEFAULT_POINT_NAME,
    ):
        """Initialize an unattached anchor point of type NONE.

        Args:
            position: Curve-local position (x, y) or (x, y, z)
            handle1: Incoming handle offset relative to the anchor
            handle2: Outgoing handle offset relative to the anchor
            name: Display name
        """
        self.name = name
        self._point_type = AnchorPointType.NONE
        self._local_position = as_vec3(position)
        self._handle1 = as_vec3(handle1)
        self._handle2 = as_vec3(handle2)
        self._curve_ref = None

    ###########################################################################
    # Ownership
    ###########################################################################

    @property
    def curve(self) -> Optional[Curve]:
        """The owning curve, or None if the anchor is not attached (or the curve is gone)."""
        if self._curve_ref is None:
            return None
        return self._curve_ref()

    def set_curve(self, curve: Optional[Curve]) -> None:
        """Attach the anchor to curve, or detach it when curve is None.

        Called by Curve when the anchor is added or removed; not meant for direct use.
        """
        self._curve_ref = weakref.ref(curve) if curve is not None else None

    def _owning_curve(self) -> Curve:
        curve = self.curve
        if curve is None:
            raise ValueError(f"Anchor point '{self.name}' is not attached to a curve")
        return curve

    def _changed(self) -> None:
        curve = self.curve
        if curve is not None:
            curve.notify_changed()

    ###########################################################################
    # Point type
    ###########################################################################

    @property
    def point_type(self) -> AnchorPointType:
        """AnchorPointType: How the handles of this anchor behave."""
        return self._point_type

    @point_type.setter
    def point_type(self, point_type: AnchorPointType) -> None:
        """Change the point type. Switching to CONNECTED mirrors handle1 from handle2."""
        point_type = AnchorPointType(point_type)
        if point_type == AnchorPointType.CONNECTED:
            self._handle1 = -self._handle2
        self._point_type = point_type
        logger.debug("Anchor '%s' type set to %s", self.name, point_type.name)
        self._changed()

    ###########################################################################
    # Local accessors
    ###########################################################################

    @property
    def local_position(self) -> NDArray[np.float64]:
        """Position relative to the curve origin (read-only view)."""
        return readonly_view(self._local_position)

    @local_position.setter
    def local_position(self, position: Vec3Like) -> None:
        self._local_position = as_vec3(position)
        self._changed()

    @property
    def handle1_offset(self) -> NDArray[np.float64]:
        """Incoming handle relative to the anchor position (read-only view)."""
        return readonly_view(self._handle1)

    @handle1_offset.setter
    def handle1_offset(self, offset: Vec3Like) -> None:
        self._handle1 = as_vec3(offset)
        self._changed()

    @property
    def handle2_offset(self) -> NDArray[np.float64]:
        """Outgoing handle relative to the anchor position (read-only view)."""
        return readonly_view(self._handle2)

    @handle2_offset.setter
    def handle2_offset(self, offset: Vec3Like) -> None:
        self._handle2 = as_vec3(offset)
        self._changed()

    ###########################################################################
    # World accessors
    ###########################################################################

    @property
    def position(self) -> NDArray[np.float64]:
        """World-space position of the anchor."""
        return self._local_position + self._owning_curve().origin

    @property
    def handle1_position(self) -> NDArray[np.float64]:
        """World-space position of the incoming handle."""
        return self._handle1 + self.position

    @property
    def handle2_position(self) -> NDArray[np.float64]:
        """World-space position of the outgoing handle."""
        return self._handle2 + self.position

    def set_position(self, position: Vec3Like) -> None:
        """Move the anchor to a world-space position. Handles move along with it."""
        self._local_position = as_vec3(position) - self._owning_curve().origin
        self._changed()

    def set_handle1_position(self, position: Vec3Like) -> None:
        """Place the incoming handle at a world-space position.

        For CONNECTED anchors the outgoing handle is mirrored through the anchor.
        """
        self._handle1 = as_vec3(position) - self.position
        if self._point_type == AnchorPointType.CONNECTED:
            self._handle2 = -self._handle1
        self._changed()

    def set_handle2_position(self, position: Vec3Like) -> None:
        """Place the outgoing handle at a world-space position.

        For CONNECTED anchors the incoming handle is mirrored through the anchor.
        """
        self._handle2 = as_vec3(position) - self.position
        if self._point_type == AnchorPointType.CONNECTED:
            self._handle1 = -self._handle2
        self._changed()

    @property
    def handles_direction(self) -> NDArray[np.float64]:
        """Unit direction from the anchor towards the outgoing handle (zero if the handle is zero)."""
        return normalized(self._handle2)

    def set_handles_direction(self, direction: Vec3Like) -> None:
        """
        Rotate both handles to point along direction, keeping the outgoing handle length.

        The outgoing handle points along direction, the incoming handle opposite to it.
        A zero direction collapses both handles onto the anchor.

        Args:
            direction: Direction vector (x, y) or (x, y, z), need not be normalized
        """
        magnitude = float(np.linalg.norm(self._handle2))
        unit = normalized(as_vec3(direction))
        self._handle2 = unit * magnitude
        self._handle1 = -unit * magnitude
        self._changed()

    def __str__(self):
        """Returns a string representation of the AnchorPoint instance."""
        return (
            f"AnchorPoint(name={self.name!r}, type={self._point_type.name}, "
            f"local_position={self._local_position.tolist()}, "
            f"handle1={self._handle1.tolist()}, handle2={self._handle2.tolist()})"
        )
