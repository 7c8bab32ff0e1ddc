"""Bezier polynomial evaluation and per-segment degree resolution for anchor based curves."""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

import numpy as np
from numpy.typing import NDArray

from bezcurve.common import AnchorPointType, SegmentDegree

if TYPE_CHECKING:
    from bezcurve.anchor import AnchorPoint

ParamLike = Union[float, NDArray[np.float64]]


def _weights(t: ParamLike) -> NDArray[np.float64]:
    """Parameter as a column so that scalars give (3,) results and arrays give (n, 3)."""
    return np.asarray(t, dtype=np.float64)[..., np.newaxis]


###############################################################################
# BezierCurve
###############################################################################
class BezierCurve:
    """Class to handle linear, quadratic and cubic Bezier polynomials on 3D control points.

    All evaluation methods accept a scalar parameter, returning a point of shape (3,),
    or a 1D parameter array, returning points of shape (n, 3).
    """

    @staticmethod
    def linear(p0: NDArray[np.float64], p1: NDArray[np.float64], t: ParamLike) -> NDArray[np.float64]:
        """B(t) = (1-t)*P0 + t*P1"""
        t = _weights(t)
        return (1.0 - t) * p0 + t * p1

    @staticmethod
    def quadratic(
        p0: NDArray[np.float64], p1: NDArray[np.float64], p2: NDArray[np.float64], t: ParamLike
    ) -> NDArray[np.float64]:
        """B(t) = (1-t)^2*P0 + 2*(1-t)*t*P1 + t^2*P2"""
        t = _weights(t)
        omt = 1.0 - t
        return omt * omt * p0 + 2.0 * omt * t * p1 + t * t * p2

    @staticmethod
    def cubic(
        p0: NDArray[np.float64],
        p1: NDArray[np.float64],
        p2: NDArray[np.float64],
        p3: NDArray[np.float64],
        t: ParamLike,
    ) -> NDArray[np.float64]:
        """B(t) = (1-t)^3*P0 + 3*(1-t)^2*t*P1 + 3*(1-t)*t^2*P2 + t^3*P3"""
        t = _weights(t)
        omt = 1.0 - t
        omt2 = omt * omt
        t2 = t * t
        return omt2 * omt * p0 + 3.0 * omt2 * t * p1 + 3.0 * omt * t2 * p2 + t2 * t * p3

    @staticmethod
    def linear_derivative(p0: NDArray[np.float64], p1: NDArray[np.float64], t: ParamLike) -> NDArray[np.float64]:
        """B'(t) = P1 - P0 (constant)"""
        t = _weights(t)
        return np.zeros_like(t) + (p1 - p0)

    @staticmethod
    def quadratic_derivative(
        p0: NDArray[np.float64], p1: NDArray[np.float64], p2: NDArray[np.float64], t: ParamLike
    ) -> NDArray[np.float64]:
        """B'(t) = 2*(1-t)*(P1-P0) + 2*t*(P2-P1)"""
        t = _weights(t)
        return 2.0 * (1.0 - t) * (p1 - p0) + 2.0 * t * (p2 - p1)

    @staticmethod
    def cubic_derivative(
        p0: NDArray[np.float64],
        p1: NDArray[np.float64],
        p2: NDArray[np.float64],
        p3: NDArray[np.float64],
        t: ParamLike,
    ) -> NDArray[np.float64]:
        """B'(t) = 3*(1-t)^2*(P1-P0) + 6*(1-t)*t*(P2-P1) + 3*t^2*(P3-P2)"""
        t = _weights(t)
        omt = 1.0 - t
        return 3.0 * omt * omt * (p1 - p0) + 6.0 * omt * t * (p2 - p1) + 3.0 * t * t * (p3 - p2)

    @classmethod
    def evaluate(cls, control_points: NDArray[np.float64], t: ParamLike) -> NDArray[np.float64]:
        """Evaluate a Bezier polynomial given by 2, 3 or 4 control points.

        Args:
            control_points: Control points of shape (2..4, 3), start and end point included
            t: Parameter in [0, 1], scalar or 1D array

        Returns:
            NDArray[np.float64]: Point(s) on the curve

        Raises:
            ValueError: If the number of control points is not 2, 3 or 4
        """
        if len(control_points) == 2:
            return cls.linear(control_points[0], control_points[1], t)
        if len(control_points) == 3:
            return cls.quadratic(control_points[0], control_points[1], control_points[2], t)
        if len(control_points) == 4:
            return cls.cubic(control_points[0], control_points[1], control_points[2], control_points[3], t)
        raise ValueError(f"Bezier evaluation needs 2, 3 or 4 control points, got {len(control_points)}")

    @classmethod
    def evaluate_derivative(cls, control_points: NDArray[np.float64], t: ParamLike) -> NDArray[np.float64]:
        """First derivative of the polynomial defined by control_points, see evaluate()."""
        if len(control_points) == 2:
            return cls.linear_derivative(control_points[0], control_points[1], t)
        if len(control_points) == 3:
            return cls.quadratic_derivative(control_points[0], control_points[1], control_points[2], t)
        if len(control_points) == 4:
            return cls.cubic_derivative(control_points[0], control_points[1], control_points[2], control_points[3], t)
        raise ValueError(f"Bezier derivative needs 2, 3 or 4 control points, got {len(control_points)}")

    @classmethod
    def polygonize(cls, control_points: NDArray[np.float64], steps: int) -> NDArray[np.float64]:
        """
        Polygonize a Bezier polynomial into steps line segments.
        Uses direct evaluation with vectorized operations.

        Args:
            control_points: Control points of shape (2..4, 3)
            steps: Number of segments to divide the curve into

        Returns:
            NDArray[np.float64] of shape (steps+1, 3) containing the points for t = 0, 1/steps, ..., 1

        Raises:
            ValueError: If steps is not positive
        """
        if steps <= 0:
            raise ValueError(f"Number of steps must be positive, got {steps}")
        t = np.arange(steps + 1, dtype=np.float64) / steps
        return cls.evaluate(control_points, t)


###############################################################################
# BezierSegment
###############################################################################
class BezierSegment:
    """Evaluator for the segment between two adjacent anchor points.

    The polynomial degree is chosen per segment from the point types of both anchors,
    so a single curve can mix straight runs and smooth curves:

    - both NONE: linear from P0 to P1
    - only p0 has handles: quadratic with the outgoing handle of p0
    - only p1 has handles: quadratic with the incoming handle of p1
    - both have handles: cubic with p0.handle2 and p1.handle1

    All positions are world-space.
    """

    @staticmethod
    def resolve_degree(p0: AnchorPoint, p1: AnchorPoint) -> SegmentDegree:
        """Degree of the segment from p0 to p1."""
        p0_none = p0.point_type == AnchorPointType.NONE
        p1_none = p1.point_type == AnchorPointType.NONE
        if p0_none and p1_none:
            return SegmentDegree.LINEAR
        if p0_none or p1_none:
            return SegmentDegree.QUADRATIC
        return SegmentDegree.CUBIC

    @classmethod
    def control_points(cls, p0: AnchorPoint, p1: AnchorPoint) -> NDArray[np.float64]:
        """
        World-space control points of the segment from p0 to p1.

        Returns:
            NDArray[np.float64] of shape (degree+1, 3)
        """
        degree = cls.resolve_degree(p0, p1)
        if degree == SegmentDegree.LINEAR:
            return np.array([p0.position, p1.position], dtype=np.float64)
        if degree == SegmentDegree.CUBIC:
            return np.array([p0.position, p0.handle2_position, p1.handle1_position, p1.position], dtype=np.float64)
        if p0.point_type != AnchorPointType.NONE:
            return np.array([p0.position, p0.handle2_position, p1.position], dtype=np.float64)
        return np.array([p0.position, p1.handle1_position, p1.position], dtype=np.float64)

    @classmethod
    def evaluate(cls, p0: AnchorPoint, p1: AnchorPoint, t: ParamLike) -> NDArray[np.float64]:
        """Point(s) on the segment at local parameter t in [0, 1]."""
        return BezierCurve.evaluate(cls.control_points(p0, p1), t)

    @classmethod
    def derivative(cls, p0: AnchorPoint, p1: AnchorPoint, t: ParamLike) -> NDArray[np.float64]:
        """First derivative dB/dt of the segment at local parameter t in [0, 1]."""
        return BezierCurve.evaluate_derivative(cls.control_points(p0, p1), t)

    @classmethod
    def polygonize(cls, p0: AnchorPoint, p1: AnchorPoint, steps: int) -> NDArray[np.float64]:
        """Points of the segment at t = 0, 1/steps, ..., 1 as array of shape (steps+1, 3)."""
        return BezierCurve.polygonize(cls.control_points(p0, p1), steps)
