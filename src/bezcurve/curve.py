"""Curve built from an ordered sequence of anchor points: evaluation, arc length and sampling."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from bezcurve.anchor import AnchorPoint
from bezcurve.bezier import BezierCurve, BezierSegment
from bezcurve.common import (
    DEFAULT_CLOSED,
    DEFAULT_HANDLE1_OFFSET,
    DEFAULT_HANDLE2_OFFSET,
    DEFAULT_POINT_NAME,
    DEFAULT_SAMPLE_RATE,
    LENGTH_EPS,
    ZERO_VEC3,
    Vec3Like,
    as_vec3,
    normalized,
    readonly_view,
)

logger = logging.getLogger(__name__)


###############################################################################
# CurveSample
###############################################################################


@dataclass(frozen=True, eq=False)
class CurveSample:
    """
    One sampled point on a curve.

    Attributes:
        position: World-space position.
        normal: Unit normal, or a zero vector if frames were not computed.
        tangent: Unit tangent, or a zero vector if frames were not computed.
        segment_end_index: Index of the anchor that ends the segment this sample lies on.
            Inserting a new anchor at this index splits the curve at the sample.
    """

    position: NDArray[np.float64]
    normal: NDArray[np.float64]
    tangent: NDArray[np.float64]
    segment_end_index: int

    def __post_init__(self):
        for attr in ("position", "normal", "tangent"):
            arr = as_vec3(getattr(self, attr))
            arr.flags.writeable = False
            object.__setattr__(self, attr, arr)

    def __eq__(self, other):
        if not isinstance(other, CurveSample):
            return NotImplemented
        return (
            self.segment_end_index == other.segment_end_index
            and np.array_equal(self.position, other.position)
            and np.array_equal(self.normal, other.normal)
            and np.array_equal(self.tangent, other.tangent)
        )


CurveListener = Callable[[List[CurveSample]], None]


###############################################################################
# Curve
###############################################################################
class Curve:
    """
    A piecewise Bezier curve through an ordered sequence of anchor points.

    Segment i connects anchor i to anchor (i+1) mod n. An open curve has n-1 segments,
    a closed curve with at least two anchors has one more segment from the last anchor
    back to the first. Segments are derived from the anchor sequence on demand.

    The global parameter t in [0, 1] of point_at() is normalized by (approximate) arc length,
    so uniform steps in t give roughly uniform speed along the whole curve.
    Arc lengths are approximated with sample_rate linear steps per segment and are
    recomputed on every call.

    A curve with a single anchor degenerates to that point. Evaluating or sampling a curve
    without anchors raises ValueError.
    """

    _anchors: List[AnchorPoint]
    _closed: bool
    _sample_rate: int
    _origin: NDArray[np.float64]
    _listeners: List[CurveListener]

    def __init__(
        self,
        closed: bool = DEFAULT_CLOSED,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        origin: Vec3Like = (0.0, 0.0, 0.0),
    ):
        """Initialize an empty curve.

        Args:
            closed: If True the last anchor connects back to the first
            sample_rate: Number of linear steps approximating one segment
            origin: World-space origin all anchor positions are relative to
        """
        self._anchors = []
        self._closed = bool(closed)
        self._sample_rate = self._validated_sample_rate(sample_rate)
        self._origin = as_vec3(origin)
        self._listeners = []

    @staticmethod
    def _validated_sample_rate(sample_rate: int) -> int:
        if isinstance(sample_rate, bool) or not isinstance(sample_rate, (int, np.integer)):
            raise ValueError(f"Sample rate must be an integer, got {sample_rate!r}")
        if sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {sample_rate}")
        return int(sample_rate)

    def _require_anchors(self) -> None:
        if not self._anchors:
            raise ValueError("Curve has no anchor points")

    ###########################################################################
    # Settings
    ###########################################################################

    @property
    def closed(self) -> bool:
        """bool: True if the curve wraps from the last anchor back to the first."""
        return self._closed

    @closed.setter
    def closed(self, closed: bool) -> None:
        self._closed = bool(closed)
        self.notify_changed()

    @property
    def sample_rate(self) -> int:
        """int: Number of linear steps approximating one segment."""
        return self._sample_rate

    @sample_rate.setter
    def sample_rate(self, sample_rate: int) -> None:
        self._sample_rate = self._validated_sample_rate(sample_rate)
        self.notify_changed()

    @property
    def origin(self) -> NDArray[np.float64]:
        """World-space origin of the curve (read-only view)."""
        return readonly_view(self._origin)

    @origin.setter
    def origin(self, origin: Vec3Like) -> None:
        self._origin = as_vec3(origin)
        self.notify_changed()

    ###########################################################################
    # Anchor points
    ###########################################################################

    @property
    def anchor_points(self) -> Tuple[AnchorPoint, ...]:
        """Snapshot of the anchor sequence."""
        return tuple(self._anchors)

    def __len__(self) -> int:
        return len(self._anchors)

    def __iter__(self) -> Iterator[AnchorPoint]:
        return iter(tuple(self._anchors))

    def __getitem__(self, index: int) -> AnchorPoint:
        return self._anchors[index]

    def index_of(self, point: AnchorPoint) -> int:
        """Index of point in the anchor sequence.

        Raises:
            ValueError: If point is not an anchor of this curve
        """
        for index, anchor in enumerate(self._anchors):
            if anchor is point:
                return index
        raise ValueError(f"Anchor point '{point.name}' is not part of this curve")

    def add_anchor_point(self, point: AnchorPoint, index: Optional[int] = None) -> AnchorPoint:
        """
        Add an anchor point to the curve, appending it or inserting it before index.

        The anchor is renamed to "Point {n}" with n being the number of anchors before
        the insertion. Adding an anchor that is already on this curve does nothing.

        Args:
            point: The anchor point to take ownership of
            index: Insertion index (list.insert semantics), None appends

        Returns:
            AnchorPoint: The added anchor point

        Raises:
            ValueError: If point belongs to another curve
        """
        if any(anchor is point for anchor in self._anchors):
            return point
        owner = point.curve
        if owner is not None and owner is not self:
            raise ValueError(f"Anchor point '{point.name}' already belongs to another curve")

        point.name = f"{DEFAULT_POINT_NAME} {len(self._anchors)}"
        point.set_curve(self)
        if index is None:
            self._anchors.append(point)
        else:
            self._anchors.insert(index, point)
        logger.debug("Added anchor '%s' at index %s", point.name, "end" if index is None else index)
        self.notify_changed()
        return point

    def insert_anchor_point(self, index: int, point: AnchorPoint) -> AnchorPoint:
        """Insert an anchor point before index, see add_anchor_point()."""
        return self.add_anchor_point(point, index)

    def create_anchor_point(
        self,
        position: Vec3Like,
        index: Optional[int] = None,
        handle1: Vec3Like = DEFAULT_HANDLE1_OFFSET,
        handle2: Vec3Like = DEFAULT_HANDLE2_OFFSET,
    ) -> AnchorPoint:
        """
        Create a new anchor at a world-space position and add it to the curve.

        Args:
            position: World-space position of the new anchor
            index: Insertion index, None appends
            handle1: Incoming handle offset
            handle2: Outgoing handle offset

        Returns:
            AnchorPoint: The new anchor point
        """
        point = AnchorPoint(as_vec3(position) - self._origin, handle1, handle2)
        return self.add_anchor_point(point, index)

    def insert_anchor_at_sample(
        self,
        sample: CurveSample,
        handle1: Vec3Like = DEFAULT_HANDLE1_OFFSET,
        handle2: Vec3Like = DEFAULT_HANDLE2_OFFSET,
    ) -> AnchorPoint:
        """
        Split the curve at a sample by inserting a new anchor at its position.

        The anchor is inserted before the anchor ending the sample's segment. Samples on the
        closing segment of a closed curve end at anchor 0, so the anchor is appended instead.

        Args:
            sample: A sample obtained from this curve
            handle1: Incoming handle offset of the new anchor
            handle2: Outgoing handle offset of the new anchor

        Returns:
            AnchorPoint: The new anchor point
        """
        index = sample.segment_end_index if sample.segment_end_index > 0 else None
        return self.create_anchor_point(sample.position, index, handle1, handle2)

    def remove_anchor_point(self, point: AnchorPoint) -> None:
        """Remove an anchor point from the curve and detach it.

        Raises:
            ValueError: If point is not an anchor of this curve
        """
        del self._anchors[self.index_of(point)]
        point.set_curve(None)
        logger.debug("Removed anchor '%s'", point.name)
        self.notify_changed()

    def remove_all_anchor_points(self) -> None:
        """Remove and detach all anchor points."""
        for point in self._anchors:
            point.set_curve(None)
        self._anchors.clear()
        logger.debug("Removed all anchors")
        self.notify_changed()

    ###########################################################################
    # Change notification
    ###########################################################################

    def add_change_listener(self, listener: CurveListener) -> None:
        """Register a callable that receives the sampled curve after each change."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: CurveListener) -> None:
        """Unregister a listener.

        Raises:
            ValueError: If listener was not registered
        """
        self._listeners.remove(listener)

    def notify_changed(self) -> None:
        """
        Send the current samples to all listeners.

        Listeners receive sample(sample_rate, include_last_point=True, frames=True),
        or an empty list if the curve has no anchors. Nothing is sampled without listeners.
        """
        if not self._listeners:
            return
        samples = self.sample(self._sample_rate, include_last_point=True, frames=True) if self._anchors else []
        logger.debug("Notifying %d listener(s) with %d sample(s)", len(self._listeners), len(samples))
        for listener in list(self._listeners):
            listener(samples)

    ###########################################################################
    # Segments
    ###########################################################################

    @property
    def segment_count(self) -> int:
        """int: Number of segments, including the closing segment of a closed curve."""
        count = len(self._anchors)
        if count < 2:
            return 0
        return count if self._closed else count - 1

    def segment_indices(self) -> Iterator[Tuple[int, int]]:
        """Yield (start, end) anchor indices of all segments in curve order."""
        count = len(self._anchors)
        for i in range(self.segment_count):
            yield i, (i + 1) % count

    def segments(self) -> Iterator[Tuple[AnchorPoint, AnchorPoint]]:
        """Yield (start, end) anchor pairs of all segments in curve order."""
        for i0, i1 in self.segment_indices():
            yield self._anchors[i0], self._anchors[i1]

    ###########################################################################
    # Arc length
    ###########################################################################

    def segment_length(self, p0: AnchorPoint, p1: AnchorPoint, sample_rate: Optional[int] = None) -> float:
        """
        Approximate arc length of the segment from p0 to p1.

        The segment is evaluated at t = 0, 1/n, ..., 1 and the distances between consecutive
        points are summed. The approximation converges to the arc length with growing n.

        Args:
            p0: Start anchor
            p1: End anchor
            sample_rate: Number of linear steps n, defaults to the curve's sample rate

        Returns:
            float: Polyline length of the segment
        """
        rate = self._sample_rate if sample_rate is None else self._validated_sample_rate(sample_rate)
        points = BezierSegment.polygonize(p0, p1, rate)
        return float(np.sum(np.linalg.norm(np.diff(points, axis=0), axis=1)))

    def segment_lengths(self, sample_rate: Optional[int] = None) -> NDArray[np.float64]:
        """Approximate arc lengths of all segments in curve order, see segment_length()."""
        return np.array(
            [self.segment_length(p0, p1, sample_rate) for p0, p1 in self.segments()],
            dtype=np.float64,
        )

    def total_length(self) -> float:
        """Approximate arc length of the whole curve at the curve's sample rate."""
        return float(np.sum(self.segment_lengths()))

    ###########################################################################
    # Evaluation
    ###########################################################################

    def point_at(self, t: float) -> NDArray[np.float64]:
        """
        World-space point at the length-normalized global parameter t.

        - t <= 0 or a single anchor: the first anchor
        - t >= 1: the first anchor for a closed curve, otherwise the last anchor
        - otherwise: the segment covering t by accumulated length fraction is evaluated
          at the local parameter (t - preceding fraction) / segment fraction

        Zero-length segments are never selected. A curve with zero total length
        returns its first anchor.

        Args:
            t: Global parameter, values outside [0, 1] are clamped

        Returns:
            NDArray[np.float64]: Point of shape (3,)

        Raises:
            ValueError: If the curve has no anchor points
        """
        self._require_anchors()
        anchors = self._anchors
        if t <= 0.0 or len(anchors) == 1:
            return anchors[0].position
        if t >= 1.0:
            if self._closed:
                return anchors[0].position
            return anchors[-1].position

        lengths = self.segment_lengths()
        total = float(np.sum(lengths))
        if total <= LENGTH_EPS:
            logger.warning("Curve has zero length, returning first anchor position")
            return anchors[0].position

        total_percent = 0.0
        last_segment: Optional[Tuple[int, int]] = None
        for (i0, i1), length in zip(self.segment_indices(), lengths):
            curve_percent = float(length) / total
            if curve_percent <= 0.0:
                continue
            if total_percent + curve_percent > t:
                return BezierSegment.evaluate(anchors[i0], anchors[i1], (t - total_percent) / curve_percent)
            total_percent += curve_percent
            last_segment = (i0, i1)

        # Accumulated fractions fell short of t by rounding
        if last_segment is None:
            return anchors[0].position
        i0, i1 = last_segment
        return BezierSegment.evaluate(anchors[i0], anchors[i1], 1.0)

    def sample(
        self,
        sample_rate: Optional[int] = None,
        include_last_point: bool = True,
        frames: bool = False,
    ) -> List[CurveSample]:
        """
        Sample the whole curve with sample_rate uniform parameter steps per segment.

        The end point of each segment is skipped except for the last segment, so segment
        boundaries are not emitted twice. On a closed curve the end point of the closing
        segment coincides with the first anchor and is only emitted if include_last_point
        is True. Resulting counts for k anchors and rate n:
            open:   (k-1)*n + 1
            closed: k*n + 1 (include_last_point) or k*n

        Normals and tangents are zero vectors unless frames is True. Then the tangent is the
        unit derivative of the segment (the unit chord where the derivative vanishes) and
        the normal is the tangent rotated by +90 degrees about +Z within the XY plane
        (zero if the tangent is parallel to Z).

        Args:
            sample_rate: Steps per segment, defaults to the curve's sample rate
            include_last_point: Emit the closing point of a closed curve
            frames: Compute normals and tangents

        Returns:
            List[CurveSample]: Samples in curve order

        Raises:
            ValueError: If the curve has no anchor points or sample_rate is not positive
        """
        self._require_anchors()
        rate = self._sample_rate if sample_rate is None else self._validated_sample_rate(sample_rate)
        anchors = self._anchors

        if len(anchors) == 1:
            return [CurveSample(anchors[0].position, ZERO_VEC3, ZERO_VEC3, 0)]

        samples: List[CurveSample] = []
        params = np.arange(rate + 1, dtype=np.float64) / rate
        last_index = self.segment_count - 1

        for seg_index, (i0, i1) in enumerate(self.segment_indices()):
            keep_end = seg_index == last_index and (not self._closed or include_last_point)
            t = params if keep_end else params[:-1]

            control_points = BezierSegment.control_points(anchors[i0], anchors[i1])
            positions = BezierCurve.evaluate(control_points, t)
            if frames:
                tangents, normals = self._frames(control_points, t)
            else:
                tangents = normals = np.zeros_like(positions)

            for position, normal, tangent in zip(positions, normals, tangents):
                samples.append(CurveSample(position, normal, tangent, i1))

        return samples

    @staticmethod
    def _frames(
        control_points: NDArray[np.float64], t: NDArray[np.float64]
    ) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Unit tangents and in-plane unit normals of a segment at parameters t."""
        derivatives = BezierCurve.evaluate_derivative(control_points, t)
        lengths = np.linalg.norm(derivatives, axis=1)[:, np.newaxis]
        chord = normalized(control_points[-1] - control_points[0])
        tangents = np.where(lengths > LENGTH_EPS, derivatives / np.maximum(lengths, LENGTH_EPS), chord)

        normals = np.column_stack([-tangents[:, 1], tangents[:, 0], np.zeros(len(tangents))])
        normal_lengths = np.linalg.norm(normals, axis=1)[:, np.newaxis]
        normals = np.where(normal_lengths > LENGTH_EPS, normals / np.maximum(normal_lengths, LENGTH_EPS), 0.0)
        return tangents, normals

    def closest_sample(self, position: Vec3Like, sample_rate: Optional[int] = None) -> CurveSample:
        """
        The sample (including the closing point) nearest to a world-space position.

        Args:
            position: World-space position (x, y) or (x, y, z)
            sample_rate: Steps per segment, defaults to the curve's sample rate

        Returns:
            CurveSample: Nearest sample, the first one on ties
        """
        samples = self.sample(sample_rate, include_last_point=True)
        positions = np.array([sample.position for sample in samples], dtype=np.float64)
        distances = np.linalg.norm(positions - as_vec3(position), axis=1)
        return samples[int(np.argmin(distances))]

    def __str__(self):
        """Returns a string representation of the Curve instance."""
        return (
            f"Curve(anchors={len(self._anchors)}, closed={self._closed}, "
            f"sample_rate={self._sample_rate}, origin={self._origin.tolist()})"
        )
