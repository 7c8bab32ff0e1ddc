"""Test module for sampling and change notification of bezcurve.curve

The tests are run using pytest.
These tests ensure that full-curve sampling, sample frames, splitting at samples
and change notifications remain working correctly after changes and refactoring.
"""

import numpy as np
import pytest

from bezcurve.anchor import AnchorPoint
from bezcurve.common import AnchorPointType
from bezcurve.curve import Curve, CurveSample


def straight_curve(positions, closed=False, sample_rate=10):
    """Curve with NONE anchors at the given positions (all segments linear)."""
    curve = Curve(closed=closed, sample_rate=sample_rate)
    for position in positions:
        curve.add_anchor_point(AnchorPoint(position, (-1.0, 0.0, 0.0), (1.0, 0.0, 0.0)))
    return curve


TRIANGLE = [(0.0, 0.0, 0.0), (10.0, 0.0, 0.0), (5.0, 8.0, 0.0)]

###############################################################################
# Sample Count Tests
###############################################################################


class TestCurveSampleCounts:
    """Test the number of samples and duplicate suppression at segment boundaries."""

    @pytest.mark.parametrize("count", [2, 3, 5])
    @pytest.mark.parametrize("rate", [1, 4, 7])
    def test_open_curve(self, count, rate):
        """Test (k-1)*n + 1 samples for an open curve, independent of include_last_point."""
        positions = [(float(i), float(i % 2), 0.0) for i in range(count)]
        curve = straight_curve(positions, closed=False)

        assert len(curve.sample(rate, include_last_point=True)) == (count - 1) * rate + 1
        assert len(curve.sample(rate, include_last_point=False)) == (count - 1) * rate + 1

    @pytest.mark.parametrize("count", [2, 3, 5])
    @pytest.mark.parametrize("rate", [1, 4, 7])
    def test_closed_curve(self, count, rate):
        """Test k*n + 1 samples with and k*n without the closing point."""
        positions = [(float(i), float(i % 2), 0.0) for i in range(count)]
        curve = straight_curve(positions, closed=True)

        assert len(curve.sample(rate, include_last_point=True)) == count * rate + 1
        assert len(curve.sample(rate, include_last_point=False)) == count * rate

    def test_default_rate_is_curve_sample_rate(self):
        """Test that sample() without a rate uses the curve's sample rate."""
        curve = straight_curve(TRIANGLE, closed=False, sample_rate=6)
        assert len(curve.sample()) == 2 * 6 + 1

    def test_single_anchor(self):
        """Test that a single anchor yields one sample with zero normal and tangent."""
        curve = straight_curve([(1.0, 2.0, 3.0)], closed=True)
        samples = curve.sample(10, include_last_point=False)

        assert len(samples) == 1
        assert np.allclose(samples[0].position, [1.0, 2.0, 3.0])
        assert np.array_equal(samples[0].normal, [0.0, 0.0, 0.0])
        assert np.array_equal(samples[0].tangent, [0.0, 0.0, 0.0])

    def test_empty_curve_raises(self):
        """Test that sampling an empty curve raises ValueError."""
        with pytest.raises(ValueError, match="no anchor points"):
            Curve().sample(10)

    def test_invalid_rate_raises(self):
        """Test that a non-positive sample rate is rejected."""
        curve = straight_curve(TRIANGLE)
        with pytest.raises(ValueError, match="must be positive"):
            curve.sample(0)


###############################################################################
# Sample Content Tests
###############################################################################


class TestCurveSampleContent:
    """Test positions and connectivity metadata of samples."""

    def test_positions_and_segment_end_index_open(self):
        """Test sample positions and segment end indices on an open polyline."""
        curve = straight_curve(TRIANGLE, closed=False)
        samples = curve.sample(2)

        expected_positions = [
            [0.0, 0.0, 0.0],
            [5.0, 0.0, 0.0],
            [10.0, 0.0, 0.0],
            [7.5, 4.0, 0.0],
            [5.0, 8.0, 0.0],
        ]
        assert np.allclose([sample.position for sample in samples], expected_positions)
        assert [sample.segment_end_index for sample in samples] == [1, 1, 2, 2, 2]

    def test_closing_segment_ends_at_first_anchor(self):
        """Test that the closing segment is tagged with index 0 and ends at the first anchor."""
        curve = straight_curve(TRIANGLE, closed=True)
        samples = curve.sample(2, include_last_point=True)

        assert [sample.segment_end_index for sample in samples] == [1, 1, 2, 2, 0, 0, 0]
        assert np.allclose(samples[-1].position, samples[0].position)

    def test_closing_point_skipped(self):
        """Test that the closing point is not emitted without include_last_point."""
        curve = straight_curve(TRIANGLE, closed=True)
        samples = curve.sample(2, include_last_point=False)

        assert np.allclose(samples[-1].position, [2.5, 4.0, 0.0])

    def test_samples_without_frames_have_zero_vectors(self):
        """Test that normals and tangents are zero vectors by default."""
        curve = straight_curve(TRIANGLE, closed=True)
        for sample in curve.sample(3):
            assert np.array_equal(sample.normal, [0.0, 0.0, 0.0])
            assert np.array_equal(sample.tangent, [0.0, 0.0, 0.0])

    def test_idempotent(self):
        """Test that sampling twice without changes gives identical sequences."""
        curve = Curve(closed=True, sample_rate=9)
        curve.add_anchor_point(AnchorPoint((0.0, 0.0, 0.0), (-1.0, -1.0, 0.0), (1.0, 1.0, 0.0)))
        curve.add_anchor_point(AnchorPoint((6.0, 1.0, 0.0), (-2.0, 0.0, 0.0), (2.0, 0.0, 0.0)))
        curve.add_anchor_point(AnchorPoint((3.0, 7.0, 0.0), (1.0, 0.0, 0.0), (-1.0, 0.0, 0.0)))
        curve[0].point_type = AnchorPointType.CONNECTED
        curve[2].point_type = AnchorPointType.BROKEN

        assert curve.sample() == curve.sample()
        assert curve.sample(frames=True) == curve.sample(frames=True)

    def test_samples_follow_mutation(self):
        """Test that moving an anchor changes the next sampling."""
        curve = straight_curve(TRIANGLE, closed=False)
        before = curve.sample(4)
        curve[1].set_position((10.0, 2.0, 0.0))
        after = curve.sample(4)

        assert before != after
        assert np.allclose(after[4].position, [10.0, 2.0, 0.0])

    def test_mixed_anchor_types(self):
        """Test NONE -> CONNECTED -> NONE: two quadratic segments with 2*4+1 samples."""
        curve = Curve(closed=False, sample_rate=4)
        a = curve.add_anchor_point(AnchorPoint((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)))
        b = curve.add_anchor_point(AnchorPoint((5.0, 5.0, 0.0), (-1.0, 0.0, 0.0), (1.0, 0.0, 0.0)))
        c = curve.add_anchor_point(AnchorPoint((10.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)))
        b.point_type = AnchorPointType.CONNECTED

        samples = curve.sample(4, include_last_point=True)

        assert len(samples) == 9
        # A -> B uses the incoming handle of B at (4, 5)
        expected_ab = 0.25 * a.position + 0.5 * b.handle1_position + 0.25 * b.position
        assert np.allclose(samples[2].position, expected_ab)
        assert np.allclose(samples[2].position, [3.25, 3.75, 0.0])
        # B -> C uses the outgoing handle of B at (6, 5)
        expected_bc = 0.25 * b.position + 0.5 * b.handle2_position + 0.25 * c.position
        assert np.allclose(samples[6].position, expected_bc)
        assert np.allclose(samples[6].position, [6.75, 3.75, 0.0])
        assert [sample.segment_end_index for sample in samples] == [1, 1, 1, 1, 2, 2, 2, 2, 2]


###############################################################################
# CurveSample Tests
###############################################################################


class TestCurveSample:
    """Test the CurveSample record."""

    def test_arrays_are_read_only(self):
        """Test that sample vectors cannot be modified."""
        sample = CurveSample((1.0, 2.0, 3.0), (0.0, 1.0, 0.0), (1.0, 0.0, 0.0), 2)
        for arr in (sample.position, sample.normal, sample.tangent):
            assert not arr.flags.writeable

    def test_is_frozen(self):
        """Test that fields cannot be reassigned."""
        sample = CurveSample((1.0, 2.0, 3.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 2)
        with pytest.raises(AttributeError):
            sample.segment_end_index = 3

    def test_equality(self):
        """Test that equality compares vector contents and the segment end index."""
        sample = CurveSample((1.0, 2.0, 3.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 2)
        same = CurveSample(np.array([1.0, 2.0, 3.0]), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 2)
        other_index = CurveSample((1.0, 2.0, 3.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 1)
        other_position = CurveSample((1.0, 2.0, 3.5), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), 2)

        assert sample == same
        assert sample != other_index
        assert sample != other_position
        assert sample != "sample"


###############################################################################
# Frame Tests
###############################################################################


class TestCurveSampleFrames:
    """Test tangents and normals computed with frames=True."""

    def test_straight_line(self):
        """Test unit tangent along the line and normal rotated +90 degrees about Z."""
        curve = straight_curve([(0.0, 0.0, 0.0), (10.0, 0.0, 0.0)], closed=False)
        for sample in curve.sample(4, frames=True):
            assert np.allclose(sample.tangent, [1.0, 0.0, 0.0])
            assert np.allclose(sample.normal, [0.0, 1.0, 0.0])

    def test_curved_frames_are_unit_and_orthogonal(self):
        """Test that frames on a planar cubic are unit length and perpendicular."""
        curve = Curve(closed=False)
        p0 = curve.add_anchor_point(AnchorPoint((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (2.0, 8.0, 0.0)))
        p1 = curve.add_anchor_point(AnchorPoint((10.0, 0.0, 0.0), (-2.0, 8.0, 0.0), (0.0, 0.0, 0.0)))
        p0.point_type = AnchorPointType.BROKEN
        p1.point_type = AnchorPointType.BROKEN

        for sample in curve.sample(16, frames=True):
            assert np.linalg.norm(sample.tangent) == pytest.approx(1.0)
            assert np.linalg.norm(sample.normal) == pytest.approx(1.0)
            assert np.dot(sample.tangent, sample.normal) == pytest.approx(0.0, abs=1e-12)
            assert sample.normal[2] == 0.0

    def test_tangent_matches_derivative_direction(self):
        """Test that the tangent at the start of a cubic points towards the outgoing handle."""
        curve = Curve(closed=False)
        p0 = curve.add_anchor_point(AnchorPoint((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 5.0, 0.0)))
        p1 = curve.add_anchor_point(AnchorPoint((10.0, 0.0, 0.0), (0.0, 5.0, 0.0), (0.0, 0.0, 0.0)))
        p0.point_type = AnchorPointType.BROKEN
        p1.point_type = AnchorPointType.BROKEN

        samples = curve.sample(8, frames=True)

        assert np.allclose(samples[0].tangent, [0.0, 1.0, 0.0])
        assert np.allclose(samples[0].normal, [-1.0, 0.0, 0.0])
        assert np.allclose(samples[-1].tangent, [0.0, -1.0, 0.0])

    def test_vanishing_derivative_uses_chord(self):
        """Test that a zero derivative falls back to the chord direction."""
        curve = Curve(closed=False)
        p0 = curve.add_anchor_point(AnchorPoint((0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)))
        curve.add_anchor_point(AnchorPoint((10.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)))
        p0.point_type = AnchorPointType.BROKEN

        samples = curve.sample(4, frames=True)

        assert np.allclose(samples[0].tangent, [1.0, 0.0, 0.0])
        assert np.all(np.isfinite([sample.tangent for sample in samples]))

    def test_tangent_parallel_to_z_has_zero_normal(self):
        """Test that the in-plane normal is zero when the curve runs along Z."""
        curve = straight_curve([(0.0, 0.0, 0.0), (0.0, 0.0, 5.0)], closed=False)
        for sample in curve.sample(2, frames=True):
            assert np.allclose(sample.tangent, [0.0, 0.0, 1.0])
            assert np.array_equal(sample.normal, [0.0, 0.0, 0.0])


###############################################################################
# Split Tests
###############################################################################


class TestCurveSplit:
    """Test finding the closest sample and inserting anchors at samples."""

    def test_closest_sample(self):
        """Test the nearest sample to a world position."""
        curve = straight_curve([(0.0, 0.0, 0.0), (10.0, 0.0, 0.0)], closed=False)
        sample = curve.closest_sample((3.2, 5.0, 0.0), sample_rate=10)

        assert np.allclose(sample.position, [3.0, 0.0, 0.0])
        assert sample.segment_end_index == 1

    def test_insert_anchor_at_sample(self):
        """Test that splitting inserts before the segment end and keeps the shape."""
        curve = straight_curve([(0.0, 0.0, 0.0), (10.0, 0.0, 0.0)], closed=False)
        first, last = curve.anchor_points

        point = curve.insert_anchor_at_sample(curve.closest_sample((3.0, 1.0, 0.0)))

        assert curve.anchor_points == (first, point, last)
        assert point.name == "Point 2"
        assert np.allclose(point.position, [3.0, 0.0, 0.0])
        assert np.allclose(point.handle1_offset, [-2.0, 0.0, 0.0])
        assert np.allclose(point.handle2_offset, [2.0, 0.0, 0.0])
        assert curve.total_length() == pytest.approx(10.0)

    def test_insert_anchor_on_closing_segment_appends(self):
        """Test that a sample on the closing segment appends the new anchor."""
        curve = straight_curve(TRIANGLE, closed=True)
        sample = curve.sample(2)[5]
        assert sample.segment_end_index == 0

        point = curve.insert_anchor_at_sample(sample)

        assert curve.index_of(point) == 3
        assert np.allclose(point.position, [2.5, 4.0, 0.0])

    def test_insert_anchor_respects_origin(self):
        """Test that the inserted anchor lands on the world-space sample position."""
        curve = straight_curve([(0.0, 0.0, 0.0), (10.0, 0.0, 0.0)], closed=False)
        curve.origin = (0.0, 0.0, 7.0)
        point = curve.insert_anchor_at_sample(curve.sample(2)[1])

        assert np.allclose(point.position, [5.0, 0.0, 7.0])
        assert np.allclose(point.local_position, [5.0, 0.0, 0.0])


###############################################################################
# Notification Tests
###############################################################################


class RecordingListener:
    """Collects the sample lists passed to it."""

    def __init__(self):
        self.calls = []

    def __call__(self, samples):
        self.calls.append(samples)


class TestCurveNotifications:
    """Test curve-changed notifications."""

    def test_mutations_notify(self):
        """Test that anchor mutations and setting changes notify listeners."""
        curve = Curve(closed=False, sample_rate=4)
        listener = RecordingListener()
        curve.add_change_listener(listener)

        a = curve.create_anchor_point((0.0, 0.0, 0.0))
        curve.create_anchor_point((10.0, 0.0, 0.0))
        a.set_position((0.0, 1.0, 0.0))
        a.point_type = AnchorPointType.CONNECTED
        a.set_handle2_position((3.0, 1.0, 0.0))
        curve.closed = True
        curve.sample_rate = 2
        curve.origin = (1.0, 0.0, 0.0)

        assert len(listener.calls) == 8
        assert len(listener.calls[0]) == 1
        assert len(listener.calls[1]) == 4 + 1
        assert len(listener.calls[-1]) == 2 * 2 + 1

    def test_notification_carries_frames(self):
        """Test that listeners receive samples with normals and tangents."""
        curve = Curve(closed=False, sample_rate=2)
        curve.create_anchor_point((0.0, 0.0, 0.0))
        listener = RecordingListener()
        curve.add_change_listener(listener)

        curve.create_anchor_point((10.0, 0.0, 0.0))

        assert np.allclose(listener.calls[-1][0].tangent, [1.0, 0.0, 0.0])
        assert np.allclose(listener.calls[-1][0].normal, [0.0, 1.0, 0.0])

    def test_remove_all_sends_empty_list(self):
        """Test that clearing the curve notifies with no samples."""
        curve = straight_curve(TRIANGLE)
        listener = RecordingListener()
        curve.add_change_listener(listener)

        curve.remove_all_anchor_points()

        assert listener.calls == [[]]

    def test_detached_anchor_does_not_notify(self):
        """Test that a removed anchor no longer reports changes."""
        curve = straight_curve(TRIANGLE)
        point = curve[0]
        curve.remove_anchor_point(point)
        listener = RecordingListener()
        curve.add_change_listener(listener)

        point.local_position = (5.0, 5.0, 5.0)

        assert not listener.calls

    def test_remove_change_listener(self):
        """Test that a removed listener is no longer called."""
        curve = straight_curve(TRIANGLE)
        listener = RecordingListener()
        curve.add_change_listener(listener)
        curve.add_change_listener(listener)
        curve.remove_change_listener(listener)

        curve.closed = True

        assert not listener.calls
        with pytest.raises(ValueError):
            curve.remove_change_listener(listener)
