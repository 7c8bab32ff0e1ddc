#!/usr/bin/env python3
"""
Build a closed curve with mixed anchor types, then print its length, sample counts
and points at uniform arc-length steps.
"""

from bezcurve.anchor import AnchorPoint
from bezcurve.common import AnchorPointType
from bezcurve.curve import Curve


def build_curve() -> Curve:
    """Closed curve: straight corner, smooth connected anchor and a broken anchor."""
    curve = Curve(closed=True, sample_rate=20, origin=(5.0, 5.0, 0.0))

    curve.add_anchor_point(AnchorPoint((0.0, 0.0), (-2.0, 0.0), (2.0, 0.0)))

    smooth = curve.add_anchor_point(AnchorPoint((10.0, 0.0), (-3.0, -3.0), (3.0, 3.0)))
    smooth.point_type = AnchorPointType.CONNECTED

    broken = curve.add_anchor_point(AnchorPoint((10.0, 10.0), (0.0, -4.0), (-4.0, 0.0)))
    broken.point_type = AnchorPointType.BROKEN

    return curve


def main():
    """Main"""
    curve = build_curve()
    print(curve)
    for point in curve:
        print(f"  {point}")

    print(f"\nSegment lengths: {curve.segment_lengths().round(3).tolist()}")
    print(f"Total length:    {curve.total_length():.3f}")

    with_last = curve.sample(include_last_point=True)
    without_last = curve.sample(include_last_point=False)
    print(f"\nSamples (include last point): {len(with_last)}")
    print(f"Samples (skip last point):    {len(without_last)}")

    print("\nPoints at uniform arc-length steps:")
    for step in range(11):
        t = step / 10
        x, y, z = curve.point_at(t)
        print(f"  t={t:.1f}: ({x:8.3f}, {y:8.3f}, {z:8.3f})")


if __name__ == "__main__":
    main()
