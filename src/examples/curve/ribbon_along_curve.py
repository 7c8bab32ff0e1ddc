#!/usr/bin/env python3
"""
Keep a ribbon mesh in sync with an open curve while anchors are added and moved.
"""

from bezcurve.common import AnchorPointType
from bezcurve.curve import Curve
from bezcurve.ribbon import RibbonMeshBuilder


def print_mesh(label: str, builder: RibbonMeshBuilder) -> None:
    """Print vertex and triangle counts of the builder's current mesh."""
    mesh = builder.mesh
    print(f"{label:<28} vertices={mesh.vertex_count:4d}  triangles={mesh.triangle_count:4d}")


def main():
    """Main"""
    curve = Curve(closed=False, sample_rate=8)
    builder = RibbonMeshBuilder(width=0.5)
    builder.attach(curve)
    print_mesh("empty curve:", builder)

    curve.create_anchor_point((0.0, 0.0, 0.0))
    print_mesh("one anchor:", builder)

    curve.create_anchor_point((10.0, 0.0, 0.0))
    print_mesh("two anchors:", builder)

    middle = curve.insert_anchor_at_sample(curve.closest_sample((5.0, 1.0, 0.0)))
    middle.point_type = AnchorPointType.CONNECTED
    print_mesh("split in the middle:", builder)

    middle.set_position((5.0, 4.0, 0.0))
    print_mesh("middle anchor moved:", builder)

    builder.detach()
    print(f"\nCurve length: {curve.total_length():.3f}")


if __name__ == "__main__":
    main()
