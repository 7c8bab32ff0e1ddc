"""Ribbon mesh generation from curve samples."""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from bezcurve.common import DEFAULT_RIBBON_WIDTH, LENGTH_EPS
from bezcurve.curve import Curve, CurveSample

logger = logging.getLogger(__name__)


###############################################################################
# RibbonMesh
###############################################################################


@dataclass(frozen=True, eq=False)
class RibbonMesh:
    """
    Triangle strip along a sampled curve.

    Attributes:
        vertices: Array of shape (2n, 3), per sample the curve point followed by the offset point.
        triangles: Vertex indices of shape (2(n-1), 3).
        uvs: Array of shape (2n, 2), u along the curve in [0, 1], v = 0 on the curve and 1 on the offset side.
    """

    vertices: NDArray[np.float64]
    triangles: NDArray[np.int64]
    uvs: NDArray[np.float64]

    @property
    def vertex_count(self) -> int:
        """int: Number of vertices."""
        return int(self.vertices.shape[0])

    @property
    def triangle_count(self) -> int:
        """int: Number of triangles."""
        return int(self.triangles.shape[0])


###############################################################################
# RibbonMeshBuilder
###############################################################################
class RibbonMeshBuilder:
    """Builds a flat ribbon extruded from the sampled curve along the sample normals.

    Normals are expected from Curve.sample(..., frames=True). Samples with a zero normal
    yield coincident vertex pairs.
    """

    _width: float
    _curve_ref: Optional[weakref.ReferenceType]
    mesh: Optional[RibbonMesh]

    def __init__(self, width: float = DEFAULT_RIBBON_WIDTH):
        """Initialize the builder.

        Args:
            width: Offset distance of the second vertex row along the normal

        Raises:
            ValueError: If width is not positive
        """
        if not width > 0.0:
            raise ValueError(f"Ribbon width must be positive, got {width}")
        self._width = float(width)
        self._curve_ref = None
        self.mesh = None

    @property
    def width(self) -> float:
        """float: Offset distance of the second vertex row."""
        return self._width

    def build(self, samples: Sequence[CurveSample]) -> RibbonMesh:
        """
        Build the ribbon for a sequence of samples.

        For each sample the vertices p and p + unit(normal) * width are emitted. Each pair of
        consecutive samples (a, b) is joined by the triangles (a0, b0, a1) and (a1, b0, b1).

        Args:
            samples: Curve samples in curve order

        Returns:
            RibbonMesh: The generated mesh (empty arrays for no samples)
        """
        count = len(samples)
        if count == 0:
            return RibbonMesh(
                vertices=np.empty((0, 3), dtype=np.float64),
                triangles=np.empty((0, 3), dtype=np.int64),
                uvs=np.empty((0, 2), dtype=np.float64),
            )

        positions = np.array([sample.position for sample in samples], dtype=np.float64)
        normals = np.array([sample.normal for sample in samples], dtype=np.float64)
        normal_lengths = np.linalg.norm(normals, axis=1)[:, np.newaxis]
        unit_normals = np.where(normal_lengths > LENGTH_EPS, normals / np.maximum(normal_lengths, LENGTH_EPS), 0.0)

        vertices = np.empty((2 * count, 3), dtype=np.float64)
        vertices[0::2] = positions
        vertices[1::2] = positions + unit_normals * self._width

        # u follows the distance travelled along the samples
        cumulative = np.zeros(count, dtype=np.float64)
        cumulative[1:] = np.cumsum(np.linalg.norm(np.diff(positions, axis=0), axis=1))
        travelled = float(cumulative[-1])
        u = cumulative / travelled if travelled > LENGTH_EPS else np.zeros(count, dtype=np.float64)

        uvs = np.empty((2 * count, 2), dtype=np.float64)
        uvs[0::2, 0] = u
        uvs[1::2, 0] = u
        uvs[0::2, 1] = 0.0
        uvs[1::2, 1] = 1.0

        b0 = 2 * np.arange(1, count, dtype=np.int64)
        a0 = b0 - 2
        triangles = np.empty((2 * (count - 1), 3), dtype=np.int64)
        triangles[0::2] = np.column_stack([a0, b0, a0 + 1])
        triangles[1::2] = np.column_stack([a0 + 1, b0, b0 + 1])

        return RibbonMesh(vertices=vertices, triangles=triangles, uvs=uvs)

    ###########################################################################
    # Curve binding
    ###########################################################################

    @property
    def curve(self) -> Optional[Curve]:
        """The curve this builder follows, if any."""
        if self._curve_ref is None:
            return None
        return self._curve_ref()

    def attach(self, curve: Curve) -> RibbonMesh:
        """
        Follow a curve: rebuild mesh whenever the curve reports a change.

        The mesh is built immediately from the curve's current samples.

        Args:
            curve: Curve to follow

        Returns:
            RibbonMesh: The initial mesh
        """
        self.detach()
        curve.add_change_listener(self._on_curve_changed)
        self._curve_ref = weakref.ref(curve)
        samples = curve.sample(include_last_point=True, frames=True) if len(curve) else []
        self.mesh = self.build(samples)
        return self.mesh

    def detach(self) -> None:
        """Stop following the current curve. The last mesh is kept."""
        curve = self.curve
        if curve is not None:
            curve.remove_change_listener(self._on_curve_changed)
        self._curve_ref = None

    def _on_curve_changed(self, samples: Sequence[CurveSample]) -> None:
        self.mesh = self.build(samples)
        logger.debug("Rebuilt ribbon mesh with %d vertices", self.mesh.vertex_count)
