"""Translation and rotation of vector spherical wave expansions.

The coupling blocks ``A`` and ``B`` between two scatterers are obtained from
the coaxial coefficients of :mod:`yamspy.coaxial` by rotating the frame so that
the translation vector lies on the z-axis.

Notes
-----
The rotate, translate coaxially, rotate back scheme follows
:cite:`Gumerov-2004-ID1`.
"""

from __future__ import annotations

from yamspy.coupling.rotation import rotation_coefficients, rotation_to_z
from yamspy.coupling.translation import (
    Coupling,
    coaxial_regular,
    scalar_translation,
    translation_matrix,
)

__all__ = [
    "Coupling",
    "coaxial_regular",
    "rotation_coefficients",
    "rotation_to_z",
    "scalar_translation",
    "translation_matrix",
]
