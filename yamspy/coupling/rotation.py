"""Rotation of spherical harmonic bases.

A general translation is computed in a rotated frame in which the translation
vector points along the z-axis. The harmonics of one degree ``n`` only mix
among themselves under a rotation ``R``,

.. math::

    Y_n^m(R^T \\hat x) = \\sum_{\\mu} D^n_{m\\mu}(R)\\, Y_n^\\mu(\\hat x),

and the same matrices rotate the vector wave functions, since
:math:`\\nabla \\times (\\mathbf r\\, \\cdot)` commutes with rotations.

The matrices :math:`D^n` are obtained by projecting the rotated harmonics onto
the unrotated ones with a product quadrature (Gauss-Legendre in
:math:`\\cos\\theta`, equidistant in :math:`\\phi`) that integrates spherical
polynomials of degree ``2n`` exactly. This avoids any dependence on Euler angle
and phase conventions.
"""

from __future__ import annotations

from functools import lru_cache

import numpy as np

from yamspy.functions.legendre_normalized_trigon import spherical_harmonics_block


def _rotation_z(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def _rotation_y(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def rotation_to_z(direction) -> np.ndarray:
    """Rotation matrix ``R`` with ``R @ direction = |direction| * z``.

    Parameters
    ----------
    direction:
        Cartesian vector of shape ``(3,)``. The zero vector maps to the
        identity.

    Returns
    -------
    numpy.ndarray
        Orthogonal ``3 x 3`` matrix.
    """
    direction = np.asarray(direction, dtype=float)
    distance = np.linalg.norm(direction)
    if distance == 0:
        return np.eye(3)
    theta = np.arccos(np.clip(direction[2] / distance, -1.0, 1.0))
    phi = np.arctan2(direction[1], direction[0])
    return _rotation_y(-theta) @ _rotation_z(-phi)


@lru_cache(maxsize=None)
def _quadrature(n: int):
    nodes, weights = np.polynomial.legendre.leggauss(n + 1)
    phi = 2 * np.pi * np.arange(2 * n + 1) / (2 * n + 1)
    cos_theta, phi = np.meshgrid(nodes, phi, indexing="ij")
    weights = np.repeat(weights, 2 * n + 1) * 2 * np.pi / (2 * n + 1)

    sin_theta = np.sqrt(1 - cos_theta**2)
    points = np.stack(
        (sin_theta * np.cos(phi), sin_theta * np.sin(phi), cos_theta), axis=-1
    ).reshape(-1, 3)
    harmonics = spherical_harmonics_block(
        n, np.arccos(cos_theta).ravel(), phi.ravel()
    )
    projector = np.conj(harmonics) * weights
    projector.setflags(write=False)
    points.setflags(write=False)
    return points, projector


def rotation_coefficients(n: int, rotation: np.ndarray) -> np.ndarray:
    """Rotation matrix :math:`D^n(R)` of the degree ``n`` harmonics.

    Parameters
    ----------
    n:
        Degree.
    rotation:
        Orthogonal ``3 x 3`` matrix ``R``.

    Returns
    -------
    numpy.ndarray
        Complex ``(2n + 1, 2n + 1)`` matrix, rows indexed by ``m + n`` and
        columns by ``mu + n``. It is unitary, so its inverse is the conjugate
        transpose.
    """
    if n == 0:
        return np.ones((1, 1), dtype=complex)
    points, projector = _quadrature(n)
    rotated = points @ rotation  # rows are R^T x
    theta = np.arccos(np.clip(rotated[:, 2], -1.0, 1.0))
    phi = np.arctan2(rotated[:, 1], rotated[:, 0])
    harmonics = spherical_harmonics_block(n, theta, phi)
    return harmonics @ projector.T
