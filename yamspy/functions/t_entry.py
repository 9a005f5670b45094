"""Single-sphere T-matrix entries.

Implements the Lorenz-Mie coefficients of a homogeneous sphere including a
relative permeability, following :cite:`Bohren-1998-ID178` (eqs. 4.52-4.53).
"""

from scipy.special import spherical_jn, spherical_yn


def t_entry(
    tau,
    n,
    k_medium,
    k_sphere,
    radius,
    mu_medium=1.0,
    mu_sphere=1.0,
    field_type="scattered",
):
    """
    Computes a T-matrix entry for a given degree and polarization family.

    Args:
        tau (int): Polarization family, 1 (M) or 2 (N).
        n (int): The degree.
        k_medium (complex): Wave number of the background medium.
        k_sphere (complex): Wave number inside the sphere.
        radius (float): Sphere radius.
        mu_medium (complex, optional): Relative permeability of the medium.
        mu_sphere (complex, optional): Relative permeability of the sphere.
        field_type (str, optional): "scattered" or "internal".

    Returns:
        (complex): The requested coefficient.
    """
    m = k_sphere / k_medium
    x = k_medium * radius
    mx = k_sphere * radius

    jx = spherical_jn(n, x)
    jx_prime = spherical_jn(n, x, derivative=True)
    yx = spherical_yn(n, x)
    yx_prime = spherical_yn(n, x, derivative=True)

    jmx = spherical_jn(n, mx)
    jmx_prime = spherical_jn(n, mx, derivative=True)

    hx = jx + 1j * yx
    hx_prime = jx_prime + 1j * yx_prime

    # Riccati-Bessel derivatives: d/dz [z * f_n(z)]
    djx = jx + x * jx_prime
    djmx = jmx + mx * jmx_prime
    dhx = hx + x * hx_prime

    mu, mu1 = mu_medium, mu_sphere
    wronskian = jx * dhx - hx * djx

    match (field_type, tau):
        case ("scattered", 1):
            return -(mu1 * jmx * djx - mu * jx * djmx) / (
                mu1 * jmx * dhx - mu * hx * djmx
            )  # -b
        case ("scattered", 2):
            return -(mu * m**2 * jmx * djx - mu1 * jx * djmx) / (
                mu * m**2 * jmx * dhx - mu1 * hx * djmx
            )  # -a
        case ("internal", 1):
            return mu1 * wronskian / (mu1 * jmx * dhx - mu * hx * djmx)  # c
        case ("internal", 2):
            return mu1 * m * wronskian / (mu * m**2 * jmx * dhx - mu1 * hx * djmx)  # d
        case _:
            raise ValueError(f"Not a valid field type / tau pair: {(field_type, tau)!r}")
