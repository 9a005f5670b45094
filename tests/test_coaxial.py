import numpy as np
import numpy.testing as npt
import pytest

from yamspy.coaxial import CachedCoAxialRecurrence, recursion_a, recursion_b

WAVE_K = 1.0 + 1.5j


def _assert_balanced(lhs, rhs, terms, rtol=1e-9):
    # compare relative to the largest term to tolerate cancellation
    scale = max(max(abs(t) for t in terms), 1e-300)
    assert abs(lhs - rhs) <= rtol * scale


@pytest.fixture(scope="module", params=[True, False], ids=["regular", "singular"])
def recurrence(request) -> CachedCoAxialRecurrence:
    return CachedCoAxialRecurrence(1.0, WAVE_K, regular=request.param)


@pytest.mark.smoke
@pytest.mark.parametrize(
    ("n", "m", "l", "expected"),
    [
        (0, 0, 0, 1.1400511799225792 - 0.5596221704584821j),
        (0, 0, 4, -0.028191522402192234 - 0.02162885905593049j),
        (1, 0, 1, 1.2274819687880665 - 1.0271756758800463j),
        (1, 1, 3, -0.085169586217943016 + 0.36331568009355053j),
    ],
)
def test_known_values(n: int, m: int, l: int, expected: complex):
    recurrence = CachedCoAxialRecurrence(1.0, WAVE_K, regular=True)
    npt.assert_allclose(recurrence(n, m, l), expected, rtol=1e-10)


def test_recursion_coefficients():
    assert recursion_a(0, 0) == pytest.approx(np.sqrt(1 / 3))
    assert recursion_a(1, 2) == 0.0
    assert recursion_a(2, -1) == recursion_a(2, 1)
    assert recursion_b(1, -1) == pytest.approx(-np.sqrt(2 / 3))
    assert recursion_b(2, 1) == pytest.approx(0.0)
    assert recursion_b(1, 3) == 0.0


@pytest.mark.parametrize("n", range(0, 4))
@pytest.mark.parametrize("l", range(0, 6))
def test_n_recurrence(recurrence: CachedCoAxialRecurrence, n: int, l: int):
    a = recursion_a
    for m in range(0, min(n, l) + 1):
        terms = [
            a(n - 1, m) * recurrence(n - 1, m, l),
            a(n, m) * recurrence(n + 1, m, l),
            a(l, m) * recurrence(n, m, l + 1),
            a(l - 1, m) * recurrence(n, m, l - 1),
        ]
        _assert_balanced(terms[0] - terms[1], terms[2] - terms[3], terms)


@pytest.mark.parametrize("n", range(0, 4))
@pytest.mark.parametrize("l", range(0, 6))
def test_m_recurrence(recurrence: CachedCoAxialRecurrence, n: int, l: int):
    b = recursion_b
    for m in range(0, min(n, l) + 1):
        terms = [
            b(n, m) * recurrence(n - 1, m + 1, l),
            b(n + 1, -m - 1) * recurrence(n + 1, m + 1, l),
            b(l + 1, m) * recurrence(n, m, l + 1),
            b(l, -m - 1) * recurrence(n, m, l - 1),
        ]
        _assert_balanced(terms[0] - terms[1], terms[2] - terms[3], terms)


def test_order_symmetry(recurrence: CachedCoAxialRecurrence):
    for n in range(0, 5):
        for l in range(0, 5):
            for m in range(0, min(n, l) + 1):
                assert recurrence(n, -m, l) == recurrence(n, m, l)


def test_parity_symmetry(recurrence: CachedCoAxialRecurrence):
    for n in range(0, 5):
        for l in range(0, 5):
            for m in range(0, min(n, l) + 1):
                npt.assert_allclose(
                    recurrence(l, m, n),
                    (-1) ** (n + l) * recurrence(n, m, l),
                    rtol=1e-9,
                    atol=1e-12,
                )


@pytest.mark.parametrize("regular", [True, False])
def test_zero_separation_is_identity(regular: bool):
    recurrence = CachedCoAxialRecurrence(0.0, WAVE_K, regular=regular)
    for n in range(0, 5):
        for l in range(0, 5):
            for m in range(-min(n, l), min(n, l) + 1):
                assert recurrence(n, m, l) == (1.0 if n == l else 0.0)


def test_out_of_range_is_zero(recurrence: CachedCoAxialRecurrence):
    assert recurrence(1, 2, 3) == 0
    assert recurrence(3, 2, 1) == 0
    assert recurrence(2, -3, 4) == 0


def test_table_layout(recurrence: CachedCoAxialRecurrence):
    table = recurrence.table(3, 4)
    assert table.shape == (4, 4, 5)
    assert table[1, 2, 3] == recurrence(2, 1, 3)
    assert table[2, 1, 3] == 0
