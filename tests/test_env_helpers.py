import os

import pytest

from yamspy.linalg.env import (
    block_size_from_env as _block_size_from_env,
    grid_shape_from_env as _grid_shape_from_env,
    parse_block_size_env as _parse_block_size_env,
    parse_int_env as _parse_int_env,
)


def test_parse_int_env_defaults_and_minimum():
    os.environ.pop("YAMS_TEST_INT", None)
    assert _parse_int_env("YAMS_TEST_INT", default=7, minimum=3) == 7

    os.environ["YAMS_TEST_INT"] = ""
    assert _parse_int_env("YAMS_TEST_INT", default=7, minimum=3) == 7

    os.environ["YAMS_TEST_INT"] = "2"
    assert _parse_int_env("YAMS_TEST_INT", default=7, minimum=3) == 3

    os.environ["YAMS_TEST_INT"] = "10"
    assert _parse_int_env("YAMS_TEST_INT", default=7, minimum=3) == 10

    os.environ["YAMS_TEST_INT"] = "ten"
    assert _parse_int_env("YAMS_TEST_INT", default=7, minimum=3) == 7
    os.environ.pop("YAMS_TEST_INT", None)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("32", (32, 32)),
        ("16x8", (16, 8)),
        ("16 X 8", (16, 8)),
        ("4,2", (4, 2)),
        ("", (64, 64)),
        ("0", (64, 64)),
        ("2x2x2", (64, 64)),
        ("garbage", (64, 64)),
    ],
)
def test_parse_block_size_env(raw: str, expected: tuple[int, int]):
    os.environ["YAMS_TEST_BLOCK"] = raw
    assert _parse_block_size_env("YAMS_TEST_BLOCK") == expected
    os.environ.pop("YAMS_TEST_BLOCK", None)


def test_grid_shape_from_env():
    os.environ.pop("YAMS_GRID_ROWS", None)
    os.environ.pop("YAMS_GRID_COLS", None)
    assert _grid_shape_from_env() == (1, 1)
    assert _grid_shape_from_env((2, 3)) == (2, 3)

    os.environ["YAMS_GRID_ROWS"] = "4"
    assert _grid_shape_from_env((2, 3)) == (4, 3)
    os.environ["YAMS_GRID_COLS"] = "0"
    assert _grid_shape_from_env((2, 3)) == (4, 1)

    os.environ.pop("YAMS_GRID_ROWS", None)
    os.environ.pop("YAMS_GRID_COLS", None)


def test_block_size_from_env():
    os.environ.pop("YAMS_BLOCK_SIZE", None)
    assert _block_size_from_env() == (64, 64)
    assert _block_size_from_env((8, 8)) == (8, 8)

    os.environ["YAMS_BLOCK_SIZE"] = "24"
    assert _block_size_from_env((8, 8)) == (24, 24)
    os.environ.pop("YAMS_BLOCK_SIZE", None)
