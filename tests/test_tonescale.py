"""
Tone scale, roll white, black-point and surround compensation tests.
"""

import warnings

import numpy as np
import pytest
from conftest import assert_close

from device_transforms.academy import ODT_48NITS, ODT_1000NITS
from tincture_colorimetry import REC709, luminance_weights
from tincture_errors import OutOfRangeError
from tincture_tonescale import (
    BlackPointCompensation,
    SegmentedSplineParams,
    odt_tonescale_fwd,
    odt_tonescale_rev,
    roll_white_fwd,
    roll_white_rev,
    surround_compensation,
)

pytestmark = pytest.mark.tonescale


# ---------------------------------------------------------------------------
# Segmented spline
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("params", [ODT_48NITS, ODT_1000NITS], ids=["48nits", "1000nits"])
def test_tonescale_monotonic(params, scene_ramp):
    y = odt_tonescale_fwd(scene_ramp * 10.0, params)
    assert np.all(np.diff(y) >= 0.0)


@pytest.mark.parametrize("params", [ODT_48NITS, ODT_1000NITS], ids=["48nits", "1000nits"])
def test_tonescale_passes_through_anchors(params):
    for point in (params.min_point, params.mid_point, params.max_point):
        assert_close(odt_tonescale_fwd(point[0], params), point[1], rtol=1e-5)


def test_tonescale_floor_below_min_point():
    # slope_low = 0: everything darker than the min anchor lands on its y.
    assert_close(odt_tonescale_fwd(0.0, ODT_48NITS), 0.02, rtol=1e-6)
    assert_close(odt_tonescale_fwd(-5.0, ODT_48NITS), 0.02, rtol=1e-6)


def test_tonescale_highlight_extension():
    y_max = odt_tonescale_fwd(1005.7191, ODT_48NITS)
    y_far = odt_tonescale_fwd(1005.7191 * 10.0, ODT_48NITS)
    assert_close(np.log10(y_far) - np.log10(y_max), 0.04, rtol=1e-6)


def test_tonescale_scalar_and_shape():
    assert isinstance(odt_tonescale_fwd(0.18, ODT_48NITS), float)
    grid = np.full((4, 5, 3), 4.8)
    out = odt_tonescale_fwd(grid, ODT_48NITS)
    assert out.shape == grid.shape


@pytest.mark.parametrize("params", [ODT_48NITS, ODT_1000NITS], ids=["48nits", "1000nits"])
def test_tonescale_rev_inverts_fwd(params):
    lo, hi = params.min_point[0], params.max_point[0]
    x = np.logspace(np.log10(lo) + 0.01, np.log10(hi) - 0.01, 60)
    assert_close(odt_tonescale_rev(odt_tonescale_fwd(x, params), params), x, rtol=1e-6)


def test_spline_param_validation():
    with pytest.raises(OutOfRangeError):
        SegmentedSplineParams(
            coefs_low=(0.0, 0.0, 0.0), coefs_high=(0.0, 0.0, 0.0),
            min_point=(1.0, 1.0), mid_point=(0.5, 2.0), max_point=(4.0, 3.0),
        )


def test_spline_inconsistent_anchor_warns():
    with pytest.warns(UserWarning):
        SegmentedSplineParams(
            coefs_low=(-1.0, -1.0, 0.0, 0.5, 0.5),
            coefs_high=(0.5, 0.5, 1.0, 1.5, 1.5),
            min_point=(0.01, 0.1),
            mid_point=(1.0, 3.0),
            max_point=(100.0, 30.0),
        )


def test_shipped_splines_are_consistent():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        SegmentedSplineParams.from_state(ODT_48NITS.get_state())
        SegmentedSplineParams.from_state(ODT_1000NITS.get_state())


# ---------------------------------------------------------------------------
# Roll white
# ---------------------------------------------------------------------------

def test_roll_white_identity_below_transition():
    white, width = 1.0, 0.25
    assert_close(roll_white_fwd(white - width, white, width), white - width)
    x = np.linspace(-0.5, white - width, 50)
    assert np.array_equal(roll_white_fwd(x, white, width), x)


def test_roll_white_monotonic_and_bounded():
    white, width = 0.918, 0.082
    x = np.linspace(0.0, 3.0, 3001)
    y = roll_white_fwd(x, white, width)
    assert np.all(np.diff(y) >= 0.0)
    assert np.max(y) <= white + 1e-12
    assert_close(roll_white_fwd(5.0, white, width), white)


def test_roll_white_continuous_at_knees():
    white, width = 1.0, 0.2
    eps = 1e-9
    for knee in (white - width, white + width):
        lo = roll_white_fwd(knee - eps, white, width)
        hi = roll_white_fwd(knee + eps, white, width)
        assert abs(hi - lo) < 1e-8


def test_roll_white_rev_inverts_fwd():
    white, width = 1.0, 0.3
    x = np.linspace(0.0, white + width - 1e-6, 200)
    assert_close(roll_white_rev(roll_white_fwd(x, white, width), white, width), x, atol=1e-6)


@pytest.mark.parametrize("width", [0.0, -0.1, np.nan])
def test_roll_white_bad_width(width):
    with pytest.raises(OutOfRangeError):
        roll_white_fwd(0.5, 1.0, width)


# ---------------------------------------------------------------------------
# Black-point compensation
# ---------------------------------------------------------------------------

def test_black_point_maps_anchors():
    bpc = BlackPointCompensation(0.02, 48.0)
    assert_close(bpc.fwd(0.02), 0.0, atol=1e-12)
    assert_close(bpc.fwd(48.0), 1.0)
    assert_close(bpc.rev(bpc.fwd(12.3)), 12.3)


def test_black_point_composed_with_tonescale_maps_zero_to_zero():
    bpc = BlackPointCompensation(0.02, 48.0)
    assert_close(bpc.fwd(odt_tonescale_fwd(0.0, ODT_48NITS)), 0.0, atol=1e-9)


def test_black_point_empty_range():
    with pytest.raises(OutOfRangeError):
        BlackPointCompensation(1.0, 1.0)


# ---------------------------------------------------------------------------
# Surround compensation
# ---------------------------------------------------------------------------

def test_surround_unit_gamma_is_identity(unit_cube_colors):
    assert_close(surround_compensation(unit_cube_colors, REC709, 1.0), unit_cube_colors)


def test_surround_keeps_chromaticity_and_powers_luminance():
    rgb = np.array([0.4, 0.2, 0.1])
    out = surround_compensation(rgb, REC709, 0.9811)
    w = luminance_weights(REC709)
    y_in, y_out = rgb @ w, out @ w
    assert_close(y_out, y_in ** 0.9811)
    assert_close(out / y_out, rgb / y_in)


def test_surround_bad_gamma():
    with pytest.raises(OutOfRangeError):
        surround_compensation([0.5, 0.5, 0.5], REC709, 0.0)
