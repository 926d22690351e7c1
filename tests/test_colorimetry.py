"""
Primary matrix and chromatic adaptation tests.
"""

import numpy as np
import pytest
from conftest import assert_close

from tincture_colorimetry import (
    AP0,
    AP1,
    CIE_XYZ,
    P3_D65,
    P3_DCI,
    REC709,
    STANDARD_GAMUTS,
    WHITE_D60,
    WHITE_D65,
    Chromaticities,
    bradford_f44,
    luminance_weights,
    rgb_to_rgb_f44,
    rgb_to_xyz_f44,
    xy_to_XYZ,
    xyY_to_xyz,
    xyz_to_rgb_f44,
    xyz_to_xyY,
)
from tincture_errors import InvalidGamutError, OutOfRangeError
from tincture_linalg import mult_f3_f44, mult_f44_f44

pytestmark = pytest.mark.matrix


@pytest.mark.parametrize("name", sorted(STANDARD_GAMUTS))
def test_xyz_to_rgb_inverts_rgb_to_xyz(name):
    chroma = STANDARD_GAMUTS[name]
    product = mult_f44_f44(rgb_to_xyz_f44(chroma), xyz_to_rgb_f44(chroma))
    assert np.max(np.abs(product - np.eye(4))) < 1e-6


@pytest.mark.parametrize("name", sorted(STANDARD_GAMUTS))
def test_white_maps_to_white_point(name):
    chroma = STANDARD_GAMUTS[name]
    xyz = mult_f3_f44([1.0, 1.0, 1.0], rgb_to_xyz_f44(chroma))
    assert_close(xyz, xy_to_XYZ(chroma.white, 1.0), atol=1e-9)


def test_luminance_scale():
    xyz = mult_f3_f44([1.0, 1.0, 1.0], rgb_to_xyz_f44(REC709, Y=48.0))
    assert_close(xyz[1], 48.0)


@pytest.mark.parametrize("Y", [1e-4, 1e-2, 48.0, 1000.0])
@pytest.mark.parametrize("name", ["Rec709", "AP0", "P3D65"])
def test_inverse_holds_at_any_luminance_scale(name, Y):
    chroma = STANDARD_GAMUTS[name]
    product = mult_f44_f44(rgb_to_xyz_f44(chroma, Y), xyz_to_rgb_f44(chroma, Y))
    assert np.max(np.abs(product - np.eye(4))) < 1e-9


def test_rec709_luminance_weights():
    assert_close(luminance_weights(REC709), [0.2126, 0.7152, 0.0722], atol=5e-5)


def test_collinear_primaries_raise():
    bad = Chromaticities((0.1, 0.1), (0.2, 0.2), (0.3, 0.3), WHITE_D65)
    with pytest.raises(InvalidGamutError):
        rgb_to_xyz_f44(bad)


def test_invalid_gamut_is_value_error():
    bad = Chromaticities((0.1, 0.1), (0.2, 0.2), (0.3, 0.3), WHITE_D65)
    with pytest.raises(ValueError):
        xyz_to_rgb_f44(bad)


def test_list_chromaticities_normalise_to_tuples():
    listed = Chromaticities([0.64, 0.33], [0.3, 0.6], [0.15, 0.06], list(REC709.white))
    assert listed == REC709
    assert hash(listed) == hash(REC709)
    assert isinstance(listed.red, tuple)


def test_non_finite_chromaticity_raises():
    with pytest.raises(InvalidGamutError):
        Chromaticities((np.nan, 0.3), (0.3, 0.6), (0.15, 0.06), WHITE_D65)


def test_zero_white_y_raises():
    with pytest.raises(InvalidGamutError):
        Chromaticities((0.64, 0.33), (0.3, 0.6), (0.15, 0.06), (0.3, 0.0))


def test_non_positive_luminance_raises():
    with pytest.raises(OutOfRangeError):
        rgb_to_xyz_f44(REC709, Y=0.0)


def test_xyz_primaries_are_identity():
    assert_close(rgb_to_xyz_f44(CIE_XYZ), np.eye(4), atol=1e-12)


def test_chromaticities_hashable_and_round_trip():
    assert Chromaticities.from_state(P3_D65.get_state()) == P3_D65
    assert hash(Chromaticities.from_state(P3_D65.get_state())) == hash(P3_D65)


def test_bradford_same_white_is_identity():
    assert_close(bradford_f44(WHITE_D65, WHITE_D65), np.eye(4))


def test_bradford_maps_white_to_white():
    src = xy_to_XYZ(WHITE_D60)
    out = mult_f3_f44(src, bradford_f44(WHITE_D60, WHITE_D65))
    assert_close(out, xy_to_XYZ(WHITE_D65), atol=1e-9)


def test_rgb_to_rgb_identical_primaries_is_exact_identity():
    assert np.array_equal(rgb_to_rgb_f44(REC709, REC709), np.eye(4))


def test_rgb_to_rgb_adapted_white_is_white():
    out = mult_f3_f44([1.0, 1.0, 1.0], rgb_to_rgb_f44(AP0, REC709, adapt=True))
    assert_close(out, [1.0, 1.0, 1.0], atol=1e-9)


def test_rgb_to_rgb_unadapted_keeps_source_white():
    # D60 white shown on a DCI projector is not neutral there.
    out = mult_f3_f44([1.0, 1.0, 1.0], rgb_to_rgb_f44(AP1, P3_DCI, adapt=False))
    assert np.ptp(out) > 1e-3
    xyz = mult_f3_f44(out, rgb_to_xyz_f44(P3_DCI))
    xyY = xyz_to_xyY(xyz)
    assert_close(xyY[:2], WHITE_D60, atol=1e-9)


def test_xyY_round_trip(unit_cube_colors):
    xyz = mult_f3_f44(unit_cube_colors, rgb_to_xyz_f44(REC709))
    assert_close(xyY_to_xyz(xyz_to_xyY(xyz)), xyz, atol=1e-12)


def test_xyY_black_takes_white_chromaticity():
    assert_close(xyz_to_xyY([0.0, 0.0, 0.0], WHITE_D65), [0.3127, 0.3290, 0.0])
