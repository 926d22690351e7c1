"""
Transfer function, quantization and camera decode tests.
"""

import numpy as np
import pytest
from conftest import assert_close

from tincture_errors import OutOfRangeError
from tincture_transfer import (
    LOGC_EI800,
    decode_bt1886,
    decode_gamma,
    decode_pq,
    decode_srgb,
    encode,
    encode_bt1886,
    encode_gamma,
    encode_pq,
    encode_srgb,
    logc_decode,
    logc_encode,
    max_code_value,
    normalize_code_values,
    quantize,
    slog3_decode,
    slog3_encode,
)

pytestmark = pytest.mark.transfer


@pytest.fixture(scope="module")
def signal_values() -> np.ndarray:
    """Standard test values 0-1 range."""
    return np.array([
        0.0, 0.001, 0.01, 0.02, 0.05, 0.10, 0.18, 0.25,
        0.50, 0.75, 0.90, 0.95, 0.99, 1.0,
    ])


# ---------------------------------------------------------------------------
# Power law
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("gamma", [1.0, 2.2, 2.4, 2.6])
def test_gamma_round_trip(signal_values, gamma):
    assert_close(encode_gamma(decode_gamma(signal_values, gamma), gamma), signal_values)


def test_gamma_encode_value():
    assert_close(encode_gamma(0.5, 2.6), 0.5 ** (1.0 / 2.6))
    assert isinstance(encode_gamma(0.5, 2.6), float)


@pytest.mark.parametrize("bad", [-0.01, np.nan, np.inf])
def test_gamma_encode_rejects_bad_input(bad):
    with pytest.raises(OutOfRangeError):
        encode_gamma(np.array([0.5, bad, 0.5]), 2.4)


@pytest.mark.parametrize("gamma", [0.0, -2.2, np.nan])
def test_gamma_rejects_bad_exponent(gamma):
    with pytest.raises(OutOfRangeError):
        encode_gamma(0.5, gamma)


def test_out_of_range_is_value_error():
    with pytest.raises(ValueError):
        encode_gamma(-1.0, 2.4)


# ---------------------------------------------------------------------------
# BT.1886 / sRGB / PQ
# ---------------------------------------------------------------------------

def test_bt1886_zero_black_is_pure_gamma(signal_values):
    assert_close(encode_bt1886(signal_values, 2.4), signal_values ** (1.0 / 2.4))


def test_bt1886_round_trip_with_black(signal_values):
    lum = decode_bt1886(signal_values, 2.4, Lw=1.0, Lb=0.001)
    assert_close(lum[0], 0.001)
    assert_close(encode_bt1886(lum, 2.4, Lw=1.0, Lb=0.001), signal_values, atol=1e-9)


def test_bt1886_below_black_encodes_to_zero():
    out = encode_bt1886(np.array([0.0, 0.005, 0.01]), 2.4, Lw=1.0, Lb=0.01)
    assert np.all(out >= 0.0)
    assert_close(out, [0.0, 0.0, 0.0], atol=1e-12)


def test_srgb_reference_points():
    assert_close(encode_srgb(0.0), 0.0)
    assert_close(encode_srgb(1.0), 1.0)
    assert_close(encode_srgb(0.0031308), 0.040449936, rtol=1e-6)
    assert_close(encode_srgb(0.18), 0.4613561, rtol=1e-5)


def test_srgb_round_trip(signal_values):
    assert_close(decode_srgb(encode_srgb(signal_values)), signal_values, atol=1e-12)


def test_pq_reference_points():
    assert_close(encode_pq(0.0), 7.3095590e-07, rtol=1e-4)
    assert_close(encode_pq(10000.0), 1.0)
    assert_close(encode_pq(100.0), 0.5080784, rtol=1e-5)


def test_pq_round_trip():
    nits = np.array([0.01, 0.1, 1.0, 48.0, 100.0, 1000.0, 4000.0])
    assert_close(decode_pq(encode_pq(nits)), nits, rtol=1e-9)


def test_dispatch_matches_direct_calls(signal_values):
    assert_close(encode(signal_values, "gamma", gamma=2.6), encode_gamma(signal_values, 2.6))
    assert_close(encode(signal_values, "srgb"), encode_srgb(signal_values))
    assert_close(encode(signal_values, "pq", peak_luminance=1000.0),
                 encode_pq(signal_values * 1000.0))
    assert_close(encode(signal_values, "bt1886", gamma=2.4, black_luminance=0.0),
                 encode_bt1886(signal_values, 2.4))


def test_dispatch_unknown_kind():
    with pytest.raises(ValueError):
        encode(0.5, "hlg")


@pytest.mark.parametrize("kind", ["bt1886", "srgb", "pq"])
def test_every_encode_rejects_negative(kind):
    with pytest.raises(OutOfRangeError):
        encode(np.array([0.2, -0.2, 0.2]), kind)


# ---------------------------------------------------------------------------
# Quantization
# ---------------------------------------------------------------------------

def test_quantize_scenario_12bit():
    cv = quantize(encode_gamma(0.5, 2.6), 12)
    assert cv == np.floor(4095 * 0.5 ** (1.0 / 2.6) + 0.5)
    assert cv == 3137.0


def test_quantize_rounds_half_up():
    # 1-bit: 0.5 -> 0.5 cv, 2-bit: 0.5 -> 1.5 cv (exact in binary)
    assert quantize(0.5, 1) == 1.0
    assert quantize(0.5, 2) == 2.0
    assert quantize(0.25, 1) == 0.0


def test_quantize_clamps_to_code_value_range():
    cv = quantize(np.array([0.0, 0.5, 1.0, 1.2]), 10, min_cv=64, max_cv=940)
    assert np.array_equal(cv, [64.0, 512.0, 940.0, 940.0])


@pytest.mark.parametrize("bit_depth", [0, 33, 8.5])
def test_quantize_bad_bit_depth(bit_depth):
    with pytest.raises(OutOfRangeError):
        quantize(0.5, bit_depth)


def test_quantize_bad_code_range():
    with pytest.raises(OutOfRangeError):
        quantize(0.5, 8, min_cv=200, max_cv=100)


def test_normalize_code_values():
    assert max_code_value(12) == 4095
    assert_close(normalize_code_values(np.array([0.0, 4095.0]), 12), [0.0, 1.0])


# ---------------------------------------------------------------------------
# Camera log curves
# ---------------------------------------------------------------------------

def test_logc_mid_grey():
    # 18% grey sits at code value ~0.391 for EI 800.
    assert_close(logc_encode(0.18, **LOGC_EI800), 0.3910, atol=5e-4)
    assert_close(logc_decode(logc_encode(0.18, **LOGC_EI800), **LOGC_EI800), 0.18, rtol=1e-9)


def test_logc_round_trip_both_segments():
    x = np.array([-0.01, 0.0, 0.005, 0.010591, 0.05, 0.18, 1.0, 10.0])
    assert_close(logc_decode(logc_encode(x, **LOGC_EI800), **LOGC_EI800), x, atol=1e-9)


def test_slog3_reference_points():
    assert_close(slog3_encode(0.18), 420.0 / 1023.0, rtol=1e-9)
    assert_close(slog3_decode(420.0 / 1023.0), 0.18, rtol=1e-9)
    assert_close(slog3_encode(0.0), 95.0 / 1023.0, rtol=1e-9)


def test_slog3_round_trip_both_segments():
    x = np.array([-0.005, 0.0, 0.005, 0.01125, 0.18, 0.9, 5.0])
    assert_close(slog3_decode(slog3_encode(x)), x, atol=1e-9)
