import dataclasses
import math
from unittest import mock

import pytest

from gossipkit.coordinate.coordinate import (
    Config,
    Coordinate,
    DimensionalityConflictError,
    add,
    default_config,
    diff,
    magnitude,
    mul,
    unit_vector_at,
)

EPS = 1.0e-6


def assert_vectors(actual, expected):
    assert len(actual) == len(expected)
    for a, e in zip(actual, expected):
        assert a == pytest.approx(e, abs=EPS)


def three_d(height_min=0.0):
    return dataclasses.replace(default_config(), dimensionality=3, height_min=height_min)


def test_default_config_values():
    config = default_config()
    assert config == Config(
        dimensionality=8,
        vivaldi_error_max=1.5,
        vivaldi_ce=0.25,
        vivaldi_cc=0.25,
        adjustment_window_size=20,
        height_min=10.0e-6,
        latency_filter_size=3,
        gravity_rho=150.0,
    )


def test_new_coordinate():
    config = default_config()
    c = Coordinate.new(config)
    assert len(c.vec) == config.dimensionality
    assert c.vec == [0.0] * 8
    assert c.error == 1.5
    assert c.adjustment == 0.0
    assert c.height == config.height_min


def test_clone():
    c = Coordinate.new(default_config())
    c.vec[0], c.vec[1], c.vec[2] = 1.0, 2.0, 3.0
    c.error = 5.0
    c.adjustment = 10.0
    c.height = 4.2

    other = c.clone()
    assert other == c

    other.vec[0] = c.vec[0] + 0.5
    assert other != c
    assert c.vec[0] == 1.0


FIELD_NAMES = [("vec", i) for i in range(8)] + [("error", None), ("adjustment", None), ("height", None)]


def _set(c, name, index, value):
    if index is None:
        setattr(c, name, value)
    else:
        c.vec[index] = value


@pytest.mark.parametrize("name,index", FIELD_NAMES)
@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_is_valid(name, index, bad):
    c = Coordinate.new(default_config())
    assert c.is_valid()
    _set(c, name, index, bad)
    assert not c.is_valid()
    _set(c, name, index, 0.0)
    assert c.is_valid()


def test_is_compatible_with():
    config = dataclasses.replace(default_config(), dimensionality=3)
    c1 = Coordinate.new(config)
    c2 = Coordinate.new(config)
    alien = Coordinate.new(dataclasses.replace(config, dimensionality=2))

    assert c1.is_compatible_with(c1)
    assert c2.is_compatible_with(c2)
    assert alien.is_compatible_with(alien)
    assert c1.is_compatible_with(c2) and c2.is_compatible_with(c1)
    assert not c1.is_compatible_with(alien)
    assert not c2.is_compatible_with(alien)
    assert not alien.is_compatible_with(c1)
    assert not alien.is_compatible_with(c2)


def test_apply_force():
    config = three_d()
    origin = Coordinate.new(config)

    above = Coordinate.new(config)
    above.vec = [0.0, 0.0, 2.9]
    c = origin.apply_force(config, 5.3, above)
    assert_vectors(c.vec, [0.0, 0.0, -5.3])

    right = Coordinate.new(config)
    right.vec = [3.4, 0.0, -5.3]
    c = c.apply_force(config, 2.0, right)
    assert_vectors(c.vec, [-2.0, 0.0, -5.3])

    c = origin.apply_force(config, 1.0, origin)
    assert origin.distance_to(c) == pytest.approx(1.0, abs=EPS)

    config.height_min = 10.0e-6
    origin = Coordinate.new(config)
    c = origin.apply_force(config, 5.3, above)
    assert_vectors(c.vec, [0.0, 0.0, -5.3])
    assert c.height == pytest.approx(config.height_min + 5.3 * config.height_min / 2.9, abs=EPS)

    c = origin.apply_force(config, -5.3, above)
    assert_vectors(c.vec, [0.0, 0.0, 5.3])
    assert c.height == pytest.approx(config.height_min, abs=EPS)

    bad = c.clone()
    bad.vec = [0.0] * (len(bad.vec) + 1)
    with pytest.raises(DimensionalityConflictError):
        c.apply_force(config, 1.0, bad)


def test_apply_force_leaves_original_untouched():
    config = three_d()
    origin = Coordinate.new(config)
    above = Coordinate.new(config)
    above.vec = [0.0, 0.0, 2.9]
    origin.apply_force(config, 5.3, above)
    assert origin.vec == [0.0, 0.0, 0.0]


def test_distance_to():
    config = three_d()
    c1, c2 = Coordinate.new(config), Coordinate.new(config)
    c1.vec = [-0.5, 1.3, 2.4]
    c2.vec = [1.2, -2.3, 3.4]

    assert c1.distance_to(c1) == pytest.approx(0.0, abs=EPS)
    assert c1.distance_to(c2) == pytest.approx(c2.distance_to(c1), abs=EPS)
    assert c1.distance_to(c2) == pytest.approx(4.104875150354758, abs=EPS)

    c1.adjustment = -1.0e6
    assert c1.distance_to(c2) == pytest.approx(4.104875150354758, abs=EPS)

    c1.adjustment = 0.1
    c2.adjustment = 0.2
    assert c1.distance_to(c2) == pytest.approx(4.104875150354758 + 0.3, abs=EPS)

    c1.height = 0.7
    c2.height = 0.1
    assert c1.distance_to(c2) == pytest.approx(4.104875150354758 + 0.3 + 0.8, abs=EPS)

    bad = c1.clone()
    bad.vec = [0.0] * (len(bad.vec) + 1)
    with pytest.raises(DimensionalityConflictError):
        c1.distance_to(bad)


def test_distance_to_nanosecond_resolution():
    config = three_d()
    c1, c2 = Coordinate.new(config), Coordinate.new(config)
    c2.vec = [0.0, 0.0, 12.345]
    assert c1.distance_to(c2) == int(12.345 * 1.0e9) / 1.0e9


def test_raw_distance_to():
    config = three_d()
    c1, c2 = Coordinate.new(config), Coordinate.new(config)
    c1.vec = [-0.5, 1.3, 2.4]
    c2.vec = [1.2, -2.3, 3.4]

    assert c1.raw_distance_to(c1) == pytest.approx(0.0, abs=EPS)
    assert c1.raw_distance_to(c2) == pytest.approx(c2.raw_distance_to(c1), abs=EPS)
    assert c1.raw_distance_to(c2) == pytest.approx(4.104875150354758, abs=EPS)

    c1.adjustment = 1.0e6
    assert c1.raw_distance_to(c2) == pytest.approx(4.104875150354758, abs=EPS)

    c1.height = 0.7
    c2.height = 0.1
    assert c1.raw_distance_to(c2) == pytest.approx(4.104875150354758 + 0.8, abs=EPS)


def test_add():
    vec1 = [1.0, -3.0, 3.0]
    vec2 = [-4.0, 5.0, 6.0]
    assert_vectors(add(vec1, vec2), [-3.0, 2.0, 9.0])
    assert_vectors(add(vec1, [0.0, 0.0, 0.0]), vec1)


def test_diff():
    vec1 = [1.0, -3.0, 3.0]
    vec2 = [-4.0, 5.0, 6.0]
    assert_vectors(diff(vec1, vec2), [5.0, -8.0, -3.0])
    assert_vectors(diff(vec1, [0.0, 0.0, 0.0]), vec1)


def test_mul():
    assert_vectors(mul([1.0, -2.0, 0.5], 3.0), [3.0, -6.0, 1.5])


def test_magnitude():
    assert magnitude([0.0, 0.0, 0.0]) == pytest.approx(0.0, abs=EPS)
    assert magnitude([1.0, -2.0, 3.0]) == pytest.approx(3.7416573867739413, abs=EPS)


def test_unit_vector_at():
    vec1 = [1.0, 2.0, 3.0]
    vec2 = [0.5, 0.6, 0.7]
    u, mag = unit_vector_at(vec1, vec2)
    assert_vectors(u, [0.18257418583505536, 0.511207720338155, 0.8398412548412546])
    assert magnitude(u) == pytest.approx(1.0, abs=EPS)
    assert mag == pytest.approx(magnitude(diff(vec1, vec2)), abs=EPS)

    u, mag = unit_vector_at(vec1, vec1)
    assert magnitude(u) == pytest.approx(1.0, abs=EPS)
    assert mag == pytest.approx(0.0, abs=EPS)


def test_unit_vector_at_fallback():
    with mock.patch("random.random", return_value=0.5):
        u, mag = unit_vector_at([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
    assert u == [1.0, 0.0, 0.0]
    assert mag == 0.0