"""
Tests for the terrain model (height field, zones, hazard placement, generation).
"""

import sys
import os
import math
import random
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from terrain import (
    Course, Hill, Wind, Zone, generate_course, place_zone, safe_drop_location,
    too_close_to_start, in_zone, WIDTH, HEIGHT, ROUGH_ZONE, HILL_COUNT, SAND_COUNT,
    HILL_HEIGHT_SCALE, DROP_HOLE_CLEARANCE, START_SAFE_RADIUS,
)


def base_height(x: float) -> float:
    nx = (x - ROUGH_ZONE) / (WIDTH - 2 * ROUGH_ZONE)
    return math.sin(nx * 2.5) * 22 + math.sin(nx * 5.2) * 9


# ── Height field ─────────────────────────────────────────

class TestHeight:

    @pytest.mark.parametrize("x", [ROUGH_ZONE, 400.0, 960.0, 1500.0, WIDTH - ROUGH_ZONE])
    def test_bare_course_is_base_roll(self, x):
        assert Course().height_at(x, 500.0) == pytest.approx(base_height(x))

    def test_hill_peak_adds_full_height(self):
        course = Course(hills=[Hill(800.0, 600.0, 200.0, 0.3)])
        expected = base_height(800.0) + 0.3 * HILL_HEIGHT_SCALE
        assert course.height_at(800.0, 600.0) == pytest.approx(expected)

    def test_hill_fades_linearly(self):
        course = Course(hills=[Hill(800.0, 600.0, 200.0, 0.3)])
        expected = base_height(900.0) + 0.3 * 0.5 * HILL_HEIGHT_SCALE
        assert course.height_at(900.0, 600.0) == pytest.approx(expected)

    def test_outside_hill_radius_no_effect(self):
        course = Course(hills=[Hill(800.0, 600.0, 200.0, 0.3)])
        assert course.height_at(1100.0, 600.0) == pytest.approx(base_height(1100.0))

    def test_overlapping_hills_add(self):
        one = Course(hills=[Hill(800.0, 600.0, 200.0, 0.3)])
        two = Course(hills=[Hill(800.0, 600.0, 200.0, 0.3), Hill(850.0, 600.0, 200.0, 0.2)])
        assert two.height_at(820.0, 600.0) > one.height_at(820.0, 600.0)

    def test_slope_rises_toward_hill_centre(self):
        course = Course(hills=[Hill(800.0, 600.0, 200.0, 0.35)])
        bare = Course()
        assert course.slope_at(740.0, 600.0) > bare.slope_at(740.0, 600.0)
        assert course.slope_at(860.0, 600.0) < bare.slope_at(860.0, 600.0)


# ── Zones ────────────────────────────────────────────────

class TestZones:

    def test_boundary_is_outside(self):
        z = Zone(100.0, 100.0, 50.0)
        assert z.contains(100.0, 149.0)
        assert not z.contains(100.0, 150.0)

    def test_in_zone_any(self):
        zones = [Zone(100.0, 100.0, 10.0), Zone(500.0, 500.0, 10.0)]
        assert in_zone(505.0, 500.0, zones)
        assert not in_zone(300.0, 300.0, zones)
        assert not in_zone(300.0, 300.0, [])

    def test_course_queries(self):
        course = Course(hole=np.array([960.0, 200.0]),
                        sand_traps=[Zone(400.0, 600.0, 80.0)],
                        water_hazards=[Zone(1400.0, 500.0, 100.0)])
        assert course.in_sand(410.0, 600.0)
        assert not course.in_water(410.0, 600.0)
        assert course.in_water(1400.0, 550.0)
        assert course.distance_to_hole(960.0, 230.0) == pytest.approx(30.0)

    def test_wind_vector_points_up_for_half_pi(self):
        np.testing.assert_allclose(Wind(math.pi / 2, 2.0).vector(), [0.0, -2.0], atol=1e-12)

    def test_start_band(self):
        assert too_close_to_start(HEIGHT - START_SAFE_RADIUS + 1)
        assert not too_close_to_start(HEIGHT - START_SAFE_RADIUS)


# ── Hazard placement ─────────────────────────────────────

class TestPlaceZone:

    HOLE = np.array([960.0, 200.0])

    def test_first_valid_sample_kept(self):
        samples = iter([Zone(960.0, 250.0, 80.0), Zone(400.0, 500.0, 80.0), Zone(1500.0, 500.0, 80.0)])
        zone = place_zone(lambda: next(samples), self.HOLE, 180.0, 40)
        assert zone == Zone(400.0, 500.0, 80.0)

    def test_start_band_rejected(self):
        samples = iter([Zone(400.0, 900.0, 80.0), Zone(400.0, 500.0, 80.0)])
        zone = place_zone(lambda: next(samples), self.HOLE, 180.0, 40)
        assert zone.y == 500.0

    def test_exhausted_retries_keep_last_sample(self):
        calls = []

        def bad():
            calls.append(1)
            return Zone(960.0, 210.0 + len(calls), 80.0)

        zone = place_zone(bad, self.HOLE, 180.0, 40)
        assert len(calls) == 40
        assert zone.y == 250.0


# ── Generation ───────────────────────────────────────────

class TestGenerateCourse:

    @pytest.mark.parametrize("seed", range(25))
    def test_feature_counts_and_ranges(self, seed):
        course = generate_course(random.Random(seed))
        assert len(course.hills) == HILL_COUNT
        assert len(course.sand_traps) == SAND_COUNT
        assert 1 <= len(course.water_hazards) <= 2

        assert 300 <= course.hole[0] <= WIDTH - 300
        assert 140 <= course.hole[1] <= 360
        assert 0.5 <= course.wind.speed <= 5
        for h in course.hills:
            assert 120 <= h.r <= 260
            assert 0.12 <= h.h <= 0.35
        for z in course.sand_traps:
            assert 70 <= z.r <= 110
        for z in course.water_hazards:
            assert 90 <= z.r <= 150

    def test_same_seed_same_course(self):
        a = generate_course(random.Random(42)).to_dict()
        b = generate_course(random.Random(42)).to_dict()
        assert a == b

    def test_to_dict_shape(self):
        d = generate_course(random.Random(1)).to_dict()
        assert set(d) == {"hole", "hills", "sand", "water", "wind"}
        assert set(d["hills"][0]) == {"x", "y", "r", "h"}


# ── Drop location ────────────────────────────────────────

class TestSafeDrop:

    @pytest.mark.parametrize("seed", range(10))
    def test_drop_is_dry_and_clear(self, seed):
        course = generate_course(random.Random(seed))
        x, y = safe_drop_location(course, random.Random(seed + 100))
        if (x, y) != (WIDTH / 2, HEIGHT / 2):
            assert not course.in_water(x, y)
            assert not too_close_to_start(y)
            assert course.distance_to_hole(x, y) > DROP_HOLE_CLEARANCE

    def test_falls_back_to_centre(self):
        course = Course(water_hazards=[Zone(960.0, 540.0, 5000.0)])
        np.testing.assert_allclose(safe_drop_location(course, random.Random(1)),
                                   [WIDTH / 2, HEIGHT / 2])
