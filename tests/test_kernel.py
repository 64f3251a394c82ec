"""Flocking rules, checked through the engine on the CPU device."""

import numpy as np
import pytest

from boids import Force
from boids.kernels import step_boids
from conftest import plain_uniform


def step_once(engine, uniform, forces=()):
    assert engine.step(uniform, list(forces))
    engine.swap_buffers()
    return engine.get_positions(), engine.get_velocities()


def reference_step(pos, vel, u, forces=()):
    """Straight-line float64 restatement of the step rules."""
    n = len(pos)
    new_pos = np.zeros_like(pos, dtype=np.float64)
    new_vel = np.zeros_like(vel, dtype=np.float64)
    bounds = np.array([u.x_bounds, u.y_bounds, u.z_bounds])
    for i in range(n):
        p, v = pos[i].astype(np.float64), vel[i].astype(np.float64)
        align, coh, sep = np.zeros(3), np.zeros(3), np.zeros(3)
        count = sep_count = 0
        for j in range(n):
            if i == j:
                continue
            diff = p - pos[j]
            d2 = diff @ diff
            if d2 <= u.neighbour_radius_sq:
                align += vel[j]
                coh += pos[j]
                if d2 > 1e-12:
                    sep += diff / d2
                    sep_count += 1
                count += 1
        desired = np.zeros(3)
        if count:
            desired += u.alignment_weight * align / count
            desired += u.cohesion_weight * (coh / count - p)
        if sep_count:
            desired += u.separation_weight * sep / sep_count
        for f in forces:
            to = np.array(f.position) - p
            d = np.linalg.norm(to)
            if 1e-6 < d <= f.radius:
                desired += to * (f.strength / (d * d))
        desired -= u.bounds_weight * np.clip(p - bounds, 0.0, None)
        desired += u.bounds_weight * np.clip(-bounds - p, 0.0, None)
        smoothed = desired * (1 - u.reaction_factor) + v * u.reaction_factor
        new_vel[i] = smoothed
        new_pos[i] = p + smoothed * u.boid_speed * u.delta_time
    return new_pos, new_vel


def test_two_boid_scenario_is_mirror_symmetric(make_engine):
    engine = make_engine([[0, 0, 0], [1, 0, 0]], [[1, 0, 0], [-1, 0, 0]])
    pos, vel = step_once(engine, plain_uniform(2))

    # Alignment (-1) + separation (-1) + cohesion (+1)
    assert vel[0] == pytest.approx([-1.0, 0.0, 0.0], abs=1e-6)
    assert vel[1] == pytest.approx([1.0, 0.0, 0.0], abs=1e-6)
    assert vel[0] == pytest.approx(-vel[1], abs=1e-6)
    assert pos[0] == pytest.approx([-1.0, 0.0, 0.0], abs=1e-6)
    assert pos[1] == pytest.approx([2.0, 0.0, 0.0], abs=1e-6)
    assert (pos[0, 0] + pos[1, 0]) / 2 == pytest.approx(0.5)


def test_neighbour_radius_is_inclusive(make_engine):
    engine = make_engine([[0, 0, 0], [1.5, 0, 0]], np.zeros((2, 3)))
    uniform = plain_uniform(2, alignment_weight=0.0, separation_weight=0.0)
    _, vel = step_once(engine, uniform)
    # Cohesion pulls each boid onto the other
    assert vel[0, 0] == pytest.approx(1.5)
    assert vel[1, 0] == pytest.approx(-1.5)


def test_just_outside_radius_is_not_a_neighbour(make_engine):
    engine = make_engine([[0, 0, 0], [1.501, 0, 0]], np.zeros((2, 3)))
    uniform = plain_uniform(2, alignment_weight=0.0, separation_weight=0.0)
    _, vel = step_once(engine, uniform)
    assert np.all(vel == 0.0)


def test_coincident_boids_do_not_blow_up(make_engine):
    engine = make_engine([[0, 0, 0], [0, 0, 0]], [[1, 0, 0], [0, 1, 0]])
    pos, vel = step_once(engine, plain_uniform(2))
    assert np.all(np.isfinite(pos))
    assert np.all(np.isfinite(vel))


def test_unused_force_slots_are_ignored():
    n = 16
    rng = np.random.default_rng(3)
    pos = np.zeros((n, 4), dtype=np.float32)
    vel = np.zeros((n, 4), dtype=np.float32)
    pos[:, :3] = rng.uniform(-2, 2, (n, 3))
    vel[:, :3] = rng.uniform(-1, 1, (n, 3))

    clean = np.zeros((1, 5), dtype=np.float32)
    garbage = np.array([[100.0, 1e6, 0.1, -0.2, 0.3]], dtype=np.float32)

    outputs = []
    for forces in (clean, garbage):
        out_pos = np.zeros_like(pos)
        out_vel = np.zeros_like(vel)
        step_boids(pos, vel, forces, 0, out_pos, out_vel,
                   2.25, 2.0, 2.0, 4.0, 0.016, 15.0, 6.0, 1.5, 2.0, 7.0, 0.9, n)
        outputs.append((out_pos, out_vel))

    assert np.array_equal(outputs[0][0], outputs[1][0])
    assert np.array_equal(outputs[0][1], outputs[1][1])


def test_step_leaves_input_buffers_untouched(make_engine):
    engine = make_engine([[0, 0, 0], [1, 0, 0]], [[1, 0, 0], [-1, 0, 0]])
    before = engine.current_position_buffer().copy()
    assert engine.step(plain_uniform(2), [])
    assert np.array_equal(engine.current_position_buffer(), before)


@pytest.mark.parametrize("bounds_weight", [0.1, 0.5, 1.0, 2.0])
def test_bounds_reverse_an_escaped_boid(make_engine, bounds_weight):
    engine = make_engine([[101, 0, 0]], [[1, 0, 0]])
    _, vel = step_once(engine, plain_uniform(1, bounds_weight=bounds_weight))
    assert vel[0, 0] < 0.0
    assert vel[0, 0] == pytest.approx(-bounds_weight)


def test_bounds_leave_boids_inside_alone(make_engine):
    positions = [[0, 0, 0], [50, -20, 3]]
    velocities = [[1, 0, 0], [0, 0.5, 0]]
    results = []
    for bounds_weight in (0.0, 2.0):
        engine = make_engine(positions, velocities)
        results.append(step_once(engine, plain_uniform(2, bounds_weight=bounds_weight,
                                                       reaction_factor=0.5)))
    assert np.array_equal(results[0][0], results[1][0])
    assert np.array_equal(results[0][1], results[1][1])


def test_bounds_push_from_negative_side(make_engine):
    engine = make_engine([[0, -102, 0]], [[0, -1, 0]])
    _, vel = step_once(engine, plain_uniform(1, bounds_weight=1.0))
    assert vel[0, 1] > 0.0


def test_attractor_pulls_and_repellor_pushes(make_engine):
    for strength, sign in ((3.0, 1.0), (-3.0, -1.0)):
        engine = make_engine([[0, 0, 0]], [[0, 1, 0]])
        force = Force(radius=5.0, strength=strength, position=(1.0, 0.0, 0.0))
        _, vel = step_once(engine, plain_uniform(1, num_forces=1), [force])
        assert np.sign(vel[0, 0]) == sign


def test_force_out_of_range_has_no_effect(make_engine):
    force = Force(radius=1.0, strength=-150.0, position=(3.0, 0.0, 0.0))
    without = step_once(make_engine([[0, 0, 0]], [[0, 1, 0]]), plain_uniform(1, reaction_factor=0.5))
    with_force = step_once(make_engine([[0, 0, 0]], [[0, 1, 0]]),
                           plain_uniform(1, num_forces=1, reaction_factor=0.5), [force])
    assert np.array_equal(without[1], with_force[1])
    assert with_force[1][0] == pytest.approx([0.0, 0.5, 0.0])


def test_full_reaction_factor_keeps_velocity_exactly(make_engine):
    rng = np.random.default_rng(11)
    # Non-unit speeds, crowded enough that every rule term is nonzero
    velocities = rng.normal(size=(6, 3)).astype(np.float32)
    velocities *= rng.uniform(0.1, 3.0, (6, 1)).astype(np.float32)
    engine = make_engine(rng.uniform(-1, 1, (6, 3)), velocities)
    _, vel = step_once(engine, plain_uniform(6, reaction_factor=1.0, num_forces=1,
                                             bounds_weight=2.0, x_bounds=0.5),
                       [Force(5.0, 3.0, (0.0, 0.0, 0.0))])
    assert np.array_equal(vel, velocities)


def test_slow_boid_keeps_its_speed(make_engine):
    engine = make_engine([[0, 0, 0]], [[0.5, 0, 0]])
    pos, vel = step_once(engine, plain_uniform(1, reaction_factor=1.0, delta_time=2.0))
    assert vel[0].tolist() == [0.5, 0.0, 0.0]
    assert pos[0] == pytest.approx([1.0, 0.0, 0.0])


def hand_worked_pair(make_engine, reaction_factor):
    engine = make_engine([[0, 0, 0], [1, 0, 0]], [[0.5, 0, 0], [0, 0.25, 0]])
    uniform = plain_uniform(2, alignment_weight=2.0, separation_weight=3.0,
                            cohesion_weight=0.5, reaction_factor=reaction_factor)
    return step_once(engine, uniform)


def test_zero_reaction_factor_adopts_rule_blend(make_engine):
    pos, vel = hand_worked_pair(make_engine, 0.0)
    # boid 0: align 2*(0, .25, 0) + sep 3*(-1, 0, 0) + coh .5*(1, 0, 0)
    assert vel[0] == pytest.approx([-2.5, 0.5, 0.0])
    # boid 1: align 2*(.5, 0, 0) + sep 3*(1, 0, 0) + coh .5*(-1, 0, 0)
    assert vel[1] == pytest.approx([3.5, 0.0, 0.0])
    assert pos[0] == pytest.approx([-2.5, 0.5, 0.0])
    assert pos[1] == pytest.approx([4.5, 0.0, 0.0])


def test_half_reaction_factor_averages_old_and_new(make_engine):
    _, vel = hand_worked_pair(make_engine, 0.5)
    assert vel[0] == pytest.approx([-1.0, 0.25, 0.0])
    assert vel[1] == pytest.approx([1.75, 0.125, 0.0])


@pytest.mark.parametrize("reaction_factor", [0.0, 0.9])
def test_matches_reference_rules(make_engine, reaction_factor):
    rng = np.random.default_rng(7)
    pos = rng.uniform(-2.5, 2.5, (40, 3)).astype(np.float32)
    vel = rng.normal(size=(40, 3)).astype(np.float32)
    vel /= np.linalg.norm(vel, axis=1, keepdims=True)
    forces = [Force(5.0, 3.0, (0.0, 0.0, 0.0)), Force(2.0, -150.0, (2.0, 0.0, 0.0))]
    uniform = plain_uniform(
        40, num_forces=2, alignment_weight=2.0, separation_weight=2.0, cohesion_weight=4.0,
        x_bounds=2.0, y_bounds=2.0, z_bounds=1.5, bounds_weight=2.0,
        boid_speed=7.0, delta_time=0.016, reaction_factor=reaction_factor,
    )

    engine = make_engine(pos, vel)
    got_pos, got_vel = step_once(engine, uniform, forces)
    want_pos, want_vel = reference_step(pos, vel, uniform, forces)

    assert np.allclose(got_vel, want_vel, rtol=1e-4, atol=1e-4)
    assert np.allclose(got_pos, want_pos, rtol=1e-4, atol=1e-4)
