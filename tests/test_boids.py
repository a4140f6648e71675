from dataclasses import replace

import numpy as np
import pytest

from proa.boids import Flock, FlockParams, generate_initial_conditions, normalize_or_zero
from proa.sample import seeded

# Eight agents, four samples each: position x, position y, velocity x, velocity y.
# Every pair normalizes to a rational direction, so the expected frame below is exact.
GOLDEN_SAMPLES = [
    0.20, 0.21, 0.05, 0.12,    # 0: close to agent 1, both inside each other's separation radius
    0.119, 0.120, 0.08, 0.15,  # 1
    0.6, 0.8, 0.6, 0.8,        # 2: alone, too slow
    0.5, 0.0, 0.12, 0.05,      # 3: bottom right corner, inside both margin bands
    0.0, 0.5, 0.5, 0.0,        # 4: top left corner, too fast after turning
    0.8, 0.6, 0.33, 0.56,      # 5: same spot as agent 6
    0.8, 0.6, 0.28, 0.45,      # 6
    0.28, 0.45, 0.5, 0.0,      # 7: alone, too fast
]

GOLDEN_VELOCITY = np.array([
    [-34.48523998703747, 127.02165992534526],
    [-8.95367404011186, 114.60729935067284],
    [31.622776601683793, 94.86832980505137],
    [125.92307692307692, -33.61538461538461],
    [106.06601717798213, -106.06601717798213],
    [2.369521044992743, 108.42409288824384],
    [8.428737300435415, 104.7544267053701],
    [106.06601717798213, -106.06601717798213],
])

GOLDEN_POSITION = np.array([
    [67.70110806918156, 145.56530352749139],
    [73.3418963596865, 136.34799147832976],
    [36.52704627669473, 193.58113883008419],
    [182.09871794871795, -320.5602564102564],
    [-178.23223304703363, 318.23223304703363],
    [108.03949201741655, 65.80706821480406],
    [108.14047895500726, 65.74590711175617],
    [11.956446198249388, 221.62845946212796],
])


def make_flock(params: FlockParams = FlockParams(), seed: int = 0) -> Flock:
    return Flock(params=params, **generate_initial_conditions(params=params, sample=seeded(seed)))


def single_agent(position: tuple[float, float], velocity: tuple[float, float]) -> Flock:
    return Flock(
        params=FlockParams(count=1),
        position=np.array([position]),
        velocity=np.array([velocity]),
    )


def test_golden_frame():
    params = FlockParams()
    flock = Flock(
        params=params,
        **generate_initial_conditions(params=params, sample=GOLDEN_SAMPLES.__getitem__),
    )
    flock.update(1 / 60)
    np.testing.assert_allclose(flock.velocity, GOLDEN_VELOCITY, rtol=0, atol=1e-5)
    np.testing.assert_allclose(flock.position, GOLDEN_POSITION, rtol=0, atol=1e-5)


def test_initial_conditions_span_bounds():
    params = FlockParams(count=64)
    conditions = generate_initial_conditions(params=params, sample=seeded(3))
    assert conditions["position"].shape == (64, 2)
    assert np.all(np.abs(conditions["position"]) <= np.array(params.bounds) + 1e-9)
    assert np.all(np.abs(conditions["velocity"]) <= params.max_speed + 1e-9)


def test_initial_conditions_zero_samples():
    params = FlockParams(count=2)
    conditions = generate_initial_conditions(params=params, sample=lambda index: 0.0)
    np.testing.assert_array_equal(conditions["position"], [[-180.0, -320.0]] * 2)
    np.testing.assert_array_equal(conditions["velocity"], [[-150.0, -150.0]] * 2)


def test_initial_conditions_reproducible():
    a = generate_initial_conditions(params=FlockParams(), sample=seeded(11))
    b = generate_initial_conditions(params=FlockParams(), sample=seeded(11))
    c = generate_initial_conditions(params=FlockParams(), sample=seeded(12))
    np.testing.assert_array_equal(a["position"], b["position"])
    np.testing.assert_array_equal(a["velocity"], b["velocity"])
    assert not np.array_equal(a["position"], c["position"])


@pytest.mark.parametrize("count", [1, 2, 8, 40])
def test_speed_stays_in_range(count: int):
    params = FlockParams(count=count)
    flock = make_flock(params, seed=count)
    for _ in range(300):
        flock.update(1 / 60)
        speed = flock.speed
        assert np.all(speed >= params.min_speed - 1e-9)
        assert np.all(speed <= params.max_speed + 1e-9)


def test_runs_are_deterministic():
    a = make_flock(seed=5)
    b = make_flock(seed=5)
    dts = [1 / 60, 1 / 30, 0.0, 1 / 144] * 50
    for dt in dts:
        a.update(dt)
        b.update(dt)
    np.testing.assert_array_equal(a.position, b.position)
    np.testing.assert_array_equal(a.velocity, b.velocity)


def test_zero_dt_keeps_positions():
    flock = make_flock(FlockParams(count=16), seed=2)
    before = flock.position.copy()
    flock.update(0.0)
    np.testing.assert_array_equal(flock.position, before)


def test_force_pass_is_order_independent():
    # Pack the agents tightly so most pairs interact
    params = replace(FlockParams(count=6), bounds=(10.0, 10.0), margin=(0.0, 0.0))
    flock = make_flock(params, seed=9)
    order = np.array([3, 0, 5, 1, 4, 2])
    shuffled = Flock(params=params, position=flock.position[order], velocity=flock.velocity[order])

    flock.update(1 / 60)
    shuffled.update(1 / 60)

    np.testing.assert_allclose(shuffled.velocity, flock.velocity[order], rtol=0, atol=1e-9)
    np.testing.assert_allclose(shuffled.position, flock.position[order], rtol=0, atol=1e-9)


def test_boundary_steering_at_band_edge():
    params = FlockParams()
    x = -params.bounds[0] + params.edge_margin[0]
    flock = single_agent((x, 0.0), (-120.0, 0.0))
    flock.update(1 / 60)
    assert flock.velocity[0, 0] - (-120.0) == pytest.approx(params.turn_factor)
    assert flock.velocity[0, 1] == 0.0


@pytest.mark.parametrize(
    "position, velocity, expected",
    [
        ((170.0, 0.0), (120.0, 0.0), (119.0, 0.0)),
        ((0.0, -300.0), (0.0, -120.0), (0.0, -119.0)),
        ((0.0, 300.0), (0.0, 120.0), (0.0, 119.0)),
    ],
)
def test_boundary_steering_other_edges(position, velocity, expected):
    flock = single_agent(position, velocity)
    flock.update(1 / 60)
    np.testing.assert_allclose(flock.velocity[0], expected)


def test_default_margin_follows_bounds():
    assert FlockParams().edge_margin == (45.0, 80.0)

    params = replace(FlockParams(count=1), bounds=(10.0, 10.0))
    assert params.edge_margin == (2.5, 2.5)
    flock = Flock(params=params, position=np.array([[9.9, 0.0]]), velocity=np.array([[120.0, 0.0]]))
    flock.update(0.0)
    np.testing.assert_allclose(flock.velocity, [[119.0, 0.0]])


def test_explicit_margin_wins():
    params = replace(FlockParams(count=1), bounds=(10.0, 10.0), margin=(0.0, 0.0))
    assert params.edge_margin == (0.0, 0.0)
    flock = Flock(params=params, position=np.array([[9.9, 0.0]]), velocity=np.array([[120.0, 0.0]]))
    flock.update(0.0)
    np.testing.assert_allclose(flock.velocity, [[120.0, 0.0]])


def test_interior_agent_not_steered():
    flock = single_agent((0.0, 0.0), (120.0, 30.0))
    flock.update(1 / 60)
    np.testing.assert_array_equal(flock.velocity[0], [120.0, 30.0])
    np.testing.assert_allclose(flock.position[0], [2.0, 0.5])


def test_speed_clamps():
    slow = single_agent((0.0, 0.0), (3.0, 4.0))
    slow.update(0.0)
    np.testing.assert_allclose(slow.velocity[0], [60.0, 80.0])

    fast = single_agent((0.0, 0.0), (300.0, 400.0))
    fast.update(0.0)
    np.testing.assert_allclose(fast.velocity[0], [90.0, 120.0])


def test_stalled_agent_restarts_along_x():
    flock = single_agent((0.0, 0.0), (0.0, 0.0))
    flock.update(1 / 60)
    np.testing.assert_allclose(flock.velocity[0], [100.0, 0.0])
    assert np.all(np.isfinite(flock.position))


def test_separation_pushes_apart():
    params = FlockParams(count=2)
    flock = Flock(
        params=params,
        position=np.array([[0.0, 0.0], [5.0, 0.0]]),
        velocity=np.array([[0.0, 120.0], [0.0, 120.0]]),
    )
    flock.update(0.0)
    assert flock.velocity[0, 0] < 0.0
    assert flock.velocity[1, 0] > 0.0


def test_agents_are_copies():
    flock = make_flock()
    agents = flock.agents
    assert len(agents) == flock.params.count
    agents[0].position[:] = 1e6
    assert np.all(flock.position[0] != 1e6)


def test_copy_is_independent():
    flock = make_flock()
    twin = flock.copy()
    flock.update(1 / 60)
    assert not np.array_equal(flock.position, twin.position)


def test_normalize_or_zero():
    np.testing.assert_allclose(
        normalize_or_zero(np.array([[3.0, 4.0], [0.0, 0.0]])), [[0.6, 0.8], [0.0, 0.0]]
    )


@pytest.mark.parametrize(
    "kwargs",
    [
        {"count": -1},
        {"min_speed": 200.0},
        {"max_speed": 0.0, "min_speed": 0.0},
        {"view_radius_squared": -1.0},
        {"margin": (-1.0, 0.0)},
    ],
)
def test_invalid_params(kwargs):
    with pytest.raises(ValueError):
        FlockParams(**kwargs)


def test_shape_mismatch():
    with pytest.raises(ValueError):
        Flock(params=FlockParams(count=2), position=np.zeros((3, 2)), velocity=np.zeros((3, 2)))
