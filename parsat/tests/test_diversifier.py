import pytest

from parsat.portfolio.diversifier import default_seed_variables, generate, generate_all
from parsat.utils.exceptions import ConfigurationError


@pytest.mark.parametrize("k", [1, 2, 3, 4])
def test_cubes_are_distinct_and_full_width(k):
    seeds = list(range(1, k + 1))
    for workers in range(1, (1 << k) + 1):
        cubes = generate_all(seeds, workers)
        assert len(cubes) == workers
        assert len(set(cubes)) == workers
        assert all(len(c) == k for c in cubes)
        assert all({abs(lit) for lit in c} == set(seeds) for c in cubes)


def test_too_many_workers_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        generate_all([1, 2], 5)
    with pytest.raises(ConfigurationError):
        generate(0, [7], 3)


def test_two_seed_scenario_order():
    assert generate_all([1, 2], 4) == [(1, 2), (1, -2), (-1, 2), (-1, -2)]


def test_exhaustive_when_workers_fill_the_cube():
    seeds = [3, 5, 8]
    cubes = generate_all(seeds, 8)
    assert len(set(cubes)) == 8
    assert cubes[0] == (3, 5, 8)
    assert cubes[-1] == (-3, -5, -8)


def test_generate_is_deterministic():
    assert generate(5, [4, 9, 11], 8) == generate(5, [4, 9, 11], 8) == (-4, 9, -11)


@pytest.mark.parametrize("seeds", [[1, 1], [0, 2], [-3, 4]])
def test_invalid_seed_variables(seeds):
    with pytest.raises(ConfigurationError):
        generate_all(seeds, 2)


def test_worker_index_out_of_range():
    with pytest.raises(ConfigurationError):
        generate(4, [1, 2], 4)


def test_single_worker_without_seeds():
    assert generate_all([], 1) == [()]


def test_default_seed_variables():
    assert default_seed_variables(1) == [1]
    assert default_seed_variables(2) == [1]
    assert default_seed_variables(4) == [1, 2]
    assert default_seed_variables(5) == [1, 2, 3]
    with pytest.raises(ConfigurationError):
        default_seed_variables(0)
