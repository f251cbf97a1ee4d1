import pytest
from alea import create_rng, next_float, next_int, clone_rng


def test_create_rng_keeps_seed():
    rng = create_rng(12345)

    assert rng.seed == 12345
    assert len(rng.state) == 4
    # The carry register starts at 1
    assert rng.state[3] == 1
    for register in rng.state[:3]:
        assert 0 <= register < 1


def test_create_rng_accepts_any_integer():
    for seed in (0, -1, 0xFFFFFFFF, 1476865939254):
        rng = create_rng(seed)
        value = next_float(rng)
        assert 0 <= value < 1


def test_next_float_range():
    rng = create_rng(42)

    for _ in range(1000):
        value = next_float(rng)
        assert 0 <= value < 1


def test_next_float_is_deterministic():
    rng1 = create_rng(12345)
    rng2 = create_rng(12345)

    assert [next_float(rng1) for _ in range(50)] == [next_float(rng2) for _ in range(50)]


def test_different_seeds_give_different_sequences():
    rng1 = create_rng(1)
    rng2 = create_rng(2)

    assert [next_float(rng1) for _ in range(3)] != [next_float(rng2) for _ in range(3)]


def test_next_float_mutates_state():
    rng = create_rng(42)
    before = list(rng.state)

    next_float(rng)

    assert rng.state != before


def test_next_float_does_not_repeat_quickly():
    rng = create_rng(999)

    values = {next_float(rng) for _ in range(2000)}

    assert len(values) == 2000


def test_next_int_range_and_coverage():
    rng = create_rng(42)

    seen = set()
    for _ in range(200):
        value = next_int(rng, 5)
        assert isinstance(value, int)
        assert 0 <= value < 5
        seen.add(value)

    assert seen == {0, 1, 2, 3, 4}


def test_next_int_max_of_one():
    rng = create_rng(42)

    assert all(next_int(rng, 1) == 0 for _ in range(10))


def test_next_int_matches_floor_of_next_float():
    rng = create_rng(7)
    mirror = clone_rng(rng)

    for _ in range(20):
        assert next_int(rng, 52) == int(next_float(mirror) * 52)


def test_next_int_rejects_non_positive_bound():
    rng = create_rng(42)

    with pytest.raises(ValueError):
        next_int(rng, 0)


def test_clone_continues_sequence():
    rng = create_rng(42)
    next_float(rng)
    next_float(rng)

    clone = clone_rng(rng)

    assert next_float(rng) == next_float(clone)


def test_advancing_clone_leaves_original_alone():
    rng = create_rng(42)
    clone = clone_rng(rng)
    expected = next_float(clone_rng(rng))

    for _ in range(10):
        next_float(clone)

    assert clone.seed == rng.seed
    assert next_float(rng) == expected


def test_sequence_matches_browser_build():
    rng = create_rng(12345)

    assert [next_float(rng) for _ in range(5)] == [
        0.27138191112317145,
        0.19615925149992108,
        0.6810678059700876,
        0.9894359013997018,
        0.34078020555898547,
    ]


def test_huge_seeds_are_accepted():
    # Hashed from Python's decimal string; the browser build would have used "1e+21"
    rng = create_rng(10**21)

    assert rng.seed == 10**21
    assert 0 <= next_float(rng) < 1
