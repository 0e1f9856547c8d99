from __future__ import annotations

import pytest

from exam_trainer import shuffle as shuffle_mod


def test_shuffle_is_stable_for_a_seed():
    items = list(range(20))

    first = shuffle_mod.shuffle(items, 42)
    second = shuffle_mod.shuffle(items, 42)

    assert first == second
    assert sorted(first) == items
    assert items == list(range(20))


def test_different_seeds_give_different_orders():
    items = list(range(20))

    assert shuffle_mod.shuffle(items, 42) != shuffle_mod.shuffle(items, 43)


def test_shuffle_without_seed_is_a_permutation():
    items = ["a", "b", "c", "d", "e"]

    assert sorted(shuffle_mod.shuffle(items)) == items


@pytest.mark.parametrize("items", [[], ["only"]])
def test_shuffle_short_inputs(items):
    assert shuffle_mod.shuffle(items, 7) == items


def test_zero_seed_is_replaced():
    zero = shuffle_mod.XorShift32(0)
    replacement = shuffle_mod.XorShift32(0x9E3779B9)

    values = [zero.next_uint32() for _ in range(5)]

    assert values == [replacement.next_uint32() for _ in range(5)]
    assert all(values)


def test_seed_is_truncated_to_32_bits():
    wide = shuffle_mod.XorShift32(2**32 + 5)
    narrow = shuffle_mod.XorShift32(5)

    assert wide.next_uint32() == narrow.next_uint32()


def test_first_output_matches_xorshift_steps():
    rng = shuffle_mod.XorShift32(1)

    # 1 -> 1 ^ (1 << 13) = 8193; ^ (8193 >> 17) = 8193;
    # ^ (8193 << 5) = 8193 ^ 262176 = 270369
    assert rng.next_uint32() == 270369


def test_floats_and_child_seeds_stay_in_range():
    rng = shuffle_mod.XorShift32(12345)

    for _ in range(200):
        value = rng.next_float()
        assert 0.0 <= value < 1.0
        assert 0 <= rng.next_seed() < shuffle_mod.SEED_LIMIT


def test_permutation_maps_new_positions_to_old():
    order = shuffle_mod.permutation(6, 99)

    assert sorted(order) == list(range(6))
    assert order == shuffle_mod.shuffle(range(6), 99)


def test_random_seed_range():
    for _ in range(20):
        assert 0 <= shuffle_mod.random_seed() < shuffle_mod.SEED_LIMIT
