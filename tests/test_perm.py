import pytest

from rmqclient.perm import (
    PERM_INHERIT,
    PERM_PRIORITY,
    PERM_READ,
    PERM_WRITE,
    perm_to_string,
    queue_is_inherited,
    queue_is_readable,
    queue_is_writeable,
)


def test_no_permissions():
    assert perm_to_string(0) == "---"


def test_all_permissions():
    assert perm_to_string(PERM_READ | PERM_WRITE | PERM_INHERIT) == "RWX"


def test_read_only():
    assert perm_to_string(PERM_READ) == "R--"


def test_single_bits():
    assert queue_is_readable(PERM_READ)
    assert not queue_is_readable(PERM_WRITE)
    assert queue_is_writeable(PERM_WRITE)
    assert not queue_is_writeable(PERM_INHERIT)
    assert queue_is_inherited(PERM_INHERIT)
    assert not queue_is_inherited(PERM_READ)


@pytest.mark.parametrize("perm", range(16))
def test_string_matches_predicates(perm):
    text = perm_to_string(perm)
    assert len(text) == 3
    assert (text[0] == "R") == queue_is_readable(perm)
    assert (text[1] == "W") == queue_is_writeable(perm)
    assert (text[2] == "X") == queue_is_inherited(perm)


@pytest.mark.parametrize("perm", range(8))
def test_priority_bit_ignored(perm):
    assert perm_to_string(perm | PERM_PRIORITY) == perm_to_string(perm)
    assert queue_is_readable(perm | PERM_PRIORITY) == queue_is_readable(perm)


@pytest.mark.parametrize(
    "bit, expected",
    [(PERM_PRIORITY, "---"), (PERM_READ, "R--"), (PERM_WRITE, "-W-"), (PERM_INHERIT, "--X")],
)
def test_each_bit_sets_one_flag(bit, expected):
    assert perm_to_string(bit) == expected