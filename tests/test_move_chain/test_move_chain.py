"""Tests for move cascade resolution and commit."""

import pytest

from history_graph.exceptions import ConstraintViolationError, TabNotFoundError
from history_graph.models import TabMove, TabRecord
from history_graph.move_chain import MoveChainResolver, is_circular


@pytest.fixture
def resolver(tab_store, host):
    return MoveChainResolver(tab_store, host)


async def _seed(tab_store, positions):
    for tab_id, position in positions.items():
        await tab_store.put(TabRecord(tab_id, position, current_visit=tab_id * 10))


async def _positions(tab_store):
    return {r.tab_id: r.tab_position for r in await tab_store.get_all()}


def _assert_collision_free(before, moves, evict):
    """Apply moves one by one, as the store does, checking every write."""
    occupied = dict(before)
    if evict is not None:
        del occupied[evict]
    for move in moves:
        if move.tab_id == evict:
            continue
        holders = {t for t, p in occupied.items() if p == move.tab_position and t != move.tab_id}
        assert not holders, f"{move} collides with {holders}"
        occupied[move.tab_id] = move.tab_position
    if evict is not None:
        final = [m for m in moves if m.tab_id == evict][-1].tab_position
        assert final not in occupied.values()


@pytest.mark.asyncio
async def test_rotate_first_to_last(resolver, tab_store, host):
    await _seed(tab_store, {1: 0, 2: 1, 3: 2})
    host.positions = {1: 2, 2: 0, 3: 1}

    cascade = await resolver.resolve_cascade(2, stop_tab_id=1)
    assert cascade == [TabMove(2, 0), TabMove(3, 1)]

    moves = await resolver.move_tab(1, 2)
    assert moves == [TabMove(2, 0), TabMove(3, 1), TabMove(1, 2)]
    assert await _positions(tab_store) == {1: 2, 2: 0, 3: 1}


@pytest.mark.asyncio
async def test_rotate_last_to_first(resolver, tab_store, host):
    await _seed(tab_store, {1: 0, 2: 1, 3: 2})
    host.positions = {3: 0, 1: 1, 2: 2}

    moves = await resolver.move_tab(3, 0)
    assert moves == [TabMove(2, 2), TabMove(1, 1), TabMove(3, 0)]
    assert await _positions(tab_store) == {3: 0, 1: 1, 2: 2}


@pytest.mark.asyncio
async def test_cascade_completeness(resolver, tab_store, host):
    before = {10: 0, 11: 1, 12: 2, 13: 3, 14: 4}
    await _seed(tab_store, before)
    host.positions = {10: 4, 11: 0, 12: 1, 13: 2, 14: 3}

    cascade = await resolver.resolve_cascade(4, stop_tab_id=10)
    assert len(cascade) == len(before) - 1
    moves = cascade + [TabMove(10, 4)]
    _assert_collision_free(before, moves, evict=10)

    await resolver.move_tab(10, 4)
    assert await _positions(tab_store) == host.positions


@pytest.mark.asyncio
async def test_move_inside_the_strip(resolver, tab_store, host):
    before = {10: 0, 11: 1, 12: 2, 13: 3, 14: 4}
    await _seed(tab_store, before)
    # Tab at 3 dragged to 1; tabs at 1 and 2 shift right, 0 and 4 stay.
    host.positions = {10: 0, 13: 1, 11: 2, 12: 3, 14: 4}

    moves = await resolver.move_tab(13, 1)
    assert moves == [TabMove(12, 3), TabMove(11, 2), TabMove(13, 1)]
    _assert_collision_free(before, moves, evict=13)
    assert await _positions(tab_store) == host.positions


@pytest.mark.asyncio
async def test_open_ended_chain(resolver, tab_store, host):
    # Position 2 holds a tab we never recorded.
    await _seed(tab_store, {1: 0, 2: 1, 3: 3})
    host.positions = {3: 0, 1: 1, 2: 2}

    cascade = await resolver.resolve_cascade(0, stop_tab_id=3)
    assert cascade == [TabMove(2, 2), TabMove(1, 1)]
    assert not is_circular(cascade, 3)

    await resolver.move_tab(3, 0)
    assert await _positions(tab_store) == {1: 1, 2: 2, 3: 0}


@pytest.mark.asyncio
async def test_move_past_last_tracked_tab(resolver, tab_store, host):
    await _seed(tab_store, {1: 0, 2: 1})
    moves = await resolver.move_tab(2, 5)
    assert moves == [TabMove(2, 5)]
    assert host.queried == []
    assert await _positions(tab_store) == {1: 0, 2: 5}


@pytest.mark.asyncio
async def test_move_to_own_position(resolver, tab_store, host):
    await _seed(tab_store, {1: 0, 2: 1})
    moves = await resolver.move_tab(2, 1)
    assert moves == [TabMove(2, 1)]
    assert await _positions(tab_store) == {1: 0, 2: 1}


@pytest.mark.asyncio
async def test_move_keeps_other_fields(resolver, tab_store, host):
    await tab_store.put(TabRecord(1, 0, current_visit=7, created_by_visit=3))
    await tab_store.put(TabRecord(2, 1, current_visit=8, created_by_visit=7))
    host.positions = {1: 1, 2: 0}

    await resolver.move_tab(1, 1)
    assert await tab_store.get(1) == TabRecord(1, 1, current_visit=7, created_by_visit=3)
    assert await tab_store.get(2) == TabRecord(2, 0, current_visit=8, created_by_visit=7)


@pytest.mark.asyncio
async def test_unmoved_occupant_is_a_violation(resolver, tab_store, host):
    await _seed(tab_store, {1: 0, 2: 1})
    host.positions = {1: 1, 2: 1}

    with pytest.raises(ConstraintViolationError):
        await resolver.move_tab(1, 1)
    assert await _positions(tab_store) == {1: 0, 2: 1}


@pytest.mark.asyncio
async def test_vanished_occupant(resolver, tab_store, host):
    await _seed(tab_store, {1: 0, 2: 1, 3: 2})
    host.positions = {1: 2, 2: 0}

    with pytest.raises(TabNotFoundError):
        await resolver.move_tab(1, 2)
    assert await _positions(tab_store) == {1: 0, 2: 1, 3: 2}


@pytest.mark.asyncio
async def test_move_unknown_tab(resolver):
    with pytest.raises(TabNotFoundError):
        await resolver.move_tab(42, 0)


def test_is_circular():
    assert is_circular([TabMove(2, 0), TabMove(3, 1)], 0)
    assert not is_circular([TabMove(2, 2)], 3)
    assert not is_circular([], 0)
