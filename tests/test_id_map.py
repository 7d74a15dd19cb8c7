import random

import pytest

from udedit.id_map import COMPOUND_SLOT, EmptyId, TokenIdMap, number_slots
from udedit.tokens import CompoundToken, EmptyToken, EnhancedDep, NominalToken, TokenKind

N = TokenKind.NOMINAL
E = TokenKind.EMPTY
C = TokenKind.COMPOUND
HEAD = list(range(1, 10))


@pytest.fixture
def id_map():
    # 1..9, 9.1, 9.2, 10
    return TokenIdMap([N] * 9 + [E, E, N])


def test_numbering_from_kinds(id_map):
    assert id_map == HEAD + [(9, 1), (9, 2), 10]
    assert len(id_map) == 12
    assert isinstance(id_map[9], EmptyId)
    assert str(id_map[10]) == "9.2"


@pytest.mark.parametrize(
    "index, kind, count, expected",
    [
        (10, N, 1, HEAD + [(9, 1), 10, (10, 1), 11]),
        (11, E, 1, HEAD + [(9, 1), (9, 2), (9, 3), 10]),
        (10, N, 2, HEAD + [(9, 1), 10, 11, (11, 1), 12]),
        (10, E, 2, HEAD + [(9, 1), (9, 2), (9, 3), (9, 4), 10]),
        (5, N, 1, list(range(1, 11)) + [(10, 1), (10, 2), 11]),
        (5, E, 1, [1, 2, 3, 4, 5, (5, 1), 6, 7, 8, 9, (9, 1), (9, 2), 10]),
        (12, E, 2, HEAD + [(9, 1), (9, 2), 10, (10, 1), (10, 2)]),
        (0, E, 1, [(0, 1)] + HEAD + [(9, 1), (9, 2), 10]),
        (0, N, 2, list(range(1, 12)) + [(11, 1), (11, 2), 12]),
        (9, C, 1, HEAD + [COMPOUND_SLOT, (9, 1), (9, 2), 10]),
    ],
)
def test_insert(id_map, index, kind, count, expected):
    id_map.insert(index, kind, count)
    assert id_map == expected


def test_insert_out_of_bound(id_map):
    with pytest.raises(IndexError, match="Index out of bound"):
        id_map.insert(13, N)
    with pytest.raises(IndexError):
        id_map.insert(-1, N)


@pytest.mark.parametrize(
    "index, count, expected",
    [
        (5, 1, [1, 2, 3, 4, 5, 6, 7, 8, (8, 1), (8, 2), 9]),
        (4, 2, [1, 2, 3, 4, 5, 6, 7, (7, 1), (7, 2), 8]),
        (10, 2, HEAD + [(9, 1)]),
        (9, 1, HEAD + [(9, 1), 10]),
        (0, 12, []),
    ],
)
def test_remove_chunk(id_map, index, count, expected):
    id_map.remove_chunk(index, count)
    assert id_map == expected


def test_remove_chunk_out_of_bound(id_map):
    with pytest.raises(IndexError, match="Index out of bound"):
        id_map.remove_chunk(11, 2)


def test_compound_slots_do_not_reset_counter():
    id_map = TokenIdMap([C, N, N, E, C, N])
    assert id_map == [COMPOUND_SLOT, 1, 2, (2, 1), COMPOUND_SLOT, 3]
    id_map.insert(5, E)
    assert id_map == [COMPOUND_SLOT, 1, 2, (2, 1), COMPOUND_SLOT, (2, 2), 3]


def test_find_index(id_map):
    assert id_map.find_index((9, 2)) == 10
    assert id_map.find_index([9, 1]) == 9
    assert id_map.find_index(10) == 11
    assert id_map.find_index(42) == -1
    assert id_map.find_index((1, 1)) == -1


def test_from_tokens():
    tokens = [
        EmptyToken(deps=[EnhancedDep((1,), "nmod")]),
        CompoundToken(1, 2, "ab"),
        NominalToken("a"),
        NominalToken("b"),
        EmptyToken(deps=[EnhancedDep((1,), "nmod")]),
    ]
    assert TokenIdMap.from_tokens(tokens) == [(0, 1), COMPOUND_SLOT, 1, 2, (2, 1)]


def test_from_tokens_rejects_unknown_token():
    with pytest.raises(TypeError):
        TokenIdMap.from_tokens([NominalToken("a"), "b"])


@pytest.mark.parametrize("seed", range(5))
def test_incremental_map_matches_renumbering(seed):
    rng = random.Random(seed)
    id_map = TokenIdMap([N, E, N, N, E, E, N])
    for _ in range(40):
        if len(id_map) and rng.random() < 0.4:
            index = rng.randrange(len(id_map))
            id_map.remove_chunk(index, rng.randint(1, len(id_map) - index))
        else:
            id_map.insert(rng.randint(0, len(id_map)), rng.choice([N, E, C]), rng.randint(1, 3))
        assert list(id_map) == number_slots(id_map.kinds())
