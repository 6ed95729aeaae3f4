import io

import pytest

from k2mat.k2tree import MAP_ID, MAP_TR, K2Tree, merge

CELLS = [(0, 0), (1, 3), (2, 2), (3, 1), (5, 6), (7, 7), (6, 0)]


def _tree(cells=CELLS, nbits=3):
    return K2Tree.from_coords(nbits, cells)


def test_collect_returns_all_cells():
    tree = _tree()
    assert sorted(tree.collect(0, 7, 0, 7)) == sorted(CELLS)
    assert tree.elems == len(CELLS)


def test_duplicates_are_merged():
    tree = _tree(CELLS + CELLS[:3])
    assert tree.elems == len(CELLS)


def test_collect_col_row_swaps_pairs():
    tree = _tree()
    assert sorted(tree.collect(0, 7, 0, 7, True)) == sorted((c, r) for r, c in CELLS)


def test_range_restriction():
    tree = _tree()
    expected = sorted((r, c) for r, c in CELLS if 1 <= r <= 5 and 2 <= c <= 6)
    assert sorted(tree.collect(1, 5, 2, 6)) == expected
    assert tree.count(1, 5, 2, 6) == len(expected)


def test_single_cell_root_signature():
    tree = K2Tree.from_coords(2, [(0, 0)])
    assert tree.sig_node(tree.root()) == 1
    assert tree.has_child(0, 0) == 1
    assert tree.has_child(0, 3) == 0


def test_levels_invariants():
    tree = _tree()
    assert tree.levels[-1] == 1
    assert tree.levels[0] == len(tree.bits) // 4
    assert all(x >= y for x, y in zip(tree.levels, tree.levels[1:]))


def test_fill_children_matches_child():
    tree = _tree()
    sig, children = tree.fill_children(0)
    assert sig == tree.sig_node(0)
    for i in range(4):
        if sig & (1 << i):
            assert children[i] == tree.child(0, i)


def test_mapped_children_identity_equals_plain():
    tree = _tree()
    assert tree.fill_mapped_children(0, MAP_ID) == tree.fill_children(0)


def test_transposed_signature_matches_transposed_tree():
    tree = _tree()
    transposed = _tree([(c, r) for r, c in CELLS])
    assert tree.fill_mapped_children(0, MAP_TR)[0] == transposed.fill_children(0)[0]


def test_save_load_round_trip():
    tree = _tree()
    buf = io.BytesIO()
    tree.save(buf)
    buf.seek(0)
    loaded = K2Tree.load(buf)
    assert loaded.nlevels == tree.nlevels
    assert loaded.bits.words == tree.bits.words
    assert loaded.elems == tree.elems
    assert loaded.levels == tree.levels


def test_load_truncated_raises():
    with pytest.raises(ValueError):
        K2Tree.load(io.BytesIO(b"\x01\x00"))


def test_copy_is_independent():
    tree = _tree()
    other = tree.copy()
    other.bits.words[0] = 0
    assert sorted(tree.collect(0, 7, 0, 7)) == sorted(CELLS)


def test_space_grows_with_levels():
    small = K2Tree.from_coords(1, [(0, 0)])
    assert small.space() < _tree().space()


def test_out_of_range_coordinate_rejected():
    with pytest.raises(ValueError):
        K2Tree.from_coords(2, [(4, 0)])


def test_empty_length_rejected():
    with pytest.raises(ValueError):
        K2Tree(2, 0, [])


def test_merge_is_union():
    a = _tree(CELLS[:4])
    b = _tree(CELLS[3:])
    result = merge(a.bits.words, len(a.bits), b.bits.words, len(b.bits), 3, True)
    merged = K2Tree(3, result.length, result.words)
    assert sorted(merged.collect(0, 7, 0, 7)) == sorted(CELLS)
    assert result.elems == len(CELLS)
    assert merged.bits.words == _tree().bits.words


def test_merge_levels_match_tree_levels():
    a = _tree(CELLS[:4])
    b = _tree(CELLS[2:])
    result = merge(a.bits.words, len(a.bits), b.bits.words, len(b.bits), 3, True)
    merged = K2Tree(3, result.length, result.words)
    assert sum(result.levels) == result.length // 4
    assert result.levels[-1] == 1
    for lev in range(2):
        assert merged.levels[lev] - merged.levels[lev + 1] == result.levels[lev]


def test_merge_with_itself_is_identity():
    a = _tree()
    result = merge(a.bits.words, len(a.bits), a.bits.words, len(a.bits), 3, False)
    assert result.words == a.bits.words
    assert result.length == len(a.bits)
    assert result.levels is None


def test_merge_many_cells_disjoint():
    a_cells = [(r, c) for r in range(16) for c in range(16) if (r + c) % 2 == 0]
    b_cells = [(r, c) for r in range(16) for c in range(16) if (r * c) % 3 == 1]
    a = K2Tree.from_coords(4, a_cells)
    b = K2Tree.from_coords(4, b_cells)
    result = merge(a.bits.words, len(a.bits), b.bits.words, len(b.bits), 4)
    merged = K2Tree(4, result.length, result.words)
    assert set(merged.collect(0, 15, 0, 15)) == set(a_cells) | set(b_cells)
    assert merged.bits.words == K2Tree.from_coords(4, a_cells + b_cells).bits.words