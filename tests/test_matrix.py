import io
import struct

import pytest

from k2mat.matrix import Matrix

CELLS = [(0, 1), (2, 3), (4, 0), (4, 4), (1, 2), (3, 3)]


@pytest.fixture
def mat():
    return Matrix.create(5, 6, CELLS)


def test_create_access(mat):
    for r in range(8):
        for c in range(8):
            assert mat.access(r, c) == (1 if (r, c) in CELLS else 0)


def test_create_collect_all(mat):
    assert sorted(mat.collect()) == sorted(CELLS)
    assert mat.elems == len(CELLS)
    assert mat.count() == len(CELLS)


def test_collect_range(mat):
    got = mat.collect(1, 3, 2, 3)
    expected = [(r, c) for r, c in CELLS if 1 <= r <= 3 and 2 <= c <= 3]
    assert sorted(got) == sorted(expected)
    assert mat.count(1, 3, 2, 3) == len(expected)


def test_duplicates_collapsed():
    m = Matrix.create(4, 4, [(1, 1), (1, 1), (2, 0)])
    assert sorted(m.collect()) == [(1, 1), (2, 0)]
    assert m.elems == 2


def test_create_out_of_bounds():
    with pytest.raises(ValueError):
        Matrix.create(3, 3, [(3, 0)])


def test_zero_dims_become_one():
    m = Matrix.empty(0, 0)
    assert (m.height, m.width) == (1, 1)
    assert m.collect() == []
    assert m.access(0, 0) == 0


def test_empty_space_is_header():
    assert Matrix.empty(10, 10).space() == 5


def test_one():
    m = Matrix.one(7, 5, 3, 4)
    assert m.collect() == [(3, 4)]
    assert m.access(3, 4) == 1
    assert m.access(4, 3) == 0
    assert m.elems == 1


def test_one_out_of_range():
    with pytest.raises(ValueError):
        Matrix.one(4, 4, 4, 0)


@pytest.mark.parametrize("side", [1, 2, 3, 5, 8, 13])
def test_identity(side):
    m = Matrix.identity(side)
    assert sorted(m.collect()) == [(i, i) for i in range(side)]
    assert m.elems == side
    assert m.tree.elems == side


def test_transpose(mat):
    t = mat.transpose()
    assert sorted(t.collect()) == sorted((c, r) for r, c in CELLS)
    for r, c in CELLS:
        assert t.access(c, r) == 1
    assert t.transpose().collect() == mat.collect()
    assert t.tree is mat.tree


def test_transposed_collect_range(mat):
    t = mat.transpose()
    got = t.collect(0, 3, 0, 2)
    expected = [(c, r) for r, c in CELLS if 0 <= c <= 3 and 0 <= r <= 2]
    assert sorted(got) == sorted(expected)


def test_dims(mat):
    d = mat.dims()
    assert (d.elems, d.width, d.height) == (6, 6, 5)
    t = mat.transpose().dims()
    assert (t.width, t.height) == (5, 6)
    assert t.logside == d.logside


def test_copy_independent(mat):
    c = mat.copy()
    assert c.tree is not mat.tree
    assert sorted(c.collect()) == sorted(mat.collect())
    assert c.space() == mat.space()


@pytest.mark.parametrize("transposed", [False, True])
def test_save_load_roundtrip(mat, transposed):
    src = mat.transpose() if transposed else mat
    buf = io.BytesIO()
    src.save(buf)
    buf.seek(0)
    back = Matrix.load(buf)
    assert back.transposed == transposed
    assert (back.width, back.height, back.logside) == (src.width, src.height, src.logside)
    assert sorted(back.collect()) == sorted(src.collect())


def test_save_header_layout():
    buf = io.BytesIO()
    Matrix.empty(5, 6).transpose().save(buf)
    data = buf.getvalue()
    assert len(data) == 28
    elems, aux, width, height = struct.unpack("<QIQQ", data)
    assert (elems, width, height) == (0, 6, 5)
    assert aux >> 16 == 1


def test_load_truncated():
    with pytest.raises(ValueError):
        Matrix.load(io.BytesIO(b"\x00" * 10))


def test_access_out_of_range(mat):
    with pytest.raises(IndexError):
        mat.access(8, 0)