"""Boolean set operations (sum, and, or, difference, xor) on k2-tree matrices.

Every operation takes an optional row and column restriction: when `row`
(or `col`) is not None, only that row (or column) of the result is kept.
"""

from __future__ import annotations

import enum
from typing import Sequence

from .bitvector import WORD_BITS
from .k2tree import MAP_ID, MAP_TR, K2Tree, merge
from .matrix import Matrix

_NIBBLES_PER_WORD = WORD_BITS // 4


class _Op(enum.Enum):
    AND = "and"
    OR = "or"
    DIF = "dif"
    XOR = "xor"

    def base(self, sig_a: int, sig_b: int) -> int:
        if self is _Op.AND:
            return sig_a & sig_b
        if self is _Op.OR:
            return sig_a | sig_b
        if self is _Op.DIF:
            return sig_a & ~sig_b & 0xF
        return sig_a ^ sig_b

    @property
    def keeps_a_only(self) -> bool:
        return self is not _Op.AND

    @property
    def keeps_b_only(self) -> bool:
        return self in (_Op.OR, _Op.XOR)


class _Levels:
    """Nibbles of a tree under construction, one list per level (0 = leaves)."""

    def __init__(self, nlevels: int) -> None:
        self.nlevels = nlevels
        self.nibbles: list[list[int]] = [[] for _ in range(nlevels)]

    def append(self, lev: int, p: int) -> int:
        if p:
            self.nibbles[lev].append(p)
        return int(p != 0)

    def build(self) -> K2Tree | None:
        if not self.nibbles[self.nlevels - 1]:
            return None
        ordered = [nib for level in reversed(self.nibbles) for nib in level]
        words = [0] * ((len(ordered) + _NIBBLES_PER_WORD - 1) // _NIBBLES_PER_WORD)
        for i, nib in enumerate(ordered):
            words[i // _NIBBLES_PER_WORD] |= nib << (4 * (i % _NIBBLES_PER_WORD))
        return K2Tree(self.nlevels, 4 * len(ordered), words)


def _check_logside(a: Matrix, b: Matrix) -> None:
    if a.logside != b.logside:
        raise ValueError("operation on matrices of different logside")


def _out_dims(a: Matrix, b: Matrix) -> tuple[int, int]:
    da, db = a.dims(), b.dims()
    return max(da.width, db.width), max(da.height, db.height)


def _fix_sig(sig: int, row: int | None, col: int | None, lim: int) -> int:
    if row is not None:
        sig &= ~0x3 if row >= lim else ~0xC
    if col is not None:
        sig &= ~0x5 if col >= lim else ~0xA
    return sig & 0xF


def _child_coords(
    v: int, row: int | None, col: int | None, lim: int
) -> tuple[int | None, int | None]:
    r = row if row is None or v < 2 else row - lim
    c = col if col is None or v % 2 == 0 else col - lim
    return r, c


def _pass_restricted(
    tree: K2Tree, node: int, level: int, lev: _Levels,
    mapping: Sequence[int], row: int | None, col: int | None,
) -> int:
    sig, children = tree.fill_mapped_children(node, mapping)
    lim = 1 << (level - 1)
    sig = _fix_sig(sig, row, col, lim)
    if level == 1:
        p = sig
    else:
        p = 0
        for v in range(4):
            if (sig >> v) & 1:
                r, c = _child_coords(v, row, col, lim)
                p |= _pass_restricted(
                    tree, children[v], level - 1, lev, mapping, r, c
                ) << v
    return lev.append(level - 1, p)


def _pass(
    tree: K2Tree, node: int, level: int, lev: _Levels,
    mapping: Sequence[int], row: int | None, col: int | None,
) -> int:
    """Copy the subtree at `node` into `lev`."""
    if row is not None or col is not None or tuple(mapping) != MAP_ID:
        return _pass_restricted(tree, node, level, lev, mapping, row, col)
    start, end = node, node + 1
    for depth in range(level - 1, -1, -1):
        lev.nibbles[depth].extend(tree.sig_node(n) for n in range(start, end))
        if depth:
            start = (tree.bits.rank(4 * start - 1) if start else 0) + 1
            end = tree.bits.rank(4 * end - 1) + 1
    return 1


def _combine(
    op: _Op,
    tree_a: K2Tree, node_a: int, map_a: Sequence[int],
    tree_b: K2Tree, node_b: int, map_b: Sequence[int],
    level: int, lev: _Levels, row: int | None, col: int | None,
) -> int:
    sig_a, child_a = tree_a.fill_mapped_children(node_a, map_a)
    sig_b, child_b = tree_b.fill_mapped_children(node_b, map_b)
    lim = 1 << (level - 1)
    sig_a = _fix_sig(sig_a, row, col, lim)
    sig_b = _fix_sig(sig_b, row, col, lim)
    if level == 1:
        p = op.base(sig_a, sig_b)
    else:
        p = 0
        for v in range(4):
            has_a = (sig_a >> v) & 1
            has_b = (sig_b >> v) & 1
            r, c = _child_coords(v, row, col, lim)
            if has_a and has_b:
                p |= _combine(op, tree_a, child_a[v], map_a, tree_b, child_b[v],
                              map_b, level - 1, lev, r, c) << v
            elif has_a and op.keeps_a_only:
                p |= _pass(tree_a, child_a[v], level - 1, lev, map_a, r, c) << v
            elif has_b and op.keeps_b_only:
                p |= _pass(tree_b, child_b[v], level - 1, lev, map_b, r, c) << v
    return lev.append(level - 1, p)


def _operate(
    op: _Op, a: Matrix, b: Matrix,
    map_a: Sequence[int], map_b: Sequence[int],
    row: int | None, col: int | None, transposed: bool,
) -> Matrix:
    assert a.tree is not None and b.tree is not None
    lev = _Levels(a.tree.nlevels)
    _combine(op, a.tree, a.tree.root(), map_a, b.tree, b.tree.root(), map_b,
             a.tree.nlevels, lev, row, col)
    tree = lev.build()
    if tree is None:
        return Matrix(a.height, a.width, a.logside)
    return Matrix(a.height, a.width, a.logside, tree.elems, tree, transposed)


def _set_dims(m: Matrix, width: int, height: int) -> Matrix:
    if m.transposed:
        m.height, m.width = width, height
    else:
        m.height, m.width = height, width
    return m


def _choose_maps(a: Matrix, b: Matrix) -> tuple[Sequence[int], Sequence[int], bool]:
    if a.transposed and b.transposed:
        return MAP_ID, MAP_ID, True
    if a.transposed:
        if a.elems > b.elems:
            return MAP_ID, MAP_TR, True
        return MAP_TR, MAP_ID, False
    if b.transposed:
        if b.elems > a.elems:
            return MAP_TR, MAP_ID, True
        return MAP_ID, MAP_TR, False
    return MAP_ID, MAP_ID, False


def mat_sum(a: Matrix, b: Matrix) -> Matrix:
    """Boolean sum of two matrices of the same logside."""
    _check_logside(a, b)
    if a.elems == 0:
        return b.copy()
    if b.elems == 0:
        return a.copy()
    if a.transposed != b.transposed:
        return mat_or(a, b)
    assert a.tree is not None and b.tree is not None
    merged = merge(a.tree.bits.words, len(a.tree.bits),
                   b.tree.bits.words, len(b.tree.bits), a.tree.nlevels)
    tree = K2Tree(a.tree.nlevels, merged.length, merged.words)
    return Matrix(max(a.height, b.height), max(a.width, b.width), a.logside,
                  merged.elems, tree, a.transposed)


def mat_sum1(row: int | None, a: Matrix, b: Matrix, col: int | None) -> Matrix:
    """Boolean sum restricted to one row and/or one column (None for all)."""
    if row is None and col is None:
        return mat_sum(a, b)
    if a.tree is not None and b.tree is not None:
        return mat_or1(row, a, b, col)
    _check_logside(a, b)
    width, height = _out_dims(a, b)
    if row is not None and col is not None:
        if a.access(row, col) or b.access(row, col):
            return Matrix.one(height, width, row, col)
        return Matrix.empty(height, width)
    source = b if a.tree is None else a
    if source.tree is None:
        return Matrix.empty(height, width)
    mapping = MAP_TR if source.transposed else MAP_ID
    lev = _Levels(source.tree.nlevels)
    _pass_restricted(source.tree, source.tree.root(), source.tree.nlevels,
                     lev, mapping, row, col)
    tree = lev.build()
    if tree is None:
        return Matrix(height, width, a.logside)
    return Matrix(height, width, a.logside, tree.elems, tree)


def mat_or(a: Matrix, b: Matrix) -> Matrix:
    """Boolean disjunction of two matrices of the same logside."""
    return mat_or1(None, a, b, None)


def mat_or1(row: int | None, a: Matrix, b: Matrix, col: int | None) -> Matrix:
    """Boolean disjunction restricted to one row and/or one column."""
    _check_logside(a, b)
    width, height = _out_dims(a, b)
    if a.elems == 0 and b.elems == 0:
        return Matrix.empty(height, width)
    if a.elems == 0 or b.elems == 0:
        result = mat_sum1(row, a, b, col)
    else:
        map_a, map_b, transp = _choose_maps(a, b)
        if transp:
            row, col = col, row
        result = _operate(_Op.OR, a, b, map_a, map_b, row, col, transp)
    return _set_dims(result, width, height)


def mat_and(a: Matrix, b: Matrix) -> Matrix:
    """Boolean intersection of two matrices of the same logside."""
    return mat_and1(None, a, b, None)


def mat_and1(row: int | None, a: Matrix, b: Matrix, col: int | None) -> Matrix:
    """Boolean intersection restricted to one row and/or one column."""
    _check_logside(a, b)
    width, height = _out_dims(a, b)
    if a.elems == 0 or b.elems == 0:
        return Matrix.empty(height, width)
    map_a = MAP_TR if a.transposed else MAP_ID
    map_b = MAP_TR if b.transposed else MAP_ID
    result = _operate(_Op.AND, a, b, map_a, map_b, row, col, False)
    result.height, result.width = height, width
    return result


def mat_dif(a: Matrix, b: Matrix) -> Matrix:
    """Boolean difference a - b of two matrices of the same logside."""
    return mat_dif1(None, a, b, None)


def mat_dif1(row: int | None, a: Matrix, b: Matrix, col: int | None) -> Matrix:
    """Boolean difference restricted to one row and/or one column."""
    _check_logside(a, b)
    width, height = _out_dims(a, b)
    if a.elems == 0:
        return Matrix.empty(height, width)
    if b.elems == 0:
        result = mat_sum1(row, a, b, col)
    else:
        transp = a.transposed
        map_b = MAP_TR if a.transposed != b.transposed else MAP_ID
        if transp:
            row, col = col, row
        result = _operate(_Op.DIF, a, b, MAP_ID, map_b, row, col, transp)
    return _set_dims(result, width, height)


def mat_xor(a: Matrix, b: Matrix) -> Matrix:
    """Boolean symmetric difference of two matrices of the same logside."""
    return mat_xor1(None, a, b, None)


def mat_xor1(row: int | None, a: Matrix, b: Matrix, col: int | None) -> Matrix:
    """Boolean symmetric difference restricted to one row and/or one column."""
    _check_logside(a, b)
    width, height = _out_dims(a, b)
    if a.elems == 0 and b.elems == 0:
        return Matrix.empty(height, width)
    if a.elems == 0 or b.elems == 0:
        result = mat_sum1(row, a, b, col)
    else:
        map_a, map_b, transp = _choose_maps(a, b)
        if transp:
            row, col = col, row
        result = _operate(_Op.XOR, a, b, map_a, map_b, row, col, transp)
    return _set_dims(result, width, height)