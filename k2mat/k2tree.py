"""k2-trees: a compact quadtree representation of sparse boolean matrices.

A k2-tree of ``nlevels`` levels represents a square matrix of side
``2**nlevels``. Every node is a 4-bit signature whose bit ``v`` says whether
quadrant ``v`` (0 = top-left, 1 = top-right, 2 = bottom-left,
3 = bottom-right) holds any cell. Nodes are stored level by level,
breadth-first, in one bit vector.
"""

from __future__ import annotations

import struct
from collections import deque
from typing import BinaryIO, Iterable, Iterator, NamedTuple, Sequence

from .bitvector import WORD_BITS, BitVector, copy_bits, pop4, popcount, read_bits

RANK_K = 4  # block parameter for rank preprocessing

MAP_ID: tuple[int, int, int, int] = (0, 1, 2, 3)
MAP_TR: tuple[int, int, int, int] = (0, 2, 1, 3)
REMAP_TR: tuple[int, ...] = (0, 1, 4, 5, 2, 3, 6, 7, 8, 9, 12, 13, 10, 11, 14, 15)

_HEADER_WORDS = 4  # fixed bookkeeping counted by space()
_BOTH = 1 | 2


def _pack_nibbles(nibbles: Sequence[int]) -> list[int]:
    words = [0] * ((4 * len(nibbles) + WORD_BITS - 1) // WORD_BITS)
    for i, nib in enumerate(nibbles):
        words[i // 16] |= (nib & 0xF) << (4 * (i % 16))
    return words


class MergeResult(NamedTuple):
    """Outcome of merging two k2-tree bit arrays."""

    words: list[int]
    length: int
    elems: int
    levels: list[int] | None


def merge(
    tree_a: Sequence[int],
    len_a: int,
    tree_b: Sequence[int],
    len_b: int,
    level: int,
    want_levels: bool = False,
) -> MergeResult:
    """Merge (boolean OR) the bit arrays of two k2-trees with `level` levels.

    Returns the merged words, their bit length, the number of cells, and,
    if asked for, the number of nodes per level (index 0 holds the leaves).
    """
    if level < 1:
        raise ValueError("a k2-tree needs at least one level")
    a = list(tree_a)
    b = list(tree_b)
    out: list[int] = []
    ptr = ptr_a = ptr_b = 0
    elems = 0
    levels = [0] * level if want_levels else None
    queue: deque[list[int]] = deque([[_BOTH, 1, level - 1]])

    def add_task(has: int, num: int, dist: int) -> None:
        if has != _BOTH and queue:
            last = queue[-1]
            if last[0] == has and last[2] == dist:
                last[1] += num
                return
        queue.append([has, num, dist])

    while queue:
        has, num, dist = queue.popleft()
        if has != _BOTH:
            source = a if has == 1 else b
            pos = ptr_a if has == 1 else ptr_b
            if levels is not None:
                levels[dist] += num
            bits = 4 * num
            ones = 0
            while bits:
                n = min(bits, WORD_BITS)
                bits -= n
                sigs = read_bits(source, pos, n)
                pos += n
                ones += popcount(sigs)
                copy_bits(out, ptr, [sigs], 0, n)
                ptr += n
            if has == 1:
                ptr_a = pos
            else:
                ptr_b = pos
            if dist:
                if ones:
                    add_task(has, ones, dist - 1)
            else:
                elems += ones
        else:
            sig_a = read_bits(a, ptr_a, 4)
            sig_b = read_bits(b, ptr_b, 4)
            ptr_a += 4
            ptr_b += 4
            sig = sig_a | sig_b
            if dist:
                for v in range(4):
                    if sig & (1 << v):
                        child_has = ((sig_a >> v) & 1) + 2 * ((sig_b >> v) & 1)
                        add_task(child_has, 1, dist - 1)
            else:
                elems += pop4(sig)
            copy_bits(out, ptr, [sig], 0, 4)
            ptr += 4
            if levels is not None:
                levels[dist] += 1

    nwords = (ptr + WORD_BITS - 1) // WORD_BITS
    del out[nwords:]
    out.extend([0] * (nwords - len(out)))
    return MergeResult(out, ptr, elems, levels)


class K2Tree:
    """A k2-tree over a bit vector of node signatures."""

    def __init__(self, nlevels: int, length: int, words: Iterable[int]) -> None:
        if nlevels < 1:
            raise ValueError("a k2-tree needs at least one level")
        if length <= 0 or length % 4:
            raise ValueError("k2-tree bit length must be a positive multiple of 4")
        self.nlevels = nlevels
        self.bits = BitVector(length, words)
        self.bits.rank_preprocess(RANK_K)
        self.levels: list[int] = [0] * nlevels
        self.elems = 0
        self._compute_levels()

    def _compute_levels(self) -> None:
        p = 1
        for lev in range(self.nlevels - 1, -1, -1):
            self.levels[lev] = p
            last = 4 * p - 1
            if last >= len(self.bits):
                raise ValueError("k2-tree bits are shorter than their levels")
            p = self.bits.rank(last) + 1
        self.elems = p - self.levels[0]

    def __repr__(self) -> str:
        return f"K2Tree(nlevels={self.nlevels}, elems={self.elems})"

    @classmethod
    def from_coords(cls, nbits: int, coords: Iterable[tuple[int, int]]) -> K2Tree:
        """Build a tree of `nbits` levels holding the given (row, col) cells."""
        if nbits < 1:
            raise ValueError("a k2-tree needs at least one level")
        limit = 1 << nbits
        pairs = [(int(x), int(y)) for x, y in coords]
        for x, y in pairs:
            if not (0 <= x < limit and 0 <= y < limit):
                raise ValueError(f"cell ({x}, {y}) does not fit in {nbits} bits")
        nibbles: list[int] = []
        queue: deque[tuple[int, list[tuple[int, int]]]] = deque([(nbits - 1, pairs)])
        while queue:
            level, group = queue.popleft()
            quads: list[list[tuple[int, int]]] = [[], [], [], []]
            for x, y in group:
                quads[2 * ((x >> level) & 1) + ((y >> level) & 1)].append((x, y))
            nibbles.append(sum(1 << v for v, quad in enumerate(quads) if quad))
            if level:
                queue.extend((level - 1, quad) for quad in quads if quad)
        return cls(nbits, 4 * len(nibbles), _pack_nibbles(nibbles))

    def copy(self) -> K2Tree:
        """An independent copy of the tree."""
        return K2Tree(self.nlevels, len(self.bits), self.bits.words)

    def save(self, file: BinaryIO) -> None:
        """Write the tree to a binary file."""
        file.write(struct.pack("<I", self.nlevels))
        self.bits.save(file)

    @classmethod
    def load(cls, file: BinaryIO) -> K2Tree:
        """Read a tree written by save()."""
        header = file.read(4)
        if len(header) != 4:
            raise ValueError("truncated k2-tree header")
        (nlevels,) = struct.unpack("<I", header)
        bits = BitVector.load(file)
        return cls(nlevels, len(bits), bits.words)

    def space(self) -> int:
        """Space used, in 64-bit words."""
        return _HEADER_WORDS + self.nlevels + self.bits.space()

    def root(self) -> int:
        """The root node."""
        return 0

    def has_child(self, u: int, i: int) -> int:
        """1 if node u has its i-th child (i in 0..3), else 0."""
        return self.bits.access(4 * u + i)

    def sig_node(self, u: int) -> int:
        """The 4-bit signature of node u."""
        return self.bits.read(4 * u, 4)

    def child(self, u: int, i: int) -> int:
        """The i-th child of node u; the child must exist."""
        return self.bits.rank(4 * u + i)

    def fill_children(self, u: int) -> tuple[int, list[int]]:
        """The signature of u and the node ids of its four children.

        Ids of absent children are meaningless.
        """
        return self.fill_mapped_children(u, MAP_ID)

    def fill_mapped_children(
        self, u: int, mapping: Sequence[int]
    ) -> tuple[int, list[int]]:
        """Like fill_children, with quadrants permuted by `mapping`.

        With MAP_TR the node is seen as its transpose.
        """
        i = 4 * u
        r = self.bits.rank(i - 1) if i else 0
        s = self.bits.read(i, 4)
        sig = s if tuple(mapping) == MAP_ID else REMAP_TR[s]
        children = [0, 0, 0, 0]
        for j in range(4):
            r += s & 1
            s >>= 1
            children[mapping[j]] = r
        return sig, children

    def _walk(
        self, u: int, level: int, r1: int, r2: int, c1: int, c2: int,
        roffs: int, coffs: int,
    ) -> Iterator[tuple[int, int]]:
        if level == 0:
            yield roffs, coffs
            return
        level -= 1
        lim = 1 << level
        if r1 < lim and c1 < lim and self.has_child(u, 0):
            yield from self._walk(self.child(u, 0), level,
                                  r1, min(r2, lim - 1), c1, min(c2, lim - 1),
                                  roffs, coffs)
        if r1 < lim and c2 >= lim and self.has_child(u, 1):
            yield from self._walk(self.child(u, 1), level,
                                  r1, min(r2, lim - 1), max(c1, lim) - lim, c2 - lim,
                                  roffs, coffs + lim)
        if r2 >= lim and c1 < lim and self.has_child(u, 2):
            yield from self._walk(self.child(u, 2), level,
                                  max(r1, lim) - lim, r2 - lim, c1, min(c2, lim - 1),
                                  roffs + lim, coffs)
        if r2 >= lim and c2 >= lim and self.has_child(u, 3):
            yield from self._walk(self.child(u, 3), level,
                                  max(r1, lim) - lim, r2 - lim,
                                  max(c1, lim) - lim, c2 - lim,
                                  roffs + lim, coffs + lim)

    def _iter_cells(self, r1: int, r2: int, c1: int, c2: int) -> Iterator[tuple[int, int]]:
        if min(r1, r2, c1, c2) < 0:
            raise ValueError("cell ranges must be non-negative")
        return self._walk(self.root(), self.nlevels, r1, r2, c1, c2, 0, 0)

    def collect(
        self, r1: int, r2: int, c1: int, c2: int, col_row: bool = False
    ) -> list[tuple[int, int]]:
        """All cells in [r1..r2] x [c1..c2], as (row, col) or, if col_row, (col, row)."""
        cells = self._iter_cells(r1, r2, c1, c2)
        if col_row:
            return [(c, r) for r, c in cells]
        return list(cells)

    def count(self, r1: int, r2: int, c1: int, c2: int) -> int:
        """Number of cells in [r1..r2] x [c1..c2]."""
        return sum(1 for _ in self._iter_cells(r1, r2, c1, c2))