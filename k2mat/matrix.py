"""Sparse boolean matrices backed by k2-trees."""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from typing import BinaryIO, Iterable, NamedTuple, Sequence

from .bitvector import WORD_BITS, numbits
from .k2tree import K2Tree

FULL_SIDE = None  # stands for "up to the last row/column" in ranges
_HEADER_WORDS = 5  # fixed bookkeeping counted by space()
_TRANSPOSED_SHIFT = 16


def _pack_nibbles(nibbles: Sequence[int]) -> list[int]:
    per_word = WORD_BITS // 4
    words = [0] * ((len(nibbles) + per_word - 1) // per_word)
    for i, nib in enumerate(nibbles):
        words[i // per_word] |= (nib & 0xF) << (4 * (i % per_word))
    return words


def _logside(height: int, width: int) -> int:
    return numbits(max(width, height) - 1)


class Dims(NamedTuple):
    """Number of cells, log2 of the padded side, and the visible dimensions."""

    elems: int
    logside: int
    width: int
    height: int


@dataclass(eq=False)
class Matrix:
    """A boolean matrix whose cells are stored in a k2-tree.

    The tree is shared between a matrix and its transposed views; it is
    never modified after construction.
    """

    height: int
    width: int
    logside: int
    elems: int = 0
    tree: K2Tree | None = None
    transposed: bool = False

    @classmethod
    def create(
        cls, height: int, width: int, cells: Iterable[tuple[int, int]]
    ) -> Matrix:
        """A height x width matrix holding the given (row, col) cells."""
        width = width or 1
        height = height or 1
        logside = _logside(height, width)
        unique = {(int(r), int(c)) for r, c in cells}
        for r, c in unique:
            if not (0 <= r < height and 0 <= c < width):
                raise ValueError(f"cell ({r}, {c}) is outside a {height}x{width} matrix")
        if not unique:
            return cls(height, width, logside)
        tree = K2Tree.from_coords(logside, sorted(unique))
        return cls(height, width, logside, tree.elems, tree)

    @classmethod
    def empty(cls, height: int, width: int) -> Matrix:
        """A height x width matrix with no cells."""
        width = width or 1
        height = height or 1
        return cls(height, width, _logside(height, width))

    @classmethod
    def one(cls, height: int, width: int, row: int, col: int) -> Matrix:
        """A height x width matrix whose only cell is (row, col)."""
        logside = _logside(height, width)
        side = 1 << logside
        if not (0 <= row < side and 0 <= col < side):
            raise ValueError(f"cell ({row}, {col}) does not fit in side {side}")
        nibbles = [
            1 << (2 * ((row >> bit) & 1) + ((col >> bit) & 1))
            for bit in range(logside - 1, -1, -1)
        ]
        tree = K2Tree(logside, 4 * logside, _pack_nibbles(nibbles))
        return cls(height, width, logside, 1, tree)

    @classmethod
    def identity(cls, side: int) -> Matrix:
        """The side x side identity matrix."""
        side = side or 1
        level = numbits(side - 1)
        counts: list[tuple[int, bool]] = []
        k = side
        for _ in range(level):
            counts.append(((k + 1) // 2, k % 2 == 1))
            k = (k + 1) // 2
        nibbles: list[int] = []
        for nodes, odd in reversed(counts):
            level_nibbles = [0x9] * nodes
            if odd:
                level_nibbles[-1] = 0x1
            nibbles.extend(level_nibbles)
        tree = K2Tree(level, 4 * len(nibbles), _pack_nibbles(nibbles))
        return cls(side, side, level, side, tree)

    def copy(self) -> Matrix:
        """An independent copy with its own tree."""
        tree = self.tree.copy() if self.tree is not None else None
        return replace(self, tree=tree)

    def transpose(self) -> Matrix:
        """A transposed view that shares this matrix's tree."""
        return replace(self, transposed=not self.transposed)

    def save(self, file: BinaryIO) -> None:
        """Write the matrix to a binary file."""
        aux = self.logside + (int(self.transposed) << _TRANSPOSED_SHIFT)
        file.write(struct.pack("<Q", self.elems))
        file.write(struct.pack("<I", aux))
        file.write(struct.pack("<QQ", self.width, self.height))
        if self.elems:
            if self.tree is None:
                raise ValueError("matrix has cells but no tree")
            self.tree.save(file)

    @classmethod
    def load(cls, file: BinaryIO) -> Matrix:
        """Read a matrix written by save()."""
        header = file.read(28)
        if len(header) != 28:
            raise ValueError("truncated matrix header")
        elems, aux, width, height = struct.unpack("<QIQQ", header)
        logside = aux & ((1 << _TRANSPOSED_SHIFT) - 1)
        transposed = bool(aux >> _TRANSPOSED_SHIFT)
        tree = K2Tree.load(file) if elems else None
        return cls(height, width, logside, elems, tree, transposed)

    def space(self) -> int:
        """Space used, in 64-bit words."""
        space = _HEADER_WORDS
        if self.tree is not None:
            space += self.tree.space()
        return space

    def dims(self) -> Dims:
        """Cells, logside, and width and height as seen through transposition."""
        if self.transposed:
            return Dims(self.elems, self.logside, self.height, self.width)
        return Dims(self.elems, self.logside, self.width, self.height)

    def access(self, row: int, col: int) -> int:
        """1 if cell (row, col) is set, else 0."""
        side = 1 << self.logside
        if not (0 <= row < side and 0 <= col < side):
            raise IndexError(f"cell ({row}, {col}) is outside side {side}")
        if self.elems == 0 or self.tree is None:
            return 0
        tree = self.tree
        if self.transposed:
            row, col = col, row
        node = tree.root()
        level = tree.nlevels - 1
        while True:
            v = 2 * ((row >> level) & 1) + ((col >> level) & 1)
            if not tree.has_child(node, v):
                return 0
            if level == 0:
                return 1
            node = tree.child(node, v)
            level -= 1

    def _ranges(
        self, r1: int, r2: int | None, c1: int, c2: int | None
    ) -> tuple[int, int, int, int]:
        if self.transposed:
            r1, c1 = c1, r1
            r2, c2 = c2, r2
        if r2 is FULL_SIDE:
            r2 = self.height - 1
        if c2 is FULL_SIDE:
            c2 = self.width - 1
        return r1, r2, c1, c2

    def collect(
        self,
        r1: int = 0,
        r2: int | None = FULL_SIDE,
        c1: int = 0,
        c2: int | None = FULL_SIDE,
    ) -> list[tuple[int, int]]:
        """All (row, col) cells in [r1..r2] x [c1..c2]; None means up to the end."""
        if self.elems == 0 or self.tree is None:
            return []
        tr1, tr2, tc1, tc2 = self._ranges(r1, r2, c1, c2)
        return self.tree.collect(tr1, tr2, tc1, tc2, col_row=self.transposed)

    def count(
        self,
        r1: int = 0,
        r2: int | None = FULL_SIDE,
        c1: int = 0,
        c2: int | None = FULL_SIDE,
    ) -> int:
        """Number of cells in [r1..r2] x [c1..c2]; None means up to the end."""
        if self.elems == 0 or self.tree is None:
            return 0
        return self.tree.count(*self._ranges(r1, r2, c1, c2))