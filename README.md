# k2mat

Boolean matrices stored as k2-trees: a compressed quadtree layout in which
each node is four bits saying which of its quadrants (0 top-left,
1 top-right, 2 bottom-left, 3 bottom-right) hold any cell. Sparse and
clustered matrices take little space, and Boolean set operations work
directly on the compressed form.

The package is pure Python and has no runtime dependencies.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Building matrices

```python
from k2mat.matrix import Matrix

m = Matrix.create(4, 4, [(0, 1), (1, 2), (2, 3)])  # height, width, (row, col) cells
m.access(1, 2)        # 1
m.access(2, 1)        # 0
m.collect()           # every (row, col) cell
m.count(0, 1, 0, 3)   # cells in rows 0..1 and columns 0..3: 2

Matrix.empty(8, 8)
Matrix.one(8, 8, 3, 5)
Matrix.identity(8)
t = m.transpose()     # a view sharing the tree, rows and columns swapped
c = m.copy()          # an independent copy with its own tree
```

`Matrix.create` ignores duplicate cells and raises `ValueError` for a cell
outside the matrix. `access` raises `IndexError` for a cell outside the
padded side `2 ** logside`. In `collect` and `count`, an upper bound of
`None` means "up to the last row or column".

`dims()` returns a named tuple `(elems, logside, width, height)`, with
width and height as seen through any transposition; `space()` gives an
estimate of the memory used, in 64-bit words.

Matrices can be written to and read from binary files:

```python
with open("m.k2", "wb") as f:
    m.save(f)
with open("m.k2", "rb") as f:
    m2 = Matrix.load(f)
```

## Set operations

`k2mat.setops` offers `mat_sum`, `mat_or`, `mat_and`, `mat_dif` (a minus
b) and `mat_xor`. Each has a restricted form `mat_sum1(row, a, b, col)`,
`mat_or1`, `mat_and1`, `mat_dif1`, `mat_xor1`, which keeps only the given
row, the given column, or both; pass `None` for no restriction.

```python
from k2mat.setops import mat_and, mat_or1

both = mat_and(m, t)
row_two = mat_or1(2, m, t, None)
```

Operands must have the same `logside` (the number of tree levels); mixing
sizes raises `ValueError`. Transposed views may be mixed freely with
plain matrices.

## Lower layers

`k2mat.bitvector.BitVector` is a bit array with constant-time `rank`
after `rank_preprocess(k)`, plus `access`, `write`, `read`, `save`,
`load` and `copy`. The module also has the helpers `numbits`, `popcount`,
`pop4`, `read_bits` and `copy_bits`.

`k2mat.k2tree.K2Tree` is the tree itself: `K2Tree.from_coords(nbits,
coords)` builds one from cells, and it offers navigation (`root`,
`has_child`, `sig_node`, `child`, `fill_children`,
`fill_mapped_children` with `MAP_ID` or `MAP_TR`), range queries
(`collect`, `count`), `save`/`load`, `copy` and `space`. The function
`merge` ORs the bit arrays of two trees of the same height and returns a
`MergeResult` of words, bit length, cell count and, optionally, nodes per
level.

## What this package does not do

It has no Boolean matrix product, no matrix-by-vector product and no
transitive closure; only the set operations above combine matrices. It
has no command-line tool.