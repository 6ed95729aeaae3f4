"""Plain bit vectors stored in 64-bit words, with constant-time rank support."""

from __future__ import annotations

import struct
from typing import BinaryIO, Iterable

WORD_BITS = 64
WORD_MASK = (1 << WORD_BITS) - 1
SUPERBLOCK_BITS = 16  # a superblock covers 2**16 bits
_SUPERBLOCK_WORDS = (1 << SUPERBLOCK_BITS) // WORD_BITS
_HEADER_WORDS = 6  # fixed bookkeeping counted by space()
_BLOCKS_PER_WORD = WORD_BITS // 16


def numbits(n: int) -> int:
    """Number of bits needed to represent n; 1 for n == 0."""
    if n < 0:
        raise ValueError("numbits needs a non-negative integer")
    return max(n.bit_length(), 1)


def popcount(y: int) -> int:
    """Number of 1 bits in the low 64 bits of y."""
    return bin(y & WORD_MASK).count("1")


def pop4(x: int) -> int:
    """Number of 1 bits in the low nibble of x."""
    return bin(x & 0xF).count("1")


def _word(words: list[int], idx: int) -> int:
    return words[idx] if idx < len(words) else 0


def read_bits(words: list[int], i: int, length: int) -> int:
    """Read bits [i, i+length) of a word array as an integer, length <= 64."""
    if not 0 <= length <= WORD_BITS:
        raise ValueError("length must be between 0 and 64")
    idx, shift = divmod(i, WORD_BITS)
    combined = _word(words, idx) | (_word(words, idx + 1) << WORD_BITS)
    return (combined >> shift) & ((1 << length) - 1)


def _write_bits(words: list[int], pos: int, value: int, length: int) -> None:
    idx, shift = divmod(pos, WORD_BITS)
    if len(words) < idx + 2:
        words.extend([0] * (idx + 2 - len(words)))
    mask = ((1 << length) - 1) << shift
    combined = words[idx] | (words[idx + 1] << WORD_BITS)
    combined = (combined & ~mask) | ((value << shift) & mask)
    words[idx] = combined & WORD_MASK
    words[idx + 1] = combined >> WORD_BITS


def copy_bits(
    target: list[int],
    target_pos: int,
    source: list[int],
    source_pos: int,
    length: int,
) -> None:
    """Copy `length` bits of `source` from `source_pos` into `target` at `target_pos`.

    The target list is modified in place and grown with zero words if needed;
    bits of the target outside the copied range are left unchanged.
    """
    done = 0
    while done < length:
        n = min(WORD_BITS, length - done)
        value = read_bits(source, source_pos + done, n)
        _write_bits(target, target_pos + done, value, n)
        done += n


def _nwords(size: int) -> int:
    return (size + WORD_BITS - 1) // WORD_BITS


class BitVector:
    """A fixed-length bit vector; supports rank once preprocessed."""

    def __init__(self, size: int, words: Iterable[int] | None = None) -> None:
        if size < 0:
            raise ValueError("size must be non-negative")
        self.size = size
        needed = _nwords(size)
        data = [] if words is None else [wd & WORD_MASK for wd in words]
        data = data[:needed]
        data.extend([0] * (needed - len(data)))
        self.words: list[int] = data
        self.k = 0
        self.superblocks: list[int] | None = None
        self.blocks: list[int] | None = None

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"BitVector(size={self.size})"

    def copy(self) -> BitVector:
        """An independent copy with the same rank preprocessing."""
        other = BitVector(self.size, self.words)
        other.k = self.k
        if self.superblocks is not None:
            other.superblocks = list(self.superblocks)
        if self.blocks is not None:
            other.blocks = list(self.blocks)
        return other

    def save(self, file: BinaryIO) -> None:
        """Write the size and the bit words to a binary file."""
        file.write(struct.pack("<Q", self.size))
        if self.size:
            file.write(struct.pack(f"<{len(self.words)}Q", *self.words))

    @classmethod
    def load(cls, file: BinaryIO) -> BitVector:
        """Read a bit vector written by save(); it is not rank-preprocessed."""
        header = file.read(8)
        if len(header) != 8:
            raise ValueError("truncated bit vector header")
        (size,) = struct.unpack("<Q", header)
        count = _nwords(size)
        body = file.read(count * 8)
        if len(body) != count * 8:
            raise ValueError("truncated bit vector data")
        return cls(size, struct.unpack(f"<{count}Q", body))

    def space(self) -> int:
        """Space used, in 64-bit words."""
        space = _HEADER_WORDS
        if self.size:
            space += _nwords(self.size)
        if self.blocks is not None:
            span = self.k * WORD_BITS
            space += ((self.size + span - 1) // span) // _BLOCKS_PER_WORD
        if self.superblocks is not None:
            space += (self.size + (1 << SUPERBLOCK_BITS) - 1) >> SUPERBLOCK_BITS
        return space

    def _check(self, i: int) -> None:
        if not 0 <= i < self.size:
            raise IndexError(f"bit index {i} out of range for size {self.size}")

    def access(self, i: int) -> int:
        """The value (0 or 1) of bit i."""
        self._check(i)
        return (self.words[i // WORD_BITS] >> (i % WORD_BITS)) & 1

    def write(self, i: int, value: int) -> None:
        """Set bit i to 1 if value is truthy, else to 0."""
        self._check(i)
        idx, shift = divmod(i, WORD_BITS)
        if value:
            self.words[idx] |= 1 << shift
        else:
            self.words[idx] &= ~(1 << shift) & WORD_MASK

    def read(self, i: int, length: int) -> int:
        """Read bits [i, i+length) as an integer, length <= 64."""
        return read_bits(self.words, i, length)

    def rank_preprocess(self, k: int) -> None:
        """Build rank directories with blocks of k words."""
        if k < 1:
            raise ValueError("block parameter k must be positive")
        if self.size == 0:
            return
        nwords = len(self.words)
        span = k * WORD_BITS
        self.k = k
        self.blocks = [0] * ((self.size + span - 1) // span)
        self.superblocks = [0] * (
            (self.size + (1 << SUPERBLOCK_BITS) - 1) >> SUPERBLOCK_BITS
        )
        total = 0
        for start in range(0, nwords, _SUPERBLOCK_WORDS):
            self.superblocks[(start * WORD_BITS) >> SUPERBLOCK_BITS] = total
            acc = 0
            chunk = self.words[start:start + _SUPERBLOCK_WORDS]
            for offset, word in enumerate(chunk, start):
                if offset % k == 0:
                    self.blocks[offset // k] = acc
                acc += popcount(word)
            total += acc

    def rank(self, i: int) -> int:
        """Number of 1 bits in positions 0..i inclusive."""
        if self.superblocks is None or self.blocks is None:
            raise ValueError("bit vector is not preprocessed for rank")
        self._check(i)
        block = i // (self.k * WORD_BITS)
        result = self.superblocks[i >> SUPERBLOCK_BITS] + self.blocks[block]
        last = i // WORD_BITS
        result += sum(popcount(wd) for wd in self.words[block * self.k:last])
        return result + popcount(self.words[last] & ((1 << (i % WORD_BITS + 1)) - 1))