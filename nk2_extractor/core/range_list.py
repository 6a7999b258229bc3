"""Sorted, merged byte ranges used for allocation analysis."""
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple


@dataclass(frozen=True)
class ByteRange:
    offset: int
    size: int

    @property
    def end(self) -> int:
        return self.offset + self.size

    def __str__(self) -> str:
        return f'0x{self.offset:08x} - 0x{self.end:08x} ({self.size} bytes)'


class RangeList:
    """Non-overlapping ranges kept in ascending order.

    Overlapping and adjacent ranges are merged on insert.
    """

    def __init__(self, ranges: Iterable[Tuple[int, int]] = ()):
        self._ranges: List[ByteRange] = []
        for offset, size in ranges:
            self.add(offset, size)

    def add(self, offset: int, size: int) -> None:
        if size <= 0:
            return
        start, end = offset, offset + size
        merged = []
        inserted = False
        for existing in self._ranges:
            if existing.end < start:
                merged.append(existing)
            elif existing.offset > end:
                if not inserted:
                    merged.append(ByteRange(start, end - start))
                    inserted = True
                merged.append(existing)
            else:
                start = min(start, existing.offset)
                end = max(end, existing.end)
        if not inserted:
            merged.append(ByteRange(start, end - start))
        self._ranges = merged

    def complement(self, size: int) -> 'RangeList':
        """Ranges of [0, size) not covered by this list."""
        gaps = RangeList()
        current = 0
        for byte_range in self._ranges:
            if byte_range.offset > current:
                gaps.add(current, min(byte_range.offset, size) - current)
            current = max(current, byte_range.end)
            if current >= size:
                break
        if current < size:
            gaps.add(current, size - current)
        return gaps

    def aligned(self, block_size: int) -> 'RangeList':
        """Shrink every range inward to block boundaries, dropping empty ones."""
        result = RangeList()
        for byte_range in self._ranges:
            start = -(-byte_range.offset // block_size) * block_size
            end = (byte_range.end // block_size) * block_size
            if end > start:
                result.add(start, end - start)
        return result

    def __len__(self) -> int:
        return len(self._ranges)

    def __iter__(self) -> Iterator[ByteRange]:
        return iter(self._ranges)

    def __getitem__(self, index: int) -> ByteRange:
        return self._ranges[index]

    def total_size(self) -> int:
        return sum(byte_range.size for byte_range in self._ranges)
