"""Big-endian ISOBMFF box composition and parsing helpers."""

import struct
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

BOX_HEADER_SIZE = 8
FULL_BOX_HEADER_SIZE = 12


class BoxBuffer:
    """Growable byte buffer for composing boxes before they are written.

    Length fields are reserved as zero and patched once the body they cover is
    complete. Named fields can be reserved the same way and patched later
    through the patch table, e.g. file offsets that are only known after the
    surrounding box has been measured.
    """

    def __init__(self) -> None:
        self._data = bytearray()
        self._patches: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._data)

    def tell(self) -> int:
        return len(self._data)

    def write(self, data: bytes) -> None:
        self._data += data

    def write_u8(self, value: int) -> None:
        self._data += struct.pack(">B", value)

    def write_u16(self, value: int) -> None:
        self._data += struct.pack(">H", value)

    def write_u32(self, value: int) -> None:
        self._data += struct.pack(">I", value)

    def write_fourcc(self, code: str) -> None:
        encoded = code.encode("ascii")
        if len(encoded) != 4:
            raise ValueError(f"Four-character code must be 4 bytes: {code!r}")
        self._data += encoded

    def reserve_u32(self, name: str) -> int:
        """Write a zero placeholder and remember its offset under ``name``."""
        if name in self._patches:
            raise ValueError(f"Patch field already reserved: {name}")
        offset = self.tell()
        self._patches[name] = offset
        self.write_u32(0)
        return offset

    def patch_u32(self, name: str, value: int) -> None:
        offset = self._patches[name]
        struct.pack_into(">I", self._data, offset, value)

    @property
    def patch_offsets(self) -> Dict[str, int]:
        return dict(self._patches)

    @contextmanager
    def box(self, box_type: str, version: Optional[int] = None, flags: int = 0) -> Iterator[None]:
        """Compose a box; its size field is patched when the block exits.

        Passing ``version`` makes it a full box with a version/flags word.
        """
        start = self.tell()
        self.write_u32(0)
        self.write_fourcc(box_type)
        if version is not None:
            self.write_u32((version << 24) | (flags & 0xFFFFFF))
        yield
        struct.pack_into(">I", self._data, start, self.tell() - start)

    def getvalue(self) -> bytes:
        return bytes(self._data)


@dataclass(frozen=True)
class Box:
    """A parsed box header and the byte range it spans."""
    type: bytes
    start: int
    body_start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


def iter_boxes(data: bytes, offset: int = 0, end: Optional[int] = None) -> Iterator[Box]:
    """Yield consecutive boxes in ``data[offset:end]``.

    Stops at the first header that is truncated, declares a size smaller than
    its header, or runs past ``end``. 64-bit sizes are honoured; size 0 means
    "extends to the end".
    """
    if end is None:
        end = len(data)
    pos = offset
    while pos + BOX_HEADER_SIZE <= end:
        size, box_type = struct.unpack(">I4s", data[pos : pos + BOX_HEADER_SIZE])
        body_start = pos + BOX_HEADER_SIZE
        if size == 1:
            if pos + 16 > end:
                return
            (size,) = struct.unpack(">Q", data[pos + 8 : pos + 16])
            body_start = pos + 16
        elif size == 0:
            size = end - pos
        if size < body_start - pos:
            return
        box_end = pos + size
        if box_end > end:
            return
        yield Box(type=box_type, start=pos, body_start=body_start, end=box_end)
        pos = box_end


def find_box(data: bytes, box_type: bytes, offset: int = 0, end: Optional[int] = None) -> Optional[Box]:
    for box in iter_boxes(data, offset, end):
        if box.type == box_type:
            return box
    return None


@dataclass(frozen=True)
class ItemExtent:
    item_id: int
    offset: int
    length: int


def parse_iloc(data: bytes, box: Box) -> List[ItemExtent]:
    """Return the first extent of every item in an ``iloc`` box.

    Raises:
        ValueError: If the box is truncated or uses an unsupported layout.
    """
    body = data[box.body_start : box.end]
    if len(body) < 8:
        raise ValueError("iloc box too short")
    version = body[0]
    if version > 2:
        raise ValueError(f"Unsupported iloc version: {version}")
    offset_size = body[4] >> 4
    length_size = body[4] & 0x0F
    base_offset_size = body[5] >> 4
    index_size = body[5] & 0x0F if version in (1, 2) else 0
    pos = 6

    def read_uint(width: int) -> int:
        nonlocal pos
        if width not in (0, 4, 8):
            raise ValueError(f"Unsupported iloc field width: {width}")
        if pos + width > len(body):
            raise ValueError("iloc box truncated")
        value = int.from_bytes(body[pos : pos + width], "big") if width else 0
        pos += width
        return value

    item_count = read_uint(4) if version == 2 else int.from_bytes(body[pos : pos + 2], "big")
    if version != 2:
        pos += 2

    extents: List[ItemExtent] = []
    for _ in range(item_count):
        if version == 2:
            item_id = read_uint(4)
        else:
            item_id = int.from_bytes(body[pos : pos + 2], "big")
            pos += 2
        if version in (1, 2):
            pos += 2  # reserved + construction_method
        pos += 2  # data_reference_index
        base_offset = read_uint(base_offset_size)
        if pos + 2 > len(body):
            raise ValueError("iloc box truncated")
        extent_count = int.from_bytes(body[pos : pos + 2], "big")
        pos += 2
        first: Optional[ItemExtent] = None
        for _ in range(extent_count):
            read_uint(index_size)
            extent_offset = read_uint(offset_size)
            extent_length = read_uint(length_size)
            if first is None:
                first = ItemExtent(item_id, base_offset + extent_offset, extent_length)
        if first is not None:
            extents.append(first)
    return extents
