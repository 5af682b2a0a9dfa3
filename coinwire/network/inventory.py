import logging

from coinwire.core.errors import CapacityExceededError
from coinwire.core.protocol import HASH_SIZE, MAX_INV_PER_MSG
from coinwire.core.serialization import encode_uint32, decode_uint32, read_exact

logger = logging.getLogger("Inventory")

# Inventory vector types
INV_TYPE_ERROR = 0
INV_TYPE_TX = 1
INV_TYPE_BLOCK = 2

INV_TYPE_NAMES = {
    INV_TYPE_ERROR: "ERROR",
    INV_TYPE_TX: "MSG_TX",
    INV_TYPE_BLOCK: "MSG_BLOCK",
}

class InvVect:
    """
    A single inventory vector: what kind of object (tx, block) and its hash.

    Always 36 bytes on the wire. Unknown type values are kept as-is so a
    newer peer's inventory can still be decoded and relayed.
    """

    __slots__ = ("type", "hash")

    def __init__(self, inv_type=INV_TYPE_ERROR, inv_hash=b'\x00'*HASH_SIZE):
        if not 0 <= inv_type <= 0xffffffff:
            raise ValueError(f"InvVect type must fit in a uint32, got {inv_type}")
        if len(inv_hash) != HASH_SIZE:
            raise ValueError(f"InvVect hash must be {HASH_SIZE} bytes, got {len(inv_hash)}")
        self.type = inv_type
        self.hash = bytes(inv_hash)

    @classmethod
    def from_hex(cls, inv_type, hex_str):
        # Hashes are displayed big-endian but stored little-endian
        return cls(inv_type, bytes.fromhex(hex_str)[::-1])

    def serialize(self):
        return encode_uint32(self.type) + self.hash

    @classmethod
    def deserialize(cls, f):
        inv_type = decode_uint32(f)
        inv_hash = read_exact(f, HASH_SIZE, "InvVect hash")
        return cls(inv_type, inv_hash)

    @property
    def type_name(self):
        return INV_TYPE_NAMES.get(self.type, f"Unknown({self.type})")

    @property
    def hex(self):
        return self.hash[::-1].hex()

    def __eq__(self, other):
        return isinstance(other, InvVect) and self.type == other.type and self.hash == other.hash

    def __hash__(self):
        return hash((self.type, self.hash))

    def __repr__(self):
        return f"InvVect({self.type_name} {self.hex})"

def read_inv_vect(r, pver):
    return InvVect.deserialize(r)

def write_inv_vect(w, pver, iv):
    w.write(iv.serialize())

class InventoryList:
    """
    Ordered list of inventory vectors that never holds more than `limit` items.

    `add` is the only way to grow it. Construction from an iterable goes
    through `add` too, so every path enforces the same bound.
    """

    def __init__(self, items=None, limit=MAX_INV_PER_MSG):
        self.limit = limit
        self._items = []
        if items is not None:
            for item in items:
                self.add(item)

    def add(self, item, context="InventoryList.add"):
        if len(self._items) + 1 > self.limit:
            logger.debug(f"Rejected inventory vector {item!r}: list already holds {len(self._items)}")
            raise CapacityExceededError(context, self.limit)
        self._items.append(item)

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index):
        return self._items[index]

    def __eq__(self, other):
        if isinstance(other, InventoryList):
            return self._items == other._items
        return NotImplemented

    def __repr__(self):
        return f"InventoryList({self._items!r})"
