import struct

from .errors import MalformedError, TruncatedError

def read_exact(f, n, what):
    """Read exactly n bytes from a file-like object or raise TruncatedError."""
    data = f.read(n)
    if len(data) < n:
        raise TruncatedError(what, f"insufficient data [need {n}, got {len(data)}]")
    return data

def encode_uint32(n):
    """Encode a 4-byte unsigned integer (little-endian)."""
    return struct.pack('<I', n)

def decode_uint32(f):
    """Decode a 4-byte unsigned integer (little-endian) from a file-like object."""
    return struct.unpack('<I', read_exact(f, 4, "uint32"))[0]

def encode_varint(n):
    """
    Encode a variable-length integer (CompactSize).
    https://en.bitcoin.it/wiki/Protocol_documentation#Variable_length_integer
    """
    if n < 0 or n > 0xffffffffffffffff:
        raise MalformedError("encode_varint", f"value out of range [{n}]")
    if n < 0xfd:
        return struct.pack('<B', n)
    elif n <= 0xffff:
        return b'\xfd' + struct.pack('<H', n)
    elif n <= 0xffffffff:
        return b'\xfe' + struct.pack('<I', n)
    else:
        return b'\xff' + struct.pack('<Q', n)

def decode_varint(f):
    """
    Decode a variable-length integer (CompactSize) from a file-like object.

    Only the minimal encoding of a value is accepted; anything wider raises
    MalformedError.
    """
    prefix = read_exact(f, 1, "varint")[0]
    if prefix < 0xfd:
        return prefix
    elif prefix == 0xfd:
        n = struct.unpack('<H', read_exact(f, 2, "varint (uint16)"))[0]
        minimum = 0xfd
    elif prefix == 0xfe:
        n = struct.unpack('<I', read_exact(f, 4, "varint (uint32)"))[0]
        minimum = 0x10000
    else: # 0xff
        n = struct.unpack('<Q', read_exact(f, 8, "varint (uint64)"))[0]
        minimum = 0x100000000

    if n < minimum:
        raise MalformedError("decode_varint",
                             f"non-canonical varint [prefix 0x{prefix:02x}, value {n}]")
    return n

def read_varint(r, pver):
    # CompactSize is the same for every protocol version
    return decode_varint(r)

def write_varint(w, pver, n):
    w.write(encode_varint(n))
