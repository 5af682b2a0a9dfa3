import asyncio
import hashlib
import io
import logging
import struct

from coinwire.core.errors import (
    MalformedError, TooManyItemsError, TruncatedError, UnknownCommandError
)
from coinwire.core.protocol import (
    PROTOCOL_VERSION, MAGIC_VALUE, MESSAGE_HEADER_SIZE, COMMAND_SIZE,
    MAX_MESSAGE_PAYLOAD, MAX_VAR_INT_PAYLOAD, MAX_INV_VECT_PAYLOAD, MAX_INV_PER_MSG
)
from coinwire.core.serialization import read_exact, read_varint, write_varint
from coinwire.network.inventory import InventoryList, read_inv_vect, write_inv_vect

logger = logging.getLogger("Messages")

CMD_INV = 'inv'
CMD_GETDATA = 'getdata'
CMD_NOTFOUND = 'notfound'

def payload_checksum(payload):
    """First 4 bytes of double-SHA256 of the payload, as carried in the header."""
    return hashlib.sha256(hashlib.sha256(payload).digest()).digest()[:4]

class Message:
    """
    Base for every wire message.

    Subclasses set `command` and implement `encode`, `decode` and
    `max_payload_length`. The dispatcher only ever talks to this interface;
    it picks the concrete class from the command string in the header.
    """

    command = None

    def command_id(self):
        return self.command

    def max_payload_length(self, pver):
        raise NotImplementedError

    def encode(self, w, pver):
        raise NotImplementedError

    @classmethod
    def decode(cls, r, pver):
        raise NotImplementedError

    def serialize_payload(self, pver=PROTOCOL_VERSION):
        buf = io.BytesIO()
        self.encode(buf, pver)
        return buf.getvalue()

    def serialize(self, pver=PROTOCOL_VERSION, magic=MAGIC_VALUE):
        """Full frame: 24-byte header followed by the payload."""
        payload = self.serialize_payload(pver)
        return Message.build_header(self.command, payload, magic) + payload

    @classmethod
    def parse(cls, payload, pver=PROTOCOL_VERSION):
        """Decode a complete payload. Bytes left over after decoding are an error."""
        f = io.BytesIO(payload)
        msg = cls.decode(f, pver)
        leftover = len(payload) - f.tell()
        if leftover:
            raise MalformedError(f"{cls.__name__}.parse",
                                 f"{leftover} trailing bytes after payload")
        return msg

    @staticmethod
    def build_header(command, payload, magic=MAGIC_VALUE):
        # Header: magic (4), command (12), length (4), checksum (4)
        command_bytes = command.encode('ascii')
        if len(command_bytes) > COMMAND_SIZE:
            raise MalformedError("Message.build_header", f"command too long [{command}]")
        if not 0 <= magic <= 0xffffffff:
            raise MalformedError("Message.build_header", f"magic out of range [{magic}]")
        command_padded = command_bytes + b'\x00' * (COMMAND_SIZE - len(command_bytes))
        return (
            struct.pack('<I', magic) +
            command_padded +
            struct.pack('<I', len(payload)) +
            payload_checksum(payload)
        )

    @classmethod
    def parse_header(cls, data):
        if len(data) < MESSAGE_HEADER_SIZE:
            raise TruncatedError("Message.parse_header",
                                 f"header needs {MESSAGE_HEADER_SIZE} bytes, got {len(data)}")
        magic, command, length, check = struct.unpack('<I12sI4s', data[:MESSAGE_HEADER_SIZE])
        try:
            command = command.rstrip(b'\x00').decode('ascii')
        except UnicodeDecodeError:
            raise MalformedError("Message.parse_header", f"invalid command bytes {command!r}") from None
        return magic, command, length, check

class InvListMessage(Message):
    """
    Shared body of inv, getdata and notfound: a varint count followed by that
    many inventory vectors, at most MAX_INV_PER_MSG of them.

    Use add_inv_vect to build one up for sending.
    """

    def __init__(self, inventory=None):
        self.inventory = InventoryList(inventory)

    def add_inv_vect(self, iv):
        self.inventory.add(iv, context=f"{type(self).__name__}.add_inv_vect")

    @classmethod
    def decode(cls, r, pver):
        context = f"{cls.__name__}.decode"
        count = read_varint(r, pver)

        # Limit to max inventory vectors per message before reading any of them
        if count > MAX_INV_PER_MSG:
            logger.warning(f"{context}: peer claimed {count} inventory vectors (max {MAX_INV_PER_MSG})")
            raise TooManyItemsError(context, count, MAX_INV_PER_MSG)

        msg = cls()
        for _ in range(count):
            iv = read_inv_vect(r, pver)
            msg.inventory.add(iv, context)
        return msg

    def encode(self, w, pver):
        # Checked again here in case inventory was replaced without add_inv_vect
        count = len(self.inventory)
        if count > MAX_INV_PER_MSG:
            raise TooManyItemsError(f"{type(self).__name__}.encode", count, MAX_INV_PER_MSG)

        write_varint(w, pver, count)
        for iv in self.inventory:
            write_inv_vect(w, pver, iv)

    def max_payload_length(self, pver):
        # Num inventory vectors (varint) + max allowed inventory vectors
        return MAX_VAR_INT_PAYLOAD + MAX_INV_PER_MSG * MAX_INV_VECT_PAYLOAD

    def __eq__(self, other):
        return type(self) is type(other) and list(self.inventory) == list(other.inventory)

    def __repr__(self):
        return f"{type(self).__name__}({len(self.inventory)} items)"

class MsgInv(InvListMessage):
    """Advertise known blocks/transactions, unsolicited or in reply to getblocks."""
    command = CMD_INV

class MsgGetData(InvListMessage):
    """Request the full objects for a set of inventory vectors."""
    command = CMD_GETDATA

class MsgNotFound(InvListMessage):
    """Reply to getdata for the inventory vectors the peer does not have."""
    command = CMD_NOTFOUND

MESSAGE_TYPES = {
    CMD_INV: MsgInv,
    CMD_GETDATA: MsgGetData,
    CMD_NOTFOUND: MsgNotFound,
}

def make_empty_message(command):
    try:
        return MESSAGE_TYPES[command]()
    except KeyError:
        raise UnknownCommandError("make_empty_message", command) from None

def _check_header(header_data, pver, magic):
    """Validate a header and return (empty message, declared length, checksum)."""
    msg_magic, command, length, check = Message.parse_header(header_data)
    logger.debug(f"[RECV] CMD: {command} (Size: {length})")

    if msg_magic != magic:
        raise MalformedError("read_message", f"invalid magic 0x{msg_magic:08x}")

    if length > MAX_MESSAGE_PAYLOAD:
        raise MalformedError("read_message",
                             f"payload length {length} exceeds max message payload {MAX_MESSAGE_PAYLOAD}")

    msg = make_empty_message(command)

    max_length = msg.max_payload_length(pver)
    if length > max_length:
        raise MalformedError("read_message",
                             f"payload length {length} exceeds max for {command} [{max_length}]")
    return msg, length, check

def _decode_payload(msg, payload, check, pver):
    if payload_checksum(payload) != check:
        raise MalformedError("read_message",
                             f"checksum mismatch for {msg.command} [{check.hex()} != {payload_checksum(payload).hex()}]")
    return type(msg).parse(payload, pver)

def write_message(w, msg, pver=PROTOCOL_VERSION, magic=MAGIC_VALUE):
    w.write(msg.serialize(pver, magic))

def read_message(r, pver=PROTOCOL_VERSION, magic=MAGIC_VALUE):
    """Read one framed message from a file-like object and decode it."""
    header_data = read_exact(r, MESSAGE_HEADER_SIZE, "message header")
    msg, length, check = _check_header(header_data, pver, magic)
    payload = read_exact(r, length, f"{msg.command} payload")
    return _decode_payload(msg, payload, check, pver)

async def write_message_async(writer, msg, pver=PROTOCOL_VERSION, magic=MAGIC_VALUE):
    writer.write(msg.serialize(pver, magic))
    await writer.drain()

async def read_message_async(reader, pver=PROTOCOL_VERSION, magic=MAGIC_VALUE):
    """Same as read_message, over an asyncio.StreamReader."""
    try:
        header_data = await reader.readexactly(MESSAGE_HEADER_SIZE)
        msg, length, check = _check_header(header_data, pver, magic)
        payload = await reader.readexactly(length) if length > 0 else b''
    except asyncio.IncompleteReadError as e:
        logger.debug(f"Incomplete read: expected {e.expected}, got {len(e.partial)}")
        raise TruncatedError("read_message_async",
                             f"expected {e.expected} bytes, got {len(e.partial)}") from e
    return _decode_payload(msg, payload, check, pver)
