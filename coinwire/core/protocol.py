# Protocol version spoken by default. Inventory messages do not vary by version
# but every codec entry point still takes one.
PROTOCOL_VERSION = 70015

# Network magic (Litecoin mainnet value, shared by iCSI-style networks)
MAGIC_VALUE = 0xfbc0b6db

# Header: magic (4), command (12), length (4), checksum (4)
MESSAGE_HEADER_SIZE = 24
COMMAND_SIZE = 12

# Largest payload any message may declare in its header (32 MiB)
MAX_MESSAGE_PAYLOAD = 1024 * 1024 * 32

# Largest encoded varint: 0xff prefix + uint64
MAX_VAR_INT_PAYLOAD = 9

HASH_SIZE = 32

# Inventory vector: type (uint32) + hash
MAX_INV_VECT_PAYLOAD = 4 + HASH_SIZE

# Maximum number of inventory vectors in a single inv/getdata/notfound
MAX_INV_PER_MSG = 50000
