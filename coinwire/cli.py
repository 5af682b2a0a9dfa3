import argparse
import io
import json
import logging
import os
import sys

from coinwire.core.errors import MessageError
from coinwire.core.protocol import PROTOCOL_VERSION, MAGIC_VALUE
from coinwire.network.inventory import InvVect, INV_TYPE_TX, INV_TYPE_BLOCK, INV_TYPE_ERROR
from coinwire.network.messages import MESSAGE_TYPES, CMD_INV, read_message

logger = logging.getLogger("coinwire-cli")

INV_TYPE_ARGS = {
    'error': INV_TYPE_ERROR,
    'tx': INV_TYPE_TX,
    'block': INV_TYPE_BLOCK,
}

def parse_inv_arg(value):
    """Parse TYPE:HASH where TYPE is tx, block, error or a number and HASH is big-endian hex."""
    try:
        type_str, hex_str = value.split(':', 1)
        inv_type = INV_TYPE_ARGS[type_str] if type_str in INV_TYPE_ARGS else int(type_str, 0)
        return InvVect.from_hex(inv_type, hex_str)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid inventory vector '{value}': {e}")

def parse_int(value):
    """Integer in any base Python accepts (0xfbc0b6db, 4223710939)."""
    return int(value, 0)

def inventory_to_json(msg):
    return {
        "command": msg.command_id(),
        "count": len(msg.inventory),
        "inventory": [{"type": iv.type_name, "hash": iv.hex} for iv in msg.inventory],
    }

def build_parser():
    parser = argparse.ArgumentParser(description="Decode and encode inventory messages (inv/getdata/notfound)")
    # Defaults stay strings so argparse converts env values through type=
    parser.add_argument("--pver", type=int, default=os.getenv('COINWIRE_PVER', str(PROTOCOL_VERSION)),
                        help="Protocol version to encode/decode with")
    parser.add_argument("--magic", type=parse_int,
                        default=os.getenv('COINWIRE_MAGIC', hex(MAGIC_VALUE)),
                        help="Network magic for framed messages")
    parser.add_argument("--framed", action="store_true",
                        help="Input/output includes the 24-byte message header")
    parser.add_argument("--debug", action="store_true", help="Output extra debugging information")
    subparsers = parser.add_subparsers(dest="action")

    decode_parser = subparsers.add_parser("decode", help="Decode a hex message and print it as JSON")
    decode_parser.add_argument("data", help="Hex encoded payload, or - to read from stdin")
    decode_parser.add_argument("--command", default=CMD_INV, choices=sorted(MESSAGE_TYPES),
                               help="Message type of an unframed payload")

    encode_parser = subparsers.add_parser("encode", help="Encode inventory vectors and print hex")
    encode_parser.add_argument("items", nargs="*", type=parse_inv_arg, help="TYPE:HASH entries")
    encode_parser.add_argument("--command", default=CMD_INV, choices=sorted(MESSAGE_TYPES),
                               help="Message type to build")
    return parser

def run_decode(args):
    data = sys.stdin.read() if args.data == '-' else args.data
    try:
        raw = bytes.fromhex(data.strip())
    except ValueError as e:
        raise MessageError("decode", f"input is not hex: {e}") from None

    if args.framed:
        msg = read_message(io.BytesIO(raw), args.pver, args.magic)
    else:
        msg = MESSAGE_TYPES[args.command].parse(raw, args.pver)
    print(json.dumps(inventory_to_json(msg), indent=2))

def run_encode(args):
    msg = MESSAGE_TYPES[args.command]()
    for iv in args.items:
        msg.add_inv_vect(iv)
    if args.framed:
        print(msg.serialize(args.pver, args.magic).hex())
    else:
        print(msg.serialize_payload(args.pver).hex())

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.action is None:
        parser.print_help()
        return 2

    try:
        if args.action == "decode":
            run_decode(args)
        else:
            run_encode(args)
    except MessageError as e:
        logger.error(f"{args.action} failed: {e}")
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
