import unittest
import io
import json
import sys
import os
from unittest.mock import patch

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from coinwire.cli import build_parser, main
from coinwire.core.serialization import encode_varint
from coinwire.core.protocol import MAX_INV_PER_MSG

BLOCK_HEX = '00' * 31 + '01'
TX_HEX = 'ab' * 32

class TestCLI(unittest.TestCase):
    def run_cli(self, argv):
        with patch('sys.stdout', new_callable=io.StringIO) as out:
            code = main(argv)
        return code, out.getvalue()

    def test_encode_payload(self):
        code, out = self.run_cli(['encode', f'block:{BLOCK_HEX}', f'tx:{TX_HEX}'])
        self.assertEqual(code, 0)
        payload = bytes.fromhex(out.strip())
        self.assertEqual(payload[0], 2)
        self.assertEqual(payload[1:5], b'\x02\x00\x00\x00')
        self.assertEqual(payload[5:37], b'\x01' + b'\x00' * 31)
        self.assertEqual(len(payload), 1 + 2 * 36)

    def test_encode_then_decode_framed(self):
        code, out = self.run_cli(['--framed', 'encode', '--command', 'getdata', f'tx:{TX_HEX}'])
        self.assertEqual(code, 0)

        code, out = self.run_cli(['--framed', 'decode', out.strip()])
        self.assertEqual(code, 0)
        result = json.loads(out)
        self.assertEqual(result['command'], 'getdata')
        self.assertEqual(result['count'], 1)
        self.assertEqual(result['inventory'], [{'type': 'MSG_TX', 'hash': TX_HEX}])

    def test_decode_from_stdin(self):
        with patch('sys.stdin', io.StringIO('00\n')):
            code, out = self.run_cli(['decode', '--command', 'notfound', '-'])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)['count'], 0)

    def test_decode_too_many_items(self):
        code, out = self.run_cli(['decode', encode_varint(MAX_INV_PER_MSG + 1).hex()])
        self.assertEqual(code, 1)
        self.assertEqual(out, '')

    def test_decode_truncated(self):
        code, _ = self.run_cli(['decode', '03' + '01000000' + '00' * 32])
        self.assertEqual(code, 1)

    def test_decode_not_hex(self):
        code, _ = self.run_cli(['decode', 'zz'])
        self.assertEqual(code, 1)

    def test_pver_from_env(self):
        with patch.dict(os.environ, {'COINWIRE_PVER': '209', 'COINWIRE_MAGIC': '0xdab5bffa'}):
            args = build_parser().parse_args([])
        self.assertEqual(args.pver, 209)
        self.assertEqual(args.magic, 0xdab5bffa)

        args = build_parser().parse_args(['--pver', '70001'])
        self.assertEqual(args.pver, 70001)

    def test_bad_env_value(self):
        with patch.dict(os.environ, {'COINWIRE_PVER': 'latest'}):
            with patch('sys.stderr', new_callable=io.StringIO) as err:
                with self.assertRaises(SystemExit) as cm:
                    main(['encode'])
        self.assertEqual(cm.exception.code, 2)
        self.assertIn('--pver', err.getvalue())

    def test_inventory_type_out_of_range(self):
        with patch('sys.stderr', new_callable=io.StringIO) as err:
            with self.assertRaises(SystemExit) as cm:
                main(['encode', '4294967296:' + '00' * 32])
        self.assertEqual(cm.exception.code, 2)
        self.assertIn('uint32', err.getvalue())

    def test_numeric_inventory_type(self):
        code, out = self.run_cli(['encode', '4294967295:' + '00' * 32])
        self.assertEqual(code, 0)
        self.assertEqual(bytes.fromhex(out.strip())[1:5], b'\xff\xff\xff\xff')

    def test_bad_inventory_argument(self):
        with patch('sys.stderr', new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                main(['encode', 'block:abcd'])

    def test_no_action(self):
        code, out = self.run_cli([])
        self.assertEqual(code, 2)
        self.assertIn('usage', out)

if __name__ == '__main__':
    unittest.main()
