"""
Tests for vaultcore.script
"""

import pytest

from vaultcore.script import (
    encode_script_number,
    encode_varint,
    hash160,
    hash256,
    p2pkh_locking_bytecode,
    p2sh_locking_bytecode,
    push_data,
    push_number,
)

# Compressed public key for private key 1 (the secp256k1 generator)
GENERATOR_PUBKEY = bytes.fromhex(
    "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
)


class TestHashes:
    def test_hash256_empty(self):
        expected = bytes.fromhex("5df6e0e2761359d30a8275058e299fcc0381534545f55cf43e41983f5d4c9456")
        assert hash256(b"") == expected

    def test_hash160_generator(self):
        assert hash160(GENERATOR_PUBKEY).hex() == "751e76e8199196d454941c45d1b3a323f1433bd6"


class TestVarint:
    def test_single_byte(self):
        assert encode_varint(0) == bytes([0x00])
        assert encode_varint(252) == bytes([0xFC])

    def test_two_bytes(self):
        assert encode_varint(253) == bytes([0xFD, 0xFD, 0x00])
        assert encode_varint(1000) == bytes([0xFD, 0xE8, 0x03])

    def test_four_bytes(self):
        assert encode_varint(0x10000) == bytes([0xFE, 0x00, 0x00, 0x01, 0x00])

    def test_eight_bytes(self):
        result = encode_varint(0x100000000)
        assert result[0] == 0xFF
        assert len(result) == 9

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            encode_varint(-1)


class TestScriptNumber:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, ""),
            (1, "01"),
            (127, "7f"),
            (128, "8000"),
            (255, "ff00"),
            (256, "0001"),
            (-1, "81"),
            (-128, "8080"),
            (250_000_000_000, "004429353a"),
        ],
    )
    def test_encoding(self, value, expected):
        assert encode_script_number(value).hex() == expected


class TestPushes:
    def test_empty_push_is_op_0(self):
        assert push_data(b"") == bytes([0x00])

    def test_small_numbers_use_op_n(self):
        assert push_data(bytes([1])) == bytes([0x51])
        assert push_data(bytes([16])) == bytes([0x60])

    def test_negative_one_uses_op_1negate(self):
        assert push_data(bytes([0x81])) == bytes([0x4F])

    def test_direct_push(self):
        assert push_data(bytes([0x11])) == bytes([0x01, 0x11])
        data = bytes(75)
        assert push_data(data) == bytes([75]) + data

    def test_pushdata1(self):
        data = bytes(76)
        assert push_data(data) == bytes([0x4C, 76]) + data

    def test_pushdata2(self):
        data = bytes(256)
        assert push_data(data) == bytes([0x4D, 0x00, 0x01]) + data

    def test_push_number(self):
        assert push_number(0) == bytes([0x00])
        assert push_number(5) == bytes([0x55])
        assert push_number(1000) == bytes([0x02, 0xE8, 0x03])


class TestLockingBytecode:
    def test_p2pkh(self):
        script = p2pkh_locking_bytecode(hash160(GENERATOR_PUBKEY))
        assert script.hex() == "76a914751e76e8199196d454941c45d1b3a323f1433bd688ac"

    def test_p2pkh_rejects_bad_hash(self):
        with pytest.raises(ValueError):
            p2pkh_locking_bytecode(bytes(19))

    def test_p2sh20(self):
        redeem = bytes([0x51])
        script = p2sh_locking_bytecode(redeem, "p2sh20")
        assert len(script) == 23
        assert script[:2] == bytes([0xA9, 0x14])
        assert script[2:22] == hash160(redeem)
        assert script[-1] == 0x87

    def test_p2sh32(self):
        redeem = bytes([0x51])
        script = p2sh_locking_bytecode(redeem, "p2sh32")
        assert len(script) == 35
        assert script[:2] == bytes([0xAA, 0x20])
        assert script[2:34] == hash256(redeem)
        assert script[-1] == 0x87

    def test_unknown_address_type(self):
        with pytest.raises(ValueError, match="Unknown address type"):
            p2sh_locking_bytecode(bytes([0x51]), "p2wsh")
