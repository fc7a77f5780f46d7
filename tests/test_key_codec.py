#!/usr/bin/env python3
"""
Unit tests for KeyCodec: flat key encoding, decoding and composite keys.
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from configdb.storage.key_codec import KeyCodec
from configdb.core.exceptions import MalformedKeyError


def test_encode_upper_cases_table():
    """Table names are canonicalized to upper case."""
    print("Test 1: Encode")
    print("-" * 40)

    codec = KeyCodec("|")
    assert codec.encode("port", "Ethernet0") == "PORT|Ethernet0"
    assert codec.encode("PORT", "Ethernet0") == "PORT|Ethernet0"
    # Keys keep their case
    assert codec.encode("Port", "ethernet0") == "PORT|ethernet0"

    colon = KeyCodec(":")
    assert colon.encode("route_table", "10.0.0.0/8") == "ROUTE_TABLE:10.0.0.0/8"
    print("✓ encode successful")


def test_decode_splits_at_first_separator():
    """Decode splits a flat key at the first separator only."""
    print("Test 2: Decode")
    print("-" * 40)

    codec = KeyCodec("|")
    assert codec.decode("PORT|Ethernet0") == ("PORT", "Ethernet0")
    assert codec.decode("VLAN_MEMBER|Vlan100|Ethernet0") == ("VLAN_MEMBER", "Vlan100|Ethernet0")
    assert codec.decode("EMPTY|") == ("EMPTY", "")
    print("✓ decode successful")


def test_decode_without_separator():
    """Flat keys without a separator belong to no table."""
    print("Test 3: Decode Without Separator")
    print("-" * 40)

    codec = KeyCodec("|")
    try:
        codec.decode("CONFIG_DB_INITIALIZED")
        assert False, "decode should fail"
    except MalformedKeyError:
        pass

    # Also a ValueError for callers that do not know the hierarchy
    try:
        codec.decode("plain")
        assert False, "decode should fail"
    except ValueError:
        pass

    assert codec.try_decode("CONFIG_DB_INITIALIZED") is None
    assert codec.strip_table("CONFIG_DB_INITIALIZED") == ""
    assert codec.strip_table("PORT|Ethernet4") == "Ethernet4"
    print("✓ malformed keys rejected")


def test_table_pattern():
    """Table patterns are prefix wildcards."""
    print("Test 4: Table Pattern")
    print("-" * 40)

    assert KeyCodec("|").table_pattern("port") == "PORT|*"
    assert KeyCodec(":").table_pattern("PORT_TABLE") == "PORT_TABLE:*"
    print("✓ patterns built")


def test_composite_keys():
    """Composite keys join and split at a single point."""
    print("Test 5: Composite Keys")
    print("-" * 40)

    codec = KeyCodec("|")
    assert codec.join_key(("Vlan100", "Ethernet0")) == "Vlan100|Ethernet0"
    assert codec.join_key(["Vlan100", "Ethernet0"]) == "Vlan100|Ethernet0"
    assert codec.join_key("Ethernet0") == "Ethernet0"
    assert codec.encode("vlan_member", ("Vlan100", "Ethernet0")) == "VLAN_MEMBER|Vlan100|Ethernet0"

    assert codec.split_key("Vlan100|Ethernet0") == ("Vlan100", "Ethernet0")
    assert codec.deserialize_key("Vlan100|Ethernet0") == ("Vlan100", "Ethernet0")
    assert codec.deserialize_key("Ethernet0") == "Ethernet0"
    print("✓ composite keys joined and split")


def test_separator_in_component_is_ambiguous():
    """A separator inside a key component does not survive a round trip."""
    print("Test 6: Separator Ambiguity")
    print("-" * 40)

    codec = KeyCodec("|")

    # Key components containing the separator come back as extra components
    row = codec.join_key(("a|b", "c"))
    assert codec.split_key(row) == ("a", "b", "c")

    # A table name containing the separator is mis-split on decode
    flat = codec.encode("A|B", "key")
    assert flat == "A|B|key"
    assert codec.decode(flat) == ("A", "B|key")
    print("✓ ambiguity is visible and localized")


def test_invalid_arguments():
    """Bad separators, tables and keys are rejected."""
    print("Test 7: Invalid Arguments")
    print("-" * 40)

    for bad in ("", None):
        try:
            KeyCodec(bad)
            assert False, "empty separator accepted"
        except ValueError:
            pass

    codec = KeyCodec("|")
    try:
        codec.encode("", "k")
        assert False, "empty table accepted"
    except ValueError:
        pass
    try:
        codec.encode(None, "k")
        assert False, "non-string table accepted"
    except TypeError:
        pass
    try:
        codec.encode("PORT", 5)
        assert False, "integer key accepted"
    except TypeError:
        pass
    print("✓ invalid arguments rejected")


def main():
    """Run all tests."""
    print("\n" + "=" * 40)
    print("KeyCodec Test Suite")
    print("=" * 40 + "\n")

    try:
        test_encode_upper_cases_table()
        test_decode_splits_at_first_separator()
        test_decode_without_separator()
        test_table_pattern()
        test_composite_keys()
        test_separator_in_component_is_ambiguous()
        test_invalid_arguments()

        print("=" * 40)
        print("All tests passed! ✓")
        print("=" * 40)
    except AssertionError as e:
        print(f"\n✗ Test failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
