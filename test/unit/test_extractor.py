"""Tests for intelbridge.extractor."""
from __future__ import annotations

import unittest

from intelbridge.entities import (
    CryptoEntity,
    EmailEntity,
    EntityKind,
    PhoneEntity,
    UrlEntity,
)
from intelbridge.extractor import EntityExtractor, extract_entities
from intelbridge.patterns import DEFAULT_LIBRARY


class TestEntityExtractor(unittest.TestCase):

    def setUp(self):
        self.extractor = EntityExtractor()

    def test_phone_and_email(self):
        found = self.extractor.extract("Call +1 (555) 123-4567 or email a@b.com")
        self.assertEqual(found, [
            PhoneEntity("+1 (555) 123-4567", 5),
            EmailEntity("a@b.com", 32),
        ])

    def test_single_evm_address(self):
        addr = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"
        found = self.extractor.extract(addr)
        self.assertEqual(len(found), 1)
        self.assertIsInstance(found[0], CryptoEntity)
        self.assertTrue(found[0].is_evm)

    def test_sequential_digit_evm_address(self):
        addr = "0x1234567890123456789012345678901234567890"
        found = self.extractor.extract(addr)
        self.assertEqual(found, [CryptoEntity(addr, 0)])
        self.assertEqual(found[0].kind, EntityKind.CRYPTO)

    def test_no_entities(self):
        self.assertEqual(self.extractor.extract("see you tomorrow"), [])

    def test_empty_and_blank(self):
        self.assertEqual(self.extractor.extract(""), [])
        self.assertEqual(self.extractor.extract("   \n\t"), [])

    def test_non_string(self):
        self.assertEqual(self.extractor.extract(None), [])
        self.assertEqual(self.extractor.extract(42), [])

    def test_kind_order_then_match_order(self):
        text = "site b.example.com, x@y.io, +44 20 7946 0958, c.example.net, z@w.io"
        kinds = [e.kind for e in self.extractor.extract(text)]
        self.assertEqual(kinds, [
            EntityKind.PHONE,
            EntityKind.EMAIL, EntityKind.EMAIL,
            EntityKind.URL, EntityKind.URL,
        ])
        urls = [e.value for e in self.extractor.extract(text) if isinstance(e, UrlEntity)]
        self.assertEqual(urls, ["b.example.com", "c.example.net"])

    def test_repeated_value_reported_each_time(self):
        found = self.extractor.extract("a@b.com and again a@b.com")
        self.assertEqual([e.offset for e in found], [0, 18])

    def test_restricted_library(self):
        extractor = EntityExtractor(DEFAULT_LIBRARY.only(EntityKind.EMAIL))
        found = extractor.extract("Call +1 (555) 123-4567 or email a@b.com")
        self.assertEqual([e.kind for e in found], [EntityKind.EMAIL])

    def test_long_text_not_truncated(self):
        text = ("lorem ipsum " * 2000) + "a@b.com"
        found = self.extractor.extract(text)
        self.assertEqual(found[-1].value, "a@b.com")

    def test_module_helper(self):
        self.assertEqual(extract_entities("mail a@b.com"), [EmailEntity("a@b.com", 5)])


class TestEntities(unittest.TestCase):

    def test_phone_digits(self):
        self.assertEqual(PhoneEntity("+1 (555) 123-4567", 0).digits, "15551234567")

    def test_to_dict(self):
        self.assertEqual(EmailEntity("a@b.com", 3).to_dict(),
                         {"kind": "email", "value": "a@b.com", "offset": 3})

    def test_labels(self):
        self.assertEqual(EntityKind.PHONE.label, "Phone Number")
        self.assertEqual(EntityKind.URL.label, "URL / Domain")


if __name__ == "__main__":
    unittest.main()
