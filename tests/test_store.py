import os
import tempfile
import unittest
from unittest import mock

from totp_mfa.db import get_conn, init_db
from totp_mfa.errors import MalformedInputError
from totp_mfa.secret_generator import generate_secret
from totp_mfa.store import SqliteSecretStore


class TestSqliteSecretStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self._env = mock.patch.dict(os.environ, {"TOTP_MFA_DATA_DIR": self._tmp.name})
        self._env.start()
        init_db()
        self.store = SqliteSecretStore()

    def tearDown(self):
        self._env.stop()
        self._tmp.cleanup()

    def test_load_missing(self):
        self.assertIsNone(self.store.load("nobody"))

    def test_save_and_load(self):
        secret = generate_secret(20)
        self.store.save("alice", secret, algorithm="sha256", digits=8, period=60)
        stored = self.store.load("alice")
        self.assertEqual(stored.secret, secret)
        self.assertEqual((stored.algorithm, stored.digits, stored.period), ("SHA256", 8, 60))
        self.assertFalse(stored.enabled)
        self.assertEqual(stored.last_counter, -1)
        self.assertNotIn(repr(secret), repr(stored))

    def test_secret_stored_as_base32(self):
        self.store.save("alice", b"12345678901234567890")
        with get_conn() as conn:
            row = conn.execute("select secret_b32 from totp_secrets where user_id = ?", ("alice",)).fetchone()
        self.assertEqual(row["secret_b32"], "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ")

    def test_one_secret_per_user(self):
        a = generate_secret(20)
        b = generate_secret(20)
        self.store.save("alice", a)
        self.store.save("bob", b)
        self.assertEqual(self.store.load("alice").secret, a)
        self.assertEqual(self.store.load("bob").secret, b)

    def test_resave_resets_state(self):
        self.store.save("alice", generate_secret(20))
        self.store.enable("alice")
        self.store.record_accepted_counter("alice", 100)
        fresh = generate_secret(20)
        self.store.save("alice", fresh)
        stored = self.store.load("alice")
        self.assertEqual(stored.secret, fresh)
        self.assertFalse(stored.enabled)
        self.assertEqual(stored.last_counter, -1)

    def test_record_accepted_counter_only_advances(self):
        self.store.save("alice", generate_secret(20))
        self.assertTrue(self.store.record_accepted_counter("alice", 10))
        self.assertFalse(self.store.record_accepted_counter("alice", 10))
        self.assertFalse(self.store.record_accepted_counter("alice", 9))
        self.assertTrue(self.store.record_accepted_counter("alice", 11))
        self.assertEqual(self.store.load("alice").last_counter, 11)
        self.assertFalse(self.store.record_accepted_counter("nobody", 1))

    def test_enable_and_delete(self):
        self.assertFalse(self.store.enable("alice"))
        self.store.save("alice", generate_secret(20))
        self.assertTrue(self.store.enable("alice"))
        self.assertTrue(self.store.load("alice").enabled)
        self.assertTrue(self.store.delete("alice"))
        self.assertIsNone(self.store.load("alice"))
        self.assertFalse(self.store.delete("alice"))

    def test_blank_user_id(self):
        with self.assertRaises(MalformedInputError):
            self.store.load("  ")
