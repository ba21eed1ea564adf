import os
import tempfile
import unittest
from unittest import mock

from totp_mfa.db import init_db
from totp_mfa.errors import InvalidConfigurationError
from totp_mfa.settings import TotpSettings, get_setting, load_totp_settings, set_setting


class TestSettings(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self._env = mock.patch.dict(os.environ, {"TOTP_MFA_DATA_DIR": self._tmp.name})
        self._env.start()
        init_db()

    def tearDown(self):
        self._env.stop()
        self._tmp.cleanup()

    def test_defaults(self):
        self.assertEqual(load_totp_settings(), TotpSettings())
        self.assertEqual(get_setting("bind_host"), "127.0.0.1")

    def test_stored_values(self):
        set_setting("digits", "8")
        set_setting("algorithm", "sha256")
        set_setting("issuer", "ACME")
        s = load_totp_settings()
        self.assertEqual((s.digits, s.algorithm, s.issuer), (8, "SHA256", "ACME"))

    def test_env_overrides_table(self):
        set_setting("window", "2")
        with mock.patch.dict(os.environ, {"TOTP_MFA_WINDOW": "0"}):
            self.assertEqual(load_totp_settings().window, 0)
        self.assertEqual(load_totp_settings().window, 2)

    def test_unparsable_int_falls_back(self):
        set_setting("step_seconds", "thirty")
        self.assertEqual(load_totp_settings().step_seconds, 30)

    def test_out_of_range_rejected(self):
        set_setting("digits", "9")
        with self.assertRaises(InvalidConfigurationError):
            load_totp_settings()

    def test_validate(self):
        bad = [
            TotpSettings(digits=5),
            TotpSettings(algorithm="MD5"),
            TotpSettings(step_seconds=0),
            TotpSettings(window=-1),
            TotpSettings(secret_bytes=8),
        ]
        for s in bad:
            with self.assertRaises(InvalidConfigurationError):
                s.validate()
