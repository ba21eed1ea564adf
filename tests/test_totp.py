import unittest

from totp_mfa.clock import CounterClock
from totp_mfa.engine import code_at
from totp_mfa.secret_generator import decode_secret, generate_base32_secret
from totp_mfa.settings import TotpSettings
from totp_mfa.verifier import TotpVerifier


class TestTotp(unittest.TestCase):
    def test_generate_secret(self):
        s = generate_base32_secret()
        self.assertTrue(isinstance(s, str))
        self.assertGreaterEqual(len(s), 32)

    def test_totp_verify_now(self):
        secret = decode_secret(generate_base32_secret())
        verifier = TotpVerifier(TotpSettings())
        code = code_at(secret=secret, when=verifier.clock.now())
        self.assertTrue(verifier.verify(secret, code))

    def test_totp_verify_rejects_wrong(self):
        secret = decode_secret(generate_base32_secret())
        clock = CounterClock(lambda: 1700000000)
        verifier = TotpVerifier(TotpSettings(), clock)
        code = code_at(secret=secret, when=clock.now())
        wrong = ("1" if code[0] != "1" else "2") + code[1:]
        self.assertFalse(verifier.verify(secret, wrong))
