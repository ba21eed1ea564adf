import unittest

try:
    from totp_mfa.qr import render_png, render_svg
except ModuleNotFoundError:  # pragma: no cover
    render_png = None
    render_svg = None

URI = (
    "otpauth://totp/ACME:alice?secret=GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
    "&issuer=ACME&algorithm=SHA1&digits=6&period=30"
)


class TestQr(unittest.TestCase):
    def test_svg(self):
        if render_svg is None:
            self.skipTest("segno not installed")
        data = render_svg(URI)
        self.assertIn(b"<svg", data)

    def test_png(self):
        if render_png is None:
            self.skipTest("segno not installed")
        data = render_png(URI, scale=2)
        self.assertTrue(data.startswith(b"\x89PNG"))
