from __future__ import annotations

import io

import segno


def _make(uri: str) -> "segno.QRCode":
    return segno.make_qr(uri, error="m")


def render_svg(uri: str, *, scale: int = 6, border: int = 2) -> bytes:
    buf = io.BytesIO()
    _make(uri).save(buf, kind="svg", scale=scale, border=border)
    return buf.getvalue()


def render_png(uri: str, *, scale: int = 6, border: int = 2) -> bytes:
    buf = io.BytesIO()
    _make(uri).save(buf, kind="png", scale=scale, border=border)
    return buf.getvalue()
