from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from .errors import (
    InvalidConfigurationError,
    InvalidLabelError,
    InvalidSecretError,
    MalformedInputError,
    SecretNotFoundError,
)
from .qr import render_svg
from .service import MfaService
from .settings import load_totp_settings


def _clean_code(code: str) -> str:
    return (code or "").strip().replace(" ", "")


def _user(user_id: str) -> str:
    u = (user_id or "").strip()
    if not u:
        raise HTTPException(status_code=400, detail="user_id required")
    return u


def create_app(service: Optional[MfaService] = None) -> FastAPI:
    """JSON/form adapter in front of MfaService.

    Meant to be reached only by the application's own web tier, which is
    responsible for authenticating the caller and rate limiting attempts.
    """
    svc = service or MfaService(settings=load_totp_settings())
    app = FastAPI(title="TOTP_MFA")

    @app.exception_handler(InvalidSecretError)
    @app.exception_handler(InvalidConfigurationError)
    async def _unusable_secret(request: Request, exc: Exception):
        # A stored row that no longer decodes or carries bad parameters.
        return JSONResponse(
            content={"detail": "stored totp secret is unusable; enroll again"},
            status_code=409,
        )

    @app.post("/enroll")
    async def enroll(user_id: str = Form(""), account: str = Form("")):
        u = _user(user_id)
        try:
            record = svc.begin_enrollment(u, account)
        except InvalidLabelError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"user_id": u, "otpauth_uri": record.uri()}

    @app.get("/enroll/{user_id}/qr")
    async def enroll_qr(user_id: str, account: str = ""):
        u = _user(user_id)
        try:
            record = svc.provisioning_record(u, account or u)
        except SecretNotFoundError:
            raise HTTPException(status_code=404, detail="no totp secret")
        except InvalidLabelError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return Response(content=render_svg(record.uri()), media_type="image/svg+xml")

    @app.post("/enroll/confirm")
    async def enroll_confirm(user_id: str = Form(""), code: str = Form("")):
        u = _user(user_id)
        try:
            result = svc.confirm_enrollment(u, _clean_code(code))
        except SecretNotFoundError:
            raise HTTPException(status_code=404, detail="no totp secret")
        except MalformedInputError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not result:
            return JSONResponse(content={"ok": False}, status_code=401)
        return {"ok": True, "counter": result.matched_counter}

    @app.post("/verify")
    async def verify_code(user_id: str = Form(""), code: str = Form("")):
        u = _user(user_id)
        try:
            result = svc.verify(u, _clean_code(code))
        except SecretNotFoundError:
            raise HTTPException(status_code=404, detail="no totp secret")
        except MalformedInputError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not result:
            return JSONResponse(content={"ok": False}, status_code=401)
        return {"ok": True, "counter": result.matched_counter}

    @app.get("/events/{user_id}")
    async def events(user_id: str, limit: int = 20):
        u = _user(user_id)
        n = min(max(limit, 0), 200)
        return {"user_id": u, "events": [e.as_dict() for e in svc.recent_events(u, n)]}

    @app.post("/disable")
    async def disable(user_id: str = Form("")):
        u = _user(user_id)
        if not svc.disable(u):
            raise HTTPException(status_code=404, detail="no totp secret")
        return {"ok": True}

    return app
