# File: app/api/v1/endpoints/credentials.py
import json
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from app.api import deps
from app.core.credentials import issue_credential
from app.core.security import device_fingerprint, utcnow
from app.core.session_store import SessionRecord
from app.schemas.common import success_response
from app.schemas.credential import QRCredential
from app.utils.qr import render_qr_png_data_uri, render_qr_svg

router = APIRouter()


@router.get("/qr")
def get_qr_credential(
    request: Request,
    render: Optional[str] = Query(None, pattern="^(svg|png)$"),
    session: SessionRecord = Depends(deps.get_current_session),
):
    """Issue a short-lived signed QR credential for the caller"""
    fingerprint = device_fingerprint(request.headers.get("user-agent"), deps.get_client_ip(request))
    issued = issue_credential(session, fingerprint, utcnow())
    credential = QRCredential(**issued)

    if render:
        # The scanner app reads both parts back out of the code
        content = json.dumps(
            {"qr_payload": issued["qr_payload"], "signature": issued["signature"]},
            separators=(",", ":"),
        )
        if render == "svg":
            credential.svg = render_qr_svg(content)
        else:
            credential.png_data_uri = render_qr_png_data_uri(content)

    return success_response(data=credential, message="QR credential issued")
