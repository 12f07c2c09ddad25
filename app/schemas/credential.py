# File: app/schemas/credential.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class QRCredential(BaseModel):
    qr_payload: str
    signature: str
    issued_at: datetime
    expires_at: datetime
    svg: Optional[str] = None
    png_data_uri: Optional[str] = None


class ScanRequest(BaseModel):
    qr_payload: str = Field(..., min_length=1, max_length=2048)
    signature: str = Field(..., min_length=1, max_length=128)
