from datetime import datetime,timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional, Union
import hmac
import uuid
from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

def now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """sqlite hands back naive datetimes , treat them as utc"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def round_half_up(value: Union[int, float, Decimal]) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_uuid(public_id: str) -> str:
    try:
        uuid.UUID(public_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid ID")
    return public_id


def build_success(data: Any,
                  trace_id: Optional[str] = None,request_id: Optional[str] = None,) -> Dict[str, Any]:
    return {
        "status": "ok",
        "data": data,
        "error": None,
        "trace_id": trace_id,
        "request_id": request_id,
    }

def build_error(code: Union[str, int] = "UNKNOWN_ERROR",
                details: Optional[Any] = None,
                request_id: Optional[str] = None,
                trace_id: Optional[str] = None) -> Dict[str, Any]:
   
    return {
        "status": "error",
        "data": None,
        "error": {"code": code, "details": details},
        "trace_id": trace_id,
        "request_id": request_id,
    }

def json_ok(content: Dict[str, Any], status_code: int = 200,headers = None) -> JSONResponse:
    return JSONResponse(content, status_code=status_code,headers=headers)

def json_error(content: Dict[str, Any], status_code: int = 500, headers=None) -> JSONResponse:
    return JSONResponse(content, status_code=status_code, headers=headers)

def success_response(data: Any, status_code: int = 200,headers: Optional[Dict[str, Any]] = None , 
                     trace_id: Optional[str] = None , request_id: Optional[str] = None) -> JSONResponse:
    content = jsonable_encoder(build_success(data, request_id=request_id, trace_id=trace_id))
    return json_ok(content, status_code=status_code,headers=headers)

def to_uuid(public_id: Union[str, uuid.UUID]) -> uuid.UUID:
    return public_id if isinstance(public_id, uuid.UUID) else uuid.UUID(str(public_id))

def digests_match(expected: str, supplied: Optional[str]) -> bool:
    """Constant time compare of hex digests , client text outside ascii never matches."""
    if not supplied or not supplied.isascii():
        return False
    return hmac.compare_digest(expected.encode("ascii"), supplied.encode("ascii"))
