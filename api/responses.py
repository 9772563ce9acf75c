"""
api/responses.py -- Turn service Results into HTTP responses.

Failure is data: a fail envelope is still HTTP 200 unless the caller passes
a status code (sign-in rejection and missing bearer token use 401).
"""

from fastapi.responses import JSONResponse

from api.models import Envelope
from core.results import Result


def envelope_response(result: Result, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=Envelope.from_result(result).to_json())
