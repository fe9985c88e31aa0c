import asyncio
import functools
import logging
import socket
import time
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.security import verify_api_key
from src.core.config import load_config
from src.dialer.tcp_dial import RECV_CHUNK, Dialer, format_peer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["Dial"],
    dependencies=[Depends(verify_api_key)]
)

class DialRequest(BaseModel):
    host: str
    port: str
    payload: Optional[str] = None

class DialResponse(BaseModel):
    status: str
    host: str
    port: str
    peer: Optional[str] = None
    family: Optional[str] = None
    error_code: Optional[str] = None
    errno: Optional[int] = None
    message: Optional[str] = None
    response: Optional[str] = None
    execution_time: Optional[str] = None

@functools.lru_cache(maxsize=1)
def get_dialer() -> Dialer:
    """Config is read once per process; the Dialer itself is stateless."""
    return Dialer.from_config(load_config())

def run_dial(dialer: Dialer, request: DialRequest) -> DialResponse:
    """Dials, optionally exchanges one payload, and always closes the endpoint."""
    start_time = time.perf_counter()
    result = dialer.try_dial(request.host, request.port)
    response = DialResponse(status="error", host=request.host, port=request.port)

    if not result.ok:
        response.error_code = result.error.value
        response.errno = result.errno
        response.message = result.message
    else:
        with result.endpoint as endpoint:
            response.status = "success"
            response.peer = format_peer(endpoint.getpeername())
            response.family = "inet6" if endpoint.family == socket.AF_INET6 else "inet"
            if request.payload is not None:
                try:
                    endpoint.sendall(request.payload.encode())
                    response.response = endpoint.recv(RECV_CHUNK).decode('utf-8', 'ignore')
                except OSError as e:
                    logger.error(f"Exchange with {response.peer} failed: {e}")
                    response.status = "error"
                    response.errno = e.errno
                    response.message = f"Connected, but the exchange failed: {e}"

    response.execution_time = f"{time.perf_counter() - start_time:.4f} seconds"
    return response

@router.post("/dial", response_model=DialResponse, summary="Open a TCP connection to a host and port")
async def dial_endpoint(request: DialRequest, dialer: Dialer = Depends(get_dialer)):
    """
    Resolves the host and port, connects to the first candidate address that
    accepts, and reports the outcome. The connection is closed before returning.
    """
    return await asyncio.to_thread(run_dial, dialer, request)
