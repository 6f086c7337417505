"""
Reconnaissance API Routes
"""

import asyncio
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from netsec_scanner.api.security import verify_api_key
from netsec_scanner.core.config import ScannerSettings, load_profiles
from netsec_scanner.core.errors import ResolutionError, ValidationError
from netsec_scanner.reconnaissance.scan_coordinator import ScanCoordinator
from netsec_scanner.reconnaissance.session_factory import create_session

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/recon",
    tags=["reconnaissance"],
    dependencies=[Depends(verify_api_key)],
)


class ScanRequest(BaseModel):
    target: str
    ports: Optional[str] = None
    threads: Optional[int] = None
    timeout: Optional[float] = None
    profile: Optional[str] = None


class PortDetail(BaseModel):
    service: str
    vulnerability: str


class ScanResultResponse(BaseModel):
    target: str
    start_time: str
    end_time: str
    duration: float
    open_ports: int
    details: Dict[str, PortDetail]


class ProfileResponse(BaseModel):
    name: str
    ports: str
    threads: int
    timeout: float


@router.get("/health")
async def recon_health():
    return {"status": "healthy", "module": "reconnaissance"}


@router.get("/profiles", response_model=List[ProfileResponse], summary="List available scan profiles")
async def list_profiles():
    try:
        settings = ScannerSettings.from_env()
        profiles = load_profiles(settings.profiles_file)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return [ProfileResponse(**profile.to_dict()) for profile in profiles.values()]


@router.post("/scan", response_model=ScanResultResponse, summary="Run a TCP connect scan against one host")
async def run_port_scan(request: ScanRequest):
    """
    Scans one host and returns the result in the shape the dashboard renders.
    The scan runs in a worker thread so the event loop stays responsive.
    """
    try:
        settings = ScannerSettings.from_env()
        session = create_session(
            settings,
            request.target,
            ports=request.ports,
            threads=request.threads,
            timeout=request.timeout,
            profile=request.profile,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        report = await asyncio.to_thread(ScanCoordinator().run, session)
    except ResolutionError as e:
        logger.error(str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ScanResultResponse(**report.to_dashboard_dict())
