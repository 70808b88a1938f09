"""Shared service instances and request dependencies."""
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..configurations.config import Config
from ..configurations.sites import SiteCatalog, load_site_catalog
from ..services.boundary_service import BoundaryService
from ..services.dashboard_session import DashboardSession
from ..services.record_store import RecordStoreClient

# Initialize services
site_catalog = load_site_catalog()
record_store = RecordStoreClient()
boundary_service = BoundaryService()
dashboard_session = DashboardSession(record_store, site_catalog)

# Security scheme
security = HTTPBearer()


def verify_api_key(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Verify API key from Authorization header."""
    if credentials.credentials != Config.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return credentials.credentials


def get_catalog() -> SiteCatalog:
    return site_catalog


def get_record_store() -> RecordStoreClient:
    return record_store


def get_boundary() -> Optional[Dict[str, Any]]:
    return boundary_service.get_boundary()


def get_session() -> DashboardSession:
    return dashboard_session


def start_session(boundary: Optional[Dict[str, Any]] = None):
    """Start the shared dashboard session on the running event loop."""
    dashboard_session.view.boundary = boundary
    dashboard_session.start()


def close_session():
    dashboard_session.shutdown()
