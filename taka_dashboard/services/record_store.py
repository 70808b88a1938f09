"""Client for the collection record store RPC surface."""
import json
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from ..configurations.config import Config
from ..models.collection import CollectionInput, CollectionRecord, FilterCriteria, MapMarker
from ..models.errors import CollectionValidationError, RecordStoreError
from .aggregation import markers_from_dashboard


class RecordStoreClient:
    """Calls the collections.* procedures of the record store.

    Network, timeout and protocol failures raise RecordStoreError with a
    message fit for an error banner; rejected input raises
    CollectionValidationError. Nothing is retried.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or Config.RECORD_STORE_BASE_URL).rstrip("/")
        self.token = token if token is not None else Config.RECORD_STORE_TOKEN
        self.timeout = timeout or Config.REQUEST_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        logger.info(f"RecordStoreClient initialized with base URL: {self.base_url}")

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            'accept': 'application/json',
            'Content-Type': 'application/json'
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token.strip()}'
        return headers

    def _url(self, procedure: str) -> str:
        return f"{self.base_url}/api/trpc/{procedure}"

    def _call(self, method: str, procedure: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(procedure)
        try:
            if method == "GET":
                params = {'input': json.dumps(payload)} if payload is not None else None
                response = self.session.get(url, params=params, headers=self._get_headers(),
                                            timeout=self.timeout)
            else:
                response = self.session.post(url, json=payload, headers=self._get_headers(),
                                             timeout=self.timeout)
        except requests.Timeout:
            logger.error(f"Record store timed out calling {procedure}")
            raise RecordStoreError("The record store did not respond in time. Please try again.")
        except requests.RequestException as e:
            logger.error(f"Record store unreachable calling {procedure}: {e}")
            raise RecordStoreError("Could not reach the record store. Check your connection.")

        try:
            body = response.json()
        except ValueError:
            body = None

        result = body.get('result') if isinstance(body, dict) else None
        if response.status_code in [200, 201] and isinstance(result, dict):
            return result.get('data')

        error = body.get('error') if isinstance(body, dict) else None
        if not isinstance(error, dict):
            error = {}
        details = error.get('data')
        message = str(error.get('message') or f"Record store returned status {response.status_code}")
        code = details.get('code') if isinstance(details, dict) else None

        if response.status_code == 400 or code == 'BAD_REQUEST':
            logger.warning(f"Record store rejected {procedure}: {message}")
            raise CollectionValidationError({"request": message})

        logger.error(f"Record store call {procedure} failed: {response.status_code} - {response.text[:200]}")
        raise RecordStoreError(message, status_code=response.status_code)

    def submit(self, collection: CollectionInput) -> CollectionRecord:
        """Create a collection record; returns it with the store-assigned id."""
        data = self._call("POST", "collections.submit", collection.to_payload())
        if not isinstance(data, dict):
            raise RecordStoreError("Unexpected response from the record store")
        record = CollectionRecord.from_dict({**collection.to_payload(), **data})
        logger.success(f"Submitted collection {record.id} for {record.site_name}")
        return record

    def filtered(self, criteria: FilterCriteria) -> List[CollectionRecord]:
        data = self._call("GET", "collections.filtered", criteria.to_params())
        if not isinstance(data, list):
            raise RecordStoreError("Unexpected response from the record store")
        records = [CollectionRecord.from_dict(item) for item in data]
        logger.info(f"Fetched {len(records)} collection records")
        return records

    def dashboard_data(self) -> List[MapMarker]:
        data = self._call("GET", "collections.dashboardData")
        if not isinstance(data, dict):
            raise RecordStoreError("Unexpected response from the record store")
        return markers_from_dashboard(data.get('markers') or [])
