"""HTTP dispatcher that invokes a worker group endpoint."""

import logging
from typing import Any, Dict, Optional

import httpx

from app.config import Settings
from app.errors import WorkerDispatchError

logger = logging.getLogger(__name__)

WORKER_PATH = "/pipeline-worker"


class WorkerDispatcher:
    """Posts {worker_group, batch_size} to the worker endpoint. No retries."""

    def __init__(
        self,
        base_url: str,
        service_key: str = "",
        timeout: float = 120.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = f"{base_url.rstrip('/')}{WORKER_PATH}"
        self.service_key = service_key
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[httpx.Client] = None) -> "WorkerDispatcher":
        return cls(
            base_url=settings.WORKER_BASE_URL,
            service_key=settings.SERVICE_ROLE_KEY,
            timeout=settings.WORKER_TIMEOUT,
            client=client,
        )

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.service_key:
            headers["Authorization"] = f"Bearer {self.service_key}"
            headers["apikey"] = self.service_key
        return headers

    def dispatch(self, worker_group: str, batch_size: int) -> Dict[str, Any]:
        """
        Invoke a worker group once.

        Args:
            worker_group: Worker group name
            batch_size: Maximum number of jobs the worker should claim

        Returns:
            The worker's decoded JSON response

        Raises:
            WorkerDispatchError: On transport failure, non-2xx status or a non-JSON body
        """
        payload = {"worker_group": worker_group, "batch_size": batch_size}
        logger.info(f"Dispatching {worker_group} (batch_size={batch_size})")

        try:
            if self._client is not None:
                response = self._client.post(self.url, headers=self._build_headers(), json=payload)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.url, headers=self._build_headers(), json=payload)
        except httpx.HTTPError as e:
            raise WorkerDispatchError(f"Worker {worker_group} unreachable: {e}") from e

        if response.is_error:
            raise WorkerDispatchError(
                f"Worker {worker_group} returned {response.status_code}",
                status=response.status_code,
                body=response.text[:500],
            )

        try:
            return response.json()
        except ValueError as e:
            raise WorkerDispatchError(f"Worker {worker_group} returned invalid JSON") from e
