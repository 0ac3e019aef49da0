"""HTTP upload host for static hosting services with their own atomic swap"""

import logging
from pathlib import Path

import requests

from mdsite.errors import TransferError
from mdsite.hosts.host import Host


logger = logging.getLogger(__name__)

ACCEPTED_STATUSES = {"accepted", "success", "deployed"}


class HttpHost(Host):
    """POST the bundle to a deploy endpoint; the service swaps it in atomically.

    Success requires a 2xx response that either has an empty body or a JSON
    body whose `status` is one of ACCEPTED_STATUSES.
    """

    name = "http"

    def __init__(self, url: str, token: str = "", session: requests.Session = None, timeout: float = 120.0):
        self.url = url
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self, release_id: str, digest: str) -> dict[str, str]:
        headers = {
            "Content-Type": "application/gzip",
            "X-Release-Id": release_id,
            "X-Content-SHA256": digest,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def deploy(self, bundle: Path, release_id: str, digest: str) -> str:
        try:
            with bundle.open("rb") as f:
                resp = self.session.post(
                    self.url, data=f, headers=self._headers(release_id, digest), timeout=self.timeout,
                )
        except requests.RequestException as e:
            raise TransferError(f"Upload to {self.url} failed: {e}") from e

        if not resp.ok:
            raise TransferError(f"Upload to {self.url} rejected: HTTP {resp.status_code} {resp.text[:200]}")
        if not resp.content:
            return self.url

        try:
            body = resp.json()
        except ValueError as e:
            raise TransferError(f"Upload to {self.url} returned an unreadable confirmation") from e
        status = str(body.get("status", "")).lower() if isinstance(body, dict) else ""
        if status not in ACCEPTED_STATUSES:
            raise TransferError(f"Upload to {self.url} not accepted: status={status or 'missing'}")

        location = body.get("url") or self.url
        logger.info("Release %s accepted by %s", release_id, location)
        return location
