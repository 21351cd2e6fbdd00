"""Model provider reachability check.

Purely informational: the gateway starts whether or not the provider
answers.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Optional, Union

import certifi
import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import BaseStep
from ..data.models import StepResult, StepStatus

DEFAULT_CA_BUNDLE = certifi.where()


class ReadinessCheck(BaseStep):
    """Probes the model provider endpoint with a bounded GET."""

    def __init__(
        self,
        url: str,
        timeout: int = 10,
        verify_tls: bool = True,
        ca_bundle: Optional[str] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._verify = self._determine_verify(verify_tls, ca_bundle)
        self._session: Optional[requests.Session] = None

        if self._verify is False:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @property
    def name(self) -> str:
        return "readiness"

    @property
    def display_name(self) -> str:
        return "Model Provider Readiness"

    def _determine_verify(self, verify_tls: bool, ca_bundle: Optional[str]) -> Union[bool, str]:
        """Determine SSL verification setting."""
        if not verify_tls:
            return False
        if ca_bundle:
            return ca_bundle
        return DEFAULT_CA_BUNDLE

    def _get_session(self) -> requests.Session:
        """Get or create a session.

        Retries are disabled so the probe stays within its timeout.
        """
        if self._session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
            session.mount("https://", adapter)
            session.mount("http://", adapter)
            session.verify = self._verify
            session.headers.update({"User-Agent": "gateway-boot/1.0"})
            self._session = session
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def _fetch_status(self) -> int:
        """GET the endpoint and drain the body. Returns the HTTP status."""
        session = self._get_session()
        resp = session.get(self.url, timeout=self.timeout, stream=True)
        try:
            for _ in resp.iter_content(chunk_size=1024):
                pass
            return resp.status_code
        finally:
            resp.close()

    def probe(self) -> bool:
        """GET the endpoint within the timeout. True for any status below 400.

        The socket timeout only bounds each connect or read, so the request
        runs on a worker thread and is abandoned once the total deadline
        passes.
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="readiness")
        future = executor.submit(self._fetch_status)
        try:
            status = future.result(timeout=self.timeout)
        except FutureTimeout:
            self.log(f"Probe exceeded {self.timeout}s")
            return False
        except requests.exceptions.RequestException as e:
            self.log(f"Probe error: {e}")
            return False
        finally:
            executor.shutdown(wait=False)

        if status >= 400:
            self.log(f"Probe returned HTTP {status}")
            return False
        return True

    def run(self) -> StepResult:
        self.log(f"Checking model endpoint {self.url}...")
        try:
            reachable = self.probe()
        finally:
            self.close()

        if reachable:
            self.log("Model provider: reachable")
            return StepResult(self.name, StepStatus.OK, "reachable", details={"reachable": True})

        self.log("WARNING: Model provider endpoint not reachable")
        return StepResult(self.name, StepStatus.FAILED, "unreachable", details={"reachable": False})
