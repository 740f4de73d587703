"""HTTP submission of packed payloads to the series endpoint."""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import requests

from datadog_exporter.errors import TransportError

logger = logging.getLogger(__name__)


class Transport:
    """Posts payloads concurrently using an injected ``requests`` session.

    The one session is shared by every worker thread of a send. That is
    intentional: plain POSTs share only the connection pool, which urllib3
    guards with its own lock.
    """

    def __init__(
        self,
        session: requests.Session,
        api_host: str,
        api_key: str,
        timeout_s: float = 10.0,
        max_workers: int = 8,
    ):
        self.session = session
        self.url = f"{api_host.rstrip('/')}/series"
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.max_workers = max_workers

    def _headers(self, compress: bool) -> dict:
        headers = {
            'Content-Type': 'application/json',
            'DD-API-KEY': self.api_key,
        }
        if compress:
            headers['Content-Encoding'] = 'gzip'
        return headers

    def _post(self, payload: bytes, compress: bool) -> Tuple[int, str]:
        """Send one payload, raising TransportError on any failure."""
        try:
            response = self.session.post(
                self.url,
                data=payload,
                headers=self._headers(compress),
                timeout=self.timeout_s,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Series submission failed: {e}") from e

        # Only 2xx counts as delivered; redirects that end on 3xx do not
        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"Series submission rejected: {response.status_code} for url: {self.url}",
                status_code=response.status_code,
            )

        return response.status_code, response.text

    def send(self, payloads: Sequence[bytes], compress: bool):
        """
        Submit every payload in parallel and wait for all of them.

        Requests are never cancelled once dispatched. After all of them have
        finished, the first failure in payload order is raised.

        Args:
            payloads: Request bodies from the packer
            compress: Bodies are gzip encoded

        Raises:
            TransportError: At least one request failed
        """
        if not payloads:
            return

        workers = min(self.max_workers, len(payloads))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dd-send") as pool:
            futures = [pool.submit(self._post, payload, compress) for payload in payloads]
        # Leaving the pool joins every request

        errors: List[TransportError] = []
        for future in futures:
            error: Optional[BaseException] = future.exception()
            if error is not None:
                errors.append(error)
                continue
            status, message = future.result()
            logger.debug(f"Response from metrics API: status={status} message={message}")

        if errors:
            if len(errors) > 1:
                logger.warning(f"{len(errors)} of {len(payloads)} payloads failed to send")
            raise errors[0]
