"""Per-request liveness checks for the local model service and the network."""

import asyncio
import logging
import os
import socket

import httpx

from models import Reachability

logger = logging.getLogger(__name__)

CONNECTIVITY_HOST = os.environ.get("CONNECTIVITY_HOST", "google.com")
PROBE_TIMEOUT = float(os.environ.get("PROBE_TIMEOUT", "1.0"))

# getaddrinfo codes meaning "the name could not be resolved"; anything else
# still counts as online.
_UNRESOLVED = {
    code
    for code in (
        getattr(socket, "EAI_NONAME", None),
        getattr(socket, "EAI_NODATA", None),
    )
    if code is not None
}


class ReachabilityProbe:
    """Answers two questions: is the local backend up, is the network up."""

    def __init__(
        self,
        local_url: str,
        dns_host: str = CONNECTIVITY_HOST,
        timeout: float = PROBE_TIMEOUT,
    ):
        self.local_url = local_url
        self.dns_host = dns_host
        self.timeout = timeout

    async def probe_local(self) -> bool:
        """GET the local service base URL. Never raises."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(self.local_url)
                resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info("Local model service not reachable at %s (%s)", self.local_url, e)
            return False
        return True

    async def probe_remote(self) -> bool:
        """DNS-resolve a well-known host. Only a resolution failure means offline."""
        loop = asyncio.get_running_loop()
        try:
            await loop.getaddrinfo(self.dns_host, None)
        except socket.gaierror as e:
            if e.errno in _UNRESOLVED:
                logger.info("No internet connection (cannot resolve %s)", self.dns_host)
                return False
            logger.debug("Non-fatal DNS error for %s: %s", self.dns_host, e)
        except OSError as e:
            logger.debug("Non-fatal network error resolving %s: %s", self.dns_host, e)
        return True

    async def check(self) -> Reachability:
        """Run both probes concurrently and wait for both."""
        local, network = await asyncio.gather(self.probe_local(), self.probe_remote())
        logger.info("Reachability: local=%s network=%s", local, network)
        return Reachability(local=local, network=network)
