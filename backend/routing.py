"""Routing policies: which backend is tried first.

A policy takes the local and remote capabilities for a request and returns
them in attempt order. The orchestrator skips unavailable candidates, so the
policy only expresses preference. Selected by the ROUTING_POLICY env var;
default is "remote_first".
"""

import os
from typing import Callable, Dict, Tuple

from models import BackendCapability

Policy = Callable[[BackendCapability, BackendCapability], Tuple[BackendCapability, BackendCapability]]


def remote_first(local: BackendCapability, remote: BackendCapability):
    """Cloud when online and credentialed, local model as the fallback."""
    return remote, local


def local_first(local: BackendCapability, remote: BackendCapability):
    """On-device model when running, cloud as the fallback."""
    return local, remote


POLICIES: Dict[str, Policy] = {
    "remote_first": remote_first,
    "local_first": local_first,
}


def get_policy_name() -> str:
    """Return the configured routing policy name."""
    return os.environ.get("ROUTING_POLICY", "remote_first").lower()


def get_policy(name: str | None = None) -> Policy:
    name = name or get_policy_name()
    try:
        return POLICIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown ROUTING_POLICY {name!r}; expected one of {', '.join(sorted(POLICIES))}"
        ) from None
