"""Shared utilities for container operations.

The Docker SDK is blocking; these helpers keep engine calls off the event
loop and hold the small pieces of container bookkeeping used by both the
lifecycle manager and the terminal stream.
"""

import asyncio
import re
import uuid
from functools import partial
from typing import Optional

import structlog
from docker.errors import DockerException
from docker.models.containers import Container
from requests.exceptions import RequestException

logger = structlog.get_logger(__name__)

# Exceptions a Docker SDK call can raise: API errors, plus transport
# failures that the SDK lets through from requests.
ENGINE_ERRORS = (DockerException, RequestException)

_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_.-]+")


async def run_in_executor(func, *args, **kwargs):
    """
    Run a blocking function in the default thread pool executor.

    Args:
        func: Blocking function to run
        *args: Positional arguments to pass to the function
        **kwargs: Keyword arguments to pass to the function

    Returns:
        Result of the function
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))


async def wait_for_container_ready(
    container: Container,
    max_wait: float = 2.0,
    interval: float = 0.05,
    stable_checks_required: int = 3,
) -> bool:
    """
    Wait for a container to reach a stable running state.

    Uses polling with stability checks to ensure the container
    is truly running before returning.

    Args:
        container: Docker container to wait for
        max_wait: Maximum time to wait in seconds
        interval: Polling interval in seconds
        stable_checks_required: Number of consecutive running checks required

    Returns:
        True if container is running, False otherwise
    """
    stable_checks = 0
    total_wait = 0.0

    while total_wait < max_wait:
        try:
            await run_in_executor(container.reload)
            if getattr(container, "status", "") == "running":
                stable_checks += 1
                if stable_checks >= stable_checks_required:
                    return True
            else:
                stable_checks = 0
        except Exception as e:
            logger.debug("Container reload failed while waiting", error=str(e))
            stable_checks = 0
        await asyncio.sleep(interval)
        total_wait += interval

    # Final check
    try:
        await run_in_executor(container.reload)
        return getattr(container, "status", "") == "running"
    except Exception:
        return False


def build_container_name(prefix: str, challenge_id: str) -> str:
    """Build a unique, engine-safe container name for a challenge.

    The random suffix keeps names distinct when the same challenge is
    spawned several times concurrently.
    """
    slug = _NAME_UNSAFE.sub("-", challenge_id).strip("-.")[:48] or "sandbox"
    return f"{prefix}-{slug}-{uuid.uuid4().hex[:12]}"


def get_container_ip(container: Container, fallback: str = "") -> str:
    """Read the container IP address from its inspect data.

    Looks at the legacy top-level address first, then at the first
    attached network that reports one.
    """
    network_settings = (getattr(container, "attrs", None) or {}).get(
        "NetworkSettings"
    ) or {}
    ip_address: Optional[str] = network_settings.get("IPAddress")
    if ip_address:
        return ip_address

    for network in (network_settings.get("Networks") or {}).values():
        if network and network.get("IPAddress"):
            return network["IPAddress"]

    return fallback
