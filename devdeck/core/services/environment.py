"""
Environment viewer — the backend's environment variables and PATH.

Read live on every call; nothing here is cached or written back.
"""

from __future__ import annotations

import logging
from typing import Iterable

from devdeck.core.models.entities import EnvVariable
from devdeck.gateway.base import GET_ENV_VARIABLES, GET_PATH_ENTRIES, GatewayError, OperationGateway

logger = logging.getLogger(__name__)


async def env_variables(gateway: OperationGateway) -> list[EnvVariable]:
    """All environment variables, sorted case-insensitively by name.

    Raises:
        GatewayError: The backend call fails or the reply is not a
            list of variables.
    """
    raw = await gateway.invoke(GET_ENV_VARIABLES)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise GatewayError(f"Environment listing returned {type(raw).__name__}, not a list", GET_ENV_VARIABLES)
    try:
        variables = [EnvVariable.model_validate(item) for item in raw]
    except ValueError as e:
        raise GatewayError(f"Malformed environment entry: {e}", GET_ENV_VARIABLES) from e
    variables.sort(key=lambda v: v.name.lower())
    logger.debug("Read %d environment variable(s)", len(variables))
    return variables


async def path_entries(gateway: OperationGateway) -> list[str]:
    """PATH entries in search order, empty entries dropped."""
    raw = await gateway.invoke(GET_PATH_ENTRIES)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise GatewayError(f"PATH listing returned {type(raw).__name__}, not a list", GET_PATH_ENTRIES)
    return [str(entry) for entry in raw if entry]


def filter_variables(variables: Iterable[EnvVariable], text: str) -> list[EnvVariable]:
    """Variables whose name or value contains ``text``, ignoring case."""
    needle = text.strip().lower()
    if not needle:
        return list(variables)
    return [v for v in variables if needle in v.name.lower() or needle in v.value.lower()]
