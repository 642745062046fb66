import logging
from typing import Awaitable, TypeVar

from ..exceptions import QueryError, TravelQLError

logger = logging.getLogger(__name__)

R = TypeVar("R")


async def guarded(awaitable: Awaitable[R]) -> R:
    """Await a service call; non-TravelQL failures surface as QueryError."""
    try:
        return await awaitable
    except TravelQLError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected resolver failure: {e}")
        raise QueryError(f"Unexpected error: {e}", error_code="INTERNAL_ERROR") from e
