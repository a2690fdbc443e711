"""Per-invocation logging context."""

import uuid
from contextlib import contextmanager
from typing import Any
from typing import Iterator
from typing import Optional

from loguru import logger


def _generate_invocation_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def invocation_context(
    entry_point: str,
    workforce_pool_id: Optional[Any] = None,
    subject_id: Optional[Any] = None,
    invocation_id: Optional[str] = None,
) -> Iterator[str]:
    """
    Bind invocation metadata to every log record emitted inside the block.

    Parameters
    ----------
    entry_point : str
        Lifecycle entry point being run (invoke, error or halt)
    workforce_pool_id : Any, optional
        Raw pool identifier from the params (may be missing or invalid)
    subject_id : Any, optional
        Raw subject identifier from the params (may be missing or invalid)
    invocation_id : str, optional
        Identifier supplied by the scheduler; generated when absent

    Yields
    ------
    str
        The invocation id bound to the log records
    """
    invocation_id = invocation_id or _generate_invocation_id()
    with logger.contextualize(
        invocation_id=invocation_id,
        entry_point=entry_point,
        workforce_pool_id=workforce_pool_id,
        subject_id=subject_id,
    ):
        yield invocation_id
