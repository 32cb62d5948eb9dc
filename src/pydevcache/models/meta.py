"""Cache instance metadata (``meta.json``)."""

from __future__ import annotations

from pydevcache.models._base import ZERO_TIME, CacheBaseModel, CacheTimestamp


class Meta(CacheBaseModel):
    """Singleton record used only to throttle cleanup sweeps.

    ``last_cleanup`` is the watermark; :data:`ZERO_TIME` means cleanup has
    never run.
    """

    version: int = 0
    last_cleanup: CacheTimestamp = ZERO_TIME
