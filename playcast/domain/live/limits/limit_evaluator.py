"""Plan limit evaluation.

Pure computation, no I/O: given an owner's plan figures, an optional requested
bitrate and optional server load, decide the bitrate a stream may use and which
warnings the owner should see.
"""

from playcast.schemas.streaming_account import (
    DEFAULT_PLAN_BITRATE,
    DEFAULT_PLAN_VIEWERS,
    DEFAULT_STORAGE_TOTAL_MB,
)

from .limit_models import (
    BitrateLimits,
    LimitEvaluation,
    ServerLoad,
    StorageLimits,
    UserLimits,
    ViewerLimits,
)

STORAGE_WARNING_PERCENT = 90
SERVER_SLOT_WARNING_RATIO = 0.9
SERVER_CPU_WARNING_PERCENT = 80

WARN_BITRATE_CAPPED = (
    "Requested bitrate ({requested} kbps) exceeds the plan limit ({max} kbps) "
    "and will be capped automatically."
)
WARN_STORAGE_NEARLY_FULL = "Storage space is almost exhausted."
WARN_SERVER_NEAR_CAPACITY = "Streaming server is close to its capacity limit."
WARN_SERVER_HIGH_CPU = "Streaming server is under high CPU load."


def _positive_or(value: int | float | None, default: int) -> int:
    if value is None:
        return default
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _storage_percentage(used: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding on the percentage, like the figures owners see in the panel
    return int(used * 100 / total + 0.5)


def evaluate(
    plan_bitrate: int | None,
    plan_max_viewers: int | None,
    storage_used: int | None,
    storage_total: int | None,
    requested_bitrate: int | None = None,
    server_load: ServerLoad | None = None,
) -> LimitEvaluation:
    """Evaluate plan limits against a request. Never raises.

    Missing, zero or negative plan figures fall back to the plan defaults. A
    requested bitrate that is not positive counts as not supplied.
    """
    max_bitrate = _positive_or(plan_bitrate, DEFAULT_PLAN_BITRATE)
    max_viewers = _positive_or(plan_max_viewers, DEFAULT_PLAN_VIEWERS)
    total = _positive_or(storage_total, DEFAULT_STORAGE_TOTAL_MB)
    used = max(int(storage_used or 0), 0)

    requested = requested_bitrate if requested_bitrate and requested_bitrate > 0 else None
    allowed = min(requested, max_bitrate) if requested else max_bitrate

    warnings: list[str] = []
    if requested and requested > max_bitrate:
        warnings.append(WARN_BITRATE_CAPPED.format(requested=requested, max=max_bitrate))

    percentage = _storage_percentage(used, total)
    if percentage > STORAGE_WARNING_PERCENT:
        warnings.append(WARN_STORAGE_NEARLY_FULL)

    if server_load is not None:
        # A server without a configured slot limit never reports capacity pressure
        slot_limit = server_load.stream_slot_limit
        if slot_limit > 0 and server_load.active_streams >= slot_limit * SERVER_SLOT_WARNING_RATIO:
            warnings.append(WARN_SERVER_NEAR_CAPACITY)
        if server_load.cpu_load > SERVER_CPU_WARNING_PERCENT:
            warnings.append(WARN_SERVER_HIGH_CPU)

    return LimitEvaluation(
        allowed_bitrate=allowed,
        warnings=warnings,
        limits=UserLimits(
            bitrate=BitrateLimits(max=max_bitrate, requested=requested or max_bitrate, allowed=allowed),
            viewers=ViewerLimits(max=max_viewers),
            storage=StorageLimits(
                max=total,
                used=used,
                available=total - used,
                percentage=percentage,
            ),
        ),
    )
