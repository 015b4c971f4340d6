from __future__ import annotations

from typing import Any, Iterable, Mapping

from avd_portal.domain.errors import ValidationError
from avd_portal.domain.models import AssessmentConfig

DEFAULT_LOOKBACK_DAYS = 7
# Advisory only; the executor may enforce it
LOOKBACK_BOUNDS = (1, 90)

_TRUE_STRINGS = {"1", "true", "yes", "on"}

_FLAG_DEFAULTS = {
    "includeAdvisor": True,
    "includeReservations": False,
    "skipCosts": False,
    "scrubPII": False,
    "quickSummary": False,
}


def parse_workspace_ids(text: Any) -> tuple[str, ...]:
    """Split free text on commas, trim, drop empty tokens, keep order."""
    if text is None:
        return ()
    if isinstance(text, (list, tuple)):
        tokens: Iterable[Any] = text
    else:
        tokens = str(text).split(",")
    return tuple(t for t in (str(x).strip() for x in tokens) if t)


def normalize_lookback_days(value: Any, default: int = DEFAULT_LOOKBACK_DAYS) -> int:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, float):
        if not value.is_integer():
            return default
        value = int(value)
    try:
        days = int(str(value).strip())
    except ValueError:
        return default
    return days if days > 0 else default


def _flag(raw: Mapping[str, Any], key: str) -> bool:
    value = raw.get(key)
    if value is None:
        return _FLAG_DEFAULTS[key]
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _text(raw: Mapping[str, Any], key: str) -> str:
    return (str(raw.get(key) or "")).strip()


def _subscription_ids(raw: Mapping[str, Any]) -> frozenset[str]:
    value = raw.get("subscriptionIds") or ()
    if isinstance(value, str):
        value = value.split(",")
    return frozenset(s for s in (str(x).strip() for x in value) if s)


def missing_required_fields(raw: Mapping[str, Any]) -> list[str]:
    """Submit-gate predicate over raw inputs. Empty list means the required fields are present."""
    missing = []
    if not _text(raw, "tenantId"):
        missing.append("tenantId")
    if not _subscription_ids(raw):
        missing.append("subscriptionIds")
    return missing


def assemble(raw: Mapping[str, Any], default_lookback_days: int = DEFAULT_LOOKBACK_DAYS) -> AssessmentConfig:
    missing = missing_required_fields(raw)
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}", fields=tuple(missing))

    return AssessmentConfig(
        tenant_id=_text(raw, "tenantId"),
        subscription_ids=_subscription_ids(raw),
        log_analytics_workspace_ids=parse_workspace_ids(raw.get("logAnalyticsWorkspaceIds")),
        metrics_lookback_days=normalize_lookback_days(raw.get("metricsLookbackDays"), default_lookback_days),
        include_advisor=_flag(raw, "includeAdvisor"),
        include_reservations=_flag(raw, "includeReservations"),
        skip_costs=_flag(raw, "skipCosts"),
        scrub_pii=_flag(raw, "scrubPII"),
        quick_summary=_flag(raw, "quickSummary"),
        company_name=_text(raw, "companyName"),
        analyst_name=_text(raw, "analystName"),
    )
