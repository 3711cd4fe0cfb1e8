"""Strategy and adapter auto-detection from a connection URL.

Detection rules are deliberately string based and kept in this single pure
function so they can be tested in isolation:

- a URL containing ``{tenant}`` selects the ``database`` strategy,
  otherwise ``row``;
- a URL containing ``mongodb`` selects the ``document`` adapter,
  otherwise ``relational``.

Explicit overrides always win over detection.
"""

from __future__ import annotations

from tenantdb.domain.exceptions import ConfigurationError
from tenantdb.domain.value_objects import (
    TENANT_PLACEHOLDER,
    AdapterName,
    StrategyConfig,
    StrategyName,
)

__all__ = ["DOCUMENT_URL_MARKER", "detect_config"]

DOCUMENT_URL_MARKER = "mongodb"


def detect_config(
    url: str | None,
    strategy: str | StrategyName | None = None,
    adapter: str | AdapterName | None = None,
) -> StrategyConfig:
    """Resolve the routing configuration for a connection URL.

    Args:
        url: Connection URL (required)
        strategy: Optional explicit strategy name
        adapter: Optional explicit adapter name

    Returns:
        Immutable StrategyConfig

    Raises:
        ConfigurationError: If the URL is missing, a name is unrecognized, or
            the URL shape contradicts the chosen strategy.
    """
    if not url:
        raise ConfigurationError("Database URL is required")

    has_placeholder = TENANT_PLACEHOLDER in url

    if strategy is None:
        resolved_strategy = (
            StrategyName.DATABASE if has_placeholder else StrategyName.ROW
        )
    else:
        resolved_strategy = _parse(StrategyName, strategy, "strategy")

    if adapter is None:
        resolved_adapter = (
            AdapterName.DOCUMENT
            if DOCUMENT_URL_MARKER in url
            else AdapterName.RELATIONAL
        )
    else:
        resolved_adapter = _parse(AdapterName, adapter, "adapter")

    if resolved_strategy is StrategyName.DATABASE and not has_placeholder:
        raise ConfigurationError(
            f"Database URL must contain {TENANT_PLACEHOLDER} placeholder "
            "for database strategy"
        )
    if resolved_strategy is StrategyName.ROW and has_placeholder:
        raise ConfigurationError(
            f"Database URL must not contain {TENANT_PLACEHOLDER} placeholder "
            "for row strategy; name the shared database or drop the override"
        )

    return StrategyConfig(
        url=url,
        strategy=resolved_strategy,
        adapter=resolved_adapter,
    )


def _parse(enum_cls, value, kind: str):
    try:
        return enum_cls(value)
    except ValueError:
        supported = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(
            f"Unknown {kind}: {value}. Supported: {supported}"
        ) from None
