from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .rewrites_spec import DEFAULT_INTEGRATIONS, Integration

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping
    from typing import Any


_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"{name}: expected a boolean, got {value!r}")
    return bool(value)


def _as_integration(item: Integration | str) -> Integration:
    if isinstance(item, Integration):
        return item
    try:
        return Integration(str(item).strip().lower())
    except ValueError:
        known = ", ".join(sorted(i.value for i in Integration))
        raise ValueError(f"Unknown integration {item!r} (known: {known})") from None


def _coerce_integrations(value: Collection[Integration | str] | str) -> frozenset[Integration]:
    if isinstance(value, str):
        value = [part for part in (p.strip() for p in value.split(",")) if part]
    return frozenset(_as_integration(item) for item in value)


@dataclass(frozen=True, slots=True)
class LazyLoadConfig:
    """Read-only settings for one process (or request) lifecycle.

    - above_the_fold_count: leading eligible images left untouched.
    - use_low_quality_placeholder: use a `lazy=1` variant from the delivery
      domain as placeholder instead of the blank GIF.
    - alternate_delivery_domain: image delivery host that negotiates WebP
      through query arguments. Empty disables it.
    - enabled_integrations: third-party markup patterns to rewrite.
    """

    above_the_fold_count: int
    use_low_quality_placeholder: bool
    alternate_delivery_domain: str
    enabled_integrations: frozenset[Integration]

    def __init__(
        self,
        *,
        above_the_fold_count: int = 0,
        use_low_quality_placeholder: bool = True,
        alternate_delivery_domain: str = "",
        enabled_integrations: Collection[Integration | str] | str = DEFAULT_INTEGRATIONS,
    ) -> None:
        try:
            fold = int(above_the_fold_count)
        except (TypeError, ValueError):
            raise ValueError(f"above_the_fold_count: expected an integer, got {above_the_fold_count!r}") from None
        if fold < 0:
            raise ValueError("above_the_fold_count must be >= 0")
        object.__setattr__(self, "above_the_fold_count", fold)
        object.__setattr__(
            self,
            "use_low_quality_placeholder",
            _coerce_bool("use_low_quality_placeholder", use_low_quality_placeholder),
        )
        object.__setattr__(self, "alternate_delivery_domain", str(alternate_delivery_domain or "").strip())
        object.__setattr__(self, "enabled_integrations", _coerce_integrations(enabled_integrations))

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> LazyLoadConfig:
        """Build a config from an option-store mapping keyed by field name.

        Missing keys fall back to the defaults; unknown keys are ignored.
        """

        kwargs: dict[str, Any] = {}
        for name in (
            "above_the_fold_count",
            "use_low_quality_placeholder",
            "alternate_delivery_domain",
            "enabled_integrations",
        ):
            if name in options and options[name] is not None:
                kwargs[name] = options[name]
        return cls(**kwargs)

    def integration_enabled(self, integration: Integration | str) -> bool:
        return _as_integration(integration) in self.enabled_integrations


__all__ = ["LazyLoadConfig"]
