"""
Level-dependent quiz options.

Some options (full-row blanks, minimum blanks per row) may be given either as a
single value for every difficulty level or as a mapping ``{level: value}``.
Raw config values are wrapped in ``Scalar`` or ``PerLevel`` and resolved with
``resolve_level_setting``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

DEFAULT_DIFFICULTY_RATES: Dict[int, float] = {1: 0.15, 2: 0.35, 3: 0.60}


@dataclass(frozen=True)
class Scalar:
    value: Any


@dataclass(frozen=True)
class PerLevel:
    values: Dict[int, Any] = field(default_factory=dict)


LevelSetting = Union[Scalar, PerLevel]


def as_level_setting(raw: Any) -> Optional[LevelSetting]:
    if raw is None:
        return None
    if isinstance(raw, (Scalar, PerLevel)):
        return raw
    if isinstance(raw, dict):
        return PerLevel({int(k): v for k, v in raw.items()})
    return Scalar(raw)


def resolve_level_setting(setting: Optional[LevelSetting], level: int, default: Any) -> Any:
    """Value of ``setting`` for ``level``; ``default`` when absent or the level is unmapped."""
    if setting is None:
        return default
    if isinstance(setting, PerLevel):
        value = setting.values.get(level)
        return default if value is None else value
    return default if setting.value is None else setting.value
