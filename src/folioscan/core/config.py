"""配置加载工具，集中管理仓内/环境参数。"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, Literal, Mapping, MutableMapping, Sequence, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigError

CONFIG_ENV_KEY = "FOLIOSCAN_CONFIG_PATH"

OcrRegion = Literal["top", "bottom", "left", "right", "center", "full"]


class _FrozenModel(BaseModel):
    # 配置在各阶段间按值传递，构造后不可修改
    model_config = ConfigDict(frozen=True, extra="forbid")


class SamplingConfig(_FrozenModel):
    """采样参数：固定时间步长 + 最大宽度。"""

    sample_rate_hz: float = Field(8.0, gt=0)
    max_width_px: int = Field(1600, gt=0)


class DetectionConfig(_FrozenModel):
    """换页检测阈值，score >= change_threshold 且间隔足够时切分。"""

    change_threshold: float = Field(0.42, gt=0, le=1)
    min_gap_sec: float = Field(0.6, ge=0)


class RefineConfig(_FrozenModel):
    """严格模式：对过长片段以递减阈值重新扫描。"""

    strict_passes: int = Field(3, ge=0, le=10)
    long_mult: float = Field(1.75, gt=0)
    decay: float = Field(0.82, gt=0, le=1)
    floor_threshold: float = Field(0.12, gt=0, le=1)
    gap_scale: float = Field(0.75, ge=0)


class SelectConfig(_FrozenModel):
    settle_sec: float = Field(0.25, ge=0)


class DedupConfig(_FrozenModel):
    """pHash 去重阈值，汉明距离 <= dup_hash 视为重复。"""

    dup_hash: int = Field(6, ge=0, le=63)


class OcrConfig(_FrozenModel):
    """页码 OCR 与全文 OCR 的开关及语言。"""

    digits_enabled: bool = True
    digits_lang: str = "eng"
    region: OcrRegion = "bottom"
    region_frac: float = Field(0.22, gt=0, le=1)
    full_enabled: bool = True
    full_lang: str = "spa"


class ExportConfig(_FrozenModel):
    """PDF 文字层参数。"""

    font_min: float = Field(6.0, gt=0)
    font_max: float = Field(24.0, gt=0)

    @model_validator(mode="after")
    def _check_font_range(self) -> "ExportConfig":
        if self.font_min > self.font_max:
            raise ValueError(f"font_min ({self.font_min}) 不能大于 font_max ({self.font_max})")
        return self


class PipelineConfig(_FrozenModel):
    """聚合各阶段配置。"""

    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    refine: RefineConfig = Field(default_factory=RefineConfig)
    select: SelectConfig = Field(default_factory=SelectConfig)
    dedup: DedupConfig = Field(default_factory=DedupConfig)
    ocr: OcrConfig = Field(default_factory=OcrConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    retain_luma: bool = Field(True, description="保留每帧亮度缓冲；关闭时选中帧会重新解码计算 pHash。")
    raw: Dict[str, Any] = Field(default_factory=dict, description="原始配置字典，便于调试。")

    def to_raw_dict(self) -> Dict[str, Any]:
        """导出基础 dict，供日志输出。"""

        return self.model_dump(exclude={"raw"})

    def with_overrides(self, section: str, **values: Any) -> "PipelineConfig":
        """覆盖某一段配置并重新校验；值为 None 的键会被忽略。"""

        updates = {key: value for key, value in values.items() if value is not None}
        if not updates:
            return self
        data = self.model_dump()
        if section not in data or not isinstance(data[section], dict):
            raise ConfigError("未知配置段", parameter=section)
        data[section].update(updates)
        return validate_config(data)


def validate_config(data: Mapping[str, Any]) -> PipelineConfig:
    """校验配置字典，把 pydantic 的错误统一转换为 ConfigError。"""

    try:
        return PipelineConfig.model_validate(dict(data))
    except ValidationError as exc:
        first = exc.errors()[0]
        parameter = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigError(first.get("msg", "invalid value"), parameter=parameter or None) from exc


def _default_config_path() -> Path:
    return Path(__file__).resolve().parents[3] / "configs" / "baseline.yaml"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"配置文件 {path} 内容需为字典")
        return data


ENV_OVERRIDE_MAP: Dict[str, Tuple[Sequence[str], Callable[[str], Any]]] = {
    "FOLIOSCAN_SAMPLE_RATE": (("sampling", "sample_rate_hz"), float),
    "FOLIOSCAN_MAX_WIDTH": (("sampling", "max_width_px"), int),
    "FOLIOSCAN_CHANGE_THRESHOLD": (("detection", "change_threshold"), float),
    "FOLIOSCAN_STRICT_PASSES": (("refine", "strict_passes"), int),
    "FOLIOSCAN_DUP_HASH": (("dedup", "dup_hash"), int),
    "FOLIOSCAN_OCR_REGION": (("ocr", "region"), str),
}


def _apply_env_overrides(data: MutableMapping[str, Any], env: Mapping[str, str]) -> None:
    for env_key, (path, caster) in ENV_OVERRIDE_MAP.items():
        if env_key not in env:
            continue
        try:
            value = caster(env[env_key])
        except ValueError as exc:
            raise ConfigError(f"环境变量 {env_key} 无法解析: {env[env_key]!r}", parameter=".".join(path)) from exc
        _set_nested_value(data, path, value)


def _set_nested_value(target: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    cursor: MutableMapping[str, Any] = target
    *parents, last = path
    for key in parents:
        if key not in cursor or not isinstance(cursor[key], MutableMapping):
            cursor[key] = {}
        cursor = cursor[key]  # type: ignore[assignment]
    cursor[last] = value


def load_config(path: str | Path | None = None, *, env: Mapping[str, str] | None = None) -> PipelineConfig:
    """加载配置：优先显式路径，其次环境变量，最后回退默认 baseline。"""

    env_map = env if env is not None else os.environ
    config_path = path or env_map.get(CONFIG_ENV_KEY)
    target_path = Path(config_path).expanduser() if config_path else _default_config_path()
    data = _load_yaml(target_path)
    _apply_env_overrides(data, env_map)
    raw = {key: value for key, value in data.items() if key != "raw"}
    return validate_config({**data, "raw": raw})
