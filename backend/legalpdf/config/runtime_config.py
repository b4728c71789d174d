"""
运行期配置 - 读取 runtime.yaml 的 runtime_options 段

职责：
- 加载版面校准参数（安全余量/段落安全系数/栏间距/孤行阈值）
- 加载日志配置与文书类型目录路径
- 提供环境变量覆盖机制（LEGALPDF_ 前缀）
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .catalog_loader import DEFAULT_CATALOG_PATH, CatalogLoader, DocumentTypeCatalog


class LayoutCalibration(BaseModel):
    """版面校准参数（针对 reportlab 实测，非通用常数）"""

    safety_buffer_pct: float = Field(5.0, ge=0, lt=50)
    paragraph_safety_factor: float = Field(1.02, ge=1.0)
    column_gutter: float = Field(36.0, ge=0)
    min_split_lines: int = Field(2, ge=1)


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: Path = Path("logs/legalpdf.log")


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    catalog_path: Path | None = None
    layout: LayoutCalibration = Field(default_factory=LayoutCalibration)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "LEGALPDF_",
        "env_nested_delimiter": "__",
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置（文件不存在时返回默认配置）"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        catalog_path = runtime_opts.get("catalog_path")
        if catalog_path:
            catalog_path = Path(catalog_path)
            if not catalog_path.is_absolute():
                catalog_path = (path.parent / catalog_path).resolve()

        return cls(
            catalog_path=catalog_path,
            layout=LayoutCalibration(**cls._extract(runtime_opts, "layout")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
        )

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置（支持 {default: x} 写法）"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def load_catalog(self) -> DocumentTypeCatalog:
        """加载文书类型目录（缓存）"""
        return CatalogLoader.load(self.catalog_path or DEFAULT_CATALOG_PATH)


def load_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """加载运行期配置；未指定文件时只读取环境变量"""
    if yaml_path is None:
        return RuntimeConfig()
    return RuntimeConfig.from_yaml(yaml_path)
