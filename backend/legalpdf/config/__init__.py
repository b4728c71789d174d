"""
配置层 - 加载文书类型目录与运行期配置

职责：
- 加载 document_types.yaml（文书类型格式与签名块定义）
- 加载 runtime.yaml（版面校准/日志参数）
- 提供类型安全的配置访问接口
"""

from .catalog_loader import (
    DEFAULT_CATALOG_PATH,
    CatalogLoader,
    DocumentTypeCatalog,
    DocumentTypeSpec,
    FormattingSpec,
    load_catalog,
)
from .logging_config import setup_logging
from .runtime_config import LayoutCalibration, LoggingConfig, RuntimeConfig, load_config

__all__ = [
    "DEFAULT_CATALOG_PATH",
    "CatalogLoader",
    "DocumentTypeCatalog",
    "DocumentTypeSpec",
    "FormattingSpec",
    "load_catalog",
    "setup_logging",
    "LayoutCalibration",
    "LoggingConfig",
    "RuntimeConfig",
    "load_config",
]
