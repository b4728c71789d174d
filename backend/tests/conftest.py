"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(catalog, resolver):
        rules = resolver.resolve("patent-assignment")
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
import yaml

from legalpdf.config import CatalogLoader, DocumentTypeCatalog, RuntimeConfig
from legalpdf.markup import FormattingRuleResolver
from legalpdf.models import FormattingRules
from legalpdf.pipeline import ExportPipeline


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def catalog() -> DocumentTypeCatalog:
    """随包发布的文书类型目录（会话级别缓存）"""
    return CatalogLoader.load()


@pytest.fixture
def resolver(catalog: DocumentTypeCatalog) -> FormattingRuleResolver:
    return FormattingRuleResolver(catalog)


@pytest.fixture
def runtime_config() -> RuntimeConfig:
    """运行期配置"""
    return RuntimeConfig()


@pytest.fixture
def pipeline(resolver: FormattingRuleResolver) -> ExportPipeline:
    return ExportPipeline(resolver)


@pytest.fixture
def assignment_rules(resolver: FormattingRuleResolver) -> FormattingRules:
    """专利转让协议格式（1.5倍行距）"""
    return resolver.resolve("patent-assignment")


@pytest.fixture
def single_rules(resolver: FormattingRuleResolver) -> FormattingRules:
    """单倍行距格式"""
    return resolver.resolve("patent-license-agreement")


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def write_catalog(temp_dir: Path) -> Callable[[dict], Path]:
    """把目录字典写成 YAML 文件并返回路径"""
    def _write(data: dict, name: str = "catalog.yaml") -> Path:
        path = temp_dir / name
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def notary_catalog_data() -> dict:
    """声明了必需公证块的自定义目录"""
    return {
        "schema_version": "1.0",
        "defaults": {"margins": {"top": 1, "bottom": 1, "left": 1, "right": 1}},
        "document_types": {
            "notarized-affidavit": {
                "formatting": {"line_spacing": "single"},
                "blocks": [
                    {
                        "kind": "standard",
                        "id": "affiant-signature",
                        "type": "signature",
                        "party": {"role": "affiant", "label": "AFFIANT",
                                  "fields": [{"name": "name", "label": "Name", "required": True}]},
                    },
                    {
                        "kind": "standard",
                        "id": "notary-signature",
                        "type": "notary",
                        "required": True,
                        "party": {"role": "notary", "label": "NOTARY PUBLIC", "fields": []},
                    },
                ],
            },
        },
    }


# ============================================================================
# 文本 Fixtures
# ============================================================================

ASSIGNMENT_TEXT = """PATENT ASSIGNMENT AGREEMENT

This Patent Assignment Agreement is entered into as of January 1, 2026, by and between Alpha Labs Inc. ("Assignor") and Beta Holdings LLC ("Assignee").

RECITALS

WHEREAS, Assignor is the owner of all right, title and interest in U.S. Patent No. 10,000,001 and the inventions described therein; and

WHEREAS, Assignee desires to acquire the entire right, title and interest in and to said patent.

1. ASSIGNMENT

Assignor hereby sells, assigns and transfers to Assignee the entire right, title and interest in and to the patent, including all reissues, continuations and extensions thereof. Assignor shall execute all further documents reasonably requested by Assignee.

2. CONSIDERATION

In consideration of the sum of ten dollars and other good and valuable consideration, the receipt of which is hereby acknowledged, Assignor makes this assignment.

IN WITNESS WHEREOF, the parties have executed this Agreement as of the date first written above.

[SIGNATURE_BLOCK:assignor-signature]
[SIGNATURE_BLOCK:assignee-signature]
"""


def long_agreement(paragraphs: int = 40) -> str:
    """多页协议正文"""
    body = []
    for i in range(1, paragraphs + 1):
        body.append(
            f"Section {i} obligations apply to both parties. The Licensee shall report net sales "
            f"for each calendar quarter within thirty days after the quarter ends. The Licensor may "
            f"audit such reports once per year upon reasonable notice. Any underpayment revealed by "
            f"an audit shall be paid within fifteen days together with interest at the agreed rate."
        )
    return "PATENT LICENSE AGREEMENT\n\n" + "\n\n".join(body) + (
        "\n\n[SIGNATURE_BLOCK:licensor-signature]\n[SIGNATURE_BLOCK:licensee-signature]\n"
    )


@pytest.fixture
def assignment_text() -> str:
    return ASSIGNMENT_TEXT


@pytest.fixture
def license_text() -> str:
    return long_agreement()
