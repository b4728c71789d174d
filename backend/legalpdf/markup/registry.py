"""
签名块注册表 - 标记 × 文书类型块定义 → 已校验的块与块组

职责：
1. 标记ID必须对应已声明的同类型块（可重复块允许 id-N 实例）
2. 必需块必须出现在文本中（缺失即硬错误，不做告警继续）
3. 同 group_id 的块合并为一个块组，成员必须齐全
4. 可重复块按实际出现次数展开为 N 个独立块组

测试要点：
- test_unknown_reference: 未声明ID
- test_missing_required_notary: 必需公证块缺失
- test_side_by_side_group: 并排成组
- test_repeatable_expansion: 可重复块展开
- test_marker_ids_round_trip: 标记ID往返一致
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from pydantic import BaseModel, Field

from ..interfaces import (
    FormattingConfigError,
    IBlockRegistryBuilder,
    MissingRequiredBlockError,
    UnknownBlockReferenceError,
)
from ..models import (
    BlockDefinition,
    BlockGroup,
    FlatBlockDefinition,
    LayoutDirective,
    LayoutMode,
    ParsedMarker,
    ResolvedBlock,
    StandardBlockDefinition,
)

logger = logging.getLogger(__name__)

_INSTANCE_RE = re.compile(r"^(?P<base>.+)-(?P<n>\d+)$")


class BlockRegistry(BaseModel):
    """已解析的块注册表（单次任务）"""
    document_type: str = ""
    blocks: list[ResolvedBlock] = Field(default_factory=list)  # 标记顺序
    groups: list[BlockGroup] = Field(default_factory=list)  # 锚点顺序

    def marker_ids(self) -> list[str]:
        """按文档顺序返回所有标记ID"""
        return [b.id for b in self.blocks]

    def get(self, block_id: str) -> ResolvedBlock | None:
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None

    def group_for(self, block_id: str) -> BlockGroup | None:
        for group in self.groups:
            if block_id in group.member_ids:
                return group
        return None

    def group_at(self, marker_index: int) -> BlockGroup | None:
        """以该标记为锚点的块组（非锚点成员返回 None）"""
        for group in self.groups:
            if group.anchor_index == marker_index:
                return group
        return None


class BlockRegistryBuilder(IBlockRegistryBuilder):
    """注册表构建器"""

    def build(
        self,
        markers: Sequence[ParsedMarker],
        definitions: Sequence[BlockDefinition],
        *,
        document_type: str = "",
    ) -> BlockRegistry:
        """校验并成组"""
        # 1. 定义索引
        by_id: dict[str, BlockDefinition] = {}
        for definition in definitions:
            if definition.id in by_id:
                raise FormattingConfigError(
                    f"块定义ID重复: {definition.id}",
                    document_type=document_type,
                    block_id=definition.id,
                )
            layout = _layout_of(definition)
            if layout.repeatable and layout.group_id:
                raise FormattingConfigError(
                    f"可重复块不能声明 group_id: {definition.id}",
                    document_type=document_type,
                    block_id=definition.id,
                )
            by_id[definition.id] = definition

        # 2. 标记解析为具体块
        resolved: list[ResolvedBlock] = []
        instances: dict[str, int] = {}
        for marker in markers:
            definition, instance = self._match(marker, by_id, instances, document_type)
            resolved.append(_normalize(definition, marker, instance))

        # 3. 必需块检查
        used = {b.definition_id for b in resolved}
        for definition in definitions:
            if definition.required and definition.id not in used:
                raise MissingRequiredBlockError(
                    f"必需块未出现在文本中: {definition.id}",
                    document_type=document_type,
                    block_id=definition.id,
                )

        # 4. 成组
        groups = self._group(resolved, definitions, document_type)

        logger.debug(
            f"注册表: {len(resolved)} 个块, {len(groups)} 个块组 "
            f"({[g.group_id for g in groups]})"
        )
        return BlockRegistry(document_type=document_type, blocks=resolved, groups=groups)

    @staticmethod
    def _match(
        marker: ParsedMarker,
        by_id: dict[str, BlockDefinition],
        instances: dict[str, int],
        document_type: str,
    ) -> tuple[BlockDefinition, int | None]:
        definition = by_id.get(marker.id)
        instance: int | None = None
        if definition is None:
            m = _INSTANCE_RE.match(marker.id)
            base = by_id.get(m.group("base")) if m else None
            if base is not None and _layout_of(base).repeatable:
                definition = base
        if definition is None:
            raise UnknownBlockReferenceError(
                f"标记引用了未声明的块: {marker.id}",
                document_type=document_type,
                block_id=marker.id,
            )
        if definition.type is not marker.type:
            raise UnknownBlockReferenceError(
                f"标记类型与块定义不符: {marker.source} 声明为 {definition.type.value}",
                document_type=document_type,
                block_id=marker.id,
            )
        if _layout_of(definition).repeatable:
            instance = instances.get(definition.id, 0) + 1
            instances[definition.id] = instance
        return definition, instance

    @staticmethod
    def _group(
        resolved: list[ResolvedBlock],
        definitions: Sequence[BlockDefinition],
        document_type: str,
    ) -> list[BlockGroup]:
        members: dict[str, list[ResolvedBlock]] = {}
        for block in resolved:
            key = block.layout.group_id if block.layout.group_id else block.id
            members.setdefault(key, []).append(block)

        groups = []
        for key, blocks in members.items():
            if blocks[0].layout.group_id:
                declared = [d.id for d in definitions if _layout_of(d).group_id == key]
                present = {b.definition_id for b in blocks}
                missing = [d for d in declared if d not in present]
                if missing:
                    raise MissingRequiredBlockError(
                        f"块组 {key} 缺少成员: {', '.join(missing)}",
                        document_type=document_type,
                        block_id=missing[0],
                    )
            side_by_side = any(b.layout.mode is LayoutMode.SIDE_BY_SIDE for b in blocks)
            groups.append(BlockGroup(
                group_id=key,
                mode=LayoutMode.SIDE_BY_SIDE if side_by_side else LayoutMode.STANDALONE,
                keep_together=True,
                members=blocks,
            ))
        groups.sort(key=lambda g: g.anchor_index)
        return groups


def _layout_of(definition: BlockDefinition) -> LayoutDirective:
    if isinstance(definition, StandardBlockDefinition):
        return definition.layout
    if isinstance(definition, FlatBlockDefinition):
        return LayoutDirective()
    raise FormattingConfigError(f"未知块定义形状: {type(definition).__name__}")


def _normalize(
    definition: BlockDefinition,
    marker: ParsedMarker,
    instance: int | None,
) -> ResolvedBlock:
    """两种定义形状统一为 ResolvedBlock"""
    if isinstance(definition, StandardBlockDefinition):
        role = definition.party.role
        label = definition.party.label
        fields = list(definition.party.fields)
    elif isinstance(definition, FlatBlockDefinition):
        role = definition.id.removesuffix("-signature")
        label = definition.label
        # 扁平定义把签名线也列为字段，签名线由渲染统一绘制
        fields = [f for f in definition.fields if f.name != "signature"]
    else:
        raise FormattingConfigError(f"未知块定义形状: {type(definition).__name__}")

    if instance is not None and instance > 1:
        label = f"{label} {instance}"
    return ResolvedBlock(
        id=marker.id,
        definition_id=definition.id,
        type=definition.type,
        party_role=role,
        party_label=label,
        fields=fields,
        layout=_layout_of(definition),
        required=definition.required,
        instance=instance,
        marker_index=marker.index,
    )
