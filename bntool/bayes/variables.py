#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络变量定义
所有随机变量均为二值变量（true / false）
"""
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Tuple

# 二值变量的取值空间
STATES = (True, False)

# 标签会嵌入到条件字符串中（"Rain=true, Sprinkler=false"），不能包含分隔符
RESERVED_LABEL_CHARS = (',', '=', '|')


def validate_label(label: str) -> str:
    """
    检查变量标签是否合法

    Args:
        label: 变量标签

    Returns:
        去除首尾空白后的标签
    """
    if not isinstance(label, str) or not label.strip():
        raise ValueError("变量标签不能为空")
    label = label.strip()
    for char in RESERVED_LABEL_CHARS:
        if char in label:
            raise ValueError(f"变量标签 '{label}' 不能包含字符 '{char}'")
    return label


@dataclass(frozen=True)
class BayesianVariable:
    """
    贝叶斯网络二值随机变量

    实例不可变，编辑操作通过 with_cpt / with_label 生成新实例

    Attributes:
        identifier: 唯一标识符
        label: 可读标签（网络内唯一）
        cpt: 条件概率表，条件键 -> P(变量=true | 条件)
             根节点只有一个条目，键为空元组 ()
        description: 变量描述
    """
    identifier: str
    label: str
    cpt: Mapping[Tuple[Tuple[str, bool], ...], float] = field(
        default_factory=lambda: MappingProxyType({})
    )
    description: str = ''

    def __post_init__(self):
        # 冻结CPT，防止外部修改共享的表
        object.__setattr__(self, 'cpt', MappingProxyType(dict(self.cpt)))

    def with_cpt(self, cpt: Mapping) -> 'BayesianVariable':
        """返回替换CPT后的新变量"""
        return replace(self, cpt=dict(cpt))

    def with_label(self, label: str) -> 'BayesianVariable':
        """返回替换标签后的新变量"""
        return replace(self, label=validate_label(label))

    @property
    def prior(self) -> float:
        """根节点的无条件概率 P(true)，未设置时为0"""
        return self.cpt.get((), 0.0)
