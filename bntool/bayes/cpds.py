#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
条件概率表（CPT）工具
条件键构造、父节点取值组合枚举、CPT校验与查询
"""
import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from bntool.bayes.errors import MalformedCPT, UnknownVariable
from bntool.bayes.variables import BayesianVariable
from bntool.utils.logging import setup_logger

logger = setup_logger("cpd_tables")

# 条件键: 按规范父节点顺序排列的 (父节点标识符, 取值) 对
ConditionKey = Tuple[Tuple[str, bool], ...]

ROOT_KEY: ConditionKey = ()

# 根节点 {"true": p, "false": q} 两项之和允许的误差
COMPLEMENT_TOLERANCE = 1e-9


@dataclass(frozen=True)
class MissingCPTEntry:
    """
    CPT缺失项诊断信息

    缺失项按概率0处理，此记录用于区分"有意为0"和"忘记填写"
    """
    variable: str
    label: str
    condition: ConditionKey
    condition_text: str

    def __str__(self) -> str:
        if self.condition:
            return f"P({self.label} | {self.condition_text}) 未设置"
        return f"P({self.label}) 未设置"


def canonical_parent_order(parents: Sequence[str]) -> List[str]:
    """父节点的规范顺序：按标识符排序"""
    return sorted(parents)


def enumerate_assignments(num_parents: int) -> Iterator[Tuple[bool, ...]]:
    """
    按二进制计数枚举父节点的全部 2^k 种取值组合

    第一个父节点为最高位，true 先于 false，
    k=2 时顺序为 TT, TF, FT, FF。
    第 i 个组合中父节点 j 为 false 当且仅当 i 的第 (k-1-j) 位为1。

    Args:
        num_parents: 父节点数量 k

    Yields:
        长度为 k 的布尔元组
    """
    for index in range(1 << num_parents):
        yield tuple(
            not (index >> (num_parents - 1 - j)) & 1
            for j in range(num_parents)
        )


def make_condition_key(parents: Sequence[str], values: Sequence[bool]) -> ConditionKey:
    """由规范顺序的父节点和对应取值构造条件键"""
    if len(parents) != len(values):
        raise ValueError(f"父节点数量({len(parents)})与取值数量({len(values)})不一致")
    return tuple((parent, bool(value)) for parent, value in zip(parents, values))


def enumerate_condition_keys(parents: Sequence[str]) -> List[ConditionKey]:
    """按枚举顺序生成全部条件键"""
    return [
        make_condition_key(parents, values)
        for values in enumerate_assignments(len(parents))
    ]


def format_condition(key: ConditionKey, labels: Mapping[str, str]) -> str:
    """
    将条件键渲染为 "Rain=true, Sprinkler=false" 形式

    Args:
        key: 条件键
        labels: 标识符 -> 标签

    Returns:
        条件字符串，根节点返回空字符串
    """
    return ", ".join(
        f"{labels.get(parent, parent)}={'true' if value else 'false'}"
        for parent, value in key
    )


def parse_condition(text: str, label_to_id: Mapping[str, str]) -> ConditionKey:
    """
    解析 "Rain=true, Sprinkler=false" 形式的条件字符串

    字符串内的父节点顺序任意，用 ',' 或 '|' 分隔；
    返回的条件键按规范顺序排列。

    Args:
        text: 条件字符串
        label_to_id: 标签 -> 标识符

    Returns:
        条件键
    """
    pairs = {}
    for part in text.replace('|', ',').split(','):
        part = part.strip()
        if not part:
            continue
        if '=' not in part:
            raise ValueError(f"无法解析条件: '{part}'")
        label, value = [item.strip() for item in part.split('=', 1)]
        if label not in label_to_id:
            raise UnknownVariable(label)
        value = value.lower()
        if value not in ('true', 'false'):
            raise ValueError(f"条件取值必须为 true 或 false: '{part}'")
        identifier = label_to_id[label]
        if identifier in pairs:
            raise ValueError(f"条件中父节点重复: '{label}'")
        pairs[identifier] = value == 'true'

    return tuple((parent, pairs[parent]) for parent in canonical_parent_order(pairs))


def check_probability(variable: str, key: ConditionKey, value) -> float:
    """检查概率值是否落在 [0,1] 内"""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise MalformedCPT(variable, [f"条件 {key} 的概率不是数值: {value!r}"])
    if math.isnan(value) or value < 0.0 or value > 1.0:
        raise MalformedCPT(variable, [f"条件 {key} 的概率 {value} 超出 [0,1]"])
    return value


def validate_table(variable: str, table: Mapping) -> Dict[ConditionKey, float]:
    """
    校验并规范化CPT（写入时调用）

    Args:
        variable: 变量标识符
        table: 条件键 -> 概率

    Returns:
        规范化后的CPT字典
    """
    cleaned = {}
    for key, value in table.items():
        key = tuple((str(parent), bool(flag)) for parent, flag in key)
        cleaned[key] = check_probability(variable, key, value)
    return cleaned


def root_probability_from_states(variable: str, states: Mapping[str, float]) -> float:
    """
    从 {"true": p, "false": q} 形式的根节点概率中取出 P(true)

    Args:
        variable: 变量标识符
        states: 状态 -> 概率

    Returns:
        P(true)
    """
    p_true = states.get('true')
    p_false = states.get('false')

    if p_true is None and p_false is None:
        raise MalformedCPT(variable, ["根节点需要提供 true 或 false 的概率"])
    if p_true is None:
        return 1.0 - check_probability(variable, ROOT_KEY, p_false)

    p_true = check_probability(variable, ROOT_KEY, p_true)
    if p_false is not None:
        p_false = check_probability(variable, ROOT_KEY, p_false)
        if abs(p_true + p_false - 1.0) > COMPLEMENT_TOLERANCE:
            raise MalformedCPT(
                variable,
                [f"P(true)={p_true} 与 P(false)={p_false} 之和不为1"]
            )
    return p_true


def find_missing_entries(
    variable: BayesianVariable,
    parents: Sequence[str],
    labels: Mapping[str, str]
) -> List[MissingCPTEntry]:
    """
    找出变量CPT中缺失的条件项

    Args:
        variable: 变量
        parents: 规范顺序的父节点
        labels: 标识符 -> 标签

    Returns:
        缺失项列表
    """
    missing = []
    for key in enumerate_condition_keys(parents):
        if key not in variable.cpt:
            missing.append(MissingCPTEntry(
                variable=variable.identifier,
                label=variable.label,
                condition=key,
                condition_text=format_condition(key, labels)
            ))
    return missing


def query_cpt(variable: BayesianVariable, key: ConditionKey) -> float:
    """
    查询 P(变量=true | 条件)

    缺失项按0处理

    Args:
        variable: 变量
        key: 条件键

    Returns:
        概率值
    """
    return variable.cpt.get(key, 0.0)


def probability_vector(variable: BayesianVariable, parents: Sequence[str]) -> np.ndarray:
    """
    构造稠密概率向量，下标与 enumerate_assignments 的枚举顺序一致

    精确推断与蒙特卡洛采样共用此向量，保证两者对缺失项的处理一致

    Args:
        variable: 变量
        parents: 规范顺序的父节点

    Returns:
        形状为 (2^k,) 的 float64 数组
    """
    return np.array(
        [query_cpt(variable, key) for key in enumerate_condition_keys(parents)],
        dtype=np.float64
    )


def apply_missing_policy(
    missing: List[MissingCPTEntry],
    strict: bool = False,
    source: Optional[str] = None
) -> List[MissingCPTEntry]:
    """
    对缺失项执行统一策略：宽松模式记录警告并按0处理，严格模式抛出 MalformedCPT

    Args:
        missing: 缺失项列表
        strict: 是否严格模式
        source: 调用方名称（用于日志）

    Returns:
        缺失项列表
    """
    if not missing:
        return missing

    if strict:
        raise MalformedCPT(missing[0].label, [str(entry) for entry in missing])

    prefix = f"[{source}] " if source else ""
    for entry in missing:
        logger.warning(f"{prefix}{entry}，按概率0处理")
    return missing
