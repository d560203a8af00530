#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络DAG结构定义
维护变量、有向边和CPT，并为推断提供不可变快照
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

import networkx as nx

from bntool.bayes.cpds import (
    ConditionKey,
    MissingCPTEntry,
    ROOT_KEY,
    apply_missing_policy,
    canonical_parent_order,
    check_probability,
    enumerate_condition_keys,
    find_missing_entries,
    parse_condition,
    root_probability_from_states,
    validate_table,
)
from bntool.bayes.errors import CyclicNetworkError, DuplicateVariable, MalformedCPT, UnknownVariable
from bntool.bayes.variables import BayesianVariable, validate_label
from bntool.utils.logging import setup_logger

logger = setup_logger("bayes_structure")


class BayesianNetwork:
    """
    贝叶斯网络（可编辑模型）

    由编辑器持有并修改；推断引擎只读取 snapshot() 生成的不可变快照
    """

    def __init__(self):
        """初始化空网络"""
        self.graph = nx.DiGraph()
        self.variables: Dict[str, BayesianVariable] = {}
        self._topological_order: Optional[List[str]] = None
        logger.debug("初始化贝叶斯网络")

    def __len__(self) -> int:
        return len(self.variables)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self.variables

    # ============ 变量编辑 ============

    def add_variable(
        self,
        identifier: str,
        label: str,
        cpt: Optional[Mapping] = None,
        probability: Optional[float] = None,
        description: str = ''
    ) -> BayesianVariable:
        """
        添加变量

        Args:
            identifier: 唯一标识符
            label: 标签（网络内唯一）
            cpt: 条件概率表（内部条件键形式）
            probability: 根节点 P(true) 的简写
            description: 变量描述

        Returns:
            新变量
        """
        identifier = str(identifier)
        label = validate_label(label)

        if identifier in self.variables:
            raise DuplicateVariable(f"变量标识符重复: {identifier}")
        self._check_label_free(label)

        table = validate_table(identifier, cpt or {})
        if probability is not None:
            table[ROOT_KEY] = check_probability(identifier, ROOT_KEY, probability)

        variable = BayesianVariable(
            identifier=identifier,
            label=label,
            cpt=table,
            description=description
        )
        self.variables[identifier] = variable
        self.graph.add_node(identifier)
        self._invalidate()
        logger.debug(f"添加变量: {identifier} ({label})")
        return variable

    def remove_variable(self, identifier: str) -> None:
        """删除变量及其所有关联的边"""
        self.get_variable(identifier)
        self.graph.remove_node(identifier)
        del self.variables[identifier]
        self._invalidate()
        logger.debug(f"删除变量: {identifier}")

    def rename_variable(self, identifier: str, label: str) -> BayesianVariable:
        """修改变量标签"""
        variable = self.get_variable(identifier)
        label = validate_label(label)
        if label != variable.label:
            self._check_label_free(label)
        self.variables[identifier] = variable.with_label(label)
        return self.variables[identifier]

    def _check_label_free(self, label: str) -> None:
        for variable in self.variables.values():
            if variable.label == label:
                raise DuplicateVariable(f"变量标签重复: {label}")

    # ============ 边编辑 ============

    def add_edge(self, parent: str, child: str) -> None:
        """
        添加有向边（parent 是 child 的父节点）

        形成环的边在此处允许添加，推断前的快照阶段才会被拒绝

        Args:
            parent: 父节点标识符
            child: 子节点标识符
        """
        self.get_variable(parent)
        self.get_variable(child)
        self.graph.add_edge(parent, child)
        self._invalidate()
        logger.debug(f"添加边: {parent} -> {child}")

    def remove_edge(self, parent: str, child: str) -> None:
        """删除有向边"""
        if not self.graph.has_edge(parent, child):
            raise ValueError(f"边不存在: {parent} -> {child}")
        self.graph.remove_edge(parent, child)
        self._invalidate()
        logger.debug(f"删除边: {parent} -> {child}")

    @property
    def edges(self) -> List[Tuple[str, str]]:
        return list(self.graph.edges())

    def _invalidate(self) -> None:
        # 结构变化后拓扑序缓存失效
        self._topological_order = None

    # ============ CPT编辑 ============

    def set_cpt(self, identifier: str, table: Mapping) -> BayesianVariable:
        """
        设置变量的CPT（内部条件键形式）

        写入时校验所有取值位于 [0,1]

        Args:
            identifier: 变量标识符
            table: 条件键 -> P(true | 条件)

        Returns:
            更新后的变量
        """
        variable = self.get_variable(identifier)
        self.variables[identifier] = variable.with_cpt(validate_table(identifier, table))
        return self.variables[identifier]

    def set_probability(self, identifier: str, probability: float) -> BayesianVariable:
        """设置根节点的 P(true)"""
        return self.set_cpt(identifier, {ROOT_KEY: probability})

    def set_cpt_by_labels(self, identifier: str, table: Mapping[str, float]) -> BayesianVariable:
        """
        用标签形式的条件字符串设置CPT

        根节点可使用 {"true": p, "false": 1-p}；
        非根节点使用 {"Rain=true, Sprinkler=false": p, ...}

        Args:
            identifier: 变量标识符
            table: 条件字符串 -> 概率

        Returns:
            更新后的变量
        """
        variable = self.get_variable(identifier)

        if set(table) <= {'true', 'false'}:
            return self.set_probability(identifier, root_probability_from_states(identifier, table))

        # 根节点加边后，编辑器保留了旧的 true/false 项
        stale = [state for state in ('true', 'false') if state in table]
        if stale:
            logger.warning(f"变量 {variable.label} 已有父节点，忽略根节点概率项: {stale}")
            table = {condition: value for condition, value in table.items() if condition not in stale}

        label_to_id = {var.label: var.identifier for var in self.variables.values()}
        parsed = {}
        for condition, value in table.items():
            try:
                parsed[parse_condition(condition, label_to_id)] = value
            except ValueError as e:
                raise MalformedCPT(identifier, [str(e)]) from e

        parents = set(self.get_parents(identifier))
        for key in parsed:
            stray = {parent for parent, _ in key} - parents
            if stray:
                logger.warning(
                    f"变量 {variable.label} 的条件引用了非父节点: "
                    f"{sorted(self.variables[s].label for s in stray)}"
                )
        return self.set_cpt(identifier, parsed)

    # ============ 结构查询 ============

    def get_variable(self, identifier: str) -> BayesianVariable:
        """按标识符获取变量"""
        try:
            return self.variables[identifier]
        except KeyError:
            raise UnknownVariable(identifier) from None

    def variable_by_label(self, label: str) -> BayesianVariable:
        """按标签获取变量（标签在编辑时保证唯一）"""
        for variable in self.variables.values():
            if variable.label == label:
                return variable
        raise UnknownVariable(label)

    def resolve(self, reference: str) -> str:
        """将标识符或标签解析为标识符（标识符优先）"""
        if reference in self.variables:
            return reference
        return self.variable_by_label(reference).identifier

    def get_parents(self, identifier: str) -> List[str]:
        """
        获取节点的父节点

        Args:
            identifier: 节点标识符

        Returns:
            规范顺序（按标识符排序）的父节点列表
        """
        self.get_variable(identifier)
        return canonical_parent_order(self.graph.predecessors(identifier))

    def condition_keys(self, identifier: str) -> List[ConditionKey]:
        """变量CPT应包含的全部条件键（枚举顺序）"""
        return enumerate_condition_keys(self.get_parents(identifier))

    def labels(self) -> Dict[str, str]:
        """标识符 -> 标签"""
        return {identifier: var.label for identifier, var in self.variables.items()}

    # ============ 合法性检查 ============

    def find_cycle(self) -> Optional[List[Tuple[str, str]]]:
        """查找一个环，不存在时返回None"""
        try:
            return [tuple(edge[:2]) for edge in nx.find_cycle(self.graph)]
        except nx.NetworkXNoCycle:
            return None

    def is_acyclic(self) -> bool:
        """检查是否为有向无环图"""
        return nx.is_directed_acyclic_graph(self.graph)

    def check_acyclic(self) -> None:
        """存在环时抛出 CyclicNetworkError"""
        cycle = self.find_cycle()
        if cycle is not None:
            raise CyclicNetworkError(cycle)

    def get_topological_order(self) -> List[str]:
        """获取拓扑排序（同层按标识符排序，结果确定）"""
        if self._topological_order is None:
            self.check_acyclic()
            self._topological_order = list(nx.lexicographical_topological_sort(self.graph))
        return list(self._topological_order)

    def validate_cpts(self, strict: bool = False) -> List[MissingCPTEntry]:
        """
        检查所有变量的CPT是否完整

        Args:
            strict: 严格模式下缺失项抛出 MalformedCPT

        Returns:
            缺失项列表
        """
        labels = self.labels()
        missing = []
        for identifier in sorted(self.variables):
            missing.extend(find_missing_entries(
                self.variables[identifier], self.get_parents(identifier), labels
            ))
        return apply_missing_policy(missing, strict=strict, source="validate_cpts")

    # ============ 快照与导出 ============

    def snapshot(self) -> 'NetworkSnapshot':
        """
        生成不可变快照，供推断引擎读取

        Returns:
            NetworkSnapshot
        """
        order = self.get_topological_order()
        return NetworkSnapshot(
            variables=MappingProxyType(dict(self.variables)),
            parents=MappingProxyType({
                identifier: tuple(self.get_parents(identifier))
                for identifier in self.variables
            }),
            topological_order=tuple(order),
        )

    def export_structure(self) -> Dict:
        """
        导出网络结构

        Returns:
            结构字典
        """
        acyclic = self.is_acyclic()
        return {
            'nodes': sorted(self.graph.nodes()),
            'labels': self.labels(),
            'edges': [list(edge) for edge in self.edges],
            'is_acyclic': acyclic,
            'topological_order': self.get_topological_order() if acyclic else None
        }


@dataclass(frozen=True)
class NetworkSnapshot:
    """
    网络的不可变快照

    构造时已保证无环，topological_order 满足父节点先于子节点
    """
    variables: Mapping[str, BayesianVariable]
    parents: Mapping[str, Tuple[str, ...]]
    topological_order: Tuple[str, ...]

    def __len__(self) -> int:
        return len(self.topological_order)

    def get_variable(self, identifier: str) -> BayesianVariable:
        try:
            return self.variables[identifier]
        except KeyError:
            raise UnknownVariable(identifier) from None

    def get_parents(self, identifier: str) -> Tuple[str, ...]:
        try:
            return self.parents[identifier]
        except KeyError:
            raise UnknownVariable(identifier) from None

    def variable_by_label(self, label: str) -> BayesianVariable:
        for variable in self.variables.values():
            if variable.label == label:
                return variable
        raise UnknownVariable(label)

    def resolve(self, reference: str) -> str:
        """将标识符或标签解析为标识符（标识符优先）"""
        if reference in self.variables:
            return reference
        return self.variable_by_label(reference).identifier

    def label_of(self, identifier: str) -> str:
        return self.get_variable(identifier).label

    def labels(self) -> Dict[str, str]:
        return {identifier: var.label for identifier, var in self.variables.items()}

    def ancestors(self, identifier: str) -> List[str]:
        """按拓扑序返回节点的所有祖先（不含自身）"""
        seen = set()
        stack = list(self.get_parents(identifier))
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            stack.extend(self.parents[node])
        return [node for node in self.topological_order if node in seen]

    def missing_entries(self) -> List[MissingCPTEntry]:
        """快照中所有CPT缺失项"""
        labels = self.labels()
        missing = []
        for identifier in self.topological_order:
            missing.extend(find_missing_entries(
                self.variables[identifier], self.parents[identifier], labels
            ))
        return missing


def as_snapshot(network) -> NetworkSnapshot:
    """接受网络或快照，统一返回快照"""
    if isinstance(network, NetworkSnapshot):
        return network
    if isinstance(network, BayesianNetwork):
        return network.snapshot()
    raise TypeError(f"不支持的网络类型: {type(network).__name__}")
