#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯精确推断
对父节点取值组合做完全枚举，递归计算每个变量的边缘概率 P(X=true)

默认方式按父节点边缘概率之积为每个组合加权，每个变量只展开一次 2^k 个组合，
总代价随入度指数增长、随变量数线性增长；父节点相互独立时结果精确。
可选的 joint 方式按父节点的联合概率加权，对任意DAG精确，
但需要的联合事件数随祖先数量增长，只适合小网络。
"""
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from bntool.bayes.cpds import (
    MissingCPTEntry,
    apply_missing_policy,
    enumerate_assignments,
    format_condition,
    make_condition_key,
    query_cpt,
)
from bntool.bayes.structure import as_snapshot
from bntool.utils.logging import setup_logger

logger = setup_logger("bayes_inference")

# 事件: 若干变量的取值，作为备忘表的键
Event = FrozenSet[Tuple[str, bool]]

# 计算父节点组合权重的方式
#   independent_parents: 按父节点边缘概率之积加权（默认）
#   joint: 按父节点的联合概率加权
METHODS = ('independent_parents', 'joint')
DEFAULT_METHOD = 'independent_parents'


class ExactInference:
    """
    精确推断器

    每次外部调用使用新的备忘表（memo），同一次调用内共享已计算的子问题；
    不在多次调用之间缓存结果
    """

    def __init__(self, network, strict: bool = False, method: str = DEFAULT_METHOD):
        """
        初始化推断器

        Args:
            network: BayesianNetwork 或 NetworkSnapshot（有环时抛出 CyclicNetworkError）
            strict: CPT不完整时是否直接报错
            method: 'independent_parents' 或 'joint'
        """
        if method not in METHODS:
            raise ValueError(f"未知的推断方式: {method}")

        self.snapshot = as_snapshot(network)
        self.strict = strict
        self.method = method
        self._position = {
            identifier: index
            for index, identifier in enumerate(self.snapshot.topological_order)
        }
        self.diagnostics: List[MissingCPTEntry] = apply_missing_policy(
            self.snapshot.missing_entries(), strict=strict, source="exact"
        )
        logger.debug(f"初始化精确推断器: {len(self.snapshot)} 个变量, 方式={method}")

    # ============ 核心递归 ============

    def compute_probability(self, variable: str, memo: Optional[Dict[Event, float]] = None) -> float:
        """
        计算 P(variable=true)

        1. 备忘表命中则直接返回
        2. 根节点返回CPT中存储的 P(true)
        3. 否则枚举父节点的 2^k 种取值组合（TT, TF, FT, FF ...），
           累加 P(true | 组合) * prod(p 或 1-p)，p 为父节点的 P(true)

        Args:
            variable: 变量标识符或标签
            memo: 备忘表（事件 -> 概率），None表示新建

        Returns:
            [0,1] 内的概率
        """
        identifier = self.snapshot.resolve(variable)
        if memo is None:
            memo = {}
            self._prime(identifier, memo)
        return self._marginal(identifier, memo)

    def _marginal(self, identifier: str, memo: Dict[Event, float]) -> float:
        key = frozenset([(identifier, True)])
        if key in memo:
            return memo[key]

        if self.method == 'joint':
            return self._event_probability({identifier: True}, memo)

        node = self.snapshot.get_variable(identifier)
        parents = self.snapshot.get_parents(identifier)

        if not parents:
            probability = query_cpt(node, ())
        else:
            probability = 0.0
            for values, weight in self._parent_weights(parents, memo):
                probability += query_cpt(node, make_condition_key(parents, values)) * weight

        memo[key] = probability
        return probability

    def _parent_weights(self, parents: Tuple[str, ...], memo: Dict[Event, float]):
        """按枚举顺序生成 (父节点取值组合, 该组合的权重)"""
        if self.method == 'joint':
            for values in enumerate_assignments(len(parents)):
                yield values, self._event_probability(dict(zip(parents, values)), memo)
            return

        marginals = [self._marginal(parent, memo) for parent in parents]
        for values in enumerate_assignments(len(parents)):
            weight = 1.0
            for p, value in zip(marginals, values):
                weight *= p if value else 1.0 - p
            yield values, weight

    def _expand(self, event: Mapping[str, bool]) -> Tuple[float, List[Tuple[float, Event]]]:
        """
        把联合事件展开为更靠前的子事件: P(e) = constant + sum(coef * P(sub))

        取事件中拓扑序最靠后的变量 X，其余变量都不是 X 的后代，因此
        P(e) = sum_u P(X=x | pa(X)) * P(e - X, u)，u 遍历不在事件中的父节点取值
        """
        last = max(event, key=self._position.__getitem__)
        value = event[last]

        if len(event) == 1 and not value:
            return 1.0, [(-1.0, frozenset([(last, True)]))]

        node = self.snapshot.get_variable(last)
        parents = self.snapshot.get_parents(last)
        rest = {identifier: flag for identifier, flag in event.items() if identifier != last}

        if not parents and not rest:
            return query_cpt(node, ()), []

        free = [parent for parent in parents if parent not in rest]
        terms = []
        for values in enumerate_assignments(len(free)):
            extended = dict(rest)
            extended.update(zip(free, values))
            condition_prob = query_cpt(node, tuple((p, extended[p]) for p in parents))
            if not value:
                condition_prob = 1.0 - condition_prob
            if condition_prob != 0.0:
                terms.append((condition_prob, frozenset(extended.items())))
        return 0.0, terms

    def _event_probability(self, event: Mapping[str, bool], memo: Dict[Event, float]) -> float:
        """
        计算联合事件的概率

        子事件的最大拓扑位置严格递减，用显式栈按后序求值，
        深层网络不受递归深度限制
        """
        if not event:
            return 1.0

        root = frozenset(event.items())
        expansions: Dict[Event, Tuple[float, List[Tuple[float, Event]]]] = {}
        stack = [root]
        while stack:
            key = stack[-1]
            if key in memo:
                stack.pop()
                continue
            if key not in expansions:
                expansions[key] = self._expand(dict(key))
            constant, terms = expansions[key]
            pending = [sub for _, sub in terms if sub not in memo]
            if pending:
                stack.extend(pending)
                continue
            stack.pop()
            memo[key] = constant + sum(coef * memo[sub] for coef, sub in terms)

        return memo[root]

    # ============ 对外接口 ============

    def compute_all(self) -> Dict[str, float]:
        """
        计算所有变量的 P(true)

        按拓扑序访问，所有变量共享一张备忘表，父节点的结果只计算一次

        Returns:
            标识符 -> P(true)
        """
        memo: Dict[Event, float] = {}
        results = {
            identifier: self._marginal(identifier, memo)
            for identifier in self.snapshot.topological_order
        }
        logger.info(f"精确推断完成: {len(results)} 个变量")
        return results

    def compute_all_by_label(self) -> Dict[str, float]:
        """计算所有变量的 P(true)，以标签为键"""
        return {
            self.snapshot.label_of(identifier): probability
            for identifier, probability in self.compute_all().items()
        }

    def _prime(self, identifier: str, memo: Dict[Event, float]) -> None:
        # 先按拓扑序求解祖先，递归深度不随网络深度增长
        for ancestor in self.snapshot.ancestors(identifier):
            self._marginal(ancestor, memo)

    def query(self, target: str) -> float:
        """
        计算单个目标变量的 P(true)

        Args:
            target: 目标变量标识符或标签

        Returns:
            P(target=true)
        """
        identifier = self.snapshot.resolve(target)
        probability = self.compute_probability(identifier)

        logger.info(f"P({self.snapshot.label_of(identifier)}=true) = {probability:.6f}")
        return probability

    def event_probability(self, event: Mapping[str, bool]) -> float:
        """
        计算联合事件的精确概率，例如 {"Rain": True, "Grass Wet": True}

        总是按联合概率展开，与 method 无关

        Args:
            event: 变量标识符或标签 -> 取值

        Returns:
            事件概率
        """
        resolved = {}
        for reference, value in event.items():
            resolved[self.snapshot.resolve(reference)] = bool(value)
        return self._event_probability(resolved, {})

    def marginal_distribution(self, target: str) -> Dict[bool, float]:
        """
        目标变量的边缘分布

        Args:
            target: 目标变量标识符或标签

        Returns:
            {True: p, False: 1-p}
        """
        probability = self.query(target)
        return {True: probability, False: 1.0 - probability}

    def explain(self, target: str) -> Dict[str, Any]:
        """
        解释推断结果

        列出每种父节点取值组合对 P(target=true) 的贡献

        Args:
            target: 目标变量标识符或标签

        Returns:
            解释字典
        """
        identifier = self.snapshot.resolve(target)
        node = self.snapshot.get_variable(identifier)
        parents = self.snapshot.get_parents(identifier)
        labels = self.snapshot.labels()

        memo: Dict[Event, float] = {}
        self._prime(identifier, memo)

        contributions = []
        for values, weight in self._parent_weights(parents, memo):
            key = make_condition_key(parents, values)
            condition_prob = query_cpt(node, key)
            contributions.append({
                'condition': format_condition(key, labels),
                'conditional_probability': condition_prob,
                'missing': key not in node.cpt,
                'weight': weight,
                'contribution': condition_prob * weight,
            })

        return {
            'target': identifier,
            'label': node.label,
            'method': self.method,
            'parents': [labels[parent] for parent in parents],
            'contributions': contributions,
            'probability': self._marginal(identifier, memo),
        }


def compute_all(network, strict: bool = False, method: str = DEFAULT_METHOD) -> Dict[str, float]:
    """
    计算网络中所有变量的 P(true)

    Args:
        network: BayesianNetwork 或 NetworkSnapshot
        strict: CPT不完整时是否直接报错
        method: 'independent_parents' 或 'joint'

    Returns:
        标识符 -> P(true)
    """
    return ExactInference(network, strict=strict, method=method).compute_all()


def compute_probability(network, target: str, strict: bool = False, method: str = DEFAULT_METHOD) -> float:
    """
    计算单个目标变量的 P(true)

    Args:
        network: BayesianNetwork 或 NetworkSnapshot
        target: 目标变量标识符或标签
        strict: CPT不完整时是否直接报错
        method: 'independent_parents' 或 'joint'

    Returns:
        P(target=true)
    """
    return ExactInference(network, strict=strict, method=method).query(target)
