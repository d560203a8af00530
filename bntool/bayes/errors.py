#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络异常定义
结构错误中止整个推断调用，CPT缺失项只作为诊断信息记录
"""
from typing import List, Optional, Sequence, Tuple


class BayesNetError(Exception):
    """贝叶斯网络相关异常的基类"""
    pass


class UnknownVariable(BayesNetError, LookupError):
    """查询引用了网络中不存在的变量"""

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"未知变量: {reference}")


class CyclicNetworkError(BayesNetError):
    """网络中存在环，无法进行推断"""

    def __init__(self, cycle: Optional[Sequence[Tuple[str, str]]] = None):
        self.cycle = list(cycle) if cycle else []
        if self.cycle:
            path = " -> ".join([edge[0] for edge in self.cycle] + [self.cycle[-1][1]])
            message = f"网络中存在环: {path}"
        else:
            message = "网络中存在环"
        super().__init__(message)


class MalformedCPT(BayesNetError, ValueError):
    """条件概率表取值越界或（严格模式下）不完整"""

    def __init__(self, variable: str, problems: List[str]):
        self.variable = variable
        self.problems = list(problems)
        super().__init__(f"变量 {variable} 的CPT无效: " + "; ".join(self.problems))


class DuplicateVariable(BayesNetError, ValueError):
    """变量标识符或标签重复"""
    pass


class SimulationCancelled(BayesNetError):
    """蒙特卡洛模拟被取消"""

    def __init__(self, completed: int, requested: int):
        self.completed = completed
        self.requested = requested
        super().__init__(f"模拟已取消: 完成 {completed}/{requested} 次")
