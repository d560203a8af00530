#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
蒙特卡洛前向采样
按拓扑序逐个采样变量，用大量模拟的频率估计边缘概率和联合事件概率
"""
import threading
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy.stats import norm
from tqdm import tqdm

from bntool.bayes.cpds import MissingCPTEntry, apply_missing_policy, probability_vector
from bntool.bayes.errors import SimulationCancelled, UnknownVariable
from bntool.bayes.structure import as_snapshot
from bntool.utils.logging import setup_logger

logger = setup_logger("bayes_sampling")

DEFAULT_NUM_SIMULATIONS = 100000
DEFAULT_BATCH_SIZE = 10000


class CancellationToken:
    """
    取消令牌

    后台模拟运行期间，编辑器可调用 cancel() 终止过时的计算
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class SimulationResult:
    """
    蒙特卡洛模拟结果

    Attributes:
        num_simulations: 模拟次数
        labels: 标识符 -> 标签
        true_counts: 标识符 -> 取 true 的次数
        event: 关注的联合事件（标识符 -> 取值）
        event_count: 联合事件成立的次数
        confidence_level: 置信区间的置信水平
        samples: 保留的样本（列为标签，行为一次模拟）
    """
    num_simulations: int
    labels: Dict[str, str]
    true_counts: Dict[str, int]
    event: Optional[Dict[str, bool]] = None
    event_count: Optional[int] = None
    confidence_level: float = 0.95
    samples: Optional[pd.DataFrame] = field(default=None, repr=False)

    @property
    def estimates(self) -> Dict[str, float]:
        """标识符 -> P(true) 的估计值"""
        return {
            identifier: count / self.num_simulations
            for identifier, count in self.true_counts.items()
        }

    @property
    def estimates_by_label(self) -> Dict[str, float]:
        return {self.labels[identifier]: p for identifier, p in self.estimates.items()}

    @property
    def event_estimate(self) -> Optional[float]:
        """联合事件概率的估计值"""
        if self.event_count is None:
            return None
        return self.event_count / self.num_simulations

    def _proportion(self, variable: Optional[str]) -> float:
        if variable is None:
            if self.event_count is None:
                raise ValueError("本次模拟没有指定联合事件")
            return self.event_estimate
        if variable not in self.true_counts:
            for identifier, label in self.labels.items():
                if label == variable:
                    variable = identifier
                    break
            else:
                raise UnknownVariable(variable)
        return self.estimates[variable]

    def standard_error(self, variable: Optional[str] = None) -> float:
        """
        估计值的标准误差 sqrt(p(1-p)/n)

        Args:
            variable: 变量标识符或标签，None表示联合事件

        Returns:
            标准误差
        """
        p = self._proportion(variable)
        return float(np.sqrt(p * (1.0 - p) / self.num_simulations))

    def confidence_interval(self, variable: Optional[str] = None) -> Tuple[float, float]:
        """
        正态近似的置信区间（截断到 [0,1]）

        Args:
            variable: 变量标识符或标签，None表示联合事件

        Returns:
            (下界, 上界)
        """
        p = self._proportion(variable)
        z = norm.ppf(0.5 + self.confidence_level / 2.0)
        half_width = z * self.standard_error(variable)
        return max(0.0, p - half_width), min(1.0, p + half_width)

    def to_frame(self) -> pd.DataFrame:
        """
        汇总为DataFrame

        Returns:
            每个变量一行: identifier, label, estimate, std_error, ci_lower, ci_upper
        """
        rows = []
        for identifier, estimate in self.estimates.items():
            lower, upper = self.confidence_interval(identifier)
            rows.append({
                'identifier': identifier,
                'label': self.labels[identifier],
                'estimate': estimate,
                'std_error': self.standard_error(identifier),
                'ci_lower': lower,
                'ci_upper': upper,
            })
        return pd.DataFrame(rows)


class MonteCarloSampler:
    """
    前向采样器

    每个采样器持有独立的随机数生成器，读取的是网络的不可变快照
    """

    def __init__(
        self,
        network,
        strict: bool = False,
        seed: Optional[int] = None,
        batch_size: int = DEFAULT_BATCH_SIZE
    ):
        """
        初始化采样器

        Args:
            network: BayesianNetwork 或 NetworkSnapshot（有环时抛出 CyclicNetworkError）
            strict: CPT不完整时是否直接报错
            seed: 随机种子
            batch_size: 每批模拟次数
        """
        if batch_size <= 0:
            raise ValueError("batch_size 必须为正数")

        self.snapshot = as_snapshot(network)
        self.strict = strict
        self.batch_size = int(batch_size)
        self.rng = np.random.default_rng(seed)
        self.diagnostics: List[MissingCPTEntry] = apply_missing_policy(
            self.snapshot.missing_entries(), strict=strict, source="monte_carlo"
        )

        # 编译为按拓扑序排列的 (父节点列下标, 概率向量)
        self.order = list(self.snapshot.topological_order)
        self.column = {identifier: index for index, identifier in enumerate(self.order)}
        self._specs = []
        for identifier in self.order:
            parents = self.snapshot.get_parents(identifier)
            self._specs.append((
                np.array([self.column[p] for p in parents], dtype=np.int64),
                probability_vector(self.snapshot.get_variable(identifier), parents),
            ))
        logger.debug(f"初始化采样器: {len(self.order)} 个变量, batch_size={self.batch_size}")

    def sample(self, num_samples: int) -> np.ndarray:
        """
        前向采样

        Args:
            num_samples: 样本数

        Returns:
            形状为 (num_samples, 变量数) 的布尔数组，列按拓扑序排列
        """
        if num_samples <= 0:
            raise ValueError("样本数必须为正数")

        X = np.empty((num_samples, len(self.order)), dtype=bool)

        for i, (parent_idx, p_true) in enumerate(self._specs):
            k = parent_idx.size
            if k == 0:
                p = p_true[0]
            else:
                # 条件下标与枚举顺序一致: 父节点 j 取 false 对应第 (k-1-j) 位为1
                weights = (1 << np.arange(k - 1, -1, -1, dtype=np.int64))[None, :]
                cfg = ((~X[:, parent_idx]).astype(np.int64) * weights).sum(axis=1)
                p = p_true[cfg]
            u = self.rng.random(num_samples)
            X[:, i] = u < p

        return X

    def _resolve_event(self, event) -> Optional[Dict[str, bool]]:
        if event is None:
            return None
        if isinstance(event, str):
            event = {event: True}
        return {self.snapshot.resolve(reference): bool(value) for reference, value in event.items()}

    def run_simulations(
        self,
        count: int = DEFAULT_NUM_SIMULATIONS,
        event: Union[None, str, Mapping[str, bool]] = None,
        cancel_token: Optional[CancellationToken] = None,
        keep_samples: bool = False,
        show_progress: bool = False,
        confidence_level: float = 0.95
    ) -> SimulationResult:
        """
        运行蒙特卡洛模拟

        Args:
            count: 模拟次数
            event: 关注的联合事件（标识符或标签 -> 取值），单个字符串表示该变量为 true
            cancel_token: 取消令牌，每批之间检查
            keep_samples: 是否在结果中保留样本
            show_progress: 是否显示进度条
            confidence_level: 置信区间的置信水平

        Returns:
            SimulationResult
        """
        if count <= 0:
            raise ValueError("模拟次数必须为正数")
        if not 0.0 < confidence_level < 1.0:
            raise ValueError("置信水平必须位于 (0,1)")

        resolved_event = self._resolve_event(event)
        event_columns = event_values = None
        if resolved_event is not None:
            event_columns = np.array([self.column[i] for i in resolved_event], dtype=np.int64)
            event_values = np.array(list(resolved_event.values()), dtype=bool)

        logger.info(f"开始蒙特卡洛模拟: {count} 次")

        true_counts = np.zeros(len(self.order), dtype=np.int64)
        event_count = 0
        kept = []
        done = 0

        progress = tqdm(total=count, desc="蒙特卡洛模拟", disable=not show_progress)
        try:
            while done < count:
                if cancel_token is not None and cancel_token.cancelled:
                    logger.warning(f"模拟被取消: 已完成 {done}/{count} 次")
                    raise SimulationCancelled(done, count)

                batch = min(self.batch_size, count - done)
                X = self.sample(batch)
                true_counts += X.sum(axis=0)
                if event_columns is not None:
                    event_count += int((X[:, event_columns] == event_values).all(axis=1).sum())
                if keep_samples:
                    kept.append(X)

                done += batch
                progress.update(batch)
        finally:
            progress.close()

        labels = self.snapshot.labels()
        samples = None
        if keep_samples:
            samples = pd.DataFrame(
                np.concatenate(kept, axis=0),
                columns=[labels[identifier] for identifier in self.order]
            )

        result = SimulationResult(
            num_simulations=count,
            labels={identifier: labels[identifier] for identifier in self.order},
            true_counts={identifier: int(true_counts[i]) for i, identifier in enumerate(self.order)},
            event=resolved_event,
            event_count=event_count if resolved_event is not None else None,
            confidence_level=confidence_level,
            samples=samples,
        )
        logger.info("蒙特卡洛模拟完成")
        return result

    def run_in_background(self, executor: Executor, **kwargs) -> Tuple[Future, CancellationToken]:
        """
        在线程池中运行模拟，避免阻塞交互线程

        Args:
            executor: concurrent.futures 执行器
            **kwargs: 传给 run_simulations 的参数

        Returns:
            (future, 取消令牌)
        """
        token = kwargs.pop('cancel_token', None) or CancellationToken()
        future = executor.submit(self.run_simulations, cancel_token=token, **kwargs)
        return future, token


def run_simulations(
    network,
    count: int = DEFAULT_NUM_SIMULATIONS,
    event: Union[None, str, Mapping[str, bool]] = None,
    seed: Optional[int] = None,
    strict: bool = False,
    **kwargs
) -> SimulationResult:
    """
    对网络运行蒙特卡洛模拟

    Args:
        network: BayesianNetwork 或 NetworkSnapshot
        count: 模拟次数
        event: 关注的联合事件
        seed: 随机种子
        strict: CPT不完整时是否直接报错
        **kwargs: 传给 MonteCarloSampler.run_simulations 的其他参数

    Returns:
        SimulationResult
    """
    sampler = MonteCarloSampler(network, strict=strict, seed=seed)
    return sampler.run_simulations(count=count, event=event, **kwargs)
