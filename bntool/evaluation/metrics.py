#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
评估指标
比较精确推断与蒙特卡洛估计，并考察估计误差随模拟次数的收敛情况
"""
import numpy as np
import pandas as pd
from typing import Dict, Optional, Sequence

from bntool.bayes.inference import DEFAULT_METHOD, ExactInference
from bntool.bayes.sampling import MonteCarloSampler, SimulationResult
from bntool.utils.logging import setup_logger

logger = setup_logger("metrics")


def compare_with_exact(exact: Dict[str, float], result: SimulationResult) -> pd.DataFrame:
    """
    逐变量比较精确结果与模拟估计

    Args:
        exact: 标识符 -> 精确 P(true)
        result: 蒙特卡洛模拟结果

    Returns:
        DataFrame，列: identifier, label, exact, estimate, abs_error,
        std_error, ci_lower, ci_upper, within_ci
    """
    df = result.to_frame()
    df['exact'] = df['identifier'].map(exact)
    df['abs_error'] = (df['estimate'] - df['exact']).abs()
    df['within_ci'] = (df['exact'] >= df['ci_lower']) & (df['exact'] <= df['ci_upper'])

    columns = [
        'identifier', 'label', 'exact', 'estimate', 'abs_error',
        'std_error', 'ci_lower', 'ci_upper', 'within_ci'
    ]
    return df[columns]


def summarize_comparison(comparison: pd.DataFrame) -> Dict[str, float]:
    """
    汇总比较结果

    Args:
        comparison: compare_with_exact 的输出

    Returns:
        指标字典
    """
    metrics = {
        'max_abs_error': float(comparison['abs_error'].max()),
        'mean_abs_error': float(comparison['abs_error'].mean()),
        'coverage': float(comparison['within_ci'].mean()),
    }
    logger.info(
        f"最大绝对误差={metrics['max_abs_error']:.6f}, "
        f"平均绝对误差={metrics['mean_abs_error']:.6f}, "
        f"置信区间覆盖率={metrics['coverage']:.2%}"
    )
    return metrics


def convergence_study(
    network,
    counts: Sequence[int] = (1000, 100000, 10000000),
    seed: Optional[int] = None,
    strict: bool = False,
    method: str = DEFAULT_METHOD
) -> pd.DataFrame:
    """
    收敛性分析：模拟次数增加时估计误差应按 ~1/sqrt(n) 缩小

    Args:
        network: BayesianNetwork 或 NetworkSnapshot
        counts: 模拟次数序列
        seed: 随机种子
        strict: CPT不完整时是否直接报错
        method: 精确推断的加权方式，父节点相关时应使用 'joint'

    Returns:
        DataFrame，每个模拟次数一行: num_simulations, max_abs_error,
        mean_abs_error, max_std_error, expected_error
    """
    exact = ExactInference(network, strict=strict, method=method).compute_all()
    sampler = MonteCarloSampler(network, strict=strict, seed=seed)

    rows = []
    for count in counts:
        result = sampler.run_simulations(count=int(count))
        comparison = compare_with_exact(exact, result)
        rows.append({
            'num_simulations': int(count),
            'max_abs_error': float(comparison['abs_error'].max()),
            'mean_abs_error': float(comparison['abs_error'].mean()),
            'max_std_error': float(comparison['std_error'].max()),
            # 最坏情况 p=0.5 时的标准误差
            'expected_error': 0.5 / np.sqrt(count),
        })
        logger.info(f"  n={count}: 最大绝对误差={rows[-1]['max_abs_error']:.6f}")

    return pd.DataFrame(rows)
