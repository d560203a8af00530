#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
评估模块
精确推断与蒙特卡洛估计的比较
"""
from bntool.evaluation.metrics import compare_with_exact, summarize_comparison, convergence_study

__all__ = [
    'compare_with_exact',
    'summarize_comparison',
    'convergence_study'
]
