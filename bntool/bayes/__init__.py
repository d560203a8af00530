#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
贝叶斯网络模块
包含DAG结构定义、CPT工具、精确推断和蒙特卡洛采样等核心功能
"""
from bntool.bayes.errors import (
    BayesNetError,
    UnknownVariable,
    CyclicNetworkError,
    MalformedCPT,
    DuplicateVariable,
    SimulationCancelled,
)
from bntool.bayes.variables import BayesianVariable
from bntool.bayes.cpds import MissingCPTEntry, enumerate_assignments, format_condition, parse_condition
from bntool.bayes.structure import BayesianNetwork, NetworkSnapshot
from bntool.bayes.payload import network_from_payload, network_to_payload
from bntool.bayes.inference import ExactInference, compute_all, compute_probability
from bntool.bayes.sampling import (
    CancellationToken,
    MonteCarloSampler,
    SimulationResult,
    run_simulations,
)
from bntool.bayes.networks import get_example_network

__all__ = [
    'BayesNetError',
    'UnknownVariable',
    'CyclicNetworkError',
    'MalformedCPT',
    'DuplicateVariable',
    'SimulationCancelled',
    'BayesianVariable',
    'MissingCPTEntry',
    'enumerate_assignments',
    'format_condition',
    'parse_condition',
    'BayesianNetwork',
    'NetworkSnapshot',
    'network_from_payload',
    'network_to_payload',
    'ExactInference',
    'compute_all',
    'compute_probability',
    'CancellationToken',
    'MonteCarloSampler',
    'SimulationResult',
    'run_simulations',
    'get_example_network',
]
