#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
示例网络
包含编辑器自带的测试用例（Rain / Sprinkler / Grass Wet）和经典的防盗报警网络
"""
import copy
from typing import Callable, Dict

from bntool.bayes.payload import network_from_payload
from bntool.bayes.structure import BayesianNetwork


# ============ Test Case 1: Rain / Sprinkler / Grass Wet ============

RAIN_SPRINKLER_PAYLOAD = {
    'nodes': [
        {
            'id': '1',
            'type': 'custom',
            'data': {'label': 'Rain', 'probabilities': {'true': 0.3, 'false': 0.7}},
            'position': {'x': 250, 'y': 5},
        },
        {
            'id': '2',
            'type': 'custom',
            'data': {
                'label': 'Sprinkler',
                'probabilities': {'Rain=true': 0.4, 'Rain=false': 0.6},
            },
            'position': {'x': 100, 'y': 100},
        },
        {
            'id': '3',
            'type': 'custom',
            'data': {
                'label': 'Grass Wet',
                'probabilities': {
                    'Rain=true, Sprinkler=true': 0.99,
                    'Rain=true, Sprinkler=false': 0.8,
                    'Rain=false, Sprinkler=true': 0.9,
                    'Rain=false, Sprinkler=false': 0.1,
                },
            },
            'position': {'x': 400, 'y': 100},
        },
    ],
    'edges': [
        {'id': 'e1-2', 'source': '1', 'target': '2'},
        {'id': 'e1-3', 'source': '1', 'target': '3'},
        {'id': 'e2-3', 'source': '2', 'target': '3'},
    ],
}


def build_rain_sprinkler_network() -> BayesianNetwork:
    """
    构造 Rain / Sprinkler / Grass Wet 网络

    P(Grass Wet=true): 默认的父节点独立加权为 0.64318，
    method='joint'（与前向采样一致）为 0.6688
    """
    return network_from_payload(copy.deepcopy(RAIN_SPRINKLER_PAYLOAD))


def build_alarm_network() -> BayesianNetwork:
    """
    构造经典的防盗报警网络

    Burglary, Earthquake -> Alarm -> JohnCalls, MaryCalls
    """
    network = BayesianNetwork()
    network.add_variable('B', 'Burglary', probability=0.001)
    network.add_variable('E', 'Earthquake', probability=0.002)
    network.add_variable('A', 'Alarm')
    network.add_variable('J', 'JohnCalls')
    network.add_variable('M', 'MaryCalls')

    network.add_edge('B', 'A')
    network.add_edge('E', 'A')
    network.add_edge('A', 'J')
    network.add_edge('A', 'M')

    network.set_cpt_by_labels('A', {
        'Burglary=true, Earthquake=true': 0.95,
        'Burglary=true, Earthquake=false': 0.94,
        'Burglary=false, Earthquake=true': 0.29,
        'Burglary=false, Earthquake=false': 0.001,
    })
    network.set_cpt_by_labels('J', {'Alarm=true': 0.90, 'Alarm=false': 0.05})
    network.set_cpt_by_labels('M', {'Alarm=true': 0.70, 'Alarm=false': 0.01})
    return network


def build_chain_network(
    length: int,
    root_probability: float = 0.5,
    p_given_true: float = 0.9,
    p_given_false: float = 0.1
) -> BayesianNetwork:
    """
    构造链式网络 X0 -> X1 -> ... -> X(length-1)

    Args:
        length: 节点数
        root_probability: P(X0=true)
        p_given_true: P(Xi=true | X(i-1)=true)
        p_given_false: P(Xi=true | X(i-1)=false)

    Returns:
        BayesianNetwork
    """
    if length < 1:
        raise ValueError("链长度必须为正数")

    network = BayesianNetwork()
    width = len(str(length - 1))
    ids = [f"x{i:0{width}d}" for i in range(length)]

    network.add_variable(ids[0], 'X0', probability=root_probability)
    for i in range(1, length):
        network.add_variable(ids[i], f"X{i}")
        network.add_edge(ids[i - 1], ids[i])
        network.set_cpt(ids[i], {
            ((ids[i - 1], True),): p_given_true,
            ((ids[i - 1], False),): p_given_false,
        })
    return network


EXAMPLE_NETWORKS: Dict[str, Callable[[], BayesianNetwork]] = {
    'rain_sprinkler': build_rain_sprinkler_network,
    'alarm': build_alarm_network,
}


def get_example_network(name: str) -> BayesianNetwork:
    """
    按名称获取示例网络

    Args:
        name: 'rain_sprinkler' 或 'alarm'

    Returns:
        BayesianNetwork
    """
    if name not in EXAMPLE_NETWORKS:
        raise ValueError(f"未知的示例网络: {name}")
    return EXAMPLE_NETWORKS[name]()
