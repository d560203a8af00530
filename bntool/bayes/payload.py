#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
编辑器数据格式转换
编辑器以节点/边字典描述网络，此模块负责与 BayesianNetwork 相互转换
"""
from typing import Any, Dict, List

from bntool.bayes.cpds import ROOT_KEY, format_condition
from bntool.bayes.structure import BayesianNetwork
from bntool.utils.logging import setup_logger

logger = setup_logger("bayes_payload")


def _node_fields(node: Dict[str, Any]) -> Dict[str, Any]:
    """兼容 {"data": {...}} 嵌套格式和扁平格式"""
    data = node.get('data', node)
    if 'id' not in node:
        raise ValueError(f"节点缺少 id: {node}")
    return {
        'id': str(node['id']),
        'label': data.get('label', str(node['id'])),
        'probabilities': data.get('probabilities') or {},
        'description': data.get('description', ''),
    }


def network_from_payload(payload: Dict[str, Any]) -> BayesianNetwork:
    """
    从编辑器的节点/边字典构造网络

    节点: {"id": "2", "data": {"label": "Sprinkler",
           "probabilities": {"Rain=true": 0.4, "Rain=false": 0.6}}}
    根节点: {"true": 0.3, "false": 0.7}
    边: {"source": "1", "target": "2"}

    Args:
        payload: 包含 nodes 和 edges 的字典

    Returns:
        BayesianNetwork
    """
    nodes = [_node_fields(node) for node in payload.get('nodes', [])]
    edges = payload.get('edges', [])

    network = BayesianNetwork()

    # 先建节点和边，父节点确定后才能解析条件字符串
    for node in nodes:
        network.add_variable(node['id'], node['label'], description=node['description'])

    for edge in edges:
        network.add_edge(str(edge['source']), str(edge['target']))

    for node in nodes:
        if node['probabilities']:
            network.set_cpt_by_labels(node['id'], node['probabilities'])

    logger.info(f"从编辑器数据构造网络: {len(nodes)} 个节点, {len(edges)} 条边")
    return network


def network_to_payload(network: BayesianNetwork) -> Dict[str, List[Dict[str, Any]]]:
    """
    将网络导出为编辑器的节点/边字典

    Args:
        network: BayesianNetwork

    Returns:
        包含 nodes 和 edges 的字典
    """
    labels = network.labels()
    nodes = []
    for identifier, variable in network.variables.items():
        if not network.get_parents(identifier) and ROOT_KEY in variable.cpt:
            p_true = variable.cpt[ROOT_KEY]
            probabilities = {'true': p_true, 'false': 1.0 - p_true}
        else:
            probabilities = {
                format_condition(key, labels): value
                for key, value in variable.cpt.items()
                if key != ROOT_KEY
            }
        nodes.append({
            'id': identifier,
            'type': 'custom',
            'data': {
                'label': variable.label,
                'probabilities': probabilities,
            },
        })

    edges = [
        {'id': f"e{source}-{target}", 'source': source, 'target': target}
        for source, target in network.edges
    ]
    return {'nodes': nodes, 'edges': edges}
