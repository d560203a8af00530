#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试编辑器数据格式转换
"""
import copy
import unittest

from bntool.bayes.errors import MalformedCPT, UnknownVariable
from bntool.bayes.inference import compute_all
from bntool.bayes.networks import RAIN_SPRINKLER_PAYLOAD, get_example_network
from bntool.bayes.payload import network_from_payload, network_to_payload


class TestPayload(unittest.TestCase):
    """测试节点/边字典与网络的转换"""

    def setUp(self):
        self.payload = copy.deepcopy(RAIN_SPRINKLER_PAYLOAD)

    def test_from_payload(self):
        """编辑器测试用例转换为网络"""
        network = network_from_payload(self.payload)
        self.assertEqual(len(network), 3)
        self.assertEqual(network.get_parents('3'), ['1', '2'])
        self.assertAlmostEqual(network.get_variable('1').prior, 0.3)
        self.assertEqual(
            network.get_variable('3').cpt[(('1', False), ('2', True))], 0.9
        )
        self.assertEqual(network.validate_cpts(strict=True), [])

    def test_round_trip(self):
        """导出再导入后推断结果不变"""
        network = network_from_payload(self.payload)
        exported = network_to_payload(network)
        self.assertEqual(
            exported['nodes'][0]['data']['probabilities'], {'true': 0.3, 'false': 0.7}
        )
        self.assertIn('Rain=false, Sprinkler=true', exported['nodes'][2]['data']['probabilities'])
        self.assertEqual(compute_all(network_from_payload(exported)), compute_all(network))

    def test_flat_nodes(self):
        """兼容不带 data 嵌套的节点格式"""
        payload = {
            'nodes': [
                {'id': 'a', 'label': 'A', 'probabilities': {'true': 0.5, 'false': 0.5}},
                {'id': 'b', 'label': 'B', 'probabilities': {'A=true': 0.9, 'A=false': 0.2}},
            ],
            'edges': [{'source': 'a', 'target': 'b'}],
        }
        network = network_from_payload(payload)
        self.assertAlmostEqual(compute_all(network)['b'], 0.55, places=12)

    def test_incomplete_table(self):
        """编辑器中未填写的组合作为缺失项"""
        self.payload['nodes'][2]['data']['probabilities'].pop('Rain=false, Sprinkler=false')
        network = network_from_payload(self.payload)
        missing = network.validate_cpts()
        self.assertEqual(len(missing), 1)
        self.assertEqual(missing[0].condition_text, 'Rain=false, Sprinkler=false')
        with self.assertRaises(MalformedCPT):
            network.validate_cpts(strict=True)

    def test_stale_root_states(self):
        """根节点加边后残留的 true/false 项被忽略"""
        payload = {
            'nodes': [
                {'id': 'a', 'data': {'label': 'A', 'probabilities': {'true': 0.3, 'false': 0.7}}},
                {'id': 'b', 'data': {'label': 'B', 'probabilities': {
                    'true': 0.5, 'false': 0.5, 'A=true': 0.4, 'A=false': 0.6,
                }}},
            ],
            'edges': [{'id': 'ea-b', 'source': 'a', 'target': 'b'}],
        }
        with self.assertLogs('bayes_structure', level='WARNING'):
            network = network_from_payload(payload)
        self.assertEqual(
            dict(network.get_variable('b').cpt), {(('a', True),): 0.4, (('a', False),): 0.6}
        )
        self.assertEqual(network.validate_cpts(strict=True), [])
        self.assertAlmostEqual(compute_all(network)['b'], 0.3 * 0.4 + 0.7 * 0.6, places=12)

    def test_unparsable_condition(self):
        """无法解析的条件字符串报告为 MalformedCPT"""
        self.payload['nodes'][1]['data']['probabilities'] = {'Rain=true': 0.4, 'Rain': 0.6}
        with self.assertRaises(MalformedCPT) as ctx:
            network_from_payload(self.payload)
        self.assertEqual(ctx.exception.variable, '2')

        self.payload['nodes'][1]['data']['probabilities'] = {'Rain=maybe': 0.4}
        with self.assertRaises(MalformedCPT):
            network_from_payload(self.payload)

    def test_unknown_label_in_condition(self):
        """条件中引用不存在的标签"""
        self.payload['nodes'][1]['data']['probabilities'] = {'Cloud=true': 0.5}
        with self.assertRaises(UnknownVariable):
            network_from_payload(self.payload)

    def test_example_catalog(self):
        """示例网络目录"""
        self.assertEqual(len(get_example_network('alarm')), 5)
        with self.assertRaises(ValueError):
            get_example_network('asia')


if __name__ == '__main__':
    unittest.main()
