#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试CPT工具模块
"""
import unittest
import numpy as np

from bntool.bayes.cpds import (
    enumerate_assignments,
    enumerate_condition_keys,
    format_condition,
    parse_condition,
    probability_vector,
    root_probability_from_states,
    validate_table,
    find_missing_entries,
    apply_missing_policy,
)
from bntool.bayes.errors import MalformedCPT, UnknownVariable
from bntool.bayes.variables import BayesianVariable


class TestAssignmentEnumeration(unittest.TestCase):
    """测试父节点取值组合枚举"""

    def test_two_parents_order(self):
        """两个父节点按 TT, TF, FT, FF 顺序枚举"""
        self.assertEqual(
            list(enumerate_assignments(2)),
            [(True, True), (True, False), (False, True), (False, False)]
        )

    def test_no_parents(self):
        """无父节点时只有一个空组合"""
        self.assertEqual(list(enumerate_assignments(0)), [()])

    def test_count(self):
        """k 个父节点枚举 2^k 个组合且互不重复"""
        combos = list(enumerate_assignments(4))
        self.assertEqual(len(combos), 16)
        self.assertEqual(len(set(combos)), 16)
        self.assertEqual(combos[0], (True,) * 4)
        self.assertEqual(combos[-1], (False,) * 4)

    def test_condition_keys(self):
        """条件键按父节点顺序构造"""
        keys = enumerate_condition_keys(['a', 'b'])
        self.assertEqual(keys[1], (('a', True), ('b', False)))


class TestConditionStrings(unittest.TestCase):
    """测试条件字符串的解析与渲染"""

    def setUp(self):
        """准备标签映射"""
        self.label_to_id = {'Rain': '1', 'Sprinkler': '2'}
        self.labels = {'1': 'Rain', '2': 'Sprinkler'}

    def test_parse_any_order(self):
        """字符串中父节点顺序不影响条件键"""
        key1 = parse_condition('Rain=true, Sprinkler=false', self.label_to_id)
        key2 = parse_condition('Sprinkler=false | Rain=TRUE', self.label_to_id)
        self.assertEqual(key1, (('1', True), ('2', False)))
        self.assertEqual(key1, key2)

    def test_format(self):
        """渲染为编辑器使用的格式"""
        text = format_condition((('1', False), ('2', True)), self.labels)
        self.assertEqual(text, 'Rain=false, Sprinkler=true')
        self.assertEqual(format_condition((), self.labels), '')

    def test_parse_errors(self):
        """非法条件字符串"""
        with self.assertRaises(UnknownVariable):
            parse_condition('Cloudy=true', self.label_to_id)
        with self.assertRaises(ValueError):
            parse_condition('Rain=maybe', self.label_to_id)
        with self.assertRaises(ValueError):
            parse_condition('Rain', self.label_to_id)


class TestValidation(unittest.TestCase):
    """测试CPT校验"""

    def test_out_of_range(self):
        """超出 [0,1] 的概率在写入时被拒绝"""
        with self.assertRaises(MalformedCPT):
            validate_table('x', {(): 1.2})
        with self.assertRaises(MalformedCPT):
            validate_table('x', {(('a', True),): -0.1})
        with self.assertRaises(MalformedCPT):
            validate_table('x', {(): 'high'})

    def test_root_states(self):
        """根节点 true/false 两种写法"""
        self.assertAlmostEqual(root_probability_from_states('x', {'true': 0.3, 'false': 0.7}), 0.3)
        self.assertAlmostEqual(root_probability_from_states('x', {'false': 0.25}), 0.75)
        with self.assertRaises(MalformedCPT):
            root_probability_from_states('x', {'true': 0.3, 'false': 0.6})

    def test_missing_entries(self):
        """缺失项诊断，宽松模式返回诊断，严格模式报错"""
        variable = BayesianVariable('c', 'C', cpt={(('a', True),): 0.5})
        missing = find_missing_entries(variable, ['a'], {'a': 'A', 'c': 'C'})
        self.assertEqual(len(missing), 1)
        self.assertEqual(missing[0].condition, (('a', False),))
        self.assertEqual(missing[0].condition_text, 'A=false')

        self.assertEqual(apply_missing_policy(missing, strict=False), missing)
        with self.assertRaises(MalformedCPT):
            apply_missing_policy(missing, strict=True)

    def test_probability_vector(self):
        """概率向量与枚举顺序一致，缺失项为0"""
        variable = BayesianVariable('c', 'C', cpt={
            (('a', True), ('b', True)): 0.9,
            (('a', False), ('b', True)): 0.3,
        })
        vector = probability_vector(variable, ['a', 'b'])
        np.testing.assert_allclose(vector, [0.9, 0.0, 0.3, 0.0])


if __name__ == '__main__':
    unittest.main()
