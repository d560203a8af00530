#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
测试蒙特卡洛采样模块
"""
import unittest
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from bntool.bayes.errors import CyclicNetworkError, MalformedCPT, SimulationCancelled, UnknownVariable
from bntool.bayes.inference import ExactInference
from bntool.bayes.networks import build_alarm_network, build_rain_sprinkler_network
from bntool.bayes.sampling import CancellationToken, MonteCarloSampler, run_simulations
from bntool.bayes.structure import BayesianNetwork


class TestForwardSampling(unittest.TestCase):
    """测试前向采样估计"""

    def setUp(self):
        self.network = build_rain_sprinkler_network()
        self.exact = ExactInference(self.network, method='joint').compute_all()

    def test_estimates_close_to_exact(self):
        """10万次模拟的估计接近精确值"""
        result = run_simulations(self.network, count=100000, seed=42)
        for identifier, probability in self.exact.items():
            self.assertAlmostEqual(result.estimates[identifier], probability, delta=0.01)
        self.assertAlmostEqual(result.estimates_by_label['Grass Wet'], 0.6688, delta=0.01)

    def test_joint_event(self):
        """联合事件 P(Rain, Grass Wet) 的估计"""
        result = run_simulations(
            self.network, count=100000, seed=7, event={'Rain': True, 'Grass Wet': True}
        )
        self.assertEqual(result.event, {'1': True, '3': True})
        self.assertAlmostEqual(result.event_estimate, 0.2628, delta=0.01)

    def test_single_variable_event(self):
        """单个字符串表示该变量为 true"""
        result = run_simulations(self.network, count=20000, seed=1, event='Grass Wet')
        self.assertEqual(result.event, {'3': True})
        self.assertEqual(result.event_count, result.true_counts['3'])

    def test_event_with_false_value(self):
        """事件中包含取 false 的变量"""
        result = run_simulations(self.network, count=100000, seed=3, event={'Rain': False, 'Sprinkler': True})
        self.assertAlmostEqual(result.event_estimate, 0.42, delta=0.01)

    def test_reproducible_with_seed(self):
        """相同种子结果相同"""
        first = run_simulations(self.network, count=5000, seed=123)
        second = run_simulations(self.network, count=5000, seed=123)
        self.assertEqual(first.true_counts, second.true_counts)

    def test_batches_cover_count(self):
        """批量大小不整除模拟次数时总数仍然正确"""
        sampler = MonteCarloSampler(self.network, seed=0, batch_size=333)
        result = sampler.run_simulations(count=1000, keep_samples=True)
        self.assertEqual(result.num_simulations, 1000)
        self.assertEqual(result.samples.shape, (1000, 3))
        self.assertEqual(list(result.samples.columns), ['Rain', 'Sprinkler', 'Grass Wet'])
        self.assertAlmostEqual(result.samples['Rain'].mean(), result.estimates['1'])

    def test_sample_respects_deterministic_cpt(self):
        """确定性的CPT产生确定性的样本"""
        network = BayesianNetwork()
        network.add_variable('a', 'A', probability=1.0)
        network.add_variable('b', 'B')
        network.add_edge('a', 'b')
        network.set_cpt_by_labels('b', {'A=true': 0.0, 'A=false': 1.0})
        X = MonteCarloSampler(network, seed=0).sample(500)
        self.assertTrue(X[:, 0].all())
        self.assertFalse(X[:, 1].any())

    def test_convergence(self):
        """模拟次数增加时误差缩小"""
        sampler = MonteCarloSampler(build_alarm_network(), seed=2024)
        exact = ExactInference(build_alarm_network()).compute_all()

        small = sampler.run_simulations(count=1000)
        large = sampler.run_simulations(count=100000)

        small_error = max(abs(small.estimates[i] - p) for i, p in exact.items())
        large_error = max(abs(large.estimates[i] - p) for i, p in exact.items())
        self.assertLess(large_error, 0.01)
        self.assertLess(small_error, 0.08)
        self.assertLess(large.standard_error('JohnCalls'), small.standard_error('JohnCalls'))


class TestSimulationResult(unittest.TestCase):
    """测试模拟结果的统计量"""

    def setUp(self):
        self.result = run_simulations(build_rain_sprinkler_network(), count=10000, seed=5, event='Rain')

    def test_standard_error(self):
        """标准误差 sqrt(p(1-p)/n)"""
        p = self.result.estimates['1']
        self.assertAlmostEqual(self.result.standard_error('Rain'), np.sqrt(p * (1 - p) / 10000))
        self.assertAlmostEqual(self.result.standard_error(), self.result.standard_error('1'))

    def test_confidence_interval(self):
        """置信区间包含估计值"""
        lower, upper = self.result.confidence_interval('Grass Wet')
        estimate = self.result.estimates['3']
        self.assertLess(lower, estimate)
        self.assertGreater(upper, estimate)
        self.assertAlmostEqual(upper - estimate, 1.959964 * self.result.standard_error('3'), places=5)

    def test_to_frame(self):
        """汇总表"""
        df = self.result.to_frame()
        self.assertEqual(len(df), 3)
        self.assertIn('ci_lower', df.columns)

    def test_unknown_variable(self):
        """统计量查询不存在的变量"""
        with self.assertRaises(UnknownVariable):
            self.result.standard_error('Cloudy')


class TestSamplingErrors(unittest.TestCase):
    """测试错误处理与取消"""

    def test_cycle(self):
        """有环网络在采样前报错"""
        network = BayesianNetwork()
        network.add_variable('a', 'A', probability=0.5)
        network.add_variable('b', 'B', probability=0.5)
        network.add_edge('a', 'b')
        network.add_edge('b', 'a')
        with self.assertRaises(CyclicNetworkError):
            MonteCarloSampler(network)

    def test_invalid_arguments(self):
        """非法参数"""
        network = build_rain_sprinkler_network()
        with self.assertRaises(ValueError):
            run_simulations(network, count=0)
        with self.assertRaises(ValueError):
            MonteCarloSampler(network, batch_size=0)
        with self.assertRaises(UnknownVariable):
            run_simulations(network, count=10, event={'Cloudy': True})

    def test_missing_entries_consistent_with_exact(self):
        """两种推断对缺失项采用相同的策略"""
        network = BayesianNetwork()
        network.add_variable('a', 'A', probability=0.4)
        network.add_variable('b', 'B')
        network.add_edge('a', 'b')
        network.set_cpt_by_labels('b', {'A=true': 0.5})

        sampler = MonteCarloSampler(network, seed=11)
        self.assertEqual(len(sampler.diagnostics), 1)
        result = sampler.run_simulations(count=100000)
        self.assertAlmostEqual(result.estimates['b'], ExactInference(network).query('B'), delta=0.01)

        with self.assertRaises(MalformedCPT):
            MonteCarloSampler(network, strict=True)

    def test_cancelled(self):
        """取消令牌终止模拟"""
        token = CancellationToken()
        token.cancel()
        sampler = MonteCarloSampler(build_rain_sprinkler_network(), seed=0)
        with self.assertRaises(SimulationCancelled) as ctx:
            sampler.run_simulations(count=1000, cancel_token=token)
        self.assertEqual(ctx.exception.completed, 0)

    def test_background_run(self):
        """后台运行不受之后编辑的影响"""
        network = build_rain_sprinkler_network()
        sampler = MonteCarloSampler(network, seed=9)
        network.set_probability('1', 1.0)

        with ThreadPoolExecutor(max_workers=1) as executor:
            future, token = sampler.run_in_background(executor, count=50000)
            result = future.result()

        self.assertFalse(token.cancelled)
        self.assertAlmostEqual(result.estimates['1'], 0.3, delta=0.015)


if __name__ == '__main__':
    unittest.main()
