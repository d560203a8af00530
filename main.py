#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
主执行脚本
加载网络，运行精确推断和蒙特卡洛模拟，并比较两者结果
"""
import os
import argparse
from typing import Dict, Tuple

from bntool.bayes import ExactInference, MonteCarloSampler, network_from_payload
from bntool.bayes.inference import METHODS
from bntool.bayes.networks import EXAMPLE_NETWORKS, get_example_network
from bntool.evaluation import compare_with_exact, summarize_comparison
from bntool.utils import (
    configure_logging,
    ensure_dir,
    load_config,
    load_payload,
    save_data,
    save_metadata,
    setup_logger,
)

logger = setup_logger("main")

MODULE_LOGGERS = [
    "main", "cpd_tables", "bayes_structure", "bayes_payload",
    "bayes_inference", "bayes_sampling", "metrics",
]


def parse_event_item(item: str) -> Tuple[str, bool]:
    """
    解析单个 --event 参数，格式为 LABEL=true|false

    作为 argparse 的 type 使用，格式错误由 argparse 报告

    Args:
        item: 参数字符串

    Returns:
        (标签, 取值)
    """
    if '=' not in item:
        raise argparse.ArgumentTypeError(f"事件格式应为 LABEL=true|false: {item}")
    label, value = item.rsplit('=', 1)
    value = value.strip().lower()
    if value not in ('true', 'false'):
        raise argparse.ArgumentTypeError(f"事件取值必须为 true 或 false: {item}")
    return label.strip(), value == 'true'


def run(args: argparse.Namespace, config: dict) -> Dict:
    """
    执行一次完整的推断流程

    Args:
        args: 命令行参数
        config: 配置字典

    Returns:
        运行元数据
    """
    strict = args.strict or config['inference']['strict_cpt']
    method = args.method or config['inference']['method']
    sim_config = config['simulation']

    # 1. 加载网络
    logger.info("步骤 1/3: 加载网络")
    if args.network:
        network = network_from_payload(load_payload(args.network))
        source = args.network
    else:
        network = get_example_network(args.example)
        source = f"example:{args.example}"
    logger.info(f"网络来源: {source}, 共 {len(network)} 个变量")

    # 2. 精确推断
    logger.info(f"步骤 2/3: 精确推断 (方式={method})")
    exact_engine = ExactInference(network, strict=strict, method=method)
    exact = exact_engine.compute_all()
    for identifier, probability in exact.items():
        logger.info(f"  P({network.variables[identifier].label}=true) = {probability:.6f}")

    metadata = {
        'source': source,
        'method': method,
        'structure': network.export_structure(),
        'exact': {network.variables[i].label: float(p) for i, p in exact.items()},
        'missing_cpt_entries': [str(entry) for entry in exact_engine.diagnostics],
    }

    if args.target:
        metadata['target'] = args.target
        metadata['target_probability'] = float(exact_engine.query(args.target))

    event = dict(args.event)
    if event:
        metadata['event'] = event
        metadata['event_exact'] = float(exact_engine.event_probability(event))

    # 3. 蒙特卡洛模拟
    num_simulations = args.simulations or sim_config['num_simulations']
    seed = args.seed if args.seed is not None else sim_config['seed']
    logger.info(f"步骤 3/3: 蒙特卡洛模拟 ({num_simulations} 次)")

    sampler = MonteCarloSampler(
        network,
        strict=strict,
        seed=seed,
        batch_size=sim_config['batch_size']
    )
    result = sampler.run_simulations(
        count=num_simulations,
        event=event or None,
        show_progress=sim_config['show_progress'],
        confidence_level=sim_config['confidence_level']
    )

    comparison = compare_with_exact(exact, result)
    metadata['num_simulations'] = int(num_simulations)
    metadata['seed'] = seed
    metadata['summary'] = summarize_comparison(comparison)
    if event:
        metadata['event_estimate'] = float(result.event_estimate)
        logger.info(
            f"联合事件 {event}: 精确={metadata['event_exact']:.6f}, "
            f"估计={metadata['event_estimate']:.6f}"
        )

    logger.info("\n" + comparison.to_string(index=False))

    # 保存结果
    output_dir = args.output or config['output']['results_dir']
    if output_dir:
        ensure_dir(output_dir)
        save_data(comparison, os.path.join(output_dir, "exact_vs_sampled.csv"))
        save_metadata(metadata, os.path.join(output_dir, "run_metadata.yaml"))
        logger.info(f"结果已保存: {output_dir}")

    return metadata


def build_parser() -> argparse.ArgumentParser:
    """命令行参数定义"""
    parser = argparse.ArgumentParser(description='二值贝叶斯网络推断')
    parser.add_argument('--config', type=str, default=None,
                        help='配置文件路径（默认使用内置配置）')
    parser.add_argument('--network', type=str, default=None,
                        help='编辑器导出的网络文件（.json / .yaml）')
    parser.add_argument('--example', type=str, default='rain_sprinkler',
                        choices=sorted(EXAMPLE_NETWORKS),
                        help='未指定 --network 时使用的示例网络')
    parser.add_argument('--target', type=str, default=None,
                        help='目标变量（标识符或标签）')
    parser.add_argument('--simulations', type=int, default=None,
                        help='蒙特卡洛模拟次数')
    parser.add_argument('--seed', type=int, default=None,
                        help='随机种子')
    parser.add_argument('--event', type=parse_event_item, action='append', default=[],
                        help='联合事件，格式 LABEL=true|false，可重复')
    parser.add_argument('--method', type=str, default=None, choices=METHODS,
                        help='精确推断的父节点加权方式（默认取配置文件）')
    parser.add_argument('--strict', action='store_true',
                        help='CPT不完整时直接报错')
    parser.add_argument('--output', type=str, default=None,
                        help='结果输出目录')
    return parser


def main():
    """主函数"""
    args = build_parser().parse_args()
    config = load_config(args.config)
    configure_logging(
        MODULE_LOGGERS,
        log_dir=config['logging']['log_dir'],
        level=config['logging']['level']
    )

    run(args, config)


if __name__ == '__main__':
    main()
