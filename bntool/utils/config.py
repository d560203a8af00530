#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
配置工具
"""
import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

# 默认配置，配置文件中的值会覆盖这些默认值
DEFAULT_CONFIG: Dict[str, Any] = {
    'inference': {
        # True: CPT不完整时直接报错; False: 缺失项按0处理并记录警告
        'strict_cpt': False,
        # independent_parents: 父节点边缘概率之积加权; joint: 父节点联合概率加权
        'method': 'independent_parents',
    },
    'simulation': {
        'num_simulations': 100000,
        'batch_size': 10000,
        'seed': None,
        'confidence_level': 0.95,
        'show_progress': False,
    },
    'logging': {
        'level': 'INFO',
        'log_dir': None,
    },
    'output': {
        'results_dir': 'outputs',
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """递归合并配置字典"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = "config.yaml") -> Dict[str, Any]:
    """
    加载配置文件

    Args:
        config_path: 配置文件路径（None表示只使用默认配置）

    Returns:
        配置字典
    """
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"配置文件格式错误: {config_path}")

    return _merge(DEFAULT_CONFIG, config)


def ensure_dir(directory: str) -> None:
    """
    确保目录存在，不存在则创建

    Args:
        directory: 目录路径
    """
    if directory:  # 防止空字符串
        Path(directory).mkdir(parents=True, exist_ok=True)
