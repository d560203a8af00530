#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
输入输出工具
"""
import json
import pandas as pd
import yaml
from typing import Dict, Any


def load_payload(file_path: str) -> Dict[str, Any]:
    """
    加载编辑器导出的网络数据（节点/边字典）

    Args:
        file_path: 文件路径（.json / .yaml / .yml）

    Returns:
        包含 nodes 和 edges 的字典
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        if file_path.endswith('.json'):
            payload = json.load(f)
        elif file_path.endswith(('.yaml', '.yml')):
            payload = yaml.safe_load(f)
        else:
            raise ValueError(f"不支持的文件格式: {file_path}")

    if not isinstance(payload, dict) or 'nodes' not in payload:
        raise ValueError(f"网络数据缺少 nodes: {file_path}")
    return payload


def save_data(df: pd.DataFrame, file_path: str) -> None:
    """
    保存数据文件

    Args:
        df: DataFrame
        file_path: 文件路径
    """
    if file_path.endswith('.parquet'):
        df.to_parquet(file_path, index=False)
    elif file_path.endswith('.csv'):
        df.to_csv(file_path, index=False, encoding='utf-8-sig')
    else:
        raise ValueError(f"不支持的文件格式: {file_path}")


def save_metadata(metadata: Dict[str, Any], output_path: str) -> None:
    """
    保存元数据到YAML文件

    Args:
        metadata: 元数据字典
        output_path: 输出路径
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(metadata, f, allow_unicode=True, default_flow_style=False)
