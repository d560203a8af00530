#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
工具模块
"""
from bntool.utils.io import load_payload, save_data, save_metadata
from bntool.utils.logging import setup_logger, configure_logging
from bntool.utils.config import load_config, ensure_dir, DEFAULT_CONFIG

__all__ = [
    'load_payload',
    'save_data',
    'save_metadata',
    'setup_logger',
    'configure_logging',
    'load_config',
    'ensure_dir',
    'DEFAULT_CONFIG'
]
