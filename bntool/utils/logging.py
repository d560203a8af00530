#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
日志工具
"""
import os
import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str, log_dir: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    """
    设置日志记录器

    Args:
        name: 日志记录器名称
        log_dir: 日志目录（None表示只输出到控制台）
        level: 日志级别

    Returns:
        配置好的日志记录器
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # 避免重复添加处理器
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    # 控制台处理器
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 文件处理器
    if log_dir:
        add_file_handler(logger, log_dir, level)

    return logger


def add_file_handler(logger: logging.Logger, log_dir: str, level: str = "INFO") -> None:
    """
    为已有的日志记录器追加文件处理器

    Args:
        logger: 日志记录器
        log_dir: 日志目录
        level: 日志级别
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_path = os.path.join(log_dir, f"{logger.name}.log")

    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == os.path.abspath(log_path):
            return

    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(getattr(logging, level.upper()))
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)


def configure_logging(names, log_dir: Optional[str] = None, level: str = "INFO") -> None:
    """
    按配置统一调整一组模块日志记录器的级别和输出目录

    Args:
        names: 日志记录器名称列表
        log_dir: 日志目录
        level: 日志级别
    """
    for name in names:
        logger = setup_logger(name, level=level)
        logger.setLevel(getattr(logging, level.upper()))
        for handler in logger.handlers:
            handler.setLevel(getattr(logging, level.upper()))
        if log_dir:
            add_file_handler(logger, log_dir, level)
