#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
二值贝叶斯网络推断工具
精确推断（带备忘的递归枚举）与蒙特卡洛前向采样
"""
__version__ = "0.1.0"
