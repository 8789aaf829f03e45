# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Sinks for volscope records.

Every module in this package is imported on first use, and registers its sinks
under a name with `@register(name)`.
"""
import sys
from types import ModuleType
from typing import Dict

from volscope.monitoring.sink.protocol import SinkImpl

from volscope.monitoring.sink.utils import discover, Factory, make_register, Register

registry: Dict[str, Factory[SinkImpl]] = {}
register: Register[SinkImpl] = make_register(registry)

sink_modules: Dict[str, ModuleType] = discover(sys.modules[__name__])
