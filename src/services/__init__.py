"""Services package.

Keep this module lightweight: importing `services` should not trigger heavy
imports (numpy, pydantic). Everything beyond logging is exported lazily.
"""

from __future__ import annotations

import importlib

from .logger import cleanup_logging, get_logger, setup_logging

__all__ = ["cleanup_logging", "get_logger", "setup_logging"]


_LAZY_EXPORTS = {
    # Context object handed to every pointer-source loop
    "PointerContext": ("services.pointer_context", "PointerContext"),
    # Hover path (new button hit per source)
    "HoverLogger": ("services.hover_logger", "HoverLogger"),
    # Controller input edges and motion
    "ButtonEdge": ("services.input_tracker", "ButtonEdge"),
    "ControllerInputTracker": ("services.input_tracker", "ControllerInputTracker"),
    "MotionTracker": ("services.motion_tracker", "MotionTracker"),
    # Reading the durable log back
    "LogReader": ("services.log_reader", "LogReader"),
    "LogReadResult": ("services.log_reader", "LogReadResult"),
    "LogRowError": ("services.log_reader", "LogRowError"),
}


def __getattr__(name: str):
    if name in _LAZY_EXPORTS:
        module_name, attr = _LAZY_EXPORTS[name]
        module = importlib.import_module(module_name)
        value = getattr(module, attr)
        globals()[name] = value
        if name not in __all__:
            __all__.append(name)
        return value
    raise AttributeError(f"module 'services' has no attribute {name!r}")
