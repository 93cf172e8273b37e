# app/domains/users/__init__.py
from importlib import import_module


def __getattr__(name: str):
    if name == "repository":
        return import_module(".repository", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
