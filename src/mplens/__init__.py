"""
mplens - dependency graph and unused-file finder for mini-program projects

Simple API:

    from mplens import analyze_project

    result = analyze_project("my_app", miniapp_root="miniprogram")
    for path in result.unused_files:
        print(path)

    # Structure graph as {"nodes": [...], "links": [...]}
    data = result.structure.graph.to_dict()
"""


def analyze_project(*args, **kwargs):
    """Lazy import wrapper for analyze_project to avoid heavy imports at package import time."""
    from .analyzer import analyze_project as _analyze_project

    return _analyze_project(*args, **kwargs)


from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("mplens")
except PackageNotFoundError:
    # Fallback for development/uninstalled package
    __version__ = "unknown"

__all__ = ["analyze_project", "__version__"]
