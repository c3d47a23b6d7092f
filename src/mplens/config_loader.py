"""
配置加载器 - 支持 YAML / TOML / JSON 格式配置文件
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

try:
    import yaml
except ImportError:
    yaml = None

try:  # py3.11+
    import tomllib as tomli
except ImportError:
    try:
        import tomli
    except ImportError:
        tomli = None

from .config_schema import validate_config_data
from .filetypes import DEFAULT_FILE_TYPES

logger = logging.getLogger(__name__)

CONFIG_CANDIDATES = (
    "mplens.yaml",
    "mplens.yml",
    ".mplens.yaml",
    ".mplens.yml",
    "mp-lens.config.json",
    "pyproject.toml",  # 检查 [tool.mplens]
)

DEFAULT_EXCLUDE: List[str] = [
    "node_modules/**",
    "**/node_modules/**",
    "miniprogram_npm/**",
    "**/miniprogram_npm/**",
    ".git/**",
    "dist/**",
    "build/**",
    "coverage/**",
]


@dataclass
class AnalyzerConfig:
    """分析配置"""
    miniapp_root: Optional[str] = None
    entry_file: Optional[str] = None
    entry_content: Optional[Dict[str, Any]] = None
    types: List[str] = field(default_factory=lambda: list(DEFAULT_FILE_TYPES))
    exclude: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    essential_files: List[str] = field(default_factory=list)
    include_assets: bool = False
    keep_assets: List[str] = field(default_factory=list)
    # 别名 -> 目录（或有序目录列表）
    aliases: Dict[str, Union[str, List[str]]] = field(default_factory=dict)
    source: Optional[Path] = None


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> AnalyzerConfig:
    """
    加载配置文件

    Args:
        config_path: 指定配置文件路径，如果为None则在 project_root 下自动查找
        project_root: 自动查找的目录，默认当前目录

    Returns:
        AnalyzerConfig: 加载的配置
    """
    if config_path:
        path = Path(config_path)
        if not path.is_absolute() and project_root is not None and not path.exists():
            path = Path(project_root) / path
        return _load_config_file(path)

    found_config = find_config_file(project_root)
    if found_config:
        logger.info("Using config file: %s", found_config)
        return _load_config_file(found_config)

    logger.debug("No config file found; using defaults")
    return AnalyzerConfig()


def find_config_file(project_root: Optional[Path] = None) -> Optional[Path]:
    """
    按优先级查找配置文件

    Returns:
        Path: 找到的配置文件路径，如果没找到返回None
    """
    base = Path(project_root) if project_root else Path(".")
    for name in CONFIG_CANDIDATES:
        candidate = base / name
        if not candidate.is_file():
            continue
        # 对于pyproject.toml，检查是否有[tool.mplens]配置
        if candidate.name == "pyproject.toml":
            if _has_tool_section(candidate):
                return candidate
            continue
        return candidate
    return None


def _load_config_file(config_path: Path) -> AnalyzerConfig:
    """加载指定的配置文件"""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _load_yaml(config_path)
    elif suffix == ".toml":
        data = _load_toml(config_path)
    elif suffix == ".json":
        with config_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported config file format: {suffix}")

    config = parse_config_data(data or {})
    config.source = config_path
    return config


def _load_yaml(config_path: Path) -> Any:
    if yaml is None:
        raise ImportError("PyYAML is required to read YAML config files: pip install pyyaml")
    with config_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _load_toml(config_path: Path) -> Any:
    if tomli is None:
        raise ImportError("tomli is required to read TOML config files: pip install tomli")
    with config_path.open("rb") as f:
        data = tomli.load(f)
    # pyproject.toml 格式
    if "tool" in data and "mplens" in data["tool"]:
        return data["tool"]["mplens"]
    return data


def _has_tool_section(pyproject_path: Path) -> bool:
    if tomli is None:
        return False
    try:
        with pyproject_path.open("rb") as f:
            data = tomli.load(f)
    except (OSError, ValueError):
        return False
    return "tool" in data and "mplens" in data["tool"]


def parse_config_data(data: Dict[str, Any]) -> AnalyzerConfig:
    """解析配置数据（同时接受 snake_case 与 mp-lens.config.json 的 camelCase 键名）

    Raises:
        ValueError: 根节点不是映射，或存在未知键 / 类型错误（pydantic ValidationError）
    """
    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping")
    model = validate_config_data(data)
    config = AnalyzerConfig()

    if model.miniapp_root:
        config.miniapp_root = model.miniapp_root
    if model.entry_file:
        config.entry_file = model.entry_file
    if model.entry_content is not None:
        config.entry_content = model.entry_content
    if model.types:
        config.types = model.types
    if model.exclude is not None:
        config.exclude = model.exclude
    if model.essential_files is not None:
        config.essential_files = model.essential_files
    if model.include_assets is not None:
        config.include_assets = model.include_assets
    if model.keep_assets is not None:
        config.keep_assets = model.keep_assets
    if model.aliases:
        config.aliases = dict(model.aliases)
    return config


def create_example_config() -> str:
    """创建示例配置文件内容"""
    return """# mplens configuration
version: "1.0"

# Mini-program source directory, relative to the project root
miniapp_root: "miniprogram"

# Entry manifest; defaults to <miniapp_root>/app.json
# entry_file: "app.json"

# File types that make up the inventory
types: ["js", "ts", "wxml", "wxss", "less", "json", "wxs"]

exclude:
  - "node_modules/**"
  - "**/node_modules/**"
  - "miniprogram_npm/**"
  - "**/miniprogram_npm/**"
  - "dist/**"

# Files never reported as unused (relative to miniapp_root, then project root)
essential_files: []

# Report unused images too
include_assets: false

# Glob patterns (relative to the project root) for assets kept regardless
keep_assets: []

# Import aliases; merged over tsconfig/jsconfig compilerOptions.paths
aliases:
  # "@": "miniprogram"
  # "@components": ["miniprogram/components", "shared/components"]
"""


def save_example_config(output_path: Optional[Path] = None, force: bool = False) -> Path:
    """保存示例配置文件"""
    if output_path is None:
        output_path = Path("mplens.yaml")
    if output_path.exists() and not force:
        raise FileExistsError(f"{output_path} already exists (use --force to overwrite)")
    output_path.write_text(create_example_config(), encoding="utf-8")
    return output_path
