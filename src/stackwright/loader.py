"""
Declaration file loading.

Stacks files are YAML or JSON. Templates, parameter files and the
``config.defaults`` block may be given inline or as paths relative to the
stacks file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
import yaml

from stackwright.core.errors import ConfigurationError
from stackwright.declarations import Declarations

logger = structlog.get_logger()

YAML_SUFFIXES = {".yaml", ".yml"}
JSON_SUFFIXES = {".json", ".template"}

TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class TemplateLoader(yaml.SafeLoader):
    """SafeLoader that keeps date-like scalars as strings.

    Templates are sent to the provider as JSON, so a header such as
    ``AWSTemplateFormatVersion: 2010-09-09`` must stay text.
    """


TemplateLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def load_yaml(stream: Any) -> Any:
    return yaml.load(stream, Loader=TemplateLoader)


def load_file(file: str | Path, base_path: str | Path | None = None) -> Any:
    """Load a YAML or JSON document, resolving relative paths against base_path."""
    path = Path(file)
    if not path.is_absolute():
        path = Path(base_path or Path.cwd()) / path

    suffix = path.suffix.lower()
    if suffix not in YAML_SUFFIXES | JSON_SUFFIXES:
        raise ConfigurationError(f"Unrecognized file type: {suffix}", details={"file": str(path)})

    logger.debug("loading_file", file=str(path))
    try:
        with open(path) as f:
            if suffix in YAML_SUFFIXES:
                return load_yaml(f)
            return json.load(f)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"File not found: {path}") from exc
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Failed to parse {path}: {exc}") from exc


def load_declarations(file: str | Path) -> Declarations:
    """Load a stacks file into :class:`Declarations`."""
    path = Path(file)
    content = load_file(path)
    if not isinstance(content, dict):
        raise ConfigurationError(f"Expected {path} to contain a mapping")

    base = path.parent if path.is_absolute() else (Path.cwd() / path).parent

    config = content.get("config")
    if isinstance(config, dict) and isinstance(config.get("defaults"), str):
        config["defaults"] = load_file(config["defaults"], base)

    stacks = content.get("stacks")
    if isinstance(stacks, dict):
        for stack_name, stack in stacks.items():
            if not isinstance(stack, dict):
                continue
            if isinstance(stack.get("template"), str):
                stack["template"] = load_file(stack["template"], base)
            if isinstance(stack.get("parameters"), str):
                stack["parameters"] = load_file(stack["parameters"], base)
            logger.debug("stack_loaded", stack=stack_name)

    return Declarations.from_document(content)
